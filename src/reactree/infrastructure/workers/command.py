"""
Command worker: runs a shell command as an Action's skill.

The command runs in a subprocess with a timeout; its exit code decides
the Action's status and its output is reported as facts.
"""

import logging
import shlex
import subprocess
import time

from reactree.domain.exceptions import WorkerUnavailableError
from reactree.domain.interfaces import WorkerInterface
from reactree.domain.worker import WorkerRequest, WorkerResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 600.0
_OUTPUT_LIMIT = 10_000


def _tail(text: str) -> str:
    return text[-_OUTPUT_LIMIT:]


class CommandWorker(WorkerInterface):
    """
    Runs ``args["command"]`` and reports ``exit_code``, ``stdout``,
    ``stderr`` and ``duration`` as facts.

    ``args["command"]`` may be a string (split with shlex) or a list.
    ``args["cwd"]`` and ``args["timeout"]`` override the worker defaults.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
    ):
        """
        Args:
            timeout: Maximum time in seconds a command may run
            cwd: Working directory for commands
            env: Environment for commands (inherits when None)
        """
        self.timeout = timeout
        self._cwd = cwd
        self._env = env

    def execute(self, request: WorkerRequest) -> WorkerResponse:
        command = request.args.get("command")
        if not command:
            return WorkerResponse.failure(
                message=f"{request.node_id}: args.command is required"
            )
        argv = shlex.split(command) if isinstance(command, str) else list(command)
        timeout = float(request.args.get("timeout", self.timeout))
        cwd = request.args.get("cwd", self._cwd)

        logger.info("Running %s for %s", shlex.join(argv), request.node_id)
        started = time.monotonic()
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=cwd,
                env=self._env,
                check=False,
            )
        except FileNotFoundError as e:
            raise WorkerUnavailableError(
                request.agent, f"Command not found: {argv[0]}"
            ) from e
        except subprocess.TimeoutExpired:
            duration = time.monotonic() - started
            return WorkerResponse.failure(
                {"exit_code": None, "duration": round(duration, 3)},
                message=f"Timeout: command exceeded {timeout}s",
            )
        duration = time.monotonic() - started

        facts = {
            "exit_code": completed.returncode,
            "stdout": _tail(completed.stdout),
            "stderr": _tail(completed.stderr),
            "duration": round(duration, 3),
        }
        if completed.returncode == 0:
            return WorkerResponse.success(facts, message="command succeeded")
        logger.debug("%s exited %d", argv[0], completed.returncode)
        return WorkerResponse.failure(
            facts,
            message=f"command exited with {completed.returncode}: "
            f"{completed.stderr.strip()[-500:]}",
        )
