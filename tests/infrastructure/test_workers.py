"""Tests for the built-in worker adapters."""

import sys

import pytest

from reactree.domain.exceptions import WorkerUnavailableError
from reactree.domain.memory import MemorySnapshot
from reactree.domain.worker import WorkerRequest, WorkerResponse, WorkerStatus
from reactree.infrastructure import CommandWorker, ScriptedWorker, StaticWorker


def request(node_id="a", agent="agent", **args) -> WorkerRequest:
    return WorkerRequest(
        node_id=node_id,
        skill="run",
        agent=agent,
        args=args,
        memory_snapshot=MemorySnapshot.from_values({}),
    )


def facts(response: WorkerResponse) -> dict:
    return {f.key: f.value for f in response.facts}


class TestScriptedWorker:
    """Tests for ScriptedWorker."""

    def test_returns_responses_in_order(self) -> None:
        """Scripted responses are returned one per call."""
        worker = ScriptedWorker([WorkerResponse.success(), WorkerResponse.failure()])

        assert worker.execute(request()).succeeded
        assert not worker.execute(request()).succeeded
        assert worker.call_count == 2

    def test_exhausted_raises(self) -> None:
        """Calling past the script is a test bug."""
        worker = ScriptedWorker([WorkerResponse.success()])
        worker.execute(request())

        with pytest.raises(RuntimeError, match="exhausted"):
            worker.execute(request())

    def test_repeat_last(self) -> None:
        """repeat_last keeps returning the final response."""
        worker = ScriptedWorker([WorkerResponse.failure()], repeat_last=True)

        for _ in range(3):
            assert not worker.execute(request()).succeeded

    def test_callable_entries_receive_request(self) -> None:
        """Callables build a response from the request."""
        worker = ScriptedWorker(
            [lambda r: WorkerResponse.success({"echo": r.args["x"]})]
        )

        response = worker.execute(request(x=5))

        assert facts(response) == {"echo": 5}

    def test_calls_for_and_reset(self) -> None:
        """Requests are recorded per node and can be cleared."""
        worker = ScriptedWorker([WorkerResponse.success()], repeat_last=True)
        worker.execute(request("a"))
        worker.execute(request("b"))

        assert [r.node_id for r in worker.calls_for("b")] == ["b"]
        worker.reset()
        assert worker.call_count == 0


class TestStaticWorker:
    """Tests for StaticWorker."""

    def test_reports_facts_from_args(self) -> None:
        """args.facts become the response facts."""
        response = StaticWorker().execute(request(facts={"ready": True}))

        assert response.status is WorkerStatus.SUCCESS
        assert facts(response) == {"ready": True}

    def test_simulated_failure(self) -> None:
        """status=failure reports a failing skill."""
        response = StaticWorker().execute(request(status="failure", message="no"))

        assert not response.succeeded
        assert response.message == "no"

    def test_non_object_facts_fail(self) -> None:
        """facts must be an object."""
        response = StaticWorker().execute(request(facts=[1, 2]))

        assert not response.succeeded


class TestCommandWorker:
    """Tests for CommandWorker using the running interpreter as command."""

    def test_success_reports_output(self) -> None:
        """Exit code zero is success; stdout is a fact."""
        command = [sys.executable, "-c", "print('ok')"]

        response = CommandWorker().execute(request(command=command))

        assert response.succeeded
        result = facts(response)
        assert result["exit_code"] == 0
        assert result["stdout"].strip() == "ok"
        assert result["duration"] >= 0

    def test_non_zero_exit_is_failure(self) -> None:
        """A failing command reports its exit code and stderr."""
        command = [
            sys.executable,
            "-c",
            "import sys; sys.stderr.write('bad'); sys.exit(3)",
        ]

        response = CommandWorker().execute(request(command=command))

        assert not response.succeeded
        assert facts(response)["exit_code"] == 3
        assert "bad" in response.message

    def test_string_command_is_split(self) -> None:
        """A string command is split shell-style."""
        command = f'"{sys.executable}" -c "print(41 + 1)"'

        response = CommandWorker().execute(request(command=command))

        assert facts(response)["stdout"].strip() == "42"

    def test_timeout_is_failure(self) -> None:
        """A command exceeding its timeout fails without an exit code."""
        command = [sys.executable, "-c", "import time; time.sleep(5)"]

        response = CommandWorker().execute(request(command=command, timeout=0.2))

        assert not response.succeeded
        assert facts(response)["exit_code"] is None
        assert "Timeout" in response.message

    def test_missing_executable_is_unavailable(self) -> None:
        """An executable that does not exist is an infrastructure fault."""
        with pytest.raises(WorkerUnavailableError):
            CommandWorker().execute(
                request(agent="shell", command=["definitely-not-a-real-binary"])
            )

    def test_missing_command_arg(self) -> None:
        """args.command is required."""
        response = CommandWorker().execute(request())

        assert not response.succeeded
        assert "command is required" in response.message
