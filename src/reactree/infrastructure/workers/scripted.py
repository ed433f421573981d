"""
Scripted worker for testing without real collaborators.

Returns predefined responses in sequence.
"""

from collections.abc import Callable, Sequence

from reactree.domain.interfaces import WorkerInterface
from reactree.domain.worker import WorkerRequest, WorkerResponse

Script = WorkerResponse | Callable[[WorkerRequest], WorkerResponse]


class ScriptedWorker(WorkerInterface):
    """Returns predefined responses for testing."""

    def __init__(self, responses: Sequence[Script], repeat_last: bool = False):
        """
        Args:
            responses: Responses (or request -> response callables) to
                return in sequence
            repeat_last: Keep returning the final entry once the script is
                used up instead of raising
        """
        self._responses = list(responses)
        self._repeat_last = repeat_last
        self._requests: list[WorkerRequest] = []

    def execute(self, request: WorkerRequest) -> WorkerResponse:
        """Return the next scripted response."""
        index = len(self._requests)
        if index >= len(self._responses):
            if not (self._repeat_last and self._responses):
                raise RuntimeError("ScriptedWorker exhausted responses")
            index = len(self._responses) - 1

        self._requests.append(request)
        script = self._responses[index]
        return script(request) if callable(script) else script

    @property
    def call_count(self) -> int:
        """Number of times execute() has been called."""
        return len(self._requests)

    @property
    def requests(self) -> list[WorkerRequest]:
        return list(self._requests)

    def calls_for(self, node_id: str) -> list[WorkerRequest]:
        """Requests made on behalf of one node."""
        return [r for r in self._requests if r.node_id == node_id]

    def reset(self) -> None:
        """Forget recorded calls so the script restarts."""
        self._requests.clear()
