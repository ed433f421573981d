"""Static worker: reports the facts given in an Action's args."""

from reactree.domain.interfaces import WorkerInterface
from reactree.domain.worker import WorkerRequest, WorkerResponse


class StaticWorker(WorkerInterface):
    """
    Reports ``args["facts"]`` as facts without doing any work.

    ``args["status"]`` may be ``"failure"`` to simulate a failing skill and
    ``args["message"]`` sets the response message. Useful for declarative
    workflows and for seeding memory from inside a tree.
    """

    def execute(self, request: WorkerRequest) -> WorkerResponse:
        args = request.args
        facts = args.get("facts") or {}
        if not isinstance(facts, dict):
            return WorkerResponse.failure(
                message=f"{request.node_id}: args.facts must be an object"
            )
        message = str(args.get("message", ""))
        if args.get("status", "success") == "failure":
            return WorkerResponse.failure(facts, message=message)
        return WorkerResponse.success(facts, message=message)
