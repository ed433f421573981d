"""Issue-tracker bridge: mirrors coarse run progress into an issue."""

import logging

from reactree.domain.execution_event import ExecutionEventType, ExecutionStateEvent
from reactree.domain.interfaces import IssueTrackerInterface, StateLogInterface
from reactree.domain.models import NodeType

logger = logging.getLogger(__name__)

_COMPOSITES = {NodeType.SEQUENCE.value, NodeType.LOOP.value}


class ProgressReporter(StateLogInterface):
    """
    StateLog decorator that reports progress to an issue tracker.

    Every event is appended to the wrapped log first; tracker calls follow
    and never affect the run. One issue is opened per run, keyed by the
    run id plus an optional prefix.
    """

    def __init__(
        self,
        state_log: StateLogInterface,
        tracker: IssueTrackerInterface,
        issue_prefix: str = "",
    ) -> None:
        self._log = state_log
        self._tracker = tracker
        self._prefix = issue_prefix

    def _issue_id(self, run_id: str) -> str:
        return f"{self._prefix}{run_id}"

    def append(self, event: ExecutionStateEvent) -> str:
        event_id = self._log.append(event)
        self._report(event)
        return event_id

    def replay(
        self,
        run_id: str,
        node_id: str | None = None,
        event_type: ExecutionEventType | None = None,
    ) -> list[ExecutionStateEvent]:
        return self._log.replay(run_id, node_id=node_id, event_type=event_type)

    def run_ids(self) -> list[str]:
        return self._log.run_ids()

    def _report(self, event: ExecutionStateEvent) -> None:
        issue = self._issue_id(event.run_id)
        data = event.data
        match event.event_type:
            case ExecutionEventType.RUN_START:
                verb = "Resumed" if data.get("resumed") else "Started"
                self._tracker.create(issue, f"{verb} workflow {data.get('workflow')}")
                self._tracker.update(issue, "in_progress")
            case ExecutionEventType.NODE_START if event.node_type in _COMPOSITES:
                self._tracker.comment(issue, f"[{event.node_id}] started")
            case ExecutionEventType.NODE_COMPLETE if event.node_type in _COMPOSITES:
                self._tracker.comment(
                    issue, f"[{event.node_id}] {data.get('status')}"
                )
            case ExecutionEventType.FEEDBACK_FAILED:
                self._tracker.update(issue, "blocked")
                self._tracker.comment(
                    issue,
                    f"Feedback {data.get('from_node')} -> {data.get('to_node')} "
                    f"unresolved: {data.get('detail')}",
                )
            case ExecutionEventType.RUN_COMPLETE:
                self._tracker.close(issue, f"Run finished: {data.get('status')}")
            case ExecutionEventType.RUN_ABORTED:
                self._tracker.update(issue, "blocked")
                self._tracker.comment(issue, f"Run aborted: {data.get('error')}")
            case _:
                return
        logger.debug("Reported %s to issue %s", event.event_type.value, issue)
