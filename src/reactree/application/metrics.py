"""
Run metrics computed from the state log.

Everything here is derived from events, so metrics for a finished run can
be produced at any later time without extra instrumentation.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from reactree.domain.execution_event import ExecutionEventType, ExecutionStateEvent
from reactree.domain.models import NodeStatus, NodeType
from reactree.domain.replay import fold_statuses


@dataclass
class NodeMetrics:
    """Execution statistics for one node."""

    node_id: str
    node_type: str
    executions: int = 0
    total_seconds: float = 0.0
    last_seconds: float = 0.0
    status: NodeStatus | None = None


@dataclass
class LoopMetrics:
    node_id: str
    iterations: int = 0
    exit_reason: str | None = None


@dataclass
class RunMetrics:
    """Summary of one run."""

    run_id: str
    workflow: str = ""
    status: NodeStatus | None = None
    duration_seconds: float = 0.0
    nodes: dict[str, NodeMetrics] = field(default_factory=dict)
    loops: dict[str, LoopMetrics] = field(default_factory=dict)
    feedback_rounds: dict[tuple[str, str], int] = field(default_factory=dict)
    feedback_resolved: int = 0
    feedback_failed: int = 0
    aborted: bool = False

    @property
    def action_success_rate(self) -> float | None:
        """Share of Action nodes whose final status is success."""
        actions = [
            n
            for n in self.nodes.values()
            if n.node_type == NodeType.ACTION.value and n.status is not None
        ]
        if not actions:
            return None
        passed = sum(1 for n in actions if n.status is NodeStatus.SUCCESS)
        return passed / len(actions)

    def slowest(self, limit: int = 5) -> list[NodeMetrics]:
        return sorted(
            self.nodes.values(), key=lambda n: n.total_seconds, reverse=True
        )[:limit]


def _parse(timestamp: str) -> datetime | None:
    try:
        return datetime.fromisoformat(timestamp)
    except ValueError:
        return None


def summarize_run(
    events: Iterable[ExecutionStateEvent], run_id: str = ""
) -> RunMetrics:
    """
    Fold a run's events into RunMetrics.

    Args:
        events: The run's events ordered by sequence
        run_id: Run being summarized; taken from the events when empty

    Returns:
        RunMetrics with per-node durations, loop exits and feedback rounds
    """
    events = list(events)
    if not run_id and events:
        run_id = events[0].run_id
    metrics = RunMetrics(run_id=run_id)
    started: dict[str, list[datetime]] = {}
    first = last = None

    for event in events:
        stamp = _parse(event.timestamp)
        if stamp is not None:
            first = first or stamp
            last = stamp
        data = event.data
        match event.event_type:
            case ExecutionEventType.RUN_START:
                metrics.workflow = data.get("workflow", metrics.workflow)
                started.clear()
            case ExecutionEventType.RUN_COMPLETE:
                metrics.status = NodeStatus(data["status"])
            case ExecutionEventType.RUN_ABORTED:
                metrics.aborted = True
            case ExecutionEventType.NODE_START:
                node = metrics.nodes.setdefault(
                    event.node_id, NodeMetrics(event.node_id, event.node_type)
                )
                node.executions += 1
                if stamp is not None:
                    started.setdefault(event.node_id, []).append(stamp)
            case ExecutionEventType.NODE_COMPLETE:
                node = metrics.nodes.setdefault(
                    event.node_id, NodeMetrics(event.node_id, event.node_type)
                )
                open_spans = started.get(event.node_id)
                if open_spans and stamp is not None:
                    node.last_seconds = (stamp - open_spans.pop()).total_seconds()
                    # Nested re-runs (verification) are inside the outer span
                    if not open_spans:
                        node.total_seconds += node.last_seconds
            case ExecutionEventType.LOOP_ITERATION:
                loop = metrics.loops.setdefault(
                    event.node_id, LoopMetrics(event.node_id)
                )
                loop.iterations = data.get("iteration", loop.iterations)
                loop.exit_reason = data.get("exit_reason") or loop.exit_reason
            case ExecutionEventType.FEEDBACK_ROUND:
                pair = (data["from_node"], data["to_node"])
                metrics.feedback_rounds[pair] = max(
                    metrics.feedback_rounds.get(pair, 0), data["round"]
                )
            case ExecutionEventType.FEEDBACK_RESOLVED:
                metrics.feedback_resolved += 1
            case ExecutionEventType.FEEDBACK_FAILED:
                metrics.feedback_failed += 1

    for node_id, status in fold_statuses(events).items():
        if node_id in metrics.nodes:
            metrics.nodes[node_id].status = status
    if first is not None and last is not None:
        metrics.duration_seconds = (last - first).total_seconds()
    return metrics
