"""
Event-sourced reconstruction of run state.

Resumption is a fold over the state log, so live execution and replay
cannot disagree about which nodes reached a terminal status.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from reactree.domain.execution_event import ExecutionEventType, ExecutionStateEvent
from reactree.domain.models import Branch, LoopExitReason, NodeStatus


def fold_statuses(events: Iterable[ExecutionStateEvent]) -> dict[str, NodeStatus]:
    """
    Final status per node id.

    A node's status is the one carried by its last outermost
    ``node_complete``; a later ``node_start`` without a matching completion
    removes it again. A verifier re-run inside its own execution nests, so
    only the completion that closes the outermost start counts. Nesting
    restarts with every ``run_start``. Events must be in append order.
    """
    statuses: dict[str, NodeStatus] = {}
    depth: dict[str, int] = {}
    for event in events:
        match event.event_type:
            case ExecutionEventType.RUN_START:
                depth.clear()
            case ExecutionEventType.NODE_START:
                statuses.pop(event.node_id, None)
                depth[event.node_id] = depth.get(event.node_id, 0) + 1
            case ExecutionEventType.NODE_COMPLETE:
                open_starts = max(depth.get(event.node_id, 0) - 1, 0)
                depth[event.node_id] = open_starts
                if open_starts == 0:
                    statuses[event.node_id] = NodeStatus(event.data["status"])
    return statuses


@dataclass(frozen=True)
class ResumePlan:
    """What a restarted interpreter needs to continue a run."""

    run_id: str
    completed: dict[str, NodeStatus] = field(default_factory=dict)
    branches: dict[str, Branch] = field(default_factory=dict)
    loop_iterations: dict[str, int] = field(default_factory=dict)
    loop_elapsed: dict[str, float] = field(default_factory=dict)
    # Exit already logged by the last iteration, node_complete still missing
    loop_exits: dict[str, LoopExitReason] = field(default_factory=dict)
    feedback_rounds: dict[tuple[str, str], int] = field(default_factory=dict)
    next_sequence: int = 0
    workflow_ref: str | None = None
    run_status: NodeStatus | None = None  # Set once run_complete was logged
    aborted: str | None = None  # Error text of the last run_aborted

    @property
    def finished(self) -> bool:
        return self.run_status is not None

    def is_terminal(self, node_id: str) -> bool:
        return node_id in self.completed


def build_resume_plan(
    run_id: str, events: Iterable[ExecutionStateEvent]
) -> ResumePlan:
    """
    Fold a run's events into a ResumePlan.

    Args:
        run_id: The run being resumed
        events: The run's events in append order

    Returns:
        ResumePlan describing terminal nodes, recorded branches, loop
        progress (iterations, elapsed time, logged exit) and feedback
        round counters
    """
    events = list(events)
    branches: dict[str, Branch] = {}
    iterations: dict[str, int] = {}
    elapsed: dict[str, float] = {}
    exits: dict[str, LoopExitReason] = {}
    rounds: dict[tuple[str, str], int] = {}
    workflow_ref = None
    run_status = None
    aborted = None
    next_sequence = 0

    for event in events:
        next_sequence = max(next_sequence, event.sequence + 1)
        match event.event_type:
            case ExecutionEventType.RUN_START:
                workflow_ref = event.data.get("workflow_ref", workflow_ref)
            case ExecutionEventType.RUN_COMPLETE:
                run_status = NodeStatus(event.data["status"])
            case ExecutionEventType.RUN_ABORTED:
                aborted = event.data.get("error", "")
            case ExecutionEventType.NODE_START:
                # A conditional re-entered by a loop must evaluate afresh
                branches.pop(event.node_id, None)
            case ExecutionEventType.CONDITIONAL_EVAL:
                branch = Branch(event.data["branch"])
                if branch is not Branch.NONE:
                    branches[event.node_id] = branch
            case ExecutionEventType.LOOP_ITERATION:
                iterations[event.node_id] = event.data["iteration"]
                elapsed[event.node_id] = event.data.get("elapsed_seconds", 0.0)
                exit_reason = event.data.get("exit_reason")
                if exit_reason:
                    exits[event.node_id] = LoopExitReason(exit_reason)
                else:
                    exits.pop(event.node_id, None)
            case ExecutionEventType.FEEDBACK_ROUND:
                # Only started fix->verify cycles consume the round budget
                pair = (event.data["from_node"], event.data["to_node"])
                rounds[pair] = max(rounds.get(pair, 0), event.data["round"])

    return ResumePlan(
        run_id=run_id,
        completed=fold_statuses(events),
        branches=branches,
        loop_iterations=iterations,
        loop_elapsed=elapsed,
        loop_exits=exits,
        feedback_rounds=rounds,
        next_sequence=next_sequence,
        workflow_ref=workflow_ref,
        run_status=run_status,
        aborted=aborted,
    )
