"""Execution event emission service."""

import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from reactree.domain.conditions import ConditionEvaluation
from reactree.domain.execution_event import ExecutionEventType, ExecutionStateEvent
from reactree.domain.feedback import FeedbackMessage, feedback_to_dict
from reactree.domain.interfaces import StateLogInterface
from reactree.domain.memory import WorkingMemoryRecord
from reactree.domain.models import (
    Branch,
    LoopExitReason,
    Node,
    NodeResult,
    NodeStatus,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionEventEmitter:
    """Emits lifecycle events for one run to a state log.

    Handles event ids, per-run sequence offsets and timestamps, and keeps
    the live map of latest terminal statuses that replay must reproduce.
    """

    def __init__(
        self,
        state_log: StateLogInterface,
        run_id: str,
        start_sequence: int = 0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._log = state_log
        self._run_id = run_id
        self._sequence = start_sequence
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self.statuses: dict[str, NodeStatus] = {}

    @property
    def run_id(self) -> str:
        return self._run_id

    def _emit(
        self,
        event_type: ExecutionEventType,
        node_id: str = "",
        node_type: str = "",
        **data: Any,
    ) -> ExecutionStateEvent:
        with self._lock:
            event = ExecutionStateEvent(
                event_id=str(uuid.uuid4()),
                run_id=self._run_id,
                event_type=event_type,
                node_id=node_id,
                node_type=node_type,
                sequence=self._sequence,
                timestamp=self._clock().isoformat(),
                data=data,
            )
            self._log.append(event)
            self._sequence += 1
        return event

    # -- run lifecycle -----------------------------------------------------

    def run_start(
        self, workflow_name: str, workflow_ref: str, resumed: bool = False
    ) -> None:
        self._emit(
            ExecutionEventType.RUN_START,
            workflow=workflow_name,
            workflow_ref=workflow_ref,
            resumed=resumed,
        )

    def run_complete(self, root: NodeResult) -> None:
        self._emit(
            ExecutionEventType.RUN_COMPLETE,
            node_id=root.node_id,
            status=root.status.value,
        )

    def run_aborted(self, error: BaseException) -> None:
        self._emit(
            ExecutionEventType.RUN_ABORTED,
            error=f"{type(error).__name__}: {error}",
        )

    # -- nodes -------------------------------------------------------------

    def node_start(self, node: Node, attempt: int = 1) -> None:
        self._emit(
            ExecutionEventType.NODE_START,
            node.node_id,
            node.type.value,
            attempt=attempt,
        )

    def node_complete(self, result: NodeResult) -> None:
        """Emit NODE_COMPLETE and record the status as the node's latest."""
        data: dict[str, Any] = {"status": result.status.value}
        if result.reason is not None:
            data["reason"] = result.reason.value
        if result.detail:
            data["detail"] = result.detail[:500]
        if result.branch is not None:
            data["branch"] = result.branch.value
        if result.exit_reason is not None:
            data["exit_reason"] = result.exit_reason.value
            data["iterations"] = result.iterations
        if result.feedback_rounds:
            data["feedback_rounds"] = result.feedback_rounds
        if result.resumed:
            data["resumed"] = True
        self._emit(
            ExecutionEventType.NODE_COMPLETE,
            result.node_id,
            result.node_type.value,
            **data,
        )
        self.statuses[result.node_id] = result.status

    def node_skipped(self, node: Node, reason: str) -> None:
        self._emit(
            ExecutionEventType.NODE_SKIPPED,
            node.node_id,
            node.type.value,
            reason=reason,
        )

    def conditional_eval(
        self, node: Node, evaluation: ConditionEvaluation, branch: Branch
    ) -> None:
        self._emit(
            ExecutionEventType.CONDITIONAL_EVAL,
            node.node_id,
            node.type.value,
            result=evaluation.result.value,
            observed=evaluation.observed,
            detail=evaluation.detail,
            branch=branch.value,
        )

    def loop_iteration(
        self,
        node: Node,
        iteration: int,
        elapsed_seconds: float,
        evaluation: ConditionEvaluation,
        body_status: NodeStatus,
        exit_reason: LoopExitReason | None,
    ) -> None:
        self._emit(
            ExecutionEventType.LOOP_ITERATION,
            node.node_id,
            node.type.value,
            iteration=iteration,
            elapsed_seconds=round(elapsed_seconds, 3),
            condition_result=evaluation.result.value,
            observed=evaluation.observed,
            body_status=body_status.value,
            exit_reason=exit_reason.value if exit_reason else None,
        )

    def memory_write(self, node_id: str, record: WorkingMemoryRecord) -> None:
        self._emit(
            ExecutionEventType.MEMORY_WRITE,
            node_id,
            key=record.key,
            tier=record.tier.value,
            confidence=record.confidence.value,
        )

    # -- feedback ----------------------------------------------------------

    def _feedback(
        self, event_type: ExecutionEventType, message: FeedbackMessage
    ) -> None:
        self._emit(event_type, message.from_node, **feedback_to_dict(message))

    def feedback_sent(self, message: FeedbackMessage) -> None:
        self._feedback(ExecutionEventType.FEEDBACK_SENT, message)

    def feedback_round(self, message: FeedbackMessage) -> None:
        self._feedback(ExecutionEventType.FEEDBACK_ROUND, message)

    def feedback_resolved(self, message: FeedbackMessage) -> None:
        self._feedback(ExecutionEventType.FEEDBACK_RESOLVED, message)

    def feedback_failed(self, message: FeedbackMessage) -> None:
        self._feedback(ExecutionEventType.FEEDBACK_FAILED, message)
