"""Execution state events appended to the state log."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ExecutionEventType(str, Enum):
    """Types of lifecycle events."""

    RUN_START = "run_start"
    RUN_COMPLETE = "run_complete"
    RUN_ABORTED = "run_aborted"
    NODE_START = "node_start"
    NODE_COMPLETE = "node_complete"
    NODE_SKIPPED = "node_skipped"
    LOOP_ITERATION = "loop_iteration"
    CONDITIONAL_EVAL = "conditional_eval"
    MEMORY_WRITE = "memory_write"
    FEEDBACK_SENT = "feedback_sent"
    FEEDBACK_ROUND = "feedback_round"
    FEEDBACK_RESOLVED = "feedback_resolved"
    FEEDBACK_FAILED = "feedback_failed"


@dataclass(frozen=True)
class ExecutionStateEvent:
    """
    Single immutable lifecycle event.

    ``sequence`` is the event's offset within its run; replay orders by it.
    ``data`` holds type-specific fields (status, branch, iteration, round...).
    """

    event_id: str
    run_id: str
    event_type: ExecutionEventType
    node_id: str = ""
    node_type: str = ""
    sequence: int = 0
    timestamp: str = ""  # ISO 8601
    data: dict[str, Any] = field(default_factory=dict)
