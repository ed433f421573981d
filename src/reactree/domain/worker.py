"""Request and response exchanged with external workers."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from reactree.domain.feedback import FeedbackMessage, FeedbackRequest
from reactree.domain.memory import MemorySnapshot, WorkingMemoryRecord
from reactree.domain.models import NodeResult


class WorkerStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class WorkerRequest:
    """Everything a worker receives for one Action execution."""

    node_id: str
    skill: str
    agent: str
    args: dict[str, Any]
    memory_snapshot: MemorySnapshot
    run_id: str = ""
    feedback: FeedbackMessage | None = None  # Set when re-invoked to apply a fix


@dataclass(frozen=True)
class WorkerResponse:
    """Worker's report: status, facts to merge, and optional feedback."""

    status: WorkerStatus
    facts: tuple[WorkingMemoryRecord, ...] = ()
    artifacts: tuple[str, ...] = ()
    message: str = ""
    feedback: FeedbackRequest | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is WorkerStatus.SUCCESS

    @classmethod
    def success(
        cls, facts: dict[str, Any] | None = None, **kwargs: Any
    ) -> "WorkerResponse":
        return cls(WorkerStatus.SUCCESS, facts=facts_from_values(facts), **kwargs)

    @classmethod
    def failure(
        cls, facts: dict[str, Any] | None = None, **kwargs: Any
    ) -> "WorkerResponse":
        return cls(WorkerStatus.FAILURE, facts=facts_from_values(facts), **kwargs)


def facts_from_values(
    values: dict[str, Any] | None,
) -> tuple[WorkingMemoryRecord, ...]:
    """Plain key -> value pairs as session-tier records."""
    return tuple(
        WorkingMemoryRecord(key=k, value=v) for k, v in (values or {}).items()
    )


@dataclass(frozen=True)
class ActionOutcome:
    """Status-tree entry of an Action together with the raw worker response."""

    result: NodeResult
    response: WorkerResponse | None = None  # None when the worker was not called
