"""Feedback messages exchanged between verifying and producing nodes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FeedbackStatus(str, Enum):
    """Lifecycle of a feedback message."""

    QUEUED = "queued"
    DELIVERED = "delivered"
    PROCESSING = "processing"  # Fix step running
    VERIFYING = "verifying"  # Verify step running
    RESOLVED = "resolved"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (FeedbackStatus.RESOLVED, FeedbackStatus.FAILED)


class FeedbackType(str, Enum):
    """Kind of advice carried by a message."""

    FIX_REQUEST = "FIX_REQUEST"
    CONTEXT_REQUEST = "CONTEXT_REQUEST"
    DEPENDENCY_MISSING = "DEPENDENCY_MISSING"
    ARCHITECTURE_ISSUE = "ARCHITECTURE_ISSUE"


class FeedbackPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class FeedbackRequest:
    """
    Verifier's description of what is wrong with a prior node's output.

    Returned inside a worker response; the engine turns it into a
    FeedbackMessage addressed to ``to_node`` (or the verified node when
    ``to_node`` is empty).
    """

    message: str
    to_node: str = ""
    feedback_type: FeedbackType = FeedbackType.FIX_REQUEST
    suggested_fix: str = ""
    missing_components: tuple[str, ...] = ()
    priority: FeedbackPriority = FeedbackPriority.HIGH
    artifacts: tuple[str, ...] = ()  # References, not content


@dataclass(frozen=True)
class FeedbackMessage:
    """Advisory message owned by the feedback coordinator."""

    message_id: str
    from_node: str
    to_node: str
    message: str
    feedback_type: FeedbackType = FeedbackType.FIX_REQUEST
    suggested_fix: str = ""
    missing_components: tuple[str, ...] = ()
    priority: FeedbackPriority = FeedbackPriority.HIGH
    artifacts: tuple[str, ...] = ()
    status: FeedbackStatus = FeedbackStatus.QUEUED
    round: int = 1  # 1-based, scoped to (from_node, to_node)
    detail: str = ""

    @property
    def pair(self) -> tuple[str, str]:
        return (self.from_node, self.to_node)


@dataclass(frozen=True)
class FeedbackResolution:
    """Final outcome of processing one message."""

    message: FeedbackMessage
    rounds_used: int
    history: tuple[FeedbackStatus, ...] = field(default=())

    @property
    def resolved(self) -> bool:
        return self.message.status is FeedbackStatus.RESOLVED


def feedback_to_dict(message: FeedbackMessage) -> dict[str, Any]:
    """Serialize a feedback message (event payload form)."""
    return {
        "message_id": message.message_id,
        "from_node": message.from_node,
        "to_node": message.to_node,
        "feedback_type": message.feedback_type.value,
        "message": message.message,
        "suggested_fix": message.suggested_fix,
        "missing_components": list(message.missing_components),
        "priority": message.priority.value,
        "artifacts": list(message.artifacts),
        "status": message.status.value,
        "round": message.round,
        "detail": message.detail,
    }


def dict_to_feedback(data: dict[str, Any]) -> FeedbackMessage:
    """Deserialize a feedback message."""
    return FeedbackMessage(
        message_id=data["message_id"],
        from_node=data["from_node"],
        to_node=data["to_node"],
        message=data.get("message", ""),
        feedback_type=FeedbackType(data.get("feedback_type", "FIX_REQUEST")),
        suggested_fix=data.get("suggested_fix", ""),
        missing_components=tuple(data.get("missing_components", ())),
        priority=FeedbackPriority(data.get("priority", "high")),
        artifacts=tuple(data.get("artifacts", ())),
        status=FeedbackStatus(data.get("status", "queued")),
        round=data.get("round", 1),
        detail=data.get("detail", ""),
    )
