"""
Domain layer for the workflow engine.

Contains the node union, memory records, condition evaluation, feedback
messages, events and the replay fold. No external dependencies.
"""

from reactree.domain.conditions import (
    ConditionEvaluation,
    EvaluationResult,
    evaluate,
)
from reactree.domain.exceptions import (
    ConfigurationError,
    FeedbackQueueFullError,
    ReactreeError,
    WorkerUnavailableError,
    WorkflowDefinitionError,
    WorkflowIntegrityError,
)
from reactree.domain.execution_event import ExecutionEventType, ExecutionStateEvent
from reactree.domain.feedback import (
    FeedbackMessage,
    FeedbackPriority,
    FeedbackRequest,
    FeedbackResolution,
    FeedbackStatus,
    FeedbackType,
)
from reactree.domain.interfaces import (
    IssueTrackerInterface,
    NodeRunnerInterface,
    StateLogInterface,
    WorkerInterface,
    WorkingMemoryStoreInterface,
)
from reactree.domain.memory import (
    Confidence,
    MemorySnapshot,
    MemoryTier,
    WorkingMemoryRecord,
)
from reactree.domain.models import (
    ActionNode,
    Branch,
    Condition,
    ConditionalNode,
    ConditionType,
    ExitOn,
    FailureReason,
    LoopExitReason,
    LoopNode,
    Node,
    NodeResult,
    NodeStatus,
    NodeType,
    Operator,
    RunResult,
    SequenceNode,
    WorkflowDefinition,
)
from reactree.domain.replay import ResumePlan, build_resume_plan, fold_statuses
from reactree.domain.worker import WorkerRequest, WorkerResponse, WorkerStatus

__all__ = [
    # Nodes and definitions
    "ActionNode",
    "SequenceNode",
    "ConditionalNode",
    "LoopNode",
    "Node",
    "NodeType",
    "Condition",
    "ConditionType",
    "Operator",
    "ExitOn",
    "WorkflowDefinition",
    # Results
    "NodeResult",
    "NodeStatus",
    "FailureReason",
    "LoopExitReason",
    "Branch",
    "RunResult",
    # Memory
    "WorkingMemoryRecord",
    "MemorySnapshot",
    "MemoryTier",
    "Confidence",
    # Conditions
    "evaluate",
    "ConditionEvaluation",
    "EvaluationResult",
    # Feedback
    "FeedbackMessage",
    "FeedbackRequest",
    "FeedbackResolution",
    "FeedbackStatus",
    "FeedbackType",
    "FeedbackPriority",
    # Events and replay
    "ExecutionEventType",
    "ExecutionStateEvent",
    "ResumePlan",
    "build_resume_plan",
    "fold_statuses",
    # Workers
    "WorkerRequest",
    "WorkerResponse",
    "WorkerStatus",
    # Interfaces
    "WorkerInterface",
    "WorkingMemoryStoreInterface",
    "StateLogInterface",
    "NodeRunnerInterface",
    "IssueTrackerInterface",
    # Exceptions
    "ReactreeError",
    "WorkflowDefinitionError",
    "WorkflowIntegrityError",
    "WorkerUnavailableError",
    "FeedbackQueueFullError",
    "ConfigurationError",
]
