"""
ReAcTree: hierarchical workflow execution with working memory and feedback.

Workflows are trees of Action, Sequence, Conditional and Loop nodes.
Actions delegate to external workers; composites decide control flow from
facts in a tiered Working Memory. Every lifecycle step is appended to a
state log, so interrupted runs can be resumed and finished runs replayed.

Example:
    from reactree import TreeInterpreter, load_workflow
    from reactree.infrastructure import (
        InMemoryStateLog,
        InMemoryWorkingMemoryStore,
        StaticWorker,
    )

    workflow = load_workflow("workflow.json")
    interpreter = TreeInterpreter(
        {"builder": StaticWorker()},
        InMemoryWorkingMemoryStore(),
        InMemoryStateLog(),
    )
    result = interpreter.execute(workflow, initial_memory={"target": "api"})
"""

from reactree.application import (
    FeedbackCoordinator,
    ResumeService,
    TreeInterpreter,
    summarize_run,
)
from reactree.config import EngineConfig, load_config
from reactree.domain import (
    ActionNode,
    Condition,
    ConditionalNode,
    LoopNode,
    NodeResult,
    NodeStatus,
    ReactreeError,
    RunResult,
    SequenceNode,
    WorkerRequest,
    WorkerResponse,
    WorkflowDefinition,
    WorkingMemoryRecord,
)
from reactree.infrastructure.workflow_loader import load_workflow

__version__ = "0.1.0"

__all__ = [
    # Application
    "TreeInterpreter",
    "FeedbackCoordinator",
    "ResumeService",
    "summarize_run",
    # Configuration
    "EngineConfig",
    "load_config",
    "load_workflow",
    # Domain
    "ActionNode",
    "SequenceNode",
    "ConditionalNode",
    "LoopNode",
    "Condition",
    "WorkflowDefinition",
    "NodeResult",
    "NodeStatus",
    "RunResult",
    "WorkerRequest",
    "WorkerResponse",
    "WorkingMemoryRecord",
    "ReactreeError",
]
