"""
Domain models for the workflow engine.

Workflow trees are a closed union of four frozen node dataclasses. Results
of execution form an immutable status tree mirroring the executed nodes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# =============================================================================
# CONDITIONS
# =============================================================================


class ConditionType(str, Enum):
    """What kind of fact a condition inspects."""

    TEST_RESULT = "test_result"
    OBSERVATION_CHECK = "observation_check"


class Operator(str, Enum):
    """Comparison operators supported by the condition evaluator."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"


@dataclass(frozen=True)
class Condition:
    """
    A comparison between a Working Memory fact and a literal.

    ``operator`` is kept as a plain string so that a definition naming an
    unknown operator still loads; the evaluator reports it as an error.
    """

    key: str  # Dotted path into Working Memory
    operator: str
    value: Any = None
    type: ConditionType = ConditionType.OBSERVATION_CHECK


# =============================================================================
# NODES
# =============================================================================


class NodeType(str, Enum):
    """Discriminator for the node union."""

    ACTION = "action"
    SEQUENCE = "sequence"
    CONDITIONAL = "conditional"
    LOOP = "loop"


class ExitOn(str, Enum):
    """Which condition outcome ends a loop."""

    CONDITION_TRUE = "condition_true"
    CONDITION_FALSE = "condition_false"


@dataclass(frozen=True)
class ActionNode:
    """Leaf node delegating work to an external worker."""

    node_id: str
    skill: str
    agent: str
    args: dict[str, Any] = field(default_factory=dict)
    output_key: str = ""
    feedback_enabled: bool = False
    verifier: str | None = None  # Designated verifier; defaults to next sibling
    continue_on_error: bool = False
    type: NodeType = field(default=NodeType.ACTION, init=False)


@dataclass(frozen=True)
class SequenceNode:
    """Ordered children executed fail-fast."""

    node_id: str
    children: tuple["Node", ...] = ()
    continue_on_error: bool = False
    type: NodeType = field(default=NodeType.SEQUENCE, init=False)


@dataclass(frozen=True)
class ConditionalNode:
    """Two-way branch on a condition. Absent branches are no-op successes."""

    node_id: str
    condition: Condition
    true_branch: "Node | None" = None
    false_branch: "Node | None" = None
    continue_on_error: bool = False
    type: NodeType = field(default=NodeType.CONDITIONAL, init=False)


@dataclass(frozen=True)
class LoopNode:
    """Bounded repetition of a body until a post-iteration condition holds."""

    node_id: str
    body: "Node"
    condition: Condition
    max_iterations: int = 3
    timeout_seconds: int = 600
    exit_on: ExitOn = ExitOn.CONDITION_TRUE
    continue_on_error: bool = False
    type: NodeType = field(default=NodeType.LOOP, init=False)


Node = ActionNode | SequenceNode | ConditionalNode | LoopNode


def child_nodes(node: Node) -> tuple[Node, ...]:
    """Direct children of a node in document order."""
    match node:
        case SequenceNode():
            return node.children
        case ConditionalNode():
            return tuple(
                n for n in (node.true_branch, node.false_branch) if n is not None
            )
        case LoopNode():
            return (node.body,)
        case _:
            return ()


def iter_nodes(node: Node) -> list[Node]:
    """All nodes of a subtree in document (pre-)order."""
    result = [node]
    for child in child_nodes(node):
        result.extend(iter_nodes(child))
    return result


@dataclass(frozen=True)
class WorkflowDefinition:
    """Immutable workflow tree with a name and a type tag."""

    name: str
    type: str
    root: Node

    def nodes(self) -> list[Node]:
        """Every node in document order."""
        return iter_nodes(self.root)

    def get_node(self, node_id: str) -> Node:
        for node in self.nodes():
            if node.node_id == node_id:
                return node
        raise KeyError(f"Node not found: {node_id}")


# =============================================================================
# EXECUTION RESULTS
# =============================================================================


class NodeStatus(str, Enum):
    """Terminal status of a node execution."""

    SUCCESS = "success"
    FAILURE = "failure"
    MAX_ITERATIONS = "max_iterations"
    TIMED_OUT = "timed_out"
    FEEDBACK_UNRESOLVED = "feedback_unresolved"
    SKIPPED = "skipped"  # Never ran: an earlier sibling failed fast

    @property
    def failed(self) -> bool:
        return self is not NodeStatus.SUCCESS

    @property
    def blocking(self) -> bool:
        """Blocking statuses abort the parent even under continue-on-error."""
        return self is NodeStatus.FEEDBACK_UNRESOLVED


class FailureReason(str, Enum):
    """Why a node ended in a non-success status."""

    ACTION_FAILED = "action_failed"
    CHILD_FAILED = "child_failed"
    EVALUATION_ERROR = "evaluation_error"
    FEEDBACK_EXHAUSTED = "feedback_exhausted"
    BOUNDS_EXCEEDED = "bounds_exceeded"


class LoopExitReason(str, Enum):
    """How a loop terminated."""

    CONDITION_TRUE = "condition_true"
    MAX_ITERATIONS = "max_iterations"
    TIMED_OUT = "timed_out"
    EVALUATION_ERROR = "evaluation_error"


class Branch(str, Enum):
    """Which branch a conditional took."""

    TRUE = "true"
    FALSE = "false"
    NONE = "none"  # Evaluation error, no branch executed


@dataclass(frozen=True)
class NodeResult:
    """One node of the status tree."""

    node_id: str
    node_type: NodeType
    status: NodeStatus
    reason: FailureReason | None = None
    detail: str = ""
    children: tuple["NodeResult", ...] = ()
    # Conditional
    branch: Branch | None = None
    evaluation: str | None = None  # Raw evaluator outcome: true/false/error
    # Loop
    iterations: int = 0
    exit_reason: LoopExitReason | None = None
    # Action acting as verifier
    feedback_rounds: int = 0
    resumed: bool = False  # Status taken from the state log, not re-executed

    def walk(self) -> list["NodeResult"]:
        """This result and all descendants in pre-order."""
        result = [self]
        for child in self.children:
            result.extend(child.walk())
        return result

    def find(self, node_id: str) -> "NodeResult | None":
        for item in self.walk():
            if item.node_id == node_id:
                return item
        return None


@dataclass(frozen=True)
class RunResult:
    """Outcome of executing a workflow."""

    run_id: str
    workflow_name: str
    root: NodeResult
    statuses: dict[str, NodeStatus] = field(default_factory=dict)

    @property
    def status(self) -> NodeStatus:
        return self.root.status

    @property
    def succeeded(self) -> bool:
        return self.root.status is NodeStatus.SUCCESS
