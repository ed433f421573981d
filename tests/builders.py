"""Terse constructors for workflow trees used across tests."""

from datetime import datetime, timedelta, timezone

from reactree.domain.models import (
    ActionNode,
    Condition,
    ConditionalNode,
    LoopNode,
    SequenceNode,
    WorkflowDefinition,
)

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock usable as both wall and monotonic clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    def monotonic(self) -> float:
        return (self.now - T0).total_seconds()


def action(node_id: str, agent: str = "agent", **kwargs) -> ActionNode:
    return ActionNode(node_id=node_id, skill=f"do_{node_id}", agent=agent, **kwargs)


def sequence(node_id: str, *children, **kwargs) -> SequenceNode:
    return SequenceNode(node_id=node_id, children=tuple(children), **kwargs)


def condition(key: str, operator: str = "equals", value=True) -> Condition:
    return Condition(key=key, operator=operator, value=value)


def conditional(node_id: str, cond: Condition, true=None, false=None):
    return ConditionalNode(
        node_id=node_id, condition=cond, true_branch=true, false_branch=false
    )


def loop(node_id: str, body, cond: Condition, **kwargs) -> LoopNode:
    return LoopNode(node_id=node_id, body=body, condition=cond, **kwargs)


def workflow(root, name: str = "test-workflow") -> WorkflowDefinition:
    return WorkflowDefinition(name=name, type="workflow", root=root)
