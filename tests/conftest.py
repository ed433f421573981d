"""Shared pytest fixtures for reactree tests."""

import pytest

from builders import FakeClock, action, sequence, workflow
from reactree.domain.models import WorkflowDefinition
from reactree.infrastructure.persistence import (
    InMemoryStateLog,
    InMemoryWorkingMemoryStore,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory(clock: FakeClock) -> InMemoryWorkingMemoryStore:
    """In-memory store scoped to run 'run-1'."""
    return InMemoryWorkingMemoryStore("run-1", clock=clock)


@pytest.fixture
def state_log() -> InMemoryStateLog:
    return InMemoryStateLog()


@pytest.fixture
def build_then_test() -> WorkflowDefinition:
    """Sequence(build -> test) where build accepts feedback from test."""
    return workflow(
        sequence(
            "root",
            action("build", agent="builder", feedback_enabled=True),
            action("test", agent="tester"),
        ),
        name="build-test",
    )


@pytest.fixture
def workflow_document() -> dict:
    """A workflow in its JSON form covering every node type."""
    return {
        "name": "ci",
        "type": "workflow",
        "root": {
            "node_id": "root",
            "type": "sequence",
            "children": [
                {
                    "node_id": "setup",
                    "type": "action",
                    "skill": "setup",
                    "agent": "static",
                    "args": {"facts": {"ready": True}},
                    "output_key": "env",
                },
                {
                    "node_id": "gate",
                    "type": "conditional",
                    "condition": {
                        "key": "env.ready",
                        "operator": "equals",
                        "value": True,
                    },
                    "true_branch": {
                        "node_id": "retry",
                        "type": "loop",
                        "max_iterations": 2,
                        "timeout_seconds": 30,
                        "condition": {
                            "key": "poll.ok",
                            "operator": "equals",
                            "value": True,
                        },
                        "body": {
                            "node_id": "poll",
                            "type": "action",
                            "skill": "poll",
                            "agent": "static",
                            "args": {"facts": {"ok": True}},
                            "output_key": "poll",
                        },
                    },
                },
            ],
        },
    }
