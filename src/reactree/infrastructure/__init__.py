"""
Infrastructure layer for the workflow engine.

Contains adapters for external concerns (persistence, workers, registry,
issue trackers, workflow files).
"""

from reactree.infrastructure.issue_tracker import (
    BeadsIssueTracker,
    InMemoryIssueTracker,
)
from reactree.infrastructure.persistence import (
    FilesystemStateLog,
    FilesystemWorkingMemoryStore,
    InMemoryStateLog,
    InMemoryWorkingMemoryStore,
)
from reactree.infrastructure.registry import WorkerRegistry
from reactree.infrastructure.workers import (
    CommandWorker,
    ScriptedWorker,
    StaticWorker,
)
from reactree.infrastructure.workflow_loader import load_workflow, parse_workflow

__all__ = [
    # Persistence
    "InMemoryWorkingMemoryStore",
    "FilesystemWorkingMemoryStore",
    "InMemoryStateLog",
    "FilesystemStateLog",
    # Workers
    "CommandWorker",
    "ScriptedWorker",
    "StaticWorker",
    "WorkerRegistry",
    # Issue trackers
    "InMemoryIssueTracker",
    "BeadsIssueTracker",
    # Workflow files
    "load_workflow",
    "parse_workflow",
]
