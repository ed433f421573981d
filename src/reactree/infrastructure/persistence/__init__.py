"""
Persistence adapters for Working Memory and the State Log.
"""

from reactree.infrastructure.persistence.memory_store import (
    FilesystemWorkingMemoryStore,
    InMemoryWorkingMemoryStore,
)
from reactree.infrastructure.persistence.state_log import (
    FilesystemStateLog,
    InMemoryStateLog,
)

__all__ = [
    "InMemoryWorkingMemoryStore",
    "FilesystemWorkingMemoryStore",
    "InMemoryStateLog",
    "FilesystemStateLog",
]
