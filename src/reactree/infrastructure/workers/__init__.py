"""
Worker adapters.

Workers perform the skill of an Action node. Additional workers can be
registered through the ``reactree.workers`` entry point group.
"""

from reactree.infrastructure.workers.command import CommandWorker
from reactree.infrastructure.workers.scripted import ScriptedWorker
from reactree.infrastructure.workers.static import StaticWorker

__all__ = [
    "CommandWorker",
    "ScriptedWorker",
    "StaticWorker",
]
