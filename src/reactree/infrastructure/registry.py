"""
Worker Registry with Entry Points Discovery.

Provides dynamic worker loading via Python entry points (reactree.workers group).
External packages can register workers in their pyproject.toml:

    [project.entry-points."reactree.workers"]
    MyWorker = "mypackage.workers:MyWorker"
"""

import logging
from collections.abc import Mapping
from importlib.metadata import entry_points
from typing import Any

from reactree.domain.exceptions import ConfigurationError
from reactree.domain.interfaces import WorkerInterface
from reactree.infrastructure.workers import CommandWorker, ScriptedWorker, StaticWorker

logger = logging.getLogger(__name__)

_BUILTIN: dict[str, type[WorkerInterface]] = {
    "CommandWorker": CommandWorker,
    "ScriptedWorker": ScriptedWorker,
    "StaticWorker": StaticWorker,
}


class WorkerRegistry:
    """
    Registry for WorkerInterface implementations.

    Built-in workers are always available; others are discovered via the
    'reactree.workers' entry point group on first access.

    Example usage:
        registry = WorkerRegistry()
        worker = registry.create("CommandWorker", timeout=30)
    """

    _workers: dict[str, type[WorkerInterface]] = {}
    _loaded: bool = False

    @classmethod
    def _load_entry_points(cls) -> None:
        """Load workers from entry points (lazy, called once)."""
        if cls._loaded:
            return

        for name, worker_class in _BUILTIN.items():
            cls._workers.setdefault(name, worker_class)
        for ep in entry_points(group="reactree.workers"):
            try:
                cls._workers[ep.name] = ep.load()
            except Exception as e:
                logger.warning(
                    "Failed to load worker '%s' from entry point: %s", ep.name, e
                )

        cls._loaded = True

    @classmethod
    def register(cls, name: str, worker_class: type[WorkerInterface]) -> None:
        """
        Manually register a worker class.

        Args:
            name: Worker identifier (e.g., "CommandWorker")
            worker_class: Class implementing WorkerInterface
        """
        cls._workers[name] = worker_class

    @classmethod
    def get(cls, name: str) -> type[WorkerInterface]:
        """
        Get a worker class by name.

        Raises:
            KeyError: If worker not found
        """
        cls._load_entry_points()
        if name not in cls._workers:
            available = ", ".join(cls._workers.keys()) or "(none)"
            raise KeyError(f"Worker '{name}' not found. Available workers: {available}")
        return cls._workers[name]

    @classmethod
    def create(cls, name: str, **config: Any) -> WorkerInterface:
        """
        Create a worker instance by name.

        Raises:
            KeyError: If worker not found
            TypeError: If config doesn't match constructor signature
        """
        return cls.get(name)(**config)

    @classmethod
    def available(cls) -> list[str]:
        cls._load_entry_points()
        return list(cls._workers.keys())

    @classmethod
    def clear(cls) -> None:
        """
        Clear all registered workers (useful for testing).

        Also resets the loaded flag so entry points can be reloaded.
        """
        cls._workers.clear()
        cls._loaded = False

    @classmethod
    def build(
        cls,
        agents: list[str],
        bindings: Mapping[str, Mapping[str, Any]],
        default_worker: str,
        default_options: Mapping[str, Any] | None = None,
    ) -> dict[str, WorkerInterface]:
        """
        Instantiate one worker per agent.

        Args:
            agents: Agent names used by a workflow
            bindings: Per-agent ``{"worker": name, "options": {...}}``
            default_worker: Worker class for agents without a binding
            default_options: Constructor options for the default worker

        Returns:
            Mapping of agent name to worker instance

        Raises:
            ConfigurationError: If a worker is unknown or rejects its options
        """
        workers: dict[str, WorkerInterface] = {}
        for agent in agents:
            binding = bindings.get(agent)
            if binding is None:
                name, options = default_worker, dict(default_options or {})
            else:
                name = binding.get("worker", default_worker)
                options = dict(binding.get("options", {}))
            try:
                workers[agent] = cls.create(name, **options)
            except (KeyError, TypeError) as e:
                raise ConfigurationError(
                    f"Cannot create worker {name!r} for agent {agent!r}: {e}"
                ) from e
        return workers
