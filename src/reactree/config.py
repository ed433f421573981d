"""Engine configuration loading."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import jsonschema

from reactree.domain.exceptions import ConfigurationError
from reactree.schemas import validate_config

DEFAULT_CONFIG_FILE = "reactree.json"


@dataclass(frozen=True)
class EngineConfig:
    """Settings for one engine invocation.

    Paths of the memory and state streams are resolved relative to
    ``state_dir``.
    """

    state_dir: str = ".reactree"
    memory_file: str = "memory.jsonl"
    state_file: str = "state.jsonl"
    max_feedback_rounds: int = 2
    feedback_queue_size: int = 16
    session_ttl_seconds: float | None = 3600
    command_timeout_seconds: float = 600
    default_worker: str = "CommandWorker"
    workers: dict[str, dict[str, Any]] = field(default_factory=dict)
    issue_tracker: str = "none"
    issue_prefix: str = ""

    @property
    def memory_path(self) -> Path:
        return Path(self.state_dir) / self.memory_file

    @property
    def state_path(self) -> Path:
        return Path(self.state_dir) / self.state_file

    def with_overrides(self, **overrides: Any) -> EngineConfig:
        """Copy with the given values replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def config_from_dict(data: dict[str, Any]) -> EngineConfig:
    """
    Build an EngineConfig from a validated mapping.

    Raises:
        ConfigurationError: If the mapping violates the config schema
    """
    try:
        validate_config(data)
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "(root)"
        raise ConfigurationError(
            f"Invalid configuration at {location}: {e.message}"
        ) from e
    known = {f.name for f in fields(EngineConfig)}
    return EngineConfig(**{k: v for k, v in data.items() if k in known})


def load_config(path: Path | str | None = None) -> EngineConfig:
    """
    Load engine configuration from a JSON file.

    Args:
        path: Config file; when None, ``reactree.json`` in the working
            directory is used if present, else the defaults

    Returns:
        EngineConfig

    Raises:
        ConfigurationError: If the file is missing, invalid JSON, or
            violates the schema
    """
    if path is None:
        default = Path(DEFAULT_CONFIG_FILE)
        if not default.exists():
            return EngineConfig()
        path = default

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected object in {path}, got {type(data).__name__}"
        )
    return config_from_dict(data)
