"""ReAcTree JSON Schema definitions and validation utilities.

Schemas:
    - workflow.schema.json: Workflow definition (node tree, conditions, bounds)
    - config.schema.json: Engine configuration file

Usage:
    from reactree.schemas import validate_workflow

    with open("workflow.json") as f:
        data = json.load(f)
    validate_workflow(data)  # Raises jsonschema.ValidationError if invalid
"""

from __future__ import annotations

import json
from functools import cache
from importlib.resources import files
from typing import Any

import jsonschema


@cache
def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema from the schemas package.

    Args:
        name: Schema filename (e.g., 'workflow.schema.json')

    Returns:
        Parsed JSON schema as a dictionary
    """
    schema_text = files("reactree.schemas").joinpath(name).read_text()
    result: dict[str, Any] = json.loads(schema_text)
    return result


def get_workflow_schema() -> dict[str, Any]:
    return _load_schema("workflow.schema.json")


def get_config_schema() -> dict[str, Any]:
    return _load_schema("config.schema.json")


def validate_workflow(data: dict[str, Any]) -> None:
    """Validate a workflow definition against the schema.

    Raises:
        jsonschema.ValidationError: If validation fails
    """
    jsonschema.validate(data, get_workflow_schema())


def validate_config(data: dict[str, Any]) -> None:
    """Validate an engine configuration against the schema.

    Raises:
        jsonschema.ValidationError: If validation fails
    """
    jsonschema.validate(data, get_config_schema())


__all__ = [
    "get_workflow_schema",
    "get_config_schema",
    "validate_workflow",
    "validate_config",
]
