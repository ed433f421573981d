"""
Workflow definition loading.

JSON documents are validated against ``workflow.schema.json`` first, then
parsed into the immutable node tree and checked semantically.
"""

import json
import logging
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import best_match

from reactree.domain.exceptions import WorkflowDefinitionError
from reactree.domain.models import (
    ActionNode,
    Condition,
    ConditionalNode,
    ConditionType,
    ExitOn,
    LoopNode,
    Node,
    SequenceNode,
    WorkflowDefinition,
)
from reactree.domain.workflow import check_definition
from reactree.schemas import validate_workflow

logger = logging.getLogger(__name__)


def parse_condition(data: dict[str, Any]) -> Condition:
    return Condition(
        key=data["key"],
        operator=data["operator"],
        value=data.get("value"),
        type=ConditionType(data.get("type", ConditionType.OBSERVATION_CHECK.value)),
    )


def parse_node(data: dict[str, Any]) -> Node:
    """Build a node (and its subtree) from its dict form."""
    node_id = data["node_id"]
    continue_on_error = bool(data.get("continue_on_error", False))

    match data["type"]:
        case "action":
            return ActionNode(
                node_id=node_id,
                skill=data["skill"],
                agent=data["agent"],
                args=dict(data.get("args") or {}),
                output_key=data.get("output_key", ""),
                feedback_enabled=bool(data.get("feedback_enabled", False)),
                verifier=data.get("verifier"),
                continue_on_error=continue_on_error,
            )
        case "sequence":
            return SequenceNode(
                node_id=node_id,
                children=tuple(parse_node(c) for c in data.get("children", ())),
                continue_on_error=continue_on_error,
            )
        case "conditional":
            true_branch = data.get("true_branch")
            false_branch = data.get("false_branch")
            return ConditionalNode(
                node_id=node_id,
                condition=parse_condition(data["condition"]),
                true_branch=parse_node(true_branch) if true_branch else None,
                false_branch=parse_node(false_branch) if false_branch else None,
                continue_on_error=continue_on_error,
            )
        case "loop":
            return LoopNode(
                node_id=node_id,
                body=parse_node(data["body"]),
                condition=parse_condition(data["condition"]),
                max_iterations=data.get("max_iterations", 3),
                timeout_seconds=data.get("timeout_seconds", 600),
                exit_on=ExitOn(data.get("exit_on", ExitOn.CONDITION_TRUE.value)),
                continue_on_error=continue_on_error,
            )
        case other:
            raise WorkflowDefinitionError(f"unknown node type {other!r}", node_id)


def parse_workflow(data: dict[str, Any]) -> WorkflowDefinition:
    """
    Validate and parse a workflow document.

    Raises:
        WorkflowDefinitionError: If the document violates the schema or
            fails semantic checks
    """
    try:
        validate_workflow(data)
    except jsonschema.ValidationError as e:
        best = best_match([e]) or e
        pointer = "/" + "/".join(str(p) for p in best.absolute_path)
        raise WorkflowDefinitionError(best.message, pointer) from e

    workflow = WorkflowDefinition(
        name=data["name"],
        type=data.get("type", "workflow"),
        root=parse_node(data["root"]),
    )
    check_definition(workflow)
    return workflow


def load_workflow(source: Path | str | dict[str, Any]) -> WorkflowDefinition:
    """
    Load a workflow definition from a JSON file or an already parsed dict.

    Args:
        source: Path to a workflow JSON file, or its dict form

    Returns:
        The validated WorkflowDefinition

    Raises:
        WorkflowDefinitionError: If the file is missing, not JSON, or invalid
    """
    if isinstance(source, dict):
        return parse_workflow(source)

    path = Path(source)
    if not path.exists():
        raise WorkflowDefinitionError(f"Workflow file not found: {path}")
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise WorkflowDefinitionError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise WorkflowDefinitionError(
            f"Expected object in {path}, got {type(data).__name__}"
        )

    workflow = parse_workflow(data)
    logger.debug(
        "Loaded workflow %r with %d nodes from %s",
        workflow.name,
        len(workflow.nodes()),
        path,
    )
    return workflow
