"""
Workflow definition serialization and content addressing.

``workflow_to_dict`` produces the same document shape the loader accepts,
so a definition survives a round trip and hashes deterministically.
"""

import hashlib
import json
from typing import Any

from reactree.domain.exceptions import WorkflowDefinitionError
from reactree.domain.models import (
    ActionNode,
    Condition,
    ConditionalNode,
    LoopNode,
    Node,
    SequenceNode,
    WorkflowDefinition,
    iter_nodes,
)


def condition_to_dict(condition: Condition) -> dict[str, Any]:
    return {
        "type": condition.type.value,
        "key": condition.key,
        "operator": condition.operator,
        "value": condition.value,
    }


def node_to_dict(node: Node) -> dict[str, Any]:
    """Serialize one node and its subtree."""
    data: dict[str, Any] = {"type": node.type.value, "node_id": node.node_id}
    if node.continue_on_error:
        data["continue_on_error"] = True

    match node:
        case ActionNode():
            data.update(
                skill=node.skill,
                agent=node.agent,
                args=node.args,
                output_key=node.output_key,
                feedback_enabled=node.feedback_enabled,
            )
            if node.verifier:
                data["verifier"] = node.verifier
        case SequenceNode():
            data["children"] = [node_to_dict(child) for child in node.children]
        case ConditionalNode():
            data["condition"] = condition_to_dict(node.condition)
            data["true_branch"] = (
                node_to_dict(node.true_branch) if node.true_branch else None
            )
            data["false_branch"] = (
                node_to_dict(node.false_branch) if node.false_branch else None
            )
        case LoopNode():
            data.update(
                body=node_to_dict(node.body),
                condition=condition_to_dict(node.condition),
                max_iterations=node.max_iterations,
                timeout_seconds=node.timeout_seconds,
                exit_on=node.exit_on.value,
            )
    return data


def workflow_to_dict(workflow: WorkflowDefinition) -> dict[str, Any]:
    return {
        "name": workflow.name,
        "type": workflow.type,
        "root": node_to_dict(workflow.root),
    }


def compute_workflow_ref(workflow: WorkflowDefinition | dict[str, Any]) -> str:
    """Content-addressed hash of a workflow definition.

    Canonical JSON (sorted keys, no whitespace) hashed with SHA-256.

    Args:
        workflow: Definition or its dict form.

    Returns:
        Hex-encoded SHA-256 hash string.
    """
    data = (
        workflow_to_dict(workflow)
        if isinstance(workflow, WorkflowDefinition)
        else workflow
    )
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def designated_verifiers(workflow: WorkflowDefinition) -> dict[str, str]:
    """
    Map each feedback-enabled Action to the node that verifies it.

    The verifier is the Action's explicit ``verifier`` or, failing that, its
    next sibling in the enclosing Sequence. Actions without either are left
    out.
    """
    verifiers: dict[str, str] = {}
    for node in iter_nodes(workflow.root):
        if isinstance(node, SequenceNode):
            for child, sibling in zip(node.children, node.children[1:]):
                if isinstance(child, ActionNode) and child.feedback_enabled:
                    verifiers[child.node_id] = sibling.node_id
    for node in iter_nodes(workflow.root):
        if isinstance(node, ActionNode) and node.feedback_enabled and node.verifier:
            verifiers[node.node_id] = node.verifier
    return verifiers


def check_definition(workflow: WorkflowDefinition) -> None:
    """
    Semantic checks a schema cannot express.

    Raises:
        WorkflowDefinitionError: On duplicate node ids, loop bounds below
            one, unknown verifier ids, feedback-enabled actions without
            a verifier, or verifiers that are not actions
    """
    seen: set[str] = set()
    for node in iter_nodes(workflow.root):
        if not node.node_id:
            raise WorkflowDefinitionError("node_id must not be empty")
        if node.node_id in seen:
            raise WorkflowDefinitionError("duplicate node id", node.node_id)
        seen.add(node.node_id)
        if isinstance(node, LoopNode):
            if node.max_iterations < 1:
                raise WorkflowDefinitionError(
                    "max_iterations must be >= 1", node.node_id
                )
            if node.timeout_seconds <= 0:
                raise WorkflowDefinitionError(
                    "timeout_seconds must be > 0", node.node_id
                )

    nodes = {node.node_id: node for node in iter_nodes(workflow.root)}
    verifiers = designated_verifiers(workflow)
    for node in iter_nodes(workflow.root):
        if not isinstance(node, ActionNode):
            continue
        if node.verifier and node.verifier not in seen:
            raise WorkflowDefinitionError(
                f"unknown verifier {node.verifier!r}", node.node_id
            )
        if node.verifier == node.node_id:
            raise WorkflowDefinitionError(
                "an action cannot verify itself", node.node_id
            )
        if node.feedback_enabled and node.node_id not in verifiers:
            raise WorkflowDefinitionError(
                "feedback-enabled action has no verifier", node.node_id
            )
        verifier = verifiers.get(node.node_id)
        if verifier is not None and not isinstance(nodes[verifier], ActionNode):
            raise WorkflowDefinitionError(
                f"verifier {verifier!r} is a {nodes[verifier].type.value}; "
                "only actions can send feedback",
                node.node_id,
            )
