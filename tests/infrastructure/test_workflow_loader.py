"""Tests for workflow loading and schema validation."""

import json

import pytest

from reactree.domain.exceptions import WorkflowDefinitionError
from reactree.domain.models import (
    ActionNode,
    ConditionalNode,
    ExitOn,
    LoopNode,
    SequenceNode,
)
from reactree.domain.workflow import workflow_to_dict
from reactree.infrastructure import load_workflow, parse_workflow
from reactree.schemas import get_workflow_schema


class TestLoadWorkflow:
    """Tests for load_workflow()."""

    def test_parses_every_node_type(self, workflow_document) -> None:
        """Nested dict form becomes the typed node tree."""
        definition = load_workflow(workflow_document)

        assert definition.name == "ci"
        root = definition.root
        assert isinstance(root, SequenceNode)
        setup, gate = root.children
        assert isinstance(setup, ActionNode)
        assert setup.output_key == "env"
        assert isinstance(gate, ConditionalNode)
        assert gate.false_branch is None
        retry = gate.true_branch
        assert isinstance(retry, LoopNode)
        assert retry.max_iterations == 2
        assert retry.exit_on is ExitOn.CONDITION_TRUE
        assert retry.condition.key == "poll.ok"

    def test_loads_from_file(self, tmp_path, workflow_document) -> None:
        """A JSON file on disk loads the same as its dict."""
        path = tmp_path / "wf.json"
        path.write_text(json.dumps(workflow_document))

        assert load_workflow(path) == load_workflow(workflow_document)

    def test_dict_form_round_trips(self, workflow_document) -> None:
        """workflow_to_dict output parses back to an equal definition."""
        definition = load_workflow(workflow_document)

        assert parse_workflow(workflow_to_dict(definition)) == definition

    def test_missing_file(self, tmp_path) -> None:
        """A missing path is a definition error."""
        with pytest.raises(WorkflowDefinitionError, match="not found"):
            load_workflow(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path) -> None:
        """Malformed JSON is a definition error."""
        path = tmp_path / "wf.json"
        path.write_text("{ not json")

        with pytest.raises(WorkflowDefinitionError, match="Invalid JSON"):
            load_workflow(path)

    def test_non_object_document(self, tmp_path) -> None:
        """The top level must be an object."""
        path = tmp_path / "wf.json"
        path.write_text("[]")

        with pytest.raises(WorkflowDefinitionError, match="Expected object"):
            load_workflow(path)


class TestSchemaValidation:
    """Tests for schema violations reported as definition errors."""

    def test_unknown_node_type(self, workflow_document) -> None:
        """A node type outside the union is rejected."""
        workflow_document["root"]["children"][0]["type"] = "parallel"

        with pytest.raises(WorkflowDefinitionError):
            load_workflow(workflow_document)

    def test_missing_required_field(self, workflow_document) -> None:
        """Actions need an agent."""
        del workflow_document["root"]["children"][0]["agent"]

        with pytest.raises(WorkflowDefinitionError):
            load_workflow(workflow_document)

    def test_unknown_property(self, workflow_document) -> None:
        """Unexpected keys are rejected."""
        workflow_document["root"]["retries"] = 3

        with pytest.raises(WorkflowDefinitionError) as exc_info:
            load_workflow(workflow_document)

        assert exc_info.value.path.startswith("/root")

    def test_semantic_checks_run_after_schema(self, workflow_document) -> None:
        """Duplicate ids pass the schema but fail semantic checks."""
        workflow_document["root"]["children"][1]["node_id"] = "setup"

        with pytest.raises(WorkflowDefinitionError, match="duplicate"):
            load_workflow(workflow_document)

    def test_schema_is_packaged(self) -> None:
        """The workflow schema ships as package data."""
        schema = get_workflow_schema()

        assert schema["$schema"].endswith("2020-12/schema")
        assert "node" in schema["$defs"]
