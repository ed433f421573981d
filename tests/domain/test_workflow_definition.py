"""Tests for workflow fingerprints, verifier resolution and semantic checks."""

import pytest

from builders import action, condition, conditional, loop, sequence, workflow
from reactree.domain.exceptions import WorkflowDefinitionError
from reactree.domain.workflow import (
    check_definition,
    compute_workflow_ref,
    designated_verifiers,
    workflow_to_dict,
)


class TestWorkflowRef:
    """Tests for compute_workflow_ref()."""

    def test_same_definition_same_ref(self) -> None:
        """Equal definitions hash identically."""
        first = workflow(sequence("root", action("a"), action("b")))
        second = workflow(sequence("root", action("a"), action("b")))

        assert compute_workflow_ref(first) == compute_workflow_ref(second)

    def test_changed_definition_changes_ref(self) -> None:
        """Reordering children changes the fingerprint."""
        first = workflow(sequence("root", action("a"), action("b")))
        second = workflow(sequence("root", action("b"), action("a")))

        assert compute_workflow_ref(first) != compute_workflow_ref(second)

    def test_dict_form_matches_definition(self) -> None:
        """Hashing the dict form gives the same ref as the definition."""
        definition = workflow(
            conditional("gate", condition("x"), true=action("a"))
        )

        assert compute_workflow_ref(workflow_to_dict(definition)) == (
            compute_workflow_ref(definition)
        )


class TestDesignatedVerifiers:
    """Tests for designated_verifiers()."""

    def test_next_sibling_verifies(self) -> None:
        """The following sibling in a sequence is the default verifier."""
        definition = workflow(
            sequence("root", action("build", feedback_enabled=True), action("test"))
        )

        assert designated_verifiers(definition) == {"build": "test"}

    def test_explicit_verifier_overrides_sibling(self) -> None:
        """An explicit verifier wins over the next sibling."""
        definition = workflow(
            sequence(
                "root",
                action("build", feedback_enabled=True, verifier="lint"),
                action("test"),
                action("lint"),
            )
        )

        assert designated_verifiers(definition) == {"build": "lint"}

    def test_actions_without_feedback_are_ignored(self) -> None:
        """Only feedback-enabled actions get a verifier."""
        definition = workflow(sequence("root", action("build"), action("test")))

        assert designated_verifiers(definition) == {}


class TestCheckDefinition:
    """Tests for check_definition()."""

    def test_valid_tree_passes(self) -> None:
        """A well-formed tree raises nothing."""
        check_definition(
            workflow(
                sequence(
                    "root",
                    action("build", feedback_enabled=True),
                    action("test"),
                    loop("retry", action("poll"), condition("ok"), max_iterations=2),
                )
            )
        )

    def test_duplicate_ids_rejected(self) -> None:
        """Node ids must be unique across the tree."""
        with pytest.raises(WorkflowDefinitionError, match="duplicate"):
            check_definition(workflow(sequence("root", action("a"), action("a"))))

    def test_loop_bounds_validated(self) -> None:
        """max_iterations below one is rejected."""
        definition = workflow(
            loop("retry", action("a"), condition("ok"), max_iterations=0)
        )

        with pytest.raises(WorkflowDefinitionError) as exc_info:
            check_definition(definition)

        assert exc_info.value.path == "retry"

    def test_non_positive_timeout_rejected(self) -> None:
        """timeout_seconds must be positive."""
        definition = workflow(
            loop("retry", action("a"), condition("ok"), timeout_seconds=0)
        )

        with pytest.raises(WorkflowDefinitionError, match="timeout_seconds"):
            check_definition(definition)

    def test_unknown_verifier_rejected(self) -> None:
        """A verifier must name a node of the tree."""
        definition = workflow(
            sequence("root", action("a", feedback_enabled=True, verifier="ghost"))
        )

        with pytest.raises(WorkflowDefinitionError, match="ghost"):
            check_definition(definition)

    def test_self_verification_rejected(self) -> None:
        """An action cannot be its own verifier."""
        definition = workflow(
            sequence("root", action("a", verifier="a"), action("b"))
        )

        with pytest.raises(WorkflowDefinitionError, match="itself"):
            check_definition(definition)

    def test_feedback_without_verifier_rejected(self) -> None:
        """A feedback-enabled last child has nobody to verify it."""
        definition = workflow(
            sequence("root", action("a"), action("b", feedback_enabled=True))
        )

        with pytest.raises(WorkflowDefinitionError, match="no verifier"):
            check_definition(definition)

    def test_composite_next_sibling_rejected(self) -> None:
        """Only a failing action can send feedback, so it must verify."""
        definition = workflow(
            sequence(
                "root",
                action("build", feedback_enabled=True),
                sequence("checks", action("lint")),
            )
        )

        with pytest.raises(WorkflowDefinitionError) as exc_info:
            check_definition(definition)

        assert "'checks' is a sequence" in str(exc_info.value)
        assert exc_info.value.path == "build"

    def test_explicit_composite_verifier_rejected(self) -> None:
        """An explicit verifier naming a loop is rejected."""
        definition = workflow(
            sequence(
                "root",
                action("build", feedback_enabled=True, verifier="retry"),
                action("test"),
                loop("retry", action("lint"), condition("ok")),
            )
        )

        with pytest.raises(WorkflowDefinitionError, match="only actions"):
            check_definition(definition)
