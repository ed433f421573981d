"""Tests for three-valued condition evaluation."""

import pytest

from reactree.domain.conditions import EvaluationResult, evaluate
from reactree.domain.memory import MemorySnapshot
from reactree.domain.models import Condition


def snapshot(**values) -> MemorySnapshot:
    return MemorySnapshot.from_values(values)


class TestOperators:
    """Tests for each supported operator."""

    @pytest.mark.parametrize(
        "operator, value, expected",
        [
            ("equals", 3, EvaluationResult.TRUE),
            ("equals", 4, EvaluationResult.FALSE),
            ("not_equals", 4, EvaluationResult.TRUE),
            ("greater_than", 2, EvaluationResult.TRUE),
            ("greater_than", 3, EvaluationResult.FALSE),
            ("less_than", 3.5, EvaluationResult.TRUE),
            ("less_than", 1, EvaluationResult.FALSE),
        ],
    )
    def test_numeric_comparisons(self, operator, value, expected) -> None:
        """Ordering and equality operators compare the stored number."""
        result = evaluate(Condition("count", operator, value), snapshot(count=3))

        assert result.result is expected
        assert result.observed == 3

    def test_contains_substring(self) -> None:
        """contains on a string is a substring test."""
        memory = snapshot(log="3 passed, 1 failed")

        assert evaluate(Condition("log", "contains", "failed"), memory).is_true
        assert not evaluate(Condition("log", "contains", "error"), memory).is_true

    def test_contains_list_membership(self) -> None:
        """contains on a list tests membership."""
        memory = snapshot(tags=["ci", "nightly"])

        result = evaluate(Condition("tags", "contains", "nightly"), memory)

        assert result.result is EvaluationResult.TRUE

    def test_equals_does_not_coerce(self) -> None:
        """A string "1" is not equal to the integer 1."""
        result = evaluate(Condition("x", "equals", 1), snapshot(x="1"))

        assert result.result is EvaluationResult.FALSE


class TestMissingAndErrors:
    """Tests for missing keys and malformed conditions."""

    def test_missing_key_is_false(self) -> None:
        """Unknown facts evaluate to false, never error."""
        result = evaluate(Condition("tests.passed", "equals", True), snapshot())

        assert result.result is EvaluationResult.FALSE
        assert "not in memory" in result.detail

    def test_unknown_operator_is_error(self) -> None:
        """An operator outside the supported set is an evaluation error."""
        result = evaluate(Condition("x", "matches", ".*"), snapshot(x="a"))

        assert result.is_error
        assert "matches" in result.detail

    def test_ordering_on_non_numbers_is_error(self) -> None:
        """greater_than with a string operand is an evaluation error."""
        result = evaluate(Condition("x", "greater_than", 1), snapshot(x="2"))

        assert result.is_error

    def test_booleans_are_not_ordered(self) -> None:
        """Booleans are excluded from numeric ordering."""
        result = evaluate(Condition("x", "less_than", 2), snapshot(x=True))

        assert result.is_error

    def test_contains_on_number_is_error(self) -> None:
        """contains applies only to strings and sequences."""
        result = evaluate(Condition("x", "contains", 1), snapshot(x=10))

        assert result.is_error

    def test_empty_key_is_error(self) -> None:
        """A condition without a key cannot be evaluated."""
        result = evaluate(Condition("", "equals", 1), snapshot(x=1))

        assert result.is_error


class TestDottedPaths:
    """Tests for dotted-path lookup into structured facts."""

    def test_flat_dotted_key(self) -> None:
        """Keys stored with dots resolve directly."""
        memory = snapshot(**{"tests.passed": True})

        assert evaluate(Condition("tests.passed", "equals", True), memory).is_true

    def test_nested_dict_value(self) -> None:
        """Segments after the stored key traverse nested dicts."""
        memory = snapshot(tests={"summary": {"failed": 0}})

        result = evaluate(Condition("tests.summary.failed", "equals", 0), memory)

        assert result.is_true

    def test_list_index_segment(self) -> None:
        """Numeric segments index into lists."""
        memory = snapshot(results=[{"ok": False}, {"ok": True}])

        assert evaluate(Condition("results.1.ok", "equals", True), memory).is_true

    def test_index_out_of_range_is_missing(self) -> None:
        """An index beyond the list length is treated as missing."""
        memory = snapshot(results=[1])

        result = evaluate(Condition("results.5", "equals", 1), memory)

        assert result.result is EvaluationResult.FALSE
