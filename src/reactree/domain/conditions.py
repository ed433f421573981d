"""
Condition evaluation against a Working Memory snapshot.

Pure and side-effect free. A missing key evaluates to ``false`` ("unknown
implies not satisfied"); ``error`` is reserved for malformed conditions.
"""

from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any

from reactree.domain.memory import MemorySnapshot, is_missing, lookup_path
from reactree.domain.models import Condition, Operator


class EvaluationResult(str, Enum):
    """Three-valued evaluator outcome."""

    TRUE = "true"
    FALSE = "false"
    ERROR = "error"


@dataclass(frozen=True)
class ConditionEvaluation:
    """Outcome plus the observed value, for logging."""

    result: EvaluationResult
    observed: Any = None
    detail: str = ""

    @property
    def is_true(self) -> bool:
        return self.result is EvaluationResult.TRUE

    @property
    def is_error(self) -> bool:
        return self.result is EvaluationResult.ERROR


class _IncompatibleTypes(Exception):
    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _order(observed: Any, expected: Any) -> tuple[Any, Any]:
    if not (_is_number(observed) and _is_number(expected)):
        raise _IncompatibleTypes(
            f"ordering requires numbers, got {type(observed).__name__} "
            f"and {type(expected).__name__}"
        )
    return observed, expected


def _contains(observed: Any, expected: Any) -> bool:
    if isinstance(observed, str):
        if not isinstance(expected, str):
            raise _IncompatibleTypes(
                f"substring test needs a string, got {type(expected).__name__}"
            )
        return expected in observed
    if isinstance(observed, list | tuple):
        return expected in observed
    raise _IncompatibleTypes(
        f"contains applies to strings and sequences, got {type(observed).__name__}"
    )


def _greater_than(observed: Any, expected: Any) -> bool:
    left, right = _order(observed, expected)
    return bool(left > right)


def _less_than(observed: Any, expected: Any) -> bool:
    left, right = _order(observed, expected)
    return bool(left < right)


_OPERATORS = {
    Operator.EQUALS: lambda observed, expected: observed == expected,
    Operator.NOT_EQUALS: lambda observed, expected: observed != expected,
    Operator.GREATER_THAN: _greater_than,
    Operator.LESS_THAN: _less_than,
    Operator.CONTAINS: _contains,
}


def evaluate(condition: Condition, memory: MemorySnapshot) -> ConditionEvaluation:
    """
    Evaluate a condition against a snapshot.

    Args:
        condition: The condition to evaluate
        memory: Snapshot captured by the caller at evaluation time

    Returns:
        ConditionEvaluation with TRUE, FALSE or ERROR
    """
    try:
        operator = Operator(condition.operator)
    except ValueError:
        return ConditionEvaluation(
            EvaluationResult.ERROR, detail=f"unknown operator '{condition.operator}'"
        )
    if not condition.key:
        return ConditionEvaluation(EvaluationResult.ERROR, detail="empty key")

    observed = lookup_path(memory, condition.key)
    if is_missing(observed):
        return ConditionEvaluation(
            EvaluationResult.FALSE, detail=f"'{condition.key}' not in memory"
        )

    try:
        satisfied = _OPERATORS[operator](observed, condition.value)
    except _IncompatibleTypes as e:
        return ConditionEvaluation(EvaluationResult.ERROR, observed, str(e))

    return ConditionEvaluation(
        EvaluationResult.TRUE if satisfied else EvaluationResult.FALSE, observed
    )
