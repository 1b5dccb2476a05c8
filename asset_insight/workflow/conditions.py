"""
Step-condition evaluation against a workflow execution context.

A condition reads a dotted path (``"equipment.status"``) out of the context
and applies one ``ConditionOperator``.  All conditions on a step are ANDed;
an empty or absent list always passes.

Missing paths
-------------
A path that does not resolve (absent key, or a non-mapping along the way)
satisfies ``not_equals`` and nothing else, including ``equals None``.

Comparisons
-----------
``greater_than`` / ``less_than`` between values that do not order (a string
against a number, ``None`` against anything) are false rather than errors.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional, Sequence

from asset_insight.models.workflow import StepCondition
from asset_insight.taxonomy.asset_taxonomy import ConditionOperator

_MISSING = object()


def resolve_path(context: Mapping[str, Any], path: str) -> Any:
    """Return the value at dotted ``path``, or the ``_MISSING`` sentinel."""
    current: Any = context
    for key in path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return _MISSING
        current = current[key]
    return current


def get_value(context: Mapping[str, Any], path: str) -> Optional[Any]:
    """Value at dotted ``path``; ``None`` when the path does not resolve."""
    value = resolve_path(context, path)
    return None if value is _MISSING else value


def _contains(actual: Any, expected: Any) -> bool:
    if not actual:
        return False
    if isinstance(actual, (list, tuple, set, frozenset)):
        return expected in actual
    return str(expected) in str(actual)


def _ordered(actual: Any, expected: Any, greater: bool) -> bool:
    try:
        return actual > expected if greater else actual < expected
    except TypeError:
        return False


def evaluate_condition(condition: StepCondition, context: Mapping[str, Any]) -> bool:
    actual = resolve_path(context, condition.field)
    op = condition.operator
    expected = condition.value

    if actual is _MISSING:
        return op is ConditionOperator.NOT_EQUALS

    if op is ConditionOperator.EQUALS:
        return actual == expected
    if op is ConditionOperator.NOT_EQUALS:
        return actual != expected
    if op is ConditionOperator.GREATER_THAN:
        return _ordered(actual, expected, greater=True)
    if op is ConditionOperator.LESS_THAN:
        return _ordered(actual, expected, greater=False)
    if op is ConditionOperator.CONTAINS:
        return _contains(actual, expected)
    if op is ConditionOperator.IN:
        return isinstance(expected, (list, tuple, set, frozenset)) and actual in expected
    return False


def evaluate_conditions(
    conditions: Optional[Sequence[StepCondition]],
    context: Mapping[str, Any],
) -> bool:
    """True when every condition holds (vacuously true for none)."""
    if not conditions:
        return True
    return all(evaluate_condition(c, context) for c in conditions)
