"""Condition evaluator for internal automation workflows."""

from __future__ import annotations

from typing import Any


def _equals(a: Any, b: Any) -> bool:
    if isinstance(a, (int, float)) and not isinstance(a, bool):
        return float(a) == float(b)
    return a == b


# Supported operators
OPERATORS = {
    "equals": _equals,
    "not_equals": lambda a, b: not _equals(a, b),
    "contains": lambda a, b: str(b) in str(a) if a else False,
    "greater_than": lambda a, b: float(a) > float(b) if a is not None else False,
    "less_than": lambda a, b: float(a) < float(b) if a is not None else False,
}

# Fields a condition may reference
FIELDS = {"deal_value", "deal_stage"}


def condition_list(config: dict | list | None) -> list[dict]:
    """Accept ``{"conditions": [...]}`` or a bare list."""
    if not config:
        return []
    if isinstance(config, list):
        return config
    return list(config.get("conditions") or [])


def evaluate_condition(condition: dict, facts: dict[str, Any]) -> bool:
    """Evaluate one ``{"field", "operator", "value"}`` tuple.

    Conditions on unknown fields (such as ``contact_tag``) or with unknown
    operators are skipped, so they never block a workflow. A value that
    cannot be compared fails the condition.
    """
    field = condition.get("field", "")
    if field not in FIELDS:
        return True
    op_func = OPERATORS.get(condition.get("operator", "equals"))
    if op_func is None:
        return True

    try:
        return bool(op_func(facts.get(field), condition.get("value")))
    except (TypeError, ValueError):
        return False


def evaluate_conditions(config: dict | list | None, facts: dict[str, Any]) -> bool:
    """All conditions must hold; an empty condition set always matches."""
    return all(evaluate_condition(c, facts) for c in condition_list(config))
