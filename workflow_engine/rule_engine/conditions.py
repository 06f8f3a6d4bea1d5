"""Default condition evaluator for event-driven rules.

A condition document is either a group::

    {"operator": "AND" | "OR", "conditions": [<group or leaf>, ...]}

or a leaf::

    {"field": "payload.to", "op": "eq", "value": "approved"}

Fields are dotted paths into the event's dict form (``type``,
``entity_type``, ``payload.status``, ...). A missing or empty document
matches every event.
"""

import logging
from typing import Any, Callable

from workflow_engine.rule_engine.models import SystemEvent

logger = logging.getLogger(__name__)

# (conditions, event) -> bool
ConditionEvaluator = Callable[[Any, SystemEvent], bool]


def resolve_path(data: Any, path: str) -> Any:
    """Resolve a dotted path against nested dicts; None when any hop is missing."""
    current = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "eq":
        return left == right or str(left) == str(right)
    if op == "ne":
        return left != right and str(left) != str(right)
    if op == "in":
        return isinstance(right, (list, tuple, set)) and left in right
    if op == "contains":
        return (
            isinstance(left, str)
            and isinstance(right, str)
            and right.lower() in left.lower()
        )

    if op in ("gt", "gte", "lt", "lte"):
        a, b = _to_number(left), _to_number(right)
        if a is None or b is None:
            return False
        if op == "gt":
            return a > b
        if op == "gte":
            return a >= b
        if op == "lt":
            return a < b
        return a <= b

    logger.warning(f"Unknown condition operator '{op}'")
    return False


def evaluate_leaf(condition: dict[str, Any], data: dict[str, Any]) -> bool:
    field = condition.get("field")
    if not isinstance(field, str) or not field:
        raise ValueError(f"Condition is missing its field: {condition!r}")
    return _compare(str(condition.get("op", "")), resolve_path(data, field), condition.get("value"))


def _evaluate(node: Any, data: dict[str, Any]) -> bool:
    if node is None:
        return True
    if not isinstance(node, dict):
        raise ValueError(f"Condition must be an object, got {type(node).__name__}")

    if "field" in node:
        return evaluate_leaf(node, data)

    children = node.get("conditions") or []
    if not isinstance(children, list):
        raise ValueError("Condition group 'conditions' must be a list")
    if not children:
        return True

    operator = str(node.get("operator", "AND")).upper()
    results = (_evaluate(child, data) for child in children)
    if operator == "AND":
        return all(results)
    if operator == "OR":
        return any(results)
    raise ValueError(f"Unknown condition group operator '{operator}'")


def evaluate_conditions(conditions: Any, event: SystemEvent) -> bool:
    """Evaluate a condition document against an event.

    Raises:
        ValueError: If the document is malformed
    """
    return _evaluate(conditions, event.to_dict())
