"""Value comparison rules shared by path predicates, WHERE filters and MIN/MAX."""

from __future__ import annotations

import json
import math
from typing import Any

# Operator symbols as written in queries and paths, mapped to canonical names
OPERATORS = {
    "=": "eq",
    "!=": "neq",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
    "~=": "contains",
    "contains": "contains",
}

OPERATOR_SYMBOLS = {
    "eq": "=",
    "neq": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "contains": "CONTAINS",
}


def to_number(value: Any) -> float | None:
    """Return value as a float if it is numeric-like, else None.

    Numbers and numeric strings qualify; booleans do not.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def format_value(value: Any) -> str:
    """Stable string form of a record value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value == int(value):
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _equal(left: Any, right: Any) -> bool:
    if type(left) is type(right):
        return left == right
    left_num = to_number(left)
    right_num = to_number(right)
    if left_num is not None and right_num is not None:
        return left_num == right_num
    return format_value(left) == format_value(right)


def _order(left: Any, right: Any) -> int:
    """Three-way comparison: numeric when both sides are numeric-like."""
    left_num = to_number(left)
    right_num = to_number(right)
    if left_num is not None and right_num is not None:
        a: Any = left_num
        b: Any = right_num
    else:
        a = format_value(left)
        b = format_value(right)
    return (a > b) - (a < b)


def _orderable(left: Any, right: Any) -> bool:
    """True when a filter may order the two values: both numeric-like, or both text."""
    if to_number(left) is not None and to_number(right) is not None:
        return True
    return isinstance(left, str) and isinstance(right, str)


def compare(left: Any, operator: str, right: Any) -> bool:
    """Compare a single value against a literal.

    Ordering operators never hold between values of unrelated kinds, so a
    null or non-numeric field fails ``price > 100``.
    """
    if operator == "eq":
        return _equal(left, right)
    elif operator == "neq":
        return not _equal(left, right)
    elif operator in ("gt", "gte", "lt", "lte"):
        if not _orderable(left, right):
            return False
        order = _order(left, right)
        if operator == "gt":
            return order > 0
        elif operator == "gte":
            return order >= 0
        elif operator == "lt":
            return order < 0
        return order <= 0
    elif operator == "contains":
        return format_value(right) in format_value(left)
    raise ValueError(f"Unknown operator: {operator}")


def matches(value: Any, operator: str, right: Any) -> bool:
    """Compare with implicit any-of semantics over sequences and mappings."""
    if isinstance(value, dict):
        return any(matches(v, operator, right) for v in value.values())
    if isinstance(value, list):
        return any(matches(v, operator, right) for v in value)
    return compare(value, operator, right)


# MAX and MIN order any pair of values, falling back to their string forms
def greater(left: Any, right: Any) -> bool:
    return _order(left, right) > 0


def less(left: Any, right: Any) -> bool:
    return _order(left, right) < 0
