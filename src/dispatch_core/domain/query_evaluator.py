"""
Reference interpreter for query and aggregation expressions.

In-process storage collaborators use these functions so that they read the
expression model exactly like any other backend would.
"""

from __future__ import annotations

import math
import operator
import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from dispatch_core.common.exceptions import InvalidQueryError
from dispatch_core.domain.query import (
    AGGREGATION_OPERATORS,
    BINARY_NUMERIC_OPERATORS,
    BIT_OPERATORS,
    BOOLEAN_OPERATORS,
    NUMERIC_OPERATORS,
)

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": operator.eq,
    "$ne": operator.ne,
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}


def get_field(record: Mapping[str, Any], path: str) -> Any:
    """Read a possibly dotted field path, returning ``None`` when absent."""
    value: Any = record
    for segment in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(segment)
    return value


def _compare(op: str, data: Any, value: Any) -> bool:
    if op in ("$eq", "$ne"):
        return _COMPARATORS[op](data, value)
    if data is None:
        return False
    try:
        return _COMPARATORS[op](data, value)
    except TypeError:
        return False


def _pattern_search(pattern: str | re.Pattern[str], text: Any) -> bool:
    if not isinstance(text, str):
        return False
    return re.search(pattern, text) is not None


def _match_operator(op: str, value: Any, data: Any) -> bool:
    if op in _COMPARATORS:
        return _compare(op, data, value)
    if op == "$in":
        return data in value
    if op == "$nin":
        return data not in value
    if op == "$el":
        return isinstance(data, list) and any(match_field(value, item) for item in data)
    if op == "$size":
        return isinstance(data, (list, str)) and len(data) == value
    if op == "$regex":
        return _pattern_search(value, data)
    if op == "$regexFor":
        return isinstance(data, str) and _pattern_search(data, value)
    if op not in BIT_OPERATORS:
        raise InvalidQueryError(f"unknown field operator {op!r}")
    if not isinstance(data, int):
        return False
    if op == "$bitsAllSet":
        return data & value == value
    if op == "$bitsAllClear":
        return data & value == 0
    if op == "$bitsAnySet":
        return data & value != 0
    return data & value != value


def match_field(query: Any, data: Any) -> bool:
    """Test a single field value against a field predicate."""
    if isinstance(query, re.Pattern):
        return _pattern_search(query, data)
    if isinstance(query, (list, tuple)):
        return data in query
    if isinstance(query, Mapping):
        return all(_match_operator(op, value, data) for op, value in query.items())
    return data == query


def match_query(query: Mapping[str, Any], record: Mapping[str, Any]) -> bool:
    """Test a record against a canonical (already resolved) query."""
    for key, value in query.items():
        if key == "$or":
            if not any(match_query(sub, record) for sub in value):
                return False
        elif key == "$and":
            if not all(match_query(sub, record) for sub in value):
                return False
        elif key == "$not":
            if match_query(value, record):
                return False
        elif key == "$expr":
            if not evaluate_expr(value, record):
                return False
        elif key.startswith("$"):
            raise InvalidQueryError(f"unknown logical operator {key!r}")
        elif not match_field(value, get_field(record, key)):
            return False
    return True


def _single_operator(expr: Mapping[str, Any]) -> tuple[str, Any]:
    if len(expr) != 1:
        raise InvalidQueryError(
            "an expression object must hold exactly one operator",
            details={"operators": list(expr)},
        )
    return next(iter(expr.items()))


def _divide(dividend: Any, divisor: Any) -> Any:
    if divisor != 0:
        return dividend / divisor
    if dividend == 0 or dividend != dividend:
        return math.nan
    return math.copysign(math.inf, dividend) * math.copysign(1, divisor)


def _apply_operator(op: str, operands: Any, resolve: Callable[[Any], Any]) -> Any:
    if op in NUMERIC_OPERATORS:
        if not isinstance(operands, Sequence) or isinstance(operands, str):
            raise InvalidQueryError(f"{op} expects a list of operands")
        if op in BINARY_NUMERIC_OPERATORS and len(operands) != 2:
            raise InvalidQueryError(f"{op} expects exactly two operands")
        values = [resolve(item) for item in operands]
        if any(item is None for item in values):
            return None
        if op == "$add":
            return sum(values)
        if op == "$multiply":
            result = 1
            for item in values:
                result *= item
            return result
        if op == "$subtract":
            return values[0] - values[1]
        return _divide(values[0], values[1])
    if op in BOOLEAN_OPERATORS:
        if not isinstance(operands, Sequence) or len(operands) != 2:
            raise InvalidQueryError(f"{op} expects exactly two operands")
        left, right = (resolve(item) for item in operands)
        return _compare(op, left, right)
    raise InvalidQueryError(f"unknown expression operator {op!r}")


def evaluate_expr(expr: Any, record: Mapping[str, Any]) -> Any:
    """Evaluate a numeric or boolean expression against one record.

    Strings are field references; numbers and booleans are literals. Arithmetic
    over a missing operand yields ``None``, and division by zero yields an
    infinity or NaN.
    """
    if isinstance(expr, (bool, int, float)):
        return expr
    if isinstance(expr, str):
        return get_field(record, expr)
    if isinstance(expr, Mapping):
        op, operands = _single_operator(expr)
        if op in AGGREGATION_OPERATORS:
            raise InvalidQueryError(f"{op} cannot be evaluated against a single record")
        return _apply_operator(op, operands, lambda item: evaluate_expr(item, record))
    raise InvalidQueryError(f"invalid expression {expr!r}")


def evaluate_aggregation(expr: Any, records: Sequence[Mapping[str, Any]]) -> Any:
    """Evaluate an aggregation expression over a set of records.

    ``None`` values are skipped by the numeric aggregators. Empty sets yield 0
    for ``$sum`` and ``$count`` and ``None`` otherwise.
    """
    if isinstance(expr, (bool, int, float)):
        return expr
    if not isinstance(expr, Mapping):
        raise InvalidQueryError(f"invalid aggregation {expr!r}")

    op, operand = _single_operator(expr)
    if op not in AGGREGATION_OPERATORS:
        return _apply_operator(op, operand, lambda item: evaluate_aggregation(item, records))

    values = [evaluate_expr(operand, record) for record in records]
    if op == "$count":
        return len({repr(value) for value in values})
    values = [value for value in values if value is not None]
    if op == "$sum":
        return sum(values)
    if not values:
        return None
    if op == "$avg":
        return sum(values) / len(values)
    if op == "$max":
        return max(values)
    return min(values)
