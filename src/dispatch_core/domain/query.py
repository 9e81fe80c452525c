"""
Structural query and aggregation expressions.

Queries are plain mappings, shared verbatim by every storage collaborator:

- field predicates: ``{"age": {"$gte": 18}}`` or the shorthands
  ``{"id": "abc"}`` (equality), ``{"id": ["a", "b"]}`` (membership) and
  ``{"name": re.compile("^a")}`` (pattern)
- logical composition: ``$or``, ``$and``, ``$not`` and ``$expr``
- evaluation expressions: literals, field references (strings) and
  ``$add``/``$subtract``/``$multiply``/``$divide`` or binary comparisons
- aggregations: ``$sum``, ``$avg``, ``$max``, ``$min``, ``$count``

A bare shorthand used as the whole query targets the table's primary key.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, TypedDict, Union

from dispatch_core.common.exceptions import InvalidQueryError
from dispatch_core.domain.tables import TableConfig

Primitive = Union[str, int, float]
Comparable = Union[Primitive, datetime]
Shorthand = Union[Comparable, list, tuple, re.Pattern]

FieldExpr = TypedDict(
    "FieldExpr",
    {
        "$in": list,
        "$nin": list,
        "$eq": Any,
        "$ne": Any,
        "$gt": Any,
        "$gte": Any,
        "$lt": Any,
        "$lte": Any,
        "$el": Any,
        "$size": int,
        "$regex": Union[str, re.Pattern],
        "$regexFor": str,
        "$bitsAllClear": int,
        "$bitsAllSet": int,
        "$bitsAnyClear": int,
        "$bitsAnySet": int,
    },
    total=False,
)

LogicalExpr = TypedDict(
    "LogicalExpr",
    {"$or": list, "$and": list, "$not": dict, "$expr": Any},
    total=False,
)

FieldQuery = Union[FieldExpr, Shorthand]
QueryExpr = dict[str, Any]
Query = Union[QueryExpr, Shorthand, None]

COMPARISON_OPERATORS = ("$eq", "$ne", "$gt", "$gte", "$lt", "$lte")
SET_OPERATORS = ("$in", "$nin")
COLLECTION_OPERATORS = ("$el", "$size")
PATTERN_OPERATORS = ("$regex", "$regexFor")
BIT_OPERATORS = ("$bitsAllClear", "$bitsAllSet", "$bitsAnyClear", "$bitsAnySet")
FIELD_OPERATORS = frozenset(
    COMPARISON_OPERATORS
    + SET_OPERATORS
    + COLLECTION_OPERATORS
    + PATTERN_OPERATORS
    + BIT_OPERATORS
)
LOGICAL_OPERATORS = frozenset(("$or", "$and", "$not", "$expr"))

NUMERIC_OPERATORS = ("$add", "$subtract", "$multiply", "$divide")
BINARY_NUMERIC_OPERATORS = ("$subtract", "$divide")
BOOLEAN_OPERATORS = COMPARISON_OPERATORS
AGGREGATION_OPERATORS = ("$sum", "$avg", "$max", "$min", "$count")


class ModifierExpr(TypedDict, total=False):
    limit: int
    offset: int
    fields: list[str]


Modifier = Union[list[str], tuple[str, ...], ModifierExpr, None]


def is_shorthand(query: Any) -> bool:
    if isinstance(query, bool):
        return False
    return isinstance(query, (str, int, float, list, tuple, re.Pattern))


def resolve_query(table: TableConfig, query: Query = None) -> QueryExpr:
    """Normalize a query into its canonical mapping form.

    Raises:
        InvalidQueryError: If a shorthand targets a table whose primary key
            is composite, or the query is neither a mapping nor a shorthand
    """
    if query is None:
        return {}
    if is_shorthand(query):
        if table.has_composite_primary:
            raise InvalidQueryError(
                details={"table": table.name, "primary": table.primary}
            )
        if isinstance(query, tuple):
            query = list(query)
        return {table.primary: query}
    if not isinstance(query, dict):
        raise InvalidQueryError(details={"type": type(query).__name__})
    return query


def resolve_modifier(modifier: Modifier = None) -> ModifierExpr:
    """Normalize a field-list shorthand into ``{"fields": [...]}``."""
    if isinstance(modifier, (list, tuple)):
        return {"fields": list(modifier)}
    return modifier or {}
