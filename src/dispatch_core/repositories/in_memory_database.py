from __future__ import annotations

import copy
import logging
from typing import Any

from dispatch_core.common.exceptions import DuplicateEntryError
from dispatch_core.domain.query import Modifier, Query, resolve_modifier, resolve_query
from dispatch_core.domain.query_evaluator import evaluate_aggregation, match_query
from dispatch_core.domain.tables import STRING_TYPES, TableRegistry
from dispatch_core.interfaces.database_interface import IDatabase

logger = logging.getLogger(__name__)


class InMemoryDatabase(IDatabase):
    """In-memory implementation of the storage collaborator.

    Records are kept in per-table lists and never persisted. It is suitable
    for development and testing.
    """

    def __init__(self, tables: TableRegistry | None = None) -> None:
        self.tables = tables or TableRegistry()
        self._store: dict[str, list[dict[str, Any]]] = {}
        self._counters: dict[str, int] = {}

    def _rows(self, table: str) -> list[dict[str, Any]]:
        return self._store.setdefault(table, [])

    def _select(self, table: str, query: Query) -> list[dict[str, Any]]:
        expr = resolve_query(self.tables.get(table), query)
        return [row for row in self._rows(table) if match_query(expr, row)]

    async def drop(self, table: str | None = None) -> None:
        if table is None:
            self._store.clear()
            self._counters.clear()
        else:
            self._store.pop(table, None)
            self._counters.pop(table, None)

    async def get(
        self, table: str, query: Query, modifier: Modifier = None
    ) -> list[dict[str, Any]]:
        modifier_expr = resolve_modifier(modifier)
        rows = self._select(table, query)
        offset = modifier_expr.get("offset", 0)
        limit = modifier_expr.get("limit")
        rows = rows[offset:] if limit is None else rows[offset : offset + limit]
        fields = modifier_expr.get("fields")
        if fields:
            return [
                {key: copy.deepcopy(row[key]) for key in fields if key in row}
                for row in rows
            ]
        return [copy.deepcopy(row) for row in rows]

    async def set(self, table: str, query: Query, data: dict[str, Any]) -> None:
        for row in self._select(table, query):
            row.update(copy.deepcopy(data))

    async def remove(self, table: str, query: Query) -> None:
        selected = self._select(table, query)
        self._store[table] = [
            row for row in self._rows(table) if not any(row is s for s in selected)
        ]

    def _next_id(self, table: str) -> Any:
        config = self.tables.get(table)
        counter = self._counters.get(table, 0) + 1
        self._counters[table] = counter
        spec = config.fields.get(str(config.primary))
        if spec is not None and spec.type in STRING_TYPES:
            return str(counter)
        return counter

    async def create(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        config = self.tables.get(table)
        record = self.tables.create(table)
        record.update(copy.deepcopy(data))
        if config.auto_inc and not config.has_composite_primary and config.primary not in record:
            record[config.primary] = self._next_id(table)

        keys = config.primary_keys
        if all(key in record for key in keys):
            identity = {key: record[key] for key in keys}
            if self._select(table, identity):
                raise DuplicateEntryError(table, details=identity)

        self._rows(table).append(record)
        logger.debug("Created %s record %s", table, record.get(keys[0]))
        return copy.deepcopy(record)

    async def upsert(
        self,
        table: str,
        data: list[dict[str, Any]],
        keys: str | list[str] | None = None,
    ) -> None:
        if keys is None:
            keys = self.tables.get(table).primary_keys
        elif isinstance(keys, str):
            keys = [keys]
        for item in data:
            identity = {key: item[key] for key in keys}
            existing = self._select(table, identity)
            if existing:
                for row in existing:
                    row.update(copy.deepcopy(item))
            else:
                await self.create(table, item)

    async def aggregate(
        self, table: str, fields: dict[str, Any], query: Query = None
    ) -> dict[str, Any]:
        rows = self._select(table, query)
        return {key: evaluate_aggregation(expr, rows) for key, expr in fields.items()}
