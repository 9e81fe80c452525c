"""
Table declarations shared by the storage collaborators.

A table is declared with field definitions such as ``"string(63)"`` or
``"decimal(10,2)"`` and table-level keys (primary, unique, foreign).
"""

from __future__ import annotations

import copy
import re
from typing import Any

from pydantic import ConfigDict, Field

from dispatch_core.common.exceptions import ConfigurationError, InvalidFieldError
from dispatch_core.interfaces.model_bases import DomainModel

NUMBER_TYPES = ("integer", "unsigned", "float", "double", "decimal")
STRING_TYPES = ("char", "string", "text")
DATE_TYPES = ("timestamp", "date", "time")
OBJECT_TYPES = ("list", "json")
FIELD_TYPES = NUMBER_TYPES + STRING_TYPES + DATE_TYPES + OBJECT_TYPES

_FIELD_PATTERN = re.compile(r"^(\w+)(?:\((.+)\))?$")


class FieldSpec(DomainModel):
    model_config = ConfigDict(extra="forbid")

    type: str
    length: int | None = None
    nullable: bool = False
    initial: Any = None
    precision: int | None = None
    scale: int | None = None


def parse_field(source: str | FieldSpec | dict[str, Any]) -> FieldSpec:
    """Parse a field definition.

    Raises:
        InvalidFieldError: If a string definition is malformed or names an
            unknown type
    """
    if isinstance(source, FieldSpec):
        return source
    if isinstance(source, dict):
        return FieldSpec(**source)

    capture = _FIELD_PATTERN.match(source.strip())
    if not capture or capture.group(1) not in FIELD_TYPES:
        raise InvalidFieldError(source)
    field_type = capture.group(1)
    args = (capture.group(2) or "").split(",")

    initial: Any = None
    if field_type in NUMBER_TYPES:
        initial = 0
    elif field_type in STRING_TYPES:
        initial = ""
    elif field_type == "list":
        initial = []
    elif field_type == "json":
        initial = {}

    try:
        if field_type == "decimal":
            if len(args) != 2:
                raise InvalidFieldError(source)
            return FieldSpec(
                type=field_type,
                initial=initial,
                precision=int(args[0]),
                scale=int(args[1]),
            )
        length = int(args[0]) if args[0].strip() else None
    except ValueError as exc:
        raise InvalidFieldError(source) from exc
    return FieldSpec(type=field_type, initial=initial, length=length)


class TableConfig(DomainModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    primary: str | list[str] = "id"
    auto_inc: bool = False
    unique: list[str | list[str]] = Field(default_factory=list)
    foreign: dict[str, tuple[str, str]] = Field(default_factory=dict)
    fields: dict[str, FieldSpec] = Field(default_factory=dict)

    @property
    def has_composite_primary(self) -> bool:
        return isinstance(self.primary, list)

    @property
    def primary_keys(self) -> list[str]:
        return list(self.primary) if isinstance(self.primary, list) else [self.primary]


class TableRegistry:
    """Declared tables, keyed by name. Owned by the application."""

    def __init__(self, builtin: bool = True) -> None:
        self._tables: dict[str, TableConfig] = {}
        if builtin:
            self.extend(
                "user",
                {
                    "id": "string(63)",
                    "name": "string(63)",
                    "flag": "unsigned(20)",
                    "authority": "unsigned(4)",
                    "usage": "json",
                    "timers": "json",
                },
                auto_inc=True,
            )
            self.extend(
                "channel",
                {
                    "id": "string(63)",
                    "platform": "string(63)",
                    "flag": "unsigned(20)",
                    "assignee": "string(63)",
                    "disable": "list",
                },
                primary=["id", "platform"],
            )

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    @property
    def names(self) -> list[str]:
        return list(self._tables)

    def extend(
        self,
        name: str,
        fields: dict[str, str | FieldSpec | dict[str, Any]] | None = None,
        *,
        primary: str | list[str] | None = None,
        auto_inc: bool = False,
        unique: list[str | list[str]] | None = None,
        foreign: dict[str, tuple[str, str]] | None = None,
    ) -> TableConfig:
        """Declare a table or add fields and keys to an existing one."""
        table = self._tables.get(name)
        if table is None:
            table = TableConfig(name=name)
            self._tables[name] = table

        if primary:
            table.primary = primary
        table.auto_inc = auto_inc or table.auto_inc
        table.unique.extend(unique or [])
        table.foreign.update(foreign or {})
        for key, definition in (fields or {}).items():
            table.fields[key] = parse_field(definition)
        return table

    def get(self, name: str) -> TableConfig:
        table = self._tables.get(name)
        if table is None:
            raise ConfigurationError(f'unknown table "{name}"')
        return table

    def create(self, name: str) -> dict[str, Any]:
        """Build a record holding the initial value of every non-primary field."""
        table = self.get(name)
        primary = table.primary_keys
        return {
            key: copy.deepcopy(spec.initial)
            for key, spec in table.fields.items()
            if key not in primary and spec.initial is not None
        }
