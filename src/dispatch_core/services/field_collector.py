"""
Field collector protocol.

Before the policy middleware runs, every registered collector (global or
per-command) is called with the invocation and a mutable set of field names.
A collector adds the fields the upcoming checks will read; the resulting set
is what the storage collaborator is asked to load. A collector may also be a
plain iterable of field names.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from dispatch_core.domain.argv import Argv
    from dispatch_core.services.command_registry import CommandRegistry

FieldCollector = Union[Iterable[str], Callable[["Argv", set[str]], Any]]


def collect_fields(
    argv: Argv, collectors: Iterable[FieldCollector], fields: set[str] | None = None
) -> set[str]:
    fields = set() if fields is None else fields
    for collector in collectors:
        if callable(collector):
            collector(argv, fields)
        else:
            fields.update(collector)
    return fields


def collect_user_fields(argv: Argv, registry: CommandRegistry) -> set[str]:
    collectors = list(registry.user_field_collectors)
    if argv.command is not None:
        collectors.extend(argv.command._user_fields)
    return collect_fields(argv, collectors)


def collect_channel_fields(argv: Argv, registry: CommandRegistry) -> set[str]:
    collectors = list(registry.channel_field_collectors)
    if argv.command is not None:
        collectors.extend(argv.command._channel_fields)
    return collect_fields(argv, collectors)
