from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dispatch_core.interfaces.model_bases import InternalDTO

if TYPE_CHECKING:
    from dispatch_core.domain.command import Command
    from dispatch_core.domain.session import Session

Next = Callable[[], Awaitable[Any]]


@dataclass
class Argv(InternalDTO):
    """One resolved attempt to run a command.

    Created by the parsing layer, consumed once by ``Command.execute``.
    ``error`` is set by the parser when the input could not be resolved; the
    dispatcher returns it without running any checker or action.
    """

    command: Command | None = None
    name: str | None = None
    args: list[Any] | None = None
    options: dict[str, Any] | None = None
    session: Session | None = None
    error: str | None = None
    source: str | None = None
    tokens: list[str] | None = None
    next: Next | None = field(default=None, repr=False)

    def get_source(self) -> str:
        """Return the source text, reconstructing it from the parsed parts once."""
        if self.source is None and self.command is not None:
            self.source = self.command.stringify(self.args or [], self.options or {})
        return self.source or ""
