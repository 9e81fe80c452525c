"""
Policy values that are either fixed or derived from the current session.

A command's ``authority``, ``max_usage`` and ``min_interval`` may be declared
as a plain value or as a callable receiving the session. Both forms are
normalized into a tagged value and resolved by :func:`evaluate`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from dispatch_core.domain.session import Session


class LiteralValue:
    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, LiteralValue) and other.value == self.value

    def __hash__(self) -> int:
        return hash(("literal", self.value))

    def __repr__(self) -> str:
        return f"LiteralValue({self.value!r})"


class Computed:
    __slots__ = ("func",)

    def __init__(self, func: Callable[[Session | None], Any]) -> None:
        self.func = func

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Computed) and other.func is self.func

    def __hash__(self) -> int:
        return hash(("computed", id(self.func)))

    def __repr__(self) -> str:
        return f"Computed({getattr(self.func, '__name__', self.func)!r})"


ComputedValue = Union[LiteralValue, Computed]


def as_computed(raw: Any) -> ComputedValue:
    """Wrap a raw value or callable into its tagged form."""
    if isinstance(raw, (LiteralValue, Computed)):
        return raw
    if callable(raw):
        return Computed(raw)
    return LiteralValue(raw)


def evaluate(value: ComputedValue, session: Session | None) -> Any:
    """Resolve a tagged policy value for a session."""
    if isinstance(value, Computed):
        return value.func(session)
    return value.value
