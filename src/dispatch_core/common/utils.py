from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def remove(items: list[Any], item: Any) -> bool:
    """Remove the first occurrence of ``item`` by identity-or-equality."""
    try:
        items.remove(item)
    except ValueError:
        return False
    return True


Disposable = Callable[[], Any]
