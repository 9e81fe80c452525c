"""
Dispatch pipeline.

Runs an invocation against its command: normalizes the argv, runs the
checkers in order, then drives the action chain. Each action receives a copy
of the argv whose ``next`` continues the chain; a fallback continuation is
appended after the last action.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from dispatch_core.common.utils import maybe_await

if TYPE_CHECKING:
    from dispatch_core.domain.argv import Argv, Next
    from dispatch_core.domain.command import Command

logger = logging.getLogger(__name__)

Continuation = Callable[["Next"], Awaitable[Any]]


async def noop_fallback(next: Next) -> None:
    return None


class ActionHandler:
    """Binds one action callback to the invocation it serves."""

    def __init__(self, callback: Callable[..., Any], argv: Argv) -> None:
        self._callback = callback
        self._argv = argv

    async def __call__(self, next: Next) -> Any:
        argv = replace(self._argv, next=next)
        return await maybe_await(self._callback(argv, *(self._argv.args or [])))


class ActionChain:
    """Ordered continuations driven by a single cursor.

    ``next()`` advances the cursor and runs the continuation at the previous
    position. Calling it once the queue is exhausted returns ``None``.
    """

    def __init__(self, handlers: list[Continuation], fallback: Continuation) -> None:
        self._queue: list[Continuation] = [*handlers, fallback]
        self.index = 0

    @property
    def length(self) -> int:
        return len(self._queue)

    @property
    def reached_terminal(self) -> bool:
        """Whether the fallback continuation has been entered."""
        return self.index == self.length

    async def next(self) -> Any:
        if self.index >= self.length:
            return None
        continuation = self._queue[self.index]
        self.index += 1
        return await continuation(self.next)


async def run_checkers(command: Command, argv: Argv) -> str | None:
    """Run checkers in list order. A string result vetoes the invocation."""
    args = argv.args or []
    for checker in list(command._checkers):
        result = await maybe_await(checker(argv, *args))
        if isinstance(result, str):
            return result
    return None


async def execute_command(
    command: Command,
    argv: Argv,
    fallback: Continuation | None = None,
) -> str:
    """Execute ``argv`` against ``command``.

    Returns:
        The reply text, or an empty string when nothing is to be sent.

    Raises:
        Exception: Any fault raised by a checker, or raised after the chain
            entered its fallback continuation.
    """
    if argv.command is None:
        argv.command = command
    if argv.args is None:
        argv.args = []
    if argv.options is None:
        argv.options = {}

    if argv.error:
        return argv.error
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(argv.get_source())

    vetoed = await run_checkers(command, argv)
    if vetoed is not None:
        return vetoed

    handlers: list[Continuation] = [
        ActionHandler(action, argv) for action in list(command._actions)
    ]
    chain = ActionChain(handlers, fallback or noop_fallback)

    try:
        result = await chain.next()
        if isinstance(result, str):
            return result
    except Exception as exc:
        if chain.reached_terminal:
            raise
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        logger.warning("%s\n%s", argv.get_source(), stack)

    return ""
