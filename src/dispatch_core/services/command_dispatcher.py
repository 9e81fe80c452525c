from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dispatch_core.common.exceptions import CommandNotFoundError
from dispatch_core.services.field_collector import (
    collect_channel_fields,
    collect_user_fields,
)

if TYPE_CHECKING:
    from dispatch_core.app.application import Application
    from dispatch_core.domain.argv import Argv
    from dispatch_core.domain.session import Session
    from dispatch_core.services.command_executor import Continuation

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Drives one invocation from a resolved argv to the reply.

    The command is looked up, the fields requested by the collectors are
    loaded into the session, the command is executed, modified records are
    written back and a non-empty reply is sent.
    """

    def __init__(self, app: Application) -> None:
        self.app = app

    async def dispatch(
        self,
        session: Session,
        argv: Argv,
        fallback: Continuation | None = None,
    ) -> str:
        """Run ``argv`` in ``session`` and return the reply text.

        Raises:
            CommandNotFoundError: If neither ``argv.command`` nor ``argv.name``
                resolves to a registered command
        """
        registry = self.app.registry
        argv.session = session
        command = argv.command
        if command is None and argv.name is not None:
            command = registry.get(argv.name)
        if command is None or command.disposed:
            raise CommandNotFoundError(argv.name or "")
        argv.command = command

        if argv.error:
            result = await command.execute(argv, fallback)
            await session.send(result)
            return result

        user_fields = collect_user_fields(argv, registry)
        channel_fields = collect_channel_fields(argv, registry)
        if user_fields:
            await session.observe_user(user_fields)
        if channel_fields:
            await session.observe_channel(channel_fields)

        try:
            result = await command.execute(argv, fallback)
        finally:
            await session.flush()

        await session.send(result)
        return result

    async def dispatch_shortcut(
        self, session: Session, content: str, prefixed: bool = False
    ) -> str | None:
        """Dispatch ``content`` if it matches a shortcut, else return ``None``."""
        argv = self.app.registry.resolve_shortcut(content, prefixed)
        if argv is None:
            return None
        logger.debug("Shortcut matched %r -> %s", content, argv.name)
        return await self.dispatch(session, argv)
