from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dispatch_core.app.context import ExtensionContext
from dispatch_core.common.logging_utils import configure_logging
from dispatch_core.config.app_config import AppConfig
from dispatch_core.config.config_loader import load_config
from dispatch_core.domain.argv import Argv
from dispatch_core.domain.session import Sender, Session
from dispatch_core.domain.tables import TableRegistry
from dispatch_core.interfaces.database_interface import IDatabase
from dispatch_core.services.command_dispatcher import CommandDispatcher
from dispatch_core.services.command_executor import Continuation
from dispatch_core.services.command_registry import CommandRegistry
from dispatch_core.services.template_service import TemplateService
from dispatch_core.services.validation import apply_validation

logger = logging.getLogger(__name__)


class Application(ExtensionContext):
    """Root context owning the registry and the shared services.

    The policy middleware is installed at construction.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        database: IDatabase | None = None,
        tables: TableRegistry | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self._registry = CommandRegistry()
        if database is not None:
            tables = database.tables
        self.tables = tables or TableRegistry()
        self.database = database
        self.templates = TemplateService(self.config.templates)
        self.dispatcher = CommandDispatcher(self)
        super().__init__(self)
        self.plugin(apply_validation)

    @classmethod
    def from_config(
        cls,
        path: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        database: IDatabase | None = None,
    ) -> Application:
        """Load configuration, configure logging and build the application."""
        config = load_config(path, env)
        configure_logging(config.logging)
        logger.info("Application configured (log level %s)", config.logging.level)
        return cls(config, database)

    def create_session(
        self,
        platform: str,
        user_id: str,
        channel_id: str | None = None,
        *,
        content: str = "",
        sender: Sender | None = None,
        user: dict[str, Any] | None = None,
        channel: dict[str, Any] | None = None,
    ) -> Session:
        return Session(
            platform,
            user_id,
            channel_id,
            content=content,
            database=self.database,
            sender=sender,
            user=user,
            channel=channel,
            user_defaults=self.config.user.model_dump(),
        )

    async def dispatch(
        self, session: Session, argv: Argv, fallback: Continuation | None = None
    ) -> str:
        return await self.dispatcher.dispatch(session, argv, fallback)

    async def dispatch_shortcut(
        self, session: Session, content: str, prefixed: bool = False
    ) -> str | None:
        return await self.dispatcher.dispatch_shortcut(session, content, prefixed)
