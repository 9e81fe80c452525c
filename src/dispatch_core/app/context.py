"""
Extension contexts.

Every registration made through a context (commands, hooks, field
collectors, nested plugins) pushes an undo callable onto the context's
teardown list. Disposing the context runs the list in reverse order, which
removes everything the extension installed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from dispatch_core.common.exceptions import ConfigurationError
from dispatch_core.common.utils import Disposable, remove
from dispatch_core.constants import BEFORE_COMMAND_EVENT

if TYPE_CHECKING:
    from dispatch_core.app.application import Application
    from dispatch_core.domain.command import Command
    from dispatch_core.domain.session import Session
    from dispatch_core.services.command_registry import CommandRegistry, Listener
    from dispatch_core.services.field_collector import FieldCollector

logger = logging.getLogger(__name__)

SessionFilter = Callable[["Session"], bool]
Plugin = Any


class ExtensionContext:
    """Registration scope of one extension."""

    def __init__(
        self,
        app: Application,
        parent: ExtensionContext | None = None,
        filter: SessionFilter | None = None,
    ) -> None:
        self.app = app
        self.parent = parent
        self._filter = filter
        self.disposables: list[Disposable] = []

    def __repr__(self) -> str:
        return f"<ExtensionContext disposables={len(self.disposables)}>"

    @property
    def registry(self) -> CommandRegistry:
        return self.app._registry

    def match(self, session: Session) -> bool:
        """Whether hooks and commands of this context apply to ``session``."""
        if self.parent is not None and not self.parent.match(session):
            return False
        return self._filter is None or bool(self._filter(session))

    def _track(self, disposable: Disposable) -> Disposable:
        self.disposables.append(disposable)
        return disposable

    def command(self, definition: str, description: str = "", **config: Any) -> Command:
        """Declare a command owned by this context.

        Raises:
            ConfigurationError: If the declaration is invalid
        """
        return self.registry.register(definition, description, context=self, **config)

    def on(self, event: str, listener: Listener, append: bool = True) -> Disposable:
        return self._track(self.registry.on(event, listener, context=self, append=append))

    def before_command(self, callback: Listener, append: bool = False) -> Disposable:
        """Install a global veto hook. Hooks are prepended unless ``append``."""
        return self.on(BEFORE_COMMAND_EVENT, callback, append=append)

    def user_fields(self, collector: FieldCollector) -> Disposable:
        collectors = self.registry.user_field_collectors
        collectors.append(collector)
        return self._track(lambda: remove(collectors, collector))

    def channel_fields(self, collector: FieldCollector) -> Disposable:
        collectors = self.registry.channel_field_collectors
        collectors.append(collector)
        return self._track(lambda: remove(collectors, collector))

    def filtered(self, predicate: SessionFilter) -> ExtensionContext:
        """Return a child context restricted to sessions matching ``predicate``."""
        child = ExtensionContext(self.app, parent=self, filter=predicate)
        self._track(child.dispose)
        return child

    def plugin(self, plugin: Plugin, config: Any = None) -> ExtensionContext:
        """Install ``plugin`` into a child context.

        ``plugin`` is either a callable ``(ctx, config)`` or an object with an
        ``apply(ctx, config)`` method. Returns the child context, whose
        ``dispose()`` removes only what the plugin installed.

        Raises:
            ConfigurationError: If ``plugin`` is neither
        """
        if callable(plugin):
            apply = plugin
        elif callable(getattr(plugin, "apply", None)):
            apply = plugin.apply
        else:
            raise ConfigurationError(
                "invalid plugin", details={"type": type(plugin).__name__}
            )
        child = ExtensionContext(self.app, parent=self)
        self._track(child.dispose)
        apply(child, config)
        logger.debug("Installed plugin %s", getattr(plugin, "__name__", plugin))
        return child

    def dispose(self) -> None:
        """Undo every registration of this context, newest first."""
        while self.disposables:
            self.disposables.pop()()
