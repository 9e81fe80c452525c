"""
Registry of commands, aliases and shortcuts.

The registry is owned by the application and passed by reference to every
extension context; there is no module-level instance.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from dispatch_core.common.exceptions import ConfigurationError, DuplicateCommandError
from dispatch_core.common.utils import Disposable, maybe_await, remove
from dispatch_core.constants import COMMAND_REMOVED_EVENT
from dispatch_core.domain.argv import Argv
from dispatch_core.domain.command import Command, CommandConfig, Shortcut
from dispatch_core.domain.declaration import parse_arguments, split_declaration

if TYPE_CHECKING:
    from dispatch_core.app.context import ExtensionContext
    from dispatch_core.domain.session import Session
    from dispatch_core.services.field_collector import FieldCollector

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


def _parent_path(path: str) -> str | None:
    index = max(path.rfind("/"), path.rfind("."))
    if index <= 0:
        return None
    return path[:index]


class CommandRegistry:
    """Registry for commands and the hooks that run around them."""

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}
        self._command_list: list[Command] = []
        self._shortcuts: list[Shortcut] = []
        self._hooks: dict[str, list[tuple[ExtensionContext | None, Listener]]] = {}
        self.user_field_collectors: list[FieldCollector] = []
        self.channel_field_collectors: list[FieldCollector] = []

    @property
    def commands(self) -> list[Command]:
        return list(self._command_list)

    @property
    def shortcuts(self) -> list[Shortcut]:
        return list(self._shortcuts)

    def get(self, name: str) -> Command | None:
        """Get a command by name or alias (case-insensitive)."""
        return self._commands.get(name.lower())

    def has_command(self, name: str) -> bool:
        return name.lower() in self._commands

    def register_alias(self, name: str, command: Command) -> None:
        """Bind ``name`` to ``command``.

        Raises:
            DuplicateCommandError: If the name is bound to a different command
        """
        previous = self._commands.get(name)
        if previous is None:
            self._commands[name] = command
        elif previous is not command:
            raise DuplicateCommandError(name)

    def unregister_alias(self, name: str, command: Command) -> None:
        if self._commands.get(name) is command:
            del self._commands[name]

    def register(
        self,
        definition: str,
        description: str = "",
        *,
        context: ExtensionContext,
        **config: Any,
    ) -> Command:
        """Declare a command, or update an existing one.

        ``definition`` is the command path followed by its argument
        declaration. A path containing ``/`` or ``.`` names a child of the
        command found before the last separator; missing parents are
        declared on the way.

        Raises:
            DuplicateCommandError: If the path collides with another alias
            ConfigurationError: If ``patch`` is set and the command is missing
        """
        path, declaration = split_declaration(definition)
        patch = bool(config.pop("patch", False))
        for key in config:
            if key not in CommandConfig.model_fields:
                raise ConfigurationError(f'unknown config "{key}" for command "{path}"')

        command = self.get(path)
        if command is None and patch:
            raise ConfigurationError(f'cannot find command "{path}"')

        parent: Command | None = None
        parent_path = _parent_path(path)
        if parent_path is not None:
            parent = self.get(parent_path) or self.register(parent_path, context=context)

        if command is None:
            command = Command(path, declaration, description, context)
            command._disposables = context.disposables
            context.disposables.append(command.dispose)
            logger.debug("Registered command: %s", path)
        else:
            command._disposables = context.disposables
            if declaration:
                command.declaration = declaration
                command._arguments = parse_arguments(declaration)
            if description:
                command.description = description

        for key, value in config.items():
            setattr(command.config, key, value)

        if parent is not None and command.parent is None:
            command.parent = parent
            parent.children.append(command)
        return command

    def dispose(self, command: Command) -> None:
        """Remove a command and its descendants. Safe to call repeatedly."""
        if command._disposed:
            return
        command._disposed = True
        self.emit(COMMAND_REMOVED_EVENT, command)
        for child in list(command.children):
            self.dispose(child)
        self._shortcuts = [s for s in self._shortcuts if s.command is not command]
        for name in command._aliases:
            self.unregister_alias(name, command)
        remove(self._command_list, command)
        if command.parent is not None:
            remove(command.parent.children, command)
        logger.debug("Disposed command: %s", command.name)

    def add_shortcut(self, shortcut: Shortcut) -> None:
        self._shortcuts.append(shortcut)

    def remove_shortcut(self, shortcut: Shortcut) -> None:
        remove(self._shortcuts, shortcut)

    def resolve_shortcut(self, content: str, prefixed: bool = False) -> Argv | None:
        """Find the first shortcut matching ``content``.

        Shortcuts declared with ``prefix=True`` only match prefixed input.
        Regex shortcuts pass their capture groups as arguments unless the
        shortcut declares fixed ones; fuzzy shortcuts pass the remaining text.
        """
        content = content.strip()
        for shortcut in self._shortcuts:
            if shortcut.prefix and not prefixed:
                continue
            args: list[Any] | None = None
            if isinstance(shortcut.name, re.Pattern):
                match = shortcut.name.match(content)
                if match:
                    args = list(shortcut.args) or [g for g in match.groups() if g is not None]
            elif content == shortcut.name:
                args = list(shortcut.args)
            elif shortcut.fuzzy and content.startswith(shortcut.name):
                rest = content[len(shortcut.name):].strip()
                args = list(shortcut.args) + (rest.split() if rest else [])
            if args is not None:
                return Argv(
                    command=shortcut.command,
                    name=shortcut.command.name,
                    args=args,
                    options=dict(shortcut.options),
                )
        return None

    def on(
        self,
        event: str,
        listener: Listener,
        context: ExtensionContext | None = None,
        append: bool = True,
    ) -> Disposable:
        """Subscribe to ``event``. Returns a callable that unsubscribes."""
        entry = (context, listener)
        hooks = self._hooks.setdefault(event, [])
        if append:
            hooks.append(entry)
        else:
            hooks.insert(0, entry)
        return lambda: remove(hooks, entry)

    def _listeners(self, event: str, session: Session | None) -> list[Listener]:
        return [
            listener
            for context, listener in list(self._hooks.get(event, []))
            if session is None or context is None or context.match(session)
        ]

    def emit(self, event: str, *args: Any) -> None:
        for listener in self._listeners(event, None):
            listener(*args)

    async def serial(self, event: str, argv: Argv) -> Any:
        """Run ``event`` listeners in order and return the first decisive result.

        A listener result of ``None`` or ``False`` passes to the next listener.
        """
        for listener in self._listeners(event, argv.session):
            result = await maybe_await(listener(argv))
            if result is None or result is False:
                continue
            return result
        return None
