"""
Command domain model.

A command is a named node of the command tree. It owns its declared surface
(arguments, options, usage, examples), its policy configuration and two
ordered handler lists: checkers, which may veto an invocation, and actions,
which implement the behavior and are chained through ``argv.next``.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from pydantic import ConfigDict, field_validator

from dispatch_core.common.exceptions import ConfigurationError
from dispatch_core.common.utils import Disposable, maybe_await, remove
from dispatch_core.constants import BEFORE_COMMAND_EVENT, COMMAND_ADDED_EVENT
from dispatch_core.domain.computed import (
    Computed,
    ComputedValue,
    LiteralValue,
    as_computed,
    evaluate,
)
from dispatch_core.domain.declaration import (
    ArgumentDeclaration,
    OptionDeclaration,
    parse_arguments,
    parse_option,
)
from dispatch_core.interfaces.model_bases import DomainModel, InternalDTO
from dispatch_core.services.command_executor import execute_command

if TYPE_CHECKING:
    from dispatch_core.app.context import ExtensionContext
    from dispatch_core.config.app_config import CommandDefaults
    from dispatch_core.domain.argv import Argv
    from dispatch_core.domain.session import Session
    from dispatch_core.services.command_registry import CommandRegistry
    from dispatch_core.services.field_collector import FieldCollector

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]
Usage = Union[str, Callable[..., Any]]


class CommandConfig(DomainModel):
    """Policy configuration of a command."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True, validate_assignment=True, extra="forbid"
    )

    hide_options: bool = False
    hidden: bool = False
    authority: ComputedValue = LiteralValue(1)
    check_unknown: bool = False
    check_arg_count: bool = False
    show_warning: bool = True
    usage_name: str | None = None
    max_usage: ComputedValue = LiteralValue(math.inf)
    # milliseconds
    min_interval: ComputedValue = LiteralValue(0)
    patch: bool = False

    @field_validator("authority", "max_usage", "min_interval", mode="before")
    @classmethod
    def _wrap_computed(cls, value: Any) -> ComputedValue:
        return as_computed(value)

    @classmethod
    def from_defaults(cls, defaults: CommandDefaults, **overrides: Any) -> CommandConfig:
        values = defaults.model_dump()
        values.update(overrides)
        return cls(**values)


@dataclass
class Shortcut(InternalDTO):
    name: str | re.Pattern[str]
    command: Command
    prefix: bool = False
    fuzzy: bool = False
    args: list[str] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)


class Command:
    """A named, tree-structured, configurable unit of behavior."""

    def __init__(
        self,
        name: str,
        declaration: str,
        description: str,
        context: ExtensionContext,
    ) -> None:
        self.name = name
        self.declaration = declaration
        self.description = description
        self.context = context
        self.config = CommandConfig.from_defaults(context.app.config.command)
        self.children: list[Command] = []
        self.parent: Command | None = None

        self._aliases: list[str] = []
        self._examples: list[str] = []
        self._usage: Usage | None = None
        self._disposed = False
        self._disposables: list[Disposable] | None = None

        self._arguments: list[ArgumentDeclaration] = parse_arguments(declaration)
        self._options: dict[str, OptionDeclaration] = {}
        self._named_options: dict[str, OptionDeclaration] = {}

        self._user_fields: list[FieldCollector] = []
        self._channel_fields: list[FieldCollector] = []
        self._actions: list[Handler] = []
        self._checkers: list[Handler] = [self._run_before_command_hooks]

        self._register_alias(name)
        self.registry._command_list.append(self)
        self.registry.emit(COMMAND_ADDED_EVENT, self)

    def __repr__(self) -> str:
        return f"Command <{self.name}>"

    @property
    def registry(self) -> CommandRegistry:
        return self.context.registry

    @property
    def usage_name(self) -> str:
        """The throttling bucket shared by commands with the same usage name."""
        return self.config.usage_name or self.name

    @property
    def arguments(self) -> list[ArgumentDeclaration]:
        return list(self._arguments)

    @property
    def options(self) -> dict[str, OptionDeclaration]:
        return dict(self._options)

    @property
    def aliases(self) -> list[str]:
        return list(self._aliases)

    @property
    def examples(self) -> list[str]:
        return list(self._examples)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _track(self, disposable: Disposable) -> None:
        if self._disposables is not None:
            self._disposables.append(disposable)

    def _register_alias(self, name: str) -> None:
        name = name.lower()
        self.registry.register_alias(name, self)
        if name not in self._aliases:
            self._aliases.append(name)

    async def _run_before_command_hooks(self, argv: Argv, *args: Any) -> Any:
        return await self.registry.serial(BEFORE_COMMAND_EVENT, argv)

    def alias(self, *names: str) -> Command:
        if self._disposed:
            return self
        for name in names:
            name = name.lower()
            if name in self._aliases:
                continue
            self._register_alias(name)

            def _unregister(name: str = name) -> None:
                remove(self._aliases, name)
                self.registry.unregister_alias(name, self)

            self._track(_unregister)
        return self

    def shortcut(
        self,
        name: str | re.Pattern[str],
        *,
        prefix: bool = False,
        fuzzy: bool = False,
        args: list[str] | None = None,
        options: dict[str, Any] | None = None,
    ) -> Command:
        if self._disposed:
            return self
        shortcut = Shortcut(
            name=name,
            command=self,
            prefix=prefix,
            fuzzy=fuzzy,
            args=list(args or []),
            options=dict(options or {}),
        )
        self.registry.add_shortcut(shortcut)
        self._track(lambda: self.registry.remove_shortcut(shortcut))
        return self

    def subcommand(self, definition: str, description: str = "", **config: Any) -> Command:
        """Declare a child command.

        The child's name is this command's name joined with ``/``, or directly
        appended when ``definition`` starts with ``.``.
        """
        separator = "" if definition.startswith(".") else "/"
        definition = self.name + separator + definition
        if self._disposed:
            config["patch"] = True
        return self.context.command(definition, description, **config)

    def usage(self, text: Usage) -> Command:
        self._usage = text
        return self

    async def get_usage_text(self, session: Session | None) -> str:
        if self._usage is None:
            return ""
        if isinstance(self._usage, str):
            return self._usage
        return await maybe_await(self._usage(session))

    def example(self, example: str) -> Command:
        self._examples.append(example)
        return self

    def option(self, name: str, declaration: str = "", **config: Any) -> Command:
        """Declare an option.

        Args:
            name: Key under which the option's value is stored
            declaration: Aliases, value placeholder and description, e.g.
                ``"-t, --text <value> text to echo"``
            **config: ``authority``, ``not_usage``, ``type``, ``fallback``,
                ``value``, ``hidden``
        """
        config.setdefault("authority", self.context.app.config.option.authority)
        option = parse_option(name, declaration, **config)
        for alias in option.aliases:
            previous = self._named_options.get(alias)
            if previous is not None and previous.name != name:
                raise ConfigurationError(
                    f'duplicate option names: "{alias}" on command "{self.name}"'
                )
        previous = self._options.get(name)
        if previous is not None:
            self.remove_option(name)
        self._options[name] = option
        for alias in option.aliases:
            self._named_options[alias] = option
        self._track(lambda: self.remove_option(name))
        return self

    def remove_option(self, name: str) -> bool:
        option = self._options.pop(name, None)
        if option is None:
            return False
        for alias in option.aliases:
            if self._named_options.get(alias) is option:
                del self._named_options[alias]
        return True

    def find_option(self, name: str) -> OptionDeclaration | None:
        return self._options.get(name) or self._named_options.get(name)

    def user_fields(self, collector: FieldCollector) -> Command:
        self._user_fields.append(collector)
        return self

    def channel_fields(self, collector: FieldCollector) -> Command:
        self._channel_fields.append(collector)
        return self

    def match(self, session: Session) -> bool:
        """Whether the command is visible to the session's user."""
        user = session.user or {}
        authority = user.get("authority")
        if authority is None:
            authority = math.inf
        return self.context.match(session) and self.get_config("authority", session) <= authority

    def get_config(self, key: str, session: Session | None) -> Any:
        """Resolve a policy value, evaluating per-session callables."""
        value = getattr(self.config, key)
        if isinstance(value, (LiteralValue, Computed)):
            return evaluate(value, session)
        return value

    def before(self, callback: Handler, append: bool = False) -> Command:
        """Install a checker. Prepended checkers run first."""
        if append:
            self._checkers.append(callback)
        else:
            self._checkers.insert(0, callback)
        self._track(lambda: remove(self._checkers, callback))
        return self

    def action(self, callback: Handler, prepend: bool = False) -> Command:
        if prepend:
            self._actions.insert(0, callback)
        else:
            self._actions.append(callback)
        self._track(lambda: remove(self._actions, callback))
        return self

    def stringify(self, args: list[Any], options: dict[str, Any]) -> str:
        """Reconstruct a human-readable source text for an invocation."""
        output = self.name
        if args:
            output += " " + " ".join(str(arg) for arg in args)
        for key, value in options.items():
            option = self._options.get(key)
            full_name = option.name if option is not None else key
            if value is True:
                output += f" --{full_name}"
            elif value is False:
                output += f" --no-{full_name}"
            else:
                output += f" --{full_name} {value}"
        return output

    async def execute(
        self,
        argv: Argv,
        fallback: Callable[[Any], Awaitable[Any]] | None = None,
    ) -> str:
        return await execute_command(self, argv, fallback)

    def dispose(self) -> None:
        self.registry.dispose(self)
