"""
Parsing of command and option declaration strings.

A command is declared as ``"name <required> [optional:type] [rest...]"`` and
an option as ``"-s, --long <value> description"``. Tokenizing user input is
not handled here: only the declared surface of a command is parsed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from dispatch_core.common.exceptions import ConfigurationError
from dispatch_core.interfaces.model_bases import InternalDTO

_BRACKET_PATTERN = re.compile(r"<([^>]+)>|\[([^\]]+)\]")
_OPTION_ALIAS_PATTERN = re.compile(r"^\s*(-{1,2}[\w.\-]+(?:\s*,\s*-{1,2}[\w.\-]+)*)")


@dataclass
class ArgumentDeclaration(InternalDTO):
    name: str
    type: str | None = None
    required: bool = False
    variadic: bool = False


@dataclass
class OptionDeclaration(InternalDTO):
    name: str
    description: str = ""
    aliases: list[str] = field(default_factory=list)
    argument: ArgumentDeclaration | None = None
    authority: int = 0
    not_usage: bool = False
    type: Any = None
    fallback: Any = None
    value: Any = None
    hidden: bool = False


def parse_argument(content: str, required: bool) -> ArgumentDeclaration:
    content = content.strip()
    variadic = False
    if content.startswith("..."):
        variadic, content = True, content[3:]
    elif content.endswith("..."):
        variadic, content = True, content[:-3]
    name, _, type_name = content.partition(":")
    return ArgumentDeclaration(
        name=name.strip(),
        type=type_name.strip() or None,
        required=required,
        variadic=variadic,
    )


def parse_arguments(source: str) -> list[ArgumentDeclaration]:
    """Parse every ``<...>`` and ``[...]`` group of a declaration."""
    arguments: list[ArgumentDeclaration] = []
    for match in _BRACKET_PATTERN.finditer(source):
        required, optional = match.groups()
        arguments.append(parse_argument(required or optional, required is not None))
    return arguments


def split_declaration(definition: str) -> tuple[str, str]:
    """Split ``"path <args>"`` into its lower-cased path and the argument part."""
    definition = definition.strip()
    if not definition:
        raise ConfigurationError("command name cannot be empty")
    path, _, decl = definition.partition(" ")
    return path.lower(), decl.strip()


def parse_option(name: str, source: str, **config: Any) -> OptionDeclaration:
    """Parse an option declaration.

    Args:
        name: The key under which the parsed option value is stored
        source: Declaration string such as ``"-t, --text <value> some text"``
        **config: Option policy (``authority``, ``not_usage``, ``type`` ...)

    Returns:
        The option declaration
    """
    aliases: list[str] = []
    rest = source
    match = _OPTION_ALIAS_PATTERN.match(source)
    if match:
        aliases = [alias.strip().lstrip("-") for alias in match.group(1).split(",")]
        rest = source[match.end():]

    argument: ArgumentDeclaration | None = None
    bracket = _BRACKET_PATTERN.match(rest.strip())
    if bracket:
        required, optional = bracket.groups()
        argument = parse_argument(required or optional, required is not None)
        rest = rest.strip()[bracket.end():]

    if name not in aliases:
        aliases.insert(0, name)

    unknown = set(config) - {
        "authority",
        "not_usage",
        "type",
        "fallback",
        "value",
        "hidden",
    }
    if unknown:
        raise ConfigurationError(
            f"unknown option config for {name!r}: {', '.join(sorted(unknown))}"
        )

    return OptionDeclaration(
        name=name,
        description=rest.strip(),
        aliases=aliases,
        argument=argument,
        **config,
    )
