from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import ConfigDict, Field, field_validator

from dispatch_core.common.logging_utils import LogFormat
from dispatch_core.interfaces.model_bases import DomainModel

logger = logging.getLogger(__name__)


def _env_to_bool(name: str, default: bool, env: Mapping[str, str]) -> bool:
    """Return an environment variable parsed as a boolean flag."""
    value = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_to_float(name: str, default: float, env: Mapping[str, str]) -> float:
    """Return an environment variable parsed as a float."""
    value = env.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid numeric value %s=%r", name, value)
        return default


class CommandDefaults(DomainModel):
    """Policy defaults applied to every newly declared command."""

    model_config = ConfigDict(extra="forbid")

    authority: int = 1
    show_warning: bool = True
    max_usage: float = math.inf
    # milliseconds
    min_interval: int = 0
    check_unknown: bool = False
    check_arg_count: bool = False
    hidden: bool = False
    hide_options: bool = False

    @field_validator("max_usage", mode="before")
    @classmethod
    def _parse_unbounded(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and value.lower() in {"inf", "infinity"}):
            return math.inf
        return value


class OptionDefaults(DomainModel):
    """Defaults applied to every declared option."""

    model_config = ConfigDict(extra="forbid")

    authority: int = 0


class UserDefaults(DomainModel):
    """Fields written into user records created on first contact."""

    model_config = ConfigDict(extra="forbid")

    authority: int = 1


class LoggingConfig(DomainModel):
    """Logging section."""

    level: str = "INFO"
    format: LogFormat = LogFormat.CONSOLE
    file: str | None = None


class AppConfig(DomainModel):
    """Top-level configuration of the dispatch runtime."""

    model_config = ConfigDict(extra="ignore")

    command: CommandDefaults = Field(default_factory=CommandDefaults)
    option: OptionDefaults = Field(default_factory=OptionDefaults)
    user: UserDefaults = Field(default_factory=UserDefaults)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    templates: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AppConfig:
        return cls.model_validate(dict(data))

    def with_env_overrides(self, env: Mapping[str, str]) -> AppConfig:
        """Return a copy with ``DISPATCH_*`` environment overrides applied."""
        command = self.command.model_copy(
            update={
                "authority": int(
                    _env_to_float("DISPATCH_COMMAND_AUTHORITY", self.command.authority, env)
                ),
                "show_warning": _env_to_bool(
                    "DISPATCH_SHOW_WARNING", self.command.show_warning, env
                ),
                "max_usage": _env_to_float(
                    "DISPATCH_MAX_USAGE", self.command.max_usage, env
                ),
                "min_interval": int(
                    _env_to_float("DISPATCH_MIN_INTERVAL", self.command.min_interval, env)
                ),
            }
        )
        logging_config = self.logging.model_copy(
            update={
                "level": env.get("DISPATCH_LOG_LEVEL", self.logging.level),
                "format": LogFormat(env.get("DISPATCH_LOG_FORMAT", self.logging.format)),
                "file": env.get("DISPATCH_LOG_FILE", self.logging.file),
            }
        )
        return self.model_copy(update={"command": command, "logging": logging_config})
