"""
Common exception classes for the command dispatch core.

This module defines the exceptions raised at declaration time and by the
dispatcher. Policy vetoes are never raised: they are returned as reply text.
"""

from __future__ import annotations

from typing import Any


class DispatchCoreError(Exception):
    """Base exception class for all dispatch core errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        for key, value in kwargs.items():
            setattr(self, key, value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "type": self.__class__.__name__,
                "details": self.details,
            }
        }


class ConfigurationError(DispatchCoreError):
    """Raised when a declaration is invalid. Fatal at registration time."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, details, **kwargs)


class DuplicateCommandError(ConfigurationError):
    """Raised when an alias is already bound to a different command."""

    def __init__(self, name: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f'duplicate command names: "{name}"', details, name=name)


class InvalidQueryError(ConfigurationError):
    """Raised when a shorthand query cannot be resolved for a table."""

    def __init__(
        self, message: str = "invalid query syntax", details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message, details)


class InvalidFieldError(ConfigurationError):
    """Raised when a field definition string cannot be parsed."""

    def __init__(self, source: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            f"invalid field definition: {source!r}", details, source=source
        )


class CommandNotFoundError(DispatchCoreError):
    """Raised when the dispatcher is asked to run an unknown command."""

    def __init__(self, name: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f'command "{name}" not found', details, name=name)


class DuplicateEntryError(DispatchCoreError):
    """Raised by storage collaborators when a primary or unique key collides."""

    def __init__(self, table: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f'duplicate entry in table "{table}"', details, table=table)
