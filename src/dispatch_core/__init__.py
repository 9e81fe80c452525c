"""Command dispatch core: command registry, dispatch pipeline, policy middleware
and the query/aggregation expression model shared by storage collaborators."""

from dispatch_core.app.application import Application
from dispatch_core.app.context import ExtensionContext
from dispatch_core.common.exceptions import (
    CommandNotFoundError,
    ConfigurationError,
    DispatchCoreError,
    DuplicateCommandError,
    InvalidQueryError,
)
from dispatch_core.config import AppConfig, load_config
from dispatch_core.domain.argv import Argv
from dispatch_core.domain.command import Command
from dispatch_core.domain.session import Session
from dispatch_core.repositories.in_memory_database import InMemoryDatabase

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "Application",
    "Argv",
    "Command",
    "CommandNotFoundError",
    "ConfigurationError",
    "DispatchCoreError",
    "DuplicateCommandError",
    "ExtensionContext",
    "InMemoryDatabase",
    "InvalidQueryError",
    "Session",
    "load_config",
]
