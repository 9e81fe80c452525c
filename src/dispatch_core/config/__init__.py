from dispatch_core.config.app_config import (
    AppConfig,
    CommandDefaults,
    LoggingConfig,
    OptionDefaults,
    UserDefaults,
)
from dispatch_core.config.config_loader import load_config

__all__ = [
    "AppConfig",
    "CommandDefaults",
    "LoggingConfig",
    "OptionDefaults",
    "UserDefaults",
    "load_config",
]
