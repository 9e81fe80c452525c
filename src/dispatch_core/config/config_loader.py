import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from dispatch_core.common.exceptions import ConfigurationError
from dispatch_core.config.app_config import AppConfig

logger = logging.getLogger(__name__)


def _load_config_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML configuration file.

    Raises:
        ConfigurationError: If the file does not contain a mapping
    """
    with Path(path).open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping",
            details={"type": type(data).__name__},
        )
    return data


def load_config(
    path: str | Path | None = None, env: Mapping[str, str] | None = None
) -> AppConfig:
    """Load configuration from an optional YAML file and the environment.

    Args:
        path: Optional path to a YAML configuration file
        env: Environment mapping, defaults to ``os.environ`` after ``.env`` loading

    Returns:
        The validated application configuration
    """
    if env is None:
        load_dotenv()
        env = os.environ

    data: dict[str, Any] = {}
    if path is not None:
        data = _load_config_file(path)
        logger.debug("Loaded configuration file %s", path)

    try:
        config = AppConfig.from_dict(data)
    except ValidationError as exc:
        raise ConfigurationError(
            "Invalid configuration", details={"errors": exc.errors()}
        ) from exc

    return config.with_env_overrides(env)
