from __future__ import annotations

import logging
from collections.abc import Mapping

from dispatch_core.constants import MessageKey

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: dict[str, str] = {
    MessageKey.LOW_AUTHORITY.value: "Insufficient authority.",
    MessageKey.USAGE_EXHAUSTED.value: "Daily usage limit reached.",
    MessageKey.TOO_FREQUENT.value: "Called too frequently, please try again later.",
    MessageKey.INSUFFICIENT_ARGUMENTS.value: "Missing required arguments.",
    MessageKey.REDUNDANT_ARGUMENTS.value: "Too many arguments.",
    MessageKey.UNKNOWN_OPTION.value: "Unknown option: {0}.",
}


class TemplateService:
    """Formats message keys into user-facing text.

    Templates use positional ``str.format`` fields (``{0}``). Unknown keys
    format to the key itself.
    """

    def __init__(self, templates: Mapping[str, str] | None = None) -> None:
        self._templates: dict[str, str] = dict(DEFAULT_TEMPLATES)
        self._templates.update(templates or {})

    def set(self, key: str, template: str) -> None:
        self._templates[key] = template

    def get(self, key: str) -> str | None:
        return self._templates.get(key)

    def format(self, key: str | MessageKey, *params: object) -> str:
        key = key.value if isinstance(key, MessageKey) else key
        template = self._templates.get(key, key)
        try:
            return template.format(*params)
        except (IndexError, KeyError, ValueError):
            logger.warning("Malformed template for %s: %r", key, template)
            return template
