"""
Policy middleware.

Installs two ``before-command`` hooks:

- user policy: authority of the command and of each supplied option, daily
  usage and minimum re-invocation interval, both keyed by the command's
  usage name;
- argv shape: argument count and unknown options, when enabled per command.

Vetoes are template-formatted hints, or an empty string when the command's
``show_warning`` is off.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from dispatch_core.common.time_utils import DAY_MS, get_date_number, now_ms
from dispatch_core.constants import DATE_MARKER, MessageKey, PolicyField
from dispatch_core.domain.computed import Computed

if TYPE_CHECKING:
    from dispatch_core.app.context import ExtensionContext
    from dispatch_core.domain.argv import Argv
    from dispatch_core.domain.command import Command

logger = logging.getLogger(__name__)


def get_usage(name: str, user: dict[str, Any]) -> int:
    """Return today's count for ``name``, resetting the record on a new day."""
    date = get_date_number()
    if user["usage"].get(DATE_MARKER) != date:
        user["usage"] = {DATE_MARKER: date}
    return user["usage"].get(name, 0)


def check_usage(name: str, user: dict[str, Any], max_usage: float | None = None) -> bool:
    """Return ``True`` when the bucket is exhausted, otherwise count this call."""
    if user.get("usage") is None:
        return False
    count = get_usage(name, user)
    if max_usage is not None and count >= max_usage:
        return True
    if max_usage:
        user["usage"][name] = count + 1
    return False


def check_timer(name: str, user: dict[str, Any], offset: int | None = None) -> bool:
    """Return ``True`` while the bucket's timer is running, otherwise re-arm it.

    Expired entries are swept at most once per day.
    """
    timers = user.get("timers")
    if timers is None:
        return False
    now = now_ms()
    if not now <= timers.get(DATE_MARKER, -math.inf):
        for key in list(timers):
            if now > timers[key]:
                del timers[key]
        timers[DATE_MARKER] = now + DAY_MS
    if name in timers and now <= timers[name]:
        return True
    if offset is not None:
        timers[name] = now + offset
    return False


def _hint(command: Command, key: MessageKey, *params: Any) -> str:
    if not command.config.show_warning:
        return ""
    return command.context.app.templates.format(key, *params)


def check_user_policy(argv: Argv) -> str | None:
    session, command = argv.session, argv.command
    if session is None or command is None or session.user is None:
        return None
    user = session.user
    options = argv.options or {}

    authority = user.get(PolicyField.AUTHORITY.value)
    if authority is not None:
        if command.get_config("authority", session) > authority:
            return _hint(command, MessageKey.LOW_AUTHORITY)

    is_usage = True
    for option in command._options.values():
        if option.name in options:
            if authority is not None and option.authority > authority:
                return _hint(command, MessageKey.LOW_AUTHORITY)
            if option.not_usage:
                is_usage = False

    if is_usage:
        name = command.usage_name
        min_interval = command.get_config("min_interval", session)
        max_usage = command.get_config("max_usage", session)

        if max_usage < math.inf and check_usage(name, user, max_usage):
            return _hint(command, MessageKey.USAGE_EXHAUSTED)

        if min_interval > 0 and check_timer(name, user, min_interval):
            return _hint(command, MessageKey.TOO_FREQUENT)
    return None


def check_argv_shape(argv: Argv) -> str | None:
    command = argv.command
    if command is None:
        return None
    args = argv.args or []
    options = argv.options or {}

    if command.config.check_arg_count:
        declared = command._arguments
        if len(args) < len(declared) and declared[len(args)].required:
            return _hint(command, MessageKey.INSUFFICIENT_ARGUMENTS)
        final = declared[-1] if declared else None
        if len(args) > len(declared) and (
            final is None or (final.type != "text" and not final.variadic)
        ):
            return _hint(command, MessageKey.REDUNDANT_ARGUMENTS)

    if command.config.check_unknown:
        unknown = [key for key in options if key not in command._options]
        if unknown:
            return _hint(command, MessageKey.UNKNOWN_OPTION, ", ".join(unknown))
    return None


def _is_positive(value: Any) -> bool:
    return isinstance(value, Computed) or value.value > 0


def collect_policy_fields(argv: Argv, fields: set[str]) -> None:
    """Request the user fields the user policy will actually read."""
    command = argv.command
    if command is None:
        return
    options = argv.options or {}
    config = command.config

    fetch_authority = _is_positive(config.authority)
    fetch_usage = isinstance(config.max_usage, Computed) or config.max_usage.value < math.inf
    fetch_timers = _is_positive(config.min_interval)
    for option in command._options.values():
        if option.name in options:
            if option.authority > 0:
                fetch_authority = True
            if option.not_usage:
                fetch_usage = fetch_timers = False
        elif argv.tokens and option.authority > 0:
            fetch_authority = True

    if fetch_authority:
        fields.add(PolicyField.AUTHORITY.value)
    if fetch_usage:
        fields.add(PolicyField.USAGE.value)
    if fetch_timers:
        fields.add(PolicyField.TIMERS.value)


def apply_validation(ctx: ExtensionContext, config: dict[str, Any] | None = None) -> None:
    ctx.user_fields(collect_policy_fields)
    # prepended: the shape check runs before the user policy consumes usage
    ctx.before_command(check_user_policy)
    ctx.before_command(check_argv_shape)
