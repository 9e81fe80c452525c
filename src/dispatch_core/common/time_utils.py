"""Clock helpers shared by the throttling policy.

All instants are integer milliseconds since the epoch so that persisted
``usage``/``timers`` sub-records stay integral.
"""

from __future__ import annotations

import time

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


def now_ms() -> int:
    """Return the current instant in milliseconds."""
    return int(time.time() * 1000)


def local_offset_minutes(timestamp_ms: int | None = None) -> int:
    """Return the local timezone offset (local - UTC) in minutes."""
    seconds = (timestamp_ms if timestamp_ms is not None else now_ms()) / 1000
    local = time.localtime(seconds)
    return int(local.tm_gmtoff // 60)


def get_date_number(
    timestamp_ms: int | None = None, offset_minutes: int | None = None
) -> int:
    """Return the number of whole local days elapsed since the epoch.

    Args:
        timestamp_ms: Instant to convert, defaults to now
        offset_minutes: Local offset from UTC, defaults to the system timezone

    Returns:
        The day number used as the ``$date`` marker of usage records
    """
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    if offset_minutes is None:
        offset_minutes = local_offset_minutes(timestamp_ms)
    return (timestamp_ms // MINUTE_MS + offset_minutes) // (24 * 60)
