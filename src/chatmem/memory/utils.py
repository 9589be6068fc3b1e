"""Utility functions for memory operations."""

import threading
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time truncated to millisecond precision.

    Stored timestamps only carry milliseconds, so truncating here keeps a
    freshly created value equal to the one read back from storage.

    Example:
        >>> utc_now().microsecond % 1000
        0
    """
    return truncate_to_millis(datetime.now(timezone.utc))


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision and normalize to UTC.

    Naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with milliseconds and 'Z' suffix.

    Returns:
        Timestamp string (e.g., "2025-10-26T14:30:00.123Z")

    Example:
        >>> format_timestamp(datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc))
        '2025-01-02T03:04:05.678Z'
    """
    value = truncate_to_millis(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Accepts the 'Z' suffix and offsets; naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        return truncate_to_millis(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return truncate_to_millis(datetime.fromisoformat(text))


class MonotonicClock:
    """Issues strictly increasing UTC timestamps.

    Wall-clock reads can collide at millisecond resolution when two messages
    are saved back to back. On collision (or a clock step backwards) the
    clock advances one millisecond past the last issued value.
    """

    STEP = timedelta(milliseconds=1)

    def __init__(self):
        self._last: datetime | None = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            current = utc_now()
            if self._last is not None and current <= self._last:
                current = self._last + self.STEP
            self._last = current
            return current
