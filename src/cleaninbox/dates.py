"""Date helpers. All datetimes handed out are timezone-aware (UTC when unknown)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_date(value: datetime | int | float | str) -> datetime:
    """Convert a datetime, an epoch timestamp in milliseconds or a date string.

    Strings may be ISO-8601 (``2025-06-09T14:23:30Z``) or RFC 2822 as found
    in ``Date`` headers (``Mon, 09 Jun 2025 14:23:30 +0000``).

    Raises:
        ValueError: if the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, bool):
        raise ValueError(f"Unrecognized date input: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty date string")
        try:
            return _aware(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        try:
            return _aware(parsedate_to_datetime(text))
        except (TypeError, ValueError, IndexError) as exc:
            raise ValueError(f"Unrecognized date string: {value!r}") from exc
    raise ValueError(f"Unrecognized date input: {value!r}")


def diff_days(date1, date2) -> int:
    """Whole days between two dates, as an absolute value."""
    delta = abs(parse_date(date2) - parse_date(date1))
    return delta.days


def is_older_than_days(value, days: float, now: datetime | None = None) -> bool:
    """True if *value* is strictly before ``now - days``."""
    now = _aware(now) if now else utcnow()
    return parse_date(value) < now - timedelta(days=days)


def format_date_short(value) -> str:
    """Format a date as ``YYYY-MM-DD`` in UTC."""
    return parse_date(value).astimezone(timezone.utc).strftime("%Y-%m-%d")
