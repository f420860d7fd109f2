"""
Domain time utilities (pure).

Centralized timestamp validation and resolution helpers.

The remote service sends instants in several wire shapes:
- plain ISO-8601 strings (sometimes with a trailing 'Z', sometimes naive)
- wrapped dates: {"$date": "2025-01-01T00:00:00Z"}
- wrapped epoch milliseconds: {"$date": 1735689600000} or
  {"$date": {"$numberLong": "1735689600000"}}

Everything past the normalizer boundary is a timezone-aware UTC datetime.
Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Mapping, Optional

DAY = timedelta(milliseconds=86_400_000)


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that domain timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # Naive values from the backend are interpreted as UTC.
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _from_epoch_ms(value: Any) -> Optional[datetime]:
    try:
        millis = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _from_text(text: str) -> Optional[datetime]:
    text = text.strip()
    if not text:
        return None
    # Python's fromisoformat doesn't consistently accept 'Z' across versions.
    try:
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except (ValueError, OverflowError):
        return None


def resolve_instant(value: Any) -> Optional[datetime]:
    """
    Resolve any supported wire shape into a UTC datetime.

    Returns None when the value carries no usable instant. Never raises.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        try:
            return _as_utc(value)
        except OverflowError:
            return None
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        return _from_text(value)
    if isinstance(value, (int, float)):
        return _from_epoch_ms(value)
    if isinstance(value, Mapping):
        inner = value.get("$date")
        if isinstance(inner, Mapping):
            return _from_epoch_ms(inner.get("$numberLong"))
        if inner is not None:
            return resolve_instant(inner)
    return None


def unwrap_instant(value: Any, now: datetime) -> datetime:
    """
    Date-unwrap rule for required instants.

    Plain strings are used as-is, wrapped dates are unwrapped, and anything
    else resolves to `now` as a last resort.
    """

    resolved = resolve_instant(value)
    return resolved if resolved is not None else now


def start_of_day(day: date) -> datetime:
    """UTC midnight at the start of the given calendar day."""

    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def to_wire(dt: datetime) -> str:
    """Render an instant for outbound requests (UTC, millisecond precision, 'Z')."""

    return _as_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")
