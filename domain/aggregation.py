"""
Domain: dashboard aggregates (pure).

Contract excerpts implemented here:
- Status counts are computed over whatever lead set is given (the dashboard passes
  the filtered set so counts follow the filters). Comparison is case-insensitive.
  Unrecognized statuses count toward total only.
- The reminder queue holds leads with a reminder, earliest first. Ties keep input order.
- Days remaining compares calendar dates only:
  delta_days = reminder.date() - now.date()   (both in now's timezone)
  - delta < 0  -> Overdue (magnitude reported)
  - delta == 0 -> Today
  - delta > 0  -> N days left
  Malformed input yields Invalid; nothing here raises on bad dates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Sequence

from .lead import Lead, LeadStatus
from .time import resolve_instant, utc_now


@dataclass(frozen=True, slots=True)
class StatusCounts:
    total: int
    hot: int
    warm: int
    cold: int


def status_counts(leads: Sequence[Lead]) -> StatusCounts:
    hot = warm = cold = 0
    for lead in leads:
        status = (lead.status or "").lower()
        if status == LeadStatus.HOT.value.lower():
            hot += 1
        elif status == LeadStatus.WARM.value.lower():
            warm += 1
        elif status == LeadStatus.COLD.value.lower():
            cold += 1
    return StatusCounts(total=len(leads), hot=hot, warm=warm, cold=cold)


def reminder_queue(leads: Sequence[Lead]) -> List[Lead]:
    """Leads with a reminder, earliest due first (stable sort)."""

    scheduled = [lead for lead in leads if lead.reminder_at is not None]
    return sorted(scheduled, key=lambda lead: lead.reminder_at)


class DaysRemainingKind(str, Enum):
    OVERDUE = "Overdue"
    TODAY = "Today"
    DAYS_LEFT = "DaysLeft"
    INVALID = "Invalid"


@dataclass(frozen=True, slots=True)
class DaysRemaining:
    """
    Display value for a reminder's due date.

    days is the magnitude of the calendar-day delta (0 for Today and Invalid).
    """

    kind: DaysRemainingKind
    days: int = 0

    @property
    def label(self) -> str:
        if self.kind is DaysRemainingKind.INVALID:
            return "Invalid"
        if self.kind is DaysRemainingKind.TODAY:
            return "Today"
        unit = "day" if self.days == 1 else "days"
        if self.kind is DaysRemainingKind.OVERDUE:
            return f"Overdue by {self.days} {unit}"
        return f"{self.days} {unit} left"


INVALID_DAYS_REMAINING = DaysRemaining(kind=DaysRemainingKind.INVALID)


def _reference_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return utc_now()
    if now.tzinfo is None or now.utcoffset() is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def days_remaining(reminder: Any, now: Optional[datetime] = None) -> DaysRemaining:
    """
    Classify a reminder relative to `now` by calendar date.

    Args:
        reminder: A datetime or any wire date shape
        now: Reference instant; its timezone defines the calendar (default: UTC now)

    Returns:
        DaysRemaining (Invalid when the reminder cannot be resolved)
    """

    instant = resolve_instant(reminder)
    if instant is None:
        return INVALID_DAYS_REMAINING

    reference = _reference_now(now)
    try:
        delta = (instant.astimezone(reference.tzinfo).date() - reference.date()).days
    except (OverflowError, ValueError):
        return INVALID_DAYS_REMAINING

    if delta < 0:
        return DaysRemaining(kind=DaysRemainingKind.OVERDUE, days=-delta)
    if delta == 0:
        return DaysRemaining(kind=DaysRemainingKind.TODAY)
    return DaysRemaining(kind=DaysRemainingKind.DAYS_LEFT, days=delta)


def is_overdue(reminder: Any, now: Optional[datetime] = None) -> bool:
    """True when the reminder instant is already in the past (time of day included)."""

    instant = resolve_instant(reminder)
    if instant is None:
        return False
    return instant < _reference_now(now)
