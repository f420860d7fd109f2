"""
Domain: lead search and filtering (pure).

visible_leads(leads, query, filters) returns the subset of leads that pass every
active criterion, in input order, without mutating anything.

Contract excerpts implemented here:
- Text search: case-insensitive substring of the query in the name, or substring
  of the query in the raw phone value. An empty query matches everything.
- Set filters (course, program type, profession, status, pipeline, assigned user):
  an empty selection passes; otherwise the lead's value must equal one of the
  selected values, case-insensitively. A missing value fails a non-empty filter.
- Source filter: "whatsapp" and "manual" are fuzzy categories (substring match in
  either direction); every other source requires case-insensitive equality.
- Date range: from <= created_at <= to + 86 400 000 ms (end-of-day inclusive).
  Calendar days are UTC days.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from .lead import Lead
from .time import DAY, start_of_day

FUZZY_SOURCE_CATEGORIES: Tuple[str, ...] = ("whatsapp", "manual")

SELECTION_CATEGORIES: Tuple[str, ...] = (
    "courses",
    "program_types",
    "professions",
    "sources",
    "statuses",
    "pipelines",
    "assigned_users",
)


@dataclass(frozen=True, slots=True)
class FilterState:
    """Filter criteria for the lead list. Not persisted."""

    courses: Tuple[str, ...] = ()
    program_types: Tuple[str, ...] = ()
    professions: Tuple[str, ...] = ()
    sources: Tuple[str, ...] = ()
    statuses: Tuple[str, ...] = ()
    pipelines: Tuple[str, ...] = ()
    assigned_users: Tuple[str, ...] = ()
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    def is_active(self) -> bool:
        """True when any criterion would narrow the result."""

        if self.from_date is not None or self.to_date is not None:
            return True
        return any(getattr(self, category) for category in SELECTION_CATEGORIES)

    def toggle(self, category: str, value: str) -> "FilterState":
        """
        Return a new FilterState with `value` added to or removed from `category`.

        Raises:
            ValueError: If `category` is not a selection category
        """

        if category not in SELECTION_CATEGORIES:
            raise ValueError(f"Unknown filter category: {category!r}")
        current: Tuple[str, ...] = getattr(self, category)
        if value in current:
            updated = tuple(item for item in current if item != value)
        else:
            updated = current + (value,)
        return replace(self, **{category: updated})


INITIAL_FILTERS = FilterState()


def _folded(values: Iterable[str]) -> frozenset[str]:
    return frozenset(value.lower() for value in values)


def matches_text(lead: Lead, query: str) -> bool:
    if not query:
        return True
    return query.lower() in lead.name.lower() or query in lead.phone


def matches_selection(value: Optional[str], selected: Sequence[str]) -> bool:
    if not selected:
        return True
    if not value:
        return False
    return value.lower() in _folded(selected)


def _source_token_matches(token: str, source: str) -> bool:
    token = token.lower()
    category = next((c for c in FUZZY_SOURCE_CATEGORIES if c in token), None)
    if category is None:
        return token == source
    return category in source or token in source or source in token


def matches_source(lead: Lead, selected: Sequence[str]) -> bool:
    if not selected:
        return True
    source = (lead.source or "").lower()
    if not source:
        return False
    return any(_source_token_matches(token, source) for token in selected)


def matches_date_range(lead: Lead, from_date: Optional[date], to_date: Optional[date]) -> bool:
    if from_date is not None and lead.created_at < start_of_day(from_date):
        return False
    if to_date is not None and lead.created_at > start_of_day(to_date) + DAY:
        return False
    return True


def lead_matches(lead: Lead, query: str, filters: FilterState) -> bool:
    """Conjunction of every sub-predicate."""

    return (
        matches_text(lead, query)
        and matches_selection(lead.course, filters.courses)
        and matches_selection(lead.program_type, filters.program_types)
        and matches_selection(lead.profession, filters.professions)
        and matches_source(lead, filters.sources)
        and matches_selection(lead.status, filters.statuses)
        and matches_selection(lead.pipeline, filters.pipelines)
        and matches_selection(lead.assigned_to, filters.assigned_users)
        and matches_date_range(lead, filters.from_date, filters.to_date)
    )


def visible_leads(leads: Sequence[Lead], query: str, filters: FilterState) -> List[Lead]:
    """
    Filter leads by search text and structured criteria.

    Args:
        leads: Working set, in display order
        query: Free-text search (name or phone)
        filters: Structured filter state

    Returns:
        New list with the matching leads in input order
    """

    return [lead for lead in leads if lead_matches(lead, query, filters)]
