"""
Tests for `domain/lead_filter.py`.

Covers contract rules:
- Filtering never adds leads, never reorders them, and never mutates the input.
- Empty query and initial filters keep every lead.
- Selection filters are case-insensitive; a missing attribute fails a non-empty filter.
- "whatsapp" and "manual" source tokens match fuzzily; other sources match exactly.
- Date range is inclusive of the whole `to` day.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from domain.aggregation import status_counts
from domain.lead_filter import INITIAL_FILTERS, FilterState, lead_matches, visible_leads


@pytest.fixture
def leads(make_lead):
    return [
        make_lead(name="Asha Rao", phone="9876543210", course="Data Science", source="WhatsApp", status="Hot"),
        make_lead(name="Ravi Kumar", phone="9123456780", course="MBA", source="Website", status="Warm",
                  assigned_to="priya"),
        make_lead(name="Meena", phone="9000000001", course=None, source="manual entry", status="cold"),
        make_lead(name="Arjun", phone="9000000002", course="data science", source="Facebook", pipeline="Enrolled"),
    ]


def test_empty_query_and_initial_filters_keep_everything(leads) -> None:
    assert visible_leads(leads, "", INITIAL_FILTERS) == leads
    assert INITIAL_FILTERS.is_active() is False


def test_result_is_ordered_subset_and_input_untouched(leads) -> None:
    snapshot = list(leads)
    filters = FilterState(courses=("Data Science",))

    result = visible_leads(leads, "a", filters)

    assert [lead.name for lead in result] == ["Asha Rao", "Arjun"]
    assert all(lead in leads for lead in result)
    assert leads == snapshot


def test_text_search_name_case_insensitive_and_phone_substring(leads) -> None:
    assert [lead.name for lead in visible_leads(leads, "RAVI", INITIAL_FILTERS)] == ["Ravi Kumar"]
    assert [lead.name for lead in visible_leads(leads, "4321", INITIAL_FILTERS)] == ["Asha Rao"]
    assert visible_leads(leads, "nobody", INITIAL_FILTERS) == []


def test_selection_filter_case_insensitive_and_missing_value_fails(leads) -> None:
    result = visible_leads(leads, "", FilterState(courses=("DATA SCIENCE",)))
    statuses = visible_leads(leads, "", FilterState(statuses=("Cold",)))

    assert [lead.name for lead in result] == ["Asha Rao", "Arjun"]
    assert "Meena" not in [lead.name for lead in result]
    assert [lead.name for lead in statuses] == ["Meena", "Arjun"]


def test_assigned_user_filter(leads) -> None:
    result = visible_leads(leads, "", FilterState(assigned_users=("Priya",)))

    assert [lead.name for lead in result] == ["Ravi Kumar"]


def test_pipeline_filter(leads) -> None:
    result = visible_leads(leads, "", FilterState(pipelines=("enrolled",)))

    assert [lead.name for lead in result] == ["Arjun"]


@pytest.mark.parametrize(
    "token, source, expected",
    [
        ("WhatsApp", "WhatsApp", True),
        ("whatsapp", "WhatsApp Business", True),
        ("WhatsApp", "whatsapp-business", True),
        ("WhatsApp", "Website", False),
        ("WhatsApp Ads", "whatsapp", True),
        ("Manual", "manual entry", True),
        ("Website", "website", True),
        ("Web", "Website", False),
        ("Facebook", "Facebook Ads", False),
    ],
)
def test_source_matching(make_lead, token, source, expected) -> None:
    lead = make_lead(source=source)

    assert lead_matches(lead, "", FilterState(sources=(token,))) is expected


def test_date_range_includes_whole_to_day(make_lead) -> None:
    start = datetime(2025, 1, 10, tzinfo=timezone.utc)
    early = make_lead(created_at=start - timedelta(milliseconds=1))
    first = make_lead(created_at=start)
    late_same_day = make_lead(created_at=datetime(2025, 1, 12, 23, 59, 59, tzinfo=timezone.utc))
    boundary = make_lead(created_at=datetime(2025, 1, 13, tzinfo=timezone.utc))
    after = make_lead(created_at=datetime(2025, 1, 13, 0, 0, 1, tzinfo=timezone.utc))
    filters = FilterState(from_date=date(2025, 1, 10), to_date=date(2025, 1, 12))

    result = visible_leads([early, first, late_same_day, boundary, after], "", filters)

    assert result == [first, late_same_day, boundary]


def test_filters_are_conjunctive(leads) -> None:
    filters = FilterState(courses=("Data Science",), statuses=("Hot",))

    assert [lead.name for lead in visible_leads(leads, "", filters)] == ["Asha Rao"]


def test_toggle_adds_and_removes_values() -> None:
    once = INITIAL_FILTERS.toggle("courses", "MBA")
    twice = once.toggle("courses", "MBA")

    assert once.courses == ("MBA",)
    assert once.is_active() is True
    assert twice == INITIAL_FILTERS
    assert INITIAL_FILTERS.courses == ()


def test_toggle_unknown_category_raises() -> None:
    with pytest.raises(ValueError):
        INITIAL_FILTERS.toggle("colours", "red")


def test_date_bounds_make_filters_active() -> None:
    assert FilterState(to_date=date(2025, 1, 1)).is_active() is True


def test_hot_filter_scenario_with_counts(make_lead) -> None:
    hot = make_lead(status="Hot", course="Data Science")
    cold = make_lead(status="Cold", course="MERN Stack with AI")

    result = visible_leads([hot, cold], "", FilterState(statuses=("Hot",)))
    counts = status_counts(result)

    assert result == [hot]
    assert (counts.total, counts.hot, counts.warm, counts.cold) == (1, 1, 0, 0)


def test_adding_criteria_never_grows_result(leads) -> None:
    base = FilterState(sources=("WhatsApp", "Website", "Manual"))
    narrower = base.toggle("statuses", "Hot")

    wide = visible_leads(leads, "", base)
    narrow = visible_leads(leads, "", narrower)

    assert len(narrow) <= len(wide)
    assert all(lead in wide for lead in narrow)
