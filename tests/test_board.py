"""
Tests for `domain/board.py`.

Covers contract rules:
- Every transition returns a new board; the previous board is unchanged.
- A fetch result older than the latest applied one is discarded.
- Pushed leads merge idempotently and only when visible to the viewer.
- The selection follows its identifier across refreshes and removals.
"""

from __future__ import annotations

from dataclasses import replace

from domain.board import LeadBoard


def test_empty_board() -> None:
    board = LeadBoard()

    assert board.leads == ()
    assert board.selected is None
    assert "anything" not in board


def test_with_fetch_replaces_leads_and_users(make_lead, admin, staff) -> None:
    lead = make_lead()
    board = LeadBoard()

    fetched = board.with_fetch(1, [lead], [admin, staff])

    assert fetched.leads == (lead,)
    assert fetched.staff_usernames() == ["sharan", "priya"]
    assert fetched.applied_sequence == 1
    assert board.leads == ()


def test_with_fetch_without_users_keeps_previous_users(make_lead, admin) -> None:
    board = LeadBoard().with_fetch(1, [make_lead()], [admin])

    refreshed = board.with_fetch(2, [make_lead()])

    assert refreshed.users == (admin,)


def test_stale_fetch_is_discarded(make_lead) -> None:
    newer = make_lead(name="newer")
    older = make_lead(name="older")
    board = LeadBoard().with_fetch(2, [newer])

    result = board.with_fetch(1, [older])

    assert result is board
    assert [lead.name for lead in result.leads] == ["newer"]


def test_selection_follows_refreshed_record(make_lead) -> None:
    lead = make_lead(status="Cold")
    board = LeadBoard().with_fetch(1, [lead]).select(lead.lead_id)

    refreshed = board.with_fetch(2, [replace(lead, status="Hot")])
    emptied = refreshed.with_fetch(3, [])

    assert refreshed.selected.status == "Hot"
    assert emptied.selected is None


def test_replace_lead_keeps_position(make_lead) -> None:
    first, second, third = make_lead(), make_lead(), make_lead()
    board = LeadBoard().with_fetch(1, [first, second, third])

    updated = board.replace_lead(replace(second, pipeline="Contacted"))

    assert [lead.lead_id for lead in updated.leads] == [first.lead_id, second.lead_id, third.lead_id]
    assert updated.find(second.lead_id).pipeline == "Contacted"
    assert board.find(second.lead_id).pipeline == "New"


def test_replace_unknown_lead_is_noop(make_lead) -> None:
    board = LeadBoard().with_fetch(1, [make_lead()])

    assert board.replace_lead(make_lead()) is board


def test_remove_lead_clears_selection(make_lead) -> None:
    first, second = make_lead(), make_lead()
    board = LeadBoard().with_fetch(1, [first, second]).select(first.lead_id)

    removed = board.remove_lead(first.lead_id)
    other = board.remove_lead(second.lead_id)

    assert first.lead_id not in removed
    assert removed.selected_id is None
    assert other.selected_id == first.lead_id


def test_merge_pushed_prepends_for_admin(make_lead, admin) -> None:
    existing = make_lead()
    pushed = make_lead(name="new enquiry")
    board = LeadBoard().with_fetch(1, [existing])

    merged = board.merge_pushed(pushed, admin)

    assert [lead.lead_id for lead in merged.leads] == [pushed.lead_id, existing.lead_id]


def test_merge_pushed_is_idempotent(make_lead, admin) -> None:
    pushed = make_lead()
    board = LeadBoard().merge_pushed(pushed, admin)

    again = board.merge_pushed(replace(pushed, name="changed"), admin)

    assert again is board
    assert len(again.leads) == 1
    assert again.leads[0].name == pushed.name


def test_merge_pushed_respects_visibility(make_lead, staff) -> None:
    mine = make_lead(assigned_to="priya")
    theirs = make_lead(assigned_to="sharan")
    unassigned = make_lead()
    board = LeadBoard()

    board = board.merge_pushed(mine, staff)
    board = board.merge_pushed(theirs, staff)
    board = board.merge_pushed(unassigned, staff)

    assert [lead.lead_id for lead in board.leads] == [mine.lead_id]
