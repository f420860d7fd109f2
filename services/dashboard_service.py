"""
Dashboard service (mutation coordinator).

Owns the lead board and reconciles it with the CRM service.

Handles:
- Background refresh with a sequence guard (stale responses are discarded)
- One request/response round trip per mutation, no speculative local apply
- Replace-by-id of the affected lead, or a full refetch, on success
- Role checks before any network call (assign and delete are admin-only)
- Forced logout when the service reports an authorization failure

Failures of user actions raise MutationFailed with a user-visible message and leave
the board unchanged. An authorization failure ends the session and raises
NotAuthenticated. Refresh failures are logged and keep the stale board.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, List, Mapping, Optional, TypeVar

from domain.aggregation import DaysRemaining, StatusCounts, days_remaining, is_overdue, reminder_queue, status_counts
from domain.board import LeadBoard
from domain.lead import Lead
from domain.lead_filter import INITIAL_FILTERS, FilterState, visible_leads
from domain.user import User
from repositories import lead_repository
from repositories.client import ApiError, AuthorizationError, CrmApiClient
from services.errors import (
    ConfirmationRequired,
    LeadNotFound,
    MutationFailed,
    NotAuthenticated,
    PermissionDenied,
)
from services.session_service import SessionGate

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class DashboardView:
    """Filtered lead list plus status counts over that same list."""

    leads: List[Lead]
    counts: StatusCounts


@dataclass(frozen=True, slots=True)
class ReminderEntry:
    lead: Lead
    due: DaysRemaining
    overdue: bool


class DashboardService:
    def __init__(self, client: CrmApiClient, session: SessionGate, scoped: bool = True) -> None:
        """
        Args:
            client: CRM API client
            session: Session gate supplying the acting user
            scoped: Refresh through the session-scoped /dashboard call (default) rather
                than the unscoped GET /users
        """

        self._client = client
        self._session = session
        self._scoped = scoped
        self._board = LeadBoard()
        self._sequence = 0

    @property
    def board(self) -> LeadBoard:
        return self._board

    def reset(self) -> None:
        """Drop all local state (used on logout). Fetches still in flight are discarded."""

        self._sequence += 1
        self._board = LeadBoard(applied_sequence=self._sequence)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def visible(self, query: str = "", filters: FilterState = INITIAL_FILTERS) -> DashboardView:
        leads = visible_leads(self._board.leads, query, filters)
        return DashboardView(leads=leads, counts=status_counts(leads))

    def reminders(self, now: Optional[datetime] = None) -> List[ReminderEntry]:
        return [
            ReminderEntry(
                lead=lead,
                due=days_remaining(lead.reminder_at, now),
                overdue=is_overdue(lead.reminder_at, now),
            )
            for lead in reminder_queue(self._board.leads)
        ]

    def lead(self, lead_id: str) -> Lead:
        lead = self._board.find(lead_id)
        if lead is None:
            raise LeadNotFound(f"Lead {lead_id} not found")
        return lead

    def select(self, lead_id: Optional[str]) -> Optional[Lead]:
        if lead_id is not None:
            self.lead(lead_id)
        self._board = self._board.select(lead_id)
        return self._board.selected

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """
        Refetch leads (and staff, when returned) for the current session.

        Returns:
            True if the result was applied, False if it failed, was stale, or
            there is no session
        """

        user = self._session.user
        if user is None:
            return False

        self._sequence += 1
        sequence = self._sequence
        try:
            if self._scoped:
                data = await lead_repository.fetch_dashboard(self._client, user.username)
            else:
                data = await lead_repository.fetch_all_data(self._client)
        except AuthorizationError as exc:
            self._session.expire(str(exc))
            return False
        except ApiError as exc:
            logger.warning("Background refresh failed, keeping stale data: %s", exc)
            return False

        if sequence < self._board.applied_sequence:
            logger.info("Discarding stale refresh #%d (applied #%d)", sequence, self._board.applied_sequence)
            return False
        self._board = self._board.with_fetch(sequence, data.leads, data.users)
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _call(self, request: Awaitable[T], notice: str) -> T:
        try:
            return await request
        except AuthorizationError as exc:
            self._session.expire(str(exc))
            raise NotAuthenticated("Session expired, please log in again") from exc
        except ApiError as exc:
            logger.warning("%s: %s", notice, exc)
            raise MutationFailed(str(exc) or notice) from exc

    def _apply(self, updated: Lead) -> Lead:
        self._board = self._board.replace_lead(updated)
        return updated

    def _require_admin(self, action: str) -> User:
        user = self._session.require_user()
        if not user.is_admin:
            raise PermissionDenied(f"Only admins can {action}")
        return user

    async def create_lead(self, fields: Mapping[str, Any]) -> Optional[Lead]:
        self._session.require_user()
        lead_repository.validate_fields(fields)
        created = await self._call(lead_repository.add_lead(self._client, fields), "Failed to add lead")
        await self.refresh()
        return created

    async def edit_lead(self, lead_id: str, fields: Mapping[str, Any]) -> Lead:
        self._session.require_user()
        self.lead(lead_id)
        lead_repository.validate_fields(fields)
        updated = await self._call(
            lead_repository.edit_lead(self._client, lead_id, fields), "Failed to edit lead"
        )
        self._apply(updated)
        await self.refresh()
        return self._board.find(lead_id) or updated

    async def update_fields(self, lead_id: str, **changes: Any) -> Lead:
        """Send only the changed fields; replace the lead with the server's version."""

        self._session.require_user()
        self.lead(lead_id)
        lead_repository.validate_fields(changes)
        updated = await self._call(
            lead_repository.update_lead(self._client, lead_id, changes), "Failed to update lead"
        )
        return self._apply(updated)

    async def set_status(self, lead_id: str, status: str) -> Lead:
        return await self.update_fields(lead_id, status=status)

    async def set_pipeline(self, lead_id: str, pipeline: str) -> Lead:
        return await self.update_fields(lead_id, pipeline=pipeline)

    async def assign(self, lead_id: str, username: Optional[str]) -> Lead:
        self._require_admin("assign leads")
        return await self.update_fields(lead_id, assigned_to=username or None)

    async def set_reminder(self, lead_id: str, when: Optional[datetime]) -> Lead:
        return await self.update_fields(lead_id, reminder_at=when)

    async def add_remark(self, lead_id: str, text: str) -> Optional[Lead]:
        """Add a remark. Blank text is ignored and returns None."""

        self._session.require_user()
        self.lead(lead_id)
        if not text.strip():
            return None
        updated = await self._call(
            lead_repository.add_remark(self._client, lead_id, text), "Failed to add remark"
        )
        return self._apply(updated)

    async def delete_remark(self, lead_id: str, remark_id: str) -> Lead:
        self._session.require_user()
        self.lead(lead_id)
        updated = await self._call(
            lead_repository.delete_remark(self._client, lead_id, remark_id), "Failed to delete remark"
        )
        return self._apply(updated)

    async def delete_lead(self, lead_id: str, confirmed: bool) -> None:
        """
        Delete a lead (admin only, requires confirmation).

        Raises:
            PermissionDenied: For non-admins, before any request is made
            ConfirmationRequired: If the user did not confirm
            MutationFailed: If the service rejects the delete
            NotAuthenticated: If the session expired
        """

        if not self._session.require_user().can_delete_leads():
            raise PermissionDenied("Only admins can delete leads")
        self.lead(lead_id)
        if not confirmed:
            raise ConfirmationRequired("Are you sure you want to delete this lead?")
        await self._call(lead_repository.delete_lead(self._client, lead_id), "Failed to delete lead")
        self._board = self._board.remove_lead(lead_id)
        await self.refresh()

    # ------------------------------------------------------------------
    # Live updates
    # ------------------------------------------------------------------

    def apply_pushed_lead(self, lead: Lead) -> bool:
        """
        Merge a lead from the push channel.

        Returns:
            True if the lead was added
        """

        viewer = self._session.user
        if viewer is None:
            return False
        before = self._board
        self._board = before.merge_pushed(lead, viewer)
        added = self._board is not before
        if added:
            logger.info("New lead %s pushed", lead.lead_id)
        return added
