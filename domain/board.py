"""
Domain: Lead board (in-memory working set).

The board is the only shared mutable state of the dashboard, modelled as an
immutable snapshot. Every transition returns a new board; prior boards are unchanged.
Writers always derive the next board from the latest one, so the last write wins.

Contract excerpts implemented here:
- Leads are replaced wholesale or patched by identifier, never mutated in place.
- Fetch results carry a sequence number; a result older than the latest applied
  one is discarded.
- Pushed leads merge idempotently (an existing identifier wins) and only when
  visible to the viewer (admin, or assigned to the viewer's username).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

from .lead import Lead
from .user import User


@dataclass(frozen=True, slots=True)
class LeadBoard:
    leads: Tuple[Lead, ...] = ()
    users: Tuple[User, ...] = ()
    selected_id: Optional[str] = None
    applied_sequence: int = 0
    _ids: frozenset = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_ids", frozenset(lead.lead_id for lead in self.leads))

    def __contains__(self, lead_id: object) -> bool:
        return lead_id in self._ids

    def find(self, lead_id: str) -> Optional[Lead]:
        if lead_id not in self._ids:
            return None
        return next(lead for lead in self.leads if lead.lead_id == lead_id)

    @property
    def selected(self) -> Optional[Lead]:
        if self.selected_id is None:
            return None
        return self.find(self.selected_id)

    def staff_usernames(self) -> List[str]:
        return [user.username for user in self.users if user.username]

    def select(self, lead_id: Optional[str]) -> "LeadBoard":
        return replace(self, selected_id=lead_id)

    def with_fetch(
        self,
        sequence: int,
        leads: Sequence[Lead],
        users: Optional[Sequence[User]] = None,
    ) -> "LeadBoard":
        """
        Apply a full fetch result.

        Returns self unchanged when `sequence` is older than the latest applied fetch.
        The selection is held by identifier, so `selected` resolves to the refreshed
        record (or None once the lead is gone).
        """

        if sequence < self.applied_sequence:
            return self
        return replace(
            self,
            leads=tuple(leads),
            users=self.users if users is None else tuple(users),
            applied_sequence=sequence,
        )

    def replace_lead(self, updated: Lead) -> "LeadBoard":
        """Replace the lead with the same identifier, keeping its position."""

        if updated.lead_id not in self._ids:
            return self
        return replace(
            self,
            leads=tuple(updated if lead.lead_id == updated.lead_id else lead for lead in self.leads),
        )

    def remove_lead(self, lead_id: str) -> "LeadBoard":
        selected_id = None if self.selected_id == lead_id else self.selected_id
        return replace(
            self,
            leads=tuple(lead for lead in self.leads if lead.lead_id != lead_id),
            selected_id=selected_id,
        )

    def merge_pushed(self, lead: Lead, viewer: User) -> "LeadBoard":
        """
        Merge a lead delivered by the live update channel.

        Returns self unchanged when the identifier is already present or the
        lead is not visible to `viewer`; otherwise prepends it.
        """

        if lead.lead_id in self._ids:
            return self
        if not viewer.can_see(lead.assigned_to):
            return self
        return replace(self, leads=(lead,) + self.leads)
