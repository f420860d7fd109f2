"""
Domain: User (staff) accounts.

Staff accounts are read-only from the dashboard's point of view.
The username, not the identifier, is the key leads use for assignment.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


@dataclass(frozen=True, slots=True)
class User:
    """
    Staff account with role-based permissions.

    Supports:
    - Admins: see every lead, assign leads, delete leads
    - Users: see leads assigned to them
    """

    user_id: str
    username: str
    email: str
    role: UserRole = UserRole.USER

    # Optional profile information
    phone: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    def can_delete_leads(self) -> bool:
        """Only admins may delete leads."""
        return self.is_admin

    def can_see(self, assigned_to: Optional[str]) -> bool:
        """Check whether a lead assigned to `assigned_to` is visible to this user."""
        return self.is_admin or (assigned_to is not None and assigned_to == self.username)
