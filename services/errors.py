"""
Service-level errors.

Each carries a user-visible message. The dashboard surface converts them into
notices (HTTP errors); nothing here is fatal.
"""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for errors surfaced to the dashboard user."""


class NotAuthenticated(DashboardError):
    """Raised when an action needs an authenticated session."""


class PermissionDenied(DashboardError):
    """Raised when the session's role may not perform the action (checked before any request)."""


class ConfirmationRequired(DashboardError):
    """Raised when a destructive action was requested without user confirmation."""


class LeadNotFound(DashboardError):
    """Raised when a lead id is not in the working set."""


class MutationFailed(DashboardError):
    """Raised when a create/update/delete/remark request fails. State is left unchanged."""
