"""
Lead repository (remote persistence).

This module provides *only* the request/response contracts of the CRM service for
leads and staff. No dashboard rules (filtering, role checks, state reconciliation)
belong here.

Every lead in a response goes through `normalize_lead`; outbound payloads are
translated from Lead attribute names to the service's field names.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, List, Mapping, Optional
from urllib.parse import quote

from domain.lead import Lead
from domain.normalizer import normalize_lead, normalize_leads, normalize_users
from domain.time import to_wire
from domain.user import User
from repositories.client import ApiError, CrmApiClient

# Lead attribute -> wire field.
_WIRE_FIELDS: Mapping[str, str] = {
    "lead_id": "_id",
    "name": "userName",
    "phone": "userNumber",
    "course": "course",
    "program_type": "programType",
    "profession": "profession",
    "location": "location",
    "source": "leadfrom",
    "status": "status",
    "pipeline": "pipeline",
    "assigned_to": "assignedto",
    "reminder_at": "reminder",
    "follow_up_count": "followUpCount",
    "responded_after_follow_up": "respondedAfterFollowUp",
    "last_follow_up_sent_at": "lastFollowUpSentAt",
}


@dataclass(frozen=True, slots=True)
class DashboardData:
    """Result of a full fetch. users is None when the response carries no staff list."""

    leads: List[Lead]
    users: Optional[List[User]]


def _wire_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_wire(value)
    if isinstance(value, Enum):
        return value.value
    return value


def to_wire_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Translate Lead attribute names to wire names.

    Raises:
        ValueError: If a field is not a writable lead attribute
    """

    validate_fields(fields)
    return {_WIRE_FIELDS[name]: _wire_value(value) for name, value in fields.items()}


def validate_fields(fields: Mapping[str, Any]) -> None:
    """
    Check that every field is a writable lead attribute, without building a payload.

    Raises:
        ValueError: If a field is not a writable lead attribute
    """

    unknown = [name for name in fields if name not in _WIRE_FIELDS]
    if unknown:
        raise ValueError(f"Unknown or read-only lead field: {unknown[0]!r}")


def _lead_from(payload: Any, what: str) -> Lead:
    if not isinstance(payload, Mapping):
        raise ApiError(f"Failed to {what}: unexpected response")
    return normalize_lead(payload)


async def fetch_all_data(client: CrmApiClient) -> DashboardData:
    """GET /users -> {users, leads}."""

    payload = await client.request("GET", "/users", failure_message="Failed to fetch data")
    payload = payload if isinstance(payload, Mapping) else {}
    return DashboardData(
        leads=normalize_leads(payload.get("leads")),
        users=normalize_users(payload.get("users")),
    )


async def fetch_dashboard(client: CrmApiClient, username: str) -> DashboardData:
    """
    POST /dashboard {username} -> {success, leads, staffs?}.

    The service scopes leads to the session; staffs is only present for admins.

    Raises:
        ApiError: If the service reports success = false
    """

    payload = await client.request(
        "POST",
        "/dashboard",
        json={"username": username},
        failure_message="Failed to fetch dashboard",
    )
    payload = payload if isinstance(payload, Mapping) else {}
    if payload.get("success") is False:
        raise ApiError(str(payload.get("message") or "Failed to fetch dashboard"))

    staffs = payload.get("staffs")
    return DashboardData(
        leads=normalize_leads(payload.get("leads")),
        users=normalize_users(staffs) if isinstance(staffs, list) else None,
    )


async def add_lead(client: CrmApiClient, fields: Mapping[str, Any]) -> Optional[Lead]:
    """POST /add -> {success, user}. Returns the created lead when the service echoes it."""

    payload = await client.request(
        "POST", "/add", json=to_wire_fields(fields), failure_message="Failed to add lead"
    )
    if isinstance(payload, Mapping):
        if payload.get("success") is False:
            raise ApiError(str(payload.get("message") or "Failed to add lead"))
        created = payload.get("user")
        if isinstance(created, Mapping):
            return normalize_lead(created)
    return None


async def update_lead(client: CrmApiClient, lead_id: str, changes: Mapping[str, Any]) -> Lead:
    """PUT /Users {_id, ...changed fields} -> full lead."""

    body = {"_id": lead_id, **to_wire_fields(changes)}
    payload = await client.request("PUT", "/Users", json=body, failure_message="Failed to update lead")
    return _lead_from(payload, "update lead")


async def edit_lead(client: CrmApiClient, lead_id: str, fields: Mapping[str, Any]) -> Lead:
    """PUT /Users/edit (full form) -> full lead."""

    body = {"_id": lead_id, **to_wire_fields(fields)}
    payload = await client.request(
        "PUT", "/Users/edit", json=body, failure_message="Failed to edit lead details"
    )
    return _lead_from(payload, "edit lead details")


async def delete_lead(client: CrmApiClient, lead_id: str) -> None:
    """DELETE /leads/{id} -> {success}."""

    payload = await client.request(
        "DELETE", f"/leads/{quote(lead_id, safe='')}", failure_message="Failed to delete lead"
    )
    if isinstance(payload, Mapping) and payload.get("success") is False:
        raise ApiError(str(payload.get("message") or "Failed to delete lead"))


async def add_remark(client: CrmApiClient, lead_id: str, remark: str) -> Lead:
    """POST /Users/remarks {_id, remark} -> full lead."""

    payload = await client.request(
        "POST",
        "/Users/remarks",
        json={"_id": lead_id, "remark": remark},
        failure_message="Failed to add remark",
    )
    return _lead_from(payload, "add remark")


async def delete_remark(client: CrmApiClient, lead_id: str, remark_id: str) -> Lead:
    """DELETE /Users/remarks {_id, remarkId} -> full lead."""

    payload = await client.request(
        "DELETE",
        "/Users/remarks",
        json={"_id": lead_id, "remarkId": remark_id},
        failure_message="Failed to delete remark",
    )
    return _lead_from(payload, "delete remark")


__all__ = [
    "DashboardData",
    "to_wire_fields",
    "validate_fields",
    "fetch_all_data",
    "fetch_dashboard",
    "add_lead",
    "update_lead",
    "edit_lead",
    "delete_lead",
    "add_remark",
    "delete_remark",
]
