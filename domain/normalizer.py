"""
Domain: record normalization.

Coerces loosely-structured wire records into canonical Lead and User values.

Contract excerpts implemented here:
- normalize_lead is pure and total: any input yields a valid Lead, never an error.
- A missing identifier is synthesized rather than the record being dropped.
- Wrapped identifiers ({"$oid": ...}) and wrapped dates ({"$date": ...}) are unwrapped here
  and nowhere else.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional
from uuid import uuid4

from .lead import (
    DEFAULT_NAME,
    DEFAULT_PHONE,
    DEFAULT_SOURCE,
    Conversation,
    Lead,
    LeadStatus,
    PipelineStage,
    RawRecord,
    Remark,
)
from .time import resolve_instant, unwrap_instant, utc_now
from .user import User, UserRole

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y"})


def synthesize_id() -> str:
    """Random opaque identifier, unique enough for a single session."""
    return f"local-{uuid4().hex}"


def _as_record(raw: Any) -> RawRecord:
    return raw if isinstance(raw, Mapping) else {}


def _text(value: Any) -> Optional[str]:
    """Non-empty string form of a scalar, else None."""

    if value is None or isinstance(value, (bool, Mapping, list, tuple)):
        return None
    text = str(value).strip()
    return text or None


def _first_text(record: RawRecord, *keys: str) -> Optional[str]:
    for key in keys:
        text = _text(record.get(key))
        if text is not None:
            return text
    return None


def _identifier(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        return _text(value.get("$oid"))
    return _text(value)


def _count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(number, 0)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, (bool, int, float)):
        return bool(value)
    return False


def _sequence(value: Any) -> Iterable[Any]:
    return value if isinstance(value, (list, tuple)) else ()


def _conversations(value: Any, now: datetime) -> tuple[Conversation, ...]:
    items: List[Conversation] = []
    for entry in _sequence(value):
        if not isinstance(entry, Mapping):
            continue
        items.append(
            Conversation(
                user_message=_text(entry.get("userMsg")) or "",
                bot_reply=_text(entry.get("botReply")) or "",
                timestamp=unwrap_instant(entry.get("timestamp"), now),
                conversation_id=_identifier(entry.get("_id")),
            )
        )
    return tuple(items)


def _remarks(value: Any, now: datetime) -> tuple[Remark, ...]:
    items: List[Remark] = []
    for entry in _sequence(value):
        if not isinstance(entry, Mapping):
            continue
        items.append(
            Remark(
                remark_id=_identifier(entry.get("_id")) or synthesize_id(),
                text=_text(entry.get("remark")) or "",
                timestamp=unwrap_instant(entry.get("timestamp"), now),
            )
        )
    return tuple(items)


def normalize_lead(raw: Any, now: Optional[datetime] = None) -> Lead:
    """
    Convert an untrusted wire record into a fully-populated Lead.

    Args:
        raw: Any value; non-mapping input is treated as an empty record
        now: Fallback instant for required dates (default: current UTC time)

    Returns:
        Lead with every required field populated
    """

    record = _as_record(raw)
    now = resolve_instant(now) or utc_now()

    return Lead(
        lead_id=_identifier(record.get("_id")) or _identifier(record.get("id")) or synthesize_id(),
        name=_first_text(record, "userName", "username") or DEFAULT_NAME,
        phone=_first_text(record, "userNumber", "phone") or DEFAULT_PHONE,
        course=_first_text(record, "course", "courseofintrest", "courseTitle"),
        program_type=_first_text(record, "programType"),
        profession=_first_text(record, "profession"),
        location=_first_text(record, "location", "city"),
        source=_first_text(record, "leadfrom", "source") or DEFAULT_SOURCE,
        status=_first_text(record, "status") or LeadStatus.COLD.value,
        pipeline=_first_text(record, "pipeline") or PipelineStage.NEW.value,
        assigned_to=_first_text(record, "assignedto"),
        created_at=unwrap_instant(record.get("datecreated"), now),
        last_interacted_at=unwrap_instant(record.get("lastInteracted"), now),
        reminder_at=resolve_instant(record.get("reminder")),
        last_follow_up_sent_at=resolve_instant(record.get("lastFollowUpSentAt")),
        follow_up_count=_count(record.get("followUpCount")),
        responded_after_follow_up=_flag(record.get("respondedAfterFollowUp")),
        conversations=_conversations(record.get("conversations"), now),
        remarks=_remarks(record.get("remarks"), now),
    )


def normalize_user(raw: Any) -> User:
    """Convert an untrusted staff record into a User. Unknown roles become `user`."""

    record = _as_record(raw)
    username = _first_text(record, "username", "userName") or ""
    role_text = (_text(record.get("role")) or "").lower()
    role = UserRole.ADMIN if role_text == UserRole.ADMIN.value else UserRole.USER

    return User(
        user_id=_identifier(record.get("_id")) or _identifier(record.get("id")) or synthesize_id(),
        username=username,
        email=_first_text(record, "useremail", "email") or "",
        role=role,
        phone=_first_text(record, "userNumber", "phone"),
    )


def normalize_leads(raws: Any, now: Optional[datetime] = None) -> List[Lead]:
    """Normalize a wire list of leads; a non-list yields an empty list."""

    now = resolve_instant(now) or utc_now()
    return [normalize_lead(raw, now) for raw in _sequence(raws)]


def normalize_users(raws: Any) -> List[User]:
    return [normalize_user(raw) for raw in _sequence(raws)]
