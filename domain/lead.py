"""
Domain: Lead entity.

A Lead is a prospective student tracked through the sales pipeline.

Contract excerpts implemented here:
- A Lead is uniquely identified by lead_id, which never changes after creation.
- All instants are UTC timestamps; the wire's date shapes never reach this type.
- assigned_to is a username reference, not an owning relationship. The user
  it names may not exist locally.
- Conversations keep insertion order. Remarks are displayed newest-first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from .time import require_utc_timestamp

# Untrusted wire input. The normalizer is the only sanctioned path to a Lead.
RawRecord = Mapping[str, Any]


class LeadStatus(str, Enum):
    HOT = "Hot"
    WARM = "Warm"
    COLD = "Cold"


class PipelineStage(str, Enum):
    NEW = "New"
    CONTACTED = "Contacted"
    ASKED_TIME = "Asked Time"
    NOT_INTERESTED = "Not Interested"


COURSES: Tuple[str, ...] = (
    "Python Fullstack with AI",
    "Java Fullstack with AI",
    "MERN Stack with AI",
    "Data Science",
    "Data Analytics",
    "Digital Marketing",
)
PROGRAM_TYPES: Tuple[str, ...] = ("8 Hours", "2 Hours")
PROFESSIONS: Tuple[str, ...] = ("Job Seeker", "Student", "Working Professional")
LEAD_SOURCES: Tuple[str, ...] = (
    "WhatsApp",
    "Meta Ads",
    "Website",
    "Manual (Call / Walk-in / Referral)",
)

DEFAULT_NAME = "Unknown Student"
DEFAULT_PHONE = "0000000000"
DEFAULT_SOURCE = "Manual"


@dataclass(frozen=True, slots=True)
class Conversation:
    """One inbound/outbound message pair exchanged with the lead."""

    user_message: str
    bot_reply: str
    timestamp: datetime
    conversation_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Remark:
    """Free-text staff annotation attached to a lead."""

    remark_id: str
    text: str
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Canonical lead record.

    Notes:
    - status and pipeline are plain strings so values the server sends outside
      LeadStatus/PipelineStage survive round trips.
    - The entity is frozen; updates produce a new instance.
    """

    lead_id: str
    name: str
    phone: str
    created_at: datetime
    last_interacted_at: datetime

    course: Optional[str] = None
    program_type: Optional[str] = None
    profession: Optional[str] = None
    location: Optional[str] = None
    source: str = DEFAULT_SOURCE
    status: str = LeadStatus.COLD.value
    pipeline: str = PipelineStage.NEW.value
    assigned_to: Optional[str] = None

    reminder_at: Optional[datetime] = None
    last_follow_up_sent_at: Optional[datetime] = None
    follow_up_count: int = 0
    responded_after_follow_up: bool = False

    conversations: Tuple[Conversation, ...] = field(default_factory=tuple)
    remarks: Tuple[Remark, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("last_interacted_at", self.last_interacted_at)
        if self.reminder_at is not None:
            require_utc_timestamp("reminder_at", self.reminder_at)
        if self.last_follow_up_sent_at is not None:
            require_utc_timestamp("last_follow_up_sent_at", self.last_follow_up_sent_at)
        if self.follow_up_count < 0:
            raise ValueError("follow_up_count must be >= 0")

    def remarks_newest_first(self) -> Tuple[Remark, ...]:
        """
        Remarks for display, newest first.

        Equal timestamps keep reverse insertion order (latest added first).
        """

        reversed_remarks = tuple(reversed(self.remarks))
        return tuple(sorted(reversed_remarks, key=lambda r: r.timestamp, reverse=True))
