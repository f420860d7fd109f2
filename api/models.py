"""
API Request and Response Models.

Pydantic models for validating dashboard requests and serializing responses.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from domain.aggregation import StatusCounts
from domain.lead import Conversation, Lead, Remark
from domain.user import User
from services.dashboard_service import ReminderEntry


# ============================================================================
# Session Models
# ============================================================================

class LoginRequest(BaseModel):
    """Credentials for the CRM service."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    class Config:
        json_schema_extra = {
            "example": {
                "username": "sharan",
                "password": "secret"
            }
        }


class UserResponse(BaseModel):
    """Staff account."""
    user_id: str
    username: str
    email: str
    role: str
    phone: Optional[str] = None

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            user_id=user.user_id,
            username=user.username,
            email=user.email,
            role=user.role.value,
            phone=user.phone,
        )


class SessionResponse(BaseModel):
    """Current session state."""
    state: str
    user: Optional[UserResponse] = None


# ============================================================================
# Lead Models
# ============================================================================

class ConversationResponse(BaseModel):
    user_message: str
    bot_reply: str
    timestamp: datetime

    @classmethod
    def from_domain(cls, conversation: Conversation) -> "ConversationResponse":
        return cls(
            user_message=conversation.user_message,
            bot_reply=conversation.bot_reply,
            timestamp=conversation.timestamp,
        )


class RemarkResponse(BaseModel):
    remark_id: str
    text: str
    timestamp: datetime

    @classmethod
    def from_domain(cls, remark: Remark) -> "RemarkResponse":
        return cls(remark_id=remark.remark_id, text=remark.text, timestamp=remark.timestamp)


class LeadSummaryResponse(BaseModel):
    """Lead as shown in the dashboard list."""
    lead_id: str
    name: str
    phone: str
    course: Optional[str] = None
    source: str
    status: str
    pipeline: str
    assigned_to: Optional[str] = None
    created_at: datetime
    reminder_at: Optional[datetime] = None
    message_count: int

    @classmethod
    def from_domain(cls, lead: Lead) -> "LeadSummaryResponse":
        return cls(
            lead_id=lead.lead_id,
            name=lead.name,
            phone=lead.phone,
            course=lead.course,
            source=lead.source,
            status=lead.status,
            pipeline=lead.pipeline,
            assigned_to=lead.assigned_to,
            created_at=lead.created_at,
            reminder_at=lead.reminder_at,
            message_count=len(lead.conversations),
        )


class LeadDetailResponse(LeadSummaryResponse):
    """Full lead record. Remarks are newest first."""
    program_type: Optional[str] = None
    profession: Optional[str] = None
    location: Optional[str] = None
    last_interacted_at: datetime
    last_follow_up_sent_at: Optional[datetime] = None
    follow_up_count: int
    responded_after_follow_up: bool
    conversations: List[ConversationResponse]
    remarks: List[RemarkResponse]

    @classmethod
    def from_domain(cls, lead: Lead) -> "LeadDetailResponse":
        summary = LeadSummaryResponse.from_domain(lead).model_dump()
        return cls(
            **summary,
            program_type=lead.program_type,
            profession=lead.profession,
            location=lead.location,
            last_interacted_at=lead.last_interacted_at,
            last_follow_up_sent_at=lead.last_follow_up_sent_at,
            follow_up_count=lead.follow_up_count,
            responded_after_follow_up=lead.responded_after_follow_up,
            conversations=[ConversationResponse.from_domain(c) for c in lead.conversations],
            remarks=[RemarkResponse.from_domain(r) for r in lead.remarks_newest_first()],
        )


class StatusCountsResponse(BaseModel):
    total: int
    hot: int
    warm: int
    cold: int

    @classmethod
    def from_domain(cls, counts: StatusCounts) -> "StatusCountsResponse":
        return cls(total=counts.total, hot=counts.hot, warm=counts.warm, cold=counts.cold)


class LeadListResponse(BaseModel):
    """Response for the filtered lead list."""
    items: List[LeadSummaryResponse]
    counts: StatusCountsResponse
    filters_applied: Dict[str, Any]

    class Config:
        json_schema_extra = {
            "example": {
                "items": [],
                "counts": {"total": 1, "hot": 1, "warm": 0, "cold": 0},
                "filters_applied": {"statuses": ["Hot"]}
            }
        }


class LeadFormRequest(BaseModel):
    """Create or edit a lead (full form)."""
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    course: Optional[str] = None
    program_type: Optional[str] = None
    profession: Optional[str] = None
    location: Optional[str] = None
    source: Optional[str] = None
    status: Optional[str] = None
    pipeline: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Asha Rao",
                "phone": "9876543210",
                "course": "Data Science",
                "program_type": "8 Hours",
                "profession": "Student",
                "source": "Website",
                "status": "Warm",
                "pipeline": "New"
            }
        }


class LeadPatchRequest(BaseModel):
    """
    Partial update. Only fields present in the request body are sent.

    assigned_to and reminder_at accept null to clear the value.
    """
    status: Optional[str] = None
    pipeline: Optional[str] = None
    assigned_to: Optional[str] = None
    reminder_at: Optional[datetime] = None


class RemarkRequest(BaseModel):
    remark: str = Field(..., min_length=1)


class ReminderResponse(BaseModel):
    """Reminder queue entry."""
    lead: LeadSummaryResponse
    due: str
    overdue: bool

    @classmethod
    def from_domain(cls, entry: ReminderEntry) -> "ReminderResponse":
        return cls(
            lead=LeadSummaryResponse.from_domain(entry.lead),
            due=entry.due.label,
            overdue=entry.overdue,
        )


class OptionsResponse(BaseModel):
    """Known values for the filter panel and lead form."""
    courses: List[str]
    program_types: List[str]
    professions: List[str]
    sources: List[str]
    statuses: List[str]
    pipelines: List[str]
    staff: List[str]
