"""
Engagement tracking models.

Engagement events are recorded against a subject (typically a quotation) when
a document is sent, opened, clicked or downloaded, and later summarized per
subject, per recipient and per day.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .enums import EngagementEventType

UNKNOWN_RECIPIENT = "unknown"


class TrackingEvent(BaseModel):
    """A single engagement event as written to the record source."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    tenant_id: str = Field(description="Tenant the subject belongs to")
    subject_id: str = Field(min_length=1, description="Quotation or document identifier")
    event_type: EngagementEventType
    recipient: str = Field(default=UNKNOWN_RECIPIENT, description="Recipient address")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    event_date: datetime = Field(default_factory=datetime.utcnow)


class TrackRequest(BaseModel):
    """Body of an explicit POST /track call. Legacy ``quotation_id``/``recipient_email`` names are accepted."""

    subject_id: str = Field(min_length=1, validation_alias=AliasChoices("subject_id", "quotation_id"))
    event_type: EngagementEventType
    recipient: str = Field(
        default=UNKNOWN_RECIPIENT, validation_alias=AliasChoices("recipient", "recipient_email")
    )
    tenant_id: Optional[str] = None

    @field_validator("subject_id", "recipient")
    @classmethod
    def strip_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class EventCounts(BaseModel):
    """Event counts per type. Every known type is always present."""

    sent: int = 0
    opened: int = 0
    clicked: int = 0
    downloaded: int = 0

    @property
    def total(self) -> int:
        return self.sent + self.opened + self.clicked + self.downloaded


class SubjectEngagement(BaseModel):
    subject_id: str
    counts: EventCounts
    engagement_rate: float = Field(
        default=0.0, description="(opened + clicked + downloaded) / (sent * 3) * 100"
    )


class RecipientEngagement(BaseModel):
    recipient: str
    total_events: int = 0
    events_by_type: EventCounts
    last_activity: Optional[datetime] = None


class DailyCount(BaseModel):
    date: str
    count: int = 0


class EngagementSummary(BaseModel):
    """Aggregate and per-subject engagement counts."""

    counts: EventCounts
    total_events: int = 0
    subjects: list[SubjectEngagement] = Field(default_factory=list)
    recipients: list[RecipientEngagement] = Field(default_factory=list)
    daily: list[DailyCount] = Field(default_factory=list)
