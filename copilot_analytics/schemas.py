"""
Pydantic schemas for report rows and API responses.

This module contains:
- Report row models (one per report table shape)
- Response models for the listing and health endpoints

Timestamp columns may come back from the driver as datetime or as text;
listing responses pass either through (datetimes serialize as ISO-8601).
"""

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from copilot_analytics.classifier import ServiceWindow, Topic
from copilot_analytics.utils import ratio_percent


# =============================================================================
# Report Row Models
# =============================================================================

class ReportRow(BaseModel):
    """
    Base class for report rows.

    Rows are immutable and serialize with camelCase keys in field order
    (use `model_dump(by_alias=True)`).
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class DailyCount(ReportRow):
    date: date
    count: int = Field(..., ge=0)


class DailyContactCount(ReportRow):
    date: date
    unique_contacts: int = Field(..., ge=0)


class HourlyCount(ReportRow):
    hour: int = Field(..., ge=0, le=23)
    count: int = Field(..., ge=0)
    unique_contacts: int = Field(..., ge=0)


class PeakDemandRow(ReportRow):
    weekday: int = Field(..., ge=0, le=6, description="0 is Monday")
    hour: int = Field(..., ge=0, le=23)
    count: int = Field(..., ge=0)
    unique_contacts: int = Field(..., ge=0)


class DailyCompositeRow(ReportRow):
    """Appointments created and contacts served on one calendar date."""
    date: date
    ai_appointments: int = 0
    confirmed: int = 0
    cancelled: int = 0
    active_contacts: int = 0


class TopicCount(ReportRow):
    topic: Topic
    count: int = Field(..., ge=0)
    unique_contacts: int = Field(..., ge=0)


class ServiceWindowCount(ReportRow):
    window: ServiceWindow
    count: int = Field(..., ge=0)
    unique_contacts: int = Field(..., ge=0)
    percent: float


class EngagementRow(ReportRow):
    contact: str
    total_messages: int = Field(..., ge=0)
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None


class ResponseCoverage(ReportRow):
    responded_count: int = Field(..., ge=0)
    total_inbound: int = Field(..., ge=0)

    @computed_field(alias="responseRate")
    @property
    def response_rate(self) -> float:
        return ratio_percent(self.responded_count, self.total_inbound)


class ResponseLatency(ReportRow):
    average_seconds: Optional[float] = Field(
        None,
        description="Mean reply delay in seconds (null when there is no sample)"
    )


class Retention(ReportRow):
    total_contacts: int = Field(..., ge=0)
    returning_contacts: int = Field(..., ge=0)

    @computed_field(alias="returningRate")
    @property
    def returning_rate(self) -> float:
        return ratio_percent(self.returning_contacts, self.total_contacts)


class ContactTotal(ReportRow):
    total_unique_contacts: int = Field(..., ge=0)


class ContactAverage(ReportRow):
    average_messages_per_contact: float = 0.0


class ExecutiveSummary(ReportRow):
    total_messages: int = Field(..., ge=0)
    active_days: int = Field(..., ge=0)
    avg_messages_per_active_day: int = Field(
        0,
        description="total_messages / active_days rounded half-up (0 without active days)"
    )


# =============================================================================
# Pydantic Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Response model for error responses."""
    detail: str = Field(..., description="Error description")


StoredTimestamp = Union[datetime, str]


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")


class MessageResponse(BaseModel):
    """
    Response model for a single chat log row.
    Maps database fields to API response format.
    """
    id: int = Field(..., description="Row identifier")
    contact: Optional[str] = Field(None, description="Contact phone number")
    received_text: Optional[str] = Field(None, description="Text received from the contact")
    sent_text: Optional[str] = Field(None, description="Text sent by the assistant")
    timestamp: Optional[StoredTimestamp] = Field(None, description="Message timestamp as stored")

    model_config = {"from_attributes": True}


class AppointmentResponse(BaseModel):
    """Response model for a single appointment row."""
    id: int
    contact: Optional[str] = None
    client_name: Optional[str] = None
    scheduled_at: Optional[StoredTimestamp] = None
    status: Optional[str] = Field(None, description="Status label as stored")
    created_at: Optional[StoredTimestamp] = None
    external_id: Optional[str] = None
    source: Optional[str] = None

    model_config = {"from_attributes": True}


class ContactResponse(BaseModel):
    """A contact and the time of its latest message."""
    contact: str = Field(..., description="Contact phone number")
    last_message_at: Optional[StoredTimestamp] = Field(None, description="Latest message timestamp as stored")
