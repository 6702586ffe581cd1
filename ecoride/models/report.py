"""Report Model - Defines the user report schema for safety and moderation."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ecoride.utils.timezone_utils import utc_now


class ReportType(str, Enum):
    HARASSMENT = "HARASSMENT"
    NO_SHOW = "NO_SHOW"
    FRAUD = "FRAUD"
    OTHER = "OTHER"


class ReportStatus(str, Enum):
    """Review state of a report. Moves forward only."""
    OPEN = "OPEN"
    REVIEWED = "REVIEWED"
    CLOSED = "CLOSED"


REPORT_TRANSITIONS = {
    ReportStatus.OPEN: (ReportStatus.REVIEWED, ReportStatus.CLOSED),
    ReportStatus.REVIEWED: (ReportStatus.CLOSED,),
    ReportStatus.CLOSED: (),
}


class Report(BaseModel):
    """
    Report model for MongoDB.

    Created when a user reports another user; admins review and close it.

    Fields:
    - report_id: Unique UUID for the report
    - reporter_user_id: User who filed the report
    - accused_user_id: User being reported
    - trip_id: Related trip (if applicable)
    - type: HARASSMENT / NO_SHOW / FRAUD / OTHER
    - description: Reporter's account of what happened
    - status: OPEN -> REVIEWED -> CLOSED
    - reviewed_by / resolution_note: Last admin action
    """
    report_id: str = Field(..., description="Unique report ID")
    reporter_user_id: str = Field(..., description="User filing the report")
    accused_user_id: str = Field(..., description="User being reported")
    trip_id: Optional[str] = Field(None, description="Related trip ID")
    type: ReportType = Field(default=ReportType.OTHER)
    description: str = Field(..., min_length=1, max_length=1000)
    status: ReportStatus = Field(default=ReportStatus.OPEN)
    reviewed_by: Optional[str] = Field(None, description="Admin user ID")
    resolution_note: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True


class ReportCreate(BaseModel):
    """Data required to file a report."""
    accused_user_id: str = Field(..., description="User being reported")
    trip_id: Optional[str] = None
    type: ReportType = ReportType.OTHER
    description: str = Field(..., min_length=1, max_length=1000)


class ReportStatusUpdate(BaseModel):
    status: ReportStatus
    note: Optional[str] = Field(None, max_length=1000)
