"""
Notification Model - Defines the notification schema for the in-app
notification center.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ecoride.utils.timezone_utils import utc_now


class NotificationType(str, Enum):
    """Type of notification."""

    MATCH = "match"
    PAYMENT = "payment"
    IMPACT = "impact"
    SYSTEM = "system"
    MESSAGE = "message"


class RefType(str, Enum):
    """Entity a notification points at."""

    TRIP = "TRIP"
    BOOKING = "BOOKING"


class NotificationIntent(BaseModel):
    """
    What a domain operation wants delivered.

    The core only builds intents; NotificationService owns persistence and
    real-time delivery.
    """

    type: NotificationType = NotificationType.SYSTEM
    title: str
    body: str
    ref_id: Optional[str] = None
    ref_type: Optional[RefType] = None

    class Config:
        use_enum_values = True


class Notification(BaseModel):
    """
    Notification model for MongoDB.

    Fire-and-forget record of an event for one user. After creation only the
    recipient may change it (mark read or delete).

    Fields:
    - notification_id: Unique UUID
    - user_id: Recipient
    - type: Notification type for UI rendering
    - title / body: Display text
    - read: Whether the recipient has read it
    - ref_id / ref_type: Optional link to a Trip or Booking
    - created_at: When the notification was created
    """

    notification_id: str = Field(..., description="Unique notification ID")
    user_id: str = Field(..., description="Recipient user ID")
    type: NotificationType = NotificationType.SYSTEM
    title: str = Field(..., description="Notification title")
    body: str = Field(..., description="Notification body")
    read: bool = Field(default=False)
    ref_id: Optional[str] = None
    ref_type: Optional[RefType] = None
    created_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True
