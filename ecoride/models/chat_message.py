"""Chat Message Model - Messages exchanged on a live trip."""

from datetime import datetime

from pydantic import BaseModel, Field

from ecoride.utils.timezone_utils import utc_now


class ChatMessage(BaseModel):
    """Chat message stored in MongoDB."""

    message_id: str = Field(..., description="Unique message ID")
    trip_id: str = Field(..., description="Trip the conversation belongs to")
    sender_id: str = Field(..., description="Sender user ID")
    sender_name: str = Field(..., description="Sender display name")
    message: str = Field(..., min_length=1, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)


class ChatMessageCreate(BaseModel):
    """Request to post a chat message."""

    message: str = Field(..., min_length=1, max_length=1000)


class LocationUpdate(BaseModel):
    """Live position published by a trip participant."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
