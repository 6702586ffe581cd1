"""
Booking Model

Defines the booking schema for MongoDB persistence.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ecoride.models.location import Location
from ecoride.utils.timezone_utils import utc_now


class BookingStatus(str, Enum):
    """Status of a seat booking."""

    PENDING = "PENDING"  # Waiting for the driver's decision
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"  # Set in bulk when the parent trip completes
    NO_SHOW = "NO_SHOW"


class PaymentStatus(str, Enum):
    """Payment status, tracked independently of the booking status."""

    PENDING = "PENDING"
    HELD = "HELD"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    ONLINE = "ONLINE"
    CASH = "CASH"


# Forward-only payment moves
PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: (PaymentStatus.HELD, PaymentStatus.PAID),
    PaymentStatus.HELD: (PaymentStatus.PAID, PaymentStatus.REFUNDED),
    PaymentStatus.PAID: (PaymentStatus.REFUNDED,),
    PaymentStatus.REFUNDED: (),
}


class Booking(BaseModel):
    """
    Booking model for MongoDB.

    Pickup and drop points are independent of the trip's own start/end so a
    passenger can board mid-route.
    """

    booking_id: str = Field(..., description="Unique booking ID")
    trip_id: str = Field(..., description="Booked trip")
    passenger_id: str = Field(..., description="Passenger user ID")
    pickup_point: Location
    drop_point: Location
    seats_booked: int = Field(default=1, ge=1)
    fare: float = Field(..., ge=0)
    status: BookingStatus = Field(default=BookingStatus.PENDING)
    payment_method: PaymentMethod = Field(default=PaymentMethod.ONLINE)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True


class BookingCreate(BaseModel):
    """Data submitted by a passenger to request seats on a trip."""

    trip_id: str
    pickup_point: Location
    drop_point: Location
    seats_booked: int = Field(default=1, ge=1, le=8)
    fare: Optional[float] = Field(None, ge=0, description="Client estimate, recomputed")
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[PaymentStatus] = None


class BookingDecision(BaseModel):
    """Driver decision on a pending booking."""

    status: BookingStatus


class PaymentUpdate(BaseModel):
    """Payment settlement update from the driver or the passenger."""

    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
