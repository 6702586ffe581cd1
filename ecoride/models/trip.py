"""
Trip Model

Defines the trip schema for MongoDB persistence.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ecoride.models.location import Location
from ecoride.utils.timezone_utils import utc_now


class TripStatus(str, Enum):
    """Status of a published trip."""

    OPEN = "OPEN"
    FULL = "FULL"
    ONGOING = "ongoing"  # Lowercase on the wire, kept for client compatibility
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_TRIP_STATUSES = (TripStatus.COMPLETED, TripStatus.CANCELLED)
BOOKABLE_TRIP_STATUSES = (TripStatus.OPEN, TripStatus.ONGOING)


class Expense(BaseModel):
    """A single entry of the trip expense ledger."""

    description: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., ge=0)


class Trip(BaseModel):
    """
    Trip model for MongoDB.

    Fields:
    - trip_id: Unique UUID for the trip
    - driver_id: Owning traveller
    - start_point / end_point: Route endpoints
    - departure_time: Scheduled departure
    - total_seats: Capacity snapshot taken at creation, never changes
    - available_seats: Remaining seats, 0 <= available_seats <= total_seats
    - price_per_seat: Fare per seat
    - distance: Route length in meters (from the routing provider)
    - duration: Route duration in seconds
    - route_polyline: Encoded path
    - status: Current status of the trip
    - expenses: Ordered expense ledger
    - total_expenses: Sum of expense amounts, always recomputed
    """

    trip_id: str = Field(..., description="Unique trip ID")
    driver_id: str = Field(..., description="Driver user ID")
    start_point: Location
    end_point: Location
    departure_time: datetime
    total_seats: int = Field(default=0, ge=0)
    available_seats: int = Field(..., ge=0)
    price_per_seat: float = Field(..., ge=0)

    # Route meta
    distance: Optional[int] = Field(None, description="Meters")
    duration: Optional[int] = Field(None, description="Seconds")
    route_polyline: Optional[str] = None

    status: TripStatus = Field(default=TripStatus.OPEN)

    expenses: list[Expense] = Field(default_factory=list)
    total_expenses: float = 0

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Config:
        use_enum_values = True

    @model_validator(mode="after")
    def recompute_total_expenses(self) -> "Trip":
        self.total_expenses = sum(e.amount for e in self.expenses)
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TRIP_STATUSES


class TripCreate(BaseModel):
    """Data required to publish a new trip."""

    start_point: Location
    end_point: Location
    departure_time: datetime
    available_seats: int = Field(..., ge=1, le=8)
    price_per_seat: float = Field(..., ge=0)
    route_polyline: Optional[str] = Field(
        None, description="Client-side path, used when no provider returns one"
    )


class ExpenseCreate(BaseModel):
    """Expense entry submitted by the driver."""

    description: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., ge=0)
