"""Dashboard Model - Platform-wide counters for the admin console."""

from typing import List

from pydantic import BaseModel

from ecoride.models.booking import Booking
from ecoride.models.report import Report
from ecoride.models.trip import Trip
from ecoride.models.user import User


class PlatformStats(BaseModel):
    """
    Headline counters.

    Fields:
    - total_bookings: ACCEPTED and COMPLETED bookings
    - active_trips: OPEN and ongoing trips
    - total_revenue: Sum of fares over COMPLETED bookings
    """
    total_users: int
    total_travellers: int
    total_passengers: int
    total_trips: int
    active_trips: int
    total_bookings: int
    pending_verifications: int
    open_reports: int
    total_revenue: float


class AdminDashboard(BaseModel):
    stats: PlatformStats
    recent_users: List[User]
    recent_trips: List[Trip]
    recent_bookings: List[Booking]
    recent_reports: List[Report]
