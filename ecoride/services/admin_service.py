"""
Admin Service

Platform-wide dashboard counters and the most recent records of each kind.
"""

import logging
from typing import Optional

from ecoride.models.booking import BookingStatus
from ecoride.models.dashboard import AdminDashboard, PlatformStats
from ecoride.models.report import ReportStatus
from ecoride.models.trip import TripStatus
from ecoride.models.user import User, UserRole, VerificationStatus
from ecoride.repositories.base import (
    BookingRepository,
    ReportRepository,
    TripRepository,
    UserRepository,
)
from ecoride.services.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


RECENT_LIMIT = 50

ACTIVE_TRIP_STATUSES = (TripStatus.OPEN, TripStatus.ONGOING)
CONFIRMED_BOOKING_STATUSES = (BookingStatus.ACCEPTED, BookingStatus.COMPLETED)


class AdminService:

    def __init__(
        self,
        users: Optional[UserRepository] = None,
        trips: Optional[TripRepository] = None,
        bookings: Optional[BookingRepository] = None,
        reports: Optional[ReportRepository] = None,
    ):
        if users is None or trips is None or bookings is None or reports is None:
            from ecoride.repositories import mongo
            users = users or mongo.MongoUserRepository()
            trips = trips or mongo.MongoTripRepository()
            bookings = bookings or mongo.MongoBookingRepository()
            reports = reports or mongo.MongoReportRepository()
        self.users = users
        self.trips = trips
        self.bookings = bookings
        self.reports = reports

    async def get_stats(self) -> PlatformStats:
        return PlatformStats(
            total_users=await self.users.count(),
            total_travellers=await self.users.count(role=UserRole.TRAVELLER),
            total_passengers=await self.users.count(role=UserRole.PASSENGER),
            total_trips=await self.trips.count(),
            active_trips=await self.trips.count(ACTIVE_TRIP_STATUSES),
            total_bookings=await self.bookings.count(CONFIRMED_BOOKING_STATUSES),
            pending_verifications=await self.users.count(
                verification_status=VerificationStatus.PENDING
            ),
            open_reports=await self.reports.count(ReportStatus.OPEN),
            total_revenue=await self.bookings.total_fare((BookingStatus.COMPLETED,)),
        )

    async def get_dashboard(self, admin: User, limit: int = RECENT_LIMIT) -> AdminDashboard:
        """Counters plus the newest users, trips, bookings and reports."""
        if not admin.has_role(UserRole.ADMIN):
            raise AuthorizationError("Admin access required")

        dashboard = AdminDashboard(
            stats=await self.get_stats(),
            recent_users=await self.users.find_recent(limit),
            recent_trips=await self.trips.find_recent(limit),
            recent_bookings=await self.bookings.find_recent(limit),
            recent_reports=await self.reports.find_recent(limit=limit),
        )

        logger.info(f"Dashboard served to admin {admin.user_id}")
        return dashboard
