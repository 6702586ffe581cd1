"""Report Service - Manages user safety reports and moderation."""

import logging
import uuid
from typing import List, Optional

from ecoride.models.report import (
    REPORT_TRANSITIONS,
    Report,
    ReportCreate,
    ReportStatus,
)
from ecoride.models.user import User, UserRole
from ecoride.repositories.base import ReportRepository, TripRepository, UserRepository
from ecoride.services.exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)


class ReportService:

    def __init__(
        self,
        reports: Optional[ReportRepository] = None,
        users: Optional[UserRepository] = None,
        trips: Optional[TripRepository] = None,
    ):
        if reports is None or users is None or trips is None:
            from ecoride.repositories import mongo
            reports = reports or mongo.MongoReportRepository()
            users = users or mongo.MongoUserRepository()
            trips = trips or mongo.MongoTripRepository()
        self.reports = reports
        self.users = users
        self.trips = trips

    async def create_report(self, reporter: User, data: ReportCreate) -> Report:
        """File a report against another user, optionally tied to a trip."""
        if data.accused_user_id == reporter.user_id:
            raise ValidationFailedError("Cannot report yourself")

        if await self.users.get(data.accused_user_id) is None:
            raise NotFoundError("Reported user not found")

        if data.trip_id and await self.trips.get(data.trip_id) is None:
            raise NotFoundError("Trip not found")

        report = Report(
            report_id=str(uuid.uuid4()),
            reporter_user_id=reporter.user_id,
            accused_user_id=data.accused_user_id,
            trip_id=data.trip_id,
            type=data.type,
            description=data.description,
        )
        await self.reports.insert(report)

        logger.info(
            f"Report {report.report_id} ({report.type}) filed by {reporter.user_id} "
            f"against {data.accused_user_id}"
        )
        return report

    async def list_reports(
        self, admin: User, status: Optional[ReportStatus] = None, limit: int = 50
    ) -> List[Report]:
        if not admin.has_role(UserRole.ADMIN):
            raise AuthorizationError("Admin access required")
        return await self.reports.find_recent(limit=limit, status=status)

    async def update_status(
        self, admin: User, report_id: str, status: ReportStatus, note: Optional[str] = None
    ) -> Report:
        """
        Move a report forward: OPEN -> REVIEWED | CLOSED, REVIEWED -> CLOSED.

        The change is conditional on the status read, so two admins acting at
        once cannot both apply a transition.
        """
        if not admin.has_role(UserRole.ADMIN):
            raise AuthorizationError("Admin access required")

        report = await self.reports.get(report_id)
        if report is None:
            raise NotFoundError("Report not found")

        current = ReportStatus(report.status)
        if ReportStatus(status) not in REPORT_TRANSITIONS[current]:
            raise InvalidTransitionError(f"Cannot move report from {current.value} to {status}")

        updated = await self.reports.transition_status(
            report_id, current, status, reviewed_by=admin.user_id, note=note
        )
        if updated is None:
            raise InvalidTransitionError("Report was updated by another admin")

        logger.info(f"Report {report_id} moved to {updated.status} by admin {admin.user_id}")
        return updated
