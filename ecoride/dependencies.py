"""
Request Dependencies

FastAPI dependencies for the caller identity and the service layer.

Authentication happens upstream: the gateway forwards the authenticated
account id in the X-User-Id header.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from ecoride.models.user import User, UserRole
from ecoride.repositories.base import TaskFailureRepository
from ecoride.services.admin_service import AdminService
from ecoride.services.booking_service import BookingService
from ecoride.services.chat_service import ChatService
from ecoride.services.exceptions import NotFoundError
from ecoride.services.notification_service import NotificationService
from ecoride.services.report_service import ReportService
from ecoride.services.trip_service import TripService
from ecoride.services.user_service import UserService


notification_service = NotificationService()
user_service = UserService()
trip_service = TripService(notifications=notification_service)
booking_service = BookingService(notifications=notification_service)
chat_service = ChatService(notifications=notification_service)
report_service = ReportService()
admin_service = AdminService()


def get_notification_service() -> NotificationService:
    return notification_service


def get_user_service() -> UserService:
    return user_service


def get_trip_service() -> TripService:
    return trip_service


def get_booking_service() -> BookingService:
    return booking_service


def get_chat_service() -> ChatService:
    return chat_service


def get_report_service() -> ReportService:
    return report_service


def get_admin_service() -> AdminService:
    return admin_service


def get_task_failures() -> TaskFailureRepository:
    """Reconciliation log written by post-commit tasks."""
    return trip_service.failures


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    users: UserService = Depends(get_user_service),
) -> User:
    """
    Resolve the calling account from the X-User-Id header.

    All protected endpoints should depend on this.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header required",
        )

    try:
        return await users.get_user(x_user_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    """Get current user with admin privileges."""
    if not user.has_role(UserRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
