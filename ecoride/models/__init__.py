"""EcoRide Models Package"""

from ecoride.models.location import Location
from ecoride.models.user import (
    User, UserCreate, UserRole, VerificationStatus, VerificationDetails, ImpactStats,
    level_for_points,
)
from ecoride.models.trip import Trip, TripCreate, TripStatus, Expense, ExpenseCreate
from ecoride.models.booking import (
    Booking, BookingCreate, BookingDecision, BookingStatus, PaymentStatus,
    PaymentMethod, PaymentUpdate,
)
from ecoride.models.notification import (
    Notification, NotificationIntent, NotificationType, RefType,
)
from ecoride.models.chat_message import ChatMessage, ChatMessageCreate, LocationUpdate
from ecoride.models.task_failure import TaskFailure
from ecoride.models.report import (
    Report, ReportCreate, ReportStatus, ReportStatusUpdate, ReportType,
)
from ecoride.models.dashboard import AdminDashboard, PlatformStats

__all__ = [
    "Location",
    "User", "UserCreate", "UserRole", "VerificationStatus", "VerificationDetails",
    "ImpactStats", "level_for_points",
    "Trip", "TripCreate", "TripStatus", "Expense", "ExpenseCreate",
    "Booking", "BookingCreate", "BookingDecision", "BookingStatus", "PaymentStatus",
    "PaymentMethod", "PaymentUpdate",
    "Notification", "NotificationIntent", "NotificationType", "RefType",
    "ChatMessage", "ChatMessageCreate", "LocationUpdate",
    "TaskFailure",
    "Report", "ReportCreate", "ReportStatus", "ReportStatusUpdate", "ReportType",
    "AdminDashboard", "PlatformStats",
]
