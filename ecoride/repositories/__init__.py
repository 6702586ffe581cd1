"""EcoRide Repositories Package"""

from ecoride.repositories.base import (
    TripRepository,
    BookingRepository,
    UserRepository,
    NotificationRepository,
    ChatMessageRepository,
    TaskFailureRepository,
    ReportRepository,
)

__all__ = [
    "TripRepository",
    "BookingRepository",
    "UserRepository",
    "NotificationRepository",
    "ChatMessageRepository",
    "TaskFailureRepository",
    "ReportRepository",
]
