"""EcoRide Services Package"""

from ecoride.services.matching_service import MatchingService
from ecoride.services.reward_service import RewardService
from ecoride.services.routing_service import RoutingService
from ecoride.services.notification_service import NotificationService
from ecoride.services.trip_service import TripService
from ecoride.services.booking_service import BookingService
from ecoride.services.user_service import UserService
from ecoride.services.chat_service import ChatService
from ecoride.services.report_service import ReportService
from ecoride.services.admin_service import AdminService

__all__ = [
    "MatchingService",
    "RewardService",
    "RoutingService",
    "NotificationService",
    "TripService",
    "BookingService",
    "UserService",
    "ChatService",
    "ReportService",
    "AdminService",
]
