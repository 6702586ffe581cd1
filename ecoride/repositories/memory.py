"""
In-Memory Repositories

Dict-backed implementations of the repository contracts for tests and local
runs. Every stored object is copied on the way in and out so callers never
share mutable state with the store. Conditional updates complete without
yielding to the event loop, which makes them atomic per document.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ecoride.models.booking import Booking, BookingStatus, PaymentMethod, PaymentStatus
from ecoride.models.chat_message import ChatMessage
from ecoride.models.notification import Notification
from ecoride.models.report import Report, ReportStatus
from ecoride.models.task_failure import TaskFailure
from ecoride.models.trip import (
    BOOKABLE_TRIP_STATUSES,
    Expense,
    Trip,
    TripStatus,
)
from ecoride.models.user import (
    MAX_TRUST_SCORE,
    User,
    UserRole,
    VerificationDetails,
    VerificationStatus,
)
from ecoride.repositories.base import (
    BookingRepository,
    ChatMessageRepository,
    NotificationRepository,
    ReportRepository,
    TaskFailureRepository,
    TripRepository,
    UserRepository,
)
from ecoride.utils.timezone_utils import ensure_utc, utc_now


class InMemoryTripRepository(TripRepository):

    def __init__(self):
        self.trips: Dict[str, Trip] = {}

    async def insert(self, trip: Trip) -> Trip:
        self.trips[trip.trip_id] = trip.model_copy(deep=True)
        return trip

    async def get(self, trip_id: str) -> Optional[Trip]:
        trip = self.trips.get(trip_id)
        return trip.model_copy(deep=True) if trip else None

    async def find_open(self, departure_after: datetime) -> List[Trip]:
        matches = [
            t.model_copy(deep=True)
            for t in self.trips.values()
            if t.status == TripStatus.OPEN
            and t.available_seats > 0
            and ensure_utc(t.departure_time) >= departure_after
        ]
        return sorted(matches, key=lambda t: ensure_utc(t.departure_time))

    async def find_by_driver(self, driver_id: str) -> List[Trip]:
        matches = [t.model_copy(deep=True) for t in self.trips.values() if t.driver_id == driver_id]
        return sorted(matches, key=lambda t: ensure_utc(t.departure_time), reverse=True)

    async def try_reserve_seats(self, trip_id: str, seats: int) -> bool:
        trip = self.trips.get(trip_id)
        if trip is None or trip.status not in BOOKABLE_TRIP_STATUSES:
            return False
        if trip.available_seats < seats:
            return False

        trip.available_seats -= seats
        if trip.available_seats == 0 and trip.status == TripStatus.OPEN:
            trip.status = TripStatus.FULL.value
        trip.updated_at = utc_now()
        return True

    async def release_seats(self, trip_id: str, seats: int) -> None:
        trip = self.trips.get(trip_id)
        if trip is None:
            return

        restored = trip.available_seats + seats
        if trip.total_seats > 0:
            restored = min(restored, trip.total_seats)
        trip.available_seats = restored
        if trip.available_seats > 0 and trip.status == TripStatus.FULL:
            trip.status = TripStatus.OPEN.value
        trip.updated_at = utc_now()

    async def mark_completed(self, trip_id: str) -> bool:
        trip = self.trips.get(trip_id)
        if trip is None or trip.is_terminal:
            return False
        trip.status = TripStatus.COMPLETED.value
        trip.updated_at = utc_now()
        return True

    async def append_expense(self, trip_id: str, expense: Expense) -> Optional[Trip]:
        trip = self.trips.get(trip_id)
        if trip is None:
            return None
        trip.expenses.append(expense.model_copy())
        trip.total_expenses = sum(e.amount for e in trip.expenses)
        trip.updated_at = utc_now()
        return trip.model_copy(deep=True)

    async def count_completed_by_driver(self, driver_id: str) -> int:
        return sum(
            1 for t in self.trips.values()
            if t.driver_id == driver_id and t.status == TripStatus.COMPLETED
        )

    async def count(self, statuses: Optional[Sequence[TripStatus]] = None) -> int:
        if statuses is None:
            return len(self.trips)
        wanted = [getattr(s, "value", s) for s in statuses]
        return sum(1 for t in self.trips.values() if t.status in wanted)

    async def find_recent(self, limit: int = 50) -> List[Trip]:
        return [t.model_copy(deep=True) for t in reversed(list(self.trips.values()))][:limit]


class InMemoryBookingRepository(BookingRepository):

    def __init__(self):
        self.bookings: Dict[str, Booking] = {}

    def _select(self, predicate, newest_first: bool = True) -> List[Booking]:
        # Dict preserves insertion order, i.e. creation order
        matches = [b.model_copy(deep=True) for b in self.bookings.values() if predicate(b)]
        if newest_first:
            matches.reverse()
        return matches

    async def insert(self, booking: Booking) -> Booking:
        self.bookings[booking.booking_id] = booking.model_copy(deep=True)
        return booking

    async def get(self, booking_id: str) -> Optional[Booking]:
        booking = self.bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    async def find_by_trip(
        self, trip_id: str, status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        return self._select(
            lambda b: b.trip_id == trip_id and (status is None or b.status == status),
            newest_first=False,
        )

    async def find_by_passenger(self, passenger_id: str) -> List[Booking]:
        return self._select(lambda b: b.passenger_id == passenger_id)

    async def find_pending_for_trips(self, trip_ids: List[str]) -> List[Booking]:
        return self._select(
            lambda b: b.trip_id in trip_ids and b.status == BookingStatus.PENDING
        )

    async def find_settled_for(self, user_id: str, trip_ids: List[str]) -> List[Booking]:
        return self._select(
            lambda b: (b.passenger_id == user_id or b.trip_id in trip_ids)
            and b.payment_status != PaymentStatus.PENDING
        )

    async def transition_status(
        self, booking_id: str, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        booking = self.bookings.get(booking_id)
        if booking is None or booking.status != from_status:
            return False
        booking.status = getattr(to_status, "value", to_status)
        booking.updated_at = utc_now()
        return True

    async def update_payment(
        self,
        booking_id: str,
        payment_status: Optional[PaymentStatus],
        payment_method: Optional[PaymentMethod],
    ) -> Optional[Booking]:
        booking = self.bookings.get(booking_id)
        if booking is None:
            return None
        if payment_status is not None:
            booking.payment_status = getattr(payment_status, "value", payment_status)
        if payment_method is not None:
            booking.payment_method = getattr(payment_method, "value", payment_method)
        booking.updated_at = utc_now()
        return booking.model_copy(deep=True)

    async def count_completed_by_passenger(self, passenger_id: str) -> int:
        return sum(
            1 for b in self.bookings.values()
            if b.passenger_id == passenger_id and b.status == BookingStatus.COMPLETED
        )

    async def count(self, statuses: Optional[Sequence[BookingStatus]] = None) -> int:
        if statuses is None:
            return len(self.bookings)
        wanted = [getattr(s, "value", s) for s in statuses]
        return sum(1 for b in self.bookings.values() if b.status in wanted)

    async def total_fare(self, statuses: Sequence[BookingStatus]) -> float:
        wanted = [getattr(s, "value", s) for s in statuses]
        return sum(b.fare for b in self.bookings.values() if b.status in wanted)

    async def find_recent(self, limit: int = 50) -> List[Booking]:
        return self._select(lambda b: True)[:limit]


class InMemoryUserRepository(UserRepository):

    def __init__(self):
        self.users: Dict[str, User] = {}

    async def insert(self, user: User) -> User:
        self.users[user.user_id] = user.model_copy(deep=True)
        return user

    async def get(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def update_verification(
        self,
        user_id: str,
        from_statuses: Sequence[VerificationStatus],
        to_status: VerificationStatus,
        is_verified: Optional[bool] = None,
        details: Optional[VerificationDetails] = None,
        trust_delta: float = 0,
    ) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        if user.verification_status not in [getattr(s, "value", s) for s in from_statuses]:
            return None

        user.verification_status = getattr(to_status, "value", to_status)
        if is_verified is not None:
            user.is_verified = is_verified
        if details is not None:
            user.verification_details = details.model_copy()
        if trust_delta:
            user.trust_score = min(MAX_TRUST_SCORE, max(0, user.trust_score + trust_delta))
        user.updated_at = utc_now()
        return user.model_copy(deep=True)

    async def increment_rewards(
        self, user_id: str, carbon_saved: float, ride_credits: int, loyalty_points: int
    ) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        user.carbon_saved += carbon_saved
        user.ride_credits += ride_credits
        user.loyalty_points += loyalty_points
        user.updated_at = utc_now()
        return user.model_copy(deep=True)

    async def set_level(self, user_id: str, level: str) -> None:
        user = self.users.get(user_id)
        if user is not None:
            user.level = level

    async def count(
        self,
        role: Optional[UserRole] = None,
        verification_status: Optional[VerificationStatus] = None,
    ) -> int:
        wanted = getattr(verification_status, "value", verification_status)
        return sum(
            1 for u in self.users.values()
            if (role is None or u.has_role(role))
            and (wanted is None or u.verification_status == wanted)
        )

    async def find_recent(self, limit: int = 50) -> List[User]:
        return [u.model_copy(deep=True) for u in reversed(list(self.users.values()))][:limit]

    async def delete(self, user_id: str) -> bool:
        return self.users.pop(user_id, None) is not None


class InMemoryNotificationRepository(NotificationRepository):

    def __init__(self):
        self.notifications: Dict[str, Notification] = {}

    async def insert(self, notification: Notification) -> Notification:
        self.notifications[notification.notification_id] = notification.model_copy(deep=True)
        return notification

    async def get(self, notification_id: str) -> Optional[Notification]:
        notification = self.notifications.get(notification_id)
        return notification.model_copy(deep=True) if notification else None

    async def find_by_user(
        self, user_id: str, limit: int = 50, unread_only: bool = False
    ) -> List[Notification]:
        matches = [
            n.model_copy(deep=True)
            for n in self.notifications.values()
            if n.user_id == user_id and not (unread_only and n.read)
        ]
        matches.reverse()
        return matches[:limit]

    async def count_unread(self, user_id: str) -> int:
        return sum(
            1 for n in self.notifications.values() if n.user_id == user_id and not n.read
        )

    async def mark_read(self, notification_id: str) -> None:
        notification = self.notifications.get(notification_id)
        if notification is not None:
            notification.read = True

    async def delete(self, notification_id: str) -> None:
        self.notifications.pop(notification_id, None)


class InMemoryChatMessageRepository(ChatMessageRepository):

    def __init__(self):
        self.messages: List[ChatMessage] = []

    async def insert(self, message: ChatMessage) -> ChatMessage:
        self.messages.append(message.model_copy(deep=True))
        return message

    async def find_by_trip(self, trip_id: str, limit: int = 100) -> List[ChatMessage]:
        return [m.model_copy(deep=True) for m in self.messages if m.trip_id == trip_id][:limit]


class InMemoryTaskFailureRepository(TaskFailureRepository):

    def __init__(self):
        self.failures: List[TaskFailure] = []

    async def insert(self, failure: TaskFailure) -> TaskFailure:
        self.failures.append(failure.model_copy(deep=True))
        return failure

    async def find_recent(self, limit: int = 100) -> List[TaskFailure]:
        return [f.model_copy(deep=True) for f in reversed(self.failures)][:limit]


class InMemoryReportRepository(ReportRepository):

    def __init__(self):
        self.reports: Dict[str, Report] = {}

    async def insert(self, report: Report) -> Report:
        self.reports[report.report_id] = report.model_copy(deep=True)
        return report

    async def get(self, report_id: str) -> Optional[Report]:
        report = self.reports.get(report_id)
        return report.model_copy(deep=True) if report else None

    async def find_recent(
        self, limit: int = 50, status: Optional[ReportStatus] = None
    ) -> List[Report]:
        wanted = getattr(status, "value", status)
        matches = [
            r.model_copy(deep=True)
            for r in reversed(list(self.reports.values()))
            if wanted is None or r.status == wanted
        ]
        return matches[:limit]

    async def transition_status(
        self,
        report_id: str,
        from_status: ReportStatus,
        to_status: ReportStatus,
        reviewed_by: str,
        note: Optional[str] = None,
    ) -> Optional[Report]:
        report = self.reports.get(report_id)
        if report is None or report.status != from_status:
            return None
        report.status = getattr(to_status, "value", to_status)
        report.reviewed_by = reviewed_by
        if note is not None:
            report.resolution_note = note
        report.updated_at = utc_now()
        return report.model_copy(deep=True)

    async def count(self, status: Optional[ReportStatus] = None) -> int:
        wanted = getattr(status, "value", status)
        return sum(1 for r in self.reports.values() if wanted is None or r.status == wanted)
