"""
Repository Contracts

Persistence interfaces injected into the services. MongoDB implementations
live in `mongo`, in-memory ones in `memory`; both obey the same contract.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from ecoride.models.booking import Booking, BookingStatus, PaymentMethod, PaymentStatus
from ecoride.models.chat_message import ChatMessage
from ecoride.models.notification import Notification
from ecoride.models.report import Report, ReportStatus
from ecoride.models.task_failure import TaskFailure
from ecoride.models.trip import Expense, Trip, TripStatus
from ecoride.models.user import User, UserRole, VerificationDetails, VerificationStatus


class TripRepository(ABC):

    @abstractmethod
    async def insert(self, trip: Trip) -> Trip: ...

    @abstractmethod
    async def get(self, trip_id: str) -> Optional[Trip]: ...

    @abstractmethod
    async def find_open(self, departure_after: datetime) -> List[Trip]:
        """OPEN trips with seats left departing at or after the bound, soonest first."""

    @abstractmethod
    async def find_by_driver(self, driver_id: str) -> List[Trip]:
        """A driver's trips, latest departure first."""

    @abstractmethod
    async def try_reserve_seats(self, trip_id: str, seats: int) -> bool:
        """
        Atomically decrement available_seats by `seats` iff enough remain.

        Flips OPEN -> FULL when the count reaches zero. Returns False without
        touching the document when the condition fails.
        """

    @abstractmethod
    async def release_seats(self, trip_id: str, seats: int) -> None:
        """Give reserved seats back (FULL -> OPEN), capped at total_seats."""

    @abstractmethod
    async def mark_completed(self, trip_id: str) -> bool:
        """Set status COMPLETED from any non-terminal status. Status-only update."""

    @abstractmethod
    async def append_expense(self, trip_id: str, expense: Expense) -> Optional[Trip]:
        """Append to the ledger and recompute total_expenses in one update."""

    @abstractmethod
    async def count_completed_by_driver(self, driver_id: str) -> int: ...

    @abstractmethod
    async def count(self, statuses: Optional[Sequence[TripStatus]] = None) -> int: ...

    @abstractmethod
    async def find_recent(self, limit: int = 50) -> List[Trip]:
        """Most recently created trips first."""


class BookingRepository(ABC):

    @abstractmethod
    async def insert(self, booking: Booking) -> Booking: ...

    @abstractmethod
    async def get(self, booking_id: str) -> Optional[Booking]: ...

    @abstractmethod
    async def find_by_trip(
        self, trip_id: str, status: Optional[BookingStatus] = None
    ) -> List[Booking]: ...

    @abstractmethod
    async def find_by_passenger(self, passenger_id: str) -> List[Booking]: ...

    @abstractmethod
    async def find_pending_for_trips(self, trip_ids: List[str]) -> List[Booking]: ...

    @abstractmethod
    async def find_settled_for(self, user_id: str, trip_ids: List[str]) -> List[Booking]:
        """Bookings with payment past PENDING where user is passenger or on listed trips."""

    @abstractmethod
    async def transition_status(
        self, booking_id: str, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        """Conditional status change; False if the booking is no longer in `from_status`."""

    @abstractmethod
    async def update_payment(
        self,
        booking_id: str,
        payment_status: Optional[PaymentStatus],
        payment_method: Optional[PaymentMethod],
    ) -> Optional[Booking]: ...

    @abstractmethod
    async def count_completed_by_passenger(self, passenger_id: str) -> int: ...

    @abstractmethod
    async def count(self, statuses: Optional[Sequence[BookingStatus]] = None) -> int: ...

    @abstractmethod
    async def total_fare(self, statuses: Sequence[BookingStatus]) -> float:
        """Sum of fares over bookings in `statuses`; 0 when there are none."""

    @abstractmethod
    async def find_recent(self, limit: int = 50) -> List[Booking]:
        """Most recently created bookings first."""


class UserRepository(ABC):

    @abstractmethod
    async def insert(self, user: User) -> User: ...

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def update_verification(
        self,
        user_id: str,
        from_statuses: Sequence[VerificationStatus],
        to_status: VerificationStatus,
        is_verified: Optional[bool] = None,
        details: Optional[VerificationDetails] = None,
        trust_delta: float = 0,
    ) -> Optional[User]:
        """
        Conditional verification change touching only the verification fields
        and trust_score (clamped to 0-100).

        Returns None when the user is missing or not in `from_statuses`.
        """

    @abstractmethod
    async def increment_rewards(
        self, user_id: str, carbon_saved: float, ride_credits: int, loyalty_points: int
    ) -> Optional[User]:
        """Atomically add reward deltas; returns the updated user or None if missing."""

    @abstractmethod
    async def set_level(self, user_id: str, level: str) -> None: ...

    @abstractmethod
    async def count(
        self,
        role: Optional[UserRole] = None,
        verification_status: Optional[VerificationStatus] = None,
    ) -> int: ...

    @abstractmethod
    async def find_recent(self, limit: int = 50) -> List[User]:
        """Newest accounts first."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Remove the account; False if it did not exist."""


class NotificationRepository(ABC):

    @abstractmethod
    async def insert(self, notification: Notification) -> Notification: ...

    @abstractmethod
    async def get(self, notification_id: str) -> Optional[Notification]: ...

    @abstractmethod
    async def find_by_user(
        self, user_id: str, limit: int = 50, unread_only: bool = False
    ) -> List[Notification]: ...

    @abstractmethod
    async def count_unread(self, user_id: str) -> int: ...

    @abstractmethod
    async def mark_read(self, notification_id: str) -> None: ...

    @abstractmethod
    async def delete(self, notification_id: str) -> None: ...


class ChatMessageRepository(ABC):

    @abstractmethod
    async def insert(self, message: ChatMessage) -> ChatMessage: ...

    @abstractmethod
    async def find_by_trip(self, trip_id: str, limit: int = 100) -> List[ChatMessage]: ...


class TaskFailureRepository(ABC):

    @abstractmethod
    async def insert(self, failure: TaskFailure) -> TaskFailure: ...

    @abstractmethod
    async def find_recent(self, limit: int = 100) -> List[TaskFailure]: ...


class ReportRepository(ABC):

    @abstractmethod
    async def insert(self, report: Report) -> Report: ...

    @abstractmethod
    async def get(self, report_id: str) -> Optional[Report]: ...

    @abstractmethod
    async def find_recent(
        self, limit: int = 50, status: Optional[ReportStatus] = None
    ) -> List[Report]:
        """Newest reports first, optionally filtered by status."""

    @abstractmethod
    async def transition_status(
        self,
        report_id: str,
        from_status: ReportStatus,
        to_status: ReportStatus,
        reviewed_by: str,
        note: Optional[str] = None,
    ) -> Optional[Report]:
        """Conditional status change; None if the report is no longer in `from_status`."""

    @abstractmethod
    async def count(self, status: Optional[ReportStatus] = None) -> int: ...
