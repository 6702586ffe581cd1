"""
MongoDB Repositories

Motor-backed implementations of the repository contracts. Each call resolves
the database through get_db() so instances can be created before startup.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ecoride.database import get_db
from ecoride.models.booking import Booking, BookingStatus, PaymentMethod, PaymentStatus
from ecoride.models.chat_message import ChatMessage
from ecoride.models.notification import Notification
from ecoride.models.report import Report, ReportStatus
from ecoride.models.task_failure import TaskFailure
from ecoride.models.trip import (
    BOOKABLE_TRIP_STATUSES,
    TERMINAL_TRIP_STATUSES,
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
from ecoride.utils.timezone_utils import utc_now


def _values(statuses) -> list:
    return [getattr(s, "value", s) for s in statuses]


class MongoRepository:
    """Shared database lookup."""

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self._db = db

    @property
    def db(self) -> AsyncIOMotorDatabase:
        return self._db if self._db is not None else get_db()


# =============================================================================
# Trips
# =============================================================================

class MongoTripRepository(MongoRepository, TripRepository):

    async def insert(self, trip: Trip) -> Trip:
        await self.db.trips.insert_one(trip.model_dump())
        return trip

    async def get(self, trip_id: str) -> Optional[Trip]:
        doc = await self.db.trips.find_one({"trip_id": trip_id})
        if doc:
            return Trip(**doc)
        return None

    async def find_open(self, departure_after: datetime) -> List[Trip]:
        cursor = self.db.trips.find({
            "status": TripStatus.OPEN.value,
            "departure_time": {"$gte": departure_after},
            "available_seats": {"$gt": 0}
        }).sort("departure_time", 1)

        trips = []
        async for doc in cursor:
            trips.append(Trip(**doc))
        return trips

    async def find_by_driver(self, driver_id: str) -> List[Trip]:
        cursor = self.db.trips.find({"driver_id": driver_id}).sort("departure_time", -1)

        trips = []
        async for doc in cursor:
            trips.append(Trip(**doc))
        return trips

    async def try_reserve_seats(self, trip_id: str, seats: int) -> bool:
        # Condition and decrement run as one server-side update
        result = await self.db.trips.update_one(
            {
                "trip_id": trip_id,
                "status": {"$in": _values(BOOKABLE_TRIP_STATUSES)},
                "available_seats": {"$gte": seats}
            },
            [
                {"$set": {
                    "available_seats": {"$subtract": ["$available_seats", seats]},
                    "updated_at": utc_now()
                }},
                {"$set": {
                    "status": {"$cond": [
                        {"$and": [
                            {"$eq": ["$available_seats", 0]},
                            {"$eq": ["$status", TripStatus.OPEN.value]}
                        ]},
                        TripStatus.FULL.value,
                        "$status"
                    ]}
                }}
            ]
        )
        return result.modified_count == 1

    async def release_seats(self, trip_id: str, seats: int) -> None:
        restored = {"$add": ["$available_seats", seats]}
        await self.db.trips.update_one(
            {"trip_id": trip_id},
            [
                {"$set": {
                    "available_seats": {"$cond": [
                        {"$gt": ["$total_seats", 0]},
                        {"$min": [restored, "$total_seats"]},
                        restored
                    ]},
                    "updated_at": utc_now()
                }},
                {"$set": {
                    "status": {"$cond": [
                        {"$and": [
                            {"$gt": ["$available_seats", 0]},
                            {"$eq": ["$status", TripStatus.FULL.value]}
                        ]},
                        TripStatus.OPEN.value,
                        "$status"
                    ]}
                }}
            ]
        )

    async def mark_completed(self, trip_id: str) -> bool:
        # $set only: legacy documents may miss newer fields
        result = await self.db.trips.update_one(
            {
                "trip_id": trip_id,
                "status": {"$nin": _values(TERMINAL_TRIP_STATUSES)}
            },
            {"$set": {"status": TripStatus.COMPLETED.value, "updated_at": utc_now()}}
        )
        return result.modified_count == 1

    async def append_expense(self, trip_id: str, expense: Expense) -> Optional[Trip]:
        doc = await self.db.trips.find_one_and_update(
            {"trip_id": trip_id},
            [
                {"$set": {
                    "expenses": {"$concatArrays": [
                        {"$ifNull": ["$expenses", []]},
                        [expense.model_dump()]
                    ]},
                    "updated_at": utc_now()
                }},
                {"$set": {"total_expenses": {"$sum": "$expenses.amount"}}}
            ],
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return Trip(**doc)
        return None

    async def count_completed_by_driver(self, driver_id: str) -> int:
        return await self.db.trips.count_documents({
            "driver_id": driver_id,
            "status": TripStatus.COMPLETED.value
        })

    async def count(self, statuses: Optional[Sequence[TripStatus]] = None) -> int:
        query = {}
        if statuses is not None:
            query["status"] = {"$in": _values(statuses)}
        return await self.db.trips.count_documents(query)

    async def find_recent(self, limit: int = 50) -> List[Trip]:
        cursor = self.db.trips.find({}).sort("created_at", -1).limit(limit)

        trips = []
        async for doc in cursor:
            trips.append(Trip(**doc))
        return trips


# =============================================================================
# Bookings
# =============================================================================

class MongoBookingRepository(MongoRepository, BookingRepository):

    async def _find(self, query: dict, sort_desc: bool = True) -> List[Booking]:
        cursor = self.db.bookings.find(query).sort("created_at", -1 if sort_desc else 1)

        bookings = []
        async for doc in cursor:
            bookings.append(Booking(**doc))
        return bookings

    async def insert(self, booking: Booking) -> Booking:
        await self.db.bookings.insert_one(booking.model_dump())
        return booking

    async def get(self, booking_id: str) -> Optional[Booking]:
        doc = await self.db.bookings.find_one({"booking_id": booking_id})
        if doc:
            return Booking(**doc)
        return None

    async def find_by_trip(
        self, trip_id: str, status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        query = {"trip_id": trip_id}
        if status is not None:
            query["status"] = getattr(status, "value", status)
        # Natural (creation) order for the completion loop
        return await self._find(query, sort_desc=False)

    async def find_by_passenger(self, passenger_id: str) -> List[Booking]:
        return await self._find({"passenger_id": passenger_id})

    async def find_pending_for_trips(self, trip_ids: List[str]) -> List[Booking]:
        if not trip_ids:
            return []
        return await self._find({
            "trip_id": {"$in": trip_ids},
            "status": BookingStatus.PENDING.value
        })

    async def find_settled_for(self, user_id: str, trip_ids: List[str]) -> List[Booking]:
        return await self._find({
            "$or": [{"passenger_id": user_id}, {"trip_id": {"$in": trip_ids}}],
            "payment_status": {"$ne": PaymentStatus.PENDING.value}
        })

    async def transition_status(
        self, booking_id: str, from_status: BookingStatus, to_status: BookingStatus
    ) -> bool:
        result = await self.db.bookings.update_one(
            {"booking_id": booking_id, "status": getattr(from_status, "value", from_status)},
            {"$set": {"status": getattr(to_status, "value", to_status), "updated_at": utc_now()}}
        )
        return result.modified_count == 1

    async def update_payment(
        self,
        booking_id: str,
        payment_status: Optional[PaymentStatus],
        payment_method: Optional[PaymentMethod],
    ) -> Optional[Booking]:
        fields = {"updated_at": utc_now()}
        if payment_status is not None:
            fields["payment_status"] = getattr(payment_status, "value", payment_status)
        if payment_method is not None:
            fields["payment_method"] = getattr(payment_method, "value", payment_method)

        doc = await self.db.bookings.find_one_and_update(
            {"booking_id": booking_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return Booking(**doc)
        return None

    async def count_completed_by_passenger(self, passenger_id: str) -> int:
        return await self.db.bookings.count_documents({
            "passenger_id": passenger_id,
            "status": BookingStatus.COMPLETED.value
        })

    async def count(self, statuses: Optional[Sequence[BookingStatus]] = None) -> int:
        query = {}
        if statuses is not None:
            query["status"] = {"$in": _values(statuses)}
        return await self.db.bookings.count_documents(query)

    async def total_fare(self, statuses: Sequence[BookingStatus]) -> float:
        cursor = self.db.bookings.aggregate([
            {"$match": {"status": {"$in": _values(statuses)}}},
            {"$group": {"_id": None, "total": {"$sum": "$fare"}}}
        ])

        async for row in cursor:
            return row["total"]
        return 0

    async def find_recent(self, limit: int = 50) -> List[Booking]:
        cursor = self.db.bookings.find({}).sort("created_at", -1).limit(limit)

        bookings = []
        async for doc in cursor:
            bookings.append(Booking(**doc))
        return bookings


# =============================================================================
# Users
# =============================================================================

class MongoUserRepository(MongoRepository, UserRepository):

    async def insert(self, user: User) -> User:
        await self.db.users.insert_one(user.model_dump())
        return user

    async def get(self, user_id: str) -> Optional[User]:
        doc = await self.db.users.find_one({"user_id": user_id})
        if doc:
            return User(**doc)
        return None

    async def update_verification(
        self,
        user_id: str,
        from_statuses: Sequence[VerificationStatus],
        to_status: VerificationStatus,
        is_verified: Optional[bool] = None,
        details: Optional[VerificationDetails] = None,
        trust_delta: float = 0,
    ) -> Optional[User]:
        allowed = _values(from_statuses)
        if VerificationStatus.UNVERIFIED.value in allowed:
            # Documents written before the field existed
            allowed.append(None)

        fields = {
            "verification_status": {"$literal": getattr(to_status, "value", to_status)},
            "updated_at": utc_now(),
        }
        if is_verified is not None:
            fields["is_verified"] = is_verified
        if details is not None:
            fields["verification_details"] = {"$literal": details.model_dump()}
        if trust_delta:
            fields["trust_score"] = {"$min": [MAX_TRUST_SCORE, {"$max": [0, {
                "$add": [{"$ifNull": ["$trust_score", MAX_TRUST_SCORE]}, trust_delta]
            }]}]}

        doc = await self.db.users.find_one_and_update(
            {"user_id": user_id, "verification_status": {"$in": allowed}},
            [{"$set": fields}],
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return User(**doc)
        return None

    async def increment_rewards(
        self, user_id: str, carbon_saved: float, ride_credits: int, loyalty_points: int
    ) -> Optional[User]:
        doc = await self.db.users.find_one_and_update(
            {"user_id": user_id},
            {
                "$inc": {
                    "carbon_saved": carbon_saved,
                    "ride_credits": ride_credits,
                    "loyalty_points": loyalty_points
                },
                "$set": {"updated_at": utc_now()}
            },
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return User(**doc)
        return None

    async def set_level(self, user_id: str, level: str) -> None:
        await self.db.users.update_one({"user_id": user_id}, {"$set": {"level": level}})

    async def count(
        self,
        role: Optional[UserRole] = None,
        verification_status: Optional[VerificationStatus] = None,
    ) -> int:
        query = {}
        if role is not None:
            # roles is stored as an array; equality matches membership
            query["roles"] = getattr(role, "value", role)
        if verification_status is not None:
            query["verification_status"] = getattr(verification_status, "value", verification_status)
        return await self.db.users.count_documents(query)

    async def find_recent(self, limit: int = 50) -> List[User]:
        cursor = self.db.users.find({}).sort("created_at", -1).limit(limit)

        users = []
        async for doc in cursor:
            users.append(User(**doc))
        return users

    async def delete(self, user_id: str) -> bool:
        result = await self.db.users.delete_one({"user_id": user_id})
        return result.deleted_count == 1


# =============================================================================
# Notifications
# =============================================================================

class MongoNotificationRepository(MongoRepository, NotificationRepository):

    async def insert(self, notification: Notification) -> Notification:
        await self.db.notifications.insert_one(notification.model_dump())
        return notification

    async def get(self, notification_id: str) -> Optional[Notification]:
        doc = await self.db.notifications.find_one({"notification_id": notification_id})
        if doc:
            return Notification(**doc)
        return None

    async def find_by_user(
        self, user_id: str, limit: int = 50, unread_only: bool = False
    ) -> List[Notification]:
        query = {"user_id": user_id}
        if unread_only:
            query["read"] = False

        cursor = self.db.notifications.find(query).sort("created_at", -1).limit(limit)

        notifications = []
        async for doc in cursor:
            notifications.append(Notification(**doc))
        return notifications

    async def count_unread(self, user_id: str) -> int:
        return await self.db.notifications.count_documents(
            {"user_id": user_id, "read": False}
        )

    async def mark_read(self, notification_id: str) -> None:
        await self.db.notifications.update_one(
            {"notification_id": notification_id}, {"$set": {"read": True}}
        )

    async def delete(self, notification_id: str) -> None:
        await self.db.notifications.delete_one({"notification_id": notification_id})


# =============================================================================
# Chat messages
# =============================================================================

class MongoChatMessageRepository(MongoRepository, ChatMessageRepository):

    async def insert(self, message: ChatMessage) -> ChatMessage:
        await self.db.chat_messages.insert_one(message.model_dump())
        return message

    async def find_by_trip(self, trip_id: str, limit: int = 100) -> List[ChatMessage]:
        cursor = self.db.chat_messages.find({"trip_id": trip_id}).sort("created_at", 1).limit(limit)

        messages = []
        async for doc in cursor:
            messages.append(ChatMessage(**doc))
        return messages


# =============================================================================
# Task failures
# =============================================================================

class MongoTaskFailureRepository(MongoRepository, TaskFailureRepository):

    async def insert(self, failure: TaskFailure) -> TaskFailure:
        await self.db.task_failures.insert_one(failure.model_dump())
        return failure

    async def find_recent(self, limit: int = 100) -> List[TaskFailure]:
        cursor = self.db.task_failures.find({}).sort("created_at", -1).limit(limit)

        failures = []
        async for doc in cursor:
            failures.append(TaskFailure(**doc))
        return failures


# =============================================================================
# Reports
# =============================================================================

class MongoReportRepository(MongoRepository, ReportRepository):

    async def insert(self, report: Report) -> Report:
        await self.db.reports.insert_one(report.model_dump())
        return report

    async def get(self, report_id: str) -> Optional[Report]:
        doc = await self.db.reports.find_one({"report_id": report_id})
        if doc:
            return Report(**doc)
        return None

    async def find_recent(
        self, limit: int = 50, status: Optional[ReportStatus] = None
    ) -> List[Report]:
        query = {}
        if status is not None:
            query["status"] = getattr(status, "value", status)
        cursor = self.db.reports.find(query).sort("created_at", -1).limit(limit)

        reports = []
        async for doc in cursor:
            reports.append(Report(**doc))
        return reports

    async def transition_status(
        self,
        report_id: str,
        from_status: ReportStatus,
        to_status: ReportStatus,
        reviewed_by: str,
        note: Optional[str] = None,
    ) -> Optional[Report]:
        fields = {
            "status": getattr(to_status, "value", to_status),
            "reviewed_by": reviewed_by,
            "updated_at": utc_now()
        }
        if note is not None:
            fields["resolution_note"] = note

        doc = await self.db.reports.find_one_and_update(
            {"report_id": report_id, "status": getattr(from_status, "value", from_status)},
            {"$set": fields},
            return_document=ReturnDocument.AFTER
        )
        if doc:
            return Report(**doc)
        return None

    async def count(self, status: Optional[ReportStatus] = None) -> int:
        query = {}
        if status is not None:
            query["status"] = getattr(status, "value", status)
        return await self.db.reports.count_documents(query)
