"""
Tests for the Motor repositories

Collections are mocked; the tests pin down the filters that make the
conditional updates atomic.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from ecoride.models.booking import BookingStatus, PaymentStatus
from ecoride.models.report import ReportStatus
from ecoride.models.trip import Expense
from ecoride.models.user import UserRole, VerificationDetails, VerificationStatus
from ecoride.repositories.mongo import (
    MongoBookingRepository,
    MongoReportRepository,
    MongoTripRepository,
    MongoUserRepository,
)


class FakeCursor:
    """Async cursor over a fixed list of documents."""

    def __init__(self, docs):
        self.docs = docs
        self.sort_args = None

    def sort(self, *args):
        self.sort_args = args
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    def __aiter__(self):
        self._iter = iter(self.docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


@pytest.fixture
def db():
    return MagicMock()


def update_result(modified: int):
    return MagicMock(modified_count=modified)


class TestMongoTripRepository:

    @pytest.mark.asyncio
    async def test_reserve_filters_on_seats_and_status(self, db):
        db.trips.update_one = AsyncMock(return_value=update_result(1))
        repo = MongoTripRepository(db)

        assert await repo.try_reserve_seats("t1", 2) is True

        query, pipeline = db.trips.update_one.call_args.args
        assert query["trip_id"] == "t1"
        assert query["available_seats"] == {"$gte": 2}
        assert query["status"] == {"$in": ["OPEN", "ongoing"]}
        assert pipeline[0]["$set"]["available_seats"] == {"$subtract": ["$available_seats", 2]}
        assert "status" in pipeline[1]["$set"]

    @pytest.mark.asyncio
    async def test_reserve_reports_lost_race(self, db):
        db.trips.update_one = AsyncMock(return_value=update_result(0))

        assert await MongoTripRepository(db).try_reserve_seats("t1", 1) is False

    @pytest.mark.asyncio
    async def test_mark_completed_excludes_terminal(self, db):
        db.trips.update_one = AsyncMock(return_value=update_result(1))

        assert await MongoTripRepository(db).mark_completed("t1") is True

        query, update = db.trips.update_one.call_args.args
        assert query["status"] == {"$nin": ["COMPLETED", "CANCELLED"]}
        assert update["$set"]["status"] == "COMPLETED"

    @pytest.mark.asyncio
    async def test_find_open_query(self, db, make_trip):
        trip = make_trip("driver-1")
        cursor = FakeCursor([trip.model_dump()])
        db.trips.find = MagicMock(return_value=cursor)

        trips = await MongoTripRepository(db).find_open(trip.departure_time)

        query = db.trips.find.call_args.args[0]
        assert query["status"] == "OPEN"
        assert query["available_seats"] == {"$gt": 0}
        assert cursor.sort_args == ("departure_time", 1)
        assert [t.trip_id for t in trips] == [trip.trip_id]

    @pytest.mark.asyncio
    async def test_append_expense_recomputes_total(self, db, make_trip):
        trip = make_trip("driver-1")
        doc = trip.model_dump()
        doc["expenses"] = [{"description": "Toll", "amount": 85.0}]
        db.trips.find_one_and_update = AsyncMock(return_value=doc)

        updated = await MongoTripRepository(db).append_expense(
            trip.trip_id, Expense(description="Toll", amount=85.0)
        )

        pipeline = db.trips.find_one_and_update.call_args.args[1]
        assert pipeline[1]["$set"]["total_expenses"] == {"$sum": "$expenses.amount"}
        assert updated.total_expenses == 85.0

    @pytest.mark.asyncio
    async def test_get_missing(self, db):
        db.trips.find_one = AsyncMock(return_value=None)

        assert await MongoTripRepository(db).get("missing") is None


class TestMongoBookingRepository:

    @pytest.mark.asyncio
    async def test_transition_is_conditional(self, db):
        db.bookings.update_one = AsyncMock(return_value=update_result(1))

        moved = await MongoBookingRepository(db).transition_status(
            "b1", BookingStatus.PENDING, BookingStatus.ACCEPTED
        )

        query, update = db.bookings.update_one.call_args.args
        assert moved is True
        assert query == {"booking_id": "b1", "status": "PENDING"}
        assert update["$set"]["status"] == "ACCEPTED"

    @pytest.mark.asyncio
    async def test_find_by_trip_in_creation_order(self, db, make_trip, make_booking):
        trip = make_trip("driver-1")
        booking = make_booking(trip, "p1", status=BookingStatus.ACCEPTED)
        cursor = FakeCursor([booking.model_dump()])
        db.bookings.find = MagicMock(return_value=cursor)

        found = await MongoBookingRepository(db).find_by_trip(trip.trip_id, BookingStatus.ACCEPTED)

        assert db.bookings.find.call_args.args[0] == {"trip_id": trip.trip_id, "status": "ACCEPTED"}
        assert cursor.sort_args == ("created_at", 1)
        assert found[0].booking_id == booking.booking_id

    @pytest.mark.asyncio
    async def test_pending_for_no_trips_skips_query(self, db):
        db.bookings.find = MagicMock()

        assert await MongoBookingRepository(db).find_pending_for_trips([]) == []
        db.bookings.find.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_payment_sets_only_given_fields(self, db, make_trip, make_booking):
        booking = make_booking(make_trip("driver-1"), "p1", payment_status=PaymentStatus.PAID)
        db.bookings.find_one_and_update = AsyncMock(return_value=booking.model_dump())

        await MongoBookingRepository(db).update_payment(booking.booking_id, PaymentStatus.PAID, None)

        fields = db.bookings.find_one_and_update.call_args.args[1]["$set"]
        assert fields["payment_status"] == "PAID"
        assert "payment_method" not in fields

    @pytest.mark.asyncio
    async def test_total_fare_aggregates_completed(self, db):
        db.bookings.aggregate = MagicMock(return_value=FakeCursor([{"_id": None, "total": 450.0}]))

        total = await MongoBookingRepository(db).total_fare((BookingStatus.COMPLETED,))

        pipeline = db.bookings.aggregate.call_args.args[0]
        assert pipeline[0] == {"$match": {"status": {"$in": ["COMPLETED"]}}}
        assert total == 450.0

    @pytest.mark.asyncio
    async def test_total_fare_without_bookings(self, db):
        db.bookings.aggregate = MagicMock(return_value=FakeCursor([]))

        assert await MongoBookingRepository(db).total_fare((BookingStatus.COMPLETED,)) == 0


class TestMongoUserRepository:

    @pytest.mark.asyncio
    async def test_increment_rewards_uses_inc(self, db, make_user):
        user = make_user(ride_credits=5)
        db.users.find_one_and_update = AsyncMock(return_value=user.model_dump())

        result = await MongoUserRepository(db).increment_rewards(user.user_id, 480.0, 5, 50)

        update = db.users.find_one_and_update.call_args.args[1]
        assert update["$inc"] == {"carbon_saved": 480.0, "ride_credits": 5, "loyalty_points": 50}
        assert result.user_id == user.user_id

    @pytest.mark.asyncio
    async def test_increment_unknown_user(self, db):
        db.users.find_one_and_update = AsyncMock(return_value=None)

        assert await MongoUserRepository(db).increment_rewards("missing", 1, 1, 1) is None

    @pytest.mark.asyncio
    async def test_verification_update_is_conditional_and_targeted(self, db, make_user):
        user = make_user(roles=(UserRole.TRAVELLER,), verification_status=VerificationStatus.VERIFIED)
        db.users.find_one_and_update = AsyncMock(return_value=user.model_dump())

        await MongoUserRepository(db).update_verification(
            user.user_id,
            (VerificationStatus.PENDING,),
            VerificationStatus.VERIFIED,
            is_verified=True,
            trust_delta=20,
        )

        query, pipeline = db.users.find_one_and_update.call_args.args
        fields = pipeline[0]["$set"]
        assert query == {"user_id": user.user_id, "verification_status": {"$in": ["PENDING"]}}
        assert fields["verification_status"] == {"$literal": "VERIFIED"}
        assert fields["is_verified"] is True
        assert fields["trust_score"]["$min"][0] == 100
        for reward_field in ("carbon_saved", "ride_credits", "loyalty_points", "level"):
            assert reward_field not in fields
        db.users.replace_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_submission_accepts_documents_without_status(self, db):
        db.users.find_one_and_update = AsyncMock(return_value=None)
        details = VerificationDetails(license_number="KA01", vehicle_plate="KA-01-AB-1234")

        result = await MongoUserRepository(db).update_verification(
            "u1",
            (VerificationStatus.UNVERIFIED, VerificationStatus.REJECTED),
            VerificationStatus.PENDING,
            details=details,
        )

        query, pipeline = db.users.find_one_and_update.call_args.args
        assert query["verification_status"] == {"$in": ["UNVERIFIED", "REJECTED", None]}
        assert pipeline[0]["$set"]["verification_details"]["$literal"]["vehicle_plate"] == "KA-01-AB-1234"
        assert "trust_score" not in pipeline[0]["$set"]
        assert result is None

    @pytest.mark.asyncio
    async def test_count_by_role(self, db):
        db.users.count_documents = AsyncMock(return_value=4)

        assert await MongoUserRepository(db).count(role=UserRole.TRAVELLER) == 4
        assert db.users.count_documents.call_args.args[0] == {"roles": "TRAVELLER"}

    @pytest.mark.asyncio
    async def test_delete_reports_missing(self, db):
        db.users.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))

        assert await MongoUserRepository(db).delete("missing") is False


class TestMongoReportRepository:

    @pytest.mark.asyncio
    async def test_transition_is_conditional(self, db):
        db.reports.find_one_and_update = AsyncMock(return_value=None)

        result = await MongoReportRepository(db).transition_status(
            "r1", ReportStatus.OPEN, ReportStatus.REVIEWED, reviewed_by="admin-1"
        )

        query, update = db.reports.find_one_and_update.call_args.args
        assert query == {"report_id": "r1", "status": "OPEN"}
        assert update["$set"]["status"] == "REVIEWED"
        assert update["$set"]["reviewed_by"] == "admin-1"
        assert "resolution_note" not in update["$set"]
        assert result is None

    @pytest.mark.asyncio
    async def test_find_recent_by_status(self, db):
        cursor = FakeCursor([])
        db.reports.find = MagicMock(return_value=cursor)

        await MongoReportRepository(db).find_recent(limit=10, status=ReportStatus.OPEN)

        assert db.reports.find.call_args.args[0] == {"status": "OPEN"}
        assert cursor.sort_args == ("created_at", -1)
