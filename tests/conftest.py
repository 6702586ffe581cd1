"""
Shared fixtures: in-memory repositories, a recording real-time channel and
model factories that store straight into the repositories.
"""

import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest

from ecoride.models.booking import Booking
from ecoride.models.location import Location
from ecoride.models.trip import Trip
from ecoride.models.user import User, UserRole
from ecoride.realtime import RealtimeChannel
from ecoride.repositories.memory import (
    InMemoryBookingRepository,
    InMemoryChatMessageRepository,
    InMemoryNotificationRepository,
    InMemoryReportRepository,
    InMemoryTaskFailureRepository,
    InMemoryTripRepository,
    InMemoryUserRepository,
)
from ecoride.services.notification_service import NotificationService
from ecoride.utils.timezone_utils import utc_now


# Bengaluru: MG Road -> Koramangala, (lng, lat)
TRIP_START = (77.5946, 12.9716)
TRIP_END = (77.6245, 12.9352)


class RecordingChannel(RealtimeChannel):
    """Collects published events instead of sending them."""

    def __init__(self):
        self.events = []

    async def publish_to_user(self, user_id, event, payload):
        self.events.append(("user", user_id, event, payload))

    async def publish_to_trip(self, trip_id, event, payload):
        self.events.append(("trip", trip_id, event, payload))

    async def broadcast(self, event, payload):
        self.events.append(("all", None, event, payload))

    def named(self, event):
        return [e for e in self.events if e[2] == event]


@pytest.fixture
def repos():
    return SimpleNamespace(
        trips=InMemoryTripRepository(),
        bookings=InMemoryBookingRepository(),
        users=InMemoryUserRepository(),
        notifications=InMemoryNotificationRepository(),
        messages=InMemoryChatMessageRepository(),
        failures=InMemoryTaskFailureRepository(),
        reports=InMemoryReportRepository(),
    )


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def notification_service(repos, channel):
    return NotificationService(notifications=repos.notifications, channel=channel)


@pytest.fixture
def make_user(repos):
    def _make(roles=(UserRole.PASSENGER,), name="Asha", **fields) -> User:
        user_id = fields.pop("user_id", str(uuid.uuid4()))
        user = User(
            user_id=user_id,
            name=name,
            email=fields.pop("email", f"{user_id[:8]}@example.com"),
            roles=set(roles),
            **fields,
        )
        repos.users.users[user.user_id] = user.model_copy(deep=True)
        return user
    return _make


@pytest.fixture
def make_trip(repos):
    def _make(driver_id, seats=4, start=TRIP_START, end=TRIP_END, **fields) -> Trip:
        trip = Trip(
            trip_id=fields.pop("trip_id", str(uuid.uuid4())),
            driver_id=driver_id,
            start_point=Location(address="MG Road", coordinates=list(start)),
            end_point=Location(address="Koramangala", coordinates=list(end)),
            departure_time=fields.pop("departure_time", utc_now() + timedelta(hours=2)),
            total_seats=fields.pop("total_seats", seats),
            available_seats=fields.pop("available_seats", seats),
            price_per_seat=fields.pop("price_per_seat", 150.0),
            **fields,
        )
        repos.trips.trips[trip.trip_id] = trip.model_copy(deep=True)
        return trip
    return _make


@pytest.fixture
def make_booking(repos):
    def _make(trip, passenger_id, seats=1, **fields) -> Booking:
        booking = Booking(
            booking_id=fields.pop("booking_id", str(uuid.uuid4())),
            trip_id=trip.trip_id,
            passenger_id=passenger_id,
            pickup_point=trip.start_point,
            drop_point=trip.end_point,
            seats_booked=seats,
            fare=seats * trip.price_per_seat,
            **fields,
        )
        repos.bookings.bookings[booking.booking_id] = booking.model_copy(deep=True)
        return booking
    return _make
