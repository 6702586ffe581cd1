"""
Tests for Booking Service

Capacity checks, atomic seat reservation on accept, concurrent accepts,
payment settlement and listings.
"""

import asyncio

import pytest

from ecoride.models.booking import (
    BookingCreate,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentUpdate,
)
from ecoride.models.location import Location
from ecoride.models.trip import TripStatus
from ecoride.models.user import UserRole
from ecoride.services.booking_service import BookingService
from ecoride.services.exceptions import (
    AuthorizationError,
    CapacityError,
    InvalidTransitionError,
    NotFoundError,
    SeatsUnavailableError,
    ValidationFailedError,
)


@pytest.fixture
def service(repos, notification_service):
    return BookingService(
        trips=repos.trips,
        bookings=repos.bookings,
        notifications=notification_service,
    )


def booking_payload(trip_id, seats=1, **overrides) -> BookingCreate:
    data = dict(
        trip_id=trip_id,
        pickup_point=Location(coordinates=[77.5950, 12.9720]),
        drop_point=Location(coordinates=[77.6240, 12.9350]),
        seats_booked=seats,
    )
    data.update(overrides)
    return BookingCreate(**data)


async def accepted_seats(repos, trip_id) -> int:
    accepted = await repos.bookings.find_by_trip(trip_id, BookingStatus.ACCEPTED)
    return sum(b.seats_booked for b in accepted)


class TestRequestBooking:

    @pytest.mark.asyncio
    async def test_creates_pending_booking_and_notifies_driver(
        self, service, repos, channel, make_user, make_trip
    ):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        passenger = make_user(name="Ravi")
        trip = make_trip(driver.user_id, price_per_seat=150.0)

        booking = await service.request_booking(passenger, booking_payload(trip.trip_id, seats=2))

        stored = await repos.bookings.get(booking.booking_id)
        assert stored.status == BookingStatus.PENDING
        assert stored.payment_status == PaymentStatus.PENDING
        assert stored.payment_method == PaymentMethod.ONLINE
        assert stored.fare == 300.0

        notes = await repos.notifications.find_by_user(driver.user_id)
        assert notes[0].title == "New Join Request"
        assert notes[0].body == "Ravi wants to join your trip to Koramangala"
        assert notes[0].type == "match"
        assert channel.named("newNotification")[0][1] == driver.user_id

    @pytest.mark.asyncio
    async def test_request_does_not_reserve_seats(self, service, repos, make_user, make_trip):
        trip = make_trip("driver-1", seats=2)

        await service.request_booking(make_user(), booking_payload(trip.trip_id, seats=2))

        assert (await repos.trips.get(trip.trip_id)).available_seats == 2

    @pytest.mark.asyncio
    async def test_not_enough_seats(self, service, repos, make_user, make_trip):
        trip = make_trip("driver-1", seats=4, available_seats=1)

        with pytest.raises(CapacityError):
            await service.request_booking(make_user(), booking_payload(trip.trip_id, seats=2))

        assert repos.bookings.bookings == {}
        assert repos.notifications.notifications == {}

    @pytest.mark.asyncio
    async def test_client_fare_is_ignored(self, service, make_user, make_trip):
        trip = make_trip("driver-1", price_per_seat=200.0)

        booking = await service.request_booking(
            make_user(), booking_payload(trip.trip_id, seats=2, fare=1.0)
        )

        assert booking.fare == 400.0

    @pytest.mark.asyncio
    async def test_declared_payment_kept(self, service, make_user, make_trip):
        trip = make_trip("driver-1")

        booking = await service.request_booking(
            make_user(),
            booking_payload(
                trip.trip_id,
                payment_method=PaymentMethod.ONLINE,
                payment_status=PaymentStatus.PAID,
            ),
        )

        assert booking.payment_status == PaymentStatus.PAID

    @pytest.mark.asyncio
    async def test_requires_passenger_role(self, service, make_user, make_trip):
        trip = make_trip("driver-1")
        traveller = make_user(roles=(UserRole.TRAVELLER,))

        with pytest.raises(AuthorizationError):
            await service.request_booking(traveller, booking_payload(trip.trip_id))

    @pytest.mark.asyncio
    async def test_driver_cannot_book_own_trip(self, service, make_user, make_trip):
        driver = make_user(roles=(UserRole.TRAVELLER, UserRole.PASSENGER))
        trip = make_trip(driver.user_id)

        with pytest.raises(ValidationFailedError):
            await service.request_booking(driver, booking_payload(trip.trip_id))

    @pytest.mark.asyncio
    async def test_completed_trip_not_bookable(self, service, make_user, make_trip):
        trip = make_trip("driver-1", status=TripStatus.COMPLETED)

        with pytest.raises(ValidationFailedError):
            await service.request_booking(make_user(), booking_payload(trip.trip_id))

    @pytest.mark.asyncio
    async def test_unknown_trip(self, service, make_user):
        with pytest.raises(NotFoundError):
            await service.request_booking(make_user(), booking_payload("missing"))


class TestDecideBooking:

    @pytest.mark.asyncio
    async def test_accept_fills_trip(self, service, repos, make_user, make_trip, make_booking):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        passenger = make_user()
        trip = make_trip(driver.user_id, seats=2)
        booking = make_booking(trip, passenger.user_id, seats=2)

        decided = await service.decide_booking(booking.booking_id, driver.user_id, BookingStatus.ACCEPTED)

        stored_trip = await repos.trips.get(trip.trip_id)
        assert decided.status == BookingStatus.ACCEPTED
        assert (await repos.bookings.get(booking.booking_id)).status == BookingStatus.ACCEPTED
        assert stored_trip.available_seats == 0
        assert stored_trip.status == TripStatus.FULL

        notes = await repos.notifications.find_by_user(passenger.user_id)
        assert notes[0].title == "Ride Accepted!"

    @pytest.mark.asyncio
    async def test_partial_accept_keeps_trip_open(self, service, repos, make_user, make_trip, make_booking):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        trip = make_trip(driver.user_id, seats=4)
        booking = make_booking(trip, make_user().user_id, seats=1)

        await service.decide_booking(booking.booking_id, driver.user_id, BookingStatus.ACCEPTED)

        stored_trip = await repos.trips.get(trip.trip_id)
        assert stored_trip.available_seats == 3
        assert stored_trip.status == TripStatus.OPEN

    @pytest.mark.asyncio
    async def test_reject_leaves_trip_alone(self, service, repos, make_user, make_trip, make_booking):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        passenger = make_user()
        trip = make_trip(driver.user_id, seats=2)
        booking = make_booking(trip, passenger.user_id, seats=2)

        await service.decide_booking(booking.booking_id, driver.user_id, BookingStatus.REJECTED)

        assert (await repos.trips.get(trip.trip_id)).available_seats == 2
        assert (await repos.bookings.get(booking.booking_id)).status == BookingStatus.REJECTED
        notes = await repos.notifications.find_by_user(passenger.user_id)
        assert notes[0].title == "Request Declined"
        assert notes[0].type == "system"

    @pytest.mark.asyncio
    async def test_only_driver_decides(self, service, repos, make_user, make_trip, make_booking):
        trip = make_trip("driver-1")
        passenger = make_user()
        booking = make_booking(trip, passenger.user_id)

        with pytest.raises(AuthorizationError):
            await service.decide_booking(booking.booking_id, passenger.user_id, BookingStatus.ACCEPTED)

        assert (await repos.trips.get(trip.trip_id)).available_seats == 4

    @pytest.mark.asyncio
    async def test_overbooked_accept_fails(self, service, repos, make_user, make_trip, make_booking):
        """Both requests passed the request-time check; only one can be accepted."""
        driver = make_user(roles=(UserRole.TRAVELLER,))
        trip = make_trip(driver.user_id, seats=2)
        first = make_booking(trip, make_user().user_id, seats=2)
        second = make_booking(trip, make_user().user_id, seats=2)

        await service.decide_booking(first.booking_id, driver.user_id, BookingStatus.ACCEPTED)
        with pytest.raises(SeatsUnavailableError):
            await service.decide_booking(second.booking_id, driver.user_id, BookingStatus.ACCEPTED)

        assert (await repos.bookings.get(second.booking_id)).status == BookingStatus.PENDING
        assert (await repos.trips.get(trip.trip_id)).available_seats == 0

    @pytest.mark.asyncio
    async def test_concurrent_accepts_on_last_seat(self, service, repos, make_user, make_trip, make_booking):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        trip = make_trip(driver.user_id, seats=3, available_seats=1)
        first = make_booking(trip, make_user().user_id, seats=1)
        second = make_booking(trip, make_user().user_id, seats=1)

        results = await asyncio.gather(
            service.decide_booking(first.booking_id, driver.user_id, BookingStatus.ACCEPTED),
            service.decide_booking(second.booking_id, driver.user_id, BookingStatus.ACCEPTED),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], CapacityError)
        assert (await repos.trips.get(trip.trip_id)).available_seats == 0

    @pytest.mark.asyncio
    async def test_capacity_invariant_over_accept_sequence(
        self, service, repos, make_user, make_trip, make_booking
    ):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        trip = make_trip(driver.user_id, seats=5)
        bookings = [make_booking(trip, make_user().user_id, seats=n) for n in (2, 1, 3, 2, 1)]

        for booking in bookings:
            try:
                await service.decide_booking(booking.booking_id, driver.user_id, BookingStatus.ACCEPTED)
            except CapacityError:
                pass
            stored = await repos.trips.get(trip.trip_id)
            assert stored.available_seats >= 0
            assert stored.total_seats - stored.available_seats == await accepted_seats(repos, trip.trip_id)

        final = await repos.trips.get(trip.trip_id)
        assert final.available_seats == 0
        assert final.status == TripStatus.FULL

    @pytest.mark.asyncio
    async def test_cannot_decide_twice(self, service, make_user, make_trip, make_booking):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        trip = make_trip(driver.user_id)
        booking = make_booking(trip, make_user().user_id)

        await service.decide_booking(booking.booking_id, driver.user_id, BookingStatus.REJECTED)
        with pytest.raises(InvalidTransitionError):
            await service.decide_booking(booking.booking_id, driver.user_id, BookingStatus.ACCEPTED)

    @pytest.mark.asyncio
    async def test_failed_transition_releases_seats(self, service, repos, make_user, make_trip, make_booking):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        trip = make_trip(driver.user_id, seats=2)
        booking = make_booking(trip, make_user().user_id, seats=2)

        async def lost_race(booking_id, from_status, to_status):
            return False

        repos.bookings.transition_status = lost_race

        with pytest.raises(InvalidTransitionError):
            await service.decide_booking(booking.booking_id, driver.user_id, BookingStatus.ACCEPTED)

        stored_trip = await repos.trips.get(trip.trip_id)
        assert stored_trip.available_seats == 2
        assert stored_trip.status == TripStatus.OPEN

    @pytest.mark.asyncio
    async def test_invalid_decision(self, service, make_user, make_trip, make_booking):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        trip = make_trip(driver.user_id)
        booking = make_booking(trip, make_user().user_id)

        with pytest.raises(ValidationFailedError):
            await service.decide_booking(booking.booking_id, driver.user_id, BookingStatus.COMPLETED)


class TestPayment:

    @pytest.mark.asyncio
    async def test_passenger_settles_cash_after_ride(self, service, make_user, make_trip, make_booking):
        passenger = make_user()
        trip = make_trip("driver-1")
        booking = make_booking(trip, passenger.user_id, status=BookingStatus.COMPLETED)

        updated = await service.update_payment(
            booking.booking_id,
            passenger.user_id,
            PaymentUpdate(payment_status=PaymentStatus.PAID, payment_method=PaymentMethod.CASH),
        )

        assert updated.payment_status == PaymentStatus.PAID
        assert updated.payment_method == PaymentMethod.CASH
        assert updated.status == BookingStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_driver_can_update(self, service, make_user, make_trip, make_booking):
        trip = make_trip("driver-1")
        booking = make_booking(trip, make_user().user_id)

        updated = await service.update_payment(
            booking.booking_id, "driver-1", PaymentUpdate(payment_status=PaymentStatus.HELD)
        )

        assert updated.payment_status == PaymentStatus.HELD

    @pytest.mark.asyncio
    async def test_stranger_cannot_update(self, service, make_user, make_trip, make_booking):
        trip = make_trip("driver-1")
        booking = make_booking(trip, make_user().user_id)

        with pytest.raises(AuthorizationError):
            await service.update_payment(
                booking.booking_id, "stranger", PaymentUpdate(payment_status=PaymentStatus.PAID)
            )

    @pytest.mark.asyncio
    async def test_payment_never_moves_backwards(self, service, make_user, make_trip, make_booking):
        passenger = make_user()
        trip = make_trip("driver-1")
        booking = make_booking(trip, passenger.user_id, payment_status=PaymentStatus.PAID)

        with pytest.raises(InvalidTransitionError):
            await service.update_payment(
                booking.booking_id, passenger.user_id, PaymentUpdate(payment_status=PaymentStatus.PENDING)
            )

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, service, make_user, make_trip, make_booking):
        passenger = make_user()
        trip = make_trip("driver-1")
        booking = make_booking(trip, passenger.user_id, payment_status=PaymentStatus.PAID)

        updated = await service.update_payment(
            booking.booking_id, passenger.user_id, PaymentUpdate(payment_status=PaymentStatus.PAID)
        )

        assert updated.payment_status == PaymentStatus.PAID

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, service, make_user, make_trip, make_booking):
        passenger = make_user()
        booking = make_booking(make_trip("driver-1"), passenger.user_id)

        with pytest.raises(ValidationFailedError):
            await service.update_payment(booking.booking_id, passenger.user_id, PaymentUpdate())


class TestListings:

    @pytest.mark.asyncio
    async def test_pending_requests_across_driver_trips(self, service, make_user, make_trip, make_booking):
        driver = make_user(roles=(UserRole.TRAVELLER,))
        trip_a = make_trip(driver.user_id)
        trip_b = make_trip(driver.user_id)
        other = make_trip("other-driver")
        a = make_booking(trip_a, make_user().user_id)
        b = make_booking(trip_b, make_user().user_id)
        make_booking(trip_a, make_user().user_id, status=BookingStatus.ACCEPTED)
        make_booking(other, make_user().user_id)

        pending = await service.get_pending_requests(driver.user_id)

        assert {p.booking_id for p in pending} == {a.booking_id, b.booking_id}

    @pytest.mark.asyncio
    async def test_trip_bookings_driver_only(self, service, make_user, make_trip, make_booking):
        trip = make_trip("driver-1")
        passenger = make_user()
        make_booking(trip, passenger.user_id)

        assert len(await service.get_trip_bookings(trip.trip_id, "driver-1")) == 1
        with pytest.raises(AuthorizationError):
            await service.get_trip_bookings(trip.trip_id, passenger.user_id)

    @pytest.mark.asyncio
    async def test_payment_history(self, service, make_user, make_trip, make_booking):
        passenger = make_user()
        driven = make_trip(passenger.user_id)
        ridden = make_trip("driver-1")
        paid = make_booking(ridden, passenger.user_id, payment_status=PaymentStatus.PAID)
        received = make_booking(driven, "rider-9", payment_status=PaymentStatus.HELD)
        make_booking(ridden, passenger.user_id)

        history = await service.get_payment_history(passenger.user_id)

        assert {b.booking_id for b in history} == {paid.booking_id, received.booking_id}

    @pytest.mark.asyncio
    async def test_my_bookings_newest_first(self, service, make_user, make_trip, make_booking):
        passenger = make_user()
        trip = make_trip("driver-1")
        first = make_booking(trip, passenger.user_id)
        second = make_booking(trip, passenger.user_id)

        bookings = await service.get_my_bookings(passenger.user_id)

        assert [b.booking_id for b in bookings] == [second.booking_id, first.booking_id]
