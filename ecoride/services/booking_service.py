"""
Booking Service

Seat requests, driver decisions and payment settlement.
"""

import logging
import uuid
from typing import List, Optional

from ecoride.models.booking import (
    PAYMENT_TRANSITIONS,
    Booking,
    BookingCreate,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentUpdate,
)
from ecoride.models.notification import NotificationIntent, NotificationType, RefType
from ecoride.models.trip import BOOKABLE_TRIP_STATUSES, Trip
from ecoride.models.user import User, UserRole
from ecoride.repositories.base import BookingRepository, TripRepository
from ecoride.services.exceptions import (
    AuthorizationError,
    CapacityError,
    InvalidTransitionError,
    NotFoundError,
    SeatsUnavailableError,
    ValidationFailedError,
)
from ecoride.services.notification_service import NotificationService
from ecoride.services.reward_service import round_half_up

logger = logging.getLogger(__name__)


class BookingService:
    """
    Booking lifecycle service.

    Capacity is only checked when a request is made; seats are reserved
    atomically when the driver accepts, so two accepts can never overbook
    a trip.
    """

    def __init__(
        self,
        trips: Optional[TripRepository] = None,
        bookings: Optional[BookingRepository] = None,
        notifications: Optional[NotificationService] = None,
    ):
        if trips is None or bookings is None:
            from ecoride.repositories import mongo
            trips = trips or mongo.MongoTripRepository()
            bookings = bookings or mongo.MongoBookingRepository()
        self.trips = trips
        self.bookings = bookings
        self.notifications = notifications or NotificationService()

    async def _get_trip(self, trip_id: str) -> Trip:
        trip = await self.trips.get(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        return trip

    async def _get_booking(self, booking_id: str) -> Booking:
        booking = await self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    @staticmethod
    def _destination(trip: Trip) -> str:
        return trip.end_point.address or "your destination"

    # =========================================================================
    # Request
    # =========================================================================

    async def request_booking(self, passenger: User, data: BookingCreate) -> Booking:
        """
        Create a PENDING booking after validating capacity.

        The fare is always seats x price per seat; a differing client fare
        is ignored.
        """
        if not passenger.has_role(UserRole.PASSENGER):
            raise AuthorizationError("Only Passengers can book a ride")

        trip = await self._get_trip(data.trip_id)

        if trip.driver_id == passenger.user_id:
            raise ValidationFailedError("You cannot book your own trip")
        if trip.status not in BOOKABLE_TRIP_STATUSES:
            raise ValidationFailedError(f"Trip is {trip.status} and not accepting bookings")
        if trip.available_seats < data.seats_booked:
            raise CapacityError(
                f"Only {trip.available_seats} seats left, {data.seats_booked} requested"
            )

        fare = round_half_up(data.seats_booked * trip.price_per_seat * 100) / 100
        if data.fare is not None and abs(data.fare - fare) > 0.005:
            logger.info(
                f"Client fare {data.fare} for trip {trip.trip_id} ignored, using {fare}"
            )

        booking = Booking(
            booking_id=str(uuid.uuid4()),
            trip_id=trip.trip_id,
            passenger_id=passenger.user_id,
            pickup_point=data.pickup_point,
            drop_point=data.drop_point,
            seats_booked=data.seats_booked,
            fare=fare,
            status=BookingStatus.PENDING,
            payment_method=data.payment_method or PaymentMethod.ONLINE,
            payment_status=data.payment_status or PaymentStatus.PENDING,
        )
        await self.bookings.insert(booking)
        logger.info(f"Booking {booking.booking_id} requested on trip {trip.trip_id}")

        await self.notifications.emit(trip.driver_id, NotificationIntent(
            type=NotificationType.MATCH,
            title="New Join Request",
            body=f"{passenger.name} wants to join your trip to {self._destination(trip)}",
            ref_id=trip.trip_id,
            ref_type=RefType.TRIP,
        ))
        return booking

    # =========================================================================
    # Decision
    # =========================================================================

    async def decide_booking(
        self, booking_id: str, user_id: str, decision: BookingStatus
    ) -> Booking:
        """
        Accept or reject a PENDING booking. Driver only.

        Accept reserves seats with a single conditional update; if the
        booking then fails to move out of PENDING the seats are released.
        """
        decision = BookingStatus(decision)
        if decision not in (BookingStatus.ACCEPTED, BookingStatus.REJECTED):
            raise ValidationFailedError("Decision must be ACCEPTED or REJECTED")

        booking = await self._get_booking(booking_id)
        trip = await self._get_trip(booking.trip_id)

        if trip.driver_id != user_id:
            raise AuthorizationError("Only the trip's driver can decide on this booking")
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransitionError(f"Booking is already {booking.status}")

        if decision == BookingStatus.ACCEPTED:
            if not await self.trips.try_reserve_seats(trip.trip_id, booking.seats_booked):
                raise SeatsUnavailableError("Seats are no longer available on this trip")

            if not await self.bookings.transition_status(
                booking_id, BookingStatus.PENDING, BookingStatus.ACCEPTED
            ):
                await self.trips.release_seats(trip.trip_id, booking.seats_booked)
                raise InvalidTransitionError("Booking was decided concurrently")

            intent = NotificationIntent(
                type=NotificationType.MATCH,
                title="Ride Accepted!",
                body=f"Your request for the ride to {self._destination(trip)} was accepted!",
                ref_id=trip.trip_id,
                ref_type=RefType.TRIP,
            )
        else:
            if not await self.bookings.transition_status(
                booking_id, BookingStatus.PENDING, BookingStatus.REJECTED
            ):
                raise InvalidTransitionError("Booking was decided concurrently")

            intent = NotificationIntent(
                type=NotificationType.SYSTEM,
                title="Request Declined",
                body=(
                    "Unfortunately, the driver declined your request for the trip "
                    f"to {self._destination(trip)}."
                ),
                ref_id=trip.trip_id,
                ref_type=RefType.TRIP,
            )

        booking.status = decision.value
        logger.info(f"Booking {booking_id} {decision.value} by driver {user_id}")

        await self.notifications.emit(booking.passenger_id, intent)
        return booking

    # =========================================================================
    # Payment
    # =========================================================================

    async def update_payment(self, booking_id: str, user_id: str, data: PaymentUpdate) -> Booking:
        """Settle payment. Passenger or the trip's driver; status only moves forward."""
        if data.payment_status is None and data.payment_method is None:
            raise ValidationFailedError("Nothing to update")

        booking = await self._get_booking(booking_id)
        trip = await self._get_trip(booking.trip_id)

        if user_id not in (booking.passenger_id, trip.driver_id):
            raise AuthorizationError("Only the passenger or the driver can update payment")

        new_status = data.payment_status
        if new_status is not None:
            current = PaymentStatus(booking.payment_status)
            new_status = PaymentStatus(new_status)
            if new_status == current:
                new_status = None
            elif new_status not in PAYMENT_TRANSITIONS[current]:
                raise InvalidTransitionError(
                    f"Payment cannot move from {current.value} to {new_status.value}"
                )

        if new_status is None and data.payment_method is None:
            return booking

        updated = await self.bookings.update_payment(booking_id, new_status, data.payment_method)
        if updated is None:
            raise NotFoundError("Booking not found")
        return updated

    # =========================================================================
    # Listings
    # =========================================================================

    async def get_my_bookings(self, passenger_id: str) -> List[Booking]:
        return await self.bookings.find_by_passenger(passenger_id)

    async def get_trip_bookings(self, trip_id: str, user_id: str) -> List[Booking]:
        """All bookings of a trip, for its driver."""
        trip = await self._get_trip(trip_id)
        if trip.driver_id != user_id:
            raise AuthorizationError("Only the driver can view this trip's bookings")
        return await self.bookings.find_by_trip(trip_id)

    async def get_pending_requests(self, driver_id: str) -> List[Booking]:
        """Pending requests across all of a driver's trips."""
        trips = await self.trips.find_by_driver(driver_id)
        if not trips:
            return []
        return await self.bookings.find_pending_for_trips([t.trip_id for t in trips])

    async def get_payment_history(self, user_id: str) -> List[Booking]:
        """Bookings with settled payment where the user is passenger or driver."""
        trips = await self.trips.find_by_driver(user_id)
        return await self.bookings.find_settled_for(user_id, [t.trip_id for t in trips])
