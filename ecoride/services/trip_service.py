"""
Trip Service

Trip publishing, discovery, search and completion.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Union

from ecoride.config import settings
from ecoride.models.booking import BookingStatus
from ecoride.models.location import Location
from ecoride.models.notification import NotificationIntent, NotificationType, RefType
from ecoride.models.trip import Expense, ExpenseCreate, Trip, TripCreate, TripStatus
from ecoride.models.user import User, UserRole
from ecoride.realtime import RealtimeChannel
from ecoride.repositories.base import BookingRepository, TaskFailureRepository, TripRepository
from ecoride.services.exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    RewardNotAppliedError,
)
from ecoride.services.matching_service import MatchingService
from ecoride.services.notification_service import NotificationService
from ecoride.services.post_commit import PostCommitReport, PostCommitTasks
from ecoride.services.reward_service import RewardResult, RewardService
from ecoride.services.routing_service import RoutingService
from ecoride.utils.timezone_utils import search_lower_bound, utc_now

logger = logging.getLogger(__name__)


NO_PATH = "NO_PATH"


@dataclass
class TripCompletionResult:
    """Completed trip plus the outcome of its best-effort follow-ups."""
    trip: Trip
    driver_impact: Optional[RewardResult] = None
    passengers_processed: int = 0
    report: PostCommitReport = field(default_factory=PostCommitReport)


class TripService:
    """
    Trip lifecycle service.

    Status changes are the authoritative step of each operation; rewards and
    notifications run afterwards as post-commit tasks.
    """

    def __init__(
        self,
        trips: Optional[TripRepository] = None,
        bookings: Optional[BookingRepository] = None,
        routing: Optional[RoutingService] = None,
        matching: Optional[MatchingService] = None,
        rewards: Optional[RewardService] = None,
        notifications: Optional[NotificationService] = None,
        failures: Optional[TaskFailureRepository] = None,
        channel: Optional[RealtimeChannel] = None,
    ):
        if trips is None or bookings is None or failures is None:
            from ecoride.repositories import mongo
            trips = trips or mongo.MongoTripRepository()
            bookings = bookings or mongo.MongoBookingRepository()
            failures = failures or mongo.MongoTaskFailureRepository()
        if channel is None:
            from ecoride.realtime import manager
            channel = manager

        self.trips = trips
        self.bookings = bookings
        self.failures = failures
        self.channel = channel
        self.routing = routing or RoutingService()
        self.matching = matching or MatchingService()
        self.rewards = rewards or RewardService()
        self.notifications = notifications or NotificationService(channel=channel)

    # =========================================================================
    # Publishing
    # =========================================================================

    async def create_trip(self, driver: User, data: TripCreate) -> Trip:
        """
        Publish a trip.

        Routing provider trouble never blocks publishing: the route degrades
        to an estimate, and to a zero route if even that fails.
        """
        if not driver.has_role(UserRole.TRAVELLER):
            raise AuthorizationError("Only Travellers can publish a ride")

        distance, duration, polyline = 0, 0, None
        try:
            route = await self.routing.get_route_info(data.start_point, data.end_point)
            distance, duration = route.distance_meters, route.duration_seconds
            polyline = await self.routing.get_encoded_path(data.start_point, data.end_point)
        except Exception as e:
            logger.warning(f"Route lookup failed, publishing with placeholder route: {e}")

        trip = Trip(
            trip_id=str(uuid.uuid4()),
            driver_id=driver.user_id,
            start_point=data.start_point,
            end_point=data.end_point,
            departure_time=data.departure_time,
            total_seats=data.available_seats,
            available_seats=data.available_seats,
            price_per_seat=data.price_per_seat,
            distance=distance,
            duration=duration,
            route_polyline=polyline or data.route_polyline or NO_PATH,
            status=TripStatus.OPEN,
        )
        await self.trips.insert(trip)
        logger.info(f"Trip {trip.trip_id} published by {driver.user_id}")

        try:
            await self.channel.broadcast("newTripCreated", trip.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"newTripCreated broadcast failed for {trip.trip_id}: {e}")

        return trip

    # =========================================================================
    # Discovery
    # =========================================================================

    async def search_trips(
        self,
        passenger: User,
        pickup: Location,
        drop: Location,
        departure_date: Union[date, datetime, None] = None,
        max_distance_km: Optional[float] = None,
    ) -> List[Trip]:
        """Open trips departing from max(date, now) that serve pickup -> drop."""
        if not passenger.has_role(UserRole.PASSENGER):
            raise AuthorizationError("Only Passengers can search for rides")

        lower_bound = search_lower_bound(departure_date, utc_now())
        candidates = await self.trips.find_open(lower_bound)
        matched = self.matching.match(candidates, pickup, drop, max_distance_km)

        logger.info(
            f"[SEARCH] {len(candidates)} open trips from {lower_bound.isoformat()}, "
            f"{len(matched)} matched (radius {max_distance_km or self.matching.DEFAULT_MAX_DISTANCE_KM} km)"
        )
        return matched

    async def list_open_trips(self) -> List[Trip]:
        """All open trips with a future departure, soonest first."""
        return await self.trips.find_open(utc_now())

    async def get_my_trips(self, driver: User) -> List[Trip]:
        if not driver.has_role(UserRole.TRAVELLER):
            raise AuthorizationError("Only Travellers can view their published rides")
        return await self.trips.find_by_driver(driver.user_id)

    async def get_trip(self, trip_id: str) -> Trip:
        trip = await self.trips.get(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        return trip

    async def _owned_trip(self, trip_id: str, user_id: str, action: str) -> Trip:
        trip = await self.get_trip(trip_id)
        if trip.driver_id != user_id:
            raise AuthorizationError(f"Only the driver can {action}")
        return trip

    # =========================================================================
    # Completion
    # =========================================================================

    async def complete_trip(self, trip_id: str, user_id: str) -> TripCompletionResult:
        """
        Mark a trip COMPLETED, then reward and notify everyone on it.

        Only the status change must succeed. Each reward/notification step is
        an isolated post-commit task; failures are reported in the result and
        recorded for reconciliation.
        """
        trip = await self._owned_trip(trip_id, user_id, "complete the trip")

        if not await self.trips.mark_completed(trip_id):
            raise InvalidTransitionError(f"Trip is already {trip.status}")
        trip.status = TripStatus.COMPLETED.value
        logger.info(f"Trip {trip_id} marked COMPLETED")

        result = TripCompletionResult(trip=trip)
        tasks = PostCommitTasks("complete_trip", self.failures)

        tasks.add(
            "reward_driver", self._reward_driver, trip, result,
            trip_id=trip_id, user_id=trip.driver_id,
        )

        try:
            accepted = await self.bookings.find_by_trip(trip_id, BookingStatus.ACCEPTED)
        except Exception as e:
            # Recorded through the task list like any other post-commit failure
            accepted = []
            tasks.add("load_bookings", self._reraise, e, trip_id=trip_id)

        for booking in accepted:
            tasks.add(
                "complete_booking", self._complete_booking, trip, booking.booking_id,
                booking.passenger_id, result,
                trip_id=trip_id, booking_id=booking.booking_id, user_id=booking.passenger_id,
            )

        result.report = await tasks.run()
        if not result.report.ok:
            logger.warning(
                f"Trip {trip_id} completed but {result.report.failed_count} "
                f"post-commit tasks failed"
            )
        return result

    @staticmethod
    async def _reraise(error: Exception):
        raise error

    async def _reward_driver(self, trip: Trip, result: TripCompletionResult):
        distance = trip.distance or settings.default_driver_distance_meters
        impact = await self.rewards.process_carbon_conversion(trip.driver_id, distance, is_driver=True)
        result.driver_impact = impact

        await self.notifications.emit(trip.driver_id, NotificationIntent(
            type=NotificationType.IMPACT,
            title="Mission Complete!",
            body=f"You earned {impact.credits_earned} credits saving {impact.carbon_saved}g CO2!",
            ref_id=trip.trip_id,
            ref_type=RefType.TRIP,
        ))
        if not impact.applied:
            raise RewardNotAppliedError(f"Driver reward not applied for {trip.driver_id}")

    async def _complete_booking(
        self, trip: Trip, booking_id: str, passenger_id: str, result: TripCompletionResult
    ):
        moved = await self.bookings.transition_status(
            booking_id, BookingStatus.ACCEPTED, BookingStatus.COMPLETED
        )
        if not moved:
            raise InvalidTransitionError(f"Booking {booking_id} is no longer ACCEPTED")
        result.passengers_processed += 1

        distance = trip.distance or settings.default_passenger_distance_meters
        impact = await self.rewards.process_carbon_conversion(passenger_id, distance, is_driver=False)

        await self.notifications.emit(passenger_id, NotificationIntent(
            type=NotificationType.IMPACT,
            title="Ride Completed!",
            body=f"You earned {impact.credits_earned} credits! Please settle your payment.",
            ref_id=trip.trip_id,
            ref_type=RefType.TRIP,
        ))
        if not impact.applied:
            raise RewardNotAppliedError(f"Passenger reward not applied for {passenger_id}")

    # =========================================================================
    # Expenses
    # =========================================================================

    async def add_expense(self, trip_id: str, user_id: str, data: ExpenseCreate) -> Trip:
        """Append to the ledger; total_expenses is recomputed by the store."""
        await self._owned_trip(trip_id, user_id, "add expenses")

        trip = await self.trips.append_expense(
            trip_id, Expense(description=data.description, amount=data.amount)
        )
        if trip is None:
            raise NotFoundError("Trip not found")
        return trip

    async def preview_route(self, origin: Location, destination: Location) -> dict:
        return await self.routing.preview_route(origin, destination)
