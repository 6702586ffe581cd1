"""
Chat Service

Trip chat and live location sharing between a driver and the accepted
passengers of a trip.
"""

import logging
import uuid
from typing import List, Optional

from ecoride.models.booking import BookingStatus
from ecoride.models.chat_message import ChatMessage, LocationUpdate
from ecoride.models.notification import NotificationIntent, NotificationType, RefType
from ecoride.models.trip import Trip
from ecoride.models.user import User
from ecoride.realtime import RealtimeChannel
from ecoride.repositories.base import BookingRepository, ChatMessageRepository, TripRepository
from ecoride.services.exceptions import AuthorizationError, NotFoundError
from ecoride.services.notification_service import NotificationService
from ecoride.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


PREVIEW_LENGTH = 50


def message_preview(text: str) -> str:
    """First 50 characters, with an ellipsis when cut."""
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


class ChatService:
    """Trip chat service. Only the driver and accepted passengers take part."""

    def __init__(
        self,
        trips: Optional[TripRepository] = None,
        bookings: Optional[BookingRepository] = None,
        messages: Optional[ChatMessageRepository] = None,
        notifications: Optional[NotificationService] = None,
        channel: Optional[RealtimeChannel] = None,
    ):
        if trips is None or bookings is None or messages is None:
            from ecoride.repositories import mongo
            trips = trips or mongo.MongoTripRepository()
            bookings = bookings or mongo.MongoBookingRepository()
            messages = messages or mongo.MongoChatMessageRepository()
        if channel is None:
            from ecoride.realtime import manager
            channel = manager

        self.trips = trips
        self.bookings = bookings
        self.messages = messages
        self.channel = channel
        self.notifications = notifications or NotificationService(channel=channel)

    async def _participants(self, trip_id: str, user_id: str) -> tuple[Trip, List[str]]:
        """Return the trip and its accepted passenger ids, or raise if user is not on it."""
        trip = await self.trips.get(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")

        accepted = await self.bookings.find_by_trip(trip_id, BookingStatus.ACCEPTED)
        passenger_ids = [b.passenger_id for b in accepted]

        if user_id != trip.driver_id and user_id not in passenger_ids:
            raise AuthorizationError("Only trip participants can use the trip chat")
        return trip, passenger_ids

    async def can_join(self, trip_id: str, user_id: str) -> bool:
        try:
            await self._participants(trip_id, user_id)
            return True
        except (NotFoundError, AuthorizationError):
            return False

    async def get_messages(self, trip_id: str, user_id: str, limit: int = 100) -> List[ChatMessage]:
        await self._participants(trip_id, user_id)
        return await self.messages.find_by_trip(trip_id, limit=limit)

    async def send_message(self, trip_id: str, sender: User, text: str) -> ChatMessage:
        """
        Persist and broadcast a message, then notify the other side.

        Driver messages notify every accepted passenger, passenger messages
        notify the driver. The sender is never notified.
        """
        trip, passenger_ids = await self._participants(trip_id, sender.user_id)

        message = ChatMessage(
            message_id=str(uuid.uuid4()),
            trip_id=trip_id,
            sender_id=sender.user_id,
            sender_name=sender.name,
            message=text,
            created_at=utc_now(),
        )
        await self.messages.insert(message)

        try:
            await self.channel.publish_to_trip(
                trip_id, "receiveMessage", message.model_dump(mode="json")
            )
        except Exception as e:
            logger.warning(f"Chat broadcast failed on trip {trip_id}: {e}")

        if sender.user_id == trip.driver_id:
            recipients = passenger_ids
        else:
            recipients = [trip.driver_id]

        for recipient_id in dict.fromkeys(recipients):
            if recipient_id == sender.user_id:
                continue
            await self.notifications.emit(recipient_id, NotificationIntent(
                type=NotificationType.MESSAGE,
                title=f"New Message from {sender.name}",
                body=message_preview(text),
                ref_id=trip_id,
                ref_type=RefType.TRIP,
            ))

        return message

    async def update_location(self, trip_id: str, user: User, location: LocationUpdate) -> dict:
        """Publish a participant's live position to the trip room."""
        await self._participants(trip_id, user.user_id)

        payload = {
            "trip_id": trip_id,
            "user_id": user.user_id,
            "lat": location.lat,
            "lng": location.lng,
            "timestamp": utc_now().isoformat(),
        }
        await self.channel.publish_to_trip(trip_id, "locationUpdated", payload)
        return payload
