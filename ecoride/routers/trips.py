"""
Trips Router

Trip publishing, discovery, search, completion, expenses and trip chat.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from ecoride.dependencies import (
    get_booking_service,
    get_chat_service,
    get_current_user,
    get_trip_service,
)
from ecoride.models.booking import Booking
from ecoride.models.chat_message import ChatMessage, ChatMessageCreate, LocationUpdate
from ecoride.models.location import Location
from ecoride.models.trip import ExpenseCreate, Trip, TripCreate
from ecoride.models.user import User
from ecoride.services.booking_service import BookingService
from ecoride.services.chat_service import ChatService
from ecoride.services.trip_service import TripService


router = APIRouter()


class RoutePreviewResponse(BaseModel):
    """Route labels for the publish form."""
    distance: str
    duration: str
    polyline: str


class TripCompletionResponse(BaseModel):
    """Completion outcome. Failed tasks never fail the request."""
    message: str
    trip: Trip
    passengers_processed: int
    failed_tasks: int


@router.get("", response_model=List[Trip])
async def list_open_trips(trips: TripService = Depends(get_trip_service)):
    """All open trips with a future departure, soonest first."""
    return await trips.list_open_trips()


@router.post("", response_model=Trip, status_code=status.HTTP_201_CREATED)
async def create_trip(
    data: TripCreate,
    current_user: User = Depends(get_current_user),
    trips: TripService = Depends(get_trip_service),
):
    """Publish a trip. Travellers only."""
    return await trips.create_trip(current_user, data)


@router.get("/route-info", response_model=RoutePreviewResponse)
async def preview_route(
    pickup_lat: float = Query(..., ge=-90, le=90),
    pickup_lng: float = Query(..., ge=-180, le=180),
    drop_lat: float = Query(..., ge=-90, le=90),
    drop_lng: float = Query(..., ge=-180, le=180),
    trips: TripService = Depends(get_trip_service),
):
    """Distance, duration and polyline preview between two points."""
    return await trips.preview_route(
        Location.from_lat_lng(pickup_lat, pickup_lng),
        Location.from_lat_lng(drop_lat, drop_lng),
    )


@router.get("/search", response_model=List[Trip])
async def search_trips(
    pickup_lat: float = Query(..., ge=-90, le=90),
    pickup_lng: float = Query(..., ge=-180, le=180),
    drop_lat: float = Query(..., ge=-90, le=90),
    drop_lng: float = Query(..., ge=-180, le=180),
    date: Optional[datetime] = None,
    max_distance: Optional[float] = Query(None, gt=0),
    current_user: User = Depends(get_current_user),
    trips: TripService = Depends(get_trip_service),
):
    """Search open trips serving pickup -> drop. Passengers only."""
    return await trips.search_trips(
        current_user,
        pickup=Location.from_lat_lng(pickup_lat, pickup_lng),
        drop=Location.from_lat_lng(drop_lat, drop_lng),
        departure_date=date,
        max_distance_km=max_distance,
    )


@router.get("/my-trips", response_model=List[Trip])
async def get_my_trips(
    current_user: User = Depends(get_current_user),
    trips: TripService = Depends(get_trip_service),
):
    return await trips.get_my_trips(current_user)


@router.get("/{trip_id}", response_model=Trip)
async def get_trip(trip_id: str, trips: TripService = Depends(get_trip_service)):
    return await trips.get_trip(trip_id)


@router.patch("/{trip_id}/complete", response_model=TripCompletionResponse)
async def complete_trip(
    trip_id: str,
    current_user: User = Depends(get_current_user),
    trips: TripService = Depends(get_trip_service),
):
    """
    Complete a trip and award carbon credits.

    Only the driver can complete. Reward and notification failures are
    reported in `failed_tasks` but the trip stays COMPLETED.
    """
    result = await trips.complete_trip(trip_id, current_user.user_id)
    return TripCompletionResponse(
        message="Mission terminated. Credits awarded.",
        trip=result.trip,
        passengers_processed=result.passengers_processed,
        failed_tasks=result.report.failed_count,
    )


@router.post("/{trip_id}/expenses", response_model=Trip)
async def add_expense(
    trip_id: str,
    data: ExpenseCreate,
    current_user: User = Depends(get_current_user),
    trips: TripService = Depends(get_trip_service),
):
    return await trips.add_expense(trip_id, current_user.user_id, data)


@router.get("/{trip_id}/bookings", response_model=List[Booking])
async def get_trip_bookings(
    trip_id: str,
    current_user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    """All bookings of a trip. Driver only."""
    return await bookings.get_trip_bookings(trip_id, current_user.user_id)


# =============================================================================
# Trip Chat
# =============================================================================

@router.get("/{trip_id}/messages", response_model=List[ChatMessage])
async def get_messages(
    trip_id: str,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    chat: ChatService = Depends(get_chat_service),
):
    return await chat.get_messages(trip_id, current_user.user_id, limit=limit)


@router.post("/{trip_id}/messages", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def send_message(
    trip_id: str,
    data: ChatMessageCreate,
    current_user: User = Depends(get_current_user),
    chat: ChatService = Depends(get_chat_service),
):
    return await chat.send_message(trip_id, current_user, data.message)


@router.post("/{trip_id}/location")
async def update_location(
    trip_id: str,
    data: LocationUpdate,
    current_user: User = Depends(get_current_user),
    chat: ChatService = Depends(get_chat_service),
):
    """Share the caller's live position with the trip room."""
    return await chat.update_location(trip_id, current_user, data)
