"""
Bookings Router

Seat requests, driver decisions and payment settlement.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from ecoride.dependencies import get_booking_service, get_current_user
from ecoride.models.booking import Booking, BookingCreate, BookingDecision, PaymentUpdate
from ecoride.models.user import User
from ecoride.services.booking_service import BookingService


router = APIRouter()


@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def request_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    """Request seats on a trip. Passengers only; the fare is computed here."""
    return await bookings.request_booking(current_user, data)


@router.get("/my-bookings", response_model=List[Booking])
async def get_my_bookings(
    current_user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    return await bookings.get_my_bookings(current_user.user_id)


@router.get("/requests", response_model=List[Booking])
async def get_pending_requests(
    current_user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    """Pending requests across all trips of the calling driver."""
    return await bookings.get_pending_requests(current_user.user_id)


@router.get("/payment-history", response_model=List[Booking])
async def get_payment_history(
    current_user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    return await bookings.get_payment_history(current_user.user_id)


@router.patch("/{booking_id}/status", response_model=Booking)
async def decide_booking(
    booking_id: str,
    data: BookingDecision,
    current_user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    """Driver accepts or rejects a pending request."""
    return await bookings.decide_booking(booking_id, current_user.user_id, data.status)


@router.patch("/{booking_id}/payment", response_model=Booking)
async def update_payment(
    booking_id: str,
    data: PaymentUpdate,
    current_user: User = Depends(get_current_user),
    bookings: BookingService = Depends(get_booking_service),
):
    return await bookings.update_payment(booking_id, current_user.user_id, data)
