"""
MotoresRD - Booking routes.

Customers create and cancel their bookings; listing owners (or admins)
confirm, reject, start and complete them.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException

from api.models.booking import (
    BookingFormData,
    BookingResponse,
    BookingStatusUpdate,
    BookingWithDetails,
    CancelBookingRequest,
)
from api.routes.auth import get_current_user, require_role
from api.services.booking_service import get_booking_service
from api.services.motorcycle_service import get_motorcycle_service
from api.services.user_service import ensure_owner_or_admin
from database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings")


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    form: BookingFormData,
    user: User = Depends(get_current_user),
) -> BookingResponse:
    """
    Request a booking; the price is computed from the listing's daily rate.

    Raises:
        409 if the listing is unavailable for the dates
    """
    booking = await get_booking_service().create_booking(form, user)
    return BookingResponse.model_validate(booking)


@router.get("/mine", response_model=list[BookingResponse])
async def list_my_bookings(
    user: User = Depends(get_current_user),
) -> list[BookingResponse]:
    bookings = await get_booking_service().get_bookings_by_user(user.id)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/motorcycle/{motorcycle_id}", response_model=list[BookingResponse])
async def list_motorcycle_bookings(
    motorcycle_id: uuid.UUID,
    user: User = Depends(require_role("dealer", "admin")),
) -> list[BookingResponse]:
    """Bookings of a listing ordered by start date (owner or admin)."""
    motorcycle = await get_motorcycle_service().get_motorcycle_by_id(motorcycle_id)
    if motorcycle is None:
        raise HTTPException(status_code=404, detail="Motocicleta no encontrada")
    ensure_owner_or_admin(user, motorcycle.owner_id, "No tiene permisos sobre esta motocicleta")

    bookings = await get_booking_service().get_bookings_by_motorcycle(motorcycle_id)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingWithDetails)
async def get_booking(
    booking_id: uuid.UUID,
    user: User = Depends(get_current_user),
) -> BookingWithDetails:
    """Booking with listing and owner details (customer, owner or admin)."""
    service = get_booking_service()
    details = await service.get_booking_with_details(booking_id)
    if details is None:
        raise HTTPException(status_code=404, detail="Reserva no encontrada")
    if not service.can_view(details, user):
        raise HTTPException(status_code=403, detail="No tiene permisos sobre esta reserva")
    return details


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: uuid.UUID,
    user: User = Depends(require_role("dealer", "admin")),
) -> BookingResponse:
    booking = await get_booking_service().confirm_booking(booking_id, user)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: uuid.UUID,
    data: CancelBookingRequest | None = None,
    user: User = Depends(require_role("dealer", "admin")),
) -> BookingResponse:
    booking = await get_booking_service().reject_booking(booking_id, user, data.reason if data else None)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/start", response_model=BookingResponse)
async def start_booking(
    booking_id: uuid.UUID,
    user: User = Depends(require_role("dealer", "admin")),
) -> BookingResponse:
    booking = await get_booking_service().start_booking(booking_id, user)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: uuid.UUID,
    user: User = Depends(require_role("dealer", "admin")),
) -> BookingResponse:
    booking = await get_booking_service().complete_booking(booking_id, user)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: uuid.UUID,
    data: CancelBookingRequest | None = None,
    user: User = Depends(get_current_user),
) -> BookingResponse:
    """Cancel a booking (its customer, the listing owner or an admin)."""
    booking = await get_booking_service().cancel_booking(booking_id, user, data.reason if data else None)
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: uuid.UUID,
    data: BookingStatusUpdate,
    admin: User = Depends(require_role("admin")),
) -> BookingResponse:
    """Set any allowed status transition directly (admin)."""
    booking = await get_booking_service().update_booking_status(
        booking_id, data.status, data.reason
    )
    return BookingResponse.model_validate(booking)
