"""
MotoresRD - Booking Service.

Bookings cover an inclusive date range and are priced server-side from the
listing's daily rate. Creation checks availability while holding a row lock
on the motorcycle, so two concurrent requests for overlapping dates cannot
both succeed.
"""

import logging
import uuid
from datetime import UTC, date, datetime
from decimal import Decimal

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import noload

from api.models.booking import (
    BookingFormData,
    BookingMotorcycleSummary,
    BookingOwnerSummary,
    BookingResponse,
    BookingWithDetails,
)
from api.models.motorcycle import MotorcycleImage
from api.services.availability_service import get_availability_service
from api.services.user_service import ensure_owner_or_admin, is_admin
from database.connection import get_async_session
from database.models import Booking, Motorcycle, User
from shared.logging_config import truncate_message
from shared.time_utils import local_today

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"confirmed", "rejected", "cancelled"}),
    "confirmed": frozenset({"in_progress", "cancelled"}),
    "in_progress": frozenset({"completed"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
    "rejected": frozenset(),
}

UNKNOWN = "Unknown"


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def calculate_total_days(start: date, end: date) -> int:
    """Rental days, counting both the pickup and the return day."""
    return (end - start).days + 1


def calculate_total_price(daily_rate: Decimal, start: date, end: date) -> Decimal:
    return daily_rate * calculate_total_days(start, end)


def apply_status_change(booking: Booking, status: str, reason: str | None = None) -> None:
    """
    Move a booking to a new status and stamp the matching timestamp.

    Raises:
        HTTPException 409: Transition not allowed from the current status
    """
    if not can_transition(booking.status, status):
        raise HTTPException(
            status_code=409,
            detail=f"No se puede cambiar la reserva de '{booking.status}' a '{status}'",
        )

    now = datetime.now(UTC)
    booking.status = status
    if status == "confirmed":
        booking.confirmed_at = now
    if status in ("cancelled", "rejected"):
        booking.cancelled_at = now
        if reason:
            booking.cancellation_reason = reason


def build_booking_details(
    booking: Booking,
    motorcycle: Motorcycle | None,
    owner: User | None,
) -> BookingWithDetails:
    """Attach listing and owner summaries, falling back to "Unknown"."""
    if motorcycle is not None:
        motorcycle_summary = BookingMotorcycleSummary(
            make=motorcycle.make or UNKNOWN,
            model=motorcycle.model or UNKNOWN,
            slug=motorcycle.slug or "",
            images=[MotorcycleImage.model_validate(img) for img in motorcycle.images or []],
        )
    else:
        motorcycle_summary = BookingMotorcycleSummary(make=UNKNOWN, model=UNKNOWN, slug="")

    owner_summary = BookingOwnerSummary(
        business_name=(owner.business_name or owner.display_name or UNKNOWN) if owner else UNKNOWN,
        phone=(owner.business_phone or owner.phone or "") if owner else "",
    )

    return BookingWithDetails(
        **BookingResponse.model_validate(booking).model_dump(),
        motorcycle=motorcycle_summary,
        owner=owner_summary,
    )


class BookingService:
    """Service for rental bookings."""

    async def create_booking(self, form: BookingFormData, user: User) -> Booking:
        """
        Create a pending booking.

        Raises:
            HTTPException 400: Start date in the past
            HTTPException 404: Motorcycle not found
            HTTPException 409: Listing unavailable or dates taken
        """
        if form.end_date < form.start_date:
            raise HTTPException(status_code=400, detail="El rango de fechas es inválido")
        if form.start_date < local_today():
            raise HTTPException(
                status_code=400,
                detail="La fecha de recogida no puede ser anterior a hoy",
            )

        availability = get_availability_service()

        async with get_async_session() as session:
            listing = (
                await session.execute(
                    select(Motorcycle.id, Motorcycle.owner_id, Motorcycle.daily_price, Motorcycle.available)
                    .where(Motorcycle.id == form.motorcycle_id)
                    .with_for_update()
                )
            ).first()
            if listing is None:
                raise HTTPException(status_code=404, detail="Motocicleta no encontrada")
            if not listing.available:
                raise HTTPException(
                    status_code=409,
                    detail="La motocicleta no está disponible para alquiler",
                )

            free = await availability.check_availability_in_session(
                session, form.motorcycle_id, form.start_date, form.end_date
            )
            if not free:
                raise HTTPException(
                    status_code=409,
                    detail="La motocicleta no está disponible en las fechas seleccionadas",
                )

            booking = Booking(
                motorcycle_id=listing.id,
                user_id=user.id,
                owner_id=listing.owner_id,
                start_date=form.start_date,
                end_date=form.end_date,
                total_days=calculate_total_days(form.start_date, form.end_date),
                daily_rate=listing.daily_price,
                total_price=calculate_total_price(listing.daily_price, form.start_date, form.end_date),
                status="pending",
                customer_name=form.customer_name.strip(),
                customer_email=form.customer_email.strip().lower(),
                customer_phone=form.customer_phone.strip(),
                pickup_location=form.pickup_location,
                dropoff_location=form.dropoff_location,
                notes=form.notes,
            )
            session.add(booking)
            await session.commit()
            await session.refresh(booking)

        logger.info(
            f"Booking created: {booking.start_date}..{booking.end_date} ({booking.total_days} days)",
            extra={"booking_id": booking.id, "motorcycle_id": booking.motorcycle_id, "user_id": user.id},
        )
        return booking

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_booking_by_id(self, booking_id: uuid.UUID) -> Booking | None:
        async with get_async_session() as session:
            return await session.get(Booking, booking_id)

    async def get_bookings_by_user(self, user_id: uuid.UUID) -> list[Booking]:
        async with get_async_session() as session:
            result = await session.execute(
                select(Booking).where(Booking.user_id == user_id).order_by(Booking.created_at.desc())
            )
            return list(result.unique().scalars().all())

    async def get_bookings_by_owner(
        self,
        owner_id: uuid.UUID,
        status: str | None = None,
    ) -> list[Booking]:
        query = select(Booking).where(Booking.owner_id == owner_id)
        if status:
            query = query.where(Booking.status == status)
        async with get_async_session() as session:
            result = await session.execute(query.order_by(Booking.created_at.desc()))
            return list(result.unique().scalars().all())

    async def get_bookings_by_motorcycle(self, motorcycle_id: uuid.UUID) -> list[Booking]:
        async with get_async_session() as session:
            result = await session.execute(
                select(Booking)
                .where(Booking.motorcycle_id == motorcycle_id)
                .order_by(Booking.start_date)
            )
            return list(result.unique().scalars().all())

    async def get_all_bookings(
        self,
        status: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Booking]:
        query = select(Booking)
        if status:
            query = query.where(Booking.status == status)
        async with get_async_session() as session:
            result = await session.execute(
                query.order_by(Booking.created_at.desc()).limit(limit).offset(offset)
            )
            return list(result.unique().scalars().all())

    async def get_booking_with_details(self, booking_id: uuid.UUID) -> BookingWithDetails | None:
        async with get_async_session() as session:
            booking = await session.get(Booking, booking_id)
            if booking is None:
                return None
            motorcycle = booking.motorcycle
            owner = await session.get(User, booking.owner_id)
            return build_booking_details(booking, motorcycle, owner)

    # =========================================================================
    # Status changes
    # =========================================================================

    async def update_booking_status(
        self,
        booking_id: uuid.UUID,
        status: str,
        reason: str | None = None,
    ) -> Booking:
        """
        Raises:
            HTTPException 404: Booking not found
            HTTPException 409: Transition not allowed
        """
        async with get_async_session() as session:
            booking = await session.scalar(
                select(Booking)
                .options(noload(Booking.motorcycle))
                .where(Booking.id == booking_id)
                .with_for_update()
            )
            if booking is None:
                raise HTTPException(status_code=404, detail="Reserva no encontrada")

            previous = booking.status
            apply_status_change(booking, status, reason)
            await session.commit()
            await session.refresh(booking)

        suffix = f": {truncate_message(reason, 100)}" if reason else ""
        logger.info(
            f"Booking status {previous} -> {status}{suffix}",
            extra={"booking_id": booking_id},
        )
        return booking

    async def _authorize(self, booking_id: uuid.UUID, actor: User, allow_customer: bool) -> Booking:
        booking = await self.get_booking_by_id(booking_id)
        if booking is None:
            raise HTTPException(status_code=404, detail="Reserva no encontrada")
        if allow_customer and booking.user_id == actor.id:
            return booking
        ensure_owner_or_admin(actor, booking.owner_id, "No tiene permisos sobre esta reserva")
        return booking

    async def confirm_booking(self, booking_id: uuid.UUID, actor: User) -> Booking:
        await self._authorize(booking_id, actor, allow_customer=False)
        return await self.update_booking_status(booking_id, "confirmed")

    async def reject_booking(self, booking_id: uuid.UUID, actor: User, reason: str | None = None) -> Booking:
        await self._authorize(booking_id, actor, allow_customer=False)
        return await self.update_booking_status(booking_id, "rejected", reason)

    async def start_booking(self, booking_id: uuid.UUID, actor: User) -> Booking:
        await self._authorize(booking_id, actor, allow_customer=False)
        return await self.update_booking_status(booking_id, "in_progress")

    async def complete_booking(self, booking_id: uuid.UUID, actor: User) -> Booking:
        await self._authorize(booking_id, actor, allow_customer=False)
        return await self.update_booking_status(booking_id, "completed")

    async def cancel_booking(self, booking_id: uuid.UUID, actor: User, reason: str | None = None) -> Booking:
        await self._authorize(booking_id, actor, allow_customer=True)
        return await self.update_booking_status(booking_id, "cancelled", reason)

    def can_view(self, booking: Booking | BookingWithDetails, actor: User) -> bool:
        return is_admin(actor) or actor.id in (booking.user_id, booking.owner_id)


# Singleton
_booking_service: BookingService | None = None


def get_booking_service() -> BookingService:
    """Get singleton booking service instance."""
    global _booking_service
    if _booking_service is None:
        _booking_service = BookingService()
    return _booking_service
