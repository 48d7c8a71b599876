"""
MotoresRD - Availability Service.

A listing is unavailable on a day when its owner blocked that day or when
an active booking covers it. Date ranges are inclusive on both ends.
"""

import calendar
import logging
import uuid
from collections.abc import Iterable
from datetime import date, timedelta

from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from api.models.booking import (
    AvailabilityCalendar,
    BlockedDateResponse,
    BookedDateResponse,
    DayAvailability,
)
from api.services.user_service import ensure_owner_or_admin
from database.connection import get_async_session
from database.models import BlockedDate, Booking, Motorcycle, User
from shared.time_utils import month_bounds

logger = logging.getLogger(__name__)

# Statuses that hold a listing's dates
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed", "in_progress")
# Statuses shown as booked to the owner
BOOKED_STATUSES = ("confirmed", "in_progress")


# =============================================================================
# Date helpers
# =============================================================================


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive overlap of [a_start, a_end] and [b_start, b_end]."""
    return a_start <= b_end and b_start <= a_end


def iter_days(start: date, end: date) -> Iterable[date]:
    """Every day from start to end, inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def is_range_available(
    start: date,
    end: date,
    blocked_days: Iterable[date],
    booking_ranges: Iterable[tuple[date, date]],
) -> bool:
    """True when no blocked day falls in the range and no booking overlaps it."""
    if any(start <= day <= end for day in blocked_days):
        return False
    return not any(ranges_overlap(start, end, b_start, b_end) for b_start, b_end in booking_ranges)


def expand_booked_days(
    bookings: Iterable[tuple[uuid.UUID, date, date]],
    clip_start: date | None = None,
    clip_end: date | None = None,
) -> dict[date, uuid.UUID]:
    """
    Map every day covered by a booking to its id, optionally clipped to a range.

    Later bookings win when two cover the same day.
    """
    days: dict[date, uuid.UUID] = {}
    for booking_id, start, end in bookings:
        for day in iter_days(start, end):
            if clip_start and day < clip_start:
                continue
            if clip_end and day > clip_end:
                continue
            days[day] = booking_id
    return days


def build_month_calendar(
    year: int,
    month: int,
    blocked_days: Iterable[date],
    bookings: Iterable[tuple[uuid.UUID, date, date]],
) -> list[DayAvailability]:
    """One entry per day of the month with blocked/booked state."""
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])

    blocked = {d for d in blocked_days if first <= d <= last}
    booked = expand_booked_days(bookings, first, last)

    return [
        DayAvailability(
            date=day,
            is_available=day not in blocked and day not in booked,
            is_booked=day in booked,
            booking_id=booked.get(day),
        )
        for day in iter_days(first, last)
    ]


# =============================================================================
# Service
# =============================================================================


class AvailabilityService:
    """Service for listing availability and owner-blocked dates."""

    async def _blocked_days(
        self,
        session: AsyncSession,
        motorcycle_id: uuid.UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[date]:
        query = select(BlockedDate.day).where(
            BlockedDate.motorcycle_id == motorcycle_id,
            BlockedDate.is_available.is_(False),
        )
        if start:
            query = query.where(BlockedDate.day >= start)
        if end:
            query = query.where(BlockedDate.day <= end)
        return list((await session.execute(query)).scalars().all())

    async def _booking_ranges(
        self,
        session: AsyncSession,
        motorcycle_id: uuid.UUID,
        statuses: tuple[str, ...],
        start: date | None = None,
        end: date | None = None,
    ) -> list[tuple[uuid.UUID, date, date]]:
        query = (
            select(Booking.id, Booking.start_date, Booking.end_date)
            .where(Booking.motorcycle_id == motorcycle_id, Booking.status.in_(statuses))
            .order_by(Booking.start_date, Booking.created_at)
        )
        if start:
            query = query.where(Booking.end_date >= start)
        if end:
            query = query.where(Booking.start_date <= end)
        return [tuple(row) for row in (await session.execute(query)).all()]

    async def check_availability_in_session(
        self,
        session: AsyncSession,
        motorcycle_id: uuid.UUID,
        start: date,
        end: date,
    ) -> bool:
        """Availability check inside a caller's transaction."""
        blocked = await self._blocked_days(session, motorcycle_id, start, end)
        bookings = await self._booking_ranges(
            session, motorcycle_id, ACTIVE_BOOKING_STATUSES, start, end
        )
        return is_range_available(start, end, blocked, [(s, e) for _, s, e in bookings])

    async def check_availability(self, motorcycle_id: uuid.UUID, start: date, end: date) -> bool:
        """
        True when [start, end] has no blocked day and no active booking.

        Raises:
            HTTPException 400: end before start
        """
        if end < start:
            raise HTTPException(status_code=400, detail="El rango de fechas es inválido")
        async with get_async_session() as session:
            return await self.check_availability_in_session(session, motorcycle_id, start, end)

    async def get_availability_calendar(
        self,
        motorcycle_id: uuid.UUID,
        year: int,
        month: int,
    ) -> AvailabilityCalendar:
        first, next_month = month_bounds(year, month)
        last = next_month - timedelta(days=1)

        async with get_async_session() as session:
            blocked = await self._blocked_days(session, motorcycle_id, first, last)
            bookings = await self._booking_ranges(
                session, motorcycle_id, ACTIVE_BOOKING_STATUSES, first, last
            )

        return AvailabilityCalendar(
            motorcycle_id=motorcycle_id,
            year=year,
            month=month,
            days=build_month_calendar(year, month, blocked, bookings),
        )

    async def _ensure_can_manage(
        self,
        session: AsyncSession,
        motorcycle_id: uuid.UUID,
        actor: User,
    ) -> None:
        owner_id = await session.scalar(
            select(Motorcycle.owner_id).where(Motorcycle.id == motorcycle_id)
        )
        if owner_id is None:
            raise HTTPException(status_code=404, detail="Motocicleta no encontrada")
        ensure_owner_or_admin(
            actor, owner_id, "Solo el propietario puede modificar la disponibilidad"
        )

    async def block_dates(
        self,
        motorcycle_id: uuid.UUID,
        dates: list[date],
        reason: str | None,
        actor: User,
    ) -> int:
        """
        Block days for a listing. Re-blocking a day only refreshes its reason.

        Returns:
            Number of distinct days blocked
        """
        days = sorted(set(dates))

        async with get_async_session() as session:
            await self._ensure_can_manage(session, motorcycle_id, actor)

            stmt = pg_insert(BlockedDate.__table__).values(
                [
                    {
                        "id": uuid.uuid4(),
                        "motorcycle_id": motorcycle_id,
                        "date": day,
                        "is_available": False,
                        "blocked_reason": reason or None,
                        "booking_id": None,
                    }
                    for day in days
                ]
            )
            stmt = stmt.on_conflict_do_update(
                constraint="uq_availability_motorcycle_date",
                set_={
                    "is_available": False,
                    "blocked_reason": stmt.excluded.blocked_reason,
                    "booking_id": None,
                    "updated_at": func.now(),
                },
            )
            await session.execute(stmt)
            await session.commit()

        logger.info(
            f"Blocked {len(days)} day(s) for motorcycle {motorcycle_id}",
            extra={"motorcycle_id": motorcycle_id, "user_id": actor.id},
        )
        return len(days)

    async def unblock_dates(
        self,
        motorcycle_id: uuid.UUID,
        dates: list[date],
        actor: User,
    ) -> int:
        """Remove blocked days. Returns the number of rows deleted."""
        async with get_async_session() as session:
            await self._ensure_can_manage(session, motorcycle_id, actor)

            result = await session.execute(
                delete(BlockedDate).where(
                    BlockedDate.motorcycle_id == motorcycle_id,
                    BlockedDate.day.in_(set(dates)),
                )
            )
            await session.commit()

        logger.info(
            f"Unblocked {result.rowcount} day(s) for motorcycle {motorcycle_id}",
            extra={"motorcycle_id": motorcycle_id, "user_id": actor.id},
        )
        return result.rowcount

    async def get_blocked_dates(self, motorcycle_id: uuid.UUID) -> list[BlockedDateResponse]:
        async with get_async_session() as session:
            result = await session.execute(
                select(BlockedDate.day, BlockedDate.blocked_reason)
                .where(
                    BlockedDate.motorcycle_id == motorcycle_id,
                    BlockedDate.is_available.is_(False),
                )
                .order_by(BlockedDate.day)
            )
            return [BlockedDateResponse(date=day, blocked_reason=reason) for day, reason in result.all()]

    async def get_booked_dates(
        self,
        motorcycle_id: uuid.UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[BookedDateResponse]:
        """Days covered by confirmed or in-progress bookings, in date order."""
        async with get_async_session() as session:
            bookings = await self._booking_ranges(
                session, motorcycle_id, BOOKED_STATUSES, start, end
            )

        days = expand_booked_days(bookings, start, end)
        return [BookedDateResponse(date=day, booking_id=booking_id) for day, booking_id in sorted(days.items())]


# Singleton
_availability_service: AvailabilityService | None = None


def get_availability_service() -> AvailabilityService:
    """Get singleton availability service instance."""
    global _availability_service
    if _availability_service is None:
        _availability_service = AvailabilityService()
    return _availability_service
