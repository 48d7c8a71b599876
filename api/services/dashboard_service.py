"""
MotoresRD - Dashboard Service.

KPI aggregates for the admin dashboard and the dealer panel. Months are
evaluated in the configured TIMEZONE.
"""

import logging
import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import func, select

from api.models.booking import AdminKPIs, DealerStats, KPITrends
from database.connection import get_async_session
from database.models import Booking, Motorcycle, User
from shared.time_utils import local_today, local_tz, month_bounds, previous_month

logger = logging.getLogger(__name__)

# Bookings that count as earned revenue
REVENUE_STATUSES = ("confirmed", "in_progress", "completed")
# Bookings currently holding a motorcycle
IN_PROGRESS_STATUSES = ("confirmed", "in_progress")


def percent_change(current: float | Decimal, previous: float | Decimal) -> int:
    """
    Month-over-month change in whole percent.

    0 when both months are zero, 100 when growing from zero.
    """
    if previous == 0:
        return 100 if current > 0 else 0
    return round((float(current) - float(previous)) / float(previous) * 100)


def _local_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=local_tz())


class DashboardService:
    """Service for dashboard aggregates."""

    async def _count_created(self, session, model, start: date, end: date) -> int:
        """Rows of model created in [start, end)."""
        return await session.scalar(
            select(func.count(model.id)).where(
                model.created_at >= _local_midnight(start),
                model.created_at < _local_midnight(end),
            )
        ) or 0

    async def _revenue(self, session, start: date, end: date, owner_id: uuid.UUID | None = None) -> Decimal:
        """Revenue of bookings starting in [start, end)."""
        query = select(func.coalesce(func.sum(Booking.total_price), 0)).where(
            Booking.status.in_(REVENUE_STATUSES),
            Booking.start_date >= start,
            Booking.start_date < end,
        )
        if owner_id is not None:
            query = query.where(Booking.owner_id == owner_id)
        return Decimal(await session.scalar(query) or 0)

    async def get_admin_kpis(self) -> AdminKPIs:
        today = local_today()
        this_start, this_end = month_bounds(today.year, today.month)
        prev_start, prev_end = month_bounds(*previous_month(today.year, today.month))

        async with get_async_session() as session:
            total_motorcycles = await session.scalar(select(func.count(Motorcycle.id))) or 0
            total_users = await session.scalar(select(func.count(User.id))) or 0
            active_bookings = await session.scalar(
                select(func.count(Booking.id)).where(Booking.status.in_(IN_PROGRESS_STATUSES))
            ) or 0

            monthly_revenue = await self._revenue(session, this_start, this_end)
            previous_revenue = await self._revenue(session, prev_start, prev_end)

            trends = KPITrends(
                motorcycles=percent_change(
                    await self._count_created(session, Motorcycle, this_start, this_end),
                    await self._count_created(session, Motorcycle, prev_start, prev_end),
                ),
                bookings=percent_change(
                    await self._count_created(session, Booking, this_start, this_end),
                    await self._count_created(session, Booking, prev_start, prev_end),
                ),
                users=percent_change(
                    await self._count_created(session, User, this_start, this_end),
                    await self._count_created(session, User, prev_start, prev_end),
                ),
                revenue=percent_change(monthly_revenue, previous_revenue),
            )

        return AdminKPIs(
            total_motorcycles=total_motorcycles,
            active_bookings=active_bookings,
            total_users=total_users,
            monthly_revenue=monthly_revenue,
            trends=trends,
        )

    async def get_dealer_stats(self, owner_id: uuid.UUID) -> DealerStats:
        today = local_today()
        this_start, this_end = month_bounds(today.year, today.month)

        async with get_async_session() as session:
            total_motorcycles = await session.scalar(
                select(func.count(Motorcycle.id)).where(Motorcycle.owner_id == owner_id)
            ) or 0
            available_motorcycles = await session.scalar(
                select(func.count(Motorcycle.id)).where(
                    Motorcycle.owner_id == owner_id,
                    Motorcycle.available.is_(True),
                )
            ) or 0

            status_counts = dict(
                (
                    await session.execute(
                        select(Booking.status, func.count(Booking.id))
                        .where(Booking.owner_id == owner_id)
                        .group_by(Booking.status)
                    )
                ).all()
            )

            monthly_revenue = await self._revenue(session, this_start, this_end, owner_id)
            total_revenue = Decimal(
                await session.scalar(
                    select(func.coalesce(func.sum(Booking.total_price), 0)).where(
                        Booking.owner_id == owner_id,
                        Booking.status.in_(REVENUE_STATUSES),
                    )
                )
                or 0
            )

        return DealerStats(
            total_motorcycles=total_motorcycles,
            available_motorcycles=available_motorcycles,
            pending_bookings=status_counts.get("pending", 0),
            active_bookings=sum(status_counts.get(s, 0) for s in IN_PROGRESS_STATUSES),
            monthly_revenue=monthly_revenue,
            total_revenue=total_revenue,
        )


# Singleton
_dashboard_service: DashboardService | None = None


def get_dashboard_service() -> DashboardService:
    """Get singleton dashboard service instance."""
    global _dashboard_service
    if _dashboard_service is None:
        _dashboard_service = DashboardService()
    return _dashboard_service
