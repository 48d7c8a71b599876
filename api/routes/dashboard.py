"""
MotoresRD - Dashboard routes.

Admin KPIs and booking overview, plus the dealer panel (own listings,
bookings received and revenue stats).
"""

import logging

from fastapi import APIRouter, Depends, Query

from api.models.booking import AdminKPIs, BookingResponse, BookingStatus, DealerStats
from api.models.motorcycle import MotorcycleResponse
from api.routes.auth import require_role
from api.services.booking_service import get_booking_service
from api.services.dashboard_service import get_dashboard_service
from api.services.motorcycle_service import get_motorcycle_service
from database.models import User

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/api/admin")
dealer_router = APIRouter(prefix="/api/dealer")


# =============================================================================
# Admin
# =============================================================================


@admin_router.get("/dashboard/kpis", response_model=AdminKPIs)
async def get_admin_kpis(
    admin: User = Depends(require_role("admin")),
) -> AdminKPIs:
    """Totals for the current month with month-over-month trends."""
    return await get_dashboard_service().get_admin_kpis()


@admin_router.get("/bookings", response_model=list[BookingResponse])
async def list_all_bookings(
    status: BookingStatus | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_role("admin")),
) -> list[BookingResponse]:
    bookings = await get_booking_service().get_all_bookings(status=status, limit=limit, offset=offset)
    return [BookingResponse.model_validate(b) for b in bookings]


# =============================================================================
# Dealer
# =============================================================================


@dealer_router.get("/stats", response_model=DealerStats)
async def get_dealer_stats(
    user: User = Depends(require_role("dealer", "admin")),
) -> DealerStats:
    return await get_dashboard_service().get_dealer_stats(user.id)


@dealer_router.get("/motorcycles", response_model=list[MotorcycleResponse])
async def list_my_motorcycles(
    user: User = Depends(require_role("dealer", "admin")),
) -> list[MotorcycleResponse]:
    motorcycles = await get_motorcycle_service().get_motorcycles_by_owner(user.id)
    return [MotorcycleResponse.model_validate(m) for m in motorcycles]


@dealer_router.get("/bookings", response_model=list[BookingResponse])
async def list_received_bookings(
    status: BookingStatus | None = Query(None),
    user: User = Depends(require_role("dealer", "admin")),
) -> list[BookingResponse]:
    """Bookings for the dealer's listings, newest first."""
    bookings = await get_booking_service().get_bookings_by_owner(user.id, status)
    return [BookingResponse.model_validate(b) for b in bookings]
