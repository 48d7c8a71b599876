"""
MotoresRD - Rental listing routes.

Storefront reads are public. Publishing, editing, images and blocked dates
are restricted to the listing owner (a dealer) or an admin.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from api.middleware.rate_limit import enforce_rate_limit
from api.models.booking import (
    AvailabilityCalendar,
    AvailabilityCheckResponse,
    BlockDatesRequest,
    BlockedDateResponse,
    BookedDateResponse,
    UnblockDatesRequest,
)
from api.models.catalog import BrandResponse, MakeResponse
from api.models.motorcycle import (
    MotorcycleFilters,
    MotorcycleFormData,
    MotorcycleImage,
    MotorcyclePage,
    MotorcycleResponse,
    MotorcycleUpdate,
    PrimaryImageRequest,
)
from api.routes.auth import require_role
from api.services.availability_service import get_availability_service
from api.services.motorcycle_service import get_motorcycle_service
from api.services.user_service import ensure_owner_or_admin
from database.models import User
from shared.config import get_settings
from shared.time_utils import local_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/motorcycles")

require_dealer = require_role("dealer", "admin")


# =============================================================================
# Storefront (public)
# =============================================================================


@router.get("", response_model=MotorcyclePage)
async def list_motorcycles(
    brand: str | None = Query(None, description="Brand name"),
    category: str | None = Query(None),
    min_engine_cc: int | None = Query(None, ge=0),
    max_engine_cc: int | None = Query(None, ge=0),
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    available_from: date | None = Query(None, description="Only listings free from this day"),
    available_to: date | None = Query(None, description="Only listings free until this day"),
    page_size: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None, description="next_cursor of the previous page"),
) -> MotorcyclePage:
    """Available listings, newest first."""
    filters = MotorcycleFilters(
        brand=brand,
        category=category,
        min_engine_cc=min_engine_cc,
        max_engine_cc=max_engine_cc,
        min_price=min_price,
        max_price=max_price,
        available_from=available_from,
        available_to=available_to,
    )
    return await get_motorcycle_service().get_motorcycles(filters, page_size, cursor)


@router.get("/highlighted", response_model=list[MotorcycleResponse])
async def list_highlighted(
    count: int | None = Query(None, ge=1, le=24),
) -> list[MotorcycleResponse]:
    return await get_motorcycle_service().get_highlighted_motorcycles(count)


@router.get("/brands", response_model=list[BrandResponse])
async def list_brands() -> list[BrandResponse]:
    return await get_motorcycle_service().get_brands()


@router.get("/brands/{brand_id}/makes", response_model=list[MakeResponse])
async def list_makes_by_brand(brand_id: uuid.UUID) -> list[MakeResponse]:
    return await get_motorcycle_service().get_makes_by_brand(brand_id)


@router.get("/slug/{slug}", response_model=MotorcycleResponse)
async def get_motorcycle_by_slug(slug: str) -> MotorcycleResponse:
    motorcycle = await get_motorcycle_service().get_motorcycle_by_slug(slug)
    if motorcycle is None:
        raise HTTPException(status_code=404, detail="Motocicleta no encontrada")
    return MotorcycleResponse.model_validate(motorcycle)


@router.get("/{motorcycle_id}", response_model=MotorcycleResponse)
async def get_motorcycle(motorcycle_id: uuid.UUID) -> MotorcycleResponse:
    motorcycle = await get_motorcycle_service().get_motorcycle_by_id(motorcycle_id)
    if motorcycle is None:
        raise HTTPException(status_code=404, detail="Motocicleta no encontrada")
    return MotorcycleResponse.model_validate(motorcycle)


@router.get("/{motorcycle_id}/availability", response_model=AvailabilityCalendar)
async def get_availability_calendar(
    motorcycle_id: uuid.UUID,
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
) -> AvailabilityCalendar:
    """Day-by-day availability for a month (current month by default)."""
    today = local_today()
    return await get_availability_service().get_availability_calendar(
        motorcycle_id, year or today.year, month or today.month
    )


@router.get("/{motorcycle_id}/availability/check", response_model=AvailabilityCheckResponse)
async def check_availability(
    motorcycle_id: uuid.UUID,
    start_date: date = Query(...),
    end_date: date = Query(...),
) -> AvailabilityCheckResponse:
    available = await get_availability_service().check_availability(
        motorcycle_id, start_date, end_date
    )
    return AvailabilityCheckResponse(
        motorcycle_id=motorcycle_id,
        start_date=start_date,
        end_date=end_date,
        available=available,
    )


# =============================================================================
# Owner management
# =============================================================================


@router.post("", response_model=MotorcycleResponse, status_code=201)
async def create_motorcycle(
    form: MotorcycleFormData,
    user: User = Depends(require_dealer),
) -> MotorcycleResponse:
    """Publish a catalog make as a rental listing."""
    motorcycle = await get_motorcycle_service().create_motorcycle(form, user)
    return MotorcycleResponse.model_validate(motorcycle)


@router.patch("/{motorcycle_id}", response_model=MotorcycleResponse)
async def update_motorcycle(
    motorcycle_id: uuid.UUID,
    data: MotorcycleUpdate,
    user: User = Depends(require_dealer),
) -> MotorcycleResponse:
    motorcycle = await get_motorcycle_service().update_motorcycle(motorcycle_id, data, user)
    return MotorcycleResponse.model_validate(motorcycle)


@router.delete("/{motorcycle_id}", status_code=204)
async def delete_motorcycle(
    motorcycle_id: uuid.UUID,
    user: User = Depends(require_dealer),
) -> None:
    await get_motorcycle_service().delete_motorcycle(motorcycle_id, user)


@router.post("/{motorcycle_id}/images", response_model=MotorcycleImage, status_code=201)
async def upload_motorcycle_image(
    motorcycle_id: uuid.UUID,
    file: UploadFile = File(...),
    color: str = Form(...),
    user: User = Depends(require_dealer),
) -> MotorcycleImage:
    enforce_rate_limit(f"upload:{user.id}", get_settings().IMAGE_UPLOAD_RATE_LIMIT)
    return await get_motorcycle_service().upload_motorcycle_image(motorcycle_id, file, color, user)


@router.delete("/{motorcycle_id}/images", response_model=list[MotorcycleImage])
async def delete_motorcycle_image(
    motorcycle_id: uuid.UUID,
    url: str = Query(..., description="URL of the image to remove"),
    user: User = Depends(require_dealer),
) -> list[MotorcycleImage]:
    """Remove an image; returns the remaining images."""
    return await get_motorcycle_service().delete_motorcycle_image(motorcycle_id, url, user)


@router.put("/{motorcycle_id}/images/primary", response_model=list[MotorcycleImage])
async def set_primary_image(
    motorcycle_id: uuid.UUID,
    data: PrimaryImageRequest,
    user: User = Depends(require_dealer),
) -> list[MotorcycleImage]:
    return await get_motorcycle_service().set_primary_image(motorcycle_id, data.url, user)


# =============================================================================
# Blocked dates
# =============================================================================


async def _require_listing_owner(motorcycle_id: uuid.UUID, user: User) -> None:
    motorcycle = await get_motorcycle_service().get_motorcycle_by_id(motorcycle_id)
    if motorcycle is None:
        raise HTTPException(status_code=404, detail="Motocicleta no encontrada")
    ensure_owner_or_admin(user, motorcycle.owner_id, "No tiene permisos sobre esta motocicleta")


@router.get("/{motorcycle_id}/blocked-dates", response_model=list[BlockedDateResponse])
async def get_blocked_dates(
    motorcycle_id: uuid.UUID,
    user: User = Depends(require_dealer),
) -> list[BlockedDateResponse]:
    await _require_listing_owner(motorcycle_id, user)
    return await get_availability_service().get_blocked_dates(motorcycle_id)


@router.get("/{motorcycle_id}/booked-dates", response_model=list[BookedDateResponse])
async def get_booked_dates(
    motorcycle_id: uuid.UUID,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    user: User = Depends(require_dealer),
) -> list[BookedDateResponse]:
    await _require_listing_owner(motorcycle_id, user)
    return await get_availability_service().get_booked_dates(motorcycle_id, start_date, end_date)


@router.post("/{motorcycle_id}/block-dates")
async def block_dates(
    motorcycle_id: uuid.UUID,
    data: BlockDatesRequest,
    user: User = Depends(require_dealer),
) -> dict:
    blocked = await get_availability_service().block_dates(
        motorcycle_id, data.dates, data.reason, user
    )
    return {"message": f"{blocked} fecha(s) bloqueada(s)", "blocked": blocked}


@router.post("/{motorcycle_id}/unblock-dates")
async def unblock_dates(
    motorcycle_id: uuid.UUID,
    data: UnblockDatesRequest,
    user: User = Depends(require_dealer),
) -> dict:
    unblocked = await get_availability_service().unblock_dates(motorcycle_id, data.dates, user)
    return {"message": f"{unblocked} fecha(s) desbloqueada(s)", "unblocked": unblocked}
