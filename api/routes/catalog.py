"""
MotoresRD - Catalog back-office routes.

Brands are managed by admins. Makes can be created and edited by dealers
and admins; highlighting and deletion are admin only.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query

from api.models.catalog import (
    BrandCreate,
    BrandResponse,
    BrandUpdate,
    HighlightResponse,
    MakeCreate,
    MakeListResponse,
    MakeResponse,
    MakeType,
    MakeUpdate,
)
from api.routes.auth import require_role
from api.services.catalog_service import get_catalog_service
from database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin")


# =============================================================================
# Brands
# =============================================================================


@router.get("/brands", response_model=list[BrandResponse])
async def list_brands(
    user: User = Depends(require_role("admin", "dealer")),
) -> list[BrandResponse]:
    """List brands ordered by name."""
    brands = await get_catalog_service().list_brands()
    return [BrandResponse.model_validate(b) for b in brands]


@router.post("/brands", response_model=BrandResponse, status_code=201)
async def create_brand(
    data: BrandCreate,
    admin: User = Depends(require_role("admin")),
) -> BrandResponse:
    brand = await get_catalog_service().create_brand(data)
    logger.info(f"Brand created: {brand.name}", extra={"user_id": admin.id})
    return BrandResponse.model_validate(brand)


@router.get("/brands/{brand_id}", response_model=BrandResponse)
async def get_brand(
    brand_id: uuid.UUID,
    user: User = Depends(require_role("admin", "dealer")),
) -> BrandResponse:
    return BrandResponse.model_validate(await get_catalog_service().get_brand(brand_id))


@router.put("/brands/{brand_id}", response_model=BrandResponse)
async def update_brand(
    brand_id: uuid.UUID,
    data: BrandUpdate,
    admin: User = Depends(require_role("admin")),
) -> BrandResponse:
    brand = await get_catalog_service().update_brand(brand_id, data)
    return BrandResponse.model_validate(brand)


@router.delete("/brands/{brand_id}", status_code=204)
async def delete_brand(
    brand_id: uuid.UUID,
    admin: User = Depends(require_role("admin")),
) -> None:
    """
    Delete a brand.

    Raises:
        409 if the brand still has makes
    """
    await get_catalog_service().delete_brand(brand_id)
    logger.info(f"Brand deleted: {brand_id}", extra={"user_id": admin.id})


# =============================================================================
# Makes
# =============================================================================


@router.get("/makes", response_model=MakeListResponse)
async def list_makes(
    brand_id: uuid.UUID | None = Query(None, description="Filter by brand"),
    type: MakeType | None = Query(None, description="Filter by make type"),
    highlighted: bool | None = Query(None, description="Filter by highlighted flag"),
    search: str | None = Query(None, max_length=100, description="Match make or brand name"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_role("admin", "dealer")),
) -> MakeListResponse:
    """List makes ordered by brand and name, with their active listing count."""
    items, total = await get_catalog_service().list_makes(
        brand_id=brand_id,
        make_type=type,
        highlighted=highlighted,
        search=search,
        limit=limit,
        offset=offset,
    )
    return MakeListResponse(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
    )


@router.post("/makes", response_model=MakeResponse, status_code=201)
async def create_make(
    data: MakeCreate,
    user: User = Depends(require_role("admin", "dealer")),
) -> MakeResponse:
    return await get_catalog_service().create_make(data, user)


@router.get("/makes/{make_id}", response_model=MakeResponse)
async def get_make(
    make_id: uuid.UUID,
    user: User = Depends(require_role("admin", "dealer")),
) -> MakeResponse:
    return await get_catalog_service().get_make(make_id)


@router.put("/makes/{make_id}", response_model=MakeResponse)
async def update_make(
    make_id: uuid.UUID,
    data: MakeUpdate,
    user: User = Depends(require_role("admin", "dealer")),
) -> MakeResponse:
    return await get_catalog_service().update_make(make_id, data, user)


@router.post("/makes/{make_id}/toggle-highlight", response_model=HighlightResponse)
async def toggle_highlight(
    make_id: uuid.UUID,
    admin: User = Depends(require_role("admin")),
) -> HighlightResponse:
    """Flip the highlighted flag (at most MAX_HIGHLIGHTED_PER_BRAND per brand)."""
    new_status = await get_catalog_service().toggle_highlight(make_id)
    return HighlightResponse(
        id=make_id,
        is_highlighted=new_status,
        message="Modelo destacado" if new_status else "Modelo ya no está destacado",
    )


@router.delete("/makes/{make_id}")
async def delete_make(
    make_id: uuid.UUID,
    admin: User = Depends(require_role("admin")),
) -> dict:
    name = await get_catalog_service().delete_make(make_id)
    return {"message": f"Modelo '{name}' eliminado correctamente"}
