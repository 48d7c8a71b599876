"""
MotoresRD - Make image gallery routes.

Gallery management for catalog makes. Images are addressed by their path
under the gallery root (brand/make/color/file).
"""

import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.middleware.rate_limit import enforce_rate_limit
from api.models.catalog import MakeImageResponse, MakeImageUpdate
from api.routes.auth import require_role
from api.services.make_image_service import get_make_image_service
from database.models import User
from shared.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/makes")


@router.get("/{make_id}/images", response_model=list[MakeImageResponse])
async def list_make_images(
    make_id: uuid.UUID,
    user: User = Depends(require_role("admin", "dealer")),
) -> list[MakeImageResponse]:
    """List a make's images: legacy images first, then one group per color."""
    return await get_make_image_service().list_images_for_make(make_id)


@router.post("/{make_id}/images", response_model=MakeImageResponse, status_code=201)
async def upload_make_image(
    make_id: uuid.UUID,
    file: UploadFile = File(...),
    color: str = Form(..., description="Color name, e.g. 'Azul Metálico'"),
    year: int | None = Form(None, ge=1900, le=2100),
    user: User = Depends(require_role("admin", "dealer")),
) -> MakeImageResponse:
    """
    Upload an image into the make's color folder.

    Rate limited per user; the file is validated by magic number and Pillow.
    """
    enforce_rate_limit(f"upload:{user.id}", get_settings().IMAGE_UPLOAD_RATE_LIMIT)
    return await get_make_image_service().upload_make_image(make_id, file, color, year)


@router.put("/images", response_model=MakeImageResponse)
async def update_make_image(
    data: MakeImageUpdate,
    user: User = Depends(require_role("admin", "dealer")),
) -> MakeImageResponse:
    """Move an image to another color and/or year."""
    return get_make_image_service().update_make_image(data.path, data.color, data.year)


@router.delete("/images", status_code=204)
async def delete_make_image(
    path: str = Query(..., description="Image path under the gallery root"),
    admin: User = Depends(require_role("admin")),
) -> None:
    get_make_image_service().delete_make_image(path)
    logger.info(f"Gallery image deleted: {path}", extra={"user_id": admin.id})
