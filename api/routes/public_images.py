"""
MotoresRD - Public image serving.

Gallery and listing images are served without authentication so the
storefront can display them. Paths are validated and confined to their root.
"""

import logging
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse, JSONResponse

from shared.config import get_settings
from shared.image_security import (
    ImageSecurityError,
    resolve_within,
    validate_relative_image_path,
)

logger = logging.getLogger(__name__)


def serve_from_root(root: Path, path: str) -> FileResponse | JSONResponse:
    """
    Serve root/path after validating every segment.

    Returns:
        The file, or a JSON error (400 invalid path, 403 escape, 404 missing)
    """
    try:
        relative = validate_relative_image_path(path)
    except ImageSecurityError as e:
        logger.warning(f"Invalid image path requested: {path} | Error: {e}")
        return JSONResponse(status_code=400, content={"detail": "Invalid path"})

    try:
        file_path = resolve_within(root, relative)
    except ImageSecurityError:
        return JSONResponse(status_code=403, content={"detail": "Access denied"})

    if not file_path.exists():
        return JSONResponse(status_code=404, content={"detail": "Image not found"})

    if not file_path.is_file():
        return JSONResponse(status_code=403, content={"detail": "Access denied"})

    return FileResponse(file_path)


def get_catalog_images_router() -> APIRouter:
    """Router for gallery images (brand/make/[color/]file)."""
    catalog_router = APIRouter()

    @catalog_router.get("/{path:path}", response_model=None)
    async def serve_catalog_image(path: str) -> FileResponse | JSONResponse:
        return serve_from_root(Path(get_settings().CATALOG_IMAGES_DIR), path)

    return catalog_router


def get_listing_images_router() -> APIRouter:
    """Router for rental listing images (<id>/<color>/file)."""
    listing_router = APIRouter()

    @listing_router.get("/{path:path}", response_model=None)
    async def serve_listing_image(path: str) -> FileResponse | JSONResponse:
        return serve_from_root(Path(get_settings().LISTING_IMAGES_DIR), path)

    return listing_router
