"""
MotoresRD - Catalog import/export routes (admin only).
"""

import io
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse, StreamingResponse

from api.models.catalog import CatalogImportResult
from api.routes.auth import require_role
from api.services.catalog_io_service import get_catalog_io_service
from database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/catalog")

MAX_CSV_BYTES = 10 * 1024 * 1024


@router.get("/export-csv")
async def export_makes_csv(
    admin: User = Depends(require_role("admin")),
) -> StreamingResponse:
    """Download every make as UTF-8 CSV (with BOM for spreadsheet tools)."""
    filename, content = await get_catalog_io_service().export_makes_csv()
    return StreamingResponse(
        io.BytesIO(content),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(content)),
        },
    )


@router.post("/import-csv", response_model=CatalogImportResult)
async def import_makes_csv(
    file: UploadFile = File(...),
    admin: User = Depends(require_role("admin")),
) -> CatalogImportResult:
    """
    Import makes from a CSV upload.

    Per-line errors are reported in the result; only an unreadable file or
    missing required columns fail the request.
    """
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Debe seleccionar un archivo CSV")
    if len(content) > MAX_CSV_BYTES:
        raise HTTPException(status_code=400, detail="Archivo demasiado grande. Maximo: 10MB")

    logger.info(
        f"CSV import started: {file.filename} ({len(content)} bytes)",
        extra={"user_id": admin.id},
    )
    return await get_catalog_io_service().import_makes_csv(content)


@router.post("/import-json", response_model=CatalogImportResult)
async def import_catalog_json(
    admin: User = Depends(require_role("admin")),
) -> CatalogImportResult:
    """Import the scraped catalog file configured in CATALOG_JSON_PATH."""
    return await get_catalog_io_service().import_catalog_json()


@router.post("/import-legacy", response_model=CatalogImportResult)
async def import_legacy_backup(
    admin: User = Depends(require_role("admin")),
) -> CatalogImportResult:
    """Import brands and makes from the legacy SQL dump in LEGACY_BACKUP_PATH."""
    return await get_catalog_io_service().import_legacy_backup()


@router.post("/import-images", response_model=CatalogImportResult)
async def import_from_images(
    admin: User = Depends(require_role("admin")),
) -> CatalogImportResult:
    """Create brands and makes from the gallery folder tree."""
    return await get_catalog_io_service().import_from_images()


@router.post("/sync-images", response_model=CatalogImportResult)
async def sync_images(
    admin: User = Depends(require_role("admin")),
) -> CatalogImportResult:
    """Refresh make colors from their gallery folders."""
    return await get_catalog_io_service().sync_images()


@router.post("/backup")
async def create_backup(
    admin: User = Depends(require_role("admin")),
) -> FileResponse:
    """Dump the database and download the SQL file."""
    backup = await get_catalog_io_service().create_backup()
    logger.info(f"Manual backup downloaded: {backup.path.name}", extra={"user_id": admin.id})
    return FileResponse(
        backup.path,
        media_type="application/sql",
        filename=backup.path.name,
    )
