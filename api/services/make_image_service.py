"""
MotoresRD - Make image gallery service.

Gallery images live on disk, one folder per brand, make and color:

    CATALOG_IMAGES_DIR/<brand-slug>/<make-slug>/<color-slug>/<file>

Images placed directly in the make folder are legacy images without a
color. File names follow brand-make-color[-year]-<unix ts>.<ext>.
Every path coming from a client is validated and confined to the root.
"""

import logging
import re
import shutil
import time
import uuid
from pathlib import Path, PurePosixPath

from fastapi import HTTPException, UploadFile
from sqlalchemy import select

from api.models.catalog import MakeImageResponse
from database.connection import get_async_session
from database.models import Brand, Make
from shared.config import get_settings
from shared.image_security import (
    GALLERY_EXTENSIONS,
    ImageSecurityError,
    get_extension_for_mime,
    resolve_within,
    validate_image_full,
    validate_path_segment,
    validate_relative_image_path,
)
from shared.slug import color_slug, humanize_slug

logger = logging.getLogger(__name__)

_YEAR_IN_FILENAME = re.compile(r"-(\d{4})-\d+\.[a-z]+$", re.IGNORECASE)


async def read_validated_upload(file: UploadFile) -> tuple[bytes, str]:
    """
    Read an upload and validate it as an image.

    Returns:
        (content, extension) with the extension derived from the detected type

    Raises:
        HTTPException 400: Too large or not a valid image
    """
    max_size = get_settings().IMAGE_MAX_SIZE_MB * 1024 * 1024
    content = await file.read()

    if len(content) > max_size:
        raise HTTPException(
            status_code=400,
            detail=f"Archivo demasiado grande. Maximo: {max_size // 1024 // 1024}MB",
        )

    try:
        validation = validate_image_full(
            content=content,
            declared_mime=file.content_type or "application/octet-stream",
        )
    except ImageSecurityError as e:
        logger.warning(f"Image validation failed: {e}")
        raise HTTPException(status_code=400, detail=f"Imagen invalida: {str(e)}")

    return content, get_extension_for_mime(validation["detected_mime"])


def build_image_filename(
    brand_slug: str,
    make_slug: str,
    color: str,
    year: int | None,
    extension: str,
    timestamp: int | None = None,
) -> str:
    """brand-make-color[-year]-<ts>.<ext>"""
    parts = [brand_slug, make_slug, color]
    if year:
        parts.append(str(year))
    parts.append(str(timestamp if timestamp is not None else int(time.time())))
    return "-".join(parts) + f".{extension}"


def extract_year(filename: str) -> int | None:
    match = _YEAR_IN_FILENAME.search(filename)
    return int(match.group(1)) if match else None


def _is_gallery_image(path: Path) -> bool:
    return path.is_file() and path.suffix.lower().lstrip(".") in GALLERY_EXTENSIONS


def _remove_if_empty_color_folder(folder: Path, model_folder: Path) -> None:
    """Drop an emptied color folder; the model folder itself is never removed."""
    if folder == model_folder or not folder.is_dir():
        return
    if not any(folder.iterdir()):
        try:
            folder.rmdir()
        except OSError as e:
            logger.warning(f"Could not remove empty folder {folder}: {e}")


class MakeImageService:
    """Service for the brand/make/color image gallery."""

    def __init__(self, root: Path | None = None):
        settings = get_settings()
        self.root = Path(root or settings.CATALOG_IMAGES_DIR)
        self.base_url = settings.CATALOG_IMAGES_BASE_URL.rstrip("/")

    def _to_response(
        self,
        relative: PurePosixPath,
        color: str | None,
        slug: str | None,
        year: int | None,
    ) -> MakeImageResponse:
        return MakeImageResponse(
            path=str(relative),
            url=f"{self.base_url}/{relative}",
            filename=relative.name,
            color=color,
            color_slug=slug,
            year=year,
        )

    def _parse_gallery_path(self, path: str) -> tuple[PurePosixPath, Path]:
        """
        Validate a client path: brand/make/file or brand/make/color/file.

        Raises:
            HTTPException 400: Invalid or escaping path
        """
        try:
            relative = validate_relative_image_path(path)
            if len(relative.parts) not in (3, 4):
                raise ImageSecurityError(f"Invalid gallery path depth: {path}")
            full = resolve_within(self.root, relative)
        except ImageSecurityError as e:
            logger.warning(f"Rejected gallery path '{path}': {e}")
            raise HTTPException(status_code=400, detail="Ruta de imagen inválida")
        return relative, full

    async def _get_slugs(self, make_id: uuid.UUID) -> tuple[str, str]:
        async with get_async_session() as session:
            row = (
                await session.execute(
                    select(Brand.slug, Make.slug)
                    .join(Brand, Make.brand_id == Brand.id)
                    .where(Make.id == make_id)
                )
            ).first()
        if row is None:
            raise HTTPException(status_code=404, detail="Modelo no encontrado")
        return row[0], row[1]

    async def upload_make_image(
        self,
        make_id: uuid.UUID,
        file: UploadFile,
        color: str,
        year: int | None = None,
    ) -> MakeImageResponse:
        """
        Store an image in the make's color folder.

        Raises:
            HTTPException 400: Missing color or invalid image
            HTTPException 404: Make not found
        """
        color = (color or "").strip()
        slug = color_slug(color)
        if not slug:
            raise HTTPException(status_code=400, detail="Debe especificar el color de la imagen")

        brand_slug, make_slug = await self._get_slugs(make_id)
        content, extension = await read_validated_upload(file)

        try:
            validate_path_segment(brand_slug)
            validate_path_segment(make_slug)
        except ImageSecurityError:
            raise HTTPException(status_code=400, detail="Ruta de imagen inválida")

        folder = self.root / brand_slug / make_slug / slug
        folder.mkdir(parents=True, exist_ok=True)

        filename = build_image_filename(brand_slug, make_slug, slug, year, extension)
        (folder / filename).write_bytes(content)

        relative = PurePosixPath(brand_slug, make_slug, slug, filename)
        logger.info(
            f"Gallery image uploaded: {relative} ({len(content)} bytes)",
            extra={"make_id": make_id, "image_path": str(relative)},
        )
        return self._to_response(relative, color, slug, year)

    def update_make_image(self, path: str, color: str, year: int | None = None) -> MakeImageResponse:
        """
        Move an image to another color folder and rename it.

        Raises:
            HTTPException 400: Invalid path or color
            HTTPException 404: Image not found
        """
        color = (color or "").strip()
        new_slug = color_slug(color)
        if not new_slug:
            raise HTTPException(status_code=400, detail="Debe especificar el color")

        relative, full = self._parse_gallery_path(path)
        if not full.is_file():
            raise HTTPException(status_code=404, detail="Imagen no encontrada")

        brand_slug, make_slug = relative.parts[0], relative.parts[1]
        model_folder = (self.root / brand_slug / make_slug).resolve()
        new_folder = model_folder / new_slug
        new_folder.mkdir(parents=True, exist_ok=True)

        extension = full.suffix.lstrip(".").lower()
        new_filename = build_image_filename(brand_slug, make_slug, new_slug, year, extension)
        shutil.move(str(full), str(new_folder / new_filename))

        _remove_if_empty_color_folder(full.parent, model_folder)

        new_relative = PurePosixPath(brand_slug, make_slug, new_slug, new_filename)
        logger.info(
            f"Gallery image moved: {relative} -> {new_relative}",
            extra={"image_path": str(new_relative)},
        )
        return self._to_response(new_relative, color, new_slug, year)

    def delete_make_image(self, path: str) -> None:
        """Delete an image; a missing file counts as deleted."""
        relative, full = self._parse_gallery_path(path)
        if not full.exists():
            return

        full.unlink()
        model_folder = (self.root / relative.parts[0] / relative.parts[1]).resolve()
        _remove_if_empty_color_folder(full.parent, model_folder)
        logger.info(f"Gallery image deleted: {relative}", extra={"image_path": str(relative)})

    def list_make_images(self, brand_slug: str, make_slug: str) -> list[MakeImageResponse]:
        """
        List a make's images: legacy root images first, then per color folder.
        """
        try:
            validate_path_segment(brand_slug)
            validate_path_segment(make_slug)
            model_folder = resolve_within(self.root, PurePosixPath(brand_slug, make_slug))
        except ImageSecurityError:
            raise HTTPException(status_code=400, detail="Parámetros inválidos")

        if not model_folder.is_dir():
            return []

        images = [
            self._to_response(PurePosixPath(brand_slug, make_slug, f.name), None, None, None)
            for f in sorted(model_folder.iterdir())
            if _is_gallery_image(f)
        ]

        for color_dir in sorted(model_folder.iterdir()):
            if not color_dir.is_dir() or color_dir.name.startswith("."):
                continue
            for f in sorted(color_dir.iterdir()):
                if not _is_gallery_image(f):
                    continue
                images.append(
                    self._to_response(
                        PurePosixPath(brand_slug, make_slug, color_dir.name, f.name),
                        humanize_slug(color_dir.name),
                        color_dir.name,
                        extract_year(f.name),
                    )
                )

        return images

    async def list_images_for_make(self, make_id: uuid.UUID) -> list[MakeImageResponse]:
        brand_slug, make_slug = await self._get_slugs(make_id)
        return self.list_make_images(brand_slug, make_slug)


# Singleton
_make_image_service: MakeImageService | None = None


def get_make_image_service() -> MakeImageService:
    """Get singleton gallery service instance."""
    global _make_image_service
    if _make_image_service is None:
        _make_image_service = MakeImageService()
    return _make_image_service
