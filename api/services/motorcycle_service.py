"""
MotoresRD - Motorcycle Service.

Dealer rental listings and the public storefront catalog. A listing copies
its specs from a catalog make when it is created, so later catalog edits
(or the deletion of the make) never alter published listings.
"""

import base64
import binascii
import logging
import shutil
import time
import uuid
from datetime import date, datetime
from pathlib import Path, PurePosixPath

from fastapi import HTTPException, UploadFile
from sqlalchemy import and_, exists, func, or_, select

from api.models.catalog import BrandResponse, MakeResponse
from api.models.motorcycle import (
    MotorcycleFilters,
    MotorcycleFormData,
    MotorcycleImage,
    MotorcyclePage,
    MotorcycleResponse,
    MotorcycleUpdate,
)
from api.services.availability_service import ACTIVE_BOOKING_STATUSES
from api.services.cache_service import get_cache_service
from api.services.catalog_service import make_to_response
from api.services.make_image_service import read_validated_upload
from api.services.user_service import ensure_owner_or_admin, is_admin
from database.connection import get_async_session
from database.models import BlockedDate, Booking, Brand, Make, Motorcycle, User
from shared.config import get_settings
from shared.image_security import (
    ImageSecurityError,
    resolve_within,
    validate_relative_image_path,
)
from shared.redis_client import cache_get_json, cache_set_json
from shared.redis_keys import RedisKeys
from shared.slug import color_slug, create_motorcycle_slug, generate_unique_slug, parse_colors

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


# =============================================================================
# Keyset cursor
# =============================================================================


def encode_cursor(created_at: datetime, motorcycle_id: uuid.UUID) -> str:
    raw = f"{created_at.isoformat()}|{motorcycle_id}"
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, uuid.UUID]:
    """
    Raises:
        HTTPException 400: Malformed cursor
    """
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        created_at, motorcycle_id = raw.split("|", 1)
        return datetime.fromisoformat(created_at), uuid.UUID(motorcycle_id)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise HTTPException(status_code=400, detail="Cursor de paginación inválido")


# =============================================================================
# Query helpers
# =============================================================================


def _free_between(start: date, end: date):
    """Condition: no blocked day and no active booking in [start, end]."""
    blocked = exists().where(
        BlockedDate.motorcycle_id == Motorcycle.id,
        BlockedDate.is_available.is_(False),
        BlockedDate.day >= start,
        BlockedDate.day <= end,
    )
    booked = exists().where(
        Booking.motorcycle_id == Motorcycle.id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.start_date <= end,
        Booking.end_date >= start,
    )
    return and_(~blocked, ~booked)


def build_filter_conditions(filters: MotorcycleFilters | None) -> list:
    """WHERE conditions for the public listing; only available listings are shown."""
    conditions = [Motorcycle.available.is_(True)]
    if filters is None:
        return conditions

    if filters.brand:
        conditions.append(func.lower(Motorcycle.make) == filters.brand.strip().lower())
    if filters.category:
        conditions.append(Motorcycle.category == filters.category)
    if filters.min_engine_cc is not None:
        conditions.append(Motorcycle.engine_cc >= filters.min_engine_cc)
    if filters.max_engine_cc is not None:
        conditions.append(Motorcycle.engine_cc <= filters.max_engine_cc)
    if filters.min_price is not None:
        conditions.append(Motorcycle.daily_price >= filters.min_price)
    if filters.max_price is not None:
        conditions.append(Motorcycle.daily_price <= filters.max_price)
    if filters.available_from and filters.available_to:
        conditions.append(_free_between(filters.available_from, filters.available_to))

    return conditions


def mark_primary(images: list[dict], url: str) -> list[dict]:
    """Copy of images with exactly the image at url flagged primary."""
    return [{**image, "is_primary": image.get("url") == url} for image in images]


class MotorcycleService:
    """Service for rental listings."""

    def __init__(self):
        settings = get_settings()
        self.images_dir = Path(settings.LISTING_IMAGES_DIR)
        self.images_base_url = settings.LISTING_IMAGES_BASE_URL.rstrip("/")

    # =========================================================================
    # Storefront reads
    # =========================================================================

    async def get_motorcycles(
        self,
        filters: MotorcycleFilters | None = None,
        page_size: int = 20,
        cursor: str | None = None,
    ) -> MotorcyclePage:
        """
        Public listing, newest first, keyset-paginated on (created_at, id).
        """
        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        conditions = build_filter_conditions(filters)

        if cursor:
            created_at, last_id = decode_cursor(cursor)
            conditions.append(
                or_(
                    Motorcycle.created_at < created_at,
                    and_(Motorcycle.created_at == created_at, Motorcycle.id < last_id),
                )
            )

        async with get_async_session() as session:
            result = await session.execute(
                select(Motorcycle)
                .where(*conditions)
                .order_by(Motorcycle.created_at.desc(), Motorcycle.id.desc())
                .limit(page_size + 1)
            )
            rows = list(result.unique().scalars().all())

        next_cursor = None
        if len(rows) > page_size:
            rows = rows[:page_size]
            next_cursor = encode_cursor(rows[-1].created_at, rows[-1].id)

        return MotorcyclePage(
            items=[MotorcycleResponse.model_validate(m) for m in rows],
            next_cursor=next_cursor,
        )

    async def get_motorcycle_by_id(self, motorcycle_id: uuid.UUID) -> Motorcycle | None:
        async with get_async_session() as session:
            return await session.get(Motorcycle, motorcycle_id)

    async def get_motorcycle_by_slug(self, slug: str) -> Motorcycle | None:
        async with get_async_session() as session:
            return await session.scalar(select(Motorcycle).where(Motorcycle.slug == slug).limit(1))

    async def get_motorcycles_by_owner(self, owner_id: uuid.UUID) -> list[Motorcycle]:
        async with get_async_session() as session:
            result = await session.execute(
                select(Motorcycle)
                .where(Motorcycle.owner_id == owner_id)
                .order_by(Motorcycle.created_at.desc())
            )
            return list(result.unique().scalars().all())

    async def get_highlighted_motorcycles(self, count: int | None = None) -> list[MotorcycleResponse]:
        """Highlighted available listings for the home page (cached)."""
        count = count or get_settings().HIGHLIGHTED_LISTINGS_COUNT
        cache_key = RedisKeys.highlighted_listings(count)

        cached = await cache_get_json(cache_key)
        if cached is not None:
            return [MotorcycleResponse.model_validate(item) for item in cached]

        async with get_async_session() as session:
            result = await session.execute(
                select(Motorcycle)
                .where(Motorcycle.available.is_(True), Motorcycle.is_highlighted.is_(True))
                .order_by(Motorcycle.created_at.desc())
                .limit(count)
            )
            items = [MotorcycleResponse.model_validate(m) for m in result.unique().scalars().all()]

        await cache_set_json(cache_key, [item.model_dump(mode="json") for item in items])
        return items

    async def get_brands(self) -> list[BrandResponse]:
        """All brands ordered by name (cached)."""
        cache_key = RedisKeys.brands_all()
        cached = await cache_get_json(cache_key)
        if cached is not None:
            return [BrandResponse.model_validate(item) for item in cached]

        async with get_async_session() as session:
            result = await session.execute(select(Brand).order_by(Brand.name))
            brands = [BrandResponse.model_validate(b) for b in result.scalars().all()]

        await cache_set_json(cache_key, [b.model_dump(mode="json") for b in brands])
        return brands

    async def get_makes_by_brand(self, brand_id: uuid.UUID) -> list[MakeResponse]:
        """Makes of a brand ordered by name (cached)."""
        cache_key = RedisKeys.makes_by_brand(str(brand_id))
        cached = await cache_get_json(cache_key)
        if cached is not None:
            return [MakeResponse.model_validate(item) for item in cached]

        async with get_async_session() as session:
            result = await session.execute(
                select(Make).where(Make.brand_id == brand_id).order_by(Make.name)
            )
            makes = [make_to_response(m) for m in result.unique().scalars().all()]

        await cache_set_json(cache_key, [m.model_dump(mode="json") for m in makes])
        return makes

    # =========================================================================
    # Dealer writes
    # =========================================================================

    async def _get_owned(self, session, motorcycle_id: uuid.UUID, actor: User) -> Motorcycle:
        motorcycle = await session.get(Motorcycle, motorcycle_id)
        if motorcycle is None:
            raise HTTPException(status_code=404, detail="Motocicleta no encontrada")
        ensure_owner_or_admin(
            actor, motorcycle.owner_id, "No tiene permisos para modificar esta motocicleta"
        )
        return motorcycle

    async def create_motorcycle(self, form: MotorcycleFormData, owner: User) -> Motorcycle:
        """
        Publish a catalog make as a rental listing owned by `owner`.

        Raises:
            HTTPException 404: Make not found
        """
        async with get_async_session() as session:
            make = await session.get(Make, form.make_id)
            if make is None:
                raise HTTPException(status_code=404, detail="Modelo no encontrado")

            base_slug = create_motorcycle_slug(make.brand.name, make.name)
            taken = await session.execute(
                select(Motorcycle.slug).where(Motorcycle.slug.like(f"{base_slug}%"))
            )
            slug = generate_unique_slug(base_slug, taken.scalars().all())

            colors = form.available_colors
            if colors is None:
                colors = parse_colors(make.available_colors)

            motorcycle = Motorcycle(
                make_id=make.id,
                owner_id=owner.id,
                make=make.brand.name,
                model=make.name,
                slug=slug,
                engine_cc=make.engine_cc,
                power_hp=make.horsepower_hp,
                torque_nm=make.torque_nm,
                category=make.type,
                fuel_capacity_liters=make.fuel_capacity_liters,
                cylinders=make.cylinders,
                weight=make.weight,
                seat_height=make.seat_height,
                top_speed=make.top_speed,
                year_from=make.year_from,
                year_to=make.year_to,
                market_presence=make.market_presence,
                importer=make.importer,
                country_origin=make.country_origin,
                can_import=make.can_import,
                key_features=make.key_features,
                available_colors=[c.strip() for c in colors if c.strip()],
                images=[],
                daily_price=form.daily_price,
                weekly_price=form.weekly_price,
                monthly_price=form.monthly_price,
                available=form.available,
                is_highlighted=False,
            )
            session.add(motorcycle)
            await session.commit()
            await session.refresh(motorcycle)

        await get_cache_service().invalidate_listing_cache()
        logger.info(
            f"Listing created: {motorcycle.slug}",
            extra={"motorcycle_id": motorcycle.id, "user_id": owner.id},
        )
        return motorcycle

    async def update_motorcycle(
        self,
        motorcycle_id: uuid.UUID,
        data: MotorcycleUpdate,
        actor: User,
    ) -> Motorcycle:
        """
        Update prices, availability, colors; highlighting is admin only.

        Raises:
            HTTPException 403: Not owner/admin, or non-admin highlighting
        """
        changes = data.model_dump(exclude_unset=True)
        if "is_highlighted" in changes and not is_admin(actor):
            raise HTTPException(
                status_code=403,
                detail="Solo administradores pueden destacar motocicletas",
            )

        async with get_async_session() as session:
            motorcycle = await self._get_owned(session, motorcycle_id, actor)

            for field, value in changes.items():
                if field == "available_colors":
                    value = [c.strip() for c in (value or []) if c.strip()]
                elif value is None and field in ("daily_price", "available", "is_highlighted"):
                    continue
                setattr(motorcycle, field, value)

            await session.commit()
            await session.refresh(motorcycle)

        await get_cache_service().invalidate_listing_cache()
        logger.info(
            f"Listing updated: {sorted(changes)}",
            extra={"motorcycle_id": motorcycle_id, "user_id": actor.id},
        )
        return motorcycle

    async def delete_motorcycle(self, motorcycle_id: uuid.UUID, actor: User) -> None:
        """
        Delete a listing and its image folder.

        Raises:
            HTTPException 409: The listing has active bookings
        """
        async with get_async_session() as session:
            motorcycle = await self._get_owned(session, motorcycle_id, actor)

            active = await session.scalar(
                select(func.count(Booking.id)).where(
                    Booking.motorcycle_id == motorcycle_id,
                    Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                )
            ) or 0
            if active:
                raise HTTPException(
                    status_code=409,
                    detail=f"No se puede eliminar la motocicleta porque tiene {active} reservas activas.",
                )

            await session.delete(motorcycle)
            await session.commit()

        folder = self.images_dir / str(motorcycle_id)
        if folder.is_dir():
            try:
                shutil.rmtree(folder)
            except OSError as e:
                logger.warning(f"Could not remove listing images {folder}: {e}")

        await get_cache_service().invalidate_listing_cache()
        logger.info("Listing deleted", extra={"motorcycle_id": motorcycle_id, "user_id": actor.id})

    # =========================================================================
    # Images
    # =========================================================================

    def _path_for_url(self, url: str) -> Path | None:
        """Local file behind a listing image URL; None for foreign URLs."""
        prefix = f"{self.images_base_url}/"
        if not url.startswith(prefix):
            return None
        try:
            relative = validate_relative_image_path(url[len(prefix):])
            return resolve_within(self.images_dir, relative)
        except ImageSecurityError as e:
            logger.warning(f"Rejected listing image path '{url}': {e}")
            return None

    async def upload_motorcycle_image(
        self,
        motorcycle_id: uuid.UUID,
        file: UploadFile,
        color: str,
        actor: User,
    ) -> MotorcycleImage:
        """
        Store an image under <id>/<color-slug>/ and append it to the listing.

        The first image of a listing becomes its primary image.
        """
        color = (color or "").strip()
        slug = color_slug(color)
        if not slug:
            raise HTTPException(status_code=400, detail="Debe especificar el color de la imagen")

        content, extension = await read_validated_upload(file)

        async with get_async_session() as session:
            motorcycle = await self._get_owned(session, motorcycle_id, actor)

            filename = f"{motorcycle_id}-{slug}-{int(time.time() * 1000)}.{extension}"
            relative = PurePosixPath(str(motorcycle_id), slug, filename)
            target = self.images_dir / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

            image = MotorcycleImage(
                url=f"{self.images_base_url}/{relative}",
                color=color,
                color_slug=slug,
                is_primary=not motorcycle.images,
            )
            motorcycle.images = [*motorcycle.images, image.model_dump()]
            await session.commit()

        await get_cache_service().invalidate_listing_cache()
        logger.info(
            f"Listing image uploaded: {relative}",
            extra={"motorcycle_id": motorcycle_id, "image_path": str(relative)},
        )
        return image

    async def delete_motorcycle_image(
        self,
        motorcycle_id: uuid.UUID,
        url: str,
        actor: User,
    ) -> list[MotorcycleImage]:
        """
        Remove an image from the listing and from disk.

        When the primary image is removed the first remaining one takes over.
        """
        async with get_async_session() as session:
            motorcycle = await self._get_owned(session, motorcycle_id, actor)

            removed = next((img for img in motorcycle.images if img.get("url") == url), None)
            if removed is None:
                raise HTTPException(status_code=404, detail="Imagen no encontrada")

            remaining = [img for img in motorcycle.images if img.get("url") != url]
            if removed.get("is_primary") and remaining:
                remaining = mark_primary(remaining, remaining[0]["url"])
            motorcycle.images = remaining
            await session.commit()

        path = self._path_for_url(url)
        if path is not None and path.exists():
            path.unlink()

        await get_cache_service().invalidate_listing_cache()
        return [MotorcycleImage.model_validate(img) for img in remaining]

    async def set_primary_image(
        self,
        motorcycle_id: uuid.UUID,
        url: str,
        actor: User,
    ) -> list[MotorcycleImage]:
        async with get_async_session() as session:
            motorcycle = await self._get_owned(session, motorcycle_id, actor)
            if not any(img.get("url") == url for img in motorcycle.images):
                raise HTTPException(status_code=404, detail="Imagen no encontrada")

            motorcycle.images = mark_primary(motorcycle.images, url)
            await session.commit()
            images = motorcycle.images

        await get_cache_service().invalidate_listing_cache()
        return [MotorcycleImage.model_validate(img) for img in images]


# Singleton
_motorcycle_service: MotorcycleService | None = None


def get_motorcycle_service() -> MotorcycleService:
    """Get singleton motorcycle service instance."""
    global _motorcycle_service
    if _motorcycle_service is None:
        _motorcycle_service = MotorcycleService()
    return _motorcycle_service
