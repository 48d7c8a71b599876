"""
MotoresRD - Catalog Service.

Back-office management of brands and makes (catalog models). Make spec
fields are kept as typed text; their numeric counterparts are recomputed
on every write so the storefront can filter and sort on them.
"""

import logging
import uuid
from typing import Any

from fastapi import HTTPException
from sqlalchemy import func, or_, select, update

from api.models.catalog import (
    BrandCreate,
    BrandUpdate,
    MakeCreate,
    MakeResponse,
    MakeUpdate,
)
from api.services.cache_service import get_cache_service
from api.services.user_service import is_admin, is_dealer_or_admin
from database.connection import get_async_session
from database.models import Brand, Make, Motorcycle, User
from shared.config import get_settings
from shared.parsers import (
    parse_engine_size,
    parse_fuel_capacity,
    parse_horsepower,
    parse_price_range,
    parse_torque,
    parse_weight,
)
from shared.slug import slugify

logger = logging.getLogger(__name__)

MAKE_EDITABLE_FIELDS = (
    "type",
    "engine_size",
    "torque",
    "fuel_capacity",
    "cylinders",
    "market_presence",
    "price_range_new",
    "price_range_used",
    "importer",
    "country_origin",
    "can_import",
    "key_features",
    "year_from",
    "year_to",
    "weight",
    "seat_height",
    "available_colors",
    "top_speed",
    "horsepower",
)


def derive_numeric_fields(values: dict[str, Any]) -> dict[str, Any]:
    """
    Compute the numeric columns of a make from its text fields.

    Missing or unparseable text yields None for the matching column.
    """
    price_new = parse_price_range(values.get("price_range_new"))
    price_used = parse_price_range(values.get("price_range_used"))
    engine = parse_engine_size(values.get("engine_size"))

    return {
        "price_new_min": price_new.min if price_new else None,
        "price_new_max": price_new.max if price_new else None,
        "price_used_min": price_used.min if price_used else None,
        "price_used_max": price_used.max if price_used else None,
        "torque_nm": parse_torque(values.get("torque")),
        "fuel_capacity_liters": parse_fuel_capacity(values.get("fuel_capacity")),
        "engine_cc": int(engine) if engine is not None else None,
        "weight_kg": parse_weight(values.get("weight")),
        "horsepower_hp": parse_horsepower(values.get("horsepower")),
    }


def make_to_response(make: Make, active_listings: int = 0) -> MakeResponse:
    """Flatten a make with its brand and seller into the API schema."""
    seller = make.assigned_seller
    return MakeResponse(
        id=make.id,
        brand_id=make.brand_id,
        brand_name=make.brand.name if make.brand else "",
        brand_slug=make.brand.slug if make.brand else "",
        name=make.name,
        slug=make.slug,
        type=make.type,
        engine_size=make.engine_size,
        torque=make.torque,
        fuel_capacity=make.fuel_capacity,
        cylinders=make.cylinders,
        market_presence=make.market_presence,
        price_range_new=make.price_range_new,
        price_range_used=make.price_range_used,
        importer=make.importer,
        country_origin=make.country_origin,
        can_import=make.can_import,
        key_features=make.key_features,
        year_from=make.year_from,
        year_to=make.year_to,
        weight=make.weight,
        seat_height=make.seat_height,
        available_colors=make.available_colors,
        top_speed=make.top_speed,
        horsepower=make.horsepower,
        is_highlighted=make.is_highlighted,
        assigned_seller_id=make.assigned_seller_id,
        seller_name=(seller.display_name or seller.business_name) if seller else None,
        active_listings=active_listings,
        price_new_min=make.price_new_min,
        price_new_max=make.price_new_max,
        price_used_min=make.price_used_min,
        price_used_max=make.price_used_max,
        torque_nm=make.torque_nm,
        fuel_capacity_liters=make.fuel_capacity_liters,
        engine_cc=make.engine_cc,
        weight_kg=make.weight_kg,
        horsepower_hp=make.horsepower_hp,
        created_at=make.created_at,
        updated_at=make.updated_at,
    )


def _active_listings_count():
    """Correlated count of available listings for Make rows."""
    return (
        select(func.count(Motorcycle.id))
        .where(Motorcycle.make_id == Make.id, Motorcycle.available.is_(True))
        .correlate(Make)
        .scalar_subquery()
    )


class CatalogService:
    """Service for catalog brands and makes."""

    # =========================================================================
    # Brands
    # =========================================================================

    async def list_brands(self) -> list[Brand]:
        async with get_async_session() as session:
            result = await session.execute(select(Brand).order_by(Brand.name))
            return list(result.scalars().all())

    async def get_brand(self, brand_id: uuid.UUID) -> Brand:
        async with get_async_session() as session:
            brand = await session.get(Brand, brand_id)
            if brand is None:
                raise HTTPException(status_code=404, detail="Marca no encontrada")
            return brand

    async def create_brand(self, data: BrandCreate) -> Brand:
        """
        Create a brand.

        Raises:
            HTTPException 409: Name or slug already in use
        """
        slug = slugify(data.slug or data.name)

        async with get_async_session() as session:
            existing = await session.scalar(
                select(Brand.id).where(or_(Brand.slug == slug, func.lower(Brand.name) == data.name.lower()))
            )
            if existing:
                raise HTTPException(status_code=409, detail="Ya existe una marca con este nombre")

            brand = Brand(name=data.name, slug=slug, logo_url=data.logo_url, type=data.type)
            session.add(brand)
            await session.commit()
            await session.refresh(brand)

        await get_cache_service().invalidate_catalog_cache(brand.id)
        logger.info(f"Brand created: {brand.slug}")
        return brand

    async def update_brand(self, brand_id: uuid.UUID, data: BrandUpdate) -> Brand:
        async with get_async_session() as session:
            brand = await session.get(Brand, brand_id)
            if brand is None:
                raise HTTPException(status_code=404, detail="Marca no encontrada")

            changes = data.model_dump(exclude_unset=True)
            if changes.get("name"):
                changes["name"] = changes["name"].strip()
            if "slug" in changes:
                changes["slug"] = slugify(changes["slug"] or changes.get("name") or brand.name)

            if changes.get("slug") and changes["slug"] != brand.slug:
                taken = await session.scalar(
                    select(Brand.id).where(Brand.slug == changes["slug"], Brand.id != brand_id)
                )
                if taken:
                    raise HTTPException(status_code=409, detail="Ya existe una marca con este slug")

            for field, value in changes.items():
                if value is not None or field == "logo_url":
                    setattr(brand, field, value)

            await session.commit()
            await session.refresh(brand)

        await get_cache_service().invalidate_catalog_cache()
        return brand

    async def delete_brand(self, brand_id: uuid.UUID) -> None:
        """
        Delete a brand that has no makes.

        Raises:
            HTTPException 409: The brand still has makes
        """
        async with get_async_session() as session:
            brand = await session.get(Brand, brand_id)
            if brand is None:
                raise HTTPException(status_code=404, detail="Marca no encontrada")

            make_count = await session.scalar(
                select(func.count(Make.id)).where(Make.brand_id == brand_id)
            ) or 0
            if make_count:
                raise HTTPException(
                    status_code=409,
                    detail=f"No se puede eliminar la marca porque tiene {make_count} modelos asociados.",
                )

            await session.delete(brand)
            await session.commit()

        await get_cache_service().invalidate_catalog_cache(brand_id)
        logger.info(f"Brand deleted: {brand_id}")

    # =========================================================================
    # Makes
    # =========================================================================

    async def list_makes(
        self,
        brand_id: uuid.UUID | None = None,
        make_type: str | None = None,
        highlighted: bool | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[MakeResponse], int]:
        """
        List makes with brand, seller and active listing count.

        Ordered by brand name, then make name.
        """
        filters = []
        if brand_id:
            filters.append(Make.brand_id == brand_id)
        if make_type:
            filters.append(Make.type == make_type)
        if highlighted is not None:
            filters.append(Make.is_highlighted.is_(highlighted))
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(Make.name.ilike(pattern), Brand.name.ilike(pattern)))

        async with get_async_session() as session:
            total = await session.scalar(
                select(func.count(Make.id))
                .join(Brand, Make.brand_id == Brand.id)
                .where(*filters)
            ) or 0

            result = await session.execute(
                select(Make, _active_listings_count().label("active_listings"))
                .join(Brand, Make.brand_id == Brand.id)
                .where(*filters)
                .order_by(Brand.name.asc(), Make.name.asc())
                .offset(offset)
                .limit(limit)
            )
            items = [make_to_response(make, count or 0) for make, count in result.unique().all()]

        return items, total

    async def get_make(self, make_id: uuid.UUID) -> MakeResponse:
        async with get_async_session() as session:
            result = await session.execute(
                select(Make, _active_listings_count()).where(Make.id == make_id)
            )
            row = result.unique().first()
            if row is None:
                raise HTTPException(status_code=404, detail="Modelo no encontrado")
            make, count = row
            return make_to_response(make, count or 0)

    async def _resolve_seller(
        self,
        session,
        actor: User,
        requested: uuid.UUID | None,
        current: uuid.UUID | None,
    ) -> uuid.UUID | None:
        """Only admins assign sellers; everyone else keeps the current value."""
        if not is_admin(actor):
            return current
        if requested is None:
            return None

        seller = await session.get(User, requested)
        if seller is None or seller.role != "dealer":
            raise HTTPException(status_code=400, detail="El vendedor asignado debe ser un dealer")
        return seller.id

    async def create_make(self, data: MakeCreate, actor: User) -> MakeResponse:
        """
        Create a make under a brand.

        Raises:
            HTTPException 400: Missing brand or name
            HTTPException 409: A make with this slug already exists for the brand
        """
        if not is_dealer_or_admin(actor):
            raise HTTPException(status_code=403, detail="No tiene permisos para gestionar el catálogo")

        if not data.brand_id or not data.name:
            raise HTTPException(status_code=400, detail="Marca y nombre son requeridos")

        slug = slugify(data.name)

        async with get_async_session() as session:
            if await session.get(Brand, data.brand_id) is None:
                raise HTTPException(status_code=404, detail="Marca no encontrada")

            existing = await session.scalar(
                select(Make.id).where(Make.brand_id == data.brand_id, Make.slug == slug)
            )
            if existing:
                raise HTTPException(
                    status_code=409,
                    detail="Ya existe un modelo con este nombre para esta marca",
                )

            values = data.model_dump(include=set(MAKE_EDITABLE_FIELDS))
            make = Make(
                brand_id=data.brand_id,
                name=data.name,
                slug=slug,
                assigned_seller_id=await self._resolve_seller(
                    session, actor, data.assigned_seller_id, None
                ),
                **values,
                **derive_numeric_fields(values),
            )
            session.add(make)
            await session.commit()
            make_id = make.id

        await get_cache_service().invalidate_catalog_cache(data.brand_id)
        logger.info(f"Make created: {slug}", extra={"make_id": make_id, "user_id": actor.id})
        return await self.get_make(make_id)

    async def update_make(self, make_id: uuid.UUID, data: MakeUpdate, actor: User) -> MakeResponse:
        """
        Rewrite every editable field of a make and recompute derived columns.

        The slug stays stable so image folders keep matching.
        """
        if not is_dealer_or_admin(actor):
            raise HTTPException(status_code=403, detail="No tiene permisos para gestionar el catálogo")

        async with get_async_session() as session:
            make = await session.get(Make, make_id)
            if make is None:
                raise HTTPException(status_code=404, detail="Modelo no encontrado")

            old_brand_id = make.brand_id
            if data.brand_id != make.brand_id:
                if await session.get(Brand, data.brand_id) is None:
                    raise HTTPException(status_code=404, detail="Marca no encontrada")
                clash = await session.scalar(
                    select(Make.id).where(Make.brand_id == data.brand_id, Make.slug == make.slug)
                )
                if clash:
                    raise HTTPException(
                        status_code=409,
                        detail="Ya existe un modelo con este nombre para esta marca",
                    )
                make.brand_id = data.brand_id

            values = data.model_dump(include=set(MAKE_EDITABLE_FIELDS))
            make.name = data.name
            for field, value in {**values, **derive_numeric_fields(values)}.items():
                setattr(make, field, value)
            make.assigned_seller_id = await self._resolve_seller(
                session, actor, data.assigned_seller_id, make.assigned_seller_id
            )

            await session.commit()

        cache = get_cache_service()
        await cache.invalidate_catalog_cache(old_brand_id)
        if data.brand_id != old_brand_id:
            await cache.invalidate_catalog_cache(data.brand_id)

        logger.info(f"Make updated: {make_id}", extra={"make_id": make_id, "user_id": actor.id})
        return await self.get_make(make_id)

    async def toggle_highlight(self, make_id: uuid.UUID) -> bool:
        """
        Flip the highlighted flag of a make.

        Returns:
            The new highlighted state

        Raises:
            HTTPException 409: The brand already has the maximum of highlighted makes
        """
        limit = get_settings().MAX_HIGHLIGHTED_PER_BRAND

        async with get_async_session() as session:
            make = await session.get(Make, make_id)
            if make is None:
                raise HTTPException(status_code=404, detail="Modelo no encontrado")

            new_status = not make.is_highlighted
            if new_status:
                highlighted = await session.scalar(
                    select(func.count(Make.id)).where(
                        Make.brand_id == make.brand_id,
                        Make.is_highlighted.is_(True),
                    )
                ) or 0
                if highlighted >= limit:
                    raise HTTPException(
                        status_code=409,
                        detail=(
                            f"Solo puedes destacar hasta {limit} modelos por marca. "
                            "Desmarca otro modelo primero."
                        ),
                    )

            make.is_highlighted = new_status
            brand_id = make.brand_id
            await session.commit()

        await get_cache_service().invalidate_catalog_cache(brand_id)
        return new_status

    async def delete_make(self, make_id: uuid.UUID) -> str:
        """
        Delete a make without active listings.

        Inactive listings keep their copied specs and lose the make link.
        Image folders are left on disk.

        Returns:
            The deleted make's name

        Raises:
            HTTPException 409: Active listings still reference the make
        """
        async with get_async_session() as session:
            make = await session.get(Make, make_id)
            if make is None:
                raise HTTPException(status_code=404, detail="Modelo no encontrado")

            active = await session.scalar(
                select(func.count(Motorcycle.id)).where(
                    Motorcycle.make_id == make_id,
                    Motorcycle.available.is_(True),
                )
            ) or 0
            if active:
                raise HTTPException(
                    status_code=409,
                    detail=(
                        f"No se puede eliminar este modelo porque tiene {active} motores "
                        "activos asociados. Desactive o elimine los motores primero."
                    ),
                )

            await session.execute(
                update(Motorcycle).where(Motorcycle.make_id == make_id).values(make_id=None)
            )
            name, brand_id = make.name, make.brand_id
            await session.delete(make)
            await session.commit()

        await get_cache_service().invalidate_catalog_cache(brand_id)
        logger.info(f"Make deleted: {name}", extra={"make_id": make_id})
        return name


# Singleton
_catalog_service: CatalogService | None = None


def get_catalog_service() -> CatalogService:
    """Get singleton catalog service instance."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService()
    return _catalog_service
