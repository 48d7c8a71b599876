"""
MotoresRD - Run all seeds.

Seeds are split between:
- data/: seed data definitions (constants)
- seeders/: reusable seeding logic

Seeds only create missing rows, so running them on every startup never
overwrites catalog edits made in the back-office.

Run with: python -m database.seeds.run_all_seeds
"""

import asyncio
import logging

from database.connection import get_async_session
from database.seeds.data import catalog
from database.seeds.seeders import CatalogSeeder

logger = logging.getLogger(__name__)


async def seed_catalog() -> dict[str, int] | None:
    """
    Seed the starter brands and makes.

    Returns:
        Created counts, or None if seeding failed
    """
    try:
        async with get_async_session() as session:
            seeder = CatalogSeeder("catalog", session)
            created = await seeder.seed(brands=catalog.BRANDS, makes=catalog.MAKES)
            await session.commit()
            return created
    except Exception as e:
        logger.error(f"Error seeding catalog: {e}", exc_info=True)
        return None


async def run_all_seeds() -> None:
    """Run all seed scripts."""
    logger.info("=" * 70)
    logger.info("MotoresRD Database Seeding")
    logger.info("=" * 70)

    created = await seed_catalog()

    if created is None:
        logger.error("Catalog seed failed. Check logs above for details.")
        return

    if created["brands"] or created["makes"]:
        # Storefront caches may hold the pre-seed brand list
        from api.services.cache_service import get_cache_service

        await get_cache_service().invalidate_catalog_cache()

    logger.info(
        f"Catalog seeded: {created['brands']} brands and {created['makes']} makes created "
        f"({len(catalog.BRANDS)} brands, {len(catalog.MAKES)} makes defined)"
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_all_seeds())
