"""
MotoresRD Catalog Seeder.

Creates missing brands and makes from the starter catalog.
"""

import logging

from api.services.catalog_service import derive_numeric_fields
from database.models import Brand, Make
from database.seeds.seeders.base import BaseSeeder
from shared.slug import slugify

logger = logging.getLogger(__name__)


class CatalogSeeder(BaseSeeder):
    """Seeder for brands and their makes."""

    async def seed(self, brands: list[dict], makes: list[dict]) -> dict[str, int]:
        """
        Seed brands, then makes keyed by (brand, slug).

        Returns:
            {"brands": created, "makes": created}
        """
        brand_ids = {}
        for data in brands:
            brand, _ = await self.get_or_create(
                Brand,
                {"slug": slugify(data["name"])},
                {"name": data["name"], "type": data.get("type", "motorcycle")},
                entity_type="Brand",
                code=data["name"],
            )
            brand_ids[data["name"]] = brand.id
        brands_created = self.stats["created"]
        self.log_summary("Brands")

        self.reset_stats()
        for data in makes:
            brand_id = brand_ids.get(data["brand"])
            if brand_id is None:
                logger.warning(f"  Skipping make {data['name']}: unknown brand {data['brand']}")
                continue

            values = {k: v for k, v in data.items() if k not in ("brand", "name")}
            values.update(
                {k: v for k, v in derive_numeric_fields(values).items() if v is not None}
            )
            await self.get_or_create(
                Make,
                {"brand_id": brand_id, "slug": slugify(data["name"])},
                {"name": data["name"], **values},
                entity_type="Make",
                code=f"{data['brand']} {data['name']}",
            )
        self.log_summary("Makes")

        return {"brands": brands_created, "makes": self.stats["created"]}
