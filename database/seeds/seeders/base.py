"""
MotoresRD Base Seeder.

Provides common functionality for all seeders:
- Uniform logging format
- Create-if-missing by natural key (rows edited in the back-office are never overwritten)
- Statistics tracking
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class BaseSeeder:
    """
    Base class for all seeders with common functionality.

    Provides:
    - Consistent logging format
    - Statistics tracking (created, skipped)
    - Generic get-or-create operation
    """

    def __init__(self, scope: str, session: AsyncSession):
        """
        Initialize the seeder.

        Args:
            scope: Name shown in logs (e.g., "catalog")
            session: The async database session
        """
        self.scope = scope
        self.session = session
        self.stats = {"created": 0, "skipped": 0}

    def reset_stats(self) -> None:
        """Reset statistics counters."""
        self.stats = {"created": 0, "skipped": 0}

    def log_created(self, entity_type: str, code: str) -> None:
        self.stats["created"] += 1
        logger.info(f"  + {entity_type} {code}: Created")

    def log_skipped(self, entity_type: str, code: str) -> None:
        self.stats["skipped"] += 1

    def log_summary(self, entity_type: str) -> None:
        logger.info(
            f"  [{self.scope}] {entity_type}: {self.stats['created']} created, "
            f"{self.stats['skipped']} already present"
        )

    async def get_or_create(
        self,
        model_class: type,
        lookup: dict[str, Any],
        data: dict[str, Any],
        entity_type: str = "Entity",
        code: str | None = None,
    ) -> tuple[Any, bool]:
        """
        Return the row matching lookup, creating it from lookup + data when missing.

        Args:
            model_class: The SQLAlchemy model class
            lookup: Natural key columns (e.g., {"slug": "honda"})
            data: Remaining field values for a new row
            entity_type: Name for logging (e.g., "Brand", "Make")
            code: Identifier for logging

        Returns:
            Tuple of (instance, created)
        """
        log_code = code or ", ".join(str(v) for v in lookup.values())

        existing = await self.session.scalar(
            select(model_class).filter_by(**lookup).limit(1)
        )
        if existing is not None:
            self.log_skipped(entity_type, log_code)
            return existing, False

        instance = model_class(**lookup, **data)
        self.session.add(instance)
        await self.session.flush()
        self.log_created(entity_type, log_code)
        return instance, True
