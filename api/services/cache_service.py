"""
Centralized cache invalidation service.

Public catalog reads (brand list, makes per brand, highlighted listings) are
cached in Redis; every write that can change them goes through this service.
"""

import logging
from uuid import UUID

from shared.redis_client import get_redis_client
from shared.redis_keys import RedisKeys

logger = logging.getLogger(__name__)


class CacheService:
    """Centralized cache invalidation service."""

    def __init__(self):
        self.redis = get_redis_client()

    async def _delete_keys(self, keys: list[str]) -> int:
        deleted = 0
        for key in keys:
            try:
                deleted += await self.redis.delete(key)
            except Exception as e:
                logger.warning(f"Failed to delete cache key '{key}': {e}")
        return deleted

    async def _delete_pattern(self, pattern: str) -> int:
        deleted = 0
        cursor = 0
        while True:
            try:
                cursor, keys = await self.redis.scan(cursor, match=pattern, count=100)
                if keys:
                    deleted += await self.redis.delete(*keys)
                if cursor == 0:
                    break
            except Exception as e:
                logger.warning(f"Failed to scan/delete pattern '{pattern}': {e}")
                break
        return deleted

    async def invalidate_catalog_cache(self, brand_id: UUID | str | None = None) -> int:
        """
        Invalidate brand and make caches.

        Args:
            brand_id: Only drop this brand's make list; all make lists when None

        Returns:
            Number of cache keys deleted
        """
        if brand_id is not None:
            deleted = await self._delete_keys([
                RedisKeys.brands_all(),
                RedisKeys.makes_by_brand(str(brand_id)),
            ])
        else:
            deleted = await self._delete_pattern(RedisKeys.catalog_pattern())

        if deleted > 0:
            logger.debug(f"Invalidated {deleted} catalog cache keys")
        return deleted

    async def invalidate_listing_cache(self) -> int:
        """Invalidate highlighted listing caches after any listing write."""
        deleted = await self._delete_pattern(RedisKeys.listings_pattern())
        if deleted > 0:
            logger.debug(f"Invalidated {deleted} listing cache keys")
        return deleted

    async def invalidate_all(self) -> int:
        """Invalidate every catalog and listing cache (after bulk imports)."""
        deleted = await self.invalidate_catalog_cache()
        deleted += await self.invalidate_listing_cache()
        if deleted > 0:
            logger.info(f"Invalidated ALL catalog caches: {deleted} keys deleted")
        return deleted


# Singleton instance
_cache_service: CacheService | None = None


def get_cache_service() -> CacheService:
    """
    Get the singleton CacheService instance.

    Returns:
        CacheService instance
    """
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service
