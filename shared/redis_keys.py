"""
Centralized Redis key builder utility.

This module provides a standardized way to generate Redis keys across the
application, ensuring consistency and preventing typos.
"""


class RedisKeys:
    """Centralized Redis key builder for consistent key naming."""

    # Authentication
    @staticmethod
    def jwt_blacklist(jti: str) -> str:
        """JWT token blacklist key."""
        return f"jwt_blacklist:{jti}"

    # Public catalog cache
    @staticmethod
    def brands_all() -> str:
        """All brands ordered by name."""
        return "catalog:brands:all"

    @staticmethod
    def makes_by_brand(brand_id: str) -> str:
        """Makes of a brand ordered by name."""
        return f"catalog:makes:brand:{brand_id}"

    @staticmethod
    def highlighted_listings(count: int) -> str:
        """Highlighted, available rental listings."""
        return f"listings:highlighted:{count}"

    # Pattern helpers for bulk operations
    @staticmethod
    def catalog_pattern() -> str:
        """Pattern to match all catalog cache keys."""
        return "catalog:*"

    @staticmethod
    def listings_pattern() -> str:
        """Pattern to match all listing cache keys."""
        return "listings:*"
