"""
Redis client singleton for token revocation and catalog caching.

Redis is an accelerator, never the source of truth: cache helpers swallow
connection errors and report a miss so callers fall back to PostgreSQL.
"""

import json
import logging
from functools import lru_cache
from typing import Any

import redis.asyncio as redis
from redis import ConnectionError as RedisConnectionError

from shared.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_redis_client() -> "redis.Redis[str]":
    """
    Get cached Redis client instance.

    Configured with a bounded connection pool, retry on timeout and
    periodic health checks. Uses @lru_cache so a single client is shared.
    """
    settings = get_settings()

    try:
        conn_kwargs: dict[str, Any] = {
            "max_connections": 20,
            "decode_responses": True,
            "retry_on_timeout": True,
            "health_check_interval": 30,
        }

        if settings.REDIS_PASSWORD:
            conn_kwargs["password"] = settings.REDIS_PASSWORD

        client = redis.from_url(settings.REDIS_URL, **conn_kwargs)

        auth_status = "with password" if settings.REDIS_PASSWORD else "NO PASSWORD (insecure)"
        logger.info(f"Redis client initialized: {settings.REDIS_URL} ({auth_status})")
        return client

    except RedisConnectionError as e:
        logger.error(f"Redis connection failed: {e}", exc_info=True)
        raise


async def cache_get_json(key: str) -> Any | None:
    """Read a JSON value from the cache; None on miss or Redis failure."""
    try:
        raw = await get_redis_client().get(key)
    except Exception as e:
        logger.warning(f"Cache read failed for '{key}': {e}")
        return None

    if raw is None:
        return None

    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Discarding malformed cache entry '{key}'")
        return None


async def cache_set_json(key: str, value: Any, ttl: int | None = None) -> bool:
    """Store a JSON-serializable value; returns False when Redis is unavailable."""
    ttl = get_settings().CACHE_TTL_SECONDS if ttl is None else ttl
    if ttl <= 0:
        return False

    try:
        await get_redis_client().setex(key, ttl, json.dumps(value, default=str))
        return True
    except Exception as e:
        logger.warning(f"Cache write failed for '{key}': {e}")
        return False


async def close_redis_client() -> None:
    """Close Redis connection gracefully."""
    try:
        client = get_redis_client()
        await client.aclose()
        logger.info("Redis client closed")
    except Exception as e:
        logger.warning(f"Error closing Redis client: {e}")
