"""
Redis caching service for listing search results.

CACHING STRATEGY
================

What we cache:
  - Listing search responses (paginated, JSON-serialized)
  - Cache key pattern: "listings:search:<sorted query parameters>"

Invalidation strategy:
  - On listing create/update/delete: the result set itself changes
  - On booking/cancellation: date-filtered searches change availability
  - TTL-based expiry as safety net (5 minutes)

  All search keys share the "listings:search:" prefix, so invalidation is a
  SCAN over that prefix.

Why NOT cache listing detail or booked dates:
  - The booking path must never decide availability from a cached read;
    only the reservation store's commit does that
"""

import json
from typing import Optional

import redis.asyncio as redis

from stayhub.core.config import get_settings
from stayhub.core.logging import get_logger
from stayhub.core.metrics import record_cache_operation
from stayhub.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()

SEARCH_KEY_PREFIX = "listings:search:"


def make_search_key(params: dict) -> str:
    parts = [f"{name}={params[name]}" for name in sorted(params) if params[name] is not None]
    return SEARCH_KEY_PREFIX + "&".join(parts)


async def get_cached_search(params: dict) -> Optional[dict]:
    """Retrieve a cached listing search response."""
    client = await get_redis()
    if not client:
        return None

    key = make_search_key(params)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_search(params: dict, data: dict) -> None:
    """Cache a listing search response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = make_search_key(params)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_listing_cache() -> None:
    """Invalidate all cached listing searches."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=SEARCH_KEY_PREFIX + "*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
