"""
Redis caching service for the public item listing.

CACHING STRATEGY
================

What we cache:
  - ListApprovedItems responses (paginated, JSON-serialized)
  - Key pattern: "items:list:g={generation}&cat={category}&q={search}&page={page}&size={size}"

Invalidation:
  - Any change that can move an item in or out of the listing (create,
    edit, approve, delete, book, cancel, primary media change) bumps the
    generation counter with INCR
  - Readers take the generation BEFORE querying the database. A request
    that raced a change writes its page under the old generation, which
    nobody reads any more
  - Old generations are never deleted; TTL expires them

The cache is advisory. Bookability is always decided against the database,
so a stale page can at worst show an item that then answers 409 on booking.
Redis failures are logged and treated as a miss.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from barter.core.config import get_settings
from barter.core.logging import get_logger
from barter.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LISTING_PREFIX = "items:list:"
GENERATION_KEY = "items:list-generation"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_listing_key(
    generation: int,
    category_id: Optional[int],
    search: Optional[str],
    page: int,
    page_size: int,
) -> str:
    search_part = (search or "").strip().lower()
    return f"{LISTING_PREFIX}g={generation}&cat={category_id or ''}&q={search_part}&page={page}&size={page_size}"


async def get_cached_listing(key: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_listing(key: str, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def get_listing_generation() -> Optional[int]:
    """
    Current cache generation, or None when the cache is unusable.
    Must be read before the listing query runs.
    """
    client = await get_redis()
    if not client:
        return None

    try:
        value = await client.get(GENERATION_KEY)
    except RedisError as e:
        logger.error("cache_generation_error", error=str(e))
        return None
    return int(value) if value else 0


async def invalidate_listing_cache() -> None:
    """Retire every cached listing page by bumping the generation."""
    client = await get_redis()
    if not client:
        return

    try:
        generation = await client.incr(GENERATION_KEY)
        logger.info("cache_invalidated", generation=generation)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Redis cache statistics for the health endpoint."""
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
    except RedisError as e:
        return {"status": "error", "error": str(e)}
