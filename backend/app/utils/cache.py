"""Redis client and response caching.

The same client backs the trusted-device store (see app.auth.trusted_device)
and the small read cache used for slow-changing lists such as products.
"""

import functools
import hashlib
import json
import logging
from datetime import date, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create Redis client connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )
    return _redis_client


async def close_redis():
    """Close Redis connection (call on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def cache_key(**kwargs) -> str:
    """Deterministic hash of simple keyword arguments."""
    if not kwargs:
        return "default"
    key_data = json.dumps(kwargs, sort_keys=True)
    return hashlib.md5(key_data.encode()).hexdigest()


def cached(ttl: int = 300, prefix: str = "cache"):
    """Cache an async function's JSON-serialisable result in Redis.

    Only simple keyword arguments take part in the key; injected objects
    (sessions, requests) are skipped. The wrapped function must return
    plain JSON data (dicts/lists), so a hit and a miss look the same to
    the caller.

    Cache keys: {prefix}:{function_name}:{kwargs_hash}
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            cache_kwargs = {}
            for k, v in kwargs.items():
                if k.startswith("_"):
                    continue
                if isinstance(v, (int, str, bool, float, type(None))):
                    cache_kwargs[k] = v
                elif isinstance(v, (date, datetime)):
                    cache_kwargs[k] = v.isoformat()
            key = f"{prefix}:{func.__name__}:{cache_key(**cache_kwargs)}"

            try:
                redis_client = await get_redis()
                cached_value = await redis_client.get(key)
                if cached_value:
                    logger.debug(f"Cache HIT: {key}")
                    return json.loads(cached_value)
            except redis.RedisError as e:
                logger.warning(f"Redis error (falling back to uncached): {e}")
                return await func(*args, **kwargs)

            logger.debug(f"Cache MISS: {key}")
            result = await func(*args, **kwargs)

            try:
                await redis_client.setex(key, ttl, json.dumps(result, default=str))
            except redis.RedisError as e:
                logger.warning(f"Failed to store cache entry {key}: {e}")

            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Invalidate cache keys matching a pattern, e.g. "products:*"."""
    try:
        redis_client = await get_redis()
        keys = []
        async for key in redis_client.scan_iter(match=pattern):
            keys.append(key)

        if keys:
            await redis_client.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching {pattern}")
    except redis.RedisError as e:
        logger.warning(f"Failed to invalidate cache: {e}")
