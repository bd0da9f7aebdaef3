"""Redis-backed JSON cache for dashboard payloads.

Every call degrades to a miss when Redis is unreachable; a broken cache must
never fail a request.
"""
from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis
import structlog

from gigvora.core.config import settings

logger = structlog.get_logger()

_redis: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis


def cache_key(namespace: str, *parts: Any) -> str:
    """Build a deterministic cache key, e.g. ``wallet:management:<id>``."""
    return ":".join([namespace, *[str(p) for p in parts]])


async def get_cached(key: str) -> Any | None:
    """Return parsed JSON from cache or None on miss/error."""
    try:
        r = await get_redis()
        raw = await r.get(key)
        return json.loads(raw) if raw else None
    except Exception as exc:
        logger.warning("cache.get_failed", key=key, error=str(exc))
        return None


async def set_cached(key: str, value: Any, ttl: int = 60) -> None:
    """JSON-serialise value and store with TTL (seconds)."""
    try:
        r = await get_redis()
        await r.set(key, json.dumps(value, default=str), ex=ttl)
    except Exception as exc:
        logger.warning("cache.set_failed", key=key, error=str(exc))


async def remember(
    key: str,
    ttl: int,
    loader: Callable[[], Awaitable[Any]],
    *,
    bypass: bool = False,
) -> Any:
    """Return the cached value for ``key`` or compute it with ``loader``.

    ``bypass`` skips the read but still refreshes the stored value.
    """
    if settings.CACHE_ENABLED and not bypass:
        cached = await get_cached(key)
        if cached is not None:
            return cached
    value = await loader()
    if settings.CACHE_ENABLED:
        await set_cached(key, value, ttl)
    return value


async def invalidate(key: str) -> None:
    try:
        r = await get_redis()
        await r.delete(key)
    except Exception as exc:
        logger.warning("cache.invalidate_failed", key=key, error=str(exc))


async def invalidate_prefix(prefix: str) -> None:
    """Delete every key under ``prefix``."""
    try:
        r = await get_redis()
        keys = [k async for k in r.scan_iter(match=f"{prefix}*")]
        if keys:
            await r.delete(*keys)
    except Exception as exc:
        logger.warning("cache.invalidate_failed", prefix=prefix, error=str(exc))
