"""Redis-backed cache for directory lookups (users, courses, lessons).

Display names change rarely, so lookups are cached for
``DIRECTORY_CACHE_TTL_SECONDS``.  Redis being down never fails a request:
reads fall through to the directory service and writes are skipped.
"""

import hashlib
import json
import logging
from typing import Any

import redis

from quiz_engine.config import settings

logger = logging.getLogger(__name__)

_pool: redis.ConnectionPool | None = None


def _get_redis() -> redis.Redis:
    """Return a Redis client backed by a shared connection pool."""
    global _pool
    if _pool is None:
        _pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=10,
        )
    return redis.Redis(connection_pool=_pool)


def _make_key(kind: str, resource_id: str) -> str:
    digest = hashlib.sha256(resource_id.encode()).hexdigest()[:16]
    return f"directory:{kind}:{digest}"


def cache_get(kind: str, resource_id: str) -> dict[str, Any] | None:
    """Return the cached lookup, or None on miss / disabled / Redis error."""
    if not settings.DIRECTORY_CACHE_ENABLED:
        return None
    key = _make_key(kind, resource_id)
    try:
        raw = _get_redis().get(key)
    except redis.RedisError as e:
        logger.warning("Directory cache read failed (non-fatal): %s", e)
        return None
    if raw:
        logger.debug("Directory cache HIT: %s", key)
        return json.loads(raw)
    logger.debug("Directory cache MISS: %s", key)
    return None


def cache_set(kind: str, resource_id: str, value: dict[str, Any]) -> None:
    if not settings.DIRECTORY_CACHE_ENABLED:
        return
    key = _make_key(kind, resource_id)
    try:
        _get_redis().setex(key, settings.DIRECTORY_CACHE_TTL_SECONDS, json.dumps(value))
    except redis.RedisError as e:
        logger.warning("Directory cache write failed (non-fatal): %s", e)
