import json
import logging
from typing import Any

import redis
from flask import current_app

from .movies_functions import to_json_value

logger = logging.getLogger(__name__)

MOVIE_DETAIL_CACHE_PREFIX = "movie_detail"
HOME_CACHE_PREFIX = "home"


def build_cache_key(prefix: str, *parts: Any):
    """
    Build a Redis cache key with a prefix and optional segments.

    Args:
        prefix (str): Root part of the key.
        *parts: Additional segments.

    Returns:
        str: Colon-separated cache key.
    """
    normalized = [prefix]
    for part in parts:
        normalized.append(str(part) if part is not None else "")
    return ":".join(normalized)


class ResponseCache:
    """JSON read-through cache in front of the public read endpoints."""

    def __init__(self, redis_client: redis.Redis | None, ttl_seconds: int = 600):
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self):
        return self.redis_client is not None

    def get(self, key: str):
        """
        Read a cached payload.

        Args:
            key (str): Cache key.

        Returns:
            Any | None: Decoded payload, or None on a miss or a cache failure.
        """
        if not self.enabled:
            return None
        try:
            cached = self.redis_client.get(key)
        except redis.RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if not cached:
            return None
        try:
            return json.loads(cached)
        except json.JSONDecodeError:
            return None

    def set(self, key: str, payload: Any):
        if not self.enabled:
            return
        try:
            self.redis_client.setex(key, self.ttl_seconds, json.dumps(to_json_value(payload)))
        except redis.RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    def remember(self, key: str, loader):
        """
        Return the cached payload for a key, computing and storing it on a miss.

        Args:
            key (str): Cache key.
            loader (Callable[[], Any]): Produces the JSON-ready payload.

        Returns:
            Any: Cached or freshly loaded payload.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("cache hit %s", key)
            return cached
        payload = loader()
        self.set(key, payload)
        return payload

    def invalidate_prefix(self, prefix: str):
        if not self.enabled:
            return
        try:
            for key in self.redis_client.scan_iter(f"{prefix}:*"):
                self.redis_client.delete(key)
        except redis.RedisError as exc:
            logger.warning("Cache invalidation failed for %s: %s", prefix, exc)

    def invalidate_catalog(self):
        """Drop every cached movie detail and home aggregate."""
        self.invalidate_prefix(MOVIE_DETAIL_CACHE_PREFIX)
        self.invalidate_prefix(HOME_CACHE_PREFIX)


def build_redis_client(config: dict):
    """
    Create the Redis client described by the app config.

    Args:
        config (dict): Flask config mapping.

    Returns:
        redis.Redis | None: Client, or None when caching is disabled.
    """
    if not config.get("CACHE_ENABLED", True):
        return None
    return redis.Redis(
        host=config.get("REDIS_HOST", "localhost"),
        port=int(config.get("REDIS_PORT", 6379)),
        db=int(config.get("REDIS_DB", 0)),
    )


def get_cache():
    """Response cache bound to the running application."""
    return current_app.extensions["moviemaster"]["cache"]
