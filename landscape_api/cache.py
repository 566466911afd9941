"""
Redis caching utilities for calendar availability listings
Fail-open: without REDIS_URL, or on any Redis error, every call is a no-op miss
"""
import json
import logging
from typing import Any, Optional

import redis

from .config import AVAILABILITY_CACHE_TTL, REDIS_URL

logger = logging.getLogger(__name__)

AVAILABILITY_KEY_PREFIX = "calendar_availability"

# Redis connection
redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Get or create the Redis client; None when Redis is not configured"""
    global redis_client

    if redis_client is None and REDIS_URL:
        # Mask password in URL for logging
        if "@" in REDIS_URL:
            url_parts = REDIS_URL.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection: {masked_url}")

        redis_client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
            max_connections=20,
        )

    return redis_client


class Cache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self):
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client"""
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 60) -> bool:
        """Set value in cache with TTL"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'calendar_availability:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0


# Global cache instance
cache = Cache()


def build_availability_key(start: Optional[str] = None, end: Optional[str] = None) -> str:
    return f"{AVAILABILITY_KEY_PREFIX}:{start or 'all'}:{end or 'all'}"


def get_availability_cached(start: Optional[str] = None, end: Optional[str] = None):
    return cache.get(build_availability_key(start, end))


def set_availability_cached(
    availability: list, start: Optional[str] = None, end: Optional[str] = None
) -> bool:
    return cache.set(build_availability_key(start, end), availability, AVAILABILITY_CACHE_TTL)


def invalidate_availability_cache() -> int:
    """Drop every cached listing after a booking or calendar change"""
    return cache.delete_pattern(f"{AVAILABILITY_KEY_PREFIX}:*")
