"""
Redis client management for ModelHub.

Provides a centralized Redis client instance used to cache the catalog
summary shared by listings and statistics.
"""
from typing import Optional

import redis
from modelhub.core.config import settings

# Global Redis client instance
redis_client = redis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
    decode_responses=True,
    socket_connect_timeout=1,
)


def get_redis_client() -> Optional[redis.Redis]:
    """Get the Redis client instance, or None when caching is disabled."""
    if settings.STATS_CACHE_TTL <= 0:
        return None
    return redis_client
