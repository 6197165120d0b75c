"""
Cache Service Singleton - Accelerator Evaluation Platform
evaluation_platform/services/cache.py

Provides a singleton Redis cache instance and the read-through / invalidate
helpers the services use for scoreboards and rankings.
Gracefully handles Redis unavailability.
"""
import logging
import redis
from typing import Callable, Optional, Type, TypeVar
from pydantic import BaseModel
from evaluation_platform.services.redis_cache import RedisCache
from evaluation_platform.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# TTL constants (in seconds)
TTL_SCOREBOARD = settings.CACHE_TTL_SCOREBOARD
TTL_RANKINGS = settings.CACHE_TTL_RANKINGS

# Singleton instance
_cache: Optional[RedisCache] = None


def get_cache() -> Optional[RedisCache]:
    """
    Get or create Redis cache instance.

    Returns:
        RedisCache instance if Redis is available and caching is enabled,
        None otherwise.

    Note:
        Returns None if Redis is unavailable, allowing the application
        to continue functioning without caching (graceful degradation).
    """
    global _cache
    if not settings.CACHE_ENABLED:
        return None
    if _cache is None:
        try:
            _cache = RedisCache()
            _cache.client.ping()  # Test connection
        except (redis.RedisError, ConnectionError):
            _cache = None
    return _cache


def reset_cache() -> None:
    """
    Reset the cache singleton.

    Useful for testing or when Redis connection needs to be re-established.
    """
    global _cache
    _cache = None


def cached(key: str, model: Type[T], ttl_seconds: int, compute: Callable[[], T]) -> T:
    """
    Return the cached model for key, computing and storing it on a miss.

    The store is skipped when key was invalidated while compute() ran, so a
    projection built from an older snapshot never outlives the invalidation.
    """
    cache = get_cache()
    version = None
    if cache is not None:
        try:
            hit = cache.get(key, model)
            if hit is not None:
                return hit
            version = cache.version(key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
    value = compute()
    if cache is not None and version is not None:
        try:
            if not cache.set_if_unchanged(key, value, ttl_seconds, version):
                logger.debug(f"Cache write skipped for {key}: invalidated during compute")
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")
    return value


def invalidate(*keys: str) -> None:
    """Drop cache entries; a Redis failure is logged, never raised."""
    cache = get_cache()
    if cache is None:
        return
    for key in keys:
        try:
            cache.bump(key)
            cache.delete(key)
        except redis.RedisError as e:
            logger.warning(f"Cache invalidation failed for {key}: {e}")
