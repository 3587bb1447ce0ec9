"""
Redis client initialization and connection management.

Redis only backs token revocation; salary data never goes through it.
"""

import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from salary_backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


def get_client():
    """Current module-level client (tests swap it for an in-memory fake)."""
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(await get_client().ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False
