"""
Redis connection used for the proxy allocation lock.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from rideproxy.app.core.config import settings

logger = logging.getLogger("rideproxy.redis")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency returning the shared Redis client."""
    return redis_client


async def ping_redis() -> bool:
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    await redis_client.aclose()
