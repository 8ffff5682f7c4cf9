"""
Allocation lock using Redis.

Serializes the read-allocate-write sequence of ride creation across
workers, so two concurrent requests cannot pick conflicting proxy numbers
from the same snapshot.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from rideproxy.app.core.config import settings
from rideproxy.app.core.exceptions import AllocationBusyError

logger = logging.getLogger("rideproxy.allocation_lock")

# Poll interval while waiting for the lock
LOCK_RETRY_INTERVAL_SECONDS = 0.05

# Atomic compare-and-delete: removes the key only while it holds the caller's token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


async def acquire_lock(redis, key: str, ttl_seconds: int, wait_seconds: float) -> str:
    """
    Acquire an exclusive lock.
    
    Args:
        redis: Async Redis client
        key: Lock key
        ttl_seconds: Lock expiry, bounds how long a crashed holder blocks others
        wait_seconds: How long to keep retrying
    
    Returns:
        Holder token required to release the lock
    
    Raises:
        AllocationBusyError: If the lock is still held after wait_seconds
    """
    token = uuid.uuid4().hex
    deadline = time.monotonic() + wait_seconds
    
    while True:
        if await redis.set(key, token, nx=True, ex=ttl_seconds):
            return token
        if time.monotonic() >= deadline:
            logger.warning("Allocation lock %s still held after %.2fs", key, wait_seconds)
            raise AllocationBusyError(wait_seconds)
        await asyncio.sleep(LOCK_RETRY_INTERVAL_SECONDS)


async def release_lock(redis, key: str, token: str) -> bool:
    """
    Release a lock held with the given token.
    
    Returns:
        True if released, False if the lock expired or belongs to another holder
    """
    release = redis.register_script(RELEASE_SCRIPT)
    if not await release(keys=[key], args=[token]):
        logger.warning("Allocation lock %s no longer held by this request", key)
        return False
    return True


@asynccontextmanager
async def allocation_lock(
    redis,
    key: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
    wait_seconds: Optional[float] = None
):
    """Hold the proxy allocation lock for the duration of the block."""
    key = key or settings.allocation_lock_key
    ttl_seconds = ttl_seconds or settings.allocation_lock_ttl_seconds
    wait_seconds = settings.allocation_lock_wait_seconds if wait_seconds is None else wait_seconds
    
    token = await acquire_lock(redis, key, ttl_seconds, wait_seconds)
    try:
        yield token
    finally:
        await release_lock(redis, key, token)
