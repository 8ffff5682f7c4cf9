"""
Tests for the Redis allocation lock.
"""

import pytest

from rideproxy.app.core.exceptions import AllocationBusyError
from rideproxy.app.services.allocation_lock import RELEASE_SCRIPT, acquire_lock, allocation_lock, release_lock


@pytest.mark.asyncio
async def test_lock_is_exclusive(redis_client):
    token = await acquire_lock(redis_client, "lock:test", ttl_seconds=10, wait_seconds=0)
    
    with pytest.raises(AllocationBusyError) as exc_info:
        await acquire_lock(redis_client, "lock:test", ttl_seconds=10, wait_seconds=0)
    
    assert exc_info.value.status_code == 503
    assert await release_lock(redis_client, "lock:test", token) is True


@pytest.mark.asyncio
async def test_release_requires_holder_token(redis_client):
    await acquire_lock(redis_client, "lock:test", ttl_seconds=10, wait_seconds=0)
    
    assert await release_lock(redis_client, "lock:test", "someone-else") is False
    assert await redis_client.exists("lock:test") == 1


@pytest.mark.asyncio
async def test_context_manager_releases_on_error(redis_client):
    with pytest.raises(RuntimeError):
        async with allocation_lock(redis_client, key="lock:test", ttl_seconds=10, wait_seconds=0):
            assert await redis_client.exists("lock:test") == 1
            raise RuntimeError("boom")
    
    assert await redis_client.exists("lock:test") == 0


@pytest.mark.asyncio
async def test_expired_lock_retaken_survives_old_holder_release(redis_client):
    old_token = await acquire_lock(redis_client, "lock:test", ttl_seconds=10, wait_seconds=0)
    # TTL runs out while the old holder is still working
    await redis_client.delete("lock:test")
    new_token = await acquire_lock(redis_client, "lock:test", ttl_seconds=10, wait_seconds=0)
    
    assert await release_lock(redis_client, "lock:test", old_token) is False
    assert await redis_client.get("lock:test") == new_token
    
    assert await release_lock(redis_client, "lock:test", new_token) is True
    assert await redis_client.exists("lock:test") == 0


@pytest.mark.asyncio
async def test_release_is_a_single_compare_and_delete(redis_client, mocker):
    token = await acquire_lock(redis_client, "lock:test", ttl_seconds=10, wait_seconds=0)
    get = mocker.spy(redis_client, "get")
    delete = mocker.spy(redis_client, "delete")
    
    assert await release_lock(redis_client, "lock:test", token) is True
    
    assert redis_client.scripts == [RELEASE_SCRIPT]
    assert 'redis.call("get", KEYS[1]) == ARGV[1]' in RELEASE_SCRIPT
    get.assert_not_called()
    delete.assert_not_called()
