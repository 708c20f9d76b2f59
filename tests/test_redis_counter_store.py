import asyncio
from datetime import timedelta

import pytest
from fakeredis import FakeAsyncRedis

from src.core.enums import ActionType
from src.core.exception import CounterStoreError
from src.core.middlewares.ratelimit import RateLimiter
from src.core.services.redis_service import RedisService


@pytest.fixture
async def redis_store():
    client = FakeAsyncRedis(decode_responses=True)
    service = RedisService(client=client, operation_timeout=1.0)
    try:
        yield service
    finally:
        await client.flushall()
        await client.aclose()


@pytest.mark.anyio
async def test_first_increment_creates_window(redis_store):
    counter = await redis_store.increment_window("rate_limit:auth:1.2.3.4", 900)

    assert counter.attempts == 1
    assert counter.expires_at - counter.window_start == timedelta(seconds=900)
    ttl = await redis_store.client.pttl("rate_limit:auth:1.2.3.4")
    assert 0 < ttl <= 900_000


@pytest.mark.anyio
async def test_later_increments_keep_the_window_ttl(redis_store):
    first = await redis_store.increment_window("k", timedelta(seconds=60))
    second = await redis_store.increment_window("k", timedelta(seconds=60))

    assert second.attempts == 2
    assert second.expires_at <= first.expires_at + timedelta(milliseconds=50)


@pytest.mark.anyio
async def test_concurrent_checks_admit_exactly_the_limit(redis_store):
    limiter = RateLimiter(ActionType.AUTH, times=5, seconds=900, fail_open=False, store=redis_store)

    decisions = await asyncio.gather(*(limiter.check("203.0.113.42") for _ in range(20)))

    assert sum(d.allowed for d in decisions) == 5
    assert all(d.retry_after > 0 for d in decisions if not d.allowed)


@pytest.mark.anyio
async def test_window_expires(redis_store):
    limiter = RateLimiter(ActionType.MODERATION, times=1, seconds=1, fail_open=True, store=redis_store)

    assert (await limiter.check("c")).allowed
    assert not (await limiter.check("c")).allowed
    await asyncio.sleep(1.1)
    assert (await limiter.check("c")).allowed


@pytest.mark.anyio
async def test_clear_deletes_counter(redis_store):
    await redis_store.increment_window("rate_limit:auth:c", 900)
    await redis_store.clear("rate_limit:auth:c")

    assert await redis_store.client.exists("rate_limit:auth:c") == 0
    assert (await redis_store.increment_window("rate_limit:auth:c", 900)).attempts == 1


class _BrokenRedis:
    def pipeline(self, transaction=True):
        raise ConnectionRefusedError("connection refused")

    async def ping(self):
        await asyncio.sleep(5)


@pytest.mark.anyio
async def test_store_errors_become_counter_store_errors():
    service = RedisService(client=_BrokenRedis(), operation_timeout=0.05)

    with pytest.raises(CounterStoreError):
        await service.increment_window("k", 60)
    with pytest.raises(CounterStoreError):
        await service.ping()
