import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.core.config import settings
from src.core.exception import CounterStoreError


@dataclass(frozen=True)
class WindowCount:
    """Result of one atomic increment inside a fixed window."""

    attempts: int
    window_start: datetime
    expires_at: datetime


class RedisService:
    def __init__(self, client: Redis | None = None, operation_timeout: float | None = None):
        self.client = client or Redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        self.operation_timeout = (
            operation_timeout if operation_timeout is not None else settings.REDIS_OPERATION_TIMEOUT_SECONDS
        )

    async def _bounded(self, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.operation_timeout)
        except TimeoutError as e:
            raise CounterStoreError(f"Redis call timed out after {self.operation_timeout}s") from e
        except (RedisError, OSError) as e:
            raise CounterStoreError(f"Redis unavailable: {e}") from e

    async def increment_window(self, key: str, window: int | timedelta) -> WindowCount:
        """
        Atomically increments the counter for ``key`` inside a fixed window.

        The first increment creates the key with the window as its TTL; later increments
        keep that TTL, so the counter disappears exactly when its window ends.

        Args:
            key: Redis key (e.g., rate_limit:auth:203.0.113.42)
            window: Window duration

        Returns:
            WindowCount with the post-increment attempts and the window boundaries
        """
        window_ms = int((window.total_seconds() if isinstance(window, timedelta) else window) * 1000)

        async def _transaction() -> tuple[int, int]:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, px=window_ms, nx=True)
                pipe.incr(key)
                pipe.pttl(key)
                _created, attempts, ttl_ms = await pipe.execute()
            return int(attempts), int(ttl_ms)

        attempts, ttl_ms = await self._bounded(_transaction())
        # A key without TTL (-1) only exists if written outside this service; treat it as a fresh window
        if ttl_ms < 0:
            ttl_ms = window_ms

        now = datetime.now(tz=UTC)
        expires_at = now + timedelta(milliseconds=ttl_ms)
        return WindowCount(
            attempts=attempts,
            window_start=expires_at - timedelta(milliseconds=window_ms),
            expires_at=expires_at,
        )

    async def clear(self, *keys: str) -> None:
        """Delete counter keys."""
        if keys:
            await self._bounded(self.client.delete(*keys))

    async def ping(self) -> bool:
        return bool(await self._bounded(self.client.ping()))

    async def close(self):
        """Close Redis connection."""
        await self.client.aclose()


redis_service = RedisService()


async def get_redis_service() -> RedisService:
    return redis_service
