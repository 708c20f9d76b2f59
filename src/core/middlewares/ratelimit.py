import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from fastapi import Request

from src.core.config import settings
from src.core.enums import ActionType
from src.core.exception import CounterStoreError
from src.core.logging import get_logger
from src.core.services.redis_service import WindowCount, redis_service

logger = get_logger(__name__)


class CounterStore(Protocol):
    """Durable counters with an atomic increment-or-create primitive."""

    async def increment_window(self, key: str, window: int | timedelta) -> WindowCount: ...

    async def clear(self, *keys: str) -> None: ...


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0
    attempts: int = 0
    degraded: bool = False


def get_client_ip(request: Request) -> str:
    """Client identifier: first X-Forwarded-For hop, then X-Real-IP, then the peer address."""
    forwarded: str | None = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip: str | None = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiter:
    """
    Fixed-window rate limiter keyed by (client identifier, action type).

    Every check goes through the store's single atomic increment, so concurrent requests
    from the same client across processes can never both slip under the limit.

    Usage:
        decision = await moderation_rate_limit.check(client_ip)
        if not decision.allowed:
            ...  # respond 429 with decision.retry_after

    ``fail_open`` decides what happens when the store is unreachable: ``True`` lets the request
    through (and logs the degradation), ``False`` raises ``CounterStoreError``.
    """

    def __init__(
        self,
        action_type: ActionType,
        times: int,
        seconds: int,
        fail_open: bool,
        store: CounterStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.action_type: ActionType = action_type
        self.times: int = times
        self.seconds: int = seconds
        self.fail_open: bool = fail_open
        self.store: CounterStore = store if store is not None else redis_service
        self.clock: Callable[[], datetime] = clock or (lambda: datetime.now(tz=UTC))

    def key(self, client_key: str) -> str:
        return f"rate_limit:{self.action_type.value}:{client_key}"

    async def check(self, client_key: str) -> RateLimitDecision:
        try:
            counter = await self.store.increment_window(self.key(client_key), self.seconds)
        except CounterStoreError as e:
            if not self.fail_open:
                logger.error(f"Rate limit store unavailable for {self.action_type.value}, rejecting: {e}")
                raise
            logger.warning(f"Rate limit store unavailable for {self.action_type.value}, allowing: {e}")
            return RateLimitDecision(allowed=True, degraded=True)

        if counter.attempts <= self.times:
            return RateLimitDecision(allowed=True, attempts=counter.attempts)

        remaining = (counter.expires_at - self.clock()).total_seconds()
        retry_after = max(1, math.ceil(remaining))
        logger.debug(
            f"Rate limit exceeded: action={self.action_type.value} attempts={counter.attempts} "
            f"retry_after={retry_after}s"
        )
        return RateLimitDecision(allowed=False, retry_after=retry_after, attempts=counter.attempts)

    async def clear(self, client_key: str) -> None:
        await self.store.clear(self.key(client_key))


def auth_rate_limiter(store: CounterStore | None = None) -> RateLimiter:
    # Guards account security, so an unreachable store rejects the request
    return RateLimiter(
        action_type=ActionType.AUTH,
        times=settings.AUTH_RATE_LIMIT_MAX_ATTEMPTS,
        seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
        fail_open=False,
        store=store,
    )


def moderation_rate_limiter(store: CounterStore | None = None) -> RateLimiter:
    return RateLimiter(
        action_type=ActionType.MODERATION,
        times=settings.MODERATION_RATE_LIMIT_MAX_ATTEMPTS,
        seconds=settings.MODERATION_RATE_LIMIT_WINDOW_SECONDS,
        fail_open=True,
        store=store,
    )


rate_limit_auth = auth_rate_limiter()
rate_limit_moderation = moderation_rate_limiter()


async def get_auth_rate_limiter() -> RateLimiter:
    return rate_limit_auth


async def get_moderation_rate_limiter() -> RateLimiter:
    return rate_limit_moderation
