import pytest
from starlette.requests import Request

from src.core.enums import ActionType
from src.core.exception import CounterStoreError
from src.core.middlewares.ratelimit import RateLimiter, get_client_ip
from tests.conftest import UnavailableCounterStore


def _request(headers: dict[str, str], client: tuple[str, int] | None = ("10.0.0.9", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


def test_client_ip_prefers_first_forwarded_hop():
    request = _request({"X-Forwarded-For": "203.0.113.42, 10.0.0.1", "X-Real-IP": "198.51.100.7"})
    assert get_client_ip(request) == "203.0.113.42"


def test_client_ip_falls_back_to_real_ip_then_peer():
    assert get_client_ip(_request({"X-Real-IP": "198.51.100.7"})) == "198.51.100.7"
    assert get_client_ip(_request({})) == "10.0.0.9"
    assert get_client_ip(_request({}, client=None)) == "unknown"


def test_key_layout(moderation_limiter, auth_limiter):
    assert moderation_limiter.key("203.0.113.42") == "rate_limit:moderation:203.0.113.42"
    assert auth_limiter.key("203.0.113.42") == "rate_limit:auth:203.0.113.42"


@pytest.mark.anyio
async def test_allows_limit_then_denies_with_retry_after(auth_limiter, clock):
    for attempt in range(1, 6):
        decision = await auth_limiter.check("203.0.113.42")
        assert decision.allowed
        assert decision.attempts == attempt

    clock.advance(60)
    denied = await auth_limiter.check("203.0.113.42")
    assert not denied.allowed
    assert denied.retry_after == 840


@pytest.mark.anyio
async def test_clients_and_actions_are_counted_separately(counter_store, clock):
    auth = RateLimiter(ActionType.AUTH, times=1, seconds=60, fail_open=False, store=counter_store, clock=clock)
    moderation = RateLimiter(ActionType.MODERATION, times=1, seconds=60, fail_open=True, store=counter_store, clock=clock)

    assert (await auth.check("a")).allowed
    assert (await auth.check("b")).allowed
    assert (await moderation.check("a")).allowed
    assert not (await auth.check("a")).allowed


@pytest.mark.anyio
async def test_window_expiry_resets_counter(moderation_limiter, clock):
    for _ in range(30):
        assert (await moderation_limiter.check("client")).allowed
    assert not (await moderation_limiter.check("client")).allowed

    clock.advance(300)
    decision = await moderation_limiter.check("client")
    assert decision.allowed
    assert decision.attempts == 1


@pytest.mark.anyio
async def test_retry_after_is_at_least_one_second(counter_store, clock):
    limiter = RateLimiter(ActionType.AUTH, times=1, seconds=10, fail_open=False, store=counter_store, clock=clock)
    await limiter.check("client")
    clock.advance(9.9)
    decision = await limiter.check("client")
    assert not decision.allowed
    assert decision.retry_after == 1


@pytest.mark.anyio
async def test_clear_resets_budget(auth_limiter, counter_store):
    for _ in range(5):
        await auth_limiter.check("client")
    await auth_limiter.clear("client")

    assert counter_store.cleared == ["rate_limit:auth:client"]
    assert (await auth_limiter.check("client")).attempts == 1


@pytest.mark.anyio
async def test_fail_open_allows_when_store_is_down():
    limiter = RateLimiter(ActionType.MODERATION, times=30, seconds=300, fail_open=True, store=UnavailableCounterStore())
    decision = await limiter.check("client")
    assert decision.allowed
    assert decision.degraded


@pytest.mark.anyio
async def test_fail_closed_raises_when_store_is_down():
    limiter = RateLimiter(ActionType.AUTH, times=5, seconds=900, fail_open=False, store=UnavailableCounterStore())
    with pytest.raises(CounterStoreError):
        await limiter.check("client")
