import asyncio
import json
import uuid
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from src.core.enums import ActionType
from src.core.exception import AuthenticationError, CounterStoreError
from src.core.logging import AUDIT_LOGGER_NAME
from src.core.middlewares.ratelimit import RateLimiter
from src.core.services.redis_service import WindowCount
from src.modules.auth.schemas import AuthResponse, AuthUser, SessionResponse
from src.modules.moderation.enums import ContentType, RuleAction
from src.modules.moderation.schemas import ContentFlagCreate, ModerationRequest, ModerationRule, ModerationVerdict
from src.modules.moderation.services.classifier import NO_OPINION, Classification


# Force pytest-anyio to use asyncio backend (avoid requiring 'trio')
@pytest.fixture
def anyio_backend():
    return "asyncio"


class ManualClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class InMemoryCounterStore:
    """Fixed-window counters on a manual clock."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.windows: dict[str, tuple[int, datetime]] = {}
        self.cleared: list[str] = []

    async def increment_window(self, key, window):
        seconds = window.total_seconds() if isinstance(window, timedelta) else window
        now = self.clock()
        attempts, expires_at = self.windows.get(key, (0, now))
        if expires_at <= now:
            attempts, expires_at = 0, now + timedelta(seconds=seconds)
        attempts += 1
        self.windows[key] = (attempts, expires_at)
        return WindowCount(
            attempts=attempts,
            window_start=expires_at - timedelta(seconds=seconds),
            expires_at=expires_at,
        )

    async def clear(self, *keys):
        for key in keys:
            self.cleared.append(key)
            self.windows.pop(key, None)

    def attempts(self, key: str) -> int:
        return self.windows.get(key, (0, None))[0]


class UnavailableCounterStore:
    async def increment_window(self, key, window):
        raise CounterStoreError("Redis unavailable: connection refused")

    async def clear(self, *keys):
        raise CounterStoreError("Redis unavailable: connection refused")


class StubClassifier:
    """Returns a fixed classification and counts calls."""

    def __init__(self, result: Classification = NO_OPINION):
        self.result = result
        self.calls = 0

    async def classify(self, text, content_type):
        self.calls += 1
        return self.result

    @classmethod
    def unsafe(cls, category: str, confidence: float) -> "StubClassifier":
        verdict = ModerationVerdict(safe=False, issues=[category], confidence=confidence, flag_type=category)
        return cls(Classification(verdict=verdict, ok=True))


class StubGeminiClient:
    """Stands in for the Gemini client: fixed reply, optional error or delay."""

    def __init__(self, reply: str | None = None, error: Exception | None = None, delay: float = 0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: list[tuple[str, str | None]] = []

    async def generate_content(self, prompt, system_instruction=None, **kwargs):
        self.prompts.append((prompt, system_instruction))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


class StaticRuleSource:
    def __init__(self, rules: list[ModerationRule] | None = None):
        self.rules = rules or []

    async def list_rules(self):
        return list(self.rules)


class RecordingFlagSink:
    def __init__(self, fail: bool = False):
        self.flags: list[ContentFlagCreate] = []
        self.fail = fail

    async def insert(self, flag):
        if self.fail:
            raise RuntimeError("content_flags insert failed")
        self.flags.append(flag)
        return flag


class StubIdentityProvider:
    """Accepts a single email/password pair; sign-up refuses existing emails."""

    def __init__(self, email: str = "viewer@example.com", password: str = "correct-horse"):
        self.accounts = {email: password}
        self.user_ids: dict[str, uuid.UUID] = {email: uuid.uuid4()}

    def _response(self, email: str) -> AuthResponse:
        return AuthResponse(
            user=AuthUser(id=self.user_ids[email], email=email),
            session=SessionResponse(access_token="token", expires_in=3600, expires_at=1_700_000_000),
        )

    async def sign_in(self, email, password):
        if self.accounts.get(email) != password:
            raise AuthenticationError("Invalid login credentials")
        return self._response(email)

    async def sign_up(self, email, password):
        if email in self.accounts:
            raise AuthenticationError("User already registered")
        self.accounts[email] = password
        self.user_ids[email] = uuid.uuid4()
        return self._response(email)


def make_rule(pattern: str, category: str, action: RuleAction, is_regex: bool = False) -> ModerationRule:
    return ModerationRule(pattern=pattern, category=category, action=action, is_regex=is_regex)


def make_request(content: str, content_type: ContentType = ContentType.COMMENT) -> ModerationRequest:
    return ModerationRequest(content=content, content_type=content_type, content_id=str(uuid.uuid4()))


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def counter_store(clock):
    return InMemoryCounterStore(clock)


@pytest.fixture
def moderation_limiter(counter_store, clock):
    return RateLimiter(ActionType.MODERATION, times=30, seconds=300, fail_open=True, store=counter_store, clock=clock)


@pytest.fixture
def auth_limiter(counter_store, clock):
    return RateLimiter(ActionType.AUTH, times=5, seconds=900, fail_open=False, store=counter_store, clock=clock)


@pytest.fixture
async def client():
    from api import app

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def audit_entries(caplog) -> list[dict]:
    """Security audit entries captured by ``caplog``, decoded from their JSON payload."""
    prefix = "[SECURITY_AUDIT] "
    return [
        json.loads(record.getMessage().removeprefix(prefix))
        for record in caplog.records
        if record.name == AUDIT_LOGGER_NAME and record.getMessage().startswith(prefix)
    ]
