import asyncio
import json
import math
from typing import Any, NamedTuple, Protocol

from src.core.config import settings
from src.core.exception import ClassifierError
from src.core.gemini_client import GeminiClient, get_gemini_client
from src.core.logging import get_logger
from src.modules.moderation.constants import (
    CLASSIFIER_MAX_OUTPUT_TOKENS,
    CLASSIFIER_TEMPERATURE,
    build_classifier_prompt,
)
from src.modules.moderation.enums import ContentType
from src.modules.moderation.schemas import ModerationVerdict

logger = get_logger(__name__)


class Classification(NamedTuple):
    verdict: ModerationVerdict
    ok: bool


NO_OPINION = Classification(verdict=ModerationVerdict.no_opinion(), ok=False)


class TextClassifier(Protocol):
    async def classify(self, text: str, content_type: ContentType) -> Classification: ...


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in ``text``."""
    decoder = json.JSONDecoder()
    cleaned = _strip_code_fence(text)
    start = cleaned.find("{")
    while start != -1:
        try:
            obj, _end = decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            start = cleaned.find("{", start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = cleaned.find("{", start + 1)
    return None


def parse_verdict(text: str) -> ModerationVerdict | None:
    """
    Turn a classifier reply into a verdict.

    Missing fields take permissive defaults (``safe`` true, no issues, zero confidence).
    Values of the wrong type make the whole reply unparseable.
    """
    payload = extract_json_object(text)
    if payload is None:
        return None

    safe = payload.get("safe", True)
    if not isinstance(safe, bool):
        return None

    raw_issues = payload.get("issues") or []
    if not isinstance(raw_issues, list):
        return None
    issues = [issue for issue in raw_issues if isinstance(issue, str) and issue]

    raw_confidence = payload.get("confidence") or 0
    if isinstance(raw_confidence, bool) or not isinstance(raw_confidence, int | float):
        return None
    if math.isnan(raw_confidence):
        return None
    confidence = min(max(float(raw_confidence), 0.0), 1.0)

    primary_issue = payload.get("primary_issue")
    if not isinstance(primary_issue, str) or not primary_issue:
        primary_issue = None

    if safe:
        return ModerationVerdict(safe=True, issues=[], confidence=confidence, flag_type=None)

    return ModerationVerdict(
        safe=False,
        issues=issues,
        confidence=confidence,
        flag_type=primary_issue or (issues[0] if issues else None),
    )


class GeminiClassifier:
    """
    AI classifier adapter.

    Any failure (transport error, timeout, empty or unparseable reply) degrades to
    ``NO_OPINION`` instead of raising.
    """

    def __init__(self, client: GeminiClient | None = None, timeout: float | None = None):
        self._client = client
        self.timeout = timeout if timeout is not None else settings.MODERATION_AI_TIMEOUT_SECONDS

    @property
    def client(self) -> GeminiClient:
        if self._client is None:
            self._client = get_gemini_client()
        return self._client

    async def classify(self, text: str, content_type: ContentType) -> Classification:
        system_prompt, user_prompt = build_classifier_prompt(text, content_type)

        try:
            reply = await asyncio.wait_for(
                self.client.generate_content(
                    user_prompt,
                    system_instruction=system_prompt,
                    response_mime_type="application/json",
                    temperature=CLASSIFIER_TEMPERATURE,
                    max_output_tokens=CLASSIFIER_MAX_OUTPUT_TOKENS,
                ),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.warning(f"AI classification timed out after {self.timeout}s")
            return NO_OPINION
        except ClassifierError as e:
            logger.warning(f"AI classification failed: {e}")
            return NO_OPINION
        except Exception as e:
            logger.error(f"Unexpected AI classification error: {e}", exc_info=True)
            return NO_OPINION

        verdict = parse_verdict(reply)
        if verdict is None:
            logger.warning(f"Failed to parse AI response: {reply[:200]}")
            return NO_OPINION

        return Classification(verdict=verdict, ok=True)


class DisabledClassifier:
    """Used when no classifier is configured: always no opinion."""

    async def classify(self, text: str, content_type: ContentType) -> Classification:
        return NO_OPINION


def get_text_classifier() -> TextClassifier:
    if not settings.classifier_configured:
        return DisabledClassifier()
    return GeminiClassifier()
