from typing import Protocol

from src.core.audit import AuditTrail
from src.core.config import settings
from src.core.enums import AuditLevel
from src.core.exception import RateLimitExceededError
from src.core.logging import get_logger
from src.core.middlewares.ratelimit import RateLimiter
from src.modules.moderation.constants import (
    EVIDENCE_AI_ISSUES,
    EVIDENCE_KEYWORD_MATCH,
    FALLBACK_FLAG_TYPE,
)
from src.modules.moderation.enums import RuleAction
from src.modules.moderation.schemas import (
    ContentFlagCreate,
    KeywordMatch,
    ModerationRequest,
    ModerationRule,
    ModerationVerdict,
)
from src.modules.moderation.services.classifier import TextClassifier
from src.modules.moderation.services.keyword_filter import KeywordFilter

logger = get_logger(__name__)

# Returned inside 429 bodies so callers that ignore the status code still publish.
# Callers that trust the body over the status will read rate-limited traffic as safe.
RATE_LIMITED_VERDICT: dict = {
    "safe": True,
    "blocked": False,
    "issues": [],
    "confidence": 0,
    "flag_type": None,
}


class RuleSource(Protocol):
    async def list_rules(self) -> list[ModerationRule]: ...


class FlagSink(Protocol):
    async def insert(self, flag: ContentFlagCreate) -> object: ...


class ModerationService:
    """
    Decides whether user-submitted text may be published.

    Order of evaluation:
        1. rate check for the client
        2. keyword scan; a ``block`` rule ends evaluation without calling the classifier
        3. AI classification; an unsafe verdict at or above the confidence threshold is flagged
        4. a ``flag`` rule surfaces when the classifier produced no flag
        5. otherwise the content is safe

    Flags are append-only: moderating the same content again writes another flag row.
    Flag persistence failures are logged and never change the verdict.
    """

    def __init__(
        self,
        rule_source: RuleSource,
        flag_sink: FlagSink,
        classifier: TextClassifier,
        rate_limiter: RateLimiter,
        keyword_filter: KeywordFilter | None = None,
        confidence_threshold: float | None = None,
        keyword_flag_confidence: float | None = None,
    ):
        self.rule_source = rule_source
        self.flag_sink = flag_sink
        self.classifier = classifier
        self.rate_limiter = rate_limiter
        self.keyword_filter = keyword_filter or KeywordFilter()
        self.confidence_threshold = (
            confidence_threshold if confidence_threshold is not None else settings.MODERATION_CONFIDENCE_THRESHOLD
        )
        self.keyword_flag_confidence = (
            keyword_flag_confidence
            if keyword_flag_confidence is not None
            else settings.MODERATION_KEYWORD_FLAG_CONFIDENCE
        )

    async def _enforce_rate_limit(self, client_ip: str, audit: AuditTrail) -> None:
        decision = await self.rate_limiter.check(client_ip)
        if decision.degraded:
            audit.emit(
                "rate_limit_degraded",
                level=AuditLevel.WARN,
                metadata={"reason": "counter_store_unavailable"},
            )
        if decision.allowed:
            return

        audit.emit(
            "rate_limit_exceeded",
            level=AuditLevel.WARN,
            success=False,
            metadata={"attempts": decision.attempts, "retry_after": decision.retry_after},
        )
        raise RateLimitExceededError(
            "Rate limit exceeded",
            f"Please wait {decision.retry_after} seconds before submitting more content.",
            retry_after=decision.retry_after,
            extra=RATE_LIMITED_VERDICT,
        )

    async def _load_rules(self) -> list[ModerationRule]:
        try:
            return await self.rule_source.list_rules()
        except Exception as e:
            logger.error(f"Failed to load moderation keywords, scanning without rules: {e}", exc_info=True)
            return []

    async def _persist_flag(self, flag: ContentFlagCreate, audit: AuditTrail) -> None:
        try:
            await self.flag_sink.insert(flag)
        except Exception as e:
            logger.error(
                f"Failed to persist content flag for {flag.content_type.value}:{flag.content_id} "
                f"(flag_type={flag.flag_type}, confidence={flag.confidence}): {e}",
                exc_info=True,
            )
            audit.emit(
                "flag_persist_failed",
                level=AuditLevel.ERROR,
                success=False,
                metadata={"content_type": flag.content_type.value, "flag_type": flag.flag_type},
                error=type(e).__name__,
            )

    async def evaluate(self, request: ModerationRequest, audit: AuditTrail) -> ModerationVerdict:
        """Run keyword scan, classification and fallback for already rate-checked content."""
        rules = await self._load_rules()
        keyword_match: KeywordMatch | None = self.keyword_filter.scan(request.content, rules)

        if keyword_match and keyword_match.action == RuleAction.BLOCK:
            await self._persist_flag(
                ContentFlagCreate(
                    content_type=request.content_type,
                    content_id=request.content_id,
                    flag_type=keyword_match.category,
                    confidence=1.0,
                    detected_issues={EVIDENCE_KEYWORD_MATCH: keyword_match.pattern},
                ),
                audit,
            )
            audit.emit(
                "content_blocked",
                level=AuditLevel.WARN,
                metadata={
                    "content_type": request.content_type.value,
                    "category": keyword_match.category,
                    "source": "keyword",
                },
            )
            return ModerationVerdict(
                safe=False,
                blocked=True,
                issues=[keyword_match.category],
                confidence=1.0,
                flag_type=keyword_match.category,
            )

        classification = await self.classifier.classify(request.content, request.content_type)
        ai_verdict = classification.verdict
        if not classification.ok:
            logger.debug("AI classifier gave no opinion")

        if classification.ok and not ai_verdict.safe and ai_verdict.confidence >= self.confidence_threshold:
            flag_type = ai_verdict.flag_type or FALLBACK_FLAG_TYPE
            await self._persist_flag(
                ContentFlagCreate(
                    content_type=request.content_type,
                    content_id=request.content_id,
                    flag_type=flag_type,
                    confidence=ai_verdict.confidence,
                    detected_issues={EVIDENCE_AI_ISSUES: ai_verdict.issues},
                ),
                audit,
            )
            audit.emit(
                "content_flagged",
                metadata={
                    "content_type": request.content_type.value,
                    "category": flag_type,
                    "confidence": ai_verdict.confidence,
                    "source": "ai",
                },
            )
            return ModerationVerdict(
                safe=False,
                blocked=False,
                issues=ai_verdict.issues or [flag_type],
                confidence=ai_verdict.confidence,
                flag_type=flag_type,
            )

        if keyword_match and keyword_match.action == RuleAction.FLAG:
            await self._persist_flag(
                ContentFlagCreate(
                    content_type=request.content_type,
                    content_id=request.content_id,
                    flag_type=keyword_match.category,
                    confidence=self.keyword_flag_confidence,
                    detected_issues={EVIDENCE_KEYWORD_MATCH: keyword_match.pattern},
                ),
                audit,
            )
            audit.emit(
                "content_flagged",
                metadata={
                    "content_type": request.content_type.value,
                    "category": keyword_match.category,
                    "confidence": self.keyword_flag_confidence,
                    "source": "keyword",
                },
            )
            return ModerationVerdict(
                safe=False,
                blocked=False,
                issues=[keyword_match.category],
                confidence=self.keyword_flag_confidence,
                flag_type=keyword_match.category,
            )

        audit.emit(
            "content_approved",
            metadata={"content_type": request.content_type.value, "ai_opinion": classification.ok},
        )
        return ModerationVerdict.no_opinion()

    async def moderate(self, request: ModerationRequest, client_ip: str, audit: AuditTrail) -> ModerationVerdict:
        await self._enforce_rate_limit(client_ip, audit)
        return await self.evaluate(request, audit)
