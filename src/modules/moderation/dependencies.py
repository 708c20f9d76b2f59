from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.middlewares.ratelimit import RateLimiter, get_moderation_rate_limiter
from src.modules.moderation.repositories import ContentFlagRepository, ModerationKeywordRepository
from src.modules.moderation.services import ModerationService, TextClassifier, get_text_classifier


async def get_moderation_service(
    db: AsyncSession = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_moderation_rate_limiter),
    classifier: TextClassifier = Depends(get_text_classifier),
) -> ModerationService:
    return ModerationService(
        rule_source=ModerationKeywordRepository(db),
        flag_sink=ContentFlagRepository(db),
        classifier=classifier,
        rate_limiter=rate_limiter,
    )
