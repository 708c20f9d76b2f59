from src.modules.moderation.repositories.flag_repo import ContentFlagRepository
from src.modules.moderation.repositories.keyword_repo import ModerationKeywordRepository

__all__ = [
    "ContentFlagRepository",
    "ModerationKeywordRepository",
]
