from src.modules.moderation.models.content_flag import ContentFlag
from src.modules.moderation.models.moderation_keyword import ModerationKeyword

__all__ = [
    "ContentFlag",
    "ModerationKeyword",
]
