from src.modules.moderation.services.classifier import (
    NO_OPINION,
    Classification,
    DisabledClassifier,
    GeminiClassifier,
    TextClassifier,
    get_text_classifier,
)
from src.modules.moderation.services.keyword_filter import KeywordFilter
from src.modules.moderation.services.moderation_service import FlagSink, ModerationService, RuleSource

__all__ = [
    "NO_OPINION",
    "Classification",
    "DisabledClassifier",
    "FlagSink",
    "GeminiClassifier",
    "KeywordFilter",
    "ModerationService",
    "RuleSource",
    "TextClassifier",
    "get_text_classifier",
]
