from enum import Enum as PyEnum


class ContentType(str, PyEnum):
    VIDEO = "video"
    COMMENT = "comment"


class RuleAction(str, PyEnum):
    BLOCK = "block"
    FLAG = "flag"


class FlagStatus(str, PyEnum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


class ModerationCategory(str, PyEnum):
    HATE_SPEECH = "hate_speech"
    HARASSMENT = "harassment"
    SPAM = "spam"
    VIOLENCE = "violence"
    ADULT_CONTENT = "adult_content"
    MISINFORMATION = "misinformation"
