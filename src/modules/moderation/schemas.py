from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.config import settings
from src.core.schema import BaseSchema, ErrorResponse, RateLimitedResponse, RequestSchema
from src.core.utils.validation import has_range_length, is_uuid
from src.modules.moderation.enums import ContentType, FlagStatus, RuleAction


class ModerationRequest(RequestSchema):
    content: str
    content_type: ContentType
    content_id: str

    @field_validator("content")
    def validate_content(cls, v):
        if not has_range_length(v, 1, settings.MODERATION_MAX_CONTENT_LENGTH):
            raise ValueError("Content must be between 1 and the maximum allowed characters")
        return v

    @field_validator("content_id")
    def validate_content_id(cls, v):
        if not is_uuid(v):
            raise ValueError("content_id must be a UUID")
        return v


class ModerationRule(BaseModel):
    """A keyword rule. Rules are evaluated in the order they are listed."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    category: str
    action: RuleAction
    is_regex: bool = False


class KeywordMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    pattern: str
    category: str
    action: RuleAction


class ModerationVerdict(BaseSchema):
    safe: bool = True
    issues: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    flag_type: str | None = None
    blocked: bool = False

    @model_validator(mode="after")
    def check_consistency(self):
        if self.blocked and self.safe:
            raise ValueError("A blocked verdict cannot be safe")
        if self.safe and self.issues:
            raise ValueError("A safe verdict cannot carry issues")
        return self

    @classmethod
    def no_opinion(cls) -> "ModerationVerdict":
        return cls(safe=True, issues=[], confidence=0.0, flag_type=None, blocked=False)


class ContentFlagCreate(BaseModel):
    content_type: ContentType
    content_id: str
    flag_type: str
    confidence: float = Field(ge=0.0, le=1.0)
    detected_issues: dict[str, Any] = Field(default_factory=dict)
    status: FlagStatus = FlagStatus.PENDING


class ModerationRateLimitedResponse(RateLimitedResponse):
    safe: bool = True
    blocked: bool = False
    issues: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    flag_type: str | None = None


class ModerationErrorResponse(ErrorResponse):
    safe: bool = True
