"""Moderation constants and classifier prompts.

USAGE:
    from src.modules.moderation.constants import build_classifier_prompt

    system_prompt, user_prompt = build_classifier_prompt(text, ContentType.COMMENT)
"""

from src.modules.moderation.enums import ContentType, ModerationCategory

# =============================================================================
# CATEGORY TAXONOMY
# =============================================================================

CATEGORY_DESCRIPTIONS: dict[ModerationCategory, str] = {
    ModerationCategory.HATE_SPEECH: "Hate speech, slurs, discrimination",
    ModerationCategory.HARASSMENT: "Bullying, threats, personal attacks",
    ModerationCategory.SPAM: "Promotional spam, repetitive content, scams",
    ModerationCategory.VIOLENCE: "Graphic violence, threats of harm",
    ModerationCategory.ADULT_CONTENT: "Sexually explicit content, nudity",
    ModerationCategory.MISINFORMATION: "Dangerous false claims",
}

FALLBACK_FLAG_TYPE = "other"

# Flag evidence payload keys
EVIDENCE_KEYWORD_MATCH = "keyword_match"
EVIDENCE_AI_ISSUES = "ai_issues"


# =============================================================================
# CLASSIFIER PROMPT
# =============================================================================

CLASSIFIER_TEMPERATURE = 0.1
CLASSIFIER_MAX_OUTPUT_TOKENS = 200

RESPONSE_FORMAT: str = (
    '{"safe": boolean, "issues": ["category1", "category2"], '
    '"confidence": 0.0-1.0, "primary_issue": "category or null"}'
)


def _format_categories() -> str:
    return "\n".join(f"- {category.value}: {description}" for category, description in CATEGORY_DESCRIPTIONS.items())


def build_system_prompt(content_type: ContentType) -> str:
    """Fixed instruction prompt enumerating the category taxonomy."""
    return (
        f"You are a content moderation AI. Analyze the following {content_type.value} content "
        "for policy violations.\n\n"
        f"Categories to check:\n{_format_categories()}\n\n"
        "Respond ONLY with a JSON object (no markdown, no code blocks):\n"
        f"{RESPONSE_FORMAT}\n\n"
        "Be conservative - only flag content that clearly violates policies."
    )


def build_classifier_prompt(text: str, content_type: ContentType) -> tuple[str, str]:
    """Return the (system instruction, user content) pair sent to the classifier."""
    user_prompt = f'Analyze this {content_type.value} content:\n\n"{text}"'
    return build_system_prompt(content_type), user_prompt
