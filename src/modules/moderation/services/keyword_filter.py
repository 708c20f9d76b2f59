import re
from collections.abc import Iterable
from functools import lru_cache

import regex

from src.core.config import settings
from src.core.logging import get_logger
from src.core.utils.validation import sanitize_string
from src.modules.moderation.schemas import KeywordMatch, ModerationRule

logger = get_logger(__name__)

# Heuristic for nested quantifiers like (.*)+ or (a+)* that backtrack catastrophically
NESTED_QUANTIFIER_PATTERN = re.compile(r"\((?:[^)(]|\([^)(]*\))*[+*][^)]*\)\s*[+*{]")
MAX_REGEX_GROUPS = 100


def has_nested_quantifiers(expr: str) -> bool:
    return bool(NESTED_QUANTIFIER_PATTERN.search(expr))


def too_many_groups(expr: str, limit: int = MAX_REGEX_GROUPS) -> bool:
    return expr.count("(") - expr.count("\\(") > limit


def is_regex_dangerous(expr: str, max_length: int) -> bool:
    if not expr or len(expr) > max_length:
        return True
    return has_nested_quantifiers(expr) or too_many_groups(expr)


@lru_cache(maxsize=1024)
def compile_rule_pattern(expr: str) -> regex.Pattern:
    """Compile a regex rule case-insensitively. Raises ``regex.error`` for invalid patterns."""
    return regex.compile(expr, regex.IGNORECASE)


class KeywordFilter:
    """
    First-match-wins keyword scanner.

    Rules are evaluated in the order given. Literal rules match case-insensitive substrings,
    regex rules are searched case-insensitively against the sanitized (not lower-cased) text.
    Invalid or unsafe regex rules are skipped, and so is any regex search that runs past
    ``regex_timeout`` seconds. Input is capped before any regex runs.
    """

    def __init__(
        self,
        max_input_length: int | None = None,
        max_pattern_length: int | None = None,
        regex_timeout: float | None = None,
    ):
        self.max_input_length = max_input_length or settings.MODERATION_MAX_CONTENT_LENGTH
        self.max_pattern_length = max_pattern_length or settings.MODERATION_REGEX_MAX_PATTERN_LENGTH
        self.regex_timeout = regex_timeout or settings.MODERATION_REGEX_TIMEOUT_SECONDS

    def _regex_matches(self, rule: ModerationRule, text: str) -> bool:
        if is_regex_dangerous(rule.pattern, self.max_pattern_length):
            logger.warning(f"Skipped unsafe regex rule in category {rule.category}")
            return False
        try:
            pattern = compile_rule_pattern(rule.pattern)
        except regex.error as e:
            logger.debug(f"Skipped invalid regex rule in category {rule.category}: {e}")
            return False
        try:
            return pattern.search(text, timeout=self.regex_timeout) is not None
        except TimeoutError:
            logger.warning(
                f"Skipped regex rule in category {rule.category}: search exceeded {self.regex_timeout}s"
            )
            return False

    def scan(self, text: str, rules: Iterable[ModerationRule]) -> KeywordMatch | None:
        scan_text = sanitize_string(text or "")[: self.max_input_length]
        if not scan_text:
            return None

        lowered = scan_text.lower()
        for rule in rules:
            if rule.is_regex:
                matched = self._regex_matches(rule, scan_text)
            else:
                matched = bool(rule.pattern) and rule.pattern.lower() in lowered

            if matched:
                return KeywordMatch(pattern=rule.pattern, category=rule.category, action=rule.action)

        return None
