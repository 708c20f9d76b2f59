import time

from src.modules.moderation.enums import RuleAction
from src.modules.moderation.services import keyword_filter
from src.modules.moderation.services.keyword_filter import (
    KeywordFilter,
    has_nested_quantifiers,
    is_regex_dangerous,
    too_many_groups,
)
from tests.conftest import make_rule


def test_literal_match_is_case_insensitive():
    rules = [make_rule("slur1", "hate_speech", RuleAction.BLOCK)]
    match = KeywordFilter().scan("you are a SLUR1 lol", rules)

    assert match is not None
    assert match.category == "hate_speech"
    assert match.action == RuleAction.BLOCK
    assert match.pattern == "slur1"


def test_first_matching_rule_wins():
    rules = [
        make_rule("cheap", "spam", RuleAction.FLAG),
        make_rule("slur1", "hate_speech", RuleAction.BLOCK),
    ]
    match = KeywordFilter().scan("cheap slur1", rules)

    assert match.category == "spam"
    assert match.action == RuleAction.FLAG


def test_regex_rule_matches_case_insensitively():
    rules = [make_rule(r"buy cheap .*", "spam", RuleAction.FLAG, is_regex=True)]
    match = KeywordFilter().scan("BUY CHEAP watches now", rules)

    assert match is not None
    assert match.category == "spam"


def test_invalid_regex_is_skipped():
    rules = [
        make_rule("([unclosed", "spam", RuleAction.BLOCK, is_regex=True),
        make_rule("watches", "spam", RuleAction.FLAG),
    ]
    match = KeywordFilter().scan("cheap watches", rules)

    assert match.action == RuleAction.FLAG


def test_catastrophic_regex_is_skipped():
    rules = [make_rule("(a+)+$", "spam", RuleAction.BLOCK, is_regex=True)]
    assert KeywordFilter().scan("a" * 5000 + "!", rules) is None


def test_no_rules_or_no_match():
    assert KeywordFilter().scan("hello there", []) is None
    assert KeywordFilter().scan("hello there", [make_rule("spam", "spam", RuleAction.FLAG)]) is None


def test_empty_text_and_empty_pattern_never_match():
    rules = [make_rule("", "spam", RuleAction.BLOCK)]
    assert KeywordFilter().scan("", rules) is None
    assert KeywordFilter().scan("anything", rules) is None


def test_control_characters_are_stripped_before_scanning():
    rules = [make_rule("badword", "harassment", RuleAction.BLOCK)]
    assert KeywordFilter().scan("bad\x00word", rules) is not None


def test_input_is_capped():
    rules = [make_rule("needle", "spam", RuleAction.FLAG)]
    text = "x" * 20 + "needle"
    assert KeywordFilter(max_input_length=10).scan(text, rules) is None
    assert KeywordFilter(max_input_length=100).scan(text, rules) is not None


def test_regex_safety_heuristics():
    assert has_nested_quantifiers("(a+)+")
    assert has_nested_quantifiers("(.*)*")
    assert not has_nested_quantifiers("buy cheap .*")
    assert too_many_groups("(a)" * 101)
    assert not too_many_groups(r"\(" * 200)
    assert is_regex_dangerous("a" * 2001, max_length=2000)
    assert is_regex_dangerous("", max_length=2000)
    assert not is_regex_dangerous(r"\bfree money\b", max_length=2000)


def test_overlapping_alternation_is_cut_off_by_timeout():
    rules = [
        make_rule("(a|aa)*c", "spam", RuleAction.BLOCK, is_regex=True),
        make_rule("aaaa", "spam", RuleAction.FLAG),
    ]
    assert not is_regex_dangerous("(a|aa)*c", max_length=2000)

    started = time.perf_counter()
    match = KeywordFilter(regex_timeout=0.05).scan("a" * 5000, rules)

    assert time.perf_counter() - started < 5
    assert match.action == RuleAction.FLAG


def test_regex_search_timeout_skips_rule(monkeypatch):
    class SlowPattern:
        def search(self, text, timeout=None):
            raise TimeoutError("regex timed out")

    monkeypatch.setattr(keyword_filter, "compile_rule_pattern", lambda expr: SlowPattern())
    rules = [make_rule(r"buy cheap .*", "spam", RuleAction.BLOCK, is_regex=True)]

    assert KeywordFilter(regex_timeout=0.01).scan("buy cheap watches", rules) is None
