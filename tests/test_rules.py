"""Tests for bulk selection rules."""

from __future__ import annotations

import time

import pytest

from tidyup.wizard.rules import (
    GlobPattern,
    InvalidRuleError,
    OlderThan,
    RuleKind,
    SizeAtLeast,
    parse_rule,
    parse_size,
)


class TestParseSize:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("512", 512),
            ("100B", 100),
            ("1K", 1024),
            ("2 kb", 2048),
            ("1.5M", int(1.5 * 1024**2)),
            ("10 MB", 10 * 1024**2),
            ("1g", 1024**3),
            ("2TB", 2 * 1024**4),
            ("  3 GB  ", 3 * 1024**3),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_size(text) == expected

    @pytest.mark.parametrize("text", ["", "MB", "-5M", "10 PB", "1.2.3K", "ten"])
    def test_invalid(self, text):
        with pytest.raises(InvalidRuleError):
            parse_size(text)


class TestParseRule:
    def test_size_rule(self):
        assert parse_rule(RuleKind.SIZE, "1M") == SizeAtLeast(1024**2)

    def test_accepts_plain_strings_for_kind(self):
        assert parse_rule("age", "30") == OlderThan(30)

    @pytest.mark.parametrize("text", ["", "0", "-3", "1.5", "abc"])
    def test_age_rejects_non_positive_integers(self, text):
        with pytest.raises(InvalidRuleError):
            parse_rule(RuleKind.AGE, text)

    def test_glob_rule(self):
        assert parse_rule(RuleKind.GLOB, " *.log ") == GlobPattern("*.log")

    @pytest.mark.parametrize("text", ["", "   ", "[abc", "*.[!x", "file[]"])
    def test_glob_rejects_empty_and_unterminated(self, text):
        with pytest.raises(InvalidRuleError):
            parse_rule(RuleKind.GLOB, text)

    @pytest.mark.parametrize("text", ["[!a]*", "[]]x", "*.[ch]", "?.txt"])
    def test_glob_accepts_bracket_forms(self, text):
        assert parse_rule(RuleKind.GLOB, text).pattern == text

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            parse_rule("colour", "red")


class TestMatching:
    def test_size_threshold_inclusive(self, entry):
        rule = SizeAtLeast(100)
        assert rule.matches(entry(size=100), time.time())
        assert not rule.matches(entry(size=99), time.time())

    def test_older_than_strict(self, entry):
        now = time.time()
        rule = OlderThan(7)
        assert rule.matches(entry(age_days=8), now)
        assert not rule.matches(entry(age_days=6), now)

    def test_glob_is_case_sensitive_on_basename(self, entry):
        rule = GlobPattern("*.log")
        assert rule.matches(entry(name="sub/app.log"), 0)
        assert not rule.matches(entry(name="APP.LOG"), 0)
