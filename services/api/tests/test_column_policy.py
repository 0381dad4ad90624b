"""
Tests for the column display policy.

Run with: pytest tests/test_column_policy.py -v
"""
from core.column_policy import ColumnDisplayPolicy, ColumnRule, header_matches_any, truncate, truncate_rule
from settings import Settings


class TestTruncate:

    def test_short_value_unchanged(self):
        assert truncate("abc", 5) == "abc"
        assert truncate("abcde", 5) == "abcde"

    def test_long_value_cut(self):
        assert truncate("abcdefgh", 5) == "abcde..."

    def test_non_positive_limit_disables(self):
        assert truncate("abcdefgh", 0) == "abcdefgh"


class TestHeaderMatching:

    def test_substring_both_ways(self):
        matches = header_matches_any(["Description"])
        assert matches("Item description (long)")
        assert matches("desc")
        assert matches("  DESCRIPTION ")
        assert not matches("Name")

    def test_empty_header_never_matches(self):
        assert not header_matches_any(["notes"])("")
        assert not header_matches_any(["notes"])("   ")

    def test_no_names_matches_nothing(self):
        assert not header_matches_any(["", "  "])("Notes")


class TestPolicy:

    def test_first_matching_rule_wins(self):
        policy = ColumnDisplayPolicy([
            ColumnRule(matches=lambda h: h == "Notes", transform=str.upper),
            truncate_rule(["notes"], 2),
        ])
        assert policy.format_row(["Email", "Notes"], ["a@x.com", "hello"]) == ["a@x.com", "HELLO"]

    def test_no_rules_is_identity(self):
        assert ColumnDisplayPolicy().format_row(["A"], ["value"]) == ["value"]

    def test_cells_beyond_headers_untouched(self):
        policy = ColumnDisplayPolicy([truncate_rule(["A"], 1)])
        assert policy.format_row(["A"], ["xyz", "long value"]) == ["x...", "long value"]

    def test_from_settings(self):
        settings = Settings(truncate_columns="Notes, Comments", truncate_max_length=3)
        policy = ColumnDisplayPolicy.from_settings(settings)
        assert policy.format_row(["Email", "Notes", "Comments"], ["a@x.com", "abcdef", "xy"]) == [
            "a@x.com", "abc...", "xy",
        ]

    def test_from_settings_without_columns(self):
        assert ColumnDisplayPolicy.from_settings(Settings(truncate_columns="")).rules == []
