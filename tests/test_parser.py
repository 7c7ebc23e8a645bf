"""Tests for balance_checker.parser."""

import pytest

from balance_checker.parser import parse_tokens


class TestParseTokens:
    def test_mixed_lines_and_commas(self):
        parsed = parse_tokens("tok1\ntok2,tok2\n ,tok3")
        assert parsed.tokens == ["tok1", "tok2", "tok3"]
        assert parsed.duplicates == ["tok2"]

    def test_first_seen_order(self):
        parsed = parse_tokens("c,b\na\nb,c")
        assert parsed.tokens == ["c", "b", "a"]
        assert parsed.duplicates == ["b", "c"]

    def test_duplicate_across_lines_listed_once(self):
        parsed = parse_tokens("sk-x\nsk-x\nsk-x, sk-x")
        assert parsed.tokens == ["sk-x"]
        assert parsed.duplicates == ["sk-x"]

    def test_fragments_trimmed(self):
        parsed = parse_tokens("  sk-a  ,\tsk-b \r\nsk-c\r\n")
        assert parsed.tokens == ["sk-a", "sk-b", "sk-c"]
        assert parsed.duplicates == []

    @pytest.mark.parametrize("raw", ["", "   ", "\n\n", " , ,\n,", "\t\r\n"])
    def test_blank_input_is_empty(self, raw):
        parsed = parse_tokens(raw)
        assert parsed.tokens == []
        assert not parsed

    def test_distinct_count_matches_unique_fragments(self):
        raw = "a,b, c\n\nb\n d ,a,,e\nc"
        fragments = [f.strip() for line in raw.split("\n") for f in line.split(",")]
        expected = {f for f in fragments if f}
        parsed = parse_tokens(raw)
        assert len(parsed.tokens) == len(expected)
        assert set(parsed.tokens) == expected

    def test_inner_whitespace_kept(self):
        parsed = parse_tokens("sk a")
        assert parsed.tokens == ["sk a"]
