"""
Tests for core_intelligence.parser.llm_json.

LLM completions are messy; every failure mode must come back as a named
fallback, never an exception.
"""

import pytest

from core_intelligence.parser.llm_json import (
    ParseResult,
    parse_json_array,
    parse_json_object,
    slice_json_array,
    slice_json_object,
)


class TestSlicing:
    def test_object_inside_prose(self) -> None:
        text = 'Sure! Here it is:\n```json\n{"a": {"b": 1}}\n```\nHope that helps.'
        assert slice_json_object(text) == '{"a": {"b": 1}}'

    @pytest.mark.parametrize("text", [None, "", "no braces", "} backwards {"])
    def test_object_missing(self, text) -> None:
        assert slice_json_object(text) is None

    def test_array(self) -> None:
        assert slice_json_array('x [1, [2]] y') == "[1, [2]]"
        assert slice_json_array("]") is None


class TestParseJsonObject:
    def test_success(self) -> None:
        result = parse_json_object('Result: {"phases": [], "extra": 1}', required_keys=["phases"])
        assert result.ok
        assert result.value["extra"] == 1

    @pytest.mark.parametrize(
        "text, reason",
        [
            ("nothing here", "no_json_object"),
            ("{not: valid}", "invalid_json"),
            ('{"phases": []}', "missing_keys:suggestedAssignees"),
        ],
    )
    def test_fallbacks(self, text: str, reason: str) -> None:
        result = parse_json_object(text, required_keys=["phases", "suggestedAssignees"])
        assert not result.ok
        assert result.value is None
        assert result.fallback_reason == reason


class TestParseJsonArray:
    def test_whole_text_array(self) -> None:
        result = parse_json_array('[{"title": "A"}]')
        assert result.ok
        assert result.value == [{"title": "A"}]

    def test_array_inside_prose(self) -> None:
        result = parse_json_array('Here you go: [{"title": "A"}, {"title": "B"}] done')
        assert [item["title"] for item in result.value] == ["A", "B"]

    def test_object_is_not_array(self) -> None:
        assert parse_json_array('{"title": "A"}').fallback_reason == "no_json_array"

    def test_invalid(self) -> None:
        assert parse_json_array("[oops,]").fallback_reason == "invalid_json"

    def test_none(self) -> None:
        assert parse_json_array(None).fallback_reason == "no_json_array"


class TestParseResult:
    def test_constructors(self) -> None:
        assert ParseResult.success(3).ok
        assert ParseResult.fallback("why").ok is False
