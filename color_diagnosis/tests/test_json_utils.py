"""Tests for tolerant JSON extraction from model replies."""
import json

import pytest

from color_diagnosis.errors import MalformedResponse
from color_diagnosis.json_utils import (
    extract_json,
    from_any_fence,
    from_brace_span,
    from_json_fence,
)


class TestStrategies:
    """Each recovery strategy on its own."""

    def test_json_fence(self):
        assert from_json_fence('x ```json\n{"a": 1}\n``` y') == '{"a": 1}'

    def test_json_fence_absent(self):
        assert from_json_fence('```\n{"a": 1}\n```') is None

    def test_any_fence(self):
        assert from_any_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_any_fence_absent(self):
        assert from_any_fence('{"a": 1}') is None

    def test_brace_span_is_first_to_last(self):
        text = 'a {"x": 1} b {"y": 2} c'
        assert from_brace_span(text) == '{"x": 1} b {"y": 2}'

    def test_brace_span_absent(self):
        assert from_brace_span("no braces here") is None


class TestExtractJson:
    """Test extract_json."""

    def test_direct_json_unchanged(self):
        raw = '{"personalColor": "Spring Light", "faceShape": "Oval", "bestColors": ["Peach"]}'
        assert extract_json(raw) == json.loads(raw)

    def test_json_fence(self):
        assert extract_json('```json\n{"a":1}\n```') == {"a": 1}

    def test_bare_fence(self):
        assert extract_json('Result:\n```\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose(self):
        text = 'Here is the result:\n{"a":1}\nLet me know if...'
        assert extract_json(text) == {"a": 1}

    def test_json_fence_preferred_over_earlier_bare_fence(self):
        text = '```\nnot json\n```\n```json\n{"b": 2}\n```'
        assert extract_json(text) == {"b": 2}

    def test_nested_objects_via_brace_span(self):
        text = 'Sure! {"personalColorCharacteristics": {"hue": "Warm"}} Done.'
        assert extract_json(text) == {"personalColorCharacteristics": {"hue": "Warm"}}

    def test_multiple_objects_fail(self):
        with pytest.raises(MalformedResponse):
            extract_json('first {"a": 1} then {"b": 2}')

    def test_no_json_raises(self):
        with pytest.raises(MalformedResponse):
            extract_json("This has no JSON at all")

    def test_truncated_json_is_not_repaired(self):
        with pytest.raises(MalformedResponse):
            extract_json('{"personalColor": "Spring Light", "bestColors": ["Peach"')

    def test_error_carries_direct_parse_message(self):
        with pytest.raises(MalformedResponse) as exc_info:
            extract_json("nope")
        assert exc_info.value.parse_error.startswith("Expecting value")
        assert "JSON parse failed" in str(exc_info.value)
        assert exc_info.value.status_code == 500

    def test_non_object_json_rejected(self):
        with pytest.raises(MalformedResponse):
            extract_json("[1, 2, 3]")

    def test_array_containing_object_uses_brace_span(self):
        assert extract_json('[{"a": 1}]') == {"a": 1}
