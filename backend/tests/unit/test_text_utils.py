"""
Unit tests for JSON recovery from model responses.

Covers the direct parse of fenced or prose-wrapped JSON, the brace scan
that salvages valid objects from a partly malformed response, and the
value coercion helpers used by the normalizers.
"""

import pytest

from studykit.enums import RecoveryStrategy
from studykit.errors import ExtractionFailure
from studykit.pipelines.utils.text_utils import (
    as_object_list,
    coerce_number,
    coerce_text,
    extract_json_from_response,
    first_present,
    iter_balanced_objects,
    outermost_json_slice,
    recover_json,
    strip_code_fences,
)


# =============================================================================
# Direct Parse
# =============================================================================


class TestDirectParse:
    """Tests for stage 1: fence stripping and outermost slice."""

    def test_raw_object(self):
        """Test extracting raw JSON."""
        assert extract_json_from_response('{"key": "value"}') == {"key": "value"}

    def test_markdown_block(self):
        """Test extracting JSON from a markdown code block."""
        response = """Here is the result:
```json
{"title": "比喻", "difficulty": 2}
```
"""
        result = recover_json(response)

        assert result.strategy == RecoveryStrategy.DIRECT
        assert result.value == {"title": "比喻", "difficulty": 2}
        assert not result.is_partial

    def test_array_with_prose(self):
        """Test an array surrounded by prose."""
        response = '好的，结果如下：[{"item": 1}, {"item": 2}] 希望有帮助。'
        result = extract_json_from_response(response)

        assert result == [{"item": 1}, {"item": 2}]

    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('```\n[1]\n```') == "[1]"

    def test_outermost_slice_without_brackets(self):
        assert outermost_json_slice("no json here") == "no json here"

    def test_outermost_slice_prefers_first_opening(self):
        assert outermost_json_slice('x [{"a": 1}] y') == '[{"a": 1}]'


# =============================================================================
# Brace Scan
# =============================================================================


class TestBraceScan:
    """Tests for stage 2: per-object recovery."""

    def test_invalid_escape_drops_only_that_object(self):
        """Two valid objects and one with a bad escape yield the two."""
        response = '{"title": "一"} {"title": "\\q"} {"title": "三"}'
        result = recover_json(response)

        assert result.strategy == RecoveryStrategy.BRACE_SCAN
        assert result.value == [{"title": "一"}, {"title": "三"}]
        assert result.is_partial
        assert len(result.discarded) == 1

    def test_discarded_candidate_diagnostics(self):
        """Discarded candidates carry offsets, preview and parser error."""
        bad = '{"title": "\\q"}'
        response = '{"title": "一"} ' + bad
        result = recover_json(response)

        candidate = result.discarded[0]
        assert response[candidate.start : candidate.end] == bad
        assert candidate.preview == bad
        assert candidate.error

    def test_truncated_array_keeps_complete_objects(self):
        """A response cut off mid-object keeps the objects before the cut."""
        response = '[{"title": "一"}, {"title": "二"}, {"title": "三'
        result = extract_json_from_response(response)

        assert result == [{"title": "一"}, {"title": "二"}]

    def test_stray_closing_brace_is_ignored(self):
        response = '} {"a": 1} } {"b": 2}'
        result = recover_json(response)

        assert result.value == [{"a": 1}, {"b": 2}]
        assert not result.is_partial

    def test_control_characters_are_stripped(self):
        response = '{"a": "x\ty"} {"b": 2'
        result = recover_json(response)

        assert result.value == [{"a": "xy"}]

    def test_nested_objects_stay_whole(self):
        response = 'junk {"a": {"b": {"c": 1}}} junk {"d": 2} {'
        result = extract_json_from_response(response)

        assert result == [{"a": {"b": {"c": 1}}}, {"d": 2}]

    def test_iter_balanced_objects_spans(self):
        text = 'x{"a":{}}y{}'
        assert list(iter_balanced_objects(text)) == [(1, 9), (10, 12)]

    def test_result_does_not_depend_on_later_objects(self):
        """Objects before a malformed one are recovered the same either way."""
        head = '{"id": 1} {"id": 2}'
        with_bad_tail = extract_json_from_response(head + ' {"id": "\\x"}')
        with_good_tail = extract_json_from_response(head + ' {"id": 3}')

        assert with_bad_tail == [{"id": 1}, {"id": 2}]
        assert with_good_tail[:2] == with_bad_tail


# =============================================================================
# Extraction Failure
# =============================================================================


class TestExtractionFailure:
    """Responses with nothing recoverable raise ExtractionFailure."""

    @pytest.mark.parametrize("response", ["This is not JSON at all", "", None, "{"])
    def test_nothing_recoverable(self, response):
        with pytest.raises(ExtractionFailure) as exc_info:
            extract_json_from_response(response)

        assert exc_info.value.error_code == "extraction_failure"

    def test_failure_lists_discarded_candidates(self):
        with pytest.raises(ExtractionFailure) as exc_info:
            recover_json('{"a": "\\q"} and {"b": \'x\'}')

        assert len(exc_info.value.details["discarded"]) == 2

    def test_deeply_nested_arrays_raise_extraction_failure(self):
        with pytest.raises(ExtractionFailure):
            extract_json_from_response("[" * 200000 + "]" * 200000)


class TestDeepNesting:
    """Nesting too deep for the decoder is discarded like any bad candidate."""

    def test_nested_object_discarded_and_scan_continues(self):
        nested = '{"a":' * 100000 + "1" + "}" * 100000
        result = recover_json("prose " + nested + ' tail {"ok": 1}')

        assert result.strategy == RecoveryStrategy.BRACE_SCAN
        assert result.values == [{"ok": 1}]
        assert len(result.discarded) == 1
        assert result.discarded[0].start == len("prose ")


# =============================================================================
# Coercion Helpers
# =============================================================================


class TestCoercion:
    """Tests for value coercion used by the normalizers."""

    def test_coerce_text(self):
        assert coerce_text("  比喻 ") == "比喻"
        assert coerce_text("   ") is None
        assert coerce_text(3) == "3"
        assert coerce_text(True) is None
        assert coerce_text(None) is None
        assert coerce_text(["a"]) is None
        assert coerce_text(float("nan")) is None

    def test_coerce_number(self):
        assert coerce_number(3) == 3
        assert coerce_number(2.5) == 2.5
        assert coerce_number("3") is None
        assert coerce_number(True) is None
        assert coerce_number(float("inf")) is None

    def test_first_present(self):
        assert first_present({"pageStart": 2}, "page_start", "pageStart") == 2
        assert first_present({"page_start": None, "pageStart": 4}, "page_start", "pageStart") == 4
        assert first_present({}, "a") is None

    def test_as_object_list(self):
        assert as_object_list([{"a": 1}, 2, "x"]) == [{"a": 1}]
        assert as_object_list({"blocks": [{"a": 1}]}, ("blocks",)) == [{"a": 1}]
        assert as_object_list({"title": "a"}, ("blocks",)) == [{"title": "a"}]
        assert as_object_list("text") == []
