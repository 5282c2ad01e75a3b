"""Tests for the formatting overlay model and JSON containment helper."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from folio.exceptions import ValidationError
from folio.schemas.formatting import DocumentFormatting, FormatRange, paragraph_count
from folio.services.content_utils import json_contains


CANONICAL = {
    "ranges": [{"startOffset": 0, "endOffset": 5, "attributes": {"bold": True}}],
    "paragraphs": {"0": {"textAlign": "center"}},
}


class TestParagraphCount:

    def test_empty_content_has_one_paragraph(self):
        assert paragraph_count("") == 1

    def test_counts_newline_separated_paragraphs(self):
        assert paragraph_count("one\ntwo\nthree") == 3

    def test_trailing_newline_opens_empty_paragraph(self):
        assert paragraph_count("one\n") == 2


class TestParsing:

    def test_canonical_round_trip(self):
        fmt = DocumentFormatting.from_storage(CANONICAL)
        assert fmt.to_storage() == CANONICAL

    def test_accepts_snake_case_and_short_offset_keys(self):
        snake = DocumentFormatting.model_validate(
            {"ranges": [{"start_offset": 0, "end_offset": 5, "attributes": {"bold": True}}]}
        )
        short = DocumentFormatting.model_validate(
            {"ranges": [{"start": 0, "end": 5, "attributes": {"bold": True}}]}
        )
        assert snake.to_storage()["ranges"] == CANONICAL["ranges"]
        assert short.to_storage()["ranges"] == CANONICAL["ranges"]

    def test_paragraph_keys_parse_to_int(self):
        fmt = DocumentFormatting.from_storage(CANONICAL)
        assert fmt.paragraphs == {0: {"textAlign": "center"}}

    def test_none_is_empty(self):
        fmt = DocumentFormatting.from_storage(None)
        assert fmt.is_empty()
        assert fmt.to_storage() == {"ranges": [], "paragraphs": {}}

    def test_reversed_range_rejected(self):
        with pytest.raises(PydanticValidationError):
            FormatRange.model_validate({"startOffset": 4, "endOffset": 2})

    def test_negative_offset_rejected(self):
        with pytest.raises(PydanticValidationError):
            FormatRange.model_validate({"startOffset": -1, "endOffset": 2})

    def test_negative_paragraph_index_rejected(self):
        with pytest.raises(PydanticValidationError):
            DocumentFormatting.model_validate({"paragraphs": {"-1": {"textAlign": "left"}}})


class TestValidateBounds:

    def test_range_up_to_content_length_is_valid(self):
        fmt = DocumentFormatting.model_validate({"ranges": [{"start": 0, "end": 5}]})
        fmt.validate_bounds("Hello")

    def test_range_past_content_length_rejected(self):
        fmt = DocumentFormatting.model_validate({"ranges": [{"start": 0, "end": 6}]})
        with pytest.raises(ValidationError) as exc_info:
            fmt.validate_bounds("Hello")
        assert exc_info.value.details == {"field": "formatting"}

    def test_offsets_count_code_points(self):
        content = "héllo \U0001F30D"  # 7 code points, more UTF-8/UTF-16 units
        fmt = DocumentFormatting.model_validate({"ranges": [{"start": 6, "end": 7}]})
        fmt.validate_bounds(content)

    def test_paragraph_index_must_exist(self):
        fmt = DocumentFormatting.model_validate({"paragraphs": {"2": {"textAlign": "right"}}})
        fmt.validate_bounds("a\nb\nc")
        with pytest.raises(ValidationError):
            fmt.validate_bounds("a\nb")

    def test_empty_content_accepts_paragraph_zero(self):
        fmt = DocumentFormatting.model_validate({"paragraphs": {"0": {"textAlign": "left"}}})
        fmt.validate_bounds("")


class TestClamp:

    def test_ranges_are_clipped_and_emptied_ranges_dropped(self):
        fmt = DocumentFormatting.model_validate({
            "ranges": [
                {"start": 0, "end": 11, "attributes": {"bold": True}},
                {"start": 8, "end": 11, "attributes": {"italic": True}},
            ],
        })
        clamped = fmt.clamped_to("Hello")
        assert clamped.to_storage()["ranges"] == [
            {"startOffset": 0, "endOffset": 5, "attributes": {"bold": True}},
        ]

    def test_out_of_range_paragraphs_dropped(self):
        fmt = DocumentFormatting.model_validate(
            {"paragraphs": {"0": {"a": 1}, "1": {"b": 2}}}
        )
        clamped = fmt.clamped_to("single paragraph")
        assert clamped.paragraphs == {0: {"a": 1}}

    def test_clamped_result_passes_validation(self):
        fmt = DocumentFormatting.model_validate({
            "ranges": [{"start": 3, "end": 40}],
            "paragraphs": {"4": {}},
        })
        fmt.clamped_to("abcdef").validate_bounds("abcdef")


class TestAttributesAt:

    def test_overlapping_ranges_merge_in_list_order(self):
        fmt = DocumentFormatting.model_validate({
            "ranges": [
                {"start": 0, "end": 10, "attributes": {"bold": True, "color": "red"}},
                {"start": 5, "end": 8, "attributes": {"color": "blue"}},
            ],
        })
        assert fmt.attributes_at(2) == {"bold": True, "color": "red"}
        assert fmt.attributes_at(6) == {"bold": True, "color": "blue"}

    def test_end_offset_is_exclusive(self):
        fmt = DocumentFormatting.model_validate({"ranges": [{"start": 0, "end": 5, "attributes": {"bold": True}}]})
        assert fmt.attributes_at(4) == {"bold": True}
        assert fmt.attributes_at(5) == {}


class TestJsonContains:

    def test_nested_object_in_array(self):
        assert json_contains(CANONICAL, {"ranges": [{"attributes": {"bold": True}}]})

    def test_missing_key(self):
        assert not json_contains(CANONICAL, {"ranges": [{"attributes": {"italic": True}}]})

    def test_paragraph_attributes(self):
        assert json_contains(CANONICAL, {"paragraphs": {"0": {"textAlign": "center"}}})
        assert not json_contains(CANONICAL, {"paragraphs": {"1": {}}})

    def test_empty_fragment_matches(self):
        assert json_contains(CANONICAL, {})

    def test_bool_is_not_number(self):
        assert not json_contains({"level": 1}, {"level": True})
        assert json_contains({"level": 1}, {"level": 1})
