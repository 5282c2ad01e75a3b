"""Rich-text formatting overlay stored beside the plain document content.

Two independent overlays describe styling without touching ``content``:

* ``ranges`` -- character-level spans ``[startOffset, endOffset)`` measured
  in code points (``len(content)``). Ranges may overlap; readers merge the
  attribute sets of every range covering a position, in list order.
* ``paragraphs`` -- paragraph index -> paragraph attributes. Paragraphs are
  separated by ``"\\n"``, so an empty document still has one paragraph.

Stored form (one JSON column per document)::

    {"ranges": [{"startOffset": 0, "endOffset": 5, "attributes": {"bold": true}}],
     "paragraphs": {"0": {"textAlign": "center"}}}
"""

from typing import Any, Dict, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from ..exceptions import ValidationError

PARAGRAPH_SEPARATOR = "\n"


def paragraph_count(content: str) -> int:
    """Number of paragraphs in *content* (separators + 1)."""
    return content.count(PARAGRAPH_SEPARATOR) + 1


class FormatRange(BaseModel):
    """Styling applied to the half-open span ``[start_offset, end_offset)``."""

    model_config = ConfigDict(populate_by_name=True)

    start_offset: int = Field(
        ge=0,
        validation_alias=AliasChoices("startOffset", "start_offset", "start"),
        serialization_alias="startOffset",
    )
    end_offset: int = Field(
        ge=0,
        validation_alias=AliasChoices("endOffset", "end_offset", "end"),
        serialization_alias="endOffset",
    )
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_order(self) -> "FormatRange":
        if self.end_offset < self.start_offset:
            raise ValueError("endOffset must not be smaller than startOffset")
        return self

    def covers(self, offset: int) -> bool:
        return self.start_offset <= offset < self.end_offset


class DocumentFormatting(BaseModel):
    """Character ranges plus paragraph attributes for one document."""

    ranges: List[FormatRange] = Field(default_factory=list)
    paragraphs: Dict[int, Dict[str, Any]] = Field(default_factory=dict)

    @field_validator("paragraphs")
    @classmethod
    def validate_paragraph_indices(cls, v: Dict[int, Dict[str, Any]]) -> Dict[int, Dict[str, Any]]:
        negative = [index for index in v if index < 0]
        if negative:
            raise ValueError(f"Paragraph indices must be >= 0, got {negative}")
        return v

    @classmethod
    def from_storage(cls, data: Any) -> "DocumentFormatting":
        """Parse the stored JSON payload (``None`` means no styling)."""
        return cls.model_validate(data or {})

    def to_storage(self) -> Dict[str, Any]:
        """Canonical JSON form: camelCase offsets, string paragraph keys."""
        return {
            "ranges": [r.model_dump(by_alias=True) for r in self.ranges],
            "paragraphs": {str(index): dict(attrs) for index, attrs in self.paragraphs.items()},
        }

    def is_empty(self) -> bool:
        return not self.ranges and not self.paragraphs

    def validate_bounds(self, content: str) -> None:
        """Raise ValidationError unless every offset and index fits *content*."""
        length = len(content)
        for position, fmt_range in enumerate(self.ranges):
            if fmt_range.end_offset > length:
                raise ValidationError(
                    f"Range {position} ends at {fmt_range.end_offset}, "
                    f"beyond content length {length}",
                    field="formatting",
                )

        count = paragraph_count(content)
        for index in self.paragraphs:
            if index >= count:
                raise ValidationError(
                    f"Paragraph index {index} out of range; content has {count} paragraph(s)",
                    field="formatting",
                )

    def clamped_to(self, content: str) -> "DocumentFormatting":
        """Copy that fits *content*: ranges are clipped, empty ones and
        out-of-range paragraph entries are dropped."""
        length = len(content)
        count = paragraph_count(content)

        ranges = []
        for fmt_range in self.ranges:
            end = min(fmt_range.end_offset, length)
            start = min(fmt_range.start_offset, end)
            if start == end:
                continue
            ranges.append(
                FormatRange(start_offset=start, end_offset=end, attributes=dict(fmt_range.attributes))
            )

        paragraphs = {index: dict(attrs) for index, attrs in self.paragraphs.items() if index < count}
        return DocumentFormatting(ranges=ranges, paragraphs=paragraphs)

    def attributes_at(self, offset: int) -> Dict[str, Any]:
        """Merged character attributes at *offset*; later ranges override earlier keys."""
        merged: Dict[str, Any] = {}
        for fmt_range in self.ranges:
            if fmt_range.covers(offset):
                merged.update(fmt_range.attributes)
        return merged
