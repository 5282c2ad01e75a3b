"""Document schemas."""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Any, Dict, List, Optional

from .formatting import DocumentFormatting

DEFAULT_TITLE = "Untitled Document"


class ContentFormat(str, Enum):
    PLAIN = "plain"
    MARKDOWN = "markdown"
    HTML = "html"
    JSON = "json"


class DocumentType(str, Enum):
    TEXT = "text"
    PRESENTATION = "presentation"
    SPREADSHEET = "spreadsheet"
    NOTES = "notes"


class CitationStyle(str, Enum):
    MLA = "mla"
    APA = "apa"
    CHICAGO = "chicago"


def _clean_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    return v or DEFAULT_TITLE


class DocumentBase(BaseModel):
    """Base document schema."""
    title: str = Field(DEFAULT_TITLE, max_length=255)
    content: str = ""
    content_format: ContentFormat = ContentFormat.PLAIN
    document_type: DocumentType = DocumentType.TEXT
    citation_style: CitationStyle = CitationStyle.MLA
    outline: List[Any] = []
    research_notes: List[Any] = []
    sources: List[Any] = []

    model_config = ConfigDict(use_enum_values=True)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)


class DocumentCreate(DocumentBase):
    """Schema for creating a document."""
    folder_id: Optional[str] = None
    formatting: Optional[DocumentFormatting] = None
    class_id: Optional[str] = Field(None, max_length=64)
    assignment_id: Optional[str] = Field(None, max_length=64)

    model_config = ConfigDict(
        use_enum_values=True,
        json_schema_extra={
            "examples": [
                {
                    "title": "Essay draft",
                    "content": "Hello world\nSecond paragraph",
                    "folder_id": None,
                    "formatting": {
                        "ranges": [{"startOffset": 0, "endOffset": 5, "attributes": {"bold": True}}],
                        "paragraphs": {"0": {"textAlign": "center"}},
                    },
                }
            ]
        },
    )


class DocumentUpdate(BaseModel):
    """Partial update. Only fields present in the payload are written."""
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = None
    content_format: Optional[ContentFormat] = None
    document_type: Optional[DocumentType] = None
    citation_style: Optional[CitationStyle] = None
    formatting: Optional[DocumentFormatting] = None
    outline: Optional[List[Any]] = None
    research_notes: Optional[List[Any]] = None
    sources: Optional[List[Any]] = None
    folder_id: Optional[str] = None
    class_id: Optional[str] = Field(None, max_length=64)
    assignment_id: Optional[str] = Field(None, max_length=64)

    model_config = ConfigDict(use_enum_values=True)

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _clean_title(v)


class DocumentUpdateRequest(DocumentUpdate):
    """HTTP body for PUT /api/documents/{id}: changes plus the version the client read."""
    version: int = Field(..., ge=1)

    def changes(self) -> DocumentUpdate:
        return DocumentUpdate.model_validate(
            self.model_dump(exclude_unset=True, exclude={"version"})
        )


class DocumentMoveRequest(BaseModel):
    """Schema for moving a document into a folder (null = unfiled)."""
    folder_id: Optional[str] = None


class BulkMoveRequest(BaseModel):
    """Move several documents at once; all or nothing."""
    document_ids: List[str] = Field(..., min_length=1)
    folder_id: Optional[str] = None


class BulkMoveResult(BaseModel):
    """Result of a bulk move."""
    moved: int
    folder_id: Optional[str] = None


class DocumentResponse(BaseModel):
    """Schema for document response."""
    id: str
    owner_id: str
    tenant_id: Optional[str] = None
    folder_id: Optional[str] = None
    folder_name: Optional[str] = None
    title: str
    content: str
    content_format: str
    document_type: str
    citation_style: str
    formatting: Dict[str, Any]
    outline: List[Any] = []
    research_notes: List[Any] = []
    sources: List[Any] = []
    class_id: Optional[str] = None
    assignment_id: Optional[str] = None
    version: int
    last_modified_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentListResponse(BaseModel):
    """Schema for document list entries (no body or formatting)."""
    id: str
    folder_id: Optional[str] = None
    folder_name: Optional[str] = None
    title: str
    content_format: str
    document_type: str
    class_id: Optional[str] = None
    assignment_id: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VersionConflictResponse(BaseModel):
    """409 body returned when the client's version is stale."""
    error: str = "Version conflict"
    message: str
    client_version: int
    current_version: int
    latest_document: DocumentResponse


class FormattingSearchRequest(BaseModel):
    """Find documents whose formatting contains this JSON fragment."""
    fragment: Dict[str, Any]
