"""Pydantic schemas for API validation."""

from .document import (
    BulkMoveRequest,
    BulkMoveResult,
    CitationStyle,
    ContentFormat,
    DocumentCreate,
    DocumentListResponse,
    DocumentMoveRequest,
    DocumentResponse,
    DocumentType,
    DocumentUpdate,
    DocumentUpdateRequest,
    FormattingSearchRequest,
    VersionConflictResponse,
)
from .folder import (
    FolderCreate,
    FolderDeleteResponse,
    FolderMoveRequest,
    FolderPathResponse,
    FolderResponse,
    FolderTreeNode,
    FolderTreeResponse,
    FolderUpdate,
    FolderWithCounts,
    TreeDocument,
)
from .formatting import DocumentFormatting, FormatRange, paragraph_count

__all__ = [
    "BulkMoveRequest",
    "BulkMoveResult",
    "CitationStyle",
    "ContentFormat",
    "DocumentCreate",
    "DocumentListResponse",
    "DocumentMoveRequest",
    "DocumentResponse",
    "DocumentType",
    "DocumentUpdate",
    "DocumentUpdateRequest",
    "FormattingSearchRequest",
    "VersionConflictResponse",
    "FolderCreate",
    "FolderDeleteResponse",
    "FolderMoveRequest",
    "FolderPathResponse",
    "FolderResponse",
    "FolderTreeNode",
    "FolderTreeResponse",
    "FolderUpdate",
    "FolderWithCounts",
    "TreeDocument",
    "DocumentFormatting",
    "FormatRange",
    "paragraph_count",
]
