"""Data access repositories."""

from .base import BaseRepository
from .document_repository import DocumentRepository, NOT_SET, VersionedUpdateResult
from .folder_repository import FolderRepository

__all__ = [
    "BaseRepository",
    "DocumentRepository",
    "FolderRepository",
    "NOT_SET",
    "VersionedUpdateResult",
]
