"""Business logic services."""

from .document_service import DocumentService
from .folder_service import FolderService

__all__ = ["DocumentService", "FolderService"]
