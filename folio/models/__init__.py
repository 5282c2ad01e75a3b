"""Database models."""

from .folder import Folder
from .document import Document

__all__ = ["Folder", "Document"]
