"""API routes."""

from .documents import router as documents_router
from .folders import router as folders_router

__all__ = [
    "documents_router",
    "folders_router",
]
