"""Custom exception hierarchy for Folio."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Not-found errors (also raised for entities owned by someone else)
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Concurrency / uniqueness errors
    CONFLICT = "CONFLICT"

    # Folder tree corruption detected while walking ancestors
    STRUCTURAL_INTEGRITY = "STRUCTURAL_INTEGRITY"

    # Identity
    UNAUTHORIZED = "UNAUTHORIZED"


class FolioException(Exception):
    """
    Base exception for all Folio errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            status_code: HTTP status code to return
            details: Optional additional context/details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(FolioException):
    """Entity is absent or belongs to another owner.

    Both cases produce the same error so that callers can never probe for
    the existence of another owner's data.
    """

    def __init__(self, message: str, error_code: ErrorCode, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, status_code=404, details=details)


class DocumentNotFoundError(NotFoundError):
    """Document not found (or not owned by the caller)."""

    def __init__(self, doc_id: str):
        super().__init__(
            f"Document not found: {doc_id}",
            ErrorCode.DOCUMENT_NOT_FOUND,
            details={"doc_id": doc_id}
        )


class FolderNotFoundError(NotFoundError):
    """Folder not found (or not owned by the caller)."""

    def __init__(self, folder_id: str):
        super().__init__(
            f"Folder not found: {folder_id}",
            ErrorCode.FOLDER_NOT_FOUND,
            details={"folder_id": folder_id}
        )


class ValidationError(FolioException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class ConflictError(FolioException):
    """Write collides with existing state (e.g. a sibling folder name)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details
        )


class StructuralIntegrityError(FolioException):
    """The stored folder tree is corrupt (cycle or depth beyond the ceiling).

    Not recoverable by the caller; signals a pre-existing data fault.
    """

    def __init__(self, folder_id: str, message: str):
        super().__init__(
            message,
            ErrorCode.STRUCTURAL_INTEGRITY,
            status_code=500,
            details={"folder_id": folder_id}
        )


class AuthenticationError(FolioException):
    """Request carries no resolved actor identity."""

    def __init__(self, message: str = "Missing actor identity"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )
