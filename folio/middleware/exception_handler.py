"""Exception handler middleware for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import FolioException

logger = logging.getLogger(__name__)


async def folio_exception_handler(request: Request, exc: FolioException) -> JSONResponse:
    """
    Render a FolioException as ``{"error", "message", "details"}``.

    Server-side faults (5xx) are logged at ERROR, client errors at WARNING.

    Args:
        request: FastAPI request object
        exc: FolioException instance

    Returns:
        JSONResponse with error details
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"FolioException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
