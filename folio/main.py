"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import engine, Base, get_db, DATABASE_URL
from .api import documents_router, folders_router
from .core.auth import OWNER_HEADER, TENANT_HEADER
from .core.config import settings, ConfigurationError, Environment
from .core.logging_config import setup_logging
from .core.migrator import run_migrations, MigrationError
from .middleware.exception_handler import folio_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .exceptions import FolioException
from .services import DocumentService

API_VERSION = "1.0.0"

# Setup logging first
setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


def _validate_database_connection() -> None:
    """Test that the database is reachable. Exits with a clear message on failure."""
    masked = _mask_url(DATABASE_URL)
    logger.info("Connecting to database: %s", masked)

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except SQLAlchemyError as e:
        if DATABASE_URL.startswith("sqlite"):
            hint = "Check that the directory exists and is writable."
        else:
            hint = "Verify the server is running and DATABASE_URL credentials are correct."
        logger.critical(
            "Database connection failed.\n"
            f"  DATABASE_URL: {masked}\n"
            f"  {hint}\n"
            f"  Error: {e}"
        )
        raise SystemExit(1) from e


_validate_database_connection()

# Run database migrations (handles both fresh installs and updates)
try:
    result = run_migrations(engine, Base)
    if result.applied > 0:
        logger.info("Applied %d database migration(s)", result.applied)
    elif result.baselined > 0:
        logger.info("Baselined %d migration(s)", result.baselined)
except MigrationError as e:
    logger.critical("Database migration failed: %s", e)
    raise SystemExit(1) from e


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle for the Folio API."""
    logger.info("Environment: %s", settings.environment.value)
    try:
        problems = settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical("STARTUP BLOCKED: %s", e)
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT:
        for problem in problems:
            logger.warning("Not production-ready: %s", problem)

    yield


app = FastAPI(
    title="Folio API",
    description=(
        "Storage core for rich-text documents organised in per-owner folder trees.\n\n"
        "**Identity:** every endpoint except `/` and `/health` requires the "
        f"`{OWNER_HEADER}` header (and accepts `{TENANT_HEADER}`), set by the "
        "authenticating gateway in front of this service.\n\n"
        "**Concurrency:** `PUT /api/documents/{id}` must carry the `version` the "
        "client read; a stale version is answered with 409 and the latest document."
    ),
    version=API_VERSION,
    lifespan=lifespan,
)

# Middleware stack (outermost first, CORS wraps request context).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", OWNER_HEADER, TENANT_HEADER, "X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(FolioException, folio_exception_handler)

logger.info(
    "Folio API started | env=%s | db=%s | max_folder_depth=%d",
    settings.environment.value,
    "PostgreSQL" if DATABASE_URL.startswith("postgresql") else "SQLite",
    settings.folder_max_depth,
)

app.include_router(documents_router)
app.include_router(folders_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "Folio API",
        "version": API_VERSION,
        "status": "running"
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint returning database status, uptime, and document count.

    Never raises. Returns degraded status on DB failure so load balancers
    can still probe without receiving 5xx.
    """
    db_status = "ok"
    document_count = 0
    try:
        document_count = DocumentService(db).count_documents()
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": API_VERSION,
        "document_count": document_count,
    }
