"""Database migration runner with automatic tracking.

Handles both fresh installs and existing databases:
- Fresh install: creates tables from the models and baselines every migration
- Existing install: runs pending migrations, tracked in ``schema_migrations``

Migration files live in ``folio/migrations`` and are named
``NNN_description.sql``. A first line of ``-- dialect: postgresql`` (or
``sqlite``) restricts a file to that database.

Usage:
    from folio.core.migrator import run_migrations, MigrationError

    try:
        result = run_migrations(engine, Base)
    except MigrationError as e:
        logger.critical("Migration failed: %s", e)
        raise SystemExit(1)
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy import Engine, text, inspect
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    """Raised when a migration fails to apply."""
    pass


@dataclass
class Migration:
    """A discovered migration file."""
    version: str        # "001"
    name: str           # "add_documents_formatting_gin_index"
    file_path: Path
    dialect: Optional[str] = None  # None = every database

    def __lt__(self, other: "Migration") -> bool:
        return int(self.version) < int(other.version)


@dataclass
class MigrationResult:
    """Result of running migrations."""
    applied: int = 0
    skipped: int = 0
    baselined: int = 0


_MIGRATION_PATTERN = re.compile(r"^(\d{3})_(.+)\.sql$")
_DIALECT_PATTERN = re.compile(r"^--\s*dialect:\s*(sqlite|postgresql)\s*$")


def _get_migrations_dir() -> Path:
    return Path(__file__).parent.parent / "migrations"


def _discover_migration_files(migrations_dir: Optional[Path] = None) -> list[Migration]:
    """Scan the migrations directory for .sql files, sorted by version.

    Rollback files (``rollback`` in the name) are skipped.
    """
    migrations_dir = migrations_dir or _get_migrations_dir()

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return []

    migrations = []
    for file_path in sorted(migrations_dir.glob("*.sql")):
        if "rollback" in file_path.name.lower():
            continue

        match = _MIGRATION_PATTERN.match(file_path.name)
        if not match:
            logger.debug("Skipping non-migration file: %s", file_path.name)
            continue

        first_line = file_path.read_text().split("\n", 1)[0]
        dialect_match = _DIALECT_PATTERN.match(first_line)
        migrations.append(Migration(
            version=match.group(1),
            name=match.group(2),
            file_path=file_path,
            dialect=dialect_match.group(1) if dialect_match else None,
        ))

    return sorted(migrations)


def _is_fresh_install(engine: Engine) -> bool:
    """No documents table yet."""
    return "documents" not in inspect(engine).get_table_names()


def _get_schema_state(engine: Engine) -> dict:
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())

    document_indexes = set()
    if "documents" in tables:
        document_indexes = {idx["name"] for idx in inspector.get_indexes("documents")}

    return {"tables": tables, "document_indexes": document_indexes}


# What each migration leaves behind, for installs that predate tracking.
_MIGRATION_CHECKS = {
    "001": lambda s: "idx_documents_formatting" in s["document_indexes"],
}


def _detect_applied_migrations(engine: Engine, migrations: list[Migration]) -> set[str]:
    """Versions whose effect is already visible in the schema."""
    state = _get_schema_state(engine)
    if "documents" not in state["tables"]:
        return set()

    applied = set()
    for migration in migrations:
        check = _MIGRATION_CHECKS.get(migration.version)
        if check and check(state):
            applied.add(migration.version)
    return applied


def _schema_migrations_exists(engine: Engine) -> bool:
    return "schema_migrations" in inspect(engine).get_table_names()


def _ensure_migrations_table(engine: Engine) -> None:
    if _schema_migrations_exists(engine):
        return

    logger.info("Creating schema_migrations table")
    with engine.connect() as conn:
        conn.execute(text("""
            CREATE TABLE schema_migrations (
                version VARCHAR(10) PRIMARY KEY,
                name VARCHAR(255) NOT NULL,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """))
        conn.commit()


def _get_applied_versions(engine: Engine) -> set[str]:
    if not _schema_migrations_exists(engine):
        return set()

    with engine.connect() as conn:
        result = conn.execute(text("SELECT version FROM schema_migrations"))
        return {row[0] for row in result}


def _record_migration(engine: Engine, migration: Migration) -> None:
    with engine.connect() as conn:
        conn.execute(
            text("INSERT INTO schema_migrations (version, name) VALUES (:version, :name)"),
            {"version": migration.version, "name": migration.name}
        )
        conn.commit()


def _apply_migration(engine: Engine, migration: Migration) -> None:
    """Execute a migration's SQL and record it. Raises MigrationError on failure."""
    sql_content = migration.file_path.read_text()

    with engine.connect() as conn:
        try:
            conn.execute(text(sql_content))
            conn.commit()
        except SQLAlchemyError as e:
            raise MigrationError(f"Failed to apply {migration.version}_{migration.name}: {e}") from e

    _record_migration(engine, migration)


def run_migrations(engine: Engine, base: type, migrations_dir: Optional[Path] = None) -> MigrationResult:
    """Run all pending migrations. Idempotent.

    Args:
        engine: SQLAlchemy engine
        base: SQLAlchemy declarative base (for create_all on fresh install)
        migrations_dir: Override of the bundled migrations directory

    Raises:
        MigrationError: If a migration fails to apply
    """
    logger.info("Starting migration check")

    dialect = engine.dialect.name
    all_migrations = _discover_migration_files(migrations_dir)
    migrations = [m for m in all_migrations if m.dialect is None or m.dialect == dialect]
    if len(migrations) < len(all_migrations):
        logger.info("Skipped %d migration(s) for other databases", len(all_migrations) - len(migrations))

    if _is_fresh_install(engine):
        logger.info("Fresh install detected - creating tables from models")
        base.metadata.create_all(bind=engine)

        _ensure_migrations_table(engine)
        for migration in migrations:
            _record_migration(engine, migration)

        logger.info("Baselined %d migration(s)", len(migrations))
        return MigrationResult(baselined=len(migrations))

    logger.info("Existing install detected")
    # Tables added since the install are created; existing ones are untouched.
    base.metadata.create_all(bind=engine)
    _ensure_migrations_table(engine)

    tracked_versions = _get_applied_versions(engine)
    detected_applied = _detect_applied_migrations(engine, migrations)

    newly_baselined = detected_applied - tracked_versions
    for migration in migrations:
        if migration.version in newly_baselined:
            _record_migration(engine, migration)
            logger.debug("Baselined migration %s: %s", migration.version, migration.name)

    applied_versions = tracked_versions | detected_applied
    pending = [m for m in migrations if m.version not in applied_versions]

    if not pending:
        if newly_baselined:
            logger.info("Baselined %d migration(s), none pending", len(newly_baselined))
            return MigrationResult(baselined=len(newly_baselined))
        logger.info("No pending migrations")
        return MigrationResult(skipped=len(migrations))

    logger.info("Found %d pending migration(s)", len(pending))
    for migration in pending:
        logger.info("Applying migration %s: %s", migration.version, migration.name)
        _apply_migration(engine, migration)

    logger.info("Applied %d migration(s) successfully", len(pending))
    return MigrationResult(applied=len(pending))
