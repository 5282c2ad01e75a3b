"""Document model."""

from sqlalchemy import (
    CheckConstraint, Column, Index, String, Text, Integer, DateTime, ForeignKey, JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base

# Generic JSON everywhere, JSONB on PostgreSQL so the GIN index can answer
# containment queries over the formatting payload.
JsonColumn = JSON().with_variant(JSONB(), "postgresql")


def empty_formatting() -> dict:
    """Stored form of a document with no styling."""
    return {"ranges": [], "paragraphs": {}}


class Document(Base):
    """Main documents table."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_owner_id", "owner_id"),
        Index("ix_documents_folder_id", "folder_id"),
        Index("ix_documents_tenant_id", "tenant_id"),
        Index("ix_documents_owner_updated", "owner_id", "updated_at"),
        Index("ix_documents_owner_folder", "owner_id", "folder_id"),
        Index("ix_documents_assignment_owner", "assignment_id", "owner_id"),
        Index("idx_documents_formatting", "formatting", postgresql_using="gin"),
        CheckConstraint(
            "content_format IN ('plain', 'markdown', 'html', 'json')",
            name="documents_content_format_check",
        ),
        CheckConstraint(
            "document_type IN ('text', 'presentation', 'spreadsheet', 'notes')",
            name="documents_document_type_check",
        ),
        CheckConstraint(
            "citation_style IN ('mla', 'apa', 'chicago')",
            name="documents_citation_style_check",
        ),
        CheckConstraint("version > 0", name="documents_version_positive"),
    )

    # Primary key
    id = Column(String(36), primary_key=True)  # uuid4

    # Ownership and placement
    owner_id = Column(String(64), nullable=False)
    tenant_id = Column(String(64), nullable=True)
    folder_id = Column(String(36), ForeignKey("folders.id", ondelete="SET NULL"), nullable=True)
    last_modified_by = Column(String(64), nullable=True)

    # Content
    title = Column(String(255), nullable=False, default="Untitled Document")
    content = Column(Text, nullable=False, default="")
    content_format = Column(String(20), nullable=False, default="plain")
    document_type = Column(String(20), nullable=False, default="text")
    citation_style = Column(String(20), nullable=False, default="mla")

    # Rich-text overlay on `content`: {"ranges": [...], "paragraphs": {...}}
    formatting = Column(JsonColumn, nullable=False, default=empty_formatting)

    # Academic metadata
    outline = Column(JsonColumn, nullable=False, default=list)
    research_notes = Column(JsonColumn, nullable=False, default=list)
    sources = Column(JsonColumn, nullable=False, default=list)

    # Submission linkage (NULL unless the document answers an assignment)
    class_id = Column(String(64), nullable=True)
    assignment_id = Column(String(64), nullable=True)

    # Optimistic locking: incremented on every content update.
    # Writers must present the version they read; mismatches are conflicts.
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    folder = relationship("Folder", viewonly=True)

    @property
    def folder_name(self):
        return self.folder.name if self.folder is not None else None
