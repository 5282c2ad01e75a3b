"""Folder model."""

from sqlalchemy import Column, Index, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from ..database import Base


class Folder(Base):
    """A node in an owner's folder forest.

    ``parent_id`` is NULL for top-level folders. The parent chain must
    terminate at a NULL parent; FolderService enforces acyclicity on every
    move because the database cannot.
    """

    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("name", "parent_id", "owner_id", name="folders_name_parent_owner_unique"),
        Index("ix_folders_owner_id", "owner_id"),
        Index("ix_folders_parent_id", "parent_id"),
        Index("ix_folders_tenant_id", "tenant_id"),
        Index("ix_folders_owner_parent", "owner_id", "parent_id"),
        Index("ix_folders_tenant_owner", "tenant_id", "owner_id"),
    )

    id = Column(String(36), primary_key=True)  # uuid4
    name = Column(String(255), nullable=False)
    parent_id = Column(String(36), ForeignKey("folders.id", ondelete="CASCADE"), nullable=True)

    # Ownership and multi-tenancy (tenant NULL = personal folder)
    owner_id = Column(String(64), nullable=False)
    tenant_id = Column(String(64), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
