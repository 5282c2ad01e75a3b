"""Document repository for database operations.

Owns all document query logic. Every read and write is scoped by owner,
and content updates go through a single conditional UPDATE so that the
version check and the write are one atomic statement.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import func, type_coerce, update
from sqlalchemy.dialects.postgresql import JSONB

from ..models import Document
from ..exceptions import DocumentNotFoundError
from .base import BaseRepository


class _NotSet:
    """Marker for "no folder filter" (None means unfiled documents)."""

    def __repr__(self) -> str:
        return "NOT_SET"


NOT_SET = _NotSet()


@dataclass
class VersionedUpdateResult:
    """Outcome of a version-checked update.

    On conflict nothing was written; ``document`` is the latest stored state
    and ``current_version`` its version, for the client to rebase onto.
    """

    document: Document
    conflict: bool
    client_version: int
    current_version: int


class DocumentRepository(BaseRepository[Document]):
    """Repository for document CRUD operations."""

    model_class = Document
    not_found_error = DocumentNotFoundError

    def create(self, owner_id: str, tenant_id: Optional[str], values: Dict[str, Any]) -> Document:
        """Insert a document at version 1."""
        db_document = Document(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            tenant_id=tenant_id,
            last_modified_by=owner_id,
            version=1,
            **values,
        )
        self.db.add(db_document)
        self.db.flush()
        self.db.refresh(db_document)
        return db_document

    def list_for_owner(
        self,
        owner_id: str,
        tenant_id: Optional[str] = None,
        folder_id: Any = NOT_SET,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Owner's documents, most recently updated first."""
        query = self._owned_query(owner_id)
        if tenant_id is not None:
            query = query.filter(Document.tenant_id == tenant_id)
        if folder_id is None:
            query = query.filter(Document.folder_id.is_(None))
        elif folder_id is not NOT_SET:
            query = query.filter(Document.folder_id == folder_id)
        query = query.order_by(Document.updated_at.desc(), Document.created_at.desc(), Document.id)
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def list_by_assignment(self, assignment_id: str, tenant_id: str) -> List[Document]:
        """Submissions to one assignment within a tenant, newest first."""
        return (
            self.db.query(Document)
            .filter(Document.assignment_id == assignment_id, Document.tenant_id == tenant_id)
            .order_by(Document.created_at.desc(), Document.id)
            .all()
        )

    def list_by_class(self, class_id: str, tenant_id: str) -> List[Document]:
        """Documents linked to one class within a tenant, most recently updated first."""
        return (
            self.db.query(Document)
            .filter(Document.class_id == class_id, Document.tenant_id == tenant_id)
            .order_by(Document.updated_at.desc(), Document.id)
            .all()
        )

    def get_current(self, doc_id: str, owner_id: str) -> Document:
        """Like get_owned, but overwrites any cached copy with the stored row."""
        document = (
            self._owned_query(owner_id)
            .filter(Document.id == doc_id)
            .populate_existing()
            .first()
        )
        if document is None:
            raise DocumentNotFoundError(doc_id)
        return document

    def count_all(self) -> int:
        return self.db.query(func.count(Document.id)).scalar() or 0

    def update_with_version(
        self,
        doc_id: str,
        owner_id: str,
        client_version: int,
        values: Dict[str, Any],
    ) -> VersionedUpdateResult:
        """Apply *values* only if the stored version equals *client_version*.

        Raises DocumentNotFoundError when the document is absent or owned by
        someone else. A stale version is reported in the result, not raised.
        """
        stmt = (
            update(Document)
            .where(
                Document.id == doc_id,
                Document.owner_id == owner_id,
                Document.version == client_version,
            )
            .values(**values, version=Document.version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)

        # Drop cached rows so the reload reflects what the database now holds
        self.db.expire_all()
        document = self.get_owned(doc_id, owner_id)
        return VersionedUpdateResult(
            document=document,
            conflict=result.rowcount == 0,
            client_version=client_version,
            current_version=document.version,
        )

    def move_to_folder(self, doc_id: str, owner_id: str, folder_id: Optional[str]) -> Document:
        """Set folder_id without a version check and without bumping version."""
        stmt = (
            update(Document)
            .where(Document.id == doc_id, Document.owner_id == owner_id)
            .values(folder_id=folder_id, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            raise DocumentNotFoundError(doc_id)
        self.db.expire_all()
        return self.get_owned(doc_id, owner_id)

    def missing_ids(self, doc_ids: List[str], owner_id: str) -> List[str]:
        """Ids from *doc_ids* that the owner does not have, in input order."""
        rows = (
            self.db.query(Document.id)
            .filter(Document.id.in_(doc_ids), Document.owner_id == owner_id)
            .all()
        )
        found = {row[0] for row in rows}
        return [doc_id for doc_id in doc_ids if doc_id not in found]

    def bulk_move(self, doc_ids: List[str], owner_id: str, folder_id: Optional[str]) -> int:
        stmt = (
            update(Document)
            .where(Document.id.in_(doc_ids), Document.owner_id == owner_id)
            .values(folder_id=folder_id, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def detach_from_folders(self, folder_ids: List[str]) -> int:
        """Null folder_id on every document filed in *folder_ids*. Documents survive."""
        if not folder_ids:
            return 0
        stmt = (
            update(Document)
            .where(Document.folder_id.in_(folder_ids))
            .values(folder_id=None, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def delete(self, doc_id: str, owner_id: str) -> bool:
        """Hard delete. Returns False when there was nothing to delete."""
        deleted = (
            self._owned_query(owner_id)
            .filter(Document.id == doc_id)
            .delete(synchronize_session=False)
        )
        return deleted > 0

    @property
    def supports_json_containment(self) -> bool:
        return self.db.get_bind().dialect.name == "postgresql"

    def find_by_formatting(self, owner_id: str, fragment: Dict[str, Any]) -> List[Document]:
        """Documents whose formatting contains *fragment* (JSONB ``@>``, GIN-indexed)."""
        return (
            self._owned_query(owner_id)
            .filter(type_coerce(Document.formatting, JSONB).contains(fragment))
            .order_by(Document.updated_at.desc(), Document.id)
            .all()
        )
