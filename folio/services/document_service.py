"""Document service: deep module for document lifecycle.

Owns create, read, version-checked update, placement and deletion of
documents. Concurrent writers are reconciled by the repository's single
conditional UPDATE; this layer validates input before anything is written
and decides what the write contains.
"""

from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
import logging
from ..models import Document
from ..schemas.document import DocumentCreate, DocumentUpdate
from ..schemas.formatting import DocumentFormatting
from ..repositories import DocumentRepository, NOT_SET, VersionedUpdateResult
from ..exceptions import DocumentNotFoundError, ValidationError
from .content_utils import json_contains
from .folder_service import FolderService

# Columns that may be changed but never set to NULL.
REQUIRED_FIELDS = frozenset({
    "title", "content", "content_format", "document_type", "citation_style",
    "formatting", "outline", "research_notes", "sources",
})

logger = logging.getLogger(__name__)


class DocumentService:
    """Deep module for document operations.

    Folder checks go through FolderService.ensure_owned_folder only; a
    document may reference a folder of its own owner and nothing else.
    """

    def __init__(self, db: Session, folder_service: Optional[FolderService] = None):
        self.db = db
        self.doc_repo = DocumentRepository(db)
        self.folder_service = folder_service or FolderService(db)

    def create_document(self, owner_id: str, tenant_id: Optional[str], data: DocumentCreate) -> Document:
        """Create a document at version 1."""
        if data.folder_id is not None:
            self.folder_service.ensure_owned_folder(data.folder_id, owner_id)

        formatting = data.formatting or DocumentFormatting()
        formatting.validate_bounds(data.content)

        values = data.model_dump(exclude={"formatting"})
        values["formatting"] = formatting.to_storage()

        db_document = self.doc_repo.create(owner_id, tenant_id, values)
        self.db.commit()
        logger.info("Created document %s for owner %s (folder=%s)", db_document.id, owner_id, data.folder_id)
        return db_document

    def get_document(self, doc_id: str, owner_id: str) -> Document:
        """Raises DocumentNotFoundError when absent or owned by someone else."""
        return self.doc_repo.get_owned(doc_id, owner_id)

    def find_document(self, doc_id: str, owner_id: str) -> Optional[Document]:
        return self.doc_repo.get_owned_optional(doc_id, owner_id)

    def list_documents(
        self,
        owner_id: str,
        tenant_id: Optional[str] = None,
        folder_id: Any = NOT_SET,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """List documents, newest update first.

        ``folder_id`` left at NOT_SET lists everything; ``None`` lists only
        documents that are in no folder.
        """
        return self.doc_repo.list_for_owner(owner_id, tenant_id, folder_id, skip=skip, limit=limit)

    def list_by_assignment(self, assignment_id: str, tenant_id: str) -> List[Document]:
        """Every submission to *assignment_id* in the tenant, across owners.

        Deciding who may see another owner's submission is the caller's job.
        """
        return self.doc_repo.list_by_assignment(assignment_id, tenant_id)

    def list_by_class(self, class_id: str, tenant_id: str) -> List[Document]:
        return self.doc_repo.list_by_class(class_id, tenant_id)

    def update_with_version(
        self,
        doc_id: str,
        owner_id: str,
        client_version: int,
        changes: DocumentUpdate,
    ) -> VersionedUpdateResult:
        """Apply *changes* if the document is still at *client_version*.

        A stale version is not an error: the result has ``conflict=True``,
        nothing is written and ``document`` holds the latest state. No retry
        happens here; rebasing is the caller's decision.
        """
        fields = changes.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No changes supplied")

        for name in sorted(fields):
            if name in REQUIRED_FIELDS and fields[name] is None:
                raise ValidationError(f"{name} cannot be null", field=name)

        # Checks below depend on stored state, which a stale client never saw.
        stored = self.doc_repo.get_current(doc_id, owner_id)
        if stored.version != client_version:
            return self._conflict(stored, client_version)

        if fields.get("folder_id") is not None:
            self.folder_service.ensure_owned_folder(fields["folder_id"], owner_id)

        values: Dict[str, Any] = {k: v for k, v in fields.items() if k != "formatting"}
        values.update(self._formatting_values(stored, changes, fields))
        values["last_modified_by"] = owner_id

        result = self.doc_repo.update_with_version(doc_id, owner_id, client_version, values)
        if result.conflict:
            self.db.rollback()
            return self._conflict(result.document, client_version)

        self.db.commit()
        logger.info("Updated document %s to version %d", doc_id, result.current_version)
        return result

    def move_to_folder(self, doc_id: str, owner_id: str, folder_id: Optional[str] = None) -> Document:
        """File the document under *folder_id* (None = unfiled).

        Placement is metadata: no version check, version unchanged.
        """
        if folder_id is not None:
            self.folder_service.ensure_owned_folder(folder_id, owner_id)
        db_document = self.doc_repo.move_to_folder(doc_id, owner_id, folder_id)
        self.db.commit()
        logger.info("Moved document %s to folder %s", doc_id, folder_id)
        return db_document

    def move_documents_to_folder(
        self, doc_ids: List[str], owner_id: str, folder_id: Optional[str] = None
    ) -> int:
        """Move several documents at once. All ids must be owned or nothing moves."""
        ids = list(dict.fromkeys(doc_ids))
        if not ids:
            return 0
        if folder_id is not None:
            self.folder_service.ensure_owned_folder(folder_id, owner_id)

        missing = self.doc_repo.missing_ids(ids, owner_id)
        if missing:
            raise DocumentNotFoundError(missing[0])

        try:
            moved = self.doc_repo.bulk_move(ids, owner_id, folder_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Moved %d document(s) to folder %s", moved, folder_id)
        return moved

    def delete_document(self, doc_id: str, owner_id: str) -> bool:
        """Hard delete. Idempotent: False when nothing was there to delete."""
        deleted = self.doc_repo.delete(doc_id, owner_id)
        self.db.commit()
        if deleted:
            logger.info("Deleted document %s", doc_id)
        return deleted

    def search_by_formatting(self, owner_id: str, fragment: Dict[str, Any]) -> List[Document]:
        """Documents whose stored formatting contains *fragment*."""
        if self.doc_repo.supports_json_containment:
            return self.doc_repo.find_by_formatting(owner_id, fragment)
        return [
            doc for doc in self.doc_repo.list_for_owner(owner_id)
            if json_contains(doc.formatting, fragment)
        ]

    def count_documents(self) -> int:
        return self.doc_repo.count_all()

    def _conflict(self, document: Document, client_version: int) -> VersionedUpdateResult:
        logger.info(
            "Version conflict on document %s: client=%d current=%d",
            document.id, client_version, document.version,
        )
        return VersionedUpdateResult(
            document=document,
            conflict=True,
            client_version=client_version,
            current_version=document.version,
        )

    def _formatting_values(
        self,
        stored: Document,
        changes: DocumentUpdate,
        fields: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Formatting to write alongside *changes*, validated against the resulting content.

        *stored* is the row at the client's version. If another write lands
        after it was read, the version guard rejects this update anyway.
        """
        if "formatting" in fields:
            if "content" in fields:
                content = changes.content
            else:
                content = stored.content
            changes.formatting.validate_bounds(content)
            return {"formatting": changes.formatting.to_storage()}

        if "content" in fields:
            current = DocumentFormatting.from_storage(stored.formatting)
            clamped = current.clamped_to(changes.content)
            if clamped.to_storage() != current.to_storage():
                return {"formatting": clamped.to_storage()}

        return {}
