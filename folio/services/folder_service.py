"""Deep module for all folder operations: CRUD, move, cascade delete, and tree building.

Folders form one forest per owner. The database keeps each row's
``parent_id`` but cannot stop a move from closing a loop, so every
re-parenting goes through ``_ancestor_chain``: a bounded upward walk from the
candidate parent that fails if it meets the moving folder.
"""

import logging
from contextlib import contextmanager
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import ConflictError, StructuralIntegrityError, ValidationError
from ..models import Document, Folder
from ..repositories.document_repository import DocumentRepository
from ..repositories.folder_repository import FolderRepository
from ..schemas.folder import (
    FolderPathResponse,
    FolderResponse,
    FolderTreeNode,
    FolderTreeResponse,
    FolderUpdate,
    FolderWithCounts,
    TreeDocument,
)

MAX_FOLDER_NAME_LENGTH = 255
CYCLE_MESSAGE = "Cannot move folder into itself or its descendants"

logger = logging.getLogger(__name__)


class FolderService:
    """All folder and tree operations behind a simple interface.

    Public methods:
        create_folder       -- new folder under an owned parent (or top level)
        get_folder          -- lookup by id, None when absent or not owned
        ensure_owned_folder -- lookup by id, FolderNotFoundError otherwise
        get_with_counts     -- folder plus direct child / document counts
        list_folders        -- every folder of an owner, with counts
        list_children       -- direct children of a folder (or top level)
        get_folder_path     -- "A/B/C" from the top level down
        update_folder       -- rename and/or re-parent
        move_folder         -- re-parent with cycle and depth checks
        delete_folder       -- remove the subtree; documents are kept, unfiled
        get_tree            -- nested folders with their documents
    """

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        self.folder_repo = FolderRepository(db)
        self.doc_repo = DocumentRepository(db)
        self.max_depth = settings.folder_max_depth if max_depth is None else max_depth

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_folder(
        self,
        owner_id: str,
        tenant_id: Optional[str],
        name: str,
        parent_id: Optional[str] = None,
    ) -> Folder:
        name = self._clean_name(name)

        if parent_id is not None:
            self.folder_repo.get_owned(parent_id, owner_id)
            parent_depth = len(self._ancestor_chain(parent_id))
            if parent_depth + 1 > self.max_depth:
                raise ValidationError(
                    f"Folder nesting cannot exceed {self.max_depth} levels",
                    field="parent_id",
                )

        self._ensure_unique_name(owner_id, parent_id, name)

        with self._unique_name_guard(name):
            folder = self.folder_repo.create(owner_id, tenant_id, name, parent_id)
        logger.info("Created folder %s for owner %s (parent=%s)", folder.id, owner_id, parent_id)
        return folder

    def get_folder(self, folder_id: str, owner_id: str) -> Optional[Folder]:
        return self.folder_repo.get_owned_optional(folder_id, owner_id)

    def ensure_owned_folder(self, folder_id: str, owner_id: str) -> Folder:
        """The one capability DocumentService relies on. Raises FolderNotFoundError."""
        return self.folder_repo.get_owned(folder_id, owner_id)

    def get_with_counts(self, folder_id: str, owner_id: str) -> FolderWithCounts:
        folder, children_count, documents_count = self.folder_repo.get_with_counts(folder_id, owner_id)
        return self._to_counts(folder, children_count, documents_count)

    def list_folders(self, owner_id: str, tenant_id: Optional[str] = None) -> List[FolderWithCounts]:
        return [
            self._to_counts(folder, children_count, documents_count)
            for folder, children_count, documents_count
            in self.folder_repo.list_with_counts(owner_id, tenant_id)
        ]

    def list_children(self, owner_id: str, parent_id: Optional[str] = None) -> List[Folder]:
        if parent_id is not None:
            self.folder_repo.get_owned(parent_id, owner_id)
        return self.folder_repo.list_children(owner_id, parent_id)

    def get_folder_path(self, folder_id: str, owner_id: str) -> FolderPathResponse:
        self.folder_repo.get_owned(folder_id, owner_id)
        chain = self._ancestor_chain(folder_id)
        names = self.folder_repo.names_by_id(chain)
        segments = [names[ancestor_id] for ancestor_id in reversed(chain) if ancestor_id in names]
        return FolderPathResponse(id=folder_id, path="/".join(segments), segments=segments)

    def update_folder(self, folder_id: str, owner_id: str, data: FolderUpdate) -> Folder:
        """Rename and/or re-parent. ``parent_id`` counts only when sent."""
        folder = self.folder_repo.get_owned(folder_id, owner_id)

        new_name = self._clean_name(data.name) if data.name is not None else folder.name
        new_parent_id = data.parent_id if data.moves else folder.parent_id

        if data.moves:
            self._check_move(folder, owner_id, new_parent_id)
        if new_name != folder.name or new_parent_id != folder.parent_id:
            self._ensure_unique_name(owner_id, new_parent_id, new_name, exclude_id=folder.id)

        with self._unique_name_guard(new_name):
            folder = self.folder_repo.update_fields(folder, name=new_name, parent_id=new_parent_id)
        logger.info("Updated folder %s (name=%r, parent=%s)", folder_id, new_name, new_parent_id)
        return folder

    def move_folder(self, folder_id: str, owner_id: str, new_parent_id: Optional[str]) -> Folder:
        """Re-parent *folder_id* under *new_parent_id* (None = top level).

        Raises:
            FolderNotFoundError: folder or new parent absent / not owned
            ValidationError: target is the folder itself or one of its
                descendants, or the subtree would nest too deep
            ConflictError: a sibling with the same name exists at the target
            StructuralIntegrityError: the stored ancestor chain is corrupt
        """
        folder = self.folder_repo.get_owned(folder_id, owner_id)
        self._check_move(folder, owner_id, new_parent_id)
        self._ensure_unique_name(owner_id, new_parent_id, folder.name, exclude_id=folder.id)

        with self._unique_name_guard(folder.name):
            folder = self.folder_repo.update_fields(folder, parent_id=new_parent_id)
        logger.info("Moved folder %s under %s", folder_id, new_parent_id)
        return folder

    def delete_folder(self, folder_id: str, owner_id: str) -> int:
        """Delete the folder and every descendant folder in one transaction.

        Documents in the subtree are never deleted: their folder_id is set to
        NULL. Returns the number of documents detached.
        """
        self.folder_repo.get_owned(folder_id, owner_id)

        try:
            subtree = self.folder_repo.subtree_ids(folder_id)
            detached = self.doc_repo.detach_from_folders(subtree)
            self.folder_repo.delete_many(subtree)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Deleted folder %s with %d descendant(s); detached %d document(s)",
            folder_id, len(subtree) - 1, detached,
        )
        return detached

    def get_tree(self, owner_id: str, tenant_id: Optional[str] = None) -> FolderTreeResponse:
        """Build the owner's folder forest with documents attached to their folders."""
        folders = self.folder_repo.list_by_owner(owner_id, tenant_id)
        documents = self.doc_repo.list_for_owner(owner_id, tenant_id)
        folder_ids = {f.id for f in folders}

        children_by_parent: Dict[Optional[str], List[Folder]] = {}
        for folder in folders:
            parent_id = folder.parent_id if folder.parent_id in folder_ids else None
            children_by_parent.setdefault(parent_id, []).append(folder)

        docs_by_folder: Dict[Optional[str], List[Document]] = {}
        for doc in documents:
            docs_by_folder.setdefault(doc.folder_id, []).append(doc)

        def tree_docs(key: Optional[str]) -> List[TreeDocument]:
            docs = sorted(docs_by_folder.get(key, []), key=lambda d: (d.title.lower(), d.id))
            return [TreeDocument.model_validate(d) for d in docs]

        def build_children(parent_id: Optional[str]) -> List[FolderTreeNode]:
            return [
                FolderTreeNode(
                    id=folder.id,
                    name=folder.name,
                    parent_id=folder.parent_id,
                    children=build_children(folder.id),
                    documents=tree_docs(folder.id),
                )
                for folder in children_by_parent.get(parent_id, [])
            ]

        return FolderTreeResponse(folders=build_children(None), unfiled_documents=tree_docs(None))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _clean_name(self, name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Folder name cannot be empty", field="name")
        if len(name) > MAX_FOLDER_NAME_LENGTH:
            raise ValidationError(
                f"Folder name cannot exceed {MAX_FOLDER_NAME_LENGTH} characters", field="name"
            )
        return name

    def _ensure_unique_name(
        self,
        owner_id: str,
        parent_id: Optional[str],
        name: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        # The unique constraint treats NULL parents as distinct, so top-level
        # names are only protected here.
        if self.folder_repo.find_sibling(owner_id, parent_id, name, exclude_id=exclude_id):
            raise ConflictError(
                f"A folder named '{name}' already exists here",
                details={"name": name, "parent_id": parent_id},
            )

    def _ancestor_chain(self, start_id: str, forbidden_id: Optional[str] = None) -> List[str]:
        """Ids from *start_id* up to its top-level ancestor, *start_id* first.

        Raises ValidationError if *forbidden_id* is met on the way, and
        StructuralIntegrityError if the chain revisits a node or runs past
        the depth ceiling.
        """
        chain: List[str] = []
        seen = set()
        current: Optional[str] = start_id
        while current is not None:
            if current == forbidden_id:
                raise ValidationError(CYCLE_MESSAGE, field="parent_id")
            if current in seen:
                logger.error("Cycle in folder tree at %s (walk started at %s)", current, start_id)
                raise StructuralIntegrityError(current, f"Folder tree contains a cycle at {current}")
            if len(chain) >= self.max_depth:
                logger.error(
                    "Ancestor chain of %s exceeds %d levels", start_id, self.max_depth
                )
                raise StructuralIntegrityError(
                    start_id, f"Folder ancestry exceeds {self.max_depth} levels"
                )
            seen.add(current)
            chain.append(current)
            current = self.folder_repo.get_parent_id(current)
        return chain

    def _check_move(self, folder: Folder, owner_id: str, new_parent_id: Optional[str]) -> None:
        parent_depth = 0
        if new_parent_id is not None:
            self.folder_repo.get_owned(new_parent_id, owner_id)
            if new_parent_id == folder.id:
                raise ValidationError(CYCLE_MESSAGE, field="parent_id")
            parent_depth = len(self._ancestor_chain(new_parent_id, forbidden_id=folder.id))

        subtree_height = len(self.folder_repo.subtree_levels(folder.id)) - 1
        if parent_depth + 1 + subtree_height > self.max_depth:
            raise ValidationError(
                f"Folder nesting cannot exceed {self.max_depth} levels",
                field="parent_id",
            )

    @contextmanager
    def _unique_name_guard(self, name: str):
        """Commit the enclosed write; a sibling-name race surfaces as ConflictError."""
        try:
            yield
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning("Unique constraint rejected folder name %r", name)
            raise ConflictError(
                f"A folder named '{name}' already exists here", details={"name": name}
            )

    @staticmethod
    def _to_counts(folder: Folder, children_count: int, documents_count: int) -> FolderWithCounts:
        data = FolderResponse.model_validate(folder).model_dump()
        return FolderWithCounts(
            **data,
            children_count=children_count or 0,
            documents_count=documents_count or 0,
        )
