"""Repository for folder database operations.

Holds the queries behind the folder tree: sibling lookups, parent-chain
steps, breadth-first subtree collection and per-folder counts. Validation
of moves lives in FolderService; nothing here commits.
"""

import uuid
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Query, aliased

from ..models import Document, Folder
from ..exceptions import FolderNotFoundError
from .base import BaseRepository


class FolderRepository(BaseRepository[Folder]):
    """Data access layer for folders."""

    model_class = Folder
    not_found_error = FolderNotFoundError

    def create(self, owner_id: str, tenant_id: Optional[str], name: str, parent_id: Optional[str] = None) -> Folder:
        folder = Folder(
            id=str(uuid.uuid4()),
            name=name,
            parent_id=parent_id,
            owner_id=owner_id,
            tenant_id=tenant_id,
        )
        self.db.add(folder)
        self.db.flush()
        self.db.refresh(folder)
        return folder

    def find_sibling(
        self,
        owner_id: str,
        parent_id: Optional[str],
        name: str,
        exclude_id: Optional[str] = None,
    ) -> Optional[Folder]:
        """Folder named *name* directly under *parent_id* (None = top level)."""
        query = self._owned_query(owner_id).filter(Folder.name == name)
        if parent_id is None:
            query = query.filter(Folder.parent_id.is_(None))
        else:
            query = query.filter(Folder.parent_id == parent_id)
        if exclude_id is not None:
            query = query.filter(Folder.id != exclude_id)
        return query.first()

    def list_by_owner(self, owner_id: str, tenant_id: Optional[str] = None) -> List[Folder]:
        query = self._owned_query(owner_id)
        if tenant_id is not None:
            query = query.filter(Folder.tenant_id == tenant_id)
        return query.order_by(Folder.name, Folder.id).all()

    def list_children(self, owner_id: str, parent_id: Optional[str]) -> List[Folder]:
        query = self._owned_query(owner_id)
        if parent_id is None:
            query = query.filter(Folder.parent_id.is_(None))
        else:
            query = query.filter(Folder.parent_id == parent_id)
        return query.order_by(Folder.name, Folder.id).all()

    def get_parent_id(self, folder_id: str) -> Optional[str]:
        """One step up the parent chain. None for top-level or missing rows."""
        return self.db.query(Folder.parent_id).filter(Folder.id == folder_id).scalar()

    def names_by_id(self, folder_ids: List[str]) -> Dict[str, str]:
        if not folder_ids:
            return {}
        rows = self.db.query(Folder.id, Folder.name).filter(Folder.id.in_(folder_ids)).all()
        return {row[0]: row[1] for row in rows}

    def subtree_levels(self, root_id: str) -> List[List[str]]:
        """Folder ids under *root_id* grouped by depth, root level first.

        Iterative breadth-first walk, one query per level. Ids already seen
        are skipped so a corrupt cycle cannot loop forever.
        """
        levels = [[root_id]]
        seen = {root_id}
        frontier = [root_id]
        while frontier:
            rows = self.db.query(Folder.id).filter(Folder.parent_id.in_(frontier)).all()
            frontier = [row[0] for row in rows if row[0] not in seen]
            if frontier:
                seen.update(frontier)
                levels.append(frontier)
        return levels

    def subtree_ids(self, root_id: str) -> List[str]:
        return [folder_id for level in self.subtree_levels(root_id) for folder_id in level]

    def _with_counts(self) -> Query:
        """Folder rows with direct child and direct document counts."""
        child = aliased(Folder)
        children_count = (
            select(func.count(child.id))
            .where(child.parent_id == Folder.id)
            .correlate(Folder)
            .scalar_subquery()
        )
        documents_count = (
            select(func.count(Document.id))
            .where(Document.folder_id == Folder.id)
            .correlate(Folder)
            .scalar_subquery()
        )
        return self.db.query(
            Folder,
            children_count.label("children_count"),
            documents_count.label("documents_count"),
        )

    def get_with_counts(self, folder_id: str, owner_id: str) -> Tuple[Folder, int, int]:
        row = (
            self._with_counts()
            .filter(Folder.id == folder_id, Folder.owner_id == owner_id)
            .first()
        )
        if row is None:
            raise FolderNotFoundError(folder_id)
        return row[0], row[1], row[2]

    def list_with_counts(self, owner_id: str, tenant_id: Optional[str] = None) -> List[Tuple[Folder, int, int]]:
        query = self._with_counts().filter(Folder.owner_id == owner_id)
        if tenant_id is not None:
            query = query.filter(Folder.tenant_id == tenant_id)
        return [(row[0], row[1], row[2]) for row in query.order_by(Folder.name, Folder.id).all()]

    def update_fields(self, folder: Folder, **fields) -> Folder:
        for key, value in fields.items():
            setattr(folder, key, value)
        folder.updated_at = func.now()
        self.db.flush()
        self.db.refresh(folder)
        return folder

    def delete_many(self, folder_ids: List[str]) -> int:
        if not folder_ids:
            return 0
        return (
            self.db.query(Folder)
            .filter(Folder.id.in_(folder_ids))
            .delete(synchronize_session=False)
        )
