"""Folder and tree schemas.

Names are trimmed and checked by FolderService so that direct callers and
HTTP clients get the same ValidationError.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List


class FolderCreate(BaseModel):
    """Schema for creating a folder."""
    name: str
    parent_id: Optional[str] = None


class FolderUpdate(BaseModel):
    """Schema for renaming and/or re-parenting a folder.

    ``parent_id`` only takes effect when present in the payload, so that
    ``{"parent_id": null}`` (move to top level) can be told apart from a
    rename-only request.
    """
    name: Optional[str] = None
    parent_id: Optional[str] = None

    @property
    def moves(self) -> bool:
        return 'parent_id' in self.model_fields_set


class FolderMoveRequest(BaseModel):
    """Request to move a folder under a new parent (null = top level)."""
    parent_id: Optional[str] = None


class FolderResponse(BaseModel):
    """Schema for folder response."""
    id: str
    name: str
    parent_id: Optional[str] = None
    owner_id: str
    tenant_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FolderWithCounts(FolderResponse):
    """Folder plus the number of direct children and direct documents."""
    children_count: int = 0
    documents_count: int = 0


class FolderPathResponse(BaseModel):
    """Names from the root down to the folder, joined with '/'."""
    id: str
    path: str
    segments: List[str]


class TreeDocument(BaseModel):
    """Document entry inside a tree node."""
    id: str
    title: str
    document_type: str
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FolderTreeNode(BaseModel):
    """Schema for tree navigation."""
    id: str
    name: str
    parent_id: Optional[str] = None
    children: List['FolderTreeNode'] = []
    documents: List[TreeDocument] = []


class FolderTreeResponse(BaseModel):
    """Whole forest for one owner, plus documents that are not filed."""
    folders: List[FolderTreeNode] = []
    unfiled_documents: List[TreeDocument] = []


class FolderDeleteResponse(BaseModel):
    """Outcome of a cascading folder delete."""
    id: str
    detached_documents: int
