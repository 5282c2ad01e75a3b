"""Folder API: CRUD, move, cascade delete, path and tree.

Single router for all folder operations. Delegates to FolderService (deep
module); every call is scoped to the caller's owner id.
"""

import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.auth import ActorContext, require_actor
from ..database import get_db
from ..schemas.folder import (
    FolderCreate,
    FolderDeleteResponse,
    FolderMoveRequest,
    FolderPathResponse,
    FolderResponse,
    FolderTreeResponse,
    FolderUpdate,
    FolderWithCounts,
)
from ..services.folder_service import FolderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["folders"])


# -- Collection -----------------------------------------------------------

@router.get("", response_model=List[FolderWithCounts])
def list_folders(
    tenant_id: Optional[str] = Query(None, description="Only folders of this tenant"),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """All folders of the caller, with direct child and document counts."""
    return FolderService(db).list_folders(actor.owner_id, tenant_id)


@router.post("", response_model=FolderResponse, status_code=201)
def create_folder(
    data: FolderCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    service = FolderService(db)
    return service.create_folder(actor.owner_id, actor.tenant_id, data.name, data.parent_id)


# -- Tree (declared before /{folder_id} so the literal path wins) ----------

@router.get("/tree", response_model=FolderTreeResponse)
def get_tree(
    tenant_id: Optional[str] = Query(None, description="Only folders and documents of this tenant"),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """Nested folders with their documents, plus unfiled documents."""
    return FolderService(db).get_tree(actor.owner_id, tenant_id)


# -- Single folder --------------------------------------------------------

@router.get("/{folder_id}", response_model=FolderWithCounts)
def get_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    return FolderService(db).get_with_counts(folder_id, actor.owner_id)


@router.put("/{folder_id}", response_model=FolderResponse)
def update_folder(
    folder_id: str,
    data: FolderUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """Rename and/or re-parent. Send ``parent_id: null`` to move to the top level."""
    return FolderService(db).update_folder(folder_id, actor.owner_id, data)


@router.put("/{folder_id}/move", response_model=FolderResponse)
def move_folder(
    folder_id: str,
    request: FolderMoveRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """Move a folder under a new parent. Rejects moves into its own subtree."""
    return FolderService(db).move_folder(folder_id, actor.owner_id, request.parent_id)


@router.get("/{folder_id}/path", response_model=FolderPathResponse)
def get_folder_path(
    folder_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    return FolderService(db).get_folder_path(folder_id, actor.owner_id)


@router.delete("/{folder_id}", response_model=FolderDeleteResponse)
def delete_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """Delete the folder and its subfolders. Documents inside become unfiled."""
    detached = FolderService(db).delete_folder(folder_id, actor.owner_id)
    return FolderDeleteResponse(id=folder_id, detached_documents=detached)
