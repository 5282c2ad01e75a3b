"""Document API endpoints.

Endpoints are thin. DocumentService handles validation, optimistic
concurrency and placement as a deep module. A stale ``version`` on PUT is
answered with 409 and the latest stored document so the client can rebase.
"""

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.auth import ActorContext, require_actor
from ..database import get_db
from ..schemas.document import (
    BulkMoveRequest,
    BulkMoveResult,
    DocumentCreate,
    DocumentListResponse,
    DocumentMoveRequest,
    DocumentResponse,
    DocumentUpdateRequest,
    FormattingSearchRequest,
    VersionConflictResponse,
)
from ..repositories import NOT_SET
from ..services import DocumentService
from ..exceptions import DocumentNotFoundError

router = APIRouter(prefix="/api/documents", tags=["documents"])

# Query value selecting documents that are in no folder.
UNFILED = "null"


@router.post("", response_model=DocumentResponse, status_code=201)
def create_document(
    document: DocumentCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    service = DocumentService(db)
    return service.create_document(actor.owner_id, actor.tenant_id, document)


@router.get("", response_model=List[DocumentListResponse])
def list_documents(
    folder_id: Optional[str] = Query(
        None, description=f"Folder to list; '{UNFILED}' lists documents in no folder"
    ),
    tenant_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """List the caller's documents, most recently updated first."""
    if folder_id is None:
        folder_filter = NOT_SET
    elif folder_id == UNFILED:
        folder_filter = None
    else:
        folder_filter = folder_id

    service = DocumentService(db)
    return service.list_documents(actor.owner_id, tenant_id, folder_filter, skip=skip, limit=limit)


# --- Fixed-path endpoints (must be before /{doc_id} to avoid route shadowing) ---


@router.post("/move", response_model=BulkMoveResult)
def move_documents(
    request: BulkMoveRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """Move several documents into one folder. Fails as a whole if any id is unknown."""
    service = DocumentService(db)
    moved = service.move_documents_to_folder(request.document_ids, actor.owner_id, request.folder_id)
    return BulkMoveResult(moved=moved, folder_id=request.folder_id)


@router.post("/search/formatting", response_model=List[DocumentListResponse])
def search_by_formatting(
    request: FormattingSearchRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """Documents whose formatting contains the given JSON fragment."""
    return DocumentService(db).search_by_formatting(actor.owner_id, request.fragment)


# --- Parameterized routes ---


@router.get("/{doc_id}", response_model=DocumentResponse)
def get_document(
    doc_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    return DocumentService(db).get_document(doc_id, actor.owner_id)


@router.put(
    "/{doc_id}",
    response_model=DocumentResponse,
    responses={409: {"model": VersionConflictResponse}},
)
def update_document(
    doc_id: str,
    request: DocumentUpdateRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """Update a document the client read at ``version``."""
    service = DocumentService(db)
    result = service.update_with_version(doc_id, actor.owner_id, request.version, request.changes())
    if result.conflict:
        body = VersionConflictResponse(
            message="Document was modified by another session",
            client_version=result.client_version,
            current_version=result.current_version,
            latest_document=DocumentResponse.model_validate(result.document),
        )
        return JSONResponse(status_code=409, content=body.model_dump(mode="json"))
    return result.document


@router.put("/{doc_id}/move", response_model=DocumentResponse)
def move_document(
    doc_id: str,
    request: DocumentMoveRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """File the document in a folder (``folder_id: null`` unfiles it). Version is unchanged."""
    return DocumentService(db).move_to_folder(doc_id, actor.owner_id, request.folder_id)


@router.delete("/{doc_id}", status_code=204)
def delete_document(
    doc_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(require_actor),
):
    """Permanently delete a document. 404 when there is nothing to delete."""
    if not DocumentService(db).delete_document(doc_id, actor.owner_id):
        raise DocumentNotFoundError(doc_id)
    return Response(status_code=204)
