# File: src/portal/routers/document_router.py
import uuid

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from src.portal.controllers import document_controller
from src.portal.controllers.document_controller import DocumentKind
from src.portal.db.session import get_db
from src.portal.models.user import User
from src.portal.routers.admin_router import client_ip
from src.portal.schemas.document import (
    BulkIssueResponse,
    DocumentIssueResponse,
    DocumentRead,
    DocumentVerificationRead,
    VisibilityUpdate,
)
from src.portal.utils.dependencies import (
    get_current_admin_user,
    get_document_renderer,
    get_document_storage,
)

router = APIRouter(tags=["Documents"])


@router.post("/applications/{application_id}/documents/core", response_model=BulkIssueResponse)
async def issue_core_documents(
    application_id: uuid.UUID,
    request: Request,
    regenerate: bool = False,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
    renderer=Depends(get_document_renderer),
    storage=Depends(get_document_storage),
):
    """Offer letter, certificate and LOC in one go."""
    return await document_controller.issue_core_documents(
        db, application_id, renderer, storage, admin.id, regenerate, client_ip(request)
    )


@router.post("/applications/{application_id}/documents/{kind}", response_model=DocumentIssueResponse)
async def issue_document(
    application_id: uuid.UUID,
    kind: DocumentKind,
    request: Request,
    regenerate: bool = False,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
    renderer=Depends(get_document_renderer),
    storage=Depends(get_document_storage),
):
    return await document_controller.issue_document(
        db, application_id, kind, renderer, storage, admin.id, regenerate, client_ip(request)
    )


@router.get("/applications/{application_id}/documents", response_model=DocumentRead)
async def get_documents(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return document_controller.get_documents(db, application_id)


@router.patch("/applications/{application_id}/documents/{kind}/visibility", response_model=DocumentRead)
async def set_document_visibility(
    application_id: uuid.UUID,
    kind: DocumentKind,
    payload: VisibilityUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin_user),
):
    return document_controller.set_visibility(
        db, application_id, kind, payload.visible, admin.id, client_ip(request)
    )


# ─── Public ────────────────────────────────────────────────────

public_router = APIRouter(tags=["Verification"])


@public_router.get("/verify/{verification_id}", response_model=DocumentVerificationRead)
async def verify_document(verification_id: str, db: Session = Depends(get_db)):
    return document_controller.get_by_verification_id(db, verification_id)
