# File: src/portal/controllers/document_controller.py
"""
Document issuance for internship applications.

An admin issues four kinds of PDF for an application: offer letter,
certificate, letter of completion (LOC) and payment slip. Each one is
rendered from an HTML template, checked, uploaded to object storage and
only then recorded on the application's Document row. A document that
already exists is returned as is unless a regeneration is requested, and
the Document's verification id never changes once assigned.
"""
import enum
import logging
import secrets
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from src.portal.config.settings import (
    CURRENCY,
    FRONTEND_URL,
    ORGANIZATION_NAME,
    SIGNATORY_NAME,
    SIGNATORY_TITLE,
    SIGNATURE_IMAGE,
    VERIFICATION_DISPLAY_URL,
    VERIFICATION_ID_PREFIX,
)
from src.portal.controllers.application_controller import after_status_change, get_application
from src.portal.controllers.audit_controller import record_audit
from src.portal.models.application import ApplicationStatus, InternshipApplication, PaymentStatus
from src.portal.models.application_progress import ApplicationProgress
from src.portal.models.document import Document
from src.portal.models.payment import Payment, PaymentState
from src.portal.schemas.document import BulkIssueResponse, DocumentIssueResponse, DocumentVerificationRead
from src.portal.utils.document_assets import amount_in_words, asset_data_url, qr_code_data_url
from src.portal.utils.exceptions import (
    BulkGenerationException,
    DocumentPreconditionFailed,
    GenerationException,
    NotFoundException,
    PersistenceException,
)
from src.portal.utils.pdf_renderer import PageLayout, validate_pdf
from src.portal.utils.storage import StoredFile
from src.portal.utils.time import format_document_date, get_current_time, local_today

logger = logging.getLogger(__name__)


class DocumentKind(str, enum.Enum):
    OFFER_LETTER = "offerLetter"
    CERTIFICATE = "certificate"
    LOC = "loc"
    PAYMENT_SLIP = "paymentSlip"


@dataclass(frozen=True)
class DocumentSpec:
    slug: str
    template: str
    landscape: bool = False

    @property
    def folder(self) -> str:
        return f"documents/{self.slug}s"

    @property
    def url_field(self) -> str:
        return f"{self.slug}_url"

    @property
    def public_id_field(self) -> str:
        return f"{self.slug}_public_id"

    @property
    def visible_field(self) -> str:
        return f"{self.slug}_visible"

    def base_name(self, application_id: uuid.UUID) -> str:
        return f"{self.slug}_{application_id}"

    def layout(self) -> PageLayout:
        return PageLayout(landscape=self.landscape)


DOCUMENT_SPECS: Dict[DocumentKind, DocumentSpec] = {
    DocumentKind.OFFER_LETTER: DocumentSpec("offer_letter", "offer_letter.html"),
    DocumentKind.CERTIFICATE: DocumentSpec("certificate", "certificate.html", landscape=True),
    DocumentKind.LOC: DocumentSpec("loc", "loc.html"),
    DocumentKind.PAYMENT_SLIP: DocumentSpec("payment_slip", "payment_slip.html"),
}

# Issuing all three of these moves the application to Approved
CORE_KINDS = (DocumentKind.OFFER_LETTER, DocumentKind.CERTIFICATE, DocumentKind.LOC)


def generate_verification_id() -> str:
    return f"{VERIFICATION_ID_PREFIX}-{int(time.time() * 1000)}-{secrets.randbelow(1000):03d}"


def _find_document(db: Session, application_id: uuid.UUID) -> Optional[Document]:
    return db.exec(select(Document).where(Document.application_id == application_id)).first()


def _get_or_create_document(db: Session, application: InternshipApplication) -> Document:
    document = _find_document(db, application.id)
    if document:
        return document

    document = Document(
        application_id=application.id,
        user_id=application.user_id,
        verification_id=generate_verification_id(),
    )
    db.add(document)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race to another issuer; use the row it created
        db.rollback()
        document = _find_document(db, application.id)
        if document is None:
            raise PersistenceException("Could not create the document record, please retry")
        return document
    db.refresh(document)
    logger.info(f"Document record {document.verification_id} created for application {application.id}")
    return document


# ─── Preconditions and context ─────────────────────────────────

def check_preconditions(db: Session, application: InternshipApplication, kind: DocumentKind):
    if kind in CORE_KINDS and not application.document_issue_date:
        raise DocumentPreconditionFailed(
            "Document issue date must be set before generating documents",
            details={"kind": kind.value},
        )
    if kind == DocumentKind.CERTIFICATE:
        progress = db.exec(
            select(ApplicationProgress).where(ApplicationProgress.application_id == application.id)
        ).first()
        if not progress or not progress.is_eligible_for_certificate:
            raise DocumentPreconditionFailed(
                "Student is not yet eligible for the certificate",
                details={"kind": kind.value},
            )
    if kind == DocumentKind.PAYMENT_SLIP and application.payment_status != PaymentStatus.VERIFIED:
        raise DocumentPreconditionFailed(
            "Payment must be verified before issuing a payment slip",
            details={"kind": kind.value},
        )


def build_context(
    application: InternshipApplication,
    document: Document,
    kind: DocumentKind,
    amount_paid: Optional[int] = None,
) -> dict:
    verification_url = f"{FRONTEND_URL}/verify/{document.verification_id}"
    context = {
        "organization": ORGANIZATION_NAME,
        "name": application.name,
        "role": application.preferred_domain,
        "college": application.college,
        "start_date": format_document_date(application.start_date),
        "end_date": format_document_date(application.end_date),
        "issue_date": format_document_date(application.document_issue_date or local_today()),
        "verification_id": document.verification_id,
        "verification_url": verification_url,
        "verification_display_url": VERIFICATION_DISPLAY_URL,
        "qr_code": qr_code_data_url(verification_url),
        "logo": asset_data_url("logo.svg"),
        "signature": asset_data_url(SIGNATURE_IMAGE) if SIGNATURE_IMAGE else None,
        "signatory_name": SIGNATORY_NAME,
        "signatory_title": SIGNATORY_TITLE,
    }
    if kind == DocumentKind.PAYMENT_SLIP:
        amount = amount_paid if amount_paid is not None else application.amount
        context.update({
            "receipt_no": f"REC-{str(int(time.time() * 1000))[-6:]}",
            "email": application.email,
            "phone": application.phone,
            "duration": application.duration,
            "amount": amount,
            "amount_in_words": amount_in_words(amount),
            "currency": CURRENCY,
            "transaction_id": application.transaction_id or "N/A",
        })
    return context


# ─── Pipeline steps ────────────────────────────────────────────

def _amount_paid(db: Session, application: InternshipApplication) -> Optional[int]:
    payment = db.exec(
        select(Payment).where(
            Payment.application_id == application.id,
            Payment.status == PaymentState.CAPTURED,
        )
    ).first()
    return payment.amount if payment else None


async def _render(db: Session, renderer, application: InternshipApplication, document: Document,
                  kind: DocumentKind) -> bytes:
    spec = DOCUMENT_SPECS[kind]
    amount_paid = _amount_paid(db, application) if kind == DocumentKind.PAYMENT_SLIP else None
    try:
        context = build_context(application, document, kind, amount_paid)
        pdf = await renderer.render(spec.template, context, spec.layout())
        return validate_pdf(pdf)
    except GenerationException as e:
        logger.error(f"Rendering {kind.value} failed for application {application.id} at step {e.step}: {e.message}")
        raise


async def _upload(storage, application: InternshipApplication, kind: DocumentKind, pdf: bytes) -> StoredFile:
    spec = DOCUMENT_SPECS[kind]
    try:
        return await storage.upload(pdf, spec.folder, spec.base_name(application.id))
    except GenerationException as e:
        logger.error(f"Uploading {kind.value} failed for application {application.id}: {e.message}")
        raise


def _persist(db: Session, document: Document, kind: DocumentKind, stored: StoredFile):
    # Only this kind's columns are written; sibling documents are left untouched
    spec = DOCUMENT_SPECS[kind]
    setattr(document, spec.url_field, stored.url)
    setattr(document, spec.public_id_field, stored.storage_id)
    document.updated_at = get_current_time()
    db.add(document)


def _core_documents_complete(document: Document) -> bool:
    return all(getattr(document, DOCUMENT_SPECS[kind].url_field) for kind in CORE_KINDS)


def _advance_status(db: Session, application: InternshipApplication, document: Document) -> bool:
    if not _core_documents_complete(document):
        return False
    if application.status in (ApplicationStatus.APPROVED, ApplicationStatus.COMPLETED):
        return False
    application.status = ApplicationStatus.APPROVED
    application.updated_at = get_current_time()
    db.add(application)
    logger.info(f"All core documents issued, application {application.id} approved")
    return True


# ─── Operations ────────────────────────────────────────────────

async def issue_document(
    db: Session,
    application_id: uuid.UUID,
    kind: DocumentKind,
    renderer,
    storage,
    actor_id: uuid.UUID,
    regenerate: bool = False,
    ip_address: Optional[str] = None,
) -> DocumentIssueResponse:
    application = get_application(db, application_id)
    spec = DOCUMENT_SPECS[kind]

    existing = _find_document(db, application.id)
    if existing and getattr(existing, spec.url_field) and not regenerate:
        return DocumentIssueResponse(
            application_id=application.id,
            kind=kind.value,
            url=getattr(existing, spec.url_field),
            verification_id=existing.verification_id,
            already_existed=True,
        )

    check_preconditions(db, application, kind)
    document = _get_or_create_document(db, application)

    pdf = await _render(db, renderer, application, document, kind)
    stored = await _upload(storage, application, kind, pdf)

    _persist(db, document, kind, stored)
    previous_status = application.status
    advanced = kind in CORE_KINDS and _advance_status(db, application, document)
    record_audit(
        db, actor_id, f"{'REGENERATE' if regenerate else 'GENERATE'}_{spec.slug.upper()}",
        "InternshipApplication", application.id,
        {"url": stored.url, "verification_id": document.verification_id},
        ip_address,
    )
    db.commit()
    db.refresh(document)
    logger.info(f"{kind.value} issued for application {application.id}: {stored.url}")

    if advanced:
        db.refresh(application)
        after_status_change(db, application, previous_status)

    return DocumentIssueResponse(
        application_id=application.id,
        kind=kind.value,
        url=stored.url,
        verification_id=document.verification_id,
        regenerated=regenerate,
    )


async def regenerate_document(db: Session, application_id: uuid.UUID, kind: DocumentKind, renderer, storage,
                              actor_id: uuid.UUID, ip_address: Optional[str] = None) -> DocumentIssueResponse:
    return await issue_document(db, application_id, kind, renderer, storage, actor_id,
                                regenerate=True, ip_address=ip_address)


async def issue_core_documents(
    db: Session,
    application_id: uuid.UUID,
    renderer,
    storage,
    actor_id: uuid.UUID,
    regenerate: bool = False,
    ip_address: Optional[str] = None,
) -> BulkIssueResponse:
    """
    Issue the offer letter, certificate and LOC together.

    Every pending kind is rendered before anything is uploaded, so a render
    failure leaves storage and the Document untouched. Upload failures keep
    whatever was uploaded before them. The application is only approved
    when all three documents exist.
    """
    application = get_application(db, application_id)
    existing = _find_document(db, application.id)

    results: Dict[str, str] = {}
    pending: List[DocumentKind] = []
    for kind in CORE_KINDS:
        if existing and getattr(existing, DOCUMENT_SPECS[kind].url_field) and not regenerate:
            results[kind.value] = "existing"
        else:
            pending.append(kind)

    for kind in pending:
        check_preconditions(db, application, kind)

    document = _get_or_create_document(db, application)

    rendered: Dict[DocumentKind, bytes] = {}
    for kind in pending:
        try:
            rendered[kind] = await _render(db, renderer, application, document, kind)
        except GenerationException as e:
            results[kind.value] = f"failed: {e.message}"
            for other in pending:
                results.setdefault(other.value, "skipped")
            raise BulkGenerationException("Document rendering failed, nothing was uploaded", results, step="render")

    upload_error: Optional[GenerationException] = None
    for kind in pending:
        if upload_error:
            results[kind.value] = "skipped"
            continue
        try:
            stored = await _upload(storage, application, kind, rendered[kind])
        except GenerationException as e:
            upload_error = e
            results[kind.value] = f"failed: {e.message}"
            continue
        _persist(db, document, kind, stored)
        results[kind.value] = "issued"

    previous_status = application.status
    advanced = upload_error is None and _advance_status(db, application, document)
    if pending:
        record_audit(
            db, actor_id, "REGENERATE_CORE_DOCUMENTS" if regenerate else "GENERATE_CORE_DOCUMENTS",
            "InternshipApplication", application.id, {"results": results}, ip_address,
        )
    db.commit()
    db.refresh(document)

    if upload_error:
        raise BulkGenerationException("Some documents could not be uploaded", results, step="upload")

    if advanced:
        db.refresh(application)
        after_status_change(db, application, previous_status)

    return BulkIssueResponse(
        application_id=application.id,
        verification_id=document.verification_id,
        results=results,
        urls={kind.value: getattr(document, DOCUMENT_SPECS[kind].url_field) for kind in CORE_KINDS},
        status=application.status.value,
    )


def get_documents(db: Session, application_id: uuid.UUID) -> Document:
    get_application(db, application_id)
    document = _find_document(db, application_id)
    if not document:
        raise NotFoundException("No documents issued for this application")
    return document


def set_visibility(
    db: Session,
    application_id: uuid.UUID,
    kind: DocumentKind,
    visible: bool,
    admin_id: uuid.UUID,
    ip_address: Optional[str] = None,
) -> Document:
    document = get_documents(db, application_id)
    spec = DOCUMENT_SPECS[kind]
    if visible and not getattr(document, spec.url_field):
        raise DocumentPreconditionFailed(f"{kind.value} has not been generated yet")
    setattr(document, spec.visible_field, visible)
    db.add(document)
    record_audit(
        db, admin_id, "TOGGLE_DOCUMENT_VISIBILITY", "Document", document.id,
        {"kind": kind.value, "visible": visible}, ip_address,
    )
    db.commit()
    db.refresh(document)
    return document


def get_by_verification_id(db: Session, verification_id: str) -> DocumentVerificationRead:
    """Public lookup used by the QR code; only artifacts the admin published are exposed."""
    document = db.exec(select(Document).where(Document.verification_id == verification_id)).first()
    if not document:
        raise NotFoundException("Invalid verification ID")
    application = db.get(InternshipApplication, document.application_id)
    if not application:
        raise NotFoundException("Invalid verification ID")

    published = {}
    for kind, spec in DOCUMENT_SPECS.items():
        url = getattr(document, spec.url_field)
        if url and getattr(document, spec.visible_field):
            published[kind.value] = url

    return DocumentVerificationRead(
        verification_id=document.verification_id,
        name=application.name,
        domain=application.preferred_domain,
        college=application.college,
        start_date=application.start_date,
        end_date=application.end_date,
        issued_on=document.issued_on,
        documents=published,
    )
