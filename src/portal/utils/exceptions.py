"""
Portal business exceptions.

Every error raised by the controllers derives from PortalException, which
carries the HTTP status code and a stable error code. The FastAPI handlers
registered in main.py turn them into JSON responses of the form
{"detail": ..., "error_code": ..., "details": {...}}.
"""

from typing import Any, Dict, Optional


class PortalException(Exception):
    """
    Base exception for portal business and collaborator errors.

    Attributes:
        message (str): Human-readable error message
        status_code (int): HTTP status code returned to the client
        error_code (str): Stable machine-readable code
        details (Dict[str, Any]): Additional error context
    """

    status_code: int = 500
    error_code: str = "PORTAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to the JSON body sent to the client."""
        body: Dict[str, Any] = {"detail": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationException(PortalException):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class NotFoundException(PortalException):
    status_code = 404
    error_code = "NOT_FOUND"


class ConflictException(PortalException):
    """A business rule rejected the request given the current state."""

    status_code = 400
    error_code = "CONFLICT"


class DuplicateActiveApplication(ConflictException):
    error_code = "DUPLICATE_ACTIVE_APPLICATION"


class PaymentNotAllowed(ConflictException):
    error_code = "PAYMENT_NOT_ALLOWED"


class DocumentPreconditionFailed(ConflictException):
    error_code = "DOCUMENT_PRECONDITION_FAILED"


class CertificateAlreadyIssued(ConflictException):
    error_code = "CERTIFICATE_ALREADY_ISSUED"


class ProgramIncomplete(ConflictException):
    error_code = "PROGRAM_INCOMPLETE"


# ─── Coupons ───────────────────────────────────────────────────

class CouponException(ConflictException):
    error_code = "COUPON_ERROR"


class CouponNotFound(CouponException):
    error_code = "COUPON_NOT_FOUND"


class CouponExpired(CouponException):
    error_code = "COUPON_EXPIRED"


class CouponExhausted(CouponException):
    error_code = "COUPON_EXHAUSTED"


class CouponAlreadyUsed(CouponException):
    error_code = "COUPON_ALREADY_USED"


class CouponNotApplicable(CouponException):
    error_code = "COUPON_NOT_APPLICABLE"


class AuthorizationException(PortalException):
    status_code = 403
    error_code = "FORBIDDEN"


class SignatureException(PortalException):
    status_code = 400
    error_code = "INVALID_SIGNATURE"


# ─── Collaborators ─────────────────────────────────────────────

class GenerationException(PortalException):
    """
    Rendering or uploading a document failed.

    Attributes:
        step (str): Pipeline step that failed ("render", "validate" or "upload")
        retryable (bool): Whether repeating the request may succeed
    """

    status_code = 500
    error_code = "DOCUMENT_GENERATION_FAILED"

    def __init__(
        self,
        message: str,
        step: str,
        retryable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.step = step
        self.retryable = retryable
        merged = {"step": step, "retryable": retryable}
        merged.update(details or {})
        super().__init__(message, details=merged)


class BulkGenerationException(GenerationException):
    """Raised when issuing the core document set did not fully succeed."""

    error_code = "BULK_GENERATION_FAILED"

    def __init__(self, message: str, results: Dict[str, str], step: str = "bulk") -> None:
        self.results = results
        super().__init__(message, step=step, retryable=True, details={"results": results})


class PaymentGatewayException(PortalException):
    status_code = 502
    error_code = "PAYMENT_GATEWAY_ERROR"


class PersistenceException(PortalException):
    status_code = 500
    error_code = "PERSISTENCE_ERROR"
