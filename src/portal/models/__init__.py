# src/portal/models/__init__.py

# Centralizes all model imports so SQLAlchemy's metadata knows every table
# before create_all() or Alembic autogenerate runs.

# --- Base Models ---
from .user import User

# --- Internship lifecycle ---
from .application import InternshipApplication, ApplicationStatus, PaymentStatus
from .coupon import Coupon, CouponUsage, DiscountType, CouponStatus
from .payment import Payment, PaymentState
from .document import Document
from .application_progress import ApplicationProgress
from .task import InternshipTask, TaskSubmission, TaskType, SubmissionStatus

# --- LMS ---
from .program import Program, ProgramCourse, CourseModule, Lesson
from .enrollment import Enrollment, EnrollmentStatus
from .activity import Activity, ActivityProgress, ActivityType, ActivityStatus
from .certificate import LMSCertificate, CertificateStatus

# --- Notifications and audit ---
from .notification import Notification
from .audit_log import AuditLog


__all__ = [
    "User",
    "InternshipApplication",
    "ApplicationStatus",
    "PaymentStatus",
    "Coupon",
    "CouponUsage",
    "DiscountType",
    "CouponStatus",
    "Payment",
    "PaymentState",
    "Document",
    "ApplicationProgress",
    "InternshipTask",
    "TaskSubmission",
    "TaskType",
    "SubmissionStatus",
    "Program",
    "ProgramCourse",
    "CourseModule",
    "Lesson",
    "Enrollment",
    "EnrollmentStatus",
    "Activity",
    "ActivityProgress",
    "ActivityType",
    "ActivityStatus",
    "LMSCertificate",
    "CertificateStatus",
    "Notification",
    "AuditLog",
]
