# src/portal/schemas/__init__.py

# Request and response models for the HTTP layer. Read models are built
# from ORM rows with `from_attributes`.
from .application import ApplicationCreate, ApplicationRead, ApplicationStatusUpdate
from .coupon import CouponCreate, CouponRead, CouponUpdate
from .document import DocumentRead
from .lms import EnrollmentRead, LMSCertificateRead, ProgramRead
from .payment import CreateOrderRequest, VerifyPaymentRequest
from .task import SubmissionRead, TaskCreate, TaskRead
