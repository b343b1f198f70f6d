import hashlib
import hmac
import os
import uuid
from datetime import date, timedelta

# Settings are read at import time; keep the app off any on-disk database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("FRONTEND_URL", "https://portal.test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import src.portal.models  # noqa: F401
from src.portal.main import app
from src.portal.db.session import get_db
from src.portal.models.application import ApplicationStatus, InternshipApplication, PaymentStatus
from src.portal.models.coupon import Coupon, DiscountType
from src.portal.models.program import CourseModule, Lesson, Program, ProgramCourse
from src.portal.models.activity import Activity, ActivityType
from src.portal.models.user import User
from src.portal.utils.dependencies import get_document_renderer, get_document_storage, get_payment_gateway
from src.portal.utils.exceptions import GenerationException
from src.portal.utils.payment_gateway import GatewayOrder, RazorpayGateway
from src.portal.utils.security import create_access_token
from src.portal.utils.storage import StoredFile
from src.portal.utils.time import get_current_time

KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"

FAKE_PDF = b"%PDF-1.4\n" + b"0" * 2048


# ─── Collaborator fakes ────────────────────────────────────────

class FakeGateway(RazorpayGateway):
    """Real signature checks, canned orders."""

    def __init__(self):
        super().__init__(key_id="rzp_test_key", key_secret=KEY_SECRET, webhook_secret=WEBHOOK_SECRET)
        self.orders = []

    async def create_order(self, amount_minor, currency, receipt, notes=None):
        order = GatewayOrder(
            id=f"order_{len(self.orders) + 1:04d}",
            amount=amount_minor,
            currency=currency,
            receipt=receipt,
            notes=notes or {},
        )
        self.orders.append(order)
        return order


class FakeRenderer:
    def __init__(self):
        self.calls = []
        self.fail_templates = set()
        self.output = FAKE_PDF

    async def render(self, template_name, context, layout):
        self.calls.append((template_name, context, layout))
        if template_name in self.fail_templates:
            raise GenerationException("browser crashed", step="render")
        return self.output


class FakeStorage:
    def __init__(self):
        self.calls = []
        self.fail_names = set()

    async def upload(self, data, folder, base_name, resource_type="auto"):
        self.calls.append((folder, base_name))
        if any(base_name.startswith(prefix) for prefix in self.fail_names):
            raise GenerationException("storage unavailable", step="upload")
        return StoredFile(url=f"https://cdn.test/{folder}/{base_name}.pdf", storage_id=f"{folder}/{base_name}")


def sign_payment(order_id: str, payment_id: str) -> str:
    return hmac.new(KEY_SECRET.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def sign_webhook(body: bytes) -> str:
    return hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()


# ─── Database ──────────────────────────────────────────────────

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def _user(session, email, role="student", full_name=None):
    user = User(email=email, role=role, full_name=full_name or email.split("@")[0].title())
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def student(session):
    return _user(session, "asha@example.com", full_name="Asha Rao")


@pytest.fixture
def other_student(session):
    return _user(session, "ravi@example.com", full_name="Ravi Kumar")


@pytest.fixture
def admin(session):
    return _user(session, "admin@example.com", role="admin", full_name="Portal Admin")


@pytest.fixture
def make_application(session):
    def factory(user, **overrides):
        data = dict(
            user_id=user.id,
            name=user.full_name or "Student",
            email=user.email,
            phone="9876543210",
            college="City Engineering College",
            preferred_domain="Web Development",
            duration=1,
            amount=399,
        )
        data.update(overrides)
        application = InternshipApplication(**data)
        session.add(application)
        session.commit()
        session.refresh(application)
        return application

    return factory


@pytest.fixture
def selected_application(make_application, student):
    return make_application(student, status=ApplicationStatus.SELECTED, duration=6, amount=999)


@pytest.fixture
def documented_application(make_application, student):
    return make_application(
        student,
        status=ApplicationStatus.SELECTED,
        payment_status=PaymentStatus.VERIFIED,
        transaction_id="pay_0001",
        start_date=date(2025, 1, 6),
        end_date=date(2025, 2, 6),
        document_issue_date=date(2025, 1, 3),
    )


@pytest.fixture
def make_coupon(session):
    def factory(code="SAVE10", **overrides):
        data = dict(
            code=code,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=10,
            max_uses=0,
            max_uses_per_user=1,
            expiry_date=get_current_time() + timedelta(days=30),
        )
        data.update(overrides)
        coupon = Coupon(**data)
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        return coupon

    return factory


@pytest.fixture
def make_program(session):
    """Published program with one course/module/lesson and `activities` required activities."""

    def factory(domain="Web Development", activities=2, lesson_published=True, program_published=True):
        program = Program(title=f"{domain} Track", internship_domain=domain, is_published=program_published)
        session.add(program)
        session.commit()
        course = ProgramCourse(program_id=program.id, title="Foundations")
        session.add(course)
        session.commit()
        module = CourseModule(course_id=course.id, title="Module 1")
        session.add(module)
        session.commit()
        lesson = Lesson(module_id=module.id, title="Lesson 1", is_published=lesson_published)
        session.add(lesson)
        session.commit()
        created = []
        for index in range(activities):
            activity = Activity(
                lesson_id=lesson.id,
                title=f"Activity {index + 1}",
                type=ActivityType.ASSIGNMENT,
                order=index,
            )
            session.add(activity)
            created.append(activity)
        session.commit()
        for activity in created:
            session.refresh(activity)
        session.refresh(program)
        return program, lesson, created

    return factory


# ─── HTTP ──────────────────────────────────────────────────────

@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def client(session, gateway, renderer, storage):
    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_document_renderer] = lambda: renderer
    app.dependency_overrides[get_document_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    token = create_access_token({"user_id": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def random_id() -> str:
    return str(uuid.uuid4())
