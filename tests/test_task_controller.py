import uuid

import pytest
from sqlmodel import select

from src.portal.controllers import application_controller, task_controller
from src.portal.models.application_progress import ApplicationProgress
from src.portal.models.audit_log import AuditLog
from src.portal.models.notification import Notification
from src.portal.models.task import SubmissionStatus, TaskSubmission, TaskType
from src.portal.schemas.application import EligibilityUpdate
from src.portal.schemas.task import SubmissionCreate, SubmissionEvaluate, TaskCreate, TaskUpdate
from src.portal.utils.exceptions import (
    AuthorizationException,
    ConflictException,
    NotFoundException,
    ValidationException,
)


@pytest.fixture
def make_task(session, admin):
    def factory(title="Build a landing page", domain="Web Development", **overrides):
        data = dict(
            title=title,
            description="Ship it on GitHub Pages",
            type=TaskType.LINK,
            internship_domain=domain,
        )
        data.update(overrides)
        return task_controller.create_task(session, TaskCreate(**data), admin.id)

    return factory


def _submit(session, student, task, application, content="https://github.com/asha/landing"):
    return task_controller.submit_task(
        session, SubmissionCreate(task_id=task.id, application_id=application.id, content=content), student
    )


def _evaluate(session, admin, submission, status, marks=None):
    return task_controller.evaluate_submission(
        session, submission.id, SubmissionEvaluate(status=status, marks=marks), admin.id
    )


# ─── Tasks ─────────────────────────────────────────────────────

def test_create_and_filter_tasks(session, make_task):
    make_task("Landing page")
    make_task("EDA notebook", domain="Data Science ")

    assert [t.title for t in task_controller.list_tasks(session, " web development")] == ["Landing page"]
    assert task_controller.list_tasks(session, "Data Science")[0].internship_domain == "Data Science"
    assert len(task_controller.list_tasks(session)) == 2
    assert session.exec(select(AuditLog).where(AuditLog.action_type == "CREATE_TASK")).all()


def test_passing_marks_cannot_exceed_max(make_task):
    with pytest.raises(ValidationException):
        make_task(max_marks=50, passing_marks=60)


def test_update_task_is_partial(session, admin, make_task):
    task = make_task(max_marks=100)
    updated = task_controller.update_task(session, task.id, TaskUpdate(title="Portfolio site"), admin.id)
    assert updated.title == "Portfolio site"
    assert updated.max_marks == 100
    assert updated.type == TaskType.LINK

    with pytest.raises(NotFoundException):
        task_controller.update_task(session, uuid.uuid4(), TaskUpdate(title="x"), admin.id)


# ─── Submissions ───────────────────────────────────────────────

def test_submission_requires_own_application(session, student, other_student, make_application, make_task):
    task = make_task()
    application = make_application(student)
    with pytest.raises(NotFoundException):
        _submit(session, other_student, task, application)


def test_submission_must_match_domain(session, student, make_application, make_task):
    task = make_task(domain="Data Science")
    with pytest.raises(ValidationException):
        _submit(session, student, task, make_application(student))


def test_resubmission_only_after_rejection(session, admin, student, make_application, make_task):
    task = make_task()
    application = make_application(student)
    submission = _submit(session, student, task, application)

    with pytest.raises(ConflictException):
        _submit(session, student, task, application, content="second try")

    _evaluate(session, admin, submission, SubmissionStatus.RESUBMISSION_REQUIRED)
    again = _submit(session, student, task, application, content="https://github.com/asha/landing-v2")
    assert again.id == submission.id
    assert again.status == SubmissionStatus.SUBMITTED
    assert again.content.endswith("landing-v2")

    _evaluate(session, admin, again, SubmissionStatus.APPROVED, marks=80)
    with pytest.raises(ConflictException):
        _submit(session, student, task, application, content="third try")
    assert len(session.exec(select(TaskSubmission)).all()) == 1


def test_students_only_list_their_own_submissions(
    session, admin, student, other_student, make_application, make_task
):
    task = make_task()
    mine = _submit(session, student, task, make_application(student))
    theirs = _submit(session, other_student, task, make_application(other_student))

    assert [s.id for s in task_controller.list_submissions(session, student)] == [mine.id]
    assert {s.id for s in task_controller.list_submissions(session, admin, task_id=task.id)} == {mine.id, theirs.id}
    assert [
        s.id for s in task_controller.list_submissions(session, admin, application_id=theirs.application_id)
    ] == [theirs.id]


# ─── Evaluation and progress ───────────────────────────────────

def test_evaluation_recomputes_progress(session, admin, student, make_application, make_task):
    application = make_application(student)
    tasks = [make_task(f"Task {index}") for index in range(3)]
    submissions = [_submit(session, student, task, application) for task in tasks]

    _evaluate(session, admin, submissions[0], SubmissionStatus.APPROVED, marks=90)
    progress = task_controller.get_progress(session, application.id, student)
    assert progress.progress_percentage == 33
    assert progress.completed_tasks_count == 1

    _evaluate(session, admin, submissions[1], SubmissionStatus.APPROVED, marks=70)
    _evaluate(session, admin, submissions[2], SubmissionStatus.REJECTED)
    session.refresh(progress)
    assert progress.progress_percentage == 67
    assert progress.completed_tasks_count == 2

    audit = session.exec(select(AuditLog).where(AuditLog.action_type == "EVALUATE_SUBMISSION")).all()
    assert len(audit) == 3
    notifications = session.exec(select(Notification).where(Notification.recipient_id == student.id)).all()
    assert len(notifications) == 3


def test_full_progress_does_not_grant_eligibility(session, admin, student, make_application, make_task):
    application = make_application(student)
    submission = _submit(session, student, make_task(), application)
    _evaluate(session, admin, submission, SubmissionStatus.APPROVED, marks=100)

    progress = task_controller.get_progress(session, application.id, student)
    assert progress.progress_percentage == 100
    assert progress.is_eligible_for_certificate is False

    application_controller.update_eligibility(
        session, application.id, EligibilityUpdate(is_eligible_for_certificate=True), admin.id
    )
    session.refresh(progress)
    assert progress.is_eligible_for_certificate is True
    assert progress.progress_percentage == 100


def test_marks_cannot_exceed_task_maximum(session, admin, student, make_application, make_task):
    submission = _submit(session, student, make_task(max_marks=50), make_application(student))
    with pytest.raises(ValidationException):
        _evaluate(session, admin, submission, SubmissionStatus.APPROVED, marks=60)


def test_task_list_changes_refresh_progress(session, admin, student, make_application, make_task):
    application = make_application(student)
    first = make_task("Task A")
    second = make_task("Task B")
    _evaluate(session, admin, _submit(session, student, first, application), SubmissionStatus.APPROVED)
    progress = task_controller.get_progress(session, application.id, student)
    assert progress.progress_percentage == 50

    make_task("Task C")
    session.refresh(progress)
    assert progress.progress_percentage == 33

    deleted = task_controller.delete_task(session, second.id, admin.id)
    assert deleted == {"submissions": 0, "tasks": 1}
    session.refresh(progress)
    assert progress.progress_percentage == 50

    task_controller.delete_task(session, first.id, admin.id)
    session.refresh(progress)
    assert progress.progress_percentage == 0
    assert progress.completed_tasks_count == 0


def test_progress_without_evaluations(session, student, other_student, make_application):
    application = make_application(student)
    progress = task_controller.get_progress(session, application.id, student)
    assert progress.progress_percentage == 0
    assert progress.is_eligible_for_certificate is False
    assert session.exec(select(ApplicationProgress)).all() == []

    with pytest.raises(AuthorizationException):
        task_controller.get_progress(session, application.id, other_student)


def test_deleting_application_removes_submissions(session, admin, student, make_application, make_task):
    application = make_application(student)
    _submit(session, student, make_task(), application)

    deleted = application_controller.delete_application(session, application.id, admin.id)
    assert deleted["submissions"] == 1
    assert session.exec(select(TaskSubmission)).all() == []
