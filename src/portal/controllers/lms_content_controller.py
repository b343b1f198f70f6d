# File: src/portal/controllers/lms_content_controller.py
import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from src.portal.controllers.audit_controller import record_audit
from src.portal.controllers.lms_controller import refresh_program_progress
from src.portal.models.activity import Activity, ActivityProgress
from src.portal.models.certificate import LMSCertificate
from src.portal.models.enrollment import Enrollment
from src.portal.models.program import CourseModule, Lesson, Program, ProgramCourse
from src.portal.schemas.lms import ActivityCreate, ContentNodeCreate, ProgramCreate, ProgramUpdate
from src.portal.utils.exceptions import NotFoundException

logger = logging.getLogger(__name__)


def _get_or_404(db: Session, model, object_id: uuid.UUID, label: str):
    obj = db.get(model, object_id)
    if not obj:
        raise NotFoundException(f"{label} not found")
    return obj


def _node_fields(payload: ContentNodeCreate) -> dict:
    # Published flag falls back to the model default when not given
    return payload.model_dump(exclude_none=True)


def _program_id_for_module(db: Session, module_id: uuid.UUID) -> Optional[uuid.UUID]:
    return db.exec(
        select(ProgramCourse.program_id)
        .join(CourseModule, CourseModule.course_id == ProgramCourse.id)
        .where(CourseModule.id == module_id)
    ).first()


def _program_id_for_lesson(db: Session, lesson_id: uuid.UUID) -> Optional[uuid.UUID]:
    return db.exec(
        select(ProgramCourse.program_id)
        .join(CourseModule, CourseModule.course_id == ProgramCourse.id)
        .join(Lesson, Lesson.module_id == CourseModule.id)
        .where(Lesson.id == lesson_id)
    ).first()


# ─── Programs ──────────────────────────────────────────────────

def create_program(db: Session, payload: ProgramCreate, admin_id: uuid.UUID) -> Program:
    program = Program(**payload.model_dump(), created_by=admin_id)
    db.add(program)
    record_audit(db, admin_id, "CREATE_PROGRAM", "Program", program.id, {"title": program.title})
    db.commit()
    db.refresh(program)
    return program


def list_programs(db: Session, published_only: bool = False) -> List[Program]:
    stmt = select(Program)
    if published_only:
        stmt = stmt.where(Program.is_published == True)
    return db.exec(stmt.order_by(Program.created_at.desc())).all()


def get_program(db: Session, program_id: uuid.UUID) -> Program:
    return _get_or_404(db, Program, program_id, "Program")


def update_program(db: Session, program_id: uuid.UUID, payload: ProgramUpdate, admin_id: uuid.UUID) -> Program:
    program = get_program(db, program_id)
    changes = payload.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(program, key, value)
    db.add(program)
    record_audit(db, admin_id, "UPDATE_PROGRAM", "Program", program.id, changes)
    db.commit()
    db.refresh(program)
    return program


# ─── Courses / modules / lessons / activities ──────────────────

def create_course(db: Session, program_id: uuid.UUID, payload: ContentNodeCreate, admin_id: uuid.UUID) -> ProgramCourse:
    get_program(db, program_id)
    course = ProgramCourse(program_id=program_id, **_node_fields(payload))
    db.add(course)
    record_audit(db, admin_id, "CREATE_COURSE", "ProgramCourse", course.id, {"title": course.title})
    db.commit()
    db.refresh(course)
    return course


def list_courses(db: Session, program_id: uuid.UUID) -> List[ProgramCourse]:
    return db.exec(
        select(ProgramCourse).where(ProgramCourse.program_id == program_id).order_by(ProgramCourse.order)
    ).all()


def create_module(db: Session, course_id: uuid.UUID, payload: ContentNodeCreate, admin_id: uuid.UUID) -> CourseModule:
    _get_or_404(db, ProgramCourse, course_id, "Course")
    module = CourseModule(course_id=course_id, **_node_fields(payload))
    db.add(module)
    record_audit(db, admin_id, "CREATE_MODULE", "CourseModule", module.id, {"title": module.title})
    db.commit()
    db.refresh(module)
    return module


def list_modules(db: Session, course_id: uuid.UUID) -> List[CourseModule]:
    return db.exec(
        select(CourseModule).where(CourseModule.course_id == course_id).order_by(CourseModule.order)
    ).all()


def create_lesson(db: Session, module_id: uuid.UUID, payload: ContentNodeCreate, admin_id: uuid.UUID) -> Lesson:
    _get_or_404(db, CourseModule, module_id, "Module")
    lesson = Lesson(module_id=module_id, **_node_fields(payload))
    db.add(lesson)
    record_audit(db, admin_id, "CREATE_LESSON", "Lesson", lesson.id, {"title": lesson.title})
    db.commit()
    db.refresh(lesson)
    return lesson


def list_lessons(db: Session, module_id: uuid.UUID) -> List[Lesson]:
    return db.exec(select(Lesson).where(Lesson.module_id == module_id).order_by(Lesson.order)).all()


def set_lesson_published(db: Session, lesson_id: uuid.UUID, is_published: bool, admin_id: uuid.UUID) -> Lesson:
    lesson = _get_or_404(db, Lesson, lesson_id, "Lesson")
    lesson.is_published = is_published
    db.add(lesson)
    record_audit(db, admin_id, "PUBLISH_LESSON" if is_published else "UNPUBLISH_LESSON", "Lesson", lesson.id)
    db.flush()
    refresh_program_progress(db, _program_id_for_lesson(db, lesson_id))
    db.commit()
    db.refresh(lesson)
    return lesson


def create_activity(db: Session, lesson_id: uuid.UUID, payload: ActivityCreate, admin_id: uuid.UUID) -> Activity:
    _get_or_404(db, Lesson, lesson_id, "Lesson")
    data = payload.model_dump()
    activity = Activity(lesson_id=lesson_id, **data)
    db.add(activity)
    record_audit(
        db, admin_id, "CREATE_ACTIVITY", "Activity", activity.id,
        {"title": activity.title, "type": payload.type.value},
    )
    db.flush()
    refresh_program_progress(db, _program_id_for_lesson(db, lesson_id))
    db.commit()
    db.refresh(activity)
    return activity


def list_activities(db: Session, lesson_id: uuid.UUID) -> List[Activity]:
    return db.exec(select(Activity).where(Activity.lesson_id == lesson_id).order_by(Activity.order)).all()


# ─── Cascading deletes ─────────────────────────────────────────
# Each helper removes the children first and adds its counts to `deleted`.
# Nothing commits until the public delete_* function finishes.

def _delete_activities(db: Session, activity_ids: List[uuid.UUID], deleted: Dict[str, int]):
    if not activity_ids:
        return
    deleted["activity_progress"] += db.exec(
        delete(ActivityProgress).where(ActivityProgress.activity_id.in_(activity_ids))
    ).rowcount
    deleted["activities"] += db.exec(delete(Activity).where(Activity.id.in_(activity_ids))).rowcount


def _delete_lessons(db: Session, lesson_ids: List[uuid.UUID], deleted: Dict[str, int]):
    if not lesson_ids:
        return
    activity_ids = db.exec(select(Activity.id).where(Activity.lesson_id.in_(lesson_ids))).all()
    _delete_activities(db, activity_ids, deleted)
    deleted["lessons"] += db.exec(delete(Lesson).where(Lesson.id.in_(lesson_ids))).rowcount


def _delete_modules(db: Session, module_ids: List[uuid.UUID], deleted: Dict[str, int]):
    if not module_ids:
        return
    lesson_ids = db.exec(select(Lesson.id).where(Lesson.module_id.in_(module_ids))).all()
    _delete_lessons(db, lesson_ids, deleted)
    deleted["modules"] += db.exec(delete(CourseModule).where(CourseModule.id.in_(module_ids))).rowcount


def _delete_courses(db: Session, course_ids: List[uuid.UUID], deleted: Dict[str, int]):
    if not course_ids:
        return
    module_ids = db.exec(select(CourseModule.id).where(CourseModule.course_id.in_(course_ids))).all()
    _delete_modules(db, module_ids, deleted)
    deleted["courses"] += db.exec(delete(ProgramCourse).where(ProgramCourse.id.in_(course_ids))).rowcount


def _empty_counts() -> Dict[str, int]:
    return {
        "courses": 0, "modules": 0, "lessons": 0, "activities": 0,
        "activity_progress": 0, "enrollments": 0, "certificates": 0, "programs": 0,
    }


def _finish_delete(db: Session, admin_id: uuid.UUID, action: str, target_type: str,
                   target_id: uuid.UUID, deleted: Dict[str, int], ip_address: Optional[str],
                   program_id: Optional[uuid.UUID] = None) -> Dict[str, int]:
    if program_id:
        refresh_program_progress(db, program_id)
    counts = {key: value for key, value in deleted.items() if value}
    record_audit(db, admin_id, action, target_type, target_id, counts, ip_address)
    db.commit()
    logger.info(f"{action} {target_id}: {counts}")
    return counts


def delete_program(db: Session, program_id: uuid.UUID, admin_id: uuid.UUID, ip_address: Optional[str] = None) -> Dict[str, int]:
    get_program(db, program_id)
    deleted = _empty_counts()
    course_ids = db.exec(select(ProgramCourse.id).where(ProgramCourse.program_id == program_id)).all()
    _delete_courses(db, course_ids, deleted)

    enrollment_ids = db.exec(select(Enrollment.id).where(Enrollment.program_id == program_id)).all()
    if enrollment_ids:
        deleted["activity_progress"] += db.exec(
            delete(ActivityProgress).where(ActivityProgress.enrollment_id.in_(enrollment_ids))
        ).rowcount
    deleted["certificates"] += db.exec(
        delete(LMSCertificate).where(LMSCertificate.program_id == program_id)
    ).rowcount
    deleted["enrollments"] += db.exec(delete(Enrollment).where(Enrollment.program_id == program_id)).rowcount
    deleted["programs"] += db.exec(delete(Program).where(Program.id == program_id)).rowcount
    return _finish_delete(db, admin_id, "DELETE_PROGRAM", "Program", program_id, deleted, ip_address)


def delete_course(db: Session, course_id: uuid.UUID, admin_id: uuid.UUID, ip_address: Optional[str] = None) -> Dict[str, int]:
    course = _get_or_404(db, ProgramCourse, course_id, "Course")
    program_id = course.program_id
    deleted = _empty_counts()
    _delete_courses(db, [course_id], deleted)
    return _finish_delete(db, admin_id, "DELETE_COURSE", "ProgramCourse", course_id, deleted, ip_address, program_id)


def delete_module(db: Session, module_id: uuid.UUID, admin_id: uuid.UUID, ip_address: Optional[str] = None) -> Dict[str, int]:
    _get_or_404(db, CourseModule, module_id, "Module")
    program_id = _program_id_for_module(db, module_id)
    deleted = _empty_counts()
    _delete_modules(db, [module_id], deleted)
    return _finish_delete(db, admin_id, "DELETE_MODULE", "CourseModule", module_id, deleted, ip_address, program_id)


def delete_lesson(db: Session, lesson_id: uuid.UUID, admin_id: uuid.UUID, ip_address: Optional[str] = None) -> Dict[str, int]:
    _get_or_404(db, Lesson, lesson_id, "Lesson")
    program_id = _program_id_for_lesson(db, lesson_id)
    deleted = _empty_counts()
    _delete_lessons(db, [lesson_id], deleted)
    return _finish_delete(db, admin_id, "DELETE_LESSON", "Lesson", lesson_id, deleted, ip_address, program_id)


def delete_activity(db: Session, activity_id: uuid.UUID, admin_id: uuid.UUID, ip_address: Optional[str] = None) -> Dict[str, int]:
    activity = _get_or_404(db, Activity, activity_id, "Activity")
    program_id = _program_id_for_lesson(db, activity.lesson_id)
    deleted = _empty_counts()
    _delete_activities(db, [activity_id], deleted)
    return _finish_delete(db, admin_id, "DELETE_ACTIVITY", "Activity", activity_id, deleted, ip_address, program_id)
