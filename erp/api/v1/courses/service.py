"""Course repository and enrollments. A course cannot be deleted while enrollments or exams reference it."""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.enums import AuditAction
from erp.core.exceptions import ConflictError, NotFoundError
from erp.core.ids import ENROLLMENT_PREFIX, new_id
from erp.core.timestamps import now_iso
from erp.db.table_store import Record, TableStore
from erp.db.unit_of_work import UnitOfWork

from erp.api.v1.audit.service import log_audit
from erp.api.v1.exams.schemas import ExamResponse
from erp.api.v1.students.service import find_student, student_lock

from .schemas import (
    CourseCreate,
    CourseResponse,
    CourseUpdate,
    EnrollmentCreate,
    EnrollmentResponse,
)

TABLE = "courses"
ENROLLMENTS = "enrollments"


def _course_lock(course_id: str) -> str:
    return f"course:{course_id}"


async def _find_course(store: TableStore, course_id: str, *, for_update: bool = False):
    found = await store.find_by_key(TABLE, "course_id", course_id, for_update=for_update)
    if not found:
        raise NotFoundError("Course not found")
    return found


# ----- Courses -----

async def create_course(
    db: AsyncSession,
    payload: CourseCreate,
    performed_by: Optional[str] = None,
) -> CourseResponse:
    now = now_iso()
    record = {**payload.model_dump(), "created_at": now, "updated_at": now}
    async with UnitOfWork(db, _course_lock(payload.course_id)) as uow:
        if await uow.store.find_by_key(TABLE, "course_id", payload.course_id):
            raise ConflictError("Course with this ID already exists")
        row = await uow.store.insert(TABLE, record)
        await log_audit(uow.store, TABLE, row["course_id"], AuditAction.CREATE.value, None, row, user_id=performed_by)
    return CourseResponse(**row)


async def get_course(db: AsyncSession, course_id: str) -> CourseResponse:
    row, _ = await _find_course(TableStore(db), course_id)
    return CourseResponse(**row)


async def list_courses(
    db: AsyncSession,
    programme_id: Optional[str] = None,
    semester: Optional[int] = None,
) -> List[CourseResponse]:
    rows = await TableStore(db).find_all(
        TABLE,
        {"programme_id": programme_id, "semester": semester},
        order_by=["semester", "course_id"],
    )
    return [CourseResponse(**r) for r in rows]


async def update_course(
    db: AsyncSession,
    course_id: str,
    payload: CourseUpdate,
    performed_by: Optional[str] = None,
) -> CourseResponse:
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    async with UnitOfWork(db, _course_lock(course_id)) as uow:
        current, position = await _find_course(uow.store, course_id, for_update=True)
        updated = {**current, **changes, "updated_at": now_iso()}
        row = await uow.store.update_at(TABLE, position, updated)
        await log_audit(uow.store, TABLE, course_id, AuditAction.UPDATE.value, current, row, user_id=performed_by)
    return CourseResponse(**row)


async def delete_course(
    db: AsyncSession,
    course_id: str,
    performed_by: Optional[str] = None,
) -> None:
    async with UnitOfWork(db, _course_lock(course_id)) as uow:
        store = uow.store
        current, position = await _find_course(store, course_id, for_update=True)
        if await store.count(ENROLLMENTS, {"course_id": course_id}):
            raise ConflictError("Cannot delete course with active enrollments")
        if await store.count("exams", {"course_id": course_id}):
            raise ConflictError("Cannot delete course with scheduled exams")
        await store.delete_at(TABLE, position)
        await log_audit(store, TABLE, course_id, AuditAction.DELETE.value, current, None, user_id=performed_by)


# ----- Enrollments -----

async def enroll_student(
    db: AsyncSession,
    course_id: str,
    payload: EnrollmentCreate,
    performed_by: Optional[str] = None,
) -> EnrollmentResponse:
    student_id = payload.student_id
    async with UnitOfWork(db, _course_lock(course_id), student_lock(student_id)) as uow:
        store = uow.store
        await _find_course(store, course_id)
        await find_student(store, student_id)
        existing = await store.find_one(ENROLLMENTS, {"course_id": course_id, "student_id": student_id})
        if existing:
            raise ConflictError("Student is already enrolled in this course")
        now = now_iso()
        record: Record = {
            "enroll_id": new_id(ENROLLMENT_PREFIX),
            "student_id": student_id,
            "course_id": course_id,
            "enrolled_on": now,
            "status": payload.status.value,
            "created_at": now,
            "updated_at": now,
        }
        row = await store.insert(ENROLLMENTS, record)
        await log_audit(store, ENROLLMENTS, row["enroll_id"], AuditAction.ENROLL.value, None, row, user_id=performed_by)
    return EnrollmentResponse(**row)


async def list_course_enrollments(db: AsyncSession, course_id: str) -> List[EnrollmentResponse]:
    store = TableStore(db)
    await _find_course(store, course_id)
    rows = await store.find_all(ENROLLMENTS, {"course_id": course_id}, order_by="enrolled_on")
    return [EnrollmentResponse(**r) for r in rows]


async def delete_enrollment(
    db: AsyncSession,
    enroll_id: str,
    performed_by: Optional[str] = None,
) -> None:
    async with UnitOfWork(db, f"enrollment:{enroll_id}") as uow:
        found = await uow.store.find_by_key(ENROLLMENTS, "enroll_id", enroll_id, for_update=True)
        if not found:
            raise NotFoundError("Enrollment not found")
        current, position = found
        await uow.store.delete_at(ENROLLMENTS, position)
        await log_audit(uow.store, ENROLLMENTS, enroll_id, AuditAction.DELETE.value, current, None, user_id=performed_by)


async def list_course_exams(db: AsyncSession, course_id: str) -> List[ExamResponse]:
    store = TableStore(db)
    await _find_course(store, course_id)
    rows = await store.find_all("exams", {"course_id": course_id}, order_by="exam_date")
    return [ExamResponse(**r) for r in rows]
