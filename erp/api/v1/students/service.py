"""
Student repository. Creation from an admission goes through the admissions workflow, which reuses
insert_student inside its own unit of work. hostel_alloc_id is only written by the hostel workflow.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.enums import AllocationStatus, AuditAction, EnrollmentStatus
from erp.core.exceptions import ConflictError, NotFoundError, require_fields
from erp.core.ids import STUDENT_PREFIX, new_id
from erp.core.timestamps import now_iso
from erp.db.table_store import Record, TableStore
from erp.db.unit_of_work import UnitOfWork

from erp.api.v1.audit.service import log_audit
from erp.api.v1.courses.schemas import EnrollmentResponse

from .schemas import StudentCreate, StudentResponse, StudentStats, StudentUpdate

logger = logging.getLogger(__name__)

TABLE = "students"
REQUIRED_FIELDS = ("student_id", "first_name", "last_name", "email")


def _to_response(row: Record) -> StudentResponse:
    return StudentResponse(**row)


def student_lock(student_id: str) -> str:
    return f"student:{student_id}"


def student_email_lock(email: str) -> str:
    return f"student-email:{(email or '').strip().lower()}"


async def find_student(store: TableStore, student_id: str, *, for_update: bool = False):
    """(row, position) for the student or raise NotFoundError."""
    found = await store.find_by_key(TABLE, "student_id", student_id, for_update=for_update)
    if not found:
        raise NotFoundError("Student not found")
    return found


async def insert_student(store: TableStore, record: Record) -> Record:
    """
    Validate and insert a new student row. The caller owns the unit of work, holds the student and
    student-email locks and writes the audit entry for its operation.
    """
    require_fields(record, REQUIRED_FIELDS)
    if await store.find_by_key(TABLE, "student_id", record["student_id"]):
        raise ConflictError("Student with this ID already exists")
    if await store.find_by_key(TABLE, "email", record["email"]):
        raise ConflictError("A student with this email already exists")
    return await store.insert(TABLE, record)


async def set_hostel_alloc(store: TableStore, student_id: str, alloc_id: str) -> Tuple[Record, Record]:
    """
    Point the student at its active allocation, or clear it with alloc_id=''.
    Returns (before, after); the hostel workflow audits both as part of its own entry.
    """
    current, position = await find_student(store, student_id, for_update=True)
    updated = {**current, "hostel_alloc_id": alloc_id, "updated_at": now_iso()}
    row = await store.update_at(TABLE, position, updated)
    return current, row


async def create_student(
    db: AsyncSession,
    payload: StudentCreate,
    performed_by: Optional[str] = None,
) -> StudentResponse:
    now = now_iso()
    data = payload.model_dump()
    student_id = (data.pop("student_id") or "").strip() or new_id(STUDENT_PREFIX)
    record = {
        **data,
        "student_id": student_id,
        "enrollment_status": payload.enrollment_status.value,
        "admission_date": payload.admission_date or now,
        "hostel_alloc_id": "",
        "admission_id": "",
        "created_at": now,
        "updated_at": now,
    }
    async with UnitOfWork(db, student_lock(student_id), student_email_lock(record["email"])) as uow:
        row = await insert_student(uow.store, record)
        await log_audit(uow.store, TABLE, student_id, AuditAction.CREATE.value, None, row, user_id=performed_by)
    return _to_response(row)


async def get_student(db: AsyncSession, student_id: str) -> StudentResponse:
    row, _ = await find_student(TableStore(db), student_id)
    return _to_response(row)


async def list_students(
    db: AsyncSession,
    programme_id: Optional[str] = None,
    enrollment_status: Optional[str] = None,
    year_of_study: Optional[int] = None,
) -> List[StudentResponse]:
    rows = await TableStore(db).find_all(
        TABLE,
        {
            "programme_id": programme_id,
            "enrollment_status": enrollment_status,
            "year_of_study": year_of_study,
        },
        order_by="created_at",
    )
    return [_to_response(r) for r in rows]


async def update_student(
    db: AsyncSession,
    student_id: str,
    payload: StudentUpdate,
    performed_by: Optional[str] = None,
) -> StudentResponse:
    changes = payload.model_dump(exclude_unset=True)
    if "enrollment_status" in changes and changes["enrollment_status"] is not None:
        changes["enrollment_status"] = EnrollmentStatus(changes["enrollment_status"]).value
    changes = {k: v for k, v in changes.items() if v is not None}
    email_lock = student_email_lock(changes["email"]) if changes.get("email") else None
    async with UnitOfWork(db, student_lock(student_id), email_lock) as uow:
        store = uow.store
        current, position = await find_student(store, student_id, for_update=True)
        new_email = changes.get("email")
        if new_email and new_email != current["email"]:
            other = await store.find_by_key(TABLE, "email", new_email)
            if other and other[1] != student_id:
                raise ConflictError("A student with this email already exists")
        updated = {**current, **changes, "updated_at": now_iso()}
        row = await store.update_at(TABLE, position, updated)
        await log_audit(store, TABLE, student_id, AuditAction.UPDATE.value, current, row, user_id=performed_by)
    return _to_response(row)


async def delete_student(
    db: AsyncSession,
    student_id: str,
    performed_by: Optional[str] = None,
) -> StudentResponse:
    """Soft delete: enrollment_status -> inactive. Refused while the student holds a hostel room."""
    async with UnitOfWork(db, student_lock(student_id)) as uow:
        store = uow.store
        current, position = await find_student(store, student_id, for_update=True)
        active = await store.find_one(
            "hostel_allocations",
            {"student_id": student_id, "status": AllocationStatus.active.value},
        )
        if active:
            raise ConflictError("Cannot deactivate a student with an active hostel allocation")
        updated = {**current, "enrollment_status": EnrollmentStatus.inactive.value, "updated_at": now_iso()}
        row = await store.update_at(TABLE, position, updated)
        await log_audit(store, TABLE, student_id, AuditAction.DELETE.value, current, row, user_id=performed_by)
    logger.info("Student %s deactivated", student_id)
    return _to_response(row)


async def get_student_courses(db: AsyncSession, student_id: str) -> List[EnrollmentResponse]:
    store = TableStore(db)
    await find_student(store, student_id)
    rows = await store.find_all("enrollments", {"student_id": student_id}, order_by="enrolled_on")
    return [EnrollmentResponse(**r) for r in rows]


async def get_student_stats(db: AsyncSession) -> StudentStats:
    stats = StudentStats()
    for s in await TableStore(db).find_all(TABLE):
        stats.total += 1
        if s["enrollment_status"] == EnrollmentStatus.active.value:
            stats.active += 1
        else:
            stats.inactive += 1
        programme = s["programme_name"] or "Unknown"
        stats.by_programme[programme] = stats.by_programme.get(programme, 0) + 1
        year = str(s["year_of_study"] or "Unknown")
        stats.by_year[year] = stats.by_year.get(year, 0) + 1
    return stats
