"""
Admission lifecycle. Applications move between pending, under_review, approved and rejected via
update_admission_status; admit_student is the only way to reach `admitted`, and it creates the
Student and links both records in one unit of work.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.enums import AdmissionStatus, AuditAction, EnrollmentStatus
from erp.core.exceptions import ConflictError, NotFoundError, ValidationError
from erp.core.ids import ADMISSION_PREFIX, APPLICATION_PREFIX, STUDENT_PREFIX, new_id
from erp.core.timestamps import now_iso
from erp.db.table_store import Record, TableStore
from erp.db.unit_of_work import UnitOfWork

from erp.api.v1.audit.service import log_audit
from erp.api.v1.students.schemas import StudentResponse
from erp.api.v1.students.service import (
    TABLE as STUDENTS,
    insert_student,
    student_email_lock,
    student_lock,
)

from .schemas import (
    AdmissionCreate,
    AdmissionResponse,
    AdmissionStats,
    AdmissionStatusUpdate,
    AdmissionUpdate,
    AdmitStudentRequest,
    AdmitStudentResult,
)

logger = logging.getLogger(__name__)

TABLE = "admissions"
STATUSES = {s.value for s in AdmissionStatus}


def admission_lock(admission_id: str) -> str:
    return f"admission:{admission_id}"


def admission_email_lock(email: str) -> str:
    return f"admission-email:{email}"


async def _find_admission(store: TableStore, admission_id: str, *, for_update: bool = False):
    found = await store.find_by_key(TABLE, "admission_id", admission_id, for_update=for_update)
    if not found:
        raise NotFoundError("Admission not found")
    return found


async def create_admission(
    db: AsyncSession,
    payload: AdmissionCreate,
    performed_by: Optional[str] = None,
) -> AdmissionResponse:
    now = now_iso()
    admission_id = new_id(ADMISSION_PREFIX)
    record: Record = {
        **payload.model_dump(),
        "admission_id": admission_id,
        "application_ref": new_id(APPLICATION_PREFIX),
        "applicant_name": f"{payload.first_name} {payload.last_name}",
        "applied_on": now,
        "status": AdmissionStatus.pending.value,
        "created_at": now,
        "updated_at": now,
    }
    async with UnitOfWork(db, admission_lock(admission_id), admission_email_lock(payload.email)) as uow:
        if await uow.store.find_by_key(TABLE, "email", payload.email):
            raise ConflictError("An admission application with this email already exists")
        row = await uow.store.insert(TABLE, record)
        await log_audit(uow.store, TABLE, admission_id, AuditAction.CREATE.value, None, row, user_id=performed_by)
    logger.info("Admission %s created for %s", admission_id, payload.programme_applied)
    return AdmissionResponse(**row)


async def get_admission(db: AsyncSession, admission_id: str) -> AdmissionResponse:
    row, _ = await _find_admission(TableStore(db), admission_id)
    return AdmissionResponse(**row)


async def list_admissions(
    db: AsyncSession,
    status: Optional[str] = None,
    programme: Optional[str] = None,
    email: Optional[str] = None,
) -> List[AdmissionResponse]:
    rows = await TableStore(db).find_all(
        TABLE,
        {"status": status, "programme_applied": programme, "email": email},
        order_by="-applied_on",
    )
    return [AdmissionResponse(**r) for r in rows]


async def get_admissions_by_email(db: AsyncSession, email: str) -> List[AdmissionResponse]:
    return await list_admissions(db, email=email)


async def update_admission(
    db: AsyncSession,
    admission_id: str,
    payload: AdmissionUpdate,
    performed_by: Optional[str] = None,
) -> AdmissionResponse:
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    email_lock = admission_email_lock(changes["email"]) if changes.get("email") else None
    async with UnitOfWork(db, admission_lock(admission_id), email_lock) as uow:
        store = uow.store
        current, position = await _find_admission(store, admission_id, for_update=True)
        new_email = changes.get("email")
        if new_email and new_email != current["email"]:
            if await store.find_by_key(TABLE, "email", new_email):
                raise ConflictError("An admission application with this email already exists")
        updated = {**current, **changes, "updated_at": now_iso()}
        updated["applicant_name"] = f"{updated['first_name']} {updated['last_name']}"
        row = await store.update_at(TABLE, position, updated)
        await log_audit(store, TABLE, admission_id, AuditAction.UPDATE.value, current, row, user_id=performed_by)
    return AdmissionResponse(**row)


async def update_admission_status(
    db: AsyncSession,
    admission_id: str,
    payload: AdmissionStatusUpdate,
    performed_by: Optional[str] = None,
) -> AdmissionResponse:
    try:
        new_status = AdmissionStatus(payload.status)
    except ValueError:
        raise ValidationError("Invalid status")
    if new_status == AdmissionStatus.admitted:
        raise ConflictError("An admission becomes admitted only by converting it to a student")

    async with UnitOfWork(db, admission_lock(admission_id)) as uow:
        current, position = await _find_admission(uow.store, admission_id, for_update=True)
        if current["status"] == AdmissionStatus.admitted.value:
            raise ConflictError("Admission has already been converted to a student")
        updated = {**current, "status": new_status.value, "updated_at": now_iso()}
        if payload.verifier_notes is not None:
            updated["verifier_notes"] = payload.verifier_notes
        if payload.assigned_officer_id is not None:
            updated["assigned_officer_id"] = payload.assigned_officer_id
        row = await uow.store.update_at(TABLE, position, updated)
        await log_audit(
            uow.store, TABLE, admission_id, AuditAction.UPDATE_STATUS.value, current, row, user_id=performed_by
        )
    logger.info("Admission %s: %s -> %s", admission_id, current["status"], new_status.value)
    return AdmissionResponse(**row)


async def admit_student(
    db: AsyncSession,
    admission_id: str,
    payload: AdmitStudentRequest,
    performed_by: Optional[str] = None,
) -> AdmitStudentResult:
    """
    Convert an approved admission into an active first-year Student.
    Both rows and the single convert_to_student audit entry commit together; on any failure neither
    record changes.
    """
    extra = payload.model_dump()
    # Read the email first so every lock is taken up front, in sorted order.
    found, _ = await _find_admission(TableStore(db), admission_id)
    student_id = new_id(STUDENT_PREFIX)
    locks = (admission_lock(admission_id), student_lock(student_id), student_email_lock(found["email"]))

    async with UnitOfWork(db, *locks) as uow:
        store = uow.store
        admission, position = await _find_admission(store, admission_id, for_update=True)
        if admission["status"] != AdmissionStatus.approved.value:
            raise ConflictError("Admission must be approved first")
        if admission["email"] != found["email"]:
            raise ConflictError("Admission changed while converting, try again")

        now = now_iso()
        student = await insert_student(
            store,
            {
                **extra,
                "student_id": student_id,
                "admission_id": admission_id,
                "first_name": admission["first_name"],
                "last_name": admission["last_name"],
                "email": admission["email"],
                "phone": admission["phone"],
                "programme_name": admission["programme_applied"],
                "admission_date": now,
                "enrollment_status": EnrollmentStatus.active.value,
                "year_of_study": 1,
                "hostel_alloc_id": "",
                "created_at": now,
                "updated_at": now,
            },
        )

        updated = {
            **admission,
            "student_id": student_id,
            "status": AdmissionStatus.admitted.value,
            "admitted_on": now,
            "updated_at": now,
        }
        admission_row = await store.update_at(TABLE, position, updated)
        await log_audit(
            store,
            TABLE,
            admission_id,
            AuditAction.CONVERT_TO_STUDENT.value,
            {TABLE: admission},
            {TABLE: admission_row, STUDENTS: student},
            user_id=performed_by,
        )
    logger.info("Admission %s converted to student %s", admission_id, student_id)
    return AdmitStudentResult(
        student=StudentResponse(**student),
        admission=AdmissionResponse(**admission_row),
    )


async def delete_admission(
    db: AsyncSession,
    admission_id: str,
    performed_by: Optional[str] = None,
) -> None:
    """Allowed in any state. A student created from this admission is left untouched."""
    async with UnitOfWork(db, admission_lock(admission_id)) as uow:
        current, position = await _find_admission(uow.store, admission_id, for_update=True)
        await uow.store.delete_at(TABLE, position)
        await log_audit(uow.store, TABLE, admission_id, AuditAction.DELETE.value, current, None, user_id=performed_by)


async def get_admission_stats(db: AsyncSession) -> AdmissionStats:
    stats = AdmissionStats()
    for row in await TableStore(db).find_all(TABLE):
        stats.total += 1
        if row["status"] in STATUSES:
            setattr(stats, row["status"], getattr(stats, row["status"]) + 1)
    return stats
