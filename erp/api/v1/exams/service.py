"""
Exam repository and marks. Marks are upserted per (exam_id, student_id); the grade is always derived
from marks_obtained, never supplied by the caller.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.config import settings
from erp.core.enums import AuditAction
from erp.core.exceptions import ConflictError, NotFoundError
from erp.core.ids import MARKS_PREFIX, new_id
from erp.core.timestamps import now_iso, parse_timestamp
from erp.db.table_store import Record, TableStore
from erp.db.unit_of_work import UnitOfWork

from erp.api.v1.audit.service import log_audit
from erp.api.v1.students.service import find_student

from .schemas import (
    ExamCreate,
    ExamResponse,
    ExamStats,
    ExamUpdate,
    MarksEntry,
    MarksResponse,
)

logger = logging.getLogger(__name__)

TABLE = "exams"
MARKS = "marks"

# (lower bound inclusive, grade), checked top-down
GRADE_THRESHOLDS = (
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C"),
    (40, "D"),
)


def calculate_grade(marks) -> str:
    value = float(marks)
    for lower, grade in GRADE_THRESHOLDS:
        if value >= lower:
            return grade
    return "F"


def _exam_lock(exam_id: str) -> str:
    return f"exam:{exam_id}"


async def _find_exam(store: TableStore, exam_id: str, *, for_update: bool = False):
    found = await store.find_by_key(TABLE, "exam_id", exam_id, for_update=for_update)
    if not found:
        raise NotFoundError("Exam not found")
    return found


# ----- Exams -----

async def create_exam(
    db: AsyncSession,
    payload: ExamCreate,
    performed_by: Optional[str] = None,
) -> ExamResponse:
    now = now_iso()
    record = {**payload.model_dump(), "created_at": now, "updated_at": now}
    async with UnitOfWork(db, _exam_lock(payload.exam_id)) as uow:
        if await uow.store.find_by_key(TABLE, "exam_id", payload.exam_id):
            raise ConflictError("Exam with this ID already exists")
        row = await uow.store.insert(TABLE, record)
        await log_audit(uow.store, TABLE, row["exam_id"], AuditAction.CREATE.value, None, row, user_id=performed_by)
    return ExamResponse(**row)


async def get_exam(db: AsyncSession, exam_id: str) -> ExamResponse:
    row, _ = await _find_exam(TableStore(db), exam_id)
    return ExamResponse(**row)


async def get_exams(
    db: AsyncSession,
    course_id: Optional[str] = None,
    invigilator_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[ExamResponse]:
    rows = await TableStore(db).find_all(
        TABLE,
        {"course_id": course_id, "invigilator_id": invigilator_id},
        order_by="exam_date",
    )
    start = parse_timestamp(start_date)
    end = parse_timestamp(end_date)
    exams = []
    for row in rows:
        when = parse_timestamp(row["exam_date"])
        if start and when and when < start:
            continue
        if end and when and when > end:
            continue
        exams.append(ExamResponse(**row))
    return exams


async def update_exam(
    db: AsyncSession,
    exam_id: str,
    payload: ExamUpdate,
    performed_by: Optional[str] = None,
) -> ExamResponse:
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    async with UnitOfWork(db, _exam_lock(exam_id)) as uow:
        current, position = await _find_exam(uow.store, exam_id, for_update=True)
        updated = {**current, **changes, "updated_at": now_iso()}
        row = await uow.store.update_at(TABLE, position, updated)
        await log_audit(uow.store, TABLE, exam_id, AuditAction.UPDATE.value, current, row, user_id=performed_by)
    return ExamResponse(**row)


async def delete_exam(
    db: AsyncSession,
    exam_id: str,
    performed_by: Optional[str] = None,
) -> None:
    async with UnitOfWork(db, _exam_lock(exam_id)) as uow:
        current, position = await _find_exam(uow.store, exam_id, for_update=True)
        if await uow.store.count(MARKS, {"exam_id": exam_id}):
            raise ConflictError("Cannot delete exam with marks already entered")
        await uow.store.delete_at(TABLE, position)
        await log_audit(uow.store, TABLE, exam_id, AuditAction.DELETE.value, current, None, user_id=performed_by)


# ----- Marks -----

async def enter_exam_marks(
    db: AsyncSession,
    exam_id: str,
    student_id: str,
    payload: MarksEntry,
    performed_by: Optional[str] = None,
) -> MarksResponse:
    """Create or update the single marks row for (exam_id, student_id)."""
    marks_obtained = Decimal(str(payload.marks_obtained))
    # The exam lock keeps delete_exam from racing a first marks entry.
    async with UnitOfWork(db, _exam_lock(exam_id), f"marks:{exam_id}:{student_id}") as uow:
        store = uow.store
        await _find_exam(store, exam_id)
        await find_student(store, student_id)
        existing = await store.find_one(MARKS, {"exam_id": exam_id, "student_id": student_id}, for_update=True)
        record: Record = {
            "marks_id": existing["marks_id"] if existing else new_id(MARKS_PREFIX),
            "exam_id": exam_id,
            "student_id": student_id,
            "marks_obtained": marks_obtained,
            "grade": calculate_grade(marks_obtained),
            "entered_by": payload.entered_by or performed_by or "system",
            "entered_on": now_iso(),
        }
        if existing:
            row = await store.update_at(MARKS, existing["marks_id"], record)
            await log_audit(store, MARKS, row["marks_id"], AuditAction.UPDATE.value, existing, row, user_id=performed_by)
        else:
            row = await store.insert(MARKS, record)
            await log_audit(store, MARKS, row["marks_id"], AuditAction.CREATE.value, None, row, user_id=performed_by)
    return MarksResponse(**row)


async def get_exam_marks(db: AsyncSession, exam_id: str) -> List[MarksResponse]:
    store = TableStore(db)
    await _find_exam(store, exam_id)
    rows = await store.find_all(MARKS, {"exam_id": exam_id}, order_by="student_id")
    return [MarksResponse(**r) for r in rows]


async def get_student_exam_results(
    db: AsyncSession,
    student_id: str,
    exam_id: Optional[str] = None,
) -> List[MarksResponse]:
    rows = await TableStore(db).find_all(
        MARKS,
        {"student_id": student_id, "exam_id": exam_id},
        order_by="entered_on",
    )
    return [MarksResponse(**r) for r in rows]


async def get_exam_stats(db: AsyncSession) -> ExamStats:
    """Pass rate uses the configured pass mark, the same for every exam."""
    store = TableStore(db)
    pass_mark = float(settings.exam_pass_mark)
    stats = ExamStats(pass_mark=pass_mark)
    now = datetime.now(timezone.utc)

    for exam in await store.find_all(TABLE):
        stats.total_exams += 1
        when = parse_timestamp(exam["exam_date"])
        if when and when < now:
            stats.completed_exams += 1
        else:
            stats.upcoming_exams += 1

    marks = await store.find_all(MARKS)
    total = 0.0
    passed = 0
    for m in marks:
        value = float(m["marks_obtained"])
        total += value
        if value >= pass_mark:
            passed += 1
    stats.total_marks_entered = len(marks)
    if marks:
        stats.average_marks = round(total / len(marks), 1)
        stats.pass_rate = round(passed / len(marks) * 100, 1)
    return stats
