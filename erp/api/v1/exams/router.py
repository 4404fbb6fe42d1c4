"""Exams router: exam CRUD, marks entry, student results, stats."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.db.session import get_db

from erp.api.v1.dependencies import get_actor
from erp.api.v1.schemas import MessageEnvelope

from .schemas import (
    ExamCreate,
    ExamEnvelope,
    ExamListEnvelope,
    ExamResultsEnvelope,
    ExamStatsEnvelope,
    ExamUpdate,
    MarksEntry,
    MarksEnvelope,
    MarksListEnvelope,
)
from . import service

router = APIRouter(prefix="/api/v1/exams", tags=["exams"])


@router.post("", response_model=ExamEnvelope, status_code=status.HTTP_201_CREATED)
async def create_exam(
    payload: ExamCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> ExamEnvelope:
    return ExamEnvelope(exam=await service.create_exam(db, payload, actor))


@router.get("", response_model=ExamListEnvelope)
async def list_exams(
    course_id: Optional[str] = None,
    invigilator_id: Optional[str] = None,
    start_date: Optional[str] = Query(None, description="ISO-8601 lower bound on exam_date"),
    end_date: Optional[str] = Query(None, description="ISO-8601 upper bound on exam_date"),
    db: AsyncSession = Depends(get_db),
) -> ExamListEnvelope:
    exams = await service.get_exams(db, course_id, invigilator_id, start_date, end_date)
    return ExamListEnvelope(exams=exams)


@router.get("/stats", response_model=ExamStatsEnvelope)
async def exam_stats(db: AsyncSession = Depends(get_db)) -> ExamStatsEnvelope:
    return ExamStatsEnvelope(stats=await service.get_exam_stats(db))


@router.get("/results/{student_id}", response_model=ExamResultsEnvelope)
async def student_results(
    student_id: str,
    exam_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> ExamResultsEnvelope:
    results = await service.get_student_exam_results(db, student_id, exam_id)
    return ExamResultsEnvelope(results=results)


@router.get("/{exam_id}", response_model=ExamEnvelope)
async def get_exam(exam_id: str, db: AsyncSession = Depends(get_db)) -> ExamEnvelope:
    return ExamEnvelope(exam=await service.get_exam(db, exam_id))


@router.put("/{exam_id}", response_model=ExamEnvelope)
async def update_exam(
    exam_id: str,
    payload: ExamUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> ExamEnvelope:
    return ExamEnvelope(exam=await service.update_exam(db, exam_id, payload, actor))


@router.delete("/{exam_id}", response_model=MessageEnvelope)
async def delete_exam(
    exam_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> MessageEnvelope:
    await service.delete_exam(db, exam_id, actor)
    return MessageEnvelope(message="Exam deleted")


@router.get("/{exam_id}/marks", response_model=MarksListEnvelope)
async def get_exam_marks(exam_id: str, db: AsyncSession = Depends(get_db)) -> MarksListEnvelope:
    return MarksListEnvelope(marks=await service.get_exam_marks(db, exam_id))


@router.put("/{exam_id}/marks/{student_id}", response_model=MarksEnvelope)
async def enter_marks(
    exam_id: str,
    student_id: str,
    payload: MarksEntry,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> MarksEnvelope:
    """Create or overwrite the marks for one student in one exam."""
    marks = await service.enter_exam_marks(db, exam_id, student_id, payload, actor)
    return MarksEnvelope(marks=marks)
