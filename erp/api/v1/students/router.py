"""Students router. Conversion from an admission lives under /admissions/{id}/admit."""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.db.session import get_db

from erp.api.v1.courses.schemas import EnrollmentListEnvelope
from erp.api.v1.dependencies import get_actor

from .schemas import (
    StudentCreate,
    StudentEnvelope,
    StudentListEnvelope,
    StudentStatsEnvelope,
    StudentUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.post("", response_model=StudentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> StudentEnvelope:
    return StudentEnvelope(student=await service.create_student(db, payload, actor))


@router.get("", response_model=StudentListEnvelope)
async def list_students(
    programme_id: Optional[str] = None,
    enrollment_status: Optional[str] = None,
    year_of_study: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
) -> StudentListEnvelope:
    students = await service.list_students(db, programme_id, enrollment_status, year_of_study)
    return StudentListEnvelope(students=students)


@router.get("/stats", response_model=StudentStatsEnvelope)
async def student_stats(db: AsyncSession = Depends(get_db)) -> StudentStatsEnvelope:
    return StudentStatsEnvelope(stats=await service.get_student_stats(db))


@router.get("/{student_id}", response_model=StudentEnvelope)
async def get_student(student_id: str, db: AsyncSession = Depends(get_db)) -> StudentEnvelope:
    return StudentEnvelope(student=await service.get_student(db, student_id))


@router.put("/{student_id}", response_model=StudentEnvelope)
async def update_student(
    student_id: str,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> StudentEnvelope:
    return StudentEnvelope(student=await service.update_student(db, student_id, payload, actor))


@router.delete("/{student_id}", response_model=StudentEnvelope)
async def delete_student(
    student_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> StudentEnvelope:
    """Soft delete; the deactivated record is returned."""
    return StudentEnvelope(student=await service.delete_student(db, student_id, actor))


@router.get("/{student_id}/courses", response_model=EnrollmentListEnvelope)
async def student_courses(student_id: str, db: AsyncSession = Depends(get_db)) -> EnrollmentListEnvelope:
    return EnrollmentListEnvelope(enrollments=await service.get_student_courses(db, student_id))
