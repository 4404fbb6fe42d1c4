from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.db.session import get_db

from erp.api.v1.dependencies import get_actor
from erp.api.v1.exams.schemas import ExamListEnvelope
from erp.api.v1.schemas import MessageEnvelope

from .schemas import (
    CourseCreate,
    CourseEnvelope,
    CourseListEnvelope,
    CourseUpdate,
    EnrollmentCreate,
    EnrollmentEnvelope,
    EnrollmentListEnvelope,
)
from . import service

router = APIRouter(prefix="/api/v1/courses", tags=["courses"])


@router.post("", response_model=CourseEnvelope, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> CourseEnvelope:
    return CourseEnvelope(course=await service.create_course(db, payload, actor))


@router.get("", response_model=CourseListEnvelope)
async def list_courses(
    programme_id: Optional[str] = None,
    semester: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
) -> CourseListEnvelope:
    return CourseListEnvelope(courses=await service.list_courses(db, programme_id, semester))


@router.delete("/enrollments/{enroll_id}", response_model=MessageEnvelope)
async def delete_enrollment(
    enroll_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> MessageEnvelope:
    await service.delete_enrollment(db, enroll_id, actor)
    return MessageEnvelope(message="Enrollment deleted")


@router.get("/{course_id}", response_model=CourseEnvelope)
async def get_course(course_id: str, db: AsyncSession = Depends(get_db)) -> CourseEnvelope:
    return CourseEnvelope(course=await service.get_course(db, course_id))


@router.put("/{course_id}", response_model=CourseEnvelope)
async def update_course(
    course_id: str,
    payload: CourseUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> CourseEnvelope:
    return CourseEnvelope(course=await service.update_course(db, course_id, payload, actor))


@router.delete("/{course_id}", response_model=MessageEnvelope)
async def delete_course(
    course_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> MessageEnvelope:
    await service.delete_course(db, course_id, actor)
    return MessageEnvelope(message="Course deleted")


@router.post(
    "/{course_id}/enrollments",
    response_model=EnrollmentEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_student(
    course_id: str,
    payload: EnrollmentCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> EnrollmentEnvelope:
    return EnrollmentEnvelope(enrollment=await service.enroll_student(db, course_id, payload, actor))


@router.get("/{course_id}/enrollments", response_model=EnrollmentListEnvelope)
async def list_enrollments(course_id: str, db: AsyncSession = Depends(get_db)) -> EnrollmentListEnvelope:
    return EnrollmentListEnvelope(enrollments=await service.list_course_enrollments(db, course_id))


@router.get("/{course_id}/exams", response_model=ExamListEnvelope)
async def list_course_exams(course_id: str, db: AsyncSession = Depends(get_db)) -> ExamListEnvelope:
    return ExamListEnvelope(exams=await service.list_course_exams(db, course_id))
