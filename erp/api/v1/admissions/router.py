"""Admissions router: applications, status changes, conversion to student."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.db.session import get_db

from erp.api.v1.dependencies import get_actor
from erp.api.v1.schemas import MessageEnvelope

from .schemas import (
    AdmissionCreate,
    AdmissionEnvelope,
    AdmissionListEnvelope,
    AdmissionStatsEnvelope,
    AdmissionStatusUpdate,
    AdmissionUpdate,
    AdmitStudentEnvelope,
    AdmitStudentRequest,
)
from . import service

router = APIRouter(prefix="/api/v1/admissions", tags=["admissions"])


@router.post("", response_model=AdmissionEnvelope, status_code=http_status.HTTP_201_CREATED)
async def create_admission(
    payload: AdmissionCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> AdmissionEnvelope:
    return AdmissionEnvelope(admission=await service.create_admission(db, payload, actor))


@router.get("", response_model=AdmissionListEnvelope)
async def list_admissions(
    status: Optional[str] = Query(None, description="pending | under_review | approved | rejected | admitted"),
    programme: Optional[str] = None,
    email: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> AdmissionListEnvelope:
    return AdmissionListEnvelope(admissions=await service.list_admissions(db, status, programme, email))


@router.get("/stats", response_model=AdmissionStatsEnvelope)
async def admission_stats(db: AsyncSession = Depends(get_db)) -> AdmissionStatsEnvelope:
    return AdmissionStatsEnvelope(stats=await service.get_admission_stats(db))


@router.get("/by-email/{email}", response_model=AdmissionListEnvelope)
async def admissions_by_email(email: str, db: AsyncSession = Depends(get_db)) -> AdmissionListEnvelope:
    return AdmissionListEnvelope(admissions=await service.get_admissions_by_email(db, email))


@router.get("/{admission_id}", response_model=AdmissionEnvelope)
async def get_admission(admission_id: str, db: AsyncSession = Depends(get_db)) -> AdmissionEnvelope:
    return AdmissionEnvelope(admission=await service.get_admission(db, admission_id))


@router.put("/{admission_id}", response_model=AdmissionEnvelope)
async def update_admission(
    admission_id: str,
    payload: AdmissionUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> AdmissionEnvelope:
    return AdmissionEnvelope(admission=await service.update_admission(db, admission_id, payload, actor))


@router.put("/{admission_id}/status", response_model=AdmissionEnvelope)
async def update_admission_status(
    admission_id: str,
    payload: AdmissionStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> AdmissionEnvelope:
    return AdmissionEnvelope(admission=await service.update_admission_status(db, admission_id, payload, actor))


@router.post("/{admission_id}/admit", response_model=AdmitStudentEnvelope, status_code=http_status.HTTP_201_CREATED)
async def admit_student(
    admission_id: str,
    payload: Optional[AdmitStudentRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> AdmitStudentEnvelope:
    result = await service.admit_student(db, admission_id, payload or AdmitStudentRequest(), actor)
    return AdmitStudentEnvelope(student=result.student, admission=result.admission)


@router.delete("/{admission_id}", response_model=MessageEnvelope)
async def delete_admission(
    admission_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> MessageEnvelope:
    await service.delete_admission(db, admission_id, actor)
    return MessageEnvelope(message="Admission deleted")
