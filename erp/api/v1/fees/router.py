"""Fees router: fee structures, payments, receipts, summaries."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.db.session import get_db

from erp.api.v1.dependencies import get_actor
from erp.api.v1.schemas import MessageEnvelope

from .schemas import (
    FeeStatsEnvelope,
    FeeStructureCreate,
    FeeStructureEnvelope,
    FeeStructureListEnvelope,
    FeeStructureUpdate,
    FeeSummaryEnvelope,
    PaymentCreate,
    PaymentEnvelope,
    PaymentListEnvelope,
    ReceiptCreate,
    ReceiptEnvelope,
    ReceiptListEnvelope,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Fee Structure ---
@router.post("/structures", response_model=FeeStructureEnvelope, status_code=http_status.HTTP_201_CREATED)
async def create_fee_structure(
    payload: FeeStructureCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> FeeStructureEnvelope:
    return FeeStructureEnvelope(fee_structure=await service.create_fee_structure(db, payload, actor))


@router.get("/structures", response_model=FeeStructureListEnvelope)
async def list_fee_structures(
    programme_id: Optional[str] = None,
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> FeeStructureListEnvelope:
    """Only structures in effect today."""
    return FeeStructureListEnvelope(fee_structures=await service.get_fee_structures(db, programme_id, category))


@router.get("/structures/{fee_id}", response_model=FeeStructureEnvelope)
async def get_fee_structure(fee_id: str, db: AsyncSession = Depends(get_db)) -> FeeStructureEnvelope:
    return FeeStructureEnvelope(fee_structure=await service.get_fee_structure(db, fee_id))


@router.put("/structures/{fee_id}", response_model=FeeStructureEnvelope)
async def update_fee_structure(
    fee_id: str,
    payload: FeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> FeeStructureEnvelope:
    return FeeStructureEnvelope(fee_structure=await service.update_fee_structure(db, fee_id, payload, actor))


@router.delete("/structures/{fee_id}", response_model=MessageEnvelope)
async def delete_fee_structure(
    fee_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> MessageEnvelope:
    await service.delete_fee_structure(db, fee_id, actor)
    return MessageEnvelope(message="Fee structure deleted")


# --- Payments ---
@router.post("/payments", response_model=PaymentEnvelope, status_code=http_status.HTTP_201_CREATED)
async def create_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> PaymentEnvelope:
    result = await service.create_payment(db, payload, actor)
    return PaymentEnvelope(transaction=result.transaction, receipt=result.receipt)


@router.get("/payments", response_model=PaymentListEnvelope)
async def list_payments(
    student_id: Optional[str] = None,
    payment_status: Optional[str] = None,
    payment_mode: Optional[str] = None,
    start_date: Optional[str] = Query(None, description="ISO-8601 lower bound on payment date"),
    end_date: Optional[str] = Query(None, description="ISO-8601 upper bound on payment date"),
    db: AsyncSession = Depends(get_db),
) -> PaymentListEnvelope:
    payments = await service.get_payments(db, student_id, payment_status, payment_mode, start_date, end_date)
    return PaymentListEnvelope(payments=payments)


@router.get("/students/{student_id}", response_model=PaymentListEnvelope)
async def student_fees(student_id: str, db: AsyncSession = Depends(get_db)) -> PaymentListEnvelope:
    return PaymentListEnvelope(payments=await service.get_student_fees(db, student_id))


@router.get("/students/{student_id}/summary", response_model=FeeSummaryEnvelope)
async def student_fee_summary(student_id: str, db: AsyncSession = Depends(get_db)) -> FeeSummaryEnvelope:
    return FeeSummaryEnvelope(summary=await service.get_student_fee_summary(db, student_id))


# --- Receipts ---
@router.post("/receipts", response_model=ReceiptEnvelope, status_code=http_status.HTTP_201_CREATED)
async def create_receipt(
    payload: ReceiptCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> ReceiptEnvelope:
    return ReceiptEnvelope(receipt=await service.create_receipt(db, payload, actor))


@router.get("/receipts", response_model=ReceiptListEnvelope)
async def list_receipts(
    txn_id: Optional[str] = None,
    issued_by: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> ReceiptListEnvelope:
    return ReceiptListEnvelope(receipts=await service.get_receipts(db, txn_id, issued_by))


@router.get("/stats", response_model=FeeStatsEnvelope)
async def fee_stats(db: AsyncSession = Depends(get_db)) -> FeeStatsEnvelope:
    return FeeStatsEnvelope(stats=await service.get_fee_stats(db))
