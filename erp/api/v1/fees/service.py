"""
Fee master, payments and receipts.

A Transaction and its Receipt point at each other: receipt.txn_id is set on insert and
transaction.receipt_id is written in the same unit of work. A transaction holds at most one receipt.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.config import settings
from erp.core.enums import AuditAction, PaymentStatus
from erp.core.exceptions import ConflictError, NotFoundError
from erp.core.ids import RECEIPT_PREFIX, TRANSACTION_PREFIX, new_id
from erp.core.timestamps import now_iso, parse_timestamp
from erp.db.table_store import Record, TableStore
from erp.db.unit_of_work import UnitOfWork

from erp.api.v1.audit.service import log_audit
from erp.api.v1.students.service import find_student, student_lock

from .schemas import (
    FeeStats,
    FeeStructureCreate,
    FeeStructureResponse,
    FeeStructureUpdate,
    FeeSummary,
    PaymentCreate,
    PaymentResult,
    ReceiptCreate,
    ReceiptResponse,
    TransactionResponse,
)

logger = logging.getLogger(__name__)

FEE_MASTER = "fee_master"
TRANSACTIONS = "transactions"
RECEIPTS = "receipts"

DEFAULT_CATEGORY = "Tuition"


def _fee_lock(fee_id: str) -> str:
    return f"fee:{fee_id}"


def txn_lock(txn_id: str) -> str:
    return f"txn:{txn_id}"


def _is_effective(row: Record, at: datetime) -> bool:
    """effective_from <= at <= effective_to; empty bounds are open."""
    start = parse_timestamp(row["effective_from"])
    end = parse_timestamp(row["effective_to"])
    if start and at < start:
        return False
    if end and at > end:
        return False
    return True


async def _find_fee_structure(store: TableStore, fee_id: str, *, for_update: bool = False):
    found = await store.find_by_key(FEE_MASTER, "fee_id", fee_id, for_update=for_update)
    if not found:
        raise NotFoundError("Fee structure not found")
    return found


# ----- Fee structures -----

async def create_fee_structure(
    db: AsyncSession,
    payload: FeeStructureCreate,
    performed_by: Optional[str] = None,
) -> FeeStructureResponse:
    now = now_iso()
    record: Record = {
        **payload.model_dump(),
        "currency": payload.currency or settings.default_currency,
        "category": payload.category or DEFAULT_CATEGORY,
        "effective_from": payload.effective_from or now,
        "created_at": now,
        "updated_at": now,
    }
    async with UnitOfWork(db, _fee_lock(payload.fee_id)) as uow:
        if await uow.store.find_by_key(FEE_MASTER, "fee_id", payload.fee_id):
            raise ConflictError("Fee structure with this ID already exists")
        row = await uow.store.insert(FEE_MASTER, record)
        await log_audit(uow.store, FEE_MASTER, payload.fee_id, AuditAction.CREATE.value, None, row, user_id=performed_by)
    return FeeStructureResponse(**row)


async def get_fee_structure(db: AsyncSession, fee_id: str) -> FeeStructureResponse:
    row, _ = await _find_fee_structure(TableStore(db), fee_id)
    return FeeStructureResponse(**row)


async def get_fee_structures(
    db: AsyncSession,
    programme_id: Optional[str] = None,
    category: Optional[str] = None,
) -> List[FeeStructureResponse]:
    """Structures in effect right now."""
    rows = await TableStore(db).find_all(
        FEE_MASTER,
        {"programme_id": programme_id, "category": category},
        order_by="fee_id",
    )
    now = datetime.now(timezone.utc)
    return [FeeStructureResponse(**r) for r in rows if _is_effective(r, now)]


async def update_fee_structure(
    db: AsyncSession,
    fee_id: str,
    payload: FeeStructureUpdate,
    performed_by: Optional[str] = None,
) -> FeeStructureResponse:
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    async with UnitOfWork(db, _fee_lock(fee_id)) as uow:
        current, position = await _find_fee_structure(uow.store, fee_id, for_update=True)
        updated = {**current, **changes, "updated_at": now_iso()}
        row = await uow.store.update_at(FEE_MASTER, position, updated)
        await log_audit(uow.store, FEE_MASTER, fee_id, AuditAction.UPDATE.value, current, row, user_id=performed_by)
    return FeeStructureResponse(**row)


async def delete_fee_structure(
    db: AsyncSession,
    fee_id: str,
    performed_by: Optional[str] = None,
) -> None:
    """Transactions keep their own copy of component and amount, so no dependants are checked."""
    async with UnitOfWork(db, _fee_lock(fee_id)) as uow:
        current, position = await _find_fee_structure(uow.store, fee_id, for_update=True)
        await uow.store.delete_at(FEE_MASTER, position)
        await log_audit(uow.store, FEE_MASTER, fee_id, AuditAction.DELETE.value, current, None, user_id=performed_by)


# ----- Payments -----

async def create_payment(
    db: AsyncSession,
    payload: PaymentCreate,
    performed_by: Optional[str] = None,
) -> PaymentResult:
    txn_id = new_id(TRANSACTION_PREFIX)
    created_by = payload.created_by or performed_by or "system"
    async with UnitOfWork(db, student_lock(payload.student_id), txn_lock(txn_id)) as uow:
        store = uow.store
        await find_student(store, payload.student_id)

        fee_component, fee_amount = "", None
        if payload.fee_id:
            fee, _ = await _find_fee_structure(store, payload.fee_id)
            fee_component, fee_amount = fee["component"], fee["amount"]

        now = now_iso()
        receipt_id = new_id(RECEIPT_PREFIX) if payload.generate_receipt else ""
        transaction = await store.insert(
            TRANSACTIONS,
            {
                "txn_id": txn_id,
                "student_id": payload.student_id,
                "admission_id": payload.admission_id or "",
                "date": now,
                "amount": payload.amount,
                "currency": payload.currency or settings.default_currency,
                "payment_mode": payload.payment_mode,
                "gateway_ref": payload.gateway_ref or "",
                "payment_status": PaymentStatus.completed.value,
                "receipt_id": receipt_id,
                "fee_id": payload.fee_id or "",
                "fee_component": fee_component,
                "fee_amount": fee_amount,
                "created_by": created_by,
                "created_at": now,
                "notes": payload.notes or "",
            },
        )
        receipt = None
        if receipt_id:
            receipt = await store.insert(
                RECEIPTS,
                {
                    "receipt_id": receipt_id,
                    "txn_id": txn_id,
                    "issued_by": created_by,
                    "issued_on": now,
                    "pdf_drive_file_id": payload.receipt_file_id or "",
                    "email_sent": False,
                    "created_at": now,
                },
            )

        after = {TRANSACTIONS: transaction, RECEIPTS: receipt} if receipt else transaction
        await log_audit(store, TRANSACTIONS, txn_id, AuditAction.CREATE.value, None, after, user_id=performed_by)
    logger.info("Payment %s of %s recorded for student %s", txn_id, payload.amount, payload.student_id)
    return PaymentResult(
        transaction=TransactionResponse(**transaction),
        receipt=ReceiptResponse(**receipt) if receipt else None,
    )


async def create_receipt(
    db: AsyncSession,
    payload: ReceiptCreate,
    performed_by: Optional[str] = None,
) -> ReceiptResponse:
    """Issue a receipt for an existing transaction and link it back."""
    async with UnitOfWork(db, txn_lock(payload.txn_id)) as uow:
        store = uow.store
        found = await store.find_by_key(TRANSACTIONS, "txn_id", payload.txn_id, for_update=True)
        if not found:
            raise NotFoundError("Transaction not found")
        transaction, position = found
        if transaction["receipt_id"]:
            raise ConflictError("Transaction already has a receipt")

        now = now_iso()
        receipt_id = new_id(RECEIPT_PREFIX)
        receipt = await store.insert(
            RECEIPTS,
            {
                "receipt_id": receipt_id,
                "txn_id": payload.txn_id,
                "issued_by": payload.issued_by or performed_by or "system",
                "issued_on": payload.issued_on or now,
                "pdf_drive_file_id": payload.pdf_drive_file_id or "",
                "email_sent": payload.email_sent,
                "created_at": now,
            },
        )
        linked = await store.update_at(TRANSACTIONS, position, {**transaction, "receipt_id": receipt_id})
        await log_audit(
            store, TRANSACTIONS, payload.txn_id, AuditAction.ISSUE_RECEIPT.value,
            {TRANSACTIONS: transaction},
            {TRANSACTIONS: linked, RECEIPTS: receipt},
            user_id=performed_by,
        )
    return ReceiptResponse(**receipt)


async def get_payments(
    db: AsyncSession,
    student_id: Optional[str] = None,
    payment_status: Optional[str] = None,
    payment_mode: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[TransactionResponse]:
    rows = await TableStore(db).find_all(
        TRANSACTIONS,
        {"student_id": student_id, "payment_status": payment_status, "payment_mode": payment_mode},
        order_by="-date",
    )
    start = parse_timestamp(start_date)
    end = parse_timestamp(end_date)
    payments = []
    for row in rows:
        when = parse_timestamp(row["date"])
        if start and when and when < start:
            continue
        if end and when and when > end:
            continue
        payments.append(TransactionResponse(**row))
    return payments


async def get_student_fees(db: AsyncSession, student_id: str) -> List[TransactionResponse]:
    return await get_payments(db, student_id=student_id)


async def get_receipts(
    db: AsyncSession,
    txn_id: Optional[str] = None,
    issued_by: Optional[str] = None,
) -> List[ReceiptResponse]:
    rows = await TableStore(db).find_all(
        RECEIPTS,
        {"txn_id": txn_id, "issued_by": issued_by},
        order_by="-issued_on",
    )
    return [ReceiptResponse(**r) for r in rows]


async def get_student_fee_summary(db: AsyncSession, student_id: str) -> FeeSummary:
    """
    total_pending = max(0, sum of applicable fee structures - total paid). A structure applies when
    it is in effect now and its programme_id is empty or the student's programme.
    """
    store = TableStore(db)
    student, _ = await find_student(store, student_id)
    payments = await get_student_fees(db, student_id)

    summary = FeeSummary(student_id=student_id, payments=payments, payment_count=len(payments))
    latest = None
    for payment in payments:
        summary.total_paid += payment.amount
        when = parse_timestamp(payment.date)
        if when and (latest is None or when > latest):
            latest = when
            summary.last_payment_date = payment.date

    now = datetime.now(timezone.utc)
    for fee in await store.find_all(FEE_MASTER):
        if not _is_effective(fee, now):
            continue
        if fee["programme_id"] and fee["programme_id"] != student["programme_id"]:
            continue
        summary.total_required += Decimal(fee["amount"])
    summary.total_pending = max(Decimal("0"), summary.total_required - summary.total_paid)
    return summary


async def get_fee_stats(db: AsyncSession) -> FeeStats:
    stats = FeeStats()
    for payment in await TableStore(db).find_all(TRANSACTIONS):
        amount = Decimal(payment["amount"])
        stats.total_transactions += 1
        stats.total_collected += amount
        mode = payment["payment_mode"] or "unknown"
        stats.by_payment_mode[mode] = stats.by_payment_mode.get(mode, Decimal("0")) + amount
        when = parse_timestamp(payment["date"])
        month = f"{when.year}-{when.month:02d}" if when else "unknown"
        stats.monthly_collection[month] = stats.monthly_collection.get(month, Decimal("0")) + amount
    return stats
