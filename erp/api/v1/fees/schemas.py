from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ----- Fee structure -----

class FeeStructureCreate(BaseModel):
    fee_id: str = Field(..., min_length=1, max_length=64)
    component: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=0)
    programme_id: Optional[str] = Field(None, max_length=64, description="Empty applies to every programme")
    currency: Optional[str] = Field(None, max_length=10)
    effective_from: Optional[str] = None
    effective_to: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)

    class Config:
        extra = "forbid"


class FeeStructureUpdate(BaseModel):
    component: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, ge=0)
    programme_id: Optional[str] = Field(None, max_length=64)
    currency: Optional[str] = Field(None, max_length=10)
    effective_from: Optional[str] = None
    effective_to: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)

    class Config:
        extra = "forbid"


class FeeStructureResponse(BaseModel):
    fee_id: str
    programme_id: str = ""
    component: str
    amount: Decimal
    currency: str
    effective_from: str = ""
    effective_to: str = ""
    category: str
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class FeeStructureEnvelope(BaseModel):
    success: bool = True
    fee_structure: FeeStructureResponse


class FeeStructureListEnvelope(BaseModel):
    success: bool = True
    fee_structures: List[FeeStructureResponse]


# ----- Payments and receipts -----

class PaymentCreate(BaseModel):
    """Record a completed payment. generate_receipt issues and links a receipt in the same transaction."""

    student_id: str = Field(..., min_length=1, max_length=64)
    amount: Decimal = Field(..., gt=0)
    payment_mode: str = Field(..., min_length=1, max_length=30)
    admission_id: Optional[str] = Field(None, max_length=64)
    currency: Optional[str] = Field(None, max_length=10)
    gateway_ref: Optional[str] = Field(None, max_length=100)
    fee_id: Optional[str] = Field(None, max_length=64)
    created_by: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = None
    generate_receipt: bool = False
    receipt_file_id: Optional[str] = None

    class Config:
        extra = "forbid"


class ReceiptCreate(BaseModel):
    txn_id: str = Field(..., min_length=1, max_length=64)
    issued_by: Optional[str] = Field(None, max_length=64)
    issued_on: Optional[str] = None
    pdf_drive_file_id: Optional[str] = None
    email_sent: bool = False

    class Config:
        extra = "forbid"


class TransactionResponse(BaseModel):
    txn_id: str
    student_id: str
    admission_id: str = ""
    date: str
    amount: Decimal
    currency: str
    payment_mode: str
    gateway_ref: str = ""
    payment_status: str
    receipt_id: str = ""
    fee_id: str = ""
    fee_component: str = ""
    fee_amount: Optional[Decimal] = None
    created_by: str
    created_at: str
    notes: str = ""

    class Config:
        from_attributes = True


class ReceiptResponse(BaseModel):
    receipt_id: str
    txn_id: str
    issued_by: str
    issued_on: str
    pdf_drive_file_id: str = ""
    email_sent: bool = False
    created_at: str

    class Config:
        from_attributes = True


class PaymentResult(BaseModel):
    transaction: TransactionResponse
    receipt: Optional[ReceiptResponse] = None


class PaymentEnvelope(PaymentResult):
    success: bool = True


class PaymentListEnvelope(BaseModel):
    success: bool = True
    payments: List[TransactionResponse]


class ReceiptEnvelope(BaseModel):
    success: bool = True
    receipt: ReceiptResponse


class ReceiptListEnvelope(BaseModel):
    success: bool = True
    receipts: List[ReceiptResponse]


# ----- Summaries -----

class FeeSummary(BaseModel):
    student_id: str
    total_paid: Decimal = Decimal("0")
    total_required: Decimal = Decimal("0")
    total_pending: Decimal = Decimal("0")
    last_payment_date: Optional[str] = None
    payment_count: int = 0
    payments: List[TransactionResponse] = Field(default_factory=list)


class FeeSummaryEnvelope(BaseModel):
    success: bool = True
    summary: FeeSummary


class FeeStats(BaseModel):
    total_collected: Decimal = Decimal("0")
    total_transactions: int = 0
    by_payment_mode: Dict[str, Decimal] = Field(default_factory=dict)
    monthly_collection: Dict[str, Decimal] = Field(default_factory=dict)


class FeeStatsEnvelope(BaseModel):
    success: bool = True
    stats: FeeStats
