"""Fee master, payment transactions and receipts."""

from sqlalchemy import Boolean, Column, Numeric, String, Text

from erp.db.session import Base


class FeeStructure(Base):
    """Fee component for a programme. Effective within [effective_from, effective_to]; empty effective_to is open-ended."""

    __tablename__ = "fee_master"
    __table_args__ = {"info": {"sheet": "FeeMaster", "key": "fee_id"}}

    fee_id = Column(String(64), primary_key=True)
    programme_id = Column(String(64), nullable=False, default="", index=True)
    component = Column(String(255), nullable=False, default="")
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="INR")
    effective_from = Column(String(40), nullable=False, default="")
    effective_to = Column(String(40), nullable=False, default="")
    category = Column(String(50), nullable=False, default="Tuition")
    created_at = Column(String(40), nullable=False, default="")
    updated_at = Column(String(40), nullable=False, default="")


class Transaction(Base):
    """
    Ledger entry for a payment. fee_id / fee_component / fee_amount snapshot the fee
    structure the payment was made against, so deleting the structure loses nothing.
    """

    __tablename__ = "transactions"
    __table_args__ = {"info": {"sheet": "Transactions", "key": "txn_id"}}

    txn_id = Column(String(64), primary_key=True)
    student_id = Column(String(64), nullable=False, index=True)
    admission_id = Column(String(64), nullable=False, default="")
    date = Column(String(40), nullable=False, default="")
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="INR")
    payment_mode = Column(String(30), nullable=False, default="")  # cash, card, upi, bank_transfer, ...
    gateway_ref = Column(String(100), nullable=False, default="")
    payment_status = Column(String(20), nullable=False, default="completed")
    receipt_id = Column(String(64), nullable=False, default="")
    fee_id = Column(String(64), nullable=False, default="")
    fee_component = Column(String(255), nullable=False, default="")
    fee_amount = Column(Numeric(12, 2), nullable=True)
    created_by = Column(String(64), nullable=False, default="system")
    created_at = Column(String(40), nullable=False, default="")
    notes = Column(Text, nullable=False, default="")


class Receipt(Base):
    __tablename__ = "receipts"
    __table_args__ = {"info": {"sheet": "Receipts", "key": "receipt_id"}}

    receipt_id = Column(String(64), primary_key=True)
    txn_id = Column(String(64), nullable=False, unique=True)
    issued_by = Column(String(64), nullable=False, default="system")
    issued_on = Column(String(40), nullable=False, default="")
    pdf_drive_file_id = Column(String(255), nullable=False, default="")
    email_sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(40), nullable=False, default="")
