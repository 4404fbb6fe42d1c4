"""
Entity id generation. Format: PREFIX-<32 uppercase hex chars from uuid4>.
"""

import uuid

ADMISSION_PREFIX = "ADM"
APPLICATION_PREFIX = "APP"
STUDENT_PREFIX = "STD"
ENROLLMENT_PREFIX = "ENR"
ALLOCATION_PREFIX = "ALLOC"
TRANSACTION_PREFIX = "TXN"
RECEIPT_PREFIX = "RCP"
MARKS_PREFIX = "MRK"
AUDIT_PREFIX = "LOG"


def new_id(prefix: str) -> str:
    """
    Generate a type-prefixed entity id.

    Examples:
        ADM -> ADM-9F1C0E5B6A0D4C2B8E7A1F3D5C9B2E40
        TXN -> TXN-0B7D2A4E91C34F6A8D5E2C1B7A9F3E68

    uuid4 carries 122 random bits, so ids from concurrent callers do not collide.
    """
    prefix = (prefix or "").strip().upper()
    suffix = uuid.uuid4().hex.upper()
    return f"{prefix}-{suffix}" if prefix else suffix
