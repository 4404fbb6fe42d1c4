from enum import Enum


class AdmissionStatus(str, Enum):
    pending = "pending"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"
    admitted = "admitted"


class EnrollmentStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class CourseEnrollmentStatus(str, Enum):
    enrolled = "enrolled"
    completed = "completed"
    dropped = "dropped"


class RoomStatus(str, Enum):
    available = "available"
    occupied = "occupied"
    maintenance = "maintenance"


class AllocationStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class PaymentStatus(str, Enum):
    completed = "completed"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UPDATE_STATUS = "update_status"
    CONVERT_TO_STUDENT = "convert_to_student"
    ALLOCATE = "allocate"
    DEALLOCATE = "deallocate"
    ISSUE_RECEIPT = "issue_receipt"
    ENROLL = "enroll"
