from erp.core.models.admission import Admission
from erp.core.models.student import Student
from erp.core.models.course import Course, Enrollment
from erp.core.models.hostel import HostelAllocation, HostelRoom
from erp.core.models.fee import FeeStructure, Receipt, Transaction
from erp.core.models.exam import Exam, Marks
from erp.core.models.audit_log import AuditLog

__all__ = [
    "Admission",
    "Student",
    "Course",
    "Enrollment",
    "HostelRoom",
    "HostelAllocation",
    "FeeStructure",
    "Transaction",
    "Receipt",
    "Exam",
    "Marks",
    "AuditLog",
]
