from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from erp.api.v1.students.schemas import StudentResponse


class AdmissionCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)
    programme_applied: str = Field(..., min_length=1, max_length=255)
    documents: Optional[str] = None
    assigned_officer_id: Optional[str] = Field(None, max_length=64)

    class Config:
        extra = "forbid"


class AdmissionUpdate(BaseModel):
    """Editable application fields. Status changes go through the status endpoint."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    programme_applied: Optional[str] = Field(None, min_length=1, max_length=255)
    documents: Optional[str] = None
    assigned_officer_id: Optional[str] = Field(None, max_length=64)
    verifier_notes: Optional[str] = None

    class Config:
        extra = "forbid"


class AdmissionStatusUpdate(BaseModel):
    status: str = Field(..., description="pending | under_review | approved | rejected")
    verifier_notes: Optional[str] = None
    assigned_officer_id: Optional[str] = Field(None, max_length=64)

    class Config:
        extra = "forbid"


class AdmitStudentRequest(BaseModel):
    """Student details not captured on the application. Identity and contact come from the admission."""

    father_name: Optional[str] = Field(None, max_length=255)
    mother_name: Optional[str] = Field(None, max_length=255)
    dob: Optional[str] = None
    gender: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    programme_id: Optional[str] = Field(None, max_length=64)
    photo_drive_file_id: Optional[str] = None

    class Config:
        extra = "forbid"


class AdmissionResponse(BaseModel):
    admission_id: str
    application_ref: str
    applicant_name: str
    first_name: str
    last_name: str
    email: str
    phone: str
    programme_applied: str
    documents: str = ""
    applied_on: str
    status: str
    assigned_officer_id: str = ""
    verifier_notes: str = ""
    admitted_on: str = ""
    student_id: str = ""
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class AdmissionEnvelope(BaseModel):
    success: bool = True
    admission: AdmissionResponse


class AdmissionListEnvelope(BaseModel):
    success: bool = True
    admissions: List[AdmissionResponse]


class AdmitStudentResult(BaseModel):
    student: StudentResponse
    admission: AdmissionResponse


class AdmitStudentEnvelope(AdmitStudentResult):
    success: bool = True


class AdmissionStats(BaseModel):
    total: int = 0
    pending: int = 0
    under_review: int = 0
    approved: int = 0
    rejected: int = 0
    admitted: int = 0


class AdmissionStatsEnvelope(BaseModel):
    success: bool = True
    stats: AdmissionStats
