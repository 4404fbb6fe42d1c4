from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from erp.core.enums import EnrollmentStatus


class StudentCreate(BaseModel):
    """Create a student directly. student_id is generated when omitted."""

    student_id: Optional[str] = Field(None, max_length=64)
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    father_name: Optional[str] = Field(None, max_length=255)
    mother_name: Optional[str] = Field(None, max_length=255)
    dob: Optional[str] = None
    gender: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    programme_id: Optional[str] = Field(None, max_length=64)
    programme_name: Optional[str] = Field(None, max_length=255)
    admission_date: Optional[str] = None
    enrollment_status: EnrollmentStatus = EnrollmentStatus.active
    year_of_study: int = Field(1, ge=1)
    photo_drive_file_id: Optional[str] = None
    library_card_id: Optional[str] = None

    class Config:
        extra = "forbid"


class StudentUpdate(BaseModel):
    """Mutable student fields. hostel_alloc_id and admission_id belong to workflows and are rejected."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    dob: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    programme_id: Optional[str] = None
    programme_name: Optional[str] = None
    enrollment_status: Optional[EnrollmentStatus] = None
    year_of_study: Optional[int] = Field(None, ge=1)
    photo_drive_file_id: Optional[str] = None
    library_card_id: Optional[str] = None

    class Config:
        extra = "forbid"


class StudentResponse(BaseModel):
    student_id: str
    admission_id: str = ""
    first_name: str
    last_name: str
    father_name: str = ""
    mother_name: str = ""
    dob: str = ""
    gender: str = ""
    email: str
    phone: str = ""
    address: str = ""
    programme_id: str = ""
    programme_name: str = ""
    admission_date: str = ""
    enrollment_status: str
    year_of_study: int
    photo_drive_file_id: str = ""
    hostel_alloc_id: str = ""
    library_card_id: str = ""
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class StudentEnvelope(BaseModel):
    success: bool = True
    student: StudentResponse


class StudentListEnvelope(BaseModel):
    success: bool = True
    students: List[StudentResponse]


class StudentStats(BaseModel):
    total: int = 0
    active: int = 0
    inactive: int = 0
    by_programme: Dict[str, int] = Field(default_factory=dict)
    by_year: Dict[str, int] = Field(default_factory=dict)


class StudentStatsEnvelope(BaseModel):
    success: bool = True
    stats: StudentStats
