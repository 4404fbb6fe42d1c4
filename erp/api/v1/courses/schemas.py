from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from erp.core.enums import CourseEnrollmentStatus


# ----- Course -----

class CourseCreate(BaseModel):
    course_id: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=255)
    credits: int = Field(..., ge=0)
    programme_id: str = Field(..., min_length=1, max_length=64)
    semester: int = Field(1, ge=1)

    class Config:
        extra = "forbid"


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    credits: Optional[int] = Field(None, ge=0)
    programme_id: Optional[str] = Field(None, min_length=1, max_length=64)
    semester: Optional[int] = Field(None, ge=1)

    class Config:
        extra = "forbid"


class CourseResponse(BaseModel):
    course_id: str
    title: str
    credits: Optional[int] = None
    programme_id: str
    semester: int
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class CourseEnvelope(BaseModel):
    success: bool = True
    course: CourseResponse


class CourseListEnvelope(BaseModel):
    success: bool = True
    courses: List[CourseResponse]


# ----- Enrollment -----

class EnrollmentCreate(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=64)
    status: CourseEnrollmentStatus = CourseEnrollmentStatus.enrolled

    class Config:
        extra = "forbid"


class EnrollmentResponse(BaseModel):
    enroll_id: str
    student_id: str
    course_id: str
    enrolled_on: str
    status: str
    grade: str = ""
    marks: Optional[Decimal] = None
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class EnrollmentEnvelope(BaseModel):
    success: bool = True
    enrollment: EnrollmentResponse


class EnrollmentListEnvelope(BaseModel):
    success: bool = True
    enrollments: List[EnrollmentResponse]
