from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


# ----- Exam -----

class ExamCreate(BaseModel):
    exam_id: str = Field(..., min_length=1, max_length=64)
    course_id: str = Field(..., min_length=1, max_length=64)
    exam_date: str = Field(..., min_length=1, description="ISO-8601 date or datetime")
    venue: Optional[str] = Field(None, max_length=255)
    invigilator_id: Optional[str] = Field(None, max_length=64)

    class Config:
        extra = "forbid"


class ExamUpdate(BaseModel):
    course_id: Optional[str] = Field(None, min_length=1, max_length=64)
    exam_date: Optional[str] = Field(None, min_length=1)
    venue: Optional[str] = Field(None, max_length=255)
    invigilator_id: Optional[str] = Field(None, max_length=64)

    class Config:
        extra = "forbid"


class ExamResponse(BaseModel):
    exam_id: str
    course_id: str
    exam_date: str
    venue: str = ""
    invigilator_id: str = ""
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class ExamEnvelope(BaseModel):
    success: bool = True
    exam: ExamResponse


class ExamListEnvelope(BaseModel):
    success: bool = True
    exams: List[ExamResponse]


# ----- Marks -----

class MarksEntry(BaseModel):
    """Body for entering marks. Re-entering for the same exam and student updates the existing record."""

    marks_obtained: Decimal = Field(..., ge=0)
    entered_by: Optional[str] = Field(None, max_length=64)

    class Config:
        extra = "forbid"


class MarksResponse(BaseModel):
    marks_id: str
    exam_id: str
    student_id: str
    marks_obtained: Decimal
    grade: str
    entered_by: str
    entered_on: str

    class Config:
        from_attributes = True


class MarksEnvelope(BaseModel):
    success: bool = True
    marks: MarksResponse


class MarksListEnvelope(BaseModel):
    success: bool = True
    marks: List[MarksResponse]


class ExamResultsEnvelope(BaseModel):
    success: bool = True
    results: List[MarksResponse]


class ExamStats(BaseModel):
    total_exams: int = 0
    completed_exams: int = 0
    upcoming_exams: int = 0
    total_marks_entered: int = 0
    average_marks: float = 0.0
    pass_mark: float = 40
    pass_rate: float = 0.0


class ExamStatsEnvelope(BaseModel):
    success: bool = True
    stats: ExamStats
