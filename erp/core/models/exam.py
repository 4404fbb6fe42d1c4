"""Exams and marks. Marks are unique per (exam_id, student_id)."""

from sqlalchemy import Column, Numeric, String, UniqueConstraint

from erp.db.session import Base


class Exam(Base):
    __tablename__ = "exams"
    __table_args__ = {"info": {"sheet": "Exams", "key": "exam_id"}}

    exam_id = Column(String(64), primary_key=True)
    course_id = Column(String(64), nullable=False, index=True)
    exam_date = Column(String(40), nullable=False)
    venue = Column(String(255), nullable=False, default="")
    invigilator_id = Column(String(64), nullable=False, default="")
    created_at = Column(String(40), nullable=False, default="")
    updated_at = Column(String(40), nullable=False, default="")


class Marks(Base):
    __tablename__ = "marks"
    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", name="uq_marks_exam_student"),
        {"info": {"sheet": "Marks", "key": "marks_id"}},
    )

    marks_id = Column(String(64), primary_key=True)
    exam_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(64), nullable=False, index=True)
    marks_obtained = Column(Numeric(6, 2), nullable=False)
    grade = Column(String(5), nullable=False, default="")
    entered_by = Column(String(64), nullable=False, default="system")
    entered_on = Column(String(40), nullable=False, default="")
