"""Courses and the enrollments that tie students to them."""

from sqlalchemy import Column, Integer, Numeric, String, UniqueConstraint

from erp.db.session import Base


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = {"info": {"sheet": "Courses", "key": "course_id"}}

    course_id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False, default="")
    credits = Column(Integer, nullable=True)
    programme_id = Column(String(64), nullable=False, default="", index=True)
    semester = Column(Integer, nullable=False, default=1)
    created_at = Column(String(40), nullable=False, default="")
    updated_at = Column(String(40), nullable=False, default="")


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
        {"info": {"sheet": "Enrollments", "key": "enroll_id"}},
    )

    enroll_id = Column(String(64), primary_key=True)
    student_id = Column(String(64), nullable=False, index=True)
    course_id = Column(String(64), nullable=False, index=True)
    enrolled_on = Column(String(40), nullable=False, default="")
    status = Column(String(20), nullable=False, default="enrolled")
    grade = Column(String(5), nullable=False, default="")
    marks = Column(Numeric(6, 2), nullable=True)
    created_at = Column(String(40), nullable=False, default="")
    updated_at = Column(String(40), nullable=False, default="")
