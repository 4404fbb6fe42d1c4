"""Student record. hostel_alloc_id and admission_id are maintained by workflows only."""

from sqlalchemy import Column, Integer, String, Text

from erp.db.session import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = {"info": {"sheet": "Students", "key": "student_id"}}

    student_id = Column(String(64), primary_key=True)
    admission_id = Column(String(64), nullable=False, default="", index=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    father_name = Column(String(255), nullable=False, default="")
    mother_name = Column(String(255), nullable=False, default="")
    dob = Column(String(40), nullable=False, default="")
    gender = Column(String(20), nullable=False, default="")
    email = Column(String(255), nullable=False, default="", index=True)
    phone = Column(String(50), nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    programme_id = Column(String(64), nullable=False, default="", index=True)
    programme_name = Column(String(255), nullable=False, default="")
    admission_date = Column(String(40), nullable=False, default="")
    enrollment_status = Column(String(20), nullable=False, default="active", index=True)
    year_of_study = Column(Integer, nullable=False, default=1)
    photo_drive_file_id = Column(String(255), nullable=False, default="")
    hostel_alloc_id = Column(String(64), nullable=False, default="")
    library_card_id = Column(String(64), nullable=False, default="")
    created_at = Column(String(40), nullable=False, default="")
    updated_at = Column(String(40), nullable=False, default="")
