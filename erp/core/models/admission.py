"""
Admission application. Status moves pending -> under_review -> approved -> rejected | admitted.
`admitted` is only reached by converting the admission into a Student.
"""

from sqlalchemy import Column, String, Text

from erp.db.session import Base


class Admission(Base):
    __tablename__ = "admissions"
    __table_args__ = {"info": {"sheet": "Admissions", "key": "admission_id"}}

    admission_id = Column(String(64), primary_key=True)
    application_ref = Column(String(64), nullable=False, default="")
    applicant_name = Column(String(255), nullable=False, default="")
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=False, default="", index=True)
    phone = Column(String(50), nullable=False, default="")
    programme_applied = Column(String(255), nullable=False, default="", index=True)
    documents = Column(Text, nullable=False, default="")
    applied_on = Column(String(40), nullable=False, default="")
    status = Column(String(20), nullable=False, default="pending", index=True)
    assigned_officer_id = Column(String(64), nullable=False, default="")
    verifier_notes = Column(Text, nullable=False, default="")
    admitted_on = Column(String(40), nullable=False, default="")
    student_id = Column(String(64), nullable=False, default="")
    created_at = Column(String(40), nullable=False, default="")
    updated_at = Column(String(40), nullable=False, default="")
