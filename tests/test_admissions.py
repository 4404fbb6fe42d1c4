"""Admission lifecycle and conversion to student."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.exceptions import ConflictError, NotFoundError, ValidationError
from erp.db.table_store import TableStore

from erp.api.v1.admissions.schemas import (
    AdmissionCreate,
    AdmissionStatusUpdate,
    AdmissionUpdate,
    AdmitStudentRequest,
)
from erp.api.v1.admissions import service
from erp.api.v1.audit.schemas import AuditLogFilters
from erp.api.v1.audit.service import get_audit_logs
from erp.api.v1.students.schemas import StudentCreate
from erp.api.v1.students.service import create_student


def _application(email: str = "a@x.com", programme: str = "CS") -> AdmissionCreate:
    return AdmissionCreate(
        first_name="Anu",
        last_name="Menon",
        email=email,
        phone="9876543210",
        programme_applied=programme,
    )


async def _approved(db: AsyncSession, email: str = "a@x.com"):
    admission = await service.create_admission(db, _application(email))
    return await service.update_admission_status(
        db, admission.admission_id, AdmissionStatusUpdate(status="approved")
    )


@pytest.mark.asyncio
async def test_create_admission_defaults(db_session: AsyncSession) -> None:
    admission = await service.create_admission(db_session, _application())
    assert admission.status == "pending"
    assert admission.applicant_name == "Anu Menon"
    assert admission.admission_id.startswith("ADM-")
    assert admission.application_ref.startswith("APP-")
    assert admission.student_id == ""


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(db_session: AsyncSession) -> None:
    await service.create_admission(db_session, _application())
    with pytest.raises(ConflictError):
        await service.create_admission(db_session, _application())


@pytest.mark.asyncio
async def test_admit_approved_application(db_session: AsyncSession) -> None:
    approved = await _approved(db_session)

    result = await service.admit_student(
        db_session, approved.admission_id, AdmitStudentRequest(programme_id="CS1")
    )

    student = result.student
    assert student.enrollment_status == "active"
    assert student.year_of_study == 1
    assert student.programme_id == "CS1"
    assert student.programme_name == "CS"
    assert student.email == "a@x.com"
    assert student.admission_id == approved.admission_id

    admission = await service.get_admission(db_session, approved.admission_id)
    assert admission.status == "admitted"
    assert admission.student_id == student.student_id
    assert admission.admitted_on

    logs = await get_audit_logs(db_session, AuditLogFilters(entity_id=approved.admission_id))
    assert logs[0].action == "convert_to_student"


@pytest.mark.asyncio
async def test_admit_requires_approval(db_session: AsyncSession) -> None:
    admission = await service.create_admission(db_session, _application())
    with pytest.raises(ConflictError) as exc:
        await service.admit_student(db_session, admission.admission_id, AdmitStudentRequest())
    assert exc.value.message == "Admission must be approved first"
    assert await TableStore(db_session).count("students") == 0


@pytest.mark.asyncio
async def test_admit_unknown_admission(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await service.admit_student(db_session, "ADM-MISSING", AdmitStudentRequest())


@pytest.mark.asyncio
async def test_failed_admit_changes_nothing(db_session: AsyncSession) -> None:
    approved = await _approved(db_session)
    # A student already owns the applicant's email, so inserting the new student fails.
    await create_student(
        db_session,
        StudentCreate(student_id="S1", first_name="X", last_name="Y", email="a@x.com"),
    )

    with pytest.raises(ConflictError):
        await service.admit_student(db_session, approved.admission_id, AdmitStudentRequest())

    admission = await service.get_admission(db_session, approved.admission_id)
    assert admission.status == "approved"
    assert admission.student_id == ""
    assert await TableStore(db_session).count("students") == 1


@pytest.mark.asyncio
async def test_status_cannot_be_set_to_admitted(db_session: AsyncSession) -> None:
    approved = await _approved(db_session)
    with pytest.raises(ConflictError):
        await service.update_admission_status(
            db_session, approved.admission_id, AdmissionStatusUpdate(status="admitted")
        )
    assert (await service.get_admission(db_session, approved.admission_id)).status == "approved"


@pytest.mark.asyncio
async def test_admitted_status_is_final(db_session: AsyncSession) -> None:
    approved = await _approved(db_session)
    await service.admit_student(db_session, approved.admission_id, AdmitStudentRequest())
    with pytest.raises(ConflictError):
        await service.update_admission_status(
            db_session, approved.admission_id, AdmissionStatusUpdate(status="rejected")
        )


@pytest.mark.asyncio
async def test_invalid_status(db_session: AsyncSession) -> None:
    admission = await service.create_admission(db_session, _application())
    with pytest.raises(ValidationError):
        await service.update_admission_status(
            db_session, admission.admission_id, AdmissionStatusUpdate(status="waitlisted")
        )


@pytest.mark.asyncio
async def test_status_update_records_reviewer(db_session: AsyncSession) -> None:
    admission = await service.create_admission(db_session, _application())
    updated = await service.update_admission_status(
        db_session,
        admission.admission_id,
        AdmissionStatusUpdate(status="under_review", verifier_notes="docs ok", assigned_officer_id="OFF-1"),
    )
    assert updated.status == "under_review"
    assert updated.verifier_notes == "docs ok"
    assert updated.assigned_officer_id == "OFF-1"


@pytest.mark.asyncio
async def test_update_admission_recomputes_name(db_session: AsyncSession) -> None:
    admission = await service.create_admission(db_session, _application())
    updated = await service.update_admission(
        db_session, admission.admission_id, AdmissionUpdate(last_name="Nair")
    )
    assert updated.applicant_name == "Anu Nair"
    assert updated.status == "pending"


@pytest.mark.asyncio
async def test_list_filters_and_stats(db_session: AsyncSession) -> None:
    await _approved(db_session, "one@x.com")
    await service.create_admission(db_session, _application("two@x.com", programme="EE"))

    assert len(await service.list_admissions(db_session, status="approved")) == 1
    assert len(await service.list_admissions(db_session, programme="EE")) == 1
    assert len(await service.get_admissions_by_email(db_session, "two@x.com")) == 1

    stats = await service.get_admission_stats(db_session)
    assert stats.total == 2
    assert stats.pending == 1
    assert stats.approved == 1


@pytest.mark.asyncio
async def test_delete_admission(db_session: AsyncSession) -> None:
    admission = await service.create_admission(db_session, _application())
    await service.delete_admission(db_session, admission.admission_id)
    with pytest.raises(NotFoundError):
        await service.get_admission(db_session, admission.admission_id)
