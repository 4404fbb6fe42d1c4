import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.exceptions import ConflictError, NotFoundError

from erp.api.v1.courses.schemas import CourseCreate, CourseUpdate, EnrollmentCreate
from erp.api.v1.courses import service
from erp.api.v1.exams.schemas import ExamCreate
from erp.api.v1.exams.service import create_exam
from erp.api.v1.students.service import get_student_courses


@pytest.fixture()
async def course(db_session: AsyncSession):
    return await service.create_course(
        db_session, CourseCreate(course_id="C1", title="Data Structures", credits=4, programme_id="CS1")
    )


@pytest.mark.asyncio
async def test_enroll_student(db_session: AsyncSession, student, course) -> None:
    enrollment = await service.enroll_student(db_session, "C1", EnrollmentCreate(student_id="S1"))
    assert enrollment.status == "enrolled"
    assert enrollment.enroll_id.startswith("ENR-")

    with pytest.raises(ConflictError):
        await service.enroll_student(db_session, "C1", EnrollmentCreate(student_id="S1"))

    courses = await get_student_courses(db_session, "S1")
    assert [c.course_id for c in courses] == ["C1"]


@pytest.mark.asyncio
async def test_enroll_unknown_student(db_session: AsyncSession, course) -> None:
    with pytest.raises(NotFoundError):
        await service.enroll_student(db_session, "C1", EnrollmentCreate(student_id="S404"))


@pytest.mark.asyncio
async def test_course_with_enrollments_cannot_be_deleted(db_session: AsyncSession, student, course) -> None:
    enrollment = await service.enroll_student(db_session, "C1", EnrollmentCreate(student_id="S1"))
    with pytest.raises(ConflictError):
        await service.delete_course(db_session, "C1")

    await service.delete_enrollment(db_session, enrollment.enroll_id)
    await service.delete_course(db_session, "C1")
    with pytest.raises(NotFoundError):
        await service.get_course(db_session, "C1")


@pytest.mark.asyncio
async def test_course_with_exams_cannot_be_deleted(db_session: AsyncSession, course) -> None:
    await create_exam(db_session, ExamCreate(exam_id="E1", course_id="C1", exam_date="2030-01-01"))
    with pytest.raises(ConflictError):
        await service.delete_course(db_session, "C1")
    assert [e.exam_id for e in await service.list_course_exams(db_session, "C1")] == ["E1"]


@pytest.mark.asyncio
async def test_update_and_list_courses(db_session: AsyncSession, course) -> None:
    await service.create_course(
        db_session, CourseCreate(course_id="C2", title="Networks", credits=3, programme_id="CS1", semester=2)
    )
    updated = await service.update_course(db_session, "C1", CourseUpdate(credits=5))
    assert updated.credits == 5
    assert [c.course_id for c in await service.list_courses(db_session, semester=2)] == ["C2"]
    assert len(await service.list_courses(db_session, programme_id="CS1")) == 2
