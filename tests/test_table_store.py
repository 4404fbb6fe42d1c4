"""Table store accessor: schema lookup, serialization, reads and writes."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.exceptions import ConflictError, NotFoundError, ValidationError
from erp.db.table_store import TableStore


def _course(course_id: str, semester: int = 1) -> dict:
    return {
        "course_id": course_id,
        "title": f"Course {course_id}",
        "credits": 4,
        "programme_id": "CS1",
        "semester": semester,
    }


def test_unknown_table_is_not_found() -> None:
    with pytest.raises(NotFoundError) as exc:
        TableStore(None).get("Library")
    assert exc.value.message == "Library table not found"


def test_header_follows_column_order() -> None:
    assert TableStore(None).header("marks") == [
        "marks_id",
        "exam_id",
        "student_id",
        "marks_obtained",
        "grade",
        "entered_by",
        "entered_on",
    ]


def test_serialize_fills_absent_fields() -> None:
    row = TableStore(None).serialize("students", {"student_id": "S9", "first_name": "Ravi"})
    assert set(row) == set(TableStore(None).header("students"))
    assert row["hostel_alloc_id"] == ""
    assert row["enrollment_status"] == "active"
    assert row["year_of_study"] == 1


def test_serialize_rejects_unknown_fields() -> None:
    with pytest.raises(ValidationError) as exc:
        TableStore(None).serialize("courses", {**_course("C1"), "room": "B12"})
    assert "room" in exc.value.message


@pytest.mark.asyncio
async def test_insert_and_find_by_key(db_session: AsyncSession) -> None:
    store = TableStore(db_session)
    await store.insert("courses", _course("C1"))

    found = await store.find_by_key("courses", "course_id", "C1")
    assert found is not None
    row, position = found
    assert position == "C1"
    assert row["title"] == "Course C1"
    assert await store.find_by_key("courses", "course_id", "C404") is None


@pytest.mark.asyncio
async def test_duplicate_key_is_conflict(db_session: AsyncSession) -> None:
    store = TableStore(db_session)
    await store.insert("courses", _course("C1"))
    with pytest.raises(ConflictError):
        await store.insert("courses", _course("C1"))


@pytest.mark.asyncio
async def test_update_and_delete_at_position(db_session: AsyncSession) -> None:
    store = TableStore(db_session)
    row = await store.insert("courses", _course("C1"))

    updated = await store.update_at("courses", "C1", {**row, "title": "Algorithms"})
    assert updated["title"] == "Algorithms"
    assert (await store.find_by_key("courses", "course_id", "C1"))[0]["title"] == "Algorithms"

    await store.delete_at("courses", "C1")
    assert await store.count("courses") == 0
    with pytest.raises(NotFoundError):
        await store.delete_at("courses", "C1")


@pytest.mark.asyncio
async def test_find_all_filters_and_orders(db_session: AsyncSession) -> None:
    store = TableStore(db_session)
    await store.insert("courses", _course("C1", semester=2))
    await store.insert("courses", _course("C2", semester=1))
    await store.insert("courses", _course("C3", semester=3))

    rows = await store.find_all("courses", order_by="-semester")
    assert [r["course_id"] for r in rows] == ["C3", "C1", "C2"]

    rows = await store.find_all("courses", {"semester": [1, 3]}, order_by="course_id")
    assert [r["course_id"] for r in rows] == ["C2", "C3"]

    # None filters are ignored
    assert await store.count("courses", {"semester": None}) == 3

    with pytest.raises(ValidationError):
        await store.find_all("courses", {"lecturer": "x"})


@pytest.mark.asyncio
async def test_audit_log_is_append_only(db_session: AsyncSession) -> None:
    store = TableStore(db_session)
    entry = await store.insert(
        "audit_log",
        {
            "log_id": "LOG-1",
            "table_name": "courses",
            "entity_id": "C1",
            "action": "create",
            "timestamp": "2024-01-01T00:00:00+00:00",
        },
    )
    with pytest.raises(ConflictError):
        await store.update_at("audit_log", "LOG-1", {**entry, "action": "delete"})
    with pytest.raises(ConflictError):
        await store.delete_at("audit_log", "LOG-1")
