"""Workbook export and spreadsheet migration import."""

import io

import pytest
from openpyxl import Workbook, load_workbook
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.exceptions import ValidationError
from erp.db.table_store import TableStore

from erp.api.v1.data import service


def _workbook(sheets: dict) -> bytes:
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


@pytest.mark.asyncio
async def test_export_has_one_sheet_per_table(db_session: AsyncSession, student) -> None:
    content = await service.export_workbook(db_session)
    wb = load_workbook(io.BytesIO(content), read_only=True)

    assert {"Admissions", "Students", "HostelRooms", "FeeMaster", "AuditLog"} <= set(wb.sheetnames)
    rows = list(wb["Students"].iter_rows(values_only=True))
    assert list(rows[0]) == TableStore(db_session).header("students")
    assert rows[1][0] == "S1"


@pytest.mark.asyncio
async def test_import_inserts_new_rows_only(db_session: AsyncSession, student) -> None:
    content = _workbook(
        {
            "Students": [
                ["student_id", "first_name", "last_name", "email", "year_of_study"],
                ["S1", "Asha", "Rao", "asha@example.com", 1],
                ["S2", "Vikram", "Das", "vikram@example.com", 3],
                [None, None, None, None, None],
            ],
            "HostelRooms": [
                ["room_id", "hostel", "block", "floor", "room_no", "rent_per_month"],
                ["R9", "South", "B", 2, "201", 1500.5],
            ],
            "Notes": [["anything"], ["ignored"]],
        }
    )

    imported = await service.import_workbook(db_session, content, performed_by="migration")

    assert imported == {"Students": 1, "HostelRooms": 1}
    store = TableStore(db_session)
    s2, _ = await store.find_by_key("students", "student_id", "S2")
    assert s2["year_of_study"] == 3
    assert s2["enrollment_status"] == "active"
    room, _ = await store.find_by_key("hostel_rooms", "room_id", "R9")
    assert room["floor"] == "2"
    assert room["status"] == "available"
    assert await store.count("audit_log", {"user_id": "migration"}) == 2


@pytest.mark.asyncio
async def test_import_rejects_unknown_columns(db_session: AsyncSession) -> None:
    content = _workbook({"Courses": [["course_id", "title", "lecturer"], ["C1", "Maths", "Dr. X"]]})
    with pytest.raises(ValidationError) as exc:
        await service.import_workbook(db_session, content)
    assert "lecturer" in exc.value.message
    assert await TableStore(db_session).count("courses") == 0


@pytest.mark.asyncio
async def test_import_rejects_garbage(db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError):
        await service.import_workbook(db_session, b"not a workbook")


@pytest.mark.asyncio
async def test_import_rejects_admitted_without_student(db_session: AsyncSession) -> None:
    content = _workbook(
        {
            "Admissions": [
                ["admission_id", "first_name", "email", "status", "student_id"],
                ["ADM-X", "Ravi", "ravi@example.com", "admitted", None],
            ],
        }
    )
    with pytest.raises(ValidationError) as exc:
        await service.import_workbook(db_session, content)
    assert "ADM-X" in exc.value.message
    assert await TableStore(db_session).count("admissions") == 0


@pytest.mark.asyncio
async def test_import_rejects_active_allocation_on_available_room(
    db_session: AsyncSession, student, rooms
) -> None:
    content = _workbook(
        {
            "HostelAllocations": [
                ["alloc_id", "student_id", "room_id", "status"],
                ["AL-X", "S1", "R1", "active"],
            ],
        }
    )
    with pytest.raises(ValidationError) as exc:
        await service.import_workbook(db_session, content)
    assert "AL-X" in exc.value.message

    store = TableStore(db_session)
    assert await store.count("hostel_allocations") == 0
    room, _ = await store.find_by_key("hostel_rooms", "room_id", "R1")
    assert room["status"] == "available"


@pytest.mark.asyncio
async def test_import_rejects_unknown_status(db_session: AsyncSession) -> None:
    content = _workbook(
        {
            "Students": [
                ["student_id", "first_name", "last_name", "email", "enrollment_status"],
                ["S5", "Meera", "Iyer", "meera@example.com", "graduated"],
            ],
        }
    )
    with pytest.raises(ValidationError) as exc:
        await service.import_workbook(db_session, content)
    assert "enrollment_status" in exc.value.message
    assert await TableStore(db_session).count("students") == 0


@pytest.mark.asyncio
async def test_import_accepts_consistent_allocation(db_session: AsyncSession) -> None:
    content = _workbook(
        {
            "Students": [
                ["student_id", "first_name", "last_name", "email", "hostel_alloc_id"],
                ["S8", "Kiran", "Shah", "kiran@example.com", "AL-8"],
            ],
            "HostelRooms": [
                ["room_id", "hostel", "block", "floor", "room_no", "status", "current_student_id"],
                ["R8", "North", "A", "1", "108", "occupied", "S8"],
            ],
            "HostelAllocations": [
                ["alloc_id", "student_id", "room_id", "status"],
                ["AL-8", "S8", "R8", "active"],
            ],
        }
    )

    imported = await service.import_workbook(db_session, content)

    assert imported == {"Students": 1, "HostelRooms": 1, "HostelAllocations": 1}
    store = TableStore(db_session)
    allocation, _ = await store.find_by_key("hostel_allocations", "alloc_id", "AL-8")
    assert allocation["status"] == "active"


@pytest.mark.asyncio
async def test_database_stats_counts_rows_per_sheet(db_session: AsyncSession, student, rooms) -> None:
    stats = await service.get_database_stats(db_session)

    assert stats.sheets["Students"] == 1
    assert stats.sheets["HostelRooms"] == 2
    assert stats.sheets["Admissions"] == 0
    assert stats.total_records == sum(stats.sheets.values())
    assert stats.last_updated
