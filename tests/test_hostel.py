"""Room allocation workflow and room management."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.config import settings
from erp.core.exceptions import BusyError, ConflictError, NotFoundError, ValidationError
from erp.db.locks import entity_locks

from erp.api.v1.hostel.schemas import AllocationRequest, RoomUpdate
from erp.api.v1.hostel import service
from erp.api.v1.students.schemas import StudentCreate
from erp.api.v1.students.service import create_student, get_student


async def _assert_consistent(db: AsyncSession, student_id: str) -> None:
    """Active allocation <=> occupied room held by the same student <=> student.hostel_alloc_id."""
    allocation = await service.get_student_allocation(db, student_id)
    student = await get_student(db, student_id)
    if allocation is None:
        assert student.hostel_alloc_id == ""
        return
    room = await service.get_room(db, allocation.room_id)
    assert room.status == "occupied"
    assert room.current_student_id == student_id
    assert student.hostel_alloc_id == allocation.alloc_id


@pytest.mark.asyncio
async def test_allocate_room(db_session: AsyncSession, student, rooms) -> None:
    result = await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R1"))

    assert result.allocation.status == "active"
    assert result.allocation.reason == "Regular allocation"
    assert result.allocation.allocated_by == "system"
    assert result.room.status == "occupied"
    assert result.room.current_student_id == "S1"
    await _assert_consistent(db_session, "S1")

    with pytest.raises(ConflictError) as exc:
        await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R2"))
    assert exc.value.message == "Student already has a room allocation"
    assert (await service.get_room(db_session, "R2")).status == "available"


@pytest.mark.asyncio
async def test_deallocate_room(db_session: AsyncSession, student, rooms) -> None:
    allocated = await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R1"))

    result = await service.deallocate_room(db_session, "S1")

    assert result.allocation.alloc_id == allocated.allocation.alloc_id
    assert result.allocation.status == "inactive"
    assert result.allocation.reason == "Deallocated"
    assert result.allocation.released_on
    assert result.room.status == "available"
    assert result.room.current_student_id == ""
    await _assert_consistent(db_session, "S1")

    # the student can be housed again afterwards
    await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R2"))
    await _assert_consistent(db_session, "S1")


@pytest.mark.asyncio
async def test_deallocate_without_allocation(db_session: AsyncSession, student) -> None:
    with pytest.raises(NotFoundError):
        await service.deallocate_room(db_session, "S1")


@pytest.mark.asyncio
async def test_allocate_occupied_room(db_session: AsyncSession, student, rooms) -> None:
    await create_student(
        db_session,
        StudentCreate(student_id="S2", first_name="B", last_name="C", email="b@example.com"),
    )
    await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R1"))
    with pytest.raises(ConflictError) as exc:
        await service.allocate_room(db_session, AllocationRequest(student_id="S2", room_id="R1"))
    assert exc.value.message == "Room is not available for allocation"
    await _assert_consistent(db_session, "S2")


@pytest.mark.asyncio
async def test_allocate_unknown_student_or_room(db_session: AsyncSession, student, rooms) -> None:
    with pytest.raises(NotFoundError):
        await service.allocate_room(db_session, AllocationRequest(student_id="S404", room_id="R1"))
    with pytest.raises(NotFoundError):
        await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R404"))


@pytest.mark.asyncio
async def test_maintenance_room_cannot_be_allocated(db_session: AsyncSession, student, rooms) -> None:
    await service.update_room(db_session, "R1", RoomUpdate(status="maintenance"))
    with pytest.raises(ConflictError):
        await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R1"))


@pytest.mark.asyncio
async def test_room_status_is_workflow_owned(db_session: AsyncSession, student, rooms) -> None:
    with pytest.raises(ValidationError):
        await service.update_room(db_session, "R1", RoomUpdate(status="occupied"))

    await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R1"))
    with pytest.raises(ConflictError):
        await service.update_room(db_session, "R1", RoomUpdate(status="available"))

    # descriptive fields stay editable while occupied
    updated = await service.update_room(db_session, "R1", RoomUpdate(amenities="fan"))
    assert updated.amenities == "fan"
    assert updated.status == "occupied"


@pytest.mark.asyncio
async def test_delete_room_guards(db_session: AsyncSession, student, rooms) -> None:
    await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R1"))
    with pytest.raises(ConflictError):
        await service.delete_room(db_session, "R1")

    await service.deallocate_room(db_session, "S1")
    with pytest.raises(ConflictError):
        await service.delete_room(db_session, "R1")

    await service.delete_room(db_session, "R2")
    with pytest.raises(NotFoundError):
        await service.get_room(db_session, "R2")


@pytest.mark.asyncio
async def test_busy_student_lock(db_session: AsyncSession, student, rooms, monkeypatch) -> None:
    monkeypatch.setattr(settings, "lock_timeout_seconds", 0.05)
    held = await entity_locks.acquire(["student:S1"], timeout=1)
    try:
        with pytest.raises(BusyError):
            await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R1"))
    finally:
        entity_locks.release(held)

    assert not entity_locks.is_locked("room:R1")
    assert (await service.get_room(db_session, "R1")).status == "available"


@pytest.mark.asyncio
async def test_list_allocations_and_stats(db_session: AsyncSession, student, rooms) -> None:
    await service.allocate_room(db_session, AllocationRequest(student_id="S1", room_id="R1"))

    assert len(await service.list_allocations(db_session, status="active")) == 1
    assert await service.list_allocations(db_session, room_id="R2") == []
    assert [r.room_id for r in await service.list_rooms(db_session, status="available")] == ["R2"]

    stats = await service.get_hostel_stats(db_session)
    assert stats.total_rooms == 2
    assert stats.occupied_rooms == 1
    assert stats.available_rooms == 1
    assert stats.active_allocations == 1
    assert stats.occupancy_rate == 50.0
    assert stats.by_hostel["North"].occupied == 1
    assert stats.by_block["A"].total == 2
