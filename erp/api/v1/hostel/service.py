"""
Hostel rooms and the allocate / deallocate workflow.

An allocation touches three records: the HostelAllocation row, the HostelRoom it occupies and the
Student's hostel_alloc_id. Both workflows lock the student and the room, then write all three
together under one audit entry holding a snapshot of each.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.enums import AllocationStatus, AuditAction, RoomStatus
from erp.core.exceptions import ConflictError, NotFoundError, ValidationError
from erp.core.ids import ALLOCATION_PREFIX, new_id
from erp.core.timestamps import now_iso
from erp.db.table_store import Record, TableStore
from erp.db.unit_of_work import UnitOfWork

from erp.api.v1.audit.service import log_audit
from erp.api.v1.students.service import (
    TABLE as STUDENTS,
    find_student,
    set_hostel_alloc,
    student_lock,
)

from .schemas import (
    AllocationRequest,
    AllocationResponse,
    AllocationResult,
    HostelStats,
    OccupancyCount,
    RoomCreate,
    RoomResponse,
    RoomUpdate,
)

logger = logging.getLogger(__name__)

ROOMS = "hostel_rooms"
ALLOCATIONS = "hostel_allocations"

DEFAULT_ALLOCATION_REASON = "Regular allocation"
DEFAULT_RELEASE_REASON = "Deallocated"


def room_lock(room_id: str) -> str:
    return f"room:{room_id}"


async def _find_room(store: TableStore, room_id: str, *, for_update: bool = False):
    found = await store.find_by_key(ROOMS, "room_id", room_id, for_update=for_update)
    if not found:
        raise NotFoundError("Room not found")
    return found


async def _active_allocation(store: TableStore, student_id: str, *, for_update: bool = False) -> Optional[Record]:
    return await store.find_one(
        ALLOCATIONS,
        {"student_id": student_id, "status": AllocationStatus.active.value},
        for_update=for_update,
    )


# ----- Rooms -----

async def create_room(
    db: AsyncSession,
    payload: RoomCreate,
    performed_by: Optional[str] = None,
) -> RoomResponse:
    now = now_iso()
    record: Record = {
        **payload.model_dump(),
        "current_student_id": "",
        "status": RoomStatus.available.value,
        "created_at": now,
        "updated_at": now,
    }
    async with UnitOfWork(db, room_lock(payload.room_id)) as uow:
        if await uow.store.find_by_key(ROOMS, "room_id", payload.room_id):
            raise ConflictError("Room with this ID already exists")
        row = await uow.store.insert(ROOMS, record)
        await log_audit(uow.store, ROOMS, payload.room_id, AuditAction.CREATE.value, None, row, user_id=performed_by)
    return RoomResponse(**row)


async def get_room(db: AsyncSession, room_id: str) -> RoomResponse:
    row, _ = await _find_room(TableStore(db), room_id)
    return RoomResponse(**row)


async def list_rooms(
    db: AsyncSession,
    hostel: Optional[str] = None,
    status: Optional[str] = None,
    floor: Optional[str] = None,
) -> List[RoomResponse]:
    rows = await TableStore(db).find_all(
        ROOMS,
        {"hostel": hostel, "status": status, "floor": floor},
        order_by=["hostel", "block", "room_no"],
    )
    return [RoomResponse(**r) for r in rows]


async def update_room(
    db: AsyncSession,
    room_id: str,
    payload: RoomUpdate,
    performed_by: Optional[str] = None,
) -> RoomResponse:
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    new_status = changes.get("status")
    if new_status is not None:
        new_status = RoomStatus(new_status)
        if new_status == RoomStatus.occupied:
            raise ValidationError("Rooms become occupied only through allocation")
        changes["status"] = new_status.value

    async with UnitOfWork(db, room_lock(room_id)) as uow:
        current, position = await _find_room(uow.store, room_id, for_update=True)
        if new_status is not None and current["status"] == RoomStatus.occupied.value:
            raise ConflictError("Room is occupied; deallocate it before changing its status")
        updated = {**current, **changes, "updated_at": now_iso()}
        row = await uow.store.update_at(ROOMS, position, updated)
        await log_audit(uow.store, ROOMS, room_id, AuditAction.UPDATE.value, current, row, user_id=performed_by)
    return RoomResponse(**row)


async def delete_room(
    db: AsyncSession,
    room_id: str,
    performed_by: Optional[str] = None,
) -> None:
    async with UnitOfWork(db, room_lock(room_id)) as uow:
        store = uow.store
        current, position = await _find_room(store, room_id, for_update=True)
        if current["status"] == RoomStatus.occupied.value:
            raise ConflictError("Cannot delete an occupied room")
        if await store.count(ALLOCATIONS, {"room_id": room_id}):
            raise ConflictError("Cannot delete a room with allocation history")
        await store.delete_at(ROOMS, position)
        await log_audit(store, ROOMS, room_id, AuditAction.DELETE.value, current, None, user_id=performed_by)


# ----- Allocation workflow -----

async def allocate_room(
    db: AsyncSession,
    payload: AllocationRequest,
    performed_by: Optional[str] = None,
) -> AllocationResult:
    student_id, room_id = payload.student_id, payload.room_id
    async with UnitOfWork(db, student_lock(student_id), room_lock(room_id)) as uow:
        store = uow.store
        await find_student(store, student_id, for_update=True)
        room, room_position = await _find_room(store, room_id, for_update=True)
        if room["status"] != RoomStatus.available.value:
            raise ConflictError("Room is not available for allocation")
        if await _active_allocation(store, student_id, for_update=True):
            raise ConflictError("Student already has a room allocation")

        now = now_iso()
        alloc_id = new_id(ALLOCATION_PREFIX)
        allocation = await store.insert(
            ALLOCATIONS,
            {
                "alloc_id": alloc_id,
                "student_id": student_id,
                "room_id": room_id,
                "allocated_by": payload.allocated_by or performed_by or "system",
                "allocated_on": now,
                "released_on": "",
                "reason": payload.reason or DEFAULT_ALLOCATION_REASON,
                "status": AllocationStatus.active.value,
                "created_at": now,
                "updated_at": now,
            },
        )
        occupied = {
            **room,
            "status": RoomStatus.occupied.value,
            "current_student_id": student_id,
            "allocated_on": now,
            "updated_at": now,
        }
        room_row = await store.update_at(ROOMS, room_position, occupied)
        student, student_row = await set_hostel_alloc(store, student_id, alloc_id)
        await log_audit(
            store, ALLOCATIONS, alloc_id, AuditAction.ALLOCATE.value,
            {ROOMS: room, STUDENTS: student},
            {ALLOCATIONS: allocation, ROOMS: room_row, STUDENTS: student_row},
            user_id=performed_by,
        )
    logger.info("Room %s allocated to student %s (%s)", room_id, student_id, alloc_id)
    return AllocationResult(
        allocation=AllocationResponse(**allocation),
        room=RoomResponse(**room_row),
    )


async def deallocate_room(
    db: AsyncSession,
    student_id: str,
    reason: Optional[str] = None,
    performed_by: Optional[str] = None,
) -> AllocationResult:
    # Find the room first so student and room locks are taken together, in sorted order.
    found = await _active_allocation(TableStore(db), student_id)
    if not found:
        raise NotFoundError("No active room allocation found for student")
    room_id = found["room_id"]

    async with UnitOfWork(db, student_lock(student_id), room_lock(room_id)) as uow:
        store = uow.store
        allocation = await _active_allocation(store, student_id, for_update=True)
        if not allocation or allocation["alloc_id"] != found["alloc_id"]:
            raise ConflictError("Allocation changed while releasing, try again")

        now = now_iso()
        released = {
            **allocation,
            "status": AllocationStatus.inactive.value,
            "released_on": now,
            "reason": reason or DEFAULT_RELEASE_REASON,
            "updated_at": now,
        }
        alloc_row = await store.update_at(ALLOCATIONS, allocation["alloc_id"], released)
        room, room_position = await _find_room(store, room_id, for_update=True)
        available = {
            **room,
            "status": RoomStatus.available.value,
            "current_student_id": "",
            "released_on": now,
            "updated_at": now,
        }
        room_row = await store.update_at(ROOMS, room_position, available)
        student, student_row = await set_hostel_alloc(store, student_id, "")
        await log_audit(
            store, ALLOCATIONS, allocation["alloc_id"], AuditAction.DEALLOCATE.value,
            {ALLOCATIONS: allocation, ROOMS: room, STUDENTS: student},
            {ALLOCATIONS: alloc_row, ROOMS: room_row, STUDENTS: student_row},
            user_id=performed_by,
        )
    logger.info("Room %s released by student %s", room_id, student_id)
    return AllocationResult(
        allocation=AllocationResponse(**alloc_row),
        room=RoomResponse(**room_row),
    )


async def get_student_allocation(db: AsyncSession, student_id: str) -> Optional[AllocationResponse]:
    """The student's active allocation, or None."""
    row = await _active_allocation(TableStore(db), student_id)
    return AllocationResponse(**row) if row else None


async def list_allocations(
    db: AsyncSession,
    student_id: Optional[str] = None,
    room_id: Optional[str] = None,
    status: Optional[str] = None,
) -> List[AllocationResponse]:
    rows = await TableStore(db).find_all(
        ALLOCATIONS,
        {"student_id": student_id, "room_id": room_id, "status": status},
        order_by="-allocated_on",
    )
    return [AllocationResponse(**r) for r in rows]


def _count_room(bucket: OccupancyCount, status: str) -> None:
    bucket.total += 1
    if status == RoomStatus.available.value:
        bucket.available += 1
    elif status == RoomStatus.occupied.value:
        bucket.occupied += 1


async def get_hostel_stats(db: AsyncSession) -> HostelStats:
    store = TableStore(db)
    stats = HostelStats()
    for room in await store.find_all(ROOMS):
        stats.total_rooms += 1
        status = room["status"]
        if status == RoomStatus.available.value:
            stats.available_rooms += 1
        elif status == RoomStatus.occupied.value:
            stats.occupied_rooms += 1
        elif status == RoomStatus.maintenance.value:
            stats.maintenance_rooms += 1
        _count_room(stats.by_hostel.setdefault(room["hostel"] or "Unknown", OccupancyCount()), status)
        _count_room(stats.by_block.setdefault(room["block"] or "Unknown", OccupancyCount()), status)

    stats.total_allocations = await store.count(ALLOCATIONS)
    stats.active_allocations = await store.count(ALLOCATIONS, {"status": AllocationStatus.active.value})
    if stats.total_rooms:
        stats.occupancy_rate = round(stats.occupied_rooms / stats.total_rooms * 100, 1)
    return stats
