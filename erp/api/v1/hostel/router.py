"""Hostel router: rooms, allocate / deallocate, allocations, stats."""

from typing import Optional

from fastapi import APIRouter, Depends, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from erp.db.session import get_db

from erp.api.v1.dependencies import get_actor
from erp.api.v1.schemas import MessageEnvelope

from .schemas import (
    AllocationEnvelope,
    AllocationListEnvelope,
    AllocationRequest,
    AllocationResultEnvelope,
    DeallocationRequest,
    HostelStatsEnvelope,
    RoomCreate,
    RoomEnvelope,
    RoomListEnvelope,
    RoomUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/hostel", tags=["hostel"])


# --- Rooms ---
@router.post("/rooms", response_model=RoomEnvelope, status_code=http_status.HTTP_201_CREATED)
async def create_room(
    payload: RoomCreate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> RoomEnvelope:
    return RoomEnvelope(room=await service.create_room(db, payload, actor))


@router.get("/rooms", response_model=RoomListEnvelope)
async def list_rooms(
    hostel: Optional[str] = None,
    status: Optional[str] = None,
    floor: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> RoomListEnvelope:
    return RoomListEnvelope(rooms=await service.list_rooms(db, hostel, status, floor))


@router.get("/rooms/{room_id}", response_model=RoomEnvelope)
async def get_room(room_id: str, db: AsyncSession = Depends(get_db)) -> RoomEnvelope:
    return RoomEnvelope(room=await service.get_room(db, room_id))


@router.put("/rooms/{room_id}", response_model=RoomEnvelope)
async def update_room(
    room_id: str,
    payload: RoomUpdate,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> RoomEnvelope:
    return RoomEnvelope(room=await service.update_room(db, room_id, payload, actor))


@router.delete("/rooms/{room_id}", response_model=MessageEnvelope)
async def delete_room(
    room_id: str,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> MessageEnvelope:
    await service.delete_room(db, room_id, actor)
    return MessageEnvelope(message="Room deleted")


# --- Allocations ---
@router.post("/allocations", response_model=AllocationResultEnvelope, status_code=http_status.HTTP_201_CREATED)
async def allocate_room(
    payload: AllocationRequest,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> AllocationResultEnvelope:
    result = await service.allocate_room(db, payload, actor)
    return AllocationResultEnvelope(allocation=result.allocation, room=result.room)


@router.get("/allocations", response_model=AllocationListEnvelope)
async def list_allocations(
    student_id: Optional[str] = None,
    room_id: Optional[str] = None,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> AllocationListEnvelope:
    return AllocationListEnvelope(allocations=await service.list_allocations(db, student_id, room_id, status))


@router.get("/students/{student_id}/allocation", response_model=AllocationEnvelope)
async def student_allocation(student_id: str, db: AsyncSession = Depends(get_db)) -> AllocationEnvelope:
    """allocation is null when the student holds no room."""
    return AllocationEnvelope(allocation=await service.get_student_allocation(db, student_id))


@router.post("/students/{student_id}/deallocate", response_model=AllocationResultEnvelope)
async def deallocate_room(
    student_id: str,
    payload: Optional[DeallocationRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> AllocationResultEnvelope:
    reason = payload.reason if payload else None
    result = await service.deallocate_room(db, student_id, reason, actor)
    return AllocationResultEnvelope(allocation=result.allocation, room=result.room)


@router.get("/stats", response_model=HostelStatsEnvelope)
async def hostel_stats(db: AsyncSession = Depends(get_db)) -> HostelStatsEnvelope:
    return HostelStatsEnvelope(stats=await service.get_hostel_stats(db))
