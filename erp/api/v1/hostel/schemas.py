from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from erp.core.enums import RoomStatus


# ----- Rooms -----

class RoomCreate(BaseModel):
    room_id: str = Field(..., min_length=1, max_length=64)
    hostel: str = Field(..., min_length=1, max_length=255)
    block: str = Field(..., min_length=1, max_length=64)
    floor: str = Field(..., min_length=1, max_length=20)
    room_no: str = Field(..., min_length=1, max_length=20)
    bed_no: Optional[str] = Field(None, max_length=20)
    capacity: int = Field(1, ge=1)
    amenities: Optional[str] = None
    rent_per_month: Decimal = Field(Decimal("0"), ge=0)

    class Config:
        extra = "forbid"


class RoomUpdate(BaseModel):
    """Descriptive fields plus available/maintenance toggling. Occupancy is set by allocation only."""

    hostel: Optional[str] = Field(None, min_length=1, max_length=255)
    block: Optional[str] = Field(None, min_length=1, max_length=64)
    floor: Optional[str] = Field(None, min_length=1, max_length=20)
    room_no: Optional[str] = Field(None, min_length=1, max_length=20)
    bed_no: Optional[str] = Field(None, max_length=20)
    capacity: Optional[int] = Field(None, ge=1)
    amenities: Optional[str] = None
    rent_per_month: Optional[Decimal] = Field(None, ge=0)
    status: Optional[RoomStatus] = None

    class Config:
        extra = "forbid"


class RoomResponse(BaseModel):
    room_id: str
    hostel: str
    block: str
    floor: str
    room_no: str
    bed_no: str = ""
    capacity: int
    current_student_id: str = ""
    status: str
    allocated_on: str = ""
    released_on: str = ""
    amenities: str = ""
    rent_per_month: Decimal
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class RoomEnvelope(BaseModel):
    success: bool = True
    room: RoomResponse


class RoomListEnvelope(BaseModel):
    success: bool = True
    rooms: List[RoomResponse]


# ----- Allocations -----

class AllocationRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=64)
    room_id: str = Field(..., min_length=1, max_length=64)
    allocated_by: Optional[str] = Field(None, max_length=64)
    reason: Optional[str] = None

    class Config:
        extra = "forbid"


class DeallocationRequest(BaseModel):
    reason: Optional[str] = None

    class Config:
        extra = "forbid"


class AllocationResponse(BaseModel):
    alloc_id: str
    student_id: str
    room_id: str
    allocated_by: str
    allocated_on: str
    released_on: str = ""
    reason: str = ""
    status: str
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class AllocationEnvelope(BaseModel):
    success: bool = True
    allocation: Optional[AllocationResponse] = None


class AllocationListEnvelope(BaseModel):
    success: bool = True
    allocations: List[AllocationResponse]


class AllocationResult(BaseModel):
    allocation: AllocationResponse
    room: RoomResponse


class AllocationResultEnvelope(AllocationResult):
    success: bool = True


# ----- Stats -----

class OccupancyCount(BaseModel):
    total: int = 0
    available: int = 0
    occupied: int = 0


class HostelStats(BaseModel):
    total_rooms: int = 0
    available_rooms: int = 0
    occupied_rooms: int = 0
    maintenance_rooms: int = 0
    total_allocations: int = 0
    active_allocations: int = 0
    occupancy_rate: float = 0.0
    by_hostel: Dict[str, OccupancyCount] = Field(default_factory=dict)
    by_block: Dict[str, OccupancyCount] = Field(default_factory=dict)


class HostelStatsEnvelope(BaseModel):
    success: bool = True
    stats: HostelStats
