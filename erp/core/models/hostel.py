"""
Hostel rooms and allocations. A room is occupied by at most one student; a student holds at
most one active allocation. Both rules are backed by partial unique indexes.
"""

from sqlalchemy import Column, Index, Integer, Numeric, String, Text, text

from erp.db.session import Base


class HostelRoom(Base):
    __tablename__ = "hostel_rooms"
    __table_args__ = (
        Index(
            "uq_hostel_room_occupant",
            "current_student_id",
            unique=True,
            sqlite_where=text("status = 'occupied'"),
            postgresql_where=text("status = 'occupied'"),
        ),
        {"info": {"sheet": "HostelRooms", "key": "room_id"}},
    )

    room_id = Column(String(64), primary_key=True)
    hostel = Column(String(255), nullable=False, default="", index=True)
    block = Column(String(64), nullable=False, default="")
    floor = Column(String(20), nullable=False, default="")
    room_no = Column(String(20), nullable=False, default="")
    bed_no = Column(String(20), nullable=False, default="")
    capacity = Column(Integer, nullable=False, default=1)
    current_student_id = Column(String(64), nullable=False, default="")
    status = Column(String(20), nullable=False, default="available", index=True)
    allocated_on = Column(String(40), nullable=False, default="")
    released_on = Column(String(40), nullable=False, default="")
    amenities = Column(Text, nullable=False, default="")
    rent_per_month = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(String(40), nullable=False, default="")
    updated_at = Column(String(40), nullable=False, default="")


class HostelAllocation(Base):
    __tablename__ = "hostel_allocations"
    __table_args__ = (
        Index(
            "uq_hostel_allocation_active_student",
            "student_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        {"info": {"sheet": "HostelAllocations", "key": "alloc_id"}},
    )

    alloc_id = Column(String(64), primary_key=True)
    student_id = Column(String(64), nullable=False, index=True)
    room_id = Column(String(64), nullable=False, index=True)
    allocated_by = Column(String(64), nullable=False, default="system")
    allocated_on = Column(String(40), nullable=False, default="")
    released_on = Column(String(40), nullable=False, default="")
    reason = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(String(40), nullable=False, default="")
    updated_at = Column(String(40), nullable=False, default="")
