"""
Workbook import / export for migrating spreadsheet data.

Each table maps to a sheet named after the original spreadsheet tab (e.g. `hostel_rooms` ->
`HostelRooms`); row 1 is the header, every following row is one record.
"""

import io
import json
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from openpyxl import Workbook, load_workbook
from sqlalchemy import JSON, Boolean, Integer, Numeric, Table
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.enums import (
    AdmissionStatus,
    AllocationStatus,
    AuditAction,
    CourseEnrollmentStatus,
    EnrollmentStatus,
    PaymentStatus,
    RoomStatus,
)
from erp.core.exceptions import ValidationError
from erp.core.timestamps import now_iso
from erp.db.session import Base
from erp.db.table_store import Record, TableStore
from erp.db.unit_of_work import UnitOfWork

from erp.api.v1.admissions.service import TABLE as ADMISSIONS, admission_email_lock, admission_lock
from erp.api.v1.audit.service import AUDIT_TABLE, log_audit
from erp.api.v1.courses.service import ENROLLMENTS
from erp.api.v1.fees.service import RECEIPTS, TRANSACTIONS, txn_lock
from erp.api.v1.hostel.service import ALLOCATIONS, ROOMS, room_lock
from erp.api.v1.students.service import TABLE as STUDENTS, student_email_lock, student_lock

from .schemas import DatabaseStats

logger = logging.getLogger(__name__)

WORKBOOK_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
IMPORT_LOCK = "workbook:import"


def sheet_name(table: Table) -> str:
    return table.info.get("sheet") or table.name


def _tables() -> List[Table]:
    return list(Base.metadata.sorted_tables)


def _cell_out(value: Any) -> Any:
    """Value as written to a cell: JSON snapshots become text, everything else is kept."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return value


def _cell_in(table: Table, column_name: str, value: Any, row_num: int) -> Any:
    """Coerce a cell read from a workbook to the column's Python type."""
    column = table.columns[column_name]
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        if isinstance(column.type, Boolean):
            if isinstance(value, str):
                return value.strip().lower() in ("true", "yes", "1")
            return bool(value)
        if isinstance(column.type, Integer):
            return int(value)
        if isinstance(column.type, Numeric):
            return Decimal(str(value))
        if isinstance(column.type, JSON):
            return json.loads(value) if isinstance(value, str) else value
    except (ValueError, TypeError, InvalidOperation) as e:
        raise ValidationError(f"{sheet_name(table)} row {row_num}: invalid {column_name} ({value!r})") from e
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


async def export_workbook(db: AsyncSession) -> bytes:
    """Every table as one sheet, header first, rows in key order."""
    store = TableStore(db)
    wb = Workbook()
    wb.remove(wb.active)
    for table in _tables():
        ws = wb.create_sheet(sheet_name(table))
        header = store.header(table.name)
        ws.append(header)
        for row in await store.find_all(table.name, order_by=store.key_column(table.name)):
            ws.append([_cell_out(row[h]) for h in header])

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def _read_sheets(content: bytes) -> Dict[str, List[tuple]]:
    if not content:
        raise ValidationError("File is empty")
    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ValidationError(f"Invalid Excel file: {e}") from e
    try:
        return {ws.title: list(ws.iter_rows(values_only=True)) for ws in wb.worksheets}
    finally:
        wb.close()


def _parse_sheet(table: Table, key: str, rows: List[tuple]) -> List[Record]:
    if not rows or not rows[0]:
        return []
    header = [str(c).strip() if c is not None else "" for c in rows[0]]
    while header and not header[-1]:
        header.pop()
    unknown = [h for h in header if h not in table.columns]
    if unknown:
        raise ValidationError(f"{sheet_name(table)}: unknown columns {', '.join(unknown)}")
    if key not in header:
        raise ValidationError(f"{sheet_name(table)}: missing key column {key}")

    records = []
    for row_num, row in enumerate(rows[1:], start=2):
        if not row or all(c is None or (isinstance(c, str) and not c.strip()) for c in row):
            continue
        record = {h: _cell_in(table, h, row[i] if i < len(row) else None, row_num) for i, h in enumerate(header)}
        if not record.get(key):
            raise ValidationError(f"{sheet_name(table)} row {row_num}: {key} is required")
        records.append(record)
    return records


# ----- Import checks -----

STATUS_COLUMNS = {
    ADMISSIONS: ("status", AdmissionStatus),
    STUDENTS: ("enrollment_status", EnrollmentStatus),
    ENROLLMENTS: ("status", CourseEnrollmentStatus),
    ROOMS: ("status", RoomStatus),
    ALLOCATIONS: ("status", AllocationStatus),
    TRANSACTIONS: ("payment_status", PaymentStatus),
}

Batch = Dict[str, Dict[Any, Record]]


def _row_locks(table_name: str, record: Record) -> List[str]:
    """Entity locks the workflows take on the records a new row creates or points at."""
    keys: List[str] = []
    if table_name == STUDENTS:
        keys.append(student_lock(record["student_id"]))
        if record.get("email"):
            keys.append(student_email_lock(record["email"]))
    elif table_name == ADMISSIONS:
        keys.append(admission_lock(record["admission_id"]))
        if record.get("email"):
            keys.append(admission_email_lock(record["email"]))
        if record.get("student_id"):
            keys.append(student_lock(record["student_id"]))
    elif table_name == ROOMS:
        keys.append(room_lock(record["room_id"]))
        if record.get("current_student_id"):
            keys.append(student_lock(record["current_student_id"]))
    elif table_name == ALLOCATIONS:
        if record.get("student_id"):
            keys.append(student_lock(record["student_id"]))
        if record.get("room_id"):
            keys.append(room_lock(record["room_id"]))
    elif table_name == TRANSACTIONS:
        keys.append(txn_lock(record["txn_id"]))
        if record.get("student_id"):
            keys.append(student_lock(record["student_id"]))
    elif table_name == RECEIPTS and record.get("txn_id"):
        keys.append(txn_lock(record["txn_id"]))
    return keys


async def _get(store: TableStore, batch: Batch, table_name: str, key_value: Any) -> Optional[Record]:
    """Row by key after the import: the new row if the batch holds one, otherwise the stored row."""
    if not key_value:
        return None
    new = batch.get(table_name, {}).get(key_value)
    if new is not None:
        return new
    found = await store.find_by_key(table_name, store.key_column(table_name), key_value)
    return found[0] if found else None


async def _active_allocations(store: TableStore, batch: Batch, column: str, value: Any) -> List[Record]:
    active = AllocationStatus.active.value
    rows = await store.find_all(ALLOCATIONS, {column: value, "status": active})
    rows += [r for r in batch.get(ALLOCATIONS, {}).values() if r[column] == value and r["status"] == active]
    return rows


def _reject(table_name: str, key_value: Any, problem: str) -> ValidationError:
    return ValidationError(f"{sheet_name(Base.metadata.tables[table_name])} {key_value}: {problem}")


async def _check_batch(store: TableStore, batch: Batch) -> None:
    """
    Reject the import when a new row breaks a status enum or a cross-record rule, judged against the
    new rows together with the rows already stored:

    - an admitted Admission has a Student carrying its admission_id, and only admitted ones have one
    - an active HostelAllocation has its room occupied by its student and is the student's hostel_alloc_id
    - an occupied room and a non-empty hostel_alloc_id both have a matching active allocation
    - at most one active allocation per student and per room
    - a Transaction's receipt_id and its Receipt's txn_id point at each other
    """
    for table_name, (column, enum) in STATUS_COLUMNS.items():
        allowed = {e.value for e in enum}
        for key_value, row in batch.get(table_name, {}).items():
            if row[column] not in allowed:
                raise _reject(table_name, key_value, f"invalid {column} {row[column]!r}")

    for admission_id, admission in batch.get(ADMISSIONS, {}).items():
        if admission["status"] == AdmissionStatus.admitted.value:
            student = await _get(store, batch, STUDENTS, admission["student_id"])
            if not student or student["admission_id"] != admission_id:
                raise _reject(ADMISSIONS, admission_id, "admitted without a student created from it")
        elif admission["student_id"]:
            raise _reject(ADMISSIONS, admission_id, "linked to a student but not admitted")

    for student_id, student in batch.get(STUDENTS, {}).items():
        admission = await _get(store, batch, ADMISSIONS, student["admission_id"])
        if admission and (
            admission["status"] != AdmissionStatus.admitted.value or admission["student_id"] != student_id
        ):
            raise _reject(STUDENTS, student_id, "admission_id points at an admission not converted to it")
        if student["hostel_alloc_id"]:
            allocation = await _get(store, batch, ALLOCATIONS, student["hostel_alloc_id"])
            if (
                not allocation
                or allocation["status"] != AllocationStatus.active.value
                or allocation["student_id"] != student_id
            ):
                raise _reject(STUDENTS, student_id, "hostel_alloc_id is not an active allocation of the student")

    for alloc_id, allocation in batch.get(ALLOCATIONS, {}).items():
        if allocation["status"] != AllocationStatus.active.value:
            continue
        student_id, room_id = allocation["student_id"], allocation["room_id"]
        room = await _get(store, batch, ROOMS, room_id)
        if not room or room["status"] != RoomStatus.occupied.value or room["current_student_id"] != student_id:
            raise _reject(ALLOCATIONS, alloc_id, f"active but room {room_id} is not occupied by {student_id}")
        student = await _get(store, batch, STUDENTS, student_id)
        if not student or student["hostel_alloc_id"] != alloc_id:
            raise _reject(ALLOCATIONS, alloc_id, f"active but student {student_id} does not point at it")
        if len(await _active_allocations(store, batch, "student_id", student_id)) > 1:
            raise _reject(ALLOCATIONS, alloc_id, f"student {student_id} already has an active allocation")
        if len(await _active_allocations(store, batch, "room_id", room_id)) > 1:
            raise _reject(ALLOCATIONS, alloc_id, f"room {room_id} already has an active allocation")

    for room_id, room in batch.get(ROOMS, {}).items():
        if room["status"] == RoomStatus.occupied.value:
            occupants = [a["student_id"] for a in await _active_allocations(store, batch, "room_id", room_id)]
            if occupants != [room["current_student_id"]]:
                raise _reject(ROOMS, room_id, "occupied without a matching active allocation")
        elif room["current_student_id"]:
            raise _reject(ROOMS, room_id, "has current_student_id but is not occupied")

    for txn_id, transaction in batch.get(TRANSACTIONS, {}).items():
        if transaction["receipt_id"]:
            receipt = await _get(store, batch, RECEIPTS, transaction["receipt_id"])
            if not receipt or receipt["txn_id"] != txn_id:
                raise _reject(TRANSACTIONS, txn_id, "receipt_id does not point at a receipt for it")

    for receipt_id, receipt in batch.get(RECEIPTS, {}).items():
        transaction = await _get(store, batch, TRANSACTIONS, receipt["txn_id"])
        if not transaction or transaction["receipt_id"] != receipt_id:
            raise _reject(RECEIPTS, receipt_id, "txn_id does not point at a transaction linked to it")


async def import_workbook(
    db: AsyncSession,
    content: bytes,
    performed_by: Optional[str] = None,
) -> Dict[str, int]:
    """
    Insert rows from sheets named after known tables. Rows whose key already exists are skipped.
    The new rows are checked together with the stored ones before anything is written; all sheets
    are imported in one unit of work, so any invalid row or constraint violation imports nothing.
    Returns the number of rows inserted per sheet.
    """
    sheets = _read_sheets(content)
    parsed: Dict[str, List[Record]] = {}
    for table in _tables():
        name = sheet_name(table)
        if table.name == AUDIT_TABLE or name not in sheets:
            continue
        key = list(table.primary_key.columns)[0].name
        parsed[table.name] = _parse_sheet(table, key, sheets[name])

    lock_keys = {k for table_name, records in parsed.items() for r in records for k in _row_locks(table_name, r)}
    imported: Dict[str, int] = {}
    async with UnitOfWork(db, IMPORT_LOCK, *sorted(lock_keys)) as uow:
        store = uow.store
        batch: Batch = {}
        for table_name, records in parsed.items():
            key = store.key_column(table_name)
            rows = batch.setdefault(table_name, {})
            for record in records:
                if record[key] in rows or await store.find_by_key(table_name, key, record[key]):
                    continue
                rows[record[key]] = store.serialize(table_name, record)
        await _check_batch(store, batch)

        for table_name, rows in batch.items():
            key = store.key_column(table_name)
            for record in rows.values():
                row = await store.insert(table_name, record)
                await log_audit(
                    store, table_name, row[key], AuditAction.CREATE.value, None, row,
                    user_id=performed_by, notes="workbook import",
                )
            imported[sheet_name(store.get(table_name))] = len(rows)
    logger.info("Workbook import finished: %s", imported)
    return imported


async def get_database_stats(db: AsyncSession) -> DatabaseStats:
    """Row count per sheet, as held in the database."""
    store = TableStore(db)
    stats = DatabaseStats(last_updated=now_iso())
    for table in _tables():
        count = await store.count(table.name)
        stats.sheets[sheet_name(table)] = count
        stats.total_records += count
    return stats
