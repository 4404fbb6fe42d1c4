"""
Audit logging for every mutation. log_audit is called inside the mutation's unit of work, so the
entry commits or rolls back with it. Entries are never updated or deleted.

Each operation writes exactly one entry. A workflow that changes several records (allocation,
admission conversion, receipt issue) logs one entry whose before / after map table name to the
snapshot of each record it touched.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.ids import AUDIT_PREFIX, new_id
from erp.core.timestamps import now_iso, parse_timestamp
from erp.db.table_store import TableStore

from .schemas import AuditLogEntry, AuditLogFilters

logger = logging.getLogger(__name__)

AUDIT_TABLE = "audit_log"


def _changes(before: Dict[str, Any], after: Dict[str, Any], prefix: str = "") -> List[str]:
    changes = []
    for key, new_value in after.items():
        old_value = before.get(key)
        if isinstance(new_value, dict) and isinstance(old_value, dict):
            changes.extend(_changes(old_value, new_value, f"{prefix}{key}."))
        elif isinstance(new_value, dict) and old_value is None:
            changes.append(f"{prefix}{key}: created")
        elif old_value != new_value:
            changes.append(f"{prefix}{key}: {old_value} -> {new_value}")
    return changes


def compute_diff(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> str:
    """
    `key: old -> new` for every key of `after` whose value changed, joined by '; '.
    Snapshots keyed by table name (multi-record workflows) are compared per table: `hostel_rooms.status: ...`.
    """
    if not before or not after:
        return ""
    return "; ".join(_changes(before, after))


async def log_audit(
    store: TableStore,
    table_name: str,
    entity_id: str,
    action: str,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    *,
    user_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Append one audit log entry. Caller's unit of work commits."""
    before_json = jsonable_encoder(before) if before is not None else None
    after_json = jsonable_encoder(after) if after is not None else None
    entry = {
        "log_id": new_id(AUDIT_PREFIX),
        "table_name": table_name,
        "entity_id": entity_id,
        "action": action,
        "user_id": user_id or "system",
        "timestamp": now_iso(),
        "before": before_json,
        "after": after_json,
        "diff": compute_diff(before_json, after_json),
        "notes": notes or "",
    }
    row = await store.insert(AUDIT_TABLE, entry)
    logger.debug(
        "audit %s %s %s",
        table_name,
        entity_id,
        action,
        extra={"table_name": table_name, "entity_id": entity_id, "user_id": entry["user_id"]},
    )
    return row


async def get_audit_logs(db: AsyncSession, filters: AuditLogFilters) -> List[AuditLogEntry]:
    """Audit entries matching the filters, newest first."""
    store = TableStore(db)
    rows = await store.find_all(
        AUDIT_TABLE,
        {
            "table_name": filters.table_name,
            "entity_id": filters.entity_id,
            "action": filters.action,
            "user_id": filters.user_id,
        },
    )
    start = parse_timestamp(filters.start_date)
    end = parse_timestamp(filters.end_date)
    entries = []
    for row in rows:
        ts = parse_timestamp(row["timestamp"])
        if start and ts and ts < start:
            continue
        if end and ts and ts > end:
            continue
        entries.append(row)
    entries.sort(key=lambda r: r["timestamp"], reverse=True)
    return [AuditLogEntry(**r) for r in entries]
