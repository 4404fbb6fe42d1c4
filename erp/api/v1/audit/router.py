from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erp.db.session import get_db

from .schemas import AuditLogFilters, AuditLogListResponse
from . import service

router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


@router.get("/logs", response_model=AuditLogListResponse)
async def get_audit_logs(
    table_name: Optional[str] = Query(None, description="Table the entry refers to, e.g. admissions"),
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    user_id: Optional[str] = None,
    start_date: Optional[str] = Query(None, description="ISO-8601 lower bound on timestamp"),
    end_date: Optional[str] = Query(None, description="ISO-8601 upper bound on timestamp"),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    """Read-only audit trail, newest first."""
    filters = AuditLogFilters(
        table_name=table_name,
        entity_id=entity_id,
        action=action,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
    )
    return AuditLogListResponse(logs=await service.get_audit_logs(db, filters))
