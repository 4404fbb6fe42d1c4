from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class AuditLogFilters(BaseModel):
    table_name: Optional[str] = None
    entity_id: Optional[str] = None
    action: Optional[str] = None
    user_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class AuditLogEntry(BaseModel):
    log_id: str
    table_name: str
    entity_id: str
    action: str
    user_id: str
    timestamp: str
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    diff: str = ""
    notes: str = ""

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    success: bool = True
    logs: List[AuditLogEntry]
