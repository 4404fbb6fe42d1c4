from typing import Dict

from pydantic import BaseModel, Field


class WorkbookImportEnvelope(BaseModel):
    success: bool = True
    imported: Dict[str, int]


class DatabaseStats(BaseModel):
    sheets: Dict[str, int] = Field(default_factory=dict)
    total_records: int = 0
    last_updated: str = ""


class DatabaseStatsEnvelope(BaseModel):
    success: bool = True
    stats: DatabaseStats
