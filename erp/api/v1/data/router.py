"""Workbook export / import for moving spreadsheet data in and out."""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from erp.core.exceptions import ValidationError
from erp.db.session import get_db

from erp.api.v1.dependencies import get_actor

from .schemas import DatabaseStatsEnvelope, WorkbookImportEnvelope
from . import service

router = APIRouter(prefix="/api/v1/data", tags=["data"])


@router.get("/export")
async def export_workbook(db: AsyncSession = Depends(get_db)) -> Response:
    content = await service.export_workbook(db)
    return Response(
        content=content,
        media_type=service.WORKBOOK_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=erp_export.xlsx"},
    )


@router.post("/import", response_model=WorkbookImportEnvelope)
async def import_workbook(
    file: UploadFile = File(..., description="Workbook with one sheet per table and a header row"),
    db: AsyncSession = Depends(get_db),
    actor: str = Depends(get_actor),
) -> WorkbookImportEnvelope:
    if not file.filename or not file.filename.lower().endswith(".xlsx"):
        raise ValidationError("File must be an Excel file (.xlsx)")
    content = await file.read()
    return WorkbookImportEnvelope(imported=await service.import_workbook(db, content, actor))


@router.get("/stats", response_model=DatabaseStatsEnvelope)
async def get_database_stats(db: AsyncSession = Depends(get_db)) -> DatabaseStatsEnvelope:
    return DatabaseStatsEnvelope(stats=await service.get_database_stats(db))
