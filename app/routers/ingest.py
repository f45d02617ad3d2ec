from fastapi import APIRouter, Depends, HTTPException
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import SQLAlchemyError

from app.dependencies import require_auth
from app.schemas.ingest import ImportReportRead, ItemWorkbookIngestRequest
from app.services.ingestion_service import import_items_workbook

router = APIRouter(prefix="/ingest", tags=["Ingest"])


@router.post("/items", response_model=ImportReportRead)
def ingest_items(payload: ItemWorkbookIngestRequest, _auth=Depends(require_auth)):
    try:
        report = import_items_workbook(
            payload.path,
            dry_run=payload.dry_run,
            default_warehouse_id=payload.default_warehouse_id,
        )
    except (OSError, ValueError, SQLAlchemyError, InvalidFileException) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return report.to_dict()


__all__ = ["router"]
