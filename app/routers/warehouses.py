from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.errors import InventoryError
from app.dependencies import get_db, http_error, require_auth
from app.schemas.warehouse import (
    WarehouseCreate,
    WarehouseRead,
    WarehouseStockLine,
    WarehouseSummary,
)
from app.services import warehouse_service

router = APIRouter(prefix="/warehouses", tags=["Warehouses"])


@router.get("", response_model=List[WarehouseSummary])
def list_warehouses(db: Session = Depends(get_db)):
    return warehouse_service.list_warehouse_summaries(db)


@router.post("", response_model=WarehouseRead, status_code=201)
def create_warehouse(
    payload: WarehouseCreate,
    db: Session = Depends(get_db),
    _auth=Depends(require_auth),
):
    try:
        warehouse = warehouse_service.create_warehouse(
            db, payload.name, code=payload.code, is_default=payload.is_default
        )
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()
    return warehouse


@router.get("/{warehouse_id}/stock", response_model=List[WarehouseStockLine])
def get_warehouse_stock(warehouse_id: int, db: Session = Depends(get_db)):
    try:
        return warehouse_service.get_warehouse_stock(db, warehouse_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.post("/{warehouse_id}/default", response_model=WarehouseRead)
def set_default_warehouse(
    warehouse_id: int,
    db: Session = Depends(get_db),
    _auth=Depends(require_auth),
):
    try:
        warehouse = warehouse_service.set_default_warehouse(db, warehouse_id)
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()
    return warehouse


__all__ = ["router"]
