from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.errors import InventoryError
from app.dependencies import actor_of, get_db, http_error, require_auth
from app.schemas.item import ItemCreate, ItemRead, ItemUpdate
from app.schemas.stock import StockMovementRead
from app.services import item_service, stock_service

router = APIRouter(prefix="/items", tags=["Items"])


@router.get("", response_model=List[ItemRead])
def list_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return item_service.list_items(
        db, search=search, category=category, limit=limit, offset=offset
    )


@router.post("", response_model=ItemRead, status_code=201)
def create_item(
    payload: ItemCreate,
    db: Session = Depends(get_db),
    auth=Depends(require_auth),
):
    try:
        item = item_service.create_item(db, payload, actor=actor_of(auth))
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()
    db.refresh(item)
    return item


@router.get("/{item_id}", response_model=ItemRead)
def get_item(item_id: int, db: Session = Depends(get_db)):
    try:
        return item_service.get_item(db, item_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.patch("/{item_id}", response_model=ItemRead)
def update_item(
    item_id: int,
    payload: ItemUpdate,
    db: Session = Depends(get_db),
    _auth=Depends(require_auth),
):
    try:
        item = item_service.update_item(db, item_id, payload)
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()
    db.refresh(item)
    return item


@router.get("/{item_id}/stock")
def get_item_stock(item_id: int, db: Session = Depends(get_db)):
    try:
        return stock_service.get_item_stock(db, item_id)
    except InventoryError as exc:
        raise http_error(exc) from exc


@router.post("/{item_id}/stock/recalculate")
def recalculate_item_stock(
    item_id: int,
    db: Session = Depends(get_db),
    _auth=Depends(require_auth),
):
    try:
        result = stock_service.recalculate_item_stock(db, item_id)
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()
    return result


@router.get("/{item_id}/movements", response_model=List[StockMovementRead])
def list_movements(
    item_id: int,
    warehouse_id: Optional[int] = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    try:
        return stock_service.list_movements(db, item_id, warehouse_id=warehouse_id, limit=limit)
    except InventoryError as exc:
        raise http_error(exc) from exc


__all__ = ["router"]
