from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.errors import InventoryError
from app.dependencies import actor_of, get_db, http_error, require_auth
from app.schemas.stock import (
    LowStockItem,
    StockAdd,
    StockAddMulti,
    StockChangeResult,
    StockReduce,
    StockReduceMulti,
    StockTransferCreate,
    StockTransferList,
    StockTransferRead,
)
from app.services import stock_service

router = APIRouter(prefix="/stock", tags=["Stock"])


def _change_result(db: Session, item_id: int, warehouse_id: int, aggregate: int):
    return StockChangeResult(
        item_id=item_id,
        warehouse_id=warehouse_id,
        warehouse_quantity=stock_service.warehouse_quantity(db, item_id, warehouse_id),
        current_stock=aggregate,
    )


@router.get("/low-stock", response_model=List[LowStockItem])
def list_low_stock_items(
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return stock_service.list_low_stock_items(db, limit=limit)


@router.get("/transfers", response_model=StockTransferList)
def list_transfers(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    transfers, total = stock_service.list_transfers(db, limit=limit, offset=offset)
    return {"transfers": transfers, "total": total}


@router.post("/{item_id}/add", response_model=StockChangeResult)
def add_stock(
    item_id: int,
    payload: StockAdd,
    db: Session = Depends(get_db),
    auth=Depends(require_auth),
):
    try:
        aggregate = stock_service.add_stock(
            db,
            item_id,
            payload.warehouse_id,
            payload.quantity,
            note=payload.note,
            actor=actor_of(auth),
        )
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()
    return _change_result(db, item_id, payload.warehouse_id, aggregate)


@router.post("/{item_id}/reduce", response_model=StockChangeResult)
def reduce_stock(
    item_id: int,
    payload: StockReduce,
    db: Session = Depends(get_db),
    auth=Depends(require_auth),
):
    try:
        aggregate = stock_service.reduce_stock(
            db,
            item_id,
            payload.warehouse_id,
            payload.quantity,
            payload.reason,
            note=payload.note,
            actor=actor_of(auth),
        )
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()
    return _change_result(db, item_id, payload.warehouse_id, aggregate)


@router.post("/{item_id}/add-multi")
def add_stock_multi(
    item_id: int,
    payload: StockAddMulti,
    db: Session = Depends(get_db),
    auth=Depends(require_auth),
):
    try:
        result = stock_service.add_stock_multi(
            db, item_id, payload.entries, note=payload.note, actor=actor_of(auth)
        )
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()
    return result.to_dict()


@router.post("/{item_id}/reduce-multi")
def reduce_stock_multi(
    item_id: int,
    payload: StockReduceMulti,
    db: Session = Depends(get_db),
    auth=Depends(require_auth),
):
    try:
        result = stock_service.reduce_stock_multi(
            db,
            item_id,
            payload.entries,
            payload.reason,
            note=payload.note,
            actor=actor_of(auth),
        )
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    if result.error is not None:
        db.rollback()
        raise HTTPException(status_code=result.error.status_code, detail=result.to_dict())
    db.commit()
    return result.to_dict()


@router.post("/transfers", response_model=StockTransferRead, status_code=201)
def create_transfer(
    payload: StockTransferCreate,
    db: Session = Depends(get_db),
    auth=Depends(require_auth),
):
    try:
        transfer = stock_service.transfer_stock(
            db,
            payload.source_warehouse_id,
            payload.destination_warehouse_id,
            payload.lines,
            note=payload.note,
            actor=actor_of(auth),
        )
    except InventoryError as exc:
        db.rollback()
        raise http_error(exc) from exc
    db.commit()

    base = StockTransferRead.model_validate(transfer).model_dump()
    base["items"] = stock_service.load_transfer_items(db, transfer.id)
    return StockTransferRead(**base)


__all__ = ["router"]
