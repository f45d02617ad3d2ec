import logging

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from app.core.errors import ValidationError, WarehouseNotFoundError
from app.models.item import Item
from app.models.warehouse import Warehouse
from app.models.warehouse_stock import ItemWarehouseStock
from app.services.stock_service import to_base_units

logger = logging.getLogger(__name__)


def get_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    warehouse = db.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise WarehouseNotFoundError(warehouse_id)
    return warehouse


def list_warehouses(db: Session, *, include_inactive: bool = False) -> list[Warehouse]:
    stmt = select(Warehouse).order_by(Warehouse.is_default.desc(), Warehouse.name)
    if not include_inactive:
        stmt = stmt.where(Warehouse.is_active.is_(True))
    return list(db.execute(stmt).scalars().all())


def get_default_warehouse(db: Session) -> Warehouse | None:
    return (
        db.execute(
            select(Warehouse)
            .where(Warehouse.is_default.is_(True), Warehouse.is_active.is_(True))
            .order_by(Warehouse.id)
            .limit(1)
        )
        .scalars()
        .first()
    )


def _clear_default(db: Session, keep_id: int | None = None) -> None:
    stmt = update(Warehouse).where(Warehouse.is_default.is_(True))
    if keep_id is not None:
        stmt = stmt.where(Warehouse.id != keep_id)
    db.execute(stmt.values(is_default=False).execution_options(synchronize_session="fetch"))


def create_warehouse(
    db: Session,
    name: str,
    *,
    code: str | None = None,
    is_default: bool = False,
) -> Warehouse:
    """Create a warehouse; the first active one becomes the default."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("warehouse name is required")
    clash = db.execute(
        select(Warehouse.id).where(func.lower(Warehouse.name) == name.lower()).limit(1)
    ).first()
    if clash is not None:
        raise ValidationError(f"warehouse {name} already exists")

    if not is_default and get_default_warehouse(db) is None:
        is_default = True
    if is_default:
        _clear_default(db)

    warehouse = Warehouse(
        name=name,
        code=(code or "").strip() or None,
        is_default=is_default,
        is_active=True,
    )
    db.add(warehouse)
    db.flush()
    logger.info(
        "Created warehouse %s%s",
        warehouse.name,
        " (default)" if warehouse.is_default else "",
        extra={"warehouse_id": warehouse.id},
    )
    return warehouse


def set_default_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    warehouse = get_warehouse(db, warehouse_id)
    if not warehouse.is_active:
        raise ValidationError(f"warehouse {warehouse_id} is inactive")
    _clear_default(db, keep_id=warehouse.id)
    warehouse.is_default = True
    db.flush()
    return warehouse


def list_warehouse_summaries(db: Session) -> list[dict]:
    """Per-warehouse count of stocked items and total quantity."""
    stocked = case((ItemWarehouseStock.quantity > 0, 1), else_=0)
    rows = db.execute(
        select(
            Warehouse.id,
            Warehouse.name,
            Warehouse.code,
            Warehouse.is_default,
            Warehouse.is_active,
            func.coalesce(func.sum(stocked), 0).label("item_count"),
            func.coalesce(func.sum(ItemWarehouseStock.quantity), 0).label("total_quantity"),
        )
        .outerjoin(ItemWarehouseStock, ItemWarehouseStock.warehouse_id == Warehouse.id)
        .group_by(Warehouse.id)
        .order_by(Warehouse.is_default.desc(), Warehouse.name)
    ).all()
    return [
        {
            "id": row.id,
            "name": row.name,
            "code": row.code,
            "is_default": bool(row.is_default),
            "is_active": bool(row.is_active),
            "item_count": int(row.item_count),
            "total_quantity": int(row.total_quantity),
        }
        for row in rows
    ]


def get_warehouse_stock(db: Session, warehouse_id: int) -> list[dict]:
    """Items held in one warehouse, with base-unit figures for display."""
    warehouse = get_warehouse(db, warehouse_id)
    rows = db.execute(
        select(
            ItemWarehouseStock.item_id,
            ItemWarehouseStock.quantity,
            ItemWarehouseStock.updated_at,
            Item.name,
            Item.item_code,
            Item.unit,
            Item.packaging_unit,
            Item.per_container_quantity,
        )
        .join(Item, Item.id == ItemWarehouseStock.item_id)
        .where(
            ItemWarehouseStock.warehouse_id == warehouse.id,
            ItemWarehouseStock.quantity > 0,
        )
        .order_by(Item.name, Item.id)
    ).all()
    return [
        {
            "item_id": row.item_id,
            "name": row.name,
            "item_code": row.item_code,
            "unit": row.unit,
            "packaging_unit": row.packaging_unit,
            "quantity": row.quantity,
            "base_quantity": to_base_units(row.quantity, row.per_container_quantity),
            "updated_at": row.updated_at,
        }
        for row in rows
    ]


__all__ = [
    "create_warehouse",
    "get_default_warehouse",
    "get_warehouse",
    "get_warehouse_stock",
    "list_warehouse_summaries",
    "list_warehouses",
    "set_default_warehouse",
]
