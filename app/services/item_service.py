"""Catalog item create/update on top of the barcode allocator and stock ledger."""

import logging
import math
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.constants import MOVEMENT_OPENING, OPENING_STOCK_REASON
from app.core.errors import ItemNotFoundError, ValidationError
from app.models.item import Item
from app.services import barcode_service, stock_service, warehouse_service

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("name", "item_code", "description", "category", "hsn_code", "barcode")
UNIT_FIELDS = ("unit", "packaging_unit")
PRICE_FIELDS = ("sale_price", "purchase_price", "mrp")
COUNT_FIELDS = ("min_stock",)
UPDATABLE_FIELDS = (
    TEXT_FIELDS + UNIT_FIELDS + PRICE_FIELDS + COUNT_FIELDS + ("per_container_quantity",)
)


def _as_dict(payload) -> dict:
    if payload is None:
        return {}
    if isinstance(payload, dict):
        return dict(payload)
    # pydantic models: only what the client actually sent.
    return payload.model_dump(exclude_unset=True)


def _clean_price(value, field: str) -> float:
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if not math.isfinite(number) or number < 0:
        raise ValidationError(f"{field} must be zero or more")
    return number


def _clean_count(value, field: str) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number") from None
    if not number.is_integer() or number < 0:
        raise ValidationError(f"{field} must be a whole number of zero or more")
    return int(number)


def _clean_per_container(value) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("per_container_quantity must be a positive whole number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("per_container_quantity must be a positive whole number") from None
    if not number.is_integer() or number <= 0:
        raise ValidationError("per_container_quantity must be a positive whole number")
    return int(number)


def normalize_item_values(values: dict, *, partial: bool = False) -> dict:
    """Trim and type-check item fields.

    With ``partial`` only the keys present are returned, for updates.
    """
    settings = get_settings()
    cleaned: dict[str, Any] = {}

    for field in TEXT_FIELDS:
        if field in values or not partial:
            text = values.get(field)
            text = str(text).strip() if text is not None else ""
            cleaned[field] = text or None
    for field in UNIT_FIELDS:
        if field in values or not partial:
            text = str(values.get(field) or "").strip().upper()
            if not text:
                text = (
                    settings.DEFAULT_BASE_UNIT
                    if field == "unit"
                    else settings.DEFAULT_PACKAGING_UNIT
                )
            cleaned[field] = text
    for field in PRICE_FIELDS:
        if field in values or not partial:
            cleaned[field] = _clean_price(values.get(field), field)
    for field in COUNT_FIELDS:
        if field in values or not partial:
            cleaned[field] = _clean_count(values.get(field), field)
    if "per_container_quantity" in values or not partial:
        cleaned["per_container_quantity"] = _clean_per_container(
            values.get("per_container_quantity")
        )

    if "name" in cleaned and not cleaned["name"]:
        raise ValidationError("item name is required")
    return cleaned


def get_item(db: Session, item_id: int) -> Item:
    item = db.get(Item, item_id)
    if item is None:
        raise ItemNotFoundError(item_id)
    return item


def list_items(
    db: Session,
    *,
    search: str | None = None,
    category: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Item]:
    stmt = select(Item)
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Item.name).like(pattern),
                func.lower(Item.item_code).like(pattern),
                Item.barcode.like(pattern),
            )
        )
    if category:
        stmt = stmt.where(func.lower(Item.category) == category.strip().lower())
    stmt = stmt.order_by(Item.name, Item.id).limit(max(1, limit)).offset(max(0, offset))
    return list(db.execute(stmt).scalars().all())


def create_item(db: Session, payload, *, actor: str | None = None) -> Item:
    """Create a catalog item and book its opening stock.

    Opening stock goes to ``warehouse_id`` when given, otherwise to the
    default warehouse. With neither, the item is created with no stock.
    """
    data = _as_dict(payload)
    values = normalize_item_values(data)
    opening = _clean_count(data.get("opening_stock"), "opening_stock")
    warehouse_id = data.get("warehouse_id")

    if opening and warehouse_id is not None:
        warehouse_service.get_warehouse(db, warehouse_id)

    values["opening_stock"] = opening
    values["current_stock"] = 0
    item = barcode_service.create_item_with_barcode(db, values)

    if opening:
        if warehouse_id is None:
            default = warehouse_service.get_default_warehouse(db)
            warehouse_id = default.id if default else None
        if warehouse_id is None:
            logger.warning(
                "Opening stock %s not booked: no warehouse given and no default warehouse",
                opening,
                extra={"item_id": item.id},
            )
        else:
            stock_service.add_stock(
                db,
                item.id,
                warehouse_id,
                opening,
                actor=actor,
                reason=OPENING_STOCK_REASON,
                movement_type=MOVEMENT_OPENING,
                reference_type="opening_stock",
            )
    return item


def update_item(db: Session, item_id: int, payload, *, allocator=None) -> Item:
    """Write only the supplied fields; give the item a barcode if it has none."""
    item = get_item(db, item_id)
    data = {key: value for key, value in _as_dict(payload).items() if key in UPDATABLE_FIELDS}
    values = normalize_item_values(data, partial=True)

    barcode = values.get("barcode")
    if barcode and barcode != item.barcode:
        if barcode_service.barcode_exists(db, barcode):
            raise ValidationError(f"barcode {barcode} is already assigned")

    for key, value in values.items():
        setattr(item, key, value)

    try:
        with db.begin_nested():
            db.flush()
    except IntegrityError as exc:
        db.refresh(item)
        raise ValidationError(f"item {item_id} could not be saved: duplicate barcode") from exc

    if not item.barcode:
        barcode_service.assign_barcode(db, item, allocator=allocator)
        logger.info("Assigned barcode %s on update", item.barcode, extra={"item_id": item.id})
    return item


__all__ = [
    "PRICE_FIELDS",
    "UPDATABLE_FIELDS",
    "create_item",
    "get_item",
    "list_items",
    "normalize_item_values",
    "update_item",
]
