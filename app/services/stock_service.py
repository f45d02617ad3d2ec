"""Warehouse stock ledger.

``item_warehouse_stock`` holds the current quantity of an item per warehouse,
in packaging units. ``items.current_stock`` caches the sum over those rows and
is only ever moved by the same delta, in the same transaction, as the row it
mirrors. Every applied movement appends a ``StockMovement`` audit row.

Per-row writes are single conditional UPDATE statements so concurrent
reductions cannot both pass a stale sufficiency check. These functions never
commit; the caller owns the transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import (
    MOVEMENT_IN,
    MOVEMENT_OUT,
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_OUT,
    REDUCTION_REASONS,
    STOCK_IN_REASON,
    TRANSFER_NO_PREFIX,
    TRANSFER_NO_WIDTH,
    TRANSFER_REASON,
)
from app.core.errors import (
    InsufficientStockError,
    InventoryError,
    ItemNotFoundError,
    ValidationError,
    WarehouseNotFoundError,
)
from app.core.retry import with_retry
from app.models.item import Item
from app.models.stock_movement import StockMovement
from app.models.stock_transfer import StockTransfer, StockTransferItem
from app.models.warehouse import Warehouse
from app.models.warehouse_stock import ItemWarehouseStock

logger = logging.getLogger(__name__)

_NO_SYNC = {"synchronize_session": False}
_TRANSFER_NO_ATTEMPTS = 5


@dataclass
class EntryOutcome:
    warehouse_id: Any
    quantity: Any
    ok: bool
    warehouse_quantity: Optional[int] = None
    error: Optional[InventoryError] = None

    def to_dict(self) -> dict:
        return {
            "warehouse_id": self.warehouse_id,
            "quantity": self.quantity,
            "ok": self.ok,
            "warehouse_quantity": self.warehouse_quantity,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class MultiStockResult:
    item_id: Any
    new_aggregate: int
    entries: list = field(default_factory=list)
    error: Optional[InventoryError] = None

    @property
    def applied(self) -> list:
        return [entry for entry in self.entries if entry.ok]

    @property
    def failed(self) -> list:
        return [entry for entry in self.entries if not entry.ok]

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "new_aggregate": self.new_aggregate,
            "applied": len(self.applied),
            "failed": len(self.failed),
            "entries": [entry.to_dict() for entry in self.entries],
            "error": self.error.to_dict() if self.error else None,
        }


class _TransferNumberTaken(Exception):
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_base_units(quantity, per_container_quantity) -> int:
    """Display-only conversion from packaging units to base units."""
    factor = per_container_quantity or 1
    if factor <= 0:
        factor = 1
    return quantity * factor


def validate_quantity(value, field_name: str = "quantity") -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a positive whole number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field_name} must be a positive whole number")
        value = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            raise ValidationError(f"{field_name} must be a positive whole number")
        value = int(text)
    elif not isinstance(value, int):
        raise ValidationError(f"{field_name} must be a positive whole number")
    if value <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return value


def validate_reason(reason) -> str:
    text = str(reason or "").strip().lower()
    if not text:
        raise ValidationError("reason is required for stock reductions")
    if text not in REDUCTION_REASONS:
        raise ValidationError(
            "reason must be one of: {}".format(", ".join(REDUCTION_REASONS))
        )
    return text


def _validate_warehouse_id(warehouse_id):
    if warehouse_id is None or (isinstance(warehouse_id, str) and not warehouse_id.strip()):
        raise ValidationError("warehouse is required")
    return warehouse_id


def _require_item(db: Session, item_id) -> Item:
    item = db.get(Item, item_id)
    if item is None:
        raise ItemNotFoundError(item_id)
    return item


def _require_warehouse(db: Session, warehouse_id) -> Warehouse:
    warehouse = db.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise WarehouseNotFoundError(warehouse_id)
    if not warehouse.is_active:
        raise ValidationError(f"warehouse {warehouse_id} is inactive")
    return warehouse


def _entry_filter(item_id, warehouse_id):
    return (
        ItemWarehouseStock.item_id == item_id,
        ItemWarehouseStock.warehouse_id == warehouse_id,
    )


def warehouse_quantity(db: Session, item_id, warehouse_id) -> int:
    quantity = db.execute(
        select(ItemWarehouseStock.quantity).where(*_entry_filter(item_id, warehouse_id))
    ).scalar_one_or_none()
    return quantity or 0


def cached_aggregate(db: Session, item_id) -> int:
    value = db.execute(select(Item.current_stock).where(Item.id == item_id)).scalar_one_or_none()
    if value is None:
        raise ItemNotFoundError(item_id)
    return value


def live_total(db: Session, item_id) -> int:
    return db.execute(
        select(func.coalesce(func.sum(ItemWarehouseStock.quantity), 0)).where(
            ItemWarehouseStock.item_id == item_id
        )
    ).scalar_one()


def _increment_entry(db: Session, item_id, warehouse_id, quantity: int) -> int:
    now = _utc_now()
    stmt = (
        update(ItemWarehouseStock)
        .where(*_entry_filter(item_id, warehouse_id))
        .values(quantity=ItemWarehouseStock.quantity + quantity, updated_at=now)
        .execution_options(**_NO_SYNC)
    )
    if db.execute(stmt).rowcount == 0:
        try:
            with db.begin_nested():
                db.execute(
                    insert(ItemWarehouseStock).values(
                        item_id=item_id,
                        warehouse_id=warehouse_id,
                        quantity=quantity,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            # Another writer created the row first; add onto theirs.
            if db.execute(stmt).rowcount != 1:
                raise
    return warehouse_quantity(db, item_id, warehouse_id)


def _decrement_entry(db: Session, item_id, warehouse_id, quantity: int) -> int:
    stmt = (
        update(ItemWarehouseStock)
        .where(
            *_entry_filter(item_id, warehouse_id),
            ItemWarehouseStock.quantity >= quantity,
        )
        .values(quantity=ItemWarehouseStock.quantity - quantity, updated_at=_utc_now())
        .execution_options(**_NO_SYNC)
    )
    if db.execute(stmt).rowcount != 1:
        available = warehouse_quantity(db, item_id, warehouse_id)
        raise InsufficientStockError(available, quantity, warehouse_id=warehouse_id)
    return warehouse_quantity(db, item_id, warehouse_id)


def _shift_aggregate(db: Session, item: Item, delta: int) -> int:
    db.execute(
        update(Item)
        .where(Item.id == item.id)
        .values(current_stock=Item.current_stock + delta, updated_at=_utc_now())
        .execution_options(**_NO_SYNC)
    )
    db.expire(item, ["current_stock", "updated_at"])
    return cached_aggregate(db, item.id)


def _record_movement(
    db: Session,
    item: Item,
    warehouse_id,
    *,
    movement_type: str,
    change: int,
    after: int,
    reason: str,
    note: Optional[str],
    actor: Optional[str],
    reference_type: Optional[str],
    reference_no: Optional[str],
) -> StockMovement:
    movement = StockMovement(
        item_id=item.id,
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        quantity_change=change,
        quantity_before=after - change,
        quantity_after=after,
        reason=reason,
        note=(note or "").strip() or None,
        entry_unit=item.packaging_unit,
        reference_type=reference_type,
        reference_no=reference_no,
        actor=actor,
    )
    db.add(movement)
    db.flush()
    return movement


def add_stock(
    db: Session,
    item_id,
    warehouse_id,
    quantity,
    *,
    note: Optional[str] = None,
    actor: Optional[str] = None,
    reason: str = STOCK_IN_REASON,
    movement_type: str = MOVEMENT_IN,
    reference_type: Optional[str] = "manual_adjustment",
    reference_no: Optional[str] = None,
) -> int:
    """Add ``quantity`` packaging units to one warehouse; returns the new aggregate."""
    quantity = validate_quantity(quantity)
    _validate_warehouse_id(warehouse_id)
    item = _require_item(db, item_id)
    _require_warehouse(db, warehouse_id)

    after = _increment_entry(db, item.id, warehouse_id, quantity)
    new_aggregate = _shift_aggregate(db, item, quantity)
    _record_movement(
        db,
        item,
        warehouse_id,
        movement_type=movement_type,
        change=quantity,
        after=after,
        reason=(reason or STOCK_IN_REASON).strip(),
        note=note,
        actor=actor,
        reference_type=reference_type,
        reference_no=reference_no,
    )
    logger.info(
        "Stock %s +%s (%s -> %s), aggregate %s",
        movement_type,
        quantity,
        after - quantity,
        after,
        new_aggregate,
        extra={"item_id": item.id, "warehouse_id": warehouse_id},
    )
    return new_aggregate


def _apply_reduction(
    db: Session,
    item: Item,
    warehouse_id,
    quantity: int,
    *,
    reason: str,
    note: Optional[str],
    actor: Optional[str],
    movement_type: str,
    reference_type: Optional[str],
    reference_no: Optional[str],
) -> int:
    after = _decrement_entry(db, item.id, warehouse_id, quantity)
    new_aggregate = _shift_aggregate(db, item, -quantity)
    _record_movement(
        db,
        item,
        warehouse_id,
        movement_type=movement_type,
        change=-quantity,
        after=after,
        reason=reason,
        note=note,
        actor=actor,
        reference_type=reference_type,
        reference_no=reference_no,
    )
    logger.info(
        "Stock %s -%s (%s -> %s, %s), aggregate %s",
        movement_type,
        quantity,
        after + quantity,
        after,
        reason,
        new_aggregate,
        extra={"item_id": item.id, "warehouse_id": warehouse_id},
    )
    return new_aggregate


def reduce_stock(
    db: Session,
    item_id,
    warehouse_id,
    quantity,
    reason,
    *,
    note: Optional[str] = None,
    actor: Optional[str] = None,
    reference_type: Optional[str] = "manual_adjustment",
    reference_no: Optional[str] = None,
) -> int:
    """Remove stock from one warehouse; that warehouse alone must cover it."""
    quantity = validate_quantity(quantity)
    reason = validate_reason(reason)
    _validate_warehouse_id(warehouse_id)
    item = _require_item(db, item_id)
    _require_warehouse(db, warehouse_id)
    return _apply_reduction(
        db,
        item,
        warehouse_id,
        quantity,
        reason=reason,
        note=note,
        actor=actor,
        movement_type=MOVEMENT_OUT,
        reference_type=reference_type,
        reference_no=reference_no,
    )


def _coerce_entry(entry) -> tuple[Any, Any]:
    if isinstance(entry, dict):
        return entry.get("warehouse_id"), entry.get("quantity")
    if isinstance(entry, (tuple, list)) and len(entry) == 2:
        return entry[0], entry[1]
    return getattr(entry, "warehouse_id", None), getattr(entry, "quantity", None)


def _failed(warehouse_id, quantity, error: InventoryError) -> EntryOutcome:
    return EntryOutcome(warehouse_id=warehouse_id, quantity=quantity, ok=False, error=error)


def add_stock_multi(
    db: Session,
    item_id,
    entries: Sequence,
    *,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> MultiStockResult:
    """Apply several warehouse additions; each entry succeeds or fails on its own."""
    if not entries:
        raise ValidationError("at least one warehouse entry is required")
    _require_item(db, item_id)

    outcomes = []
    for entry in entries:
        warehouse_id, quantity = _coerce_entry(entry)
        try:
            add_stock(db, item_id, warehouse_id, quantity, note=note, actor=actor)
        except (ValidationError, WarehouseNotFoundError) as exc:
            outcomes.append(_failed(warehouse_id, quantity, exc))
            continue
        outcomes.append(
            EntryOutcome(
                warehouse_id=warehouse_id,
                quantity=quantity,
                ok=True,
                warehouse_quantity=warehouse_quantity(db, item_id, warehouse_id),
            )
        )

    return MultiStockResult(
        item_id=item_id,
        new_aggregate=cached_aggregate(db, item_id),
        entries=outcomes,
    )


def reduce_stock_multi(
    db: Session,
    item_id,
    entries: Sequence,
    reason,
    *,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> MultiStockResult:
    """Apply several warehouse reductions after an all-or-nothing total check.

    The requested total is compared with the live sum of warehouse rows, not
    the cached aggregate. If it is larger nothing is applied and the result
    carries one aggregate-level error. Otherwise entries are applied one by
    one, each with its own per-warehouse sufficiency check.
    """
    if not entries:
        raise ValidationError("at least one warehouse entry is required")
    reason = validate_reason(reason)
    item = _require_item(db, item_id)

    outcomes: list[Optional[EntryOutcome]] = []
    pending = []
    for entry in entries:
        warehouse_id, quantity = _coerce_entry(entry)
        try:
            _validate_warehouse_id(warehouse_id)
            quantity = validate_quantity(quantity)
        except ValidationError as exc:
            outcomes.append(_failed(warehouse_id, quantity, exc))
            continue
        outcomes.append(None)
        pending.append((len(outcomes) - 1, warehouse_id, quantity))

    requested = sum(quantity for _, _, quantity in pending)
    available = live_total(db, item.id)
    if requested > available:
        error = InsufficientStockError(
            available,
            requested,
            message=(
                f"item {item.id}: requested total {requested} exceeds "
                f"available stock {available}"
            ),
        )
        logger.warning("Multi-warehouse reduction refused: %s", error.message)
        return MultiStockResult(
            item_id=item.id,
            new_aggregate=cached_aggregate(db, item.id),
            entries=[],
            error=error,
        )

    for position, warehouse_id, quantity in pending:
        try:
            _require_warehouse(db, warehouse_id)
            _apply_reduction(
                db,
                item,
                warehouse_id,
                quantity,
                reason=reason,
                note=note,
                actor=actor,
                movement_type=MOVEMENT_OUT,
                reference_type="manual_adjustment",
                reference_no=None,
            )
        except (InsufficientStockError, ValidationError, WarehouseNotFoundError) as exc:
            outcomes[position] = _failed(warehouse_id, quantity, exc)
            continue
        outcomes[position] = EntryOutcome(
            warehouse_id=warehouse_id,
            quantity=quantity,
            ok=True,
            warehouse_quantity=warehouse_quantity(db, item.id, warehouse_id),
        )

    return MultiStockResult(
        item_id=item.id,
        new_aggregate=cached_aggregate(db, item.id),
        entries=outcomes,
    )


def _format_transfer_no(sequence: int) -> str:
    return "{}{}".format(TRANSFER_NO_PREFIX, str(sequence).zfill(TRANSFER_NO_WIDTH))


def next_transfer_no(db: Session) -> str:
    highest = 0
    numbers = db.execute(
        select(StockTransfer.transfer_no).where(
            StockTransfer.transfer_no.like(f"{TRANSFER_NO_PREFIX}%")
        )
    ).scalars()
    for number in numbers:
        suffix = number[len(TRANSFER_NO_PREFIX):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return _format_transfer_no(highest + 1)


def _create_transfer_header(db: Session, source_id, destination_id, note, actor) -> StockTransfer:
    transfer = StockTransfer(
        transfer_no=next_transfer_no(db),
        source_warehouse_id=source_id,
        destination_warehouse_id=destination_id,
        note=(note or "").strip() or None,
        actor=actor,
    )
    try:
        with db.begin_nested():
            db.add(transfer)
            db.flush()
    except IntegrityError as exc:
        raise _TransferNumberTaken(transfer.transfer_no) from exc
    return transfer


def transfer_stock(
    db: Session,
    source_warehouse_id,
    destination_warehouse_id,
    lines: Iterable,
    *,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> StockTransfer:
    """Move stock between two warehouses; item aggregates do not change.

    The whole transfer is refused when any line exceeds the source quantity.
    Lines are ``(item_id, quantity)`` pairs or objects/dicts with those fields.
    """
    _validate_warehouse_id(source_warehouse_id)
    _validate_warehouse_id(destination_warehouse_id)
    if source_warehouse_id == destination_warehouse_id:
        raise ValidationError("source and destination warehouse cannot be the same")

    parsed = []
    for line in lines or []:
        if isinstance(line, dict):
            item_id, quantity = line.get("item_id"), line.get("quantity")
        elif isinstance(line, (tuple, list)):
            item_id, quantity = line
        else:
            item_id, quantity = getattr(line, "item_id", None), getattr(line, "quantity", None)
        parsed.append((item_id, validate_quantity(quantity)))
    if not parsed:
        raise ValidationError("at least one item is required for a transfer")

    _require_warehouse(db, source_warehouse_id)
    _require_warehouse(db, destination_warehouse_id)

    requested: dict[Any, int] = {}
    items: dict[Any, Item] = {}
    for item_id, quantity in parsed:
        items[item_id] = _require_item(db, item_id)
        requested[item_id] = requested.get(item_id, 0) + quantity
    for item_id, quantity in requested.items():
        available = warehouse_quantity(db, item_id, source_warehouse_id)
        if available < quantity:
            raise InsufficientStockError(
                available,
                quantity,
                warehouse_id=source_warehouse_id,
                message=(
                    f"warehouse {source_warehouse_id}: only {available} of item "
                    f"{item_id} available, requested {quantity}"
                ),
            )

    transfer = with_retry(
        _TRANSFER_NO_ATTEMPTS,
        lambda: _create_transfer_header(
            db, source_warehouse_id, destination_warehouse_id, note, actor
        ),
        retry_on=(_TransferNumberTaken,),
        description="transfer number allocation",
    )

    for item_id, quantity in parsed:
        item = items[item_id]
        db.add(StockTransferItem(transfer_id=transfer.id, item_id=item.id, quantity=quantity))
        _apply_reduction(
            db,
            item,
            source_warehouse_id,
            quantity,
            reason=TRANSFER_REASON,
            note=f"Transfer to warehouse {destination_warehouse_id}",
            actor=actor,
            movement_type=MOVEMENT_TRANSFER_OUT,
            reference_type="transfer",
            reference_no=transfer.transfer_no,
        )
        add_stock(
            db,
            item.id,
            destination_warehouse_id,
            quantity,
            note=f"Transfer from warehouse {source_warehouse_id}",
            actor=actor,
            reason=TRANSFER_REASON,
            movement_type=MOVEMENT_TRANSFER_IN,
            reference_type="transfer",
            reference_no=transfer.transfer_no,
        )
    db.flush()
    logger.info(
        "Transfer %s: %s line(s) from warehouse %s to %s",
        transfer.transfer_no,
        len(parsed),
        source_warehouse_id,
        destination_warehouse_id,
    )
    return transfer


def get_item_stock(db: Session, item_id) -> dict:
    item = _require_item(db, item_id)
    rows = db.execute(
        select(
            ItemWarehouseStock.warehouse_id,
            Warehouse.name,
            ItemWarehouseStock.quantity,
        )
        .join(Warehouse, Warehouse.id == ItemWarehouseStock.warehouse_id)
        .where(ItemWarehouseStock.item_id == item.id)
        .order_by(Warehouse.name)
    ).all()
    entries = [
        {
            "warehouse_id": row.warehouse_id,
            "warehouse_name": row.name,
            "quantity": row.quantity,
            "base_quantity": to_base_units(row.quantity, item.per_container_quantity),
        }
        for row in rows
        if row.quantity > 0
    ]
    total = sum(entry["quantity"] for entry in entries)
    aggregate = cached_aggregate(db, item.id)
    return {
        "item_id": item.id,
        "name": item.name,
        "packaging_unit": item.packaging_unit,
        "unit": item.unit,
        "per_container_quantity": item.per_container_quantity,
        "current_stock": aggregate,
        "current_stock_base_units": to_base_units(aggregate, item.per_container_quantity),
        "warehouse_total": total,
        "in_sync": total == aggregate,
        "warehouses": entries,
    }


def recalculate_item_stock(db: Session, item_id) -> dict:
    """Reset the cached aggregate to the live warehouse sum."""
    item = _require_item(db, item_id)
    previous = cached_aggregate(db, item.id)
    total = live_total(db, item.id)
    if previous != total:
        db.execute(
            update(Item)
            .where(Item.id == item.id)
            .values(current_stock=total, updated_at=_utc_now())
            .execution_options(**_NO_SYNC)
        )
        db.expire(item, ["current_stock", "updated_at"])
        logger.warning(
            "Aggregate stock drift corrected: %s -> %s",
            previous,
            total,
            extra={"item_id": item.id},
        )
    return {"item_id": item.id, "previous": previous, "current": total, "drift": total - previous}


def list_movements(db: Session, item_id, *, warehouse_id=None, limit: int = 50) -> list[StockMovement]:
    _require_item(db, item_id)
    stmt = select(StockMovement).where(StockMovement.item_id == item_id)
    if warehouse_id is not None:
        stmt = stmt.where(StockMovement.warehouse_id == warehouse_id)
    stmt = stmt.order_by(StockMovement.id.desc()).limit(max(1, int(limit)))
    return list(db.execute(stmt).scalars().all())


def load_transfer_items(db: Session, transfer_id) -> list[StockTransferItem]:
    return list(
        db.execute(
            select(StockTransferItem)
            .where(StockTransferItem.transfer_id == transfer_id)
            .order_by(StockTransferItem.id)
        )
        .scalars()
        .all()
    )


def list_low_stock_items(db: Session, *, limit: int = 100) -> list[dict]:
    """Items whose cached stock is below their reorder level, largest shortfall first."""
    shortfall = (Item.min_stock - Item.current_stock).label("shortfall")
    rows = db.execute(
        select(
            Item.id,
            Item.name,
            Item.item_code,
            Item.category,
            Item.packaging_unit,
            Item.current_stock,
            Item.min_stock,
            shortfall,
        )
        .where(Item.current_stock < Item.min_stock)
        .order_by(shortfall.desc(), Item.name, Item.id)
        .limit(max(1, int(limit)))
    ).all()
    return [
        {
            "item_id": row.id,
            "name": row.name,
            "item_code": row.item_code,
            "category": row.category,
            "packaging_unit": row.packaging_unit,
            "current_stock": row.current_stock,
            "min_stock": row.min_stock,
            "shortfall": row.shortfall,
        }
        for row in rows
    ]


def list_transfers(db: Session, *, limit: int = 50, offset: int = 0) -> tuple[list[dict], int]:
    """Most recent transfers with warehouse names and their lines, plus the total count."""
    total = db.execute(select(func.count(StockTransfer.id))).scalar_one()
    transfers = (
        db.execute(
            select(StockTransfer)
            .order_by(StockTransfer.created_at.desc(), StockTransfer.id.desc())
            .limit(max(1, int(limit)))
            .offset(max(0, int(offset)))
        )
        .scalars()
        .all()
    )
    if not transfers:
        return [], total

    warehouse_ids = {t.source_warehouse_id for t in transfers} | {
        t.destination_warehouse_id for t in transfers
    }
    names = dict(
        db.execute(select(Warehouse.id, Warehouse.name).where(Warehouse.id.in_(warehouse_ids))).all()
    )

    lines_by_transfer: dict[int, list] = {t.id: [] for t in transfers}
    line_rows = db.execute(
        select(
            StockTransferItem.transfer_id,
            StockTransferItem.item_id,
            StockTransferItem.quantity,
            Item.name,
            Item.item_code,
            Item.unit,
        )
        .join(Item, Item.id == StockTransferItem.item_id)
        .where(StockTransferItem.transfer_id.in_(list(lines_by_transfer)))
        .order_by(StockTransferItem.id)
    ).all()
    for row in line_rows:
        lines_by_transfer[row.transfer_id].append(
            {
                "item_id": row.item_id,
                "item_name": row.name,
                "item_code": row.item_code,
                "unit": row.unit,
                "quantity": row.quantity,
            }
        )

    results = [
        {
            "id": t.id,
            "transfer_no": t.transfer_no,
            "source_warehouse_id": t.source_warehouse_id,
            "source_warehouse_name": names.get(t.source_warehouse_id, ""),
            "destination_warehouse_id": t.destination_warehouse_id,
            "destination_warehouse_name": names.get(t.destination_warehouse_id, ""),
            "note": t.note,
            "actor": t.actor,
            "created_at": t.created_at,
            "items": lines_by_transfer[t.id],
        }
        for t in transfers
    ]
    return results, total


__all__ = [
    "EntryOutcome",
    "MultiStockResult",
    "add_stock",
    "add_stock_multi",
    "cached_aggregate",
    "get_item_stock",
    "list_low_stock_items",
    "list_movements",
    "list_transfers",
    "load_transfer_items",
    "live_total",
    "next_transfer_no",
    "recalculate_item_stock",
    "reduce_stock",
    "reduce_stock_multi",
    "to_base_units",
    "transfer_stock",
    "validate_quantity",
    "validate_reason",
    "warehouse_quantity",
]
