"""Typed errors raised by the catalog, reconciliation and stock services.

Routers translate these into HTTP responses; batch operations collect them
per row/entry instead of raising.
"""

from __future__ import annotations

from typing import Optional


class InventoryError(Exception):
    """Base class for expected inventory failures."""

    code: str = "INVENTORY_ERROR"
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(InventoryError, ValueError):
    """Input rejected before any store I/O."""

    code = "VALIDATION_ERROR"


class ItemNotFoundError(InventoryError, LookupError):
    code = "ITEM_NOT_FOUND"
    status_code = 404

    def __init__(self, item_id):
        self.item_id = item_id
        super().__init__(f"item {item_id} not found")


class WarehouseNotFoundError(InventoryError, LookupError):
    code = "WAREHOUSE_NOT_FOUND"
    status_code = 404

    def __init__(self, warehouse_id):
        self.warehouse_id = warehouse_id
        super().__init__(f"warehouse {warehouse_id} not found")


class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(
        self,
        available: int,
        requested: int,
        *,
        warehouse_id=None,
        message: Optional[str] = None,
    ):
        self.available = available
        self.requested = requested
        self.warehouse_id = warehouse_id
        if message is None:
            if warehouse_id is None:
                message = f"only {available} available, requested {requested}"
            else:
                message = (
                    f"warehouse {warehouse_id}: only {available} available, "
                    f"requested {requested}"
                )
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            available=self.available,
            requested=self.requested,
            warehouse_id=self.warehouse_id,
        )
        return data


class BarcodeConflictError(InventoryError):
    code = "BARCODE_CONFLICT"
    status_code = 409

    def __init__(self, barcode: str):
        self.barcode = barcode
        super().__init__(f"barcode {barcode} is already assigned")


class RetryExhaustedError(InventoryError):
    code = "RETRY_EXHAUSTED"
    status_code = 409

    def __init__(self, attempts: int, last_error: BaseException, description: Optional[str] = None):
        self.attempts = attempts
        self.last_error = last_error
        label = description or "operation"
        super().__init__(f"{label} failed after {attempts} attempts: {last_error}")


__all__ = [
    "BarcodeConflictError",
    "InsufficientStockError",
    "InventoryError",
    "ItemNotFoundError",
    "RetryExhaustedError",
    "ValidationError",
    "WarehouseNotFoundError",
]
