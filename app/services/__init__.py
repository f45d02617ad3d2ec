from app.services.ingestion_service import import_items, import_items_workbook
from app.services.reconciliation_service import reconcile
from app.services.stock_service import (
    add_stock,
    add_stock_multi,
    reduce_stock,
    reduce_stock_multi,
    transfer_stock,
)

__all__ = [
    "add_stock",
    "add_stock_multi",
    "import_items",
    "import_items_workbook",
    "reconcile",
    "reduce_stock",
    "reduce_stock_multi",
    "transfer_stock",
]
