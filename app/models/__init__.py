import importlib

from app.models.item import Item
from app.models.stock_movement import StockMovement
from app.models.stock_transfer import StockTransfer, StockTransferItem
from app.models.warehouse import Warehouse
from app.models.warehouse_stock import ItemWarehouseStock


def import_all_models() -> None:
    for module_name in (
        "app.models.item",
        "app.models.stock_movement",
        "app.models.stock_transfer",
        "app.models.warehouse",
        "app.models.warehouse_stock",
    ):
        importlib.import_module(module_name)


__all__ = [
    "Item",
    "ItemWarehouseStock",
    "StockMovement",
    "StockTransfer",
    "StockTransferItem",
    "Warehouse",
    "import_all_models",
]
