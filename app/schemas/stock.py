from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StockEntry(BaseModel):
    warehouse_id: int
    quantity: int = Field(gt=0)


class StockAdd(StockEntry):
    note: Optional[str] = None


class StockReduce(StockEntry):
    reason: str
    note: Optional[str] = None


class StockAddMulti(BaseModel):
    entries: List[StockEntry] = Field(min_length=1)
    note: Optional[str] = None


class StockReduceMulti(BaseModel):
    entries: List[StockEntry] = Field(min_length=1)
    reason: str
    note: Optional[str] = None


class StockChangeResult(BaseModel):
    item_id: int
    warehouse_id: int
    warehouse_quantity: int
    current_stock: int


class TransferLine(BaseModel):
    item_id: int
    quantity: int = Field(gt=0)


class StockTransferCreate(BaseModel):
    source_warehouse_id: int
    destination_warehouse_id: int
    lines: List[TransferLine] = Field(min_length=1)
    note: Optional[str] = None


class StockTransferItemRead(BaseModel):
    item_id: int
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class StockTransferRead(BaseModel):
    id: int
    transfer_no: str
    source_warehouse_id: int
    destination_warehouse_id: int
    note: Optional[str] = None
    actor: Optional[str] = None
    created_at: datetime
    items: List[StockTransferItemRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class StockMovementRead(BaseModel):
    id: int
    item_id: int
    warehouse_id: int
    movement_type: str
    quantity_change: int
    quantity_before: int
    quantity_after: int
    reason: str
    note: Optional[str] = None
    entry_unit: Optional[str] = None
    reference_type: Optional[str] = None
    reference_no: Optional[str] = None
    actor: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LowStockItem(BaseModel):
    item_id: int
    name: str
    item_code: Optional[str] = None
    category: Optional[str] = None
    packaging_unit: str
    current_stock: int
    min_stock: int
    shortfall: int


class TransferLineRead(BaseModel):
    item_id: int
    item_name: str
    item_code: Optional[str] = None
    unit: Optional[str] = None
    quantity: int


class StockTransferSummary(BaseModel):
    id: int
    transfer_no: str
    source_warehouse_id: int
    source_warehouse_name: str
    destination_warehouse_id: int
    destination_warehouse_name: str
    note: Optional[str] = None
    actor: Optional[str] = None
    created_at: datetime
    items: List[TransferLineRead] = Field(default_factory=list)


class StockTransferList(BaseModel):
    transfers: List[StockTransferSummary]
    total: int
