from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class WarehouseCreate(BaseModel):
    name: str
    code: Optional[str] = None
    is_default: bool = False


class WarehouseRead(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    is_default: bool
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WarehouseSummary(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    is_default: bool
    is_active: bool
    item_count: int
    total_quantity: int


class WarehouseStockLine(BaseModel):
    item_id: int
    name: str
    item_code: Optional[str] = None
    unit: Optional[str] = None
    packaging_unit: Optional[str] = None
    quantity: int
    base_quantity: int
    updated_at: Optional[datetime] = None
