from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ItemBase(BaseModel):
    name: str
    item_code: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    hsn_code: Optional[str] = None
    unit: Optional[str] = None
    packaging_unit: Optional[str] = None
    per_container_quantity: Optional[int] = Field(default=None, gt=0)
    sale_price: float = Field(default=0, ge=0)
    purchase_price: float = Field(default=0, ge=0)
    mrp: float = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)


class ItemCreate(ItemBase):
    barcode: Optional[str] = None
    opening_stock: int = Field(default=0, ge=0)
    warehouse_id: Optional[int] = None


class ItemUpdate(BaseModel):
    name: Optional[str] = None
    item_code: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    hsn_code: Optional[str] = None
    barcode: Optional[str] = None
    unit: Optional[str] = None
    packaging_unit: Optional[str] = None
    per_container_quantity: Optional[int] = Field(default=None, gt=0)
    sale_price: Optional[float] = Field(default=None, ge=0)
    purchase_price: Optional[float] = Field(default=None, ge=0)
    mrp: Optional[float] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)


class ItemRead(ItemBase):
    id: int
    barcode: Optional[str] = None
    unit: str
    packaging_unit: str
    opening_stock: int
    current_stock: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
