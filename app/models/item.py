from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Float, Index, Integer, String

from app.database.base import Base


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)

    name = Column(String, nullable=False)
    item_code = Column(String)
    description = Column(String)
    category = Column(String)
    hsn_code = Column(String)

    # Unique when present; enforced by the store, not the allocator.
    barcode = Column(String, unique=True)

    unit = Column(String, nullable=False, default="PCS")
    packaging_unit = Column(String, nullable=False, default="CTN")
    per_container_quantity = Column(Integer)

    sale_price = Column(Float, nullable=False, default=0)
    purchase_price = Column(Float, nullable=False, default=0)
    mrp = Column(Float, nullable=False, default=0)

    min_stock = Column(Integer, nullable=False, default=0)
    opening_stock = Column(Integer, nullable=False, default=0)
    # Sum of item_warehouse_stock.quantity; only the stock ledger writes it.
    current_stock = Column(Integer, nullable=False, default=0)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_items_current_stock_non_negative"),
        Index("idx_items_name", "name"),
        Index("idx_items_category", "category"),
    )


__all__ = ["Item"]
