from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, UniqueConstraint

from app.database.base import Base


class ItemWarehouseStock(Base):
    __tablename__ = "item_warehouse_stock"

    id = Column(Integer, primary_key=True)

    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    # Packaging units (cartons, bags, ...); never base units.
    quantity = Column(Integer, nullable=False, default=0)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("item_id", "warehouse_id", name="uq_item_warehouse_stock"),
        CheckConstraint("quantity >= 0", name="ck_item_warehouse_stock_non_negative"),
        Index("idx_item_warehouse_stock_warehouse", "warehouse_id"),
    )


__all__ = ["ItemWarehouseStock"]
