from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from app.database.base import Base


class StockMovement(Base):
    """Append-only audit row; current quantities live in item_warehouse_stock."""

    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True)

    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    movement_type = Column(String(20), nullable=False)
    quantity_change = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)

    reason = Column(String(40), nullable=False)
    note = Column(String)
    entry_unit = Column(String(20))

    reference_type = Column(String(40))
    reference_no = Column(String(60))
    actor = Column(String(120))

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_stock_movements_item_warehouse", "item_id", "warehouse_id"),
        Index("idx_stock_movements_created", "created_at"),
    )


__all__ = ["StockMovement"]
