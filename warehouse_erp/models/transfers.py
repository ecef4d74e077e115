# warehouse_erp/models/transfers.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, DECIMAL, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from warehouse_erp.db import Base


class Transfer(Base):
    """Перемещение между складами"""
    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True)
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    total_amount = Column(DECIMAL(16, 4), default=0)

    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship("TransferItem", back_populates="transfer", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("from_warehouse_id != to_warehouse_id", name="ck_transfers_distinct_warehouses"),
    )


class TransferItem(Base):
    """
    Строка перемещения.
    Для склада-получателя — приход, для склада-отправителя — расход
    (один и тот же ряд читается с разным знаком).
    """
    __tablename__ = "transfer_items"

    id = Column(Integer, primary_key=True)
    transfer_id = Column(Integer, ForeignKey("transfers.id", ondelete="CASCADE"), nullable=False)

    product_type = Column(String(20), nullable=False)
    product_id = Column(Integer, nullable=False)

    batch_date = Column(Date, nullable=False, index=True)
    quantity = Column(DECIMAL(14, 3), nullable=False)
    unit_price = Column(DECIMAL(14, 4), nullable=False)
    total_price = Column(DECIMAL(16, 4), nullable=False)

    transfer = relationship("Transfer", back_populates="items")

    __table_args__ = (
        CheckConstraint("product_type IN ('reagent', 'consumable')", name="ck_transfer_items_product_type"),
        CheckConstraint("quantity > 0", name="ck_transfer_items_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_transfer_items_unit_price"),
        Index("idx_transfer_items_product_batch", "product_type", "product_id", "batch_date"),
    )
