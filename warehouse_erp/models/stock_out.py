# warehouse_erp/models/stock_out.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, DECIMAL, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from warehouse_erp.db import Base


class StockOut(Base):
    """
    Списание со склада.
    reason — метка для журнала (transfer / inventory_loss / invoice_return / consumption / other).
    transfer_id / invoice_id — ссылка на документ, который породил списание.
    """
    __tablename__ = "stock_out"

    id = Column(Integer, primary_key=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    reason = Column(String(50), nullable=False, index=True)
    total_amount = Column(DECIMAL(16, 4), default=0)

    transfer_id = Column(Integer, ForeignKey("transfers.id", ondelete="SET NULL"), nullable=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship("StockOutItem", back_populates="stock_out", cascade="all, delete-orphan")


class StockOutItem(Base):
    """Строка списания — всегда уменьшает остаток склада списания"""
    __tablename__ = "stock_out_items"

    id = Column(Integer, primary_key=True)
    stockout_id = Column(Integer, ForeignKey("stock_out.id", ondelete="CASCADE"), nullable=False)

    product_type = Column(String(20), nullable=False)
    product_id = Column(Integer, nullable=False)

    batch_date = Column(Date, nullable=False, index=True)
    quantity = Column(DECIMAL(14, 3), nullable=False)
    unit_price = Column(DECIMAL(14, 4), nullable=False)
    total_price = Column(DECIMAL(16, 4), nullable=False)

    stock_out = relationship("StockOut", back_populates="items")

    __table_args__ = (
        CheckConstraint("product_type IN ('reagent', 'consumable')", name="ck_stock_out_items_product_type"),
        CheckConstraint("quantity > 0", name="ck_stock_out_items_quantity"),
        Index("idx_stock_out_items_warehouse_product", "stockout_id", "product_type", "product_id"),
    )
