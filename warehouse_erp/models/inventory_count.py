# warehouse_erp/models/inventory_count.py
"""
Инвентаризация (пересчёт фактических остатков) по складу.

По каждой позиции сохраняется:
- system_qty: расчётный остаток на момент пересчёта
- real_qty: фактическое количество
- loss_qty: недостача (system_qty - real_qty)
- loss_amount: сумма недостачи по средней цене партий
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Date, DECIMAL, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from warehouse_erp.db import Base


class InventoryCount(Base):
    __tablename__ = "inventory_count"

    id = Column(Integer, primary_key=True)
    count_code = Column(String(50), nullable=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    total_loss_amount = Column(DECIMAL(16, 4), default=0)

    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship("InventoryCountItem", back_populates="count", cascade="all, delete-orphan")


class InventoryCountItem(Base):
    __tablename__ = "inventory_count_items"

    id = Column(Integer, primary_key=True)
    count_id = Column(Integer, ForeignKey("inventory_count.id", ondelete="CASCADE"), nullable=False)

    product_type = Column(String(20), nullable=False)
    product_id = Column(Integer, nullable=False)

    system_qty = Column(DECIMAL(14, 3), nullable=False)
    real_qty = Column(DECIMAL(14, 3), nullable=False)
    loss_qty = Column(DECIMAL(14, 3), nullable=False)
    loss_amount = Column(DECIMAL(16, 4), nullable=False)

    count = relationship("InventoryCount", back_populates="items")

    __table_args__ = (
        CheckConstraint("product_type IN ('reagent', 'consumable')", name="ck_inventory_count_items_product_type"),
        CheckConstraint("system_qty >= 0", name="ck_inventory_count_items_system_qty"),
        CheckConstraint("real_qty >= 0", name="ck_inventory_count_items_real_qty"),
    )
