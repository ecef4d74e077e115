# warehouse_erp/models/invoices.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, DECIMAL, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from warehouse_erp.db import Base

INVOICE_ACTIVE = "active"
INVOICE_RETURNED = "returned"


class Invoice(Base):
    """Приходная накладная (поступление на склад)"""
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    invoice_code = Column(String(100), nullable=False)
    supplier = Column(String(255), nullable=False)
    date = Column(Date, nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False, index=True)

    # active → returned; строки возвращённой накладной в остаток не входят
    status = Column(String(20), nullable=False, default=INVOICE_ACTIVE, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship("InvoiceItem", back_populates="invoice", cascade="all, delete-orphan")
    warehouse = relationship("Warehouse")

    __table_args__ = (
        CheckConstraint("status IN ('active', 'returned')", name="ck_invoices_status"),
    )


class InvoiceItem(Base):
    """Строка накладной — событие увеличения остатка"""
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)

    product_type = Column(String(20), nullable=False)
    product_id = Column(Integer, nullable=False)

    quantity = Column(DECIMAL(14, 3), nullable=False)
    unit_price = Column(DECIMAL(14, 4), nullable=False)
    total_price = Column(DECIMAL(16, 4), nullable=False)
    batch_date = Column(Date, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    invoice = relationship("Invoice", back_populates="items")

    __table_args__ = (
        CheckConstraint("product_type IN ('reagent', 'consumable')", name="ck_invoice_items_product_type"),
        CheckConstraint("quantity > 0", name="ck_invoice_items_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_items_unit_price"),
        Index("idx_invoice_items_warehouse_product", "invoice_id", "product_type", "product_id"),
    )
