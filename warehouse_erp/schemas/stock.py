# warehouse_erp/schemas/stock.py
from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class StockBatchRead(BaseModel):
    batch_date: date
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    supplier: str = ""

    class Config:
        from_attributes = True


class StockRead(BaseModel):
    """Остаток товара на складе с разбивкой по партиям (новые сверху)."""
    warehouse_id: int
    product_type: str
    product_id: int
    total_quantity: Decimal
    total_value: Decimal
    batches: list[StockBatchRead]


class AvailabilityRead(BaseModel):
    available: bool
    current_stock: Decimal
    requested: Decimal


class StockSummaryRead(BaseModel):
    warehouse_id: int
    warehouse_name: str
    product_id: int
    product_code: str
    product_name: str
    product_type: str
    total_quantity: Decimal
    total_amount: Decimal
    last_entry_date: date | None = None
    batches: list[StockBatchRead]

    class Config:
        from_attributes = True


class StockIssueRead(BaseModel):
    warehouse_id: int
    warehouse_name: str
    product_id: int
    product_code: str
    product_name: str
    product_type: str
    calculated_stock: Decimal
    issue: str

    class Config:
        from_attributes = True
