# warehouse_erp/schemas/documents.py
import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

ProductTypeField = Literal["reagent", "consumable"]


class InvoiceLineIn(BaseModel):
    product_type: ProductTypeField
    product_id: int
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal = Field(ge=0)


class InvoiceCreate(BaseModel):
    """Поступление: дата партии у строк = дата накладной."""
    warehouse_id: int
    invoice_code: str = Field(min_length=1)
    supplier: str = Field(min_length=1)
    date: dt.date
    lines: list[InvoiceLineIn] = Field(min_length=1)


class InvoiceReturn(BaseModel):
    date: dt.date | None = None


class InvoiceItemRead(BaseModel):
    id: int
    product_type: str
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    batch_date: dt.date

    class Config:
        from_attributes = True


class InvoiceRead(BaseModel):
    id: int
    invoice_code: str
    supplier: str
    date: dt.date
    warehouse_id: int
    status: str
    items: list[InvoiceItemRead] = []

    class Config:
        from_attributes = True


class TransferLineIn(BaseModel):
    """Строка перемещения ссылается на исходную партию: дата + цена."""
    product_type: ProductTypeField
    product_id: int
    batch_date: dt.date
    unit_price: Decimal = Field(ge=0)
    quantity: Decimal = Field(gt=0)


class TransferCreate(BaseModel):
    from_warehouse_id: int
    to_warehouse_id: int
    date: dt.date
    lines: list[TransferLineIn] = Field(min_length=1)


class TransferItemRead(BaseModel):
    id: int
    product_type: str
    product_id: int
    batch_date: dt.date
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class TransferRead(BaseModel):
    id: int
    from_warehouse_id: int
    to_warehouse_id: int
    date: dt.date
    total_amount: Decimal
    items: list[TransferItemRead] = []

    class Config:
        from_attributes = True


class StockOutLineIn(BaseModel):
    product_type: ProductTypeField
    product_id: int
    batch_date: dt.date
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal | None = Field(default=None, ge=0)


class StockOutCreate(BaseModel):
    warehouse_id: int
    date: dt.date
    reason: str = "consumption"
    lines: list[StockOutLineIn] = Field(min_length=1)


class StockOutItemRead(BaseModel):
    id: int
    product_type: str
    product_id: int
    batch_date: dt.date
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class StockOutRead(BaseModel):
    id: int
    warehouse_id: int
    date: dt.date
    reason: str
    reason_label: str | None = None
    total_amount: Decimal
    transfer_id: int | None = None
    invoice_id: int | None = None
    items: list[StockOutItemRead] = []

    class Config:
        from_attributes = True


class CountSheetRowRead(BaseModel):
    product_type: str
    product_id: int
    product_code: str
    product_name: str
    system_qty: Decimal
    unit_price: Decimal

    class Config:
        from_attributes = True


class CountRowIn(BaseModel):
    product_type: ProductTypeField
    product_id: int
    real_qty: Decimal = Field(ge=0)


class InventoryCountCreate(BaseModel):
    warehouse_id: int
    date: dt.date
    count_code: str | None = None
    rows: list[CountRowIn] = Field(min_length=1)


class InventoryCountItemRead(BaseModel):
    id: int
    product_type: str
    product_id: int
    system_qty: Decimal
    real_qty: Decimal
    loss_qty: Decimal
    loss_amount: Decimal

    class Config:
        from_attributes = True


class InventoryCountRead(BaseModel):
    id: int
    count_code: str | None = None
    warehouse_id: int
    date: dt.date
    total_loss_amount: Decimal
    items: list[InventoryCountItemRead] = []

    class Config:
        from_attributes = True
