# warehouse_erp/schemas/catalog.py
from datetime import datetime

from pydantic import BaseModel, Field


class WarehouseCreate(BaseModel):
    """code можно не указывать — сервер выдаст следующий WHnnn."""
    name: str = Field(min_length=1)
    code: str | None = None
    address: str | None = None


class WarehouseRead(BaseModel):
    id: int
    code: str
    name: str
    address: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    code: str = Field(min_length=1)
    name: str = Field(min_length=1)


class ProductRead(BaseModel):
    id: int
    code: str
    name: str

    class Config:
        from_attributes = True
