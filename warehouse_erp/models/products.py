# warehouse_erp/models/products.py
"""
Справочники товаров: реагенты и расходные материалы.

Категории не пересекаются: id товара уникален только внутри своей таблицы,
поэтому в строках документов товар всегда адресуется парой
(product_type, product_id).
"""
from datetime import datetime
from typing import Literal

from sqlalchemy import Column, Integer, String, DateTime
from warehouse_erp.db import Base

REAGENT = "reagent"
CONSUMABLE = "consumable"
PRODUCT_TYPES = (REAGENT, CONSUMABLE)

ProductType = Literal["reagent", "consumable"]


class Reagent(Base):
    """Справочник реагентов"""
    __tablename__ = "reagents"

    id = Column(Integer, primary_key=True)
    code = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Reagent(code='{self.code}', name='{self.name}')>"


class Consumable(Base):
    """Справочник расходных материалов"""
    __tablename__ = "consumables"

    id = Column(Integer, primary_key=True)
    code = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Consumable(code='{self.code}', name='{self.name}')>"


MODEL_BY_TYPE = {
    REAGENT: Reagent,
    CONSUMABLE: Consumable,
}
