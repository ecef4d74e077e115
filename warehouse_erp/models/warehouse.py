# warehouse_erp/models/warehouse.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text
from warehouse_erp.db import Base


class Warehouse(Base):
    """Склад — ключ разбиения остатков"""
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True)

    # Код склада (WH001, WH002, ...), уникальный
    code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Warehouse(code='{self.code}', name='{self.name}')>"
