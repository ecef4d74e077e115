# warehouse_erp/services/stock_summary_service.py
"""
Сводка остатков по складу (или по всем складам) для списков и отчётов.

Товары обрабатываются пачками по STOCK_SUMMARY_CHUNK_SIZE, внутри пачки
расчёты идут параллельно.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from warehouse_erp.db import pool_capacity
from warehouse_erp.models.warehouse import Warehouse
from warehouse_erp.services.catalog_cache import ProductCatalogCache
from warehouse_erp.services.exceptions import DocumentNotFound
from warehouse_erp.services.stock_calculator import StockBatch, StockService
from warehouse_erp.settings import settings

log = logging.getLogger(__name__)


@dataclass
class StockSummary:
    warehouse_id: int
    warehouse_name: str
    product_id: int
    product_code: str
    product_name: str
    product_type: str
    total_quantity: Decimal
    total_amount: Decimal
    last_entry_date: Optional[date]
    batches: List[StockBatch] = field(default_factory=list)


def summary_workers(chunk_size: int, query_workers: int, max_connections: int) -> int:
    """
    Сколько товаров пачки считать одновременно.
    Каждый расчёт сам держит до query_workers сессий, вместе они должны
    уложиться в пул соединений, иначе потоки упрутся в pool_timeout.
    """
    return max(1, min(chunk_size, max_connections // max(1, query_workers)))


def list_warehouse_stock(
    session_factory: sessionmaker,
    stock_service: StockService,
    catalog: ProductCatalogCache,
    warehouse_id: Optional[int] = None,
    chunk_size: Optional[int] = None,
    max_connections: Optional[int] = None,
) -> List[StockSummary]:
    """
    Все товары с положительным остатком.
    warehouse_id=None — по всем складам.
    Сортировка: название склада, код товара.
    """
    chunk_size = chunk_size or settings.STOCK_SUMMARY_CHUNK_SIZE

    db = session_factory()
    try:
        q = db.query(Warehouse)
        if warehouse_id is not None:
            q = q.filter(Warehouse.id == warehouse_id)
        warehouses = [(w.id, w.name) for w in q.order_by(Warehouse.name).all()]
    finally:
        db.close()

    if warehouse_id is not None and not warehouses:
        raise DocumentNotFound(f"Warehouse {warehouse_id} not found")

    products = catalog.get().all_products()
    results: List[StockSummary] = []

    workers = summary_workers(chunk_size, stock_service.max_workers, max_connections or pool_capacity())
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for start in range(0, len(products), chunk_size):
            chunk = products[start:start + chunk_size]
            for wh_id, wh_name in warehouses:
                stocks = pool.map(
                    lambda p, wid=wh_id: stock_service.compute_stock(wid, p.id, p.product_type),
                    chunk,
                )
                for product, stock in zip(chunk, stocks):
                    if stock.total_quantity <= 0:
                        continue
                    results.append(
                        StockSummary(
                            warehouse_id=wh_id,
                            warehouse_name=wh_name,
                            product_id=product.id,
                            product_code=product.code,
                            product_name=product.name,
                            product_type=product.product_type,
                            total_quantity=stock.total_quantity,
                            total_amount=stock.total_value,
                            last_entry_date=stock.batches[0].batch_date if stock.batches else None,
                            batches=stock.batches,
                        )
                    )
            log.debug("Stock summary: processed %d/%d products", min(start + chunk_size, len(products)), len(products))

    results.sort(key=lambda s: (s.warehouse_name, s.product_code))
    return results
