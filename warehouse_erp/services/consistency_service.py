# warehouse_erp/services/consistency_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List

from sqlalchemy.orm import sessionmaker

from warehouse_erp.models.warehouse import Warehouse
from warehouse_erp.services.catalog_cache import ProductCatalogCache
from warehouse_erp.services.stock_calculator import StockService

log = logging.getLogger(__name__)

NEGATIVE_STOCK = "Negative stock detected"


@dataclass
class StockIssue:
    warehouse_id: int
    warehouse_name: str
    product_id: int
    product_code: str
    product_name: str
    product_type: str
    calculated_stock: Decimal
    issue: str = NEGATIVE_STOCK


def find_inconsistencies(
    session_factory: sessionmaker,
    stock_service: StockService,
    catalog: ProductCatalogCache,
) -> List[StockIssue]:
    """
    Проверка журнала: все склады × все товары.

    Обычный расчёт отбрасывает отрицательные партии и в минус не уходит,
    поэтому здесь смотрим на сырую алгебраическую сумму (raw_quantity).
    Тяжёлая операция (O(склады × товары)) — запускать по требованию или по расписанию.
    """
    db = session_factory()
    try:
        warehouses = [(w.id, w.name) for w in db.query(Warehouse).order_by(Warehouse.name).all()]
    finally:
        db.close()

    products = catalog.get().all_products()
    log.info("Consistency sweep: %d warehouses x %d products", len(warehouses), len(products))

    issues: List[StockIssue] = []
    for warehouse_id, warehouse_name in warehouses:
        for product in products:
            stock = stock_service.compute_stock(warehouse_id, product.id, product.product_type)
            if stock.raw_quantity < 0:
                log.warning(
                    "Negative stock: warehouse=%s %s=%s (%s) raw=%s",
                    warehouse_name, product.product_type, product.id, product.code, stock.raw_quantity,
                )
                issues.append(
                    StockIssue(
                        warehouse_id=warehouse_id,
                        warehouse_name=warehouse_name,
                        product_id=product.id,
                        product_code=product.code,
                        product_name=product.name,
                        product_type=product.product_type,
                        calculated_stock=stock.raw_quantity,
                    )
                )

    log.info("Consistency sweep finished: %d issues", len(issues))
    return issues
