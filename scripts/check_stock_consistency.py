#!/usr/bin/env python3
"""
Ночная проверка журнала движения: ищет пары (склад, товар),
у которых сырой расчётный остаток ушёл в минус.

Запуск:  python -m scripts.check_stock_consistency
Код выхода 1 — найдены расхождения (для cron / launchd).
"""

import logging
import sys

from warehouse_erp.db import SessionLocal
from warehouse_erp.services.catalog_cache import ProductCatalogCache
from warehouse_erp.services.consistency_service import find_inconsistencies
from warehouse_erp.services.stock_calculator import StockService
from warehouse_erp.settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("stock_consistency")


def main() -> int:
    stock_service = StockService(SessionLocal)
    catalog = ProductCatalogCache(SessionLocal, ttl_seconds=settings.CATALOG_CACHE_TTL_SECONDS)

    issues = find_inconsistencies(SessionLocal, stock_service, catalog)
    if not issues:
        log.info("Журнал согласован, отрицательных остатков нет")
        return 0

    for i in issues:
        log.info(
            "%s | %s %s (%s) | остаток %s",
            i.warehouse_name, i.product_type, i.product_code, i.product_name, i.calculated_stock,
        )
    log.info("Найдено расхождений: %d", len(issues))
    return 1


if __name__ == "__main__":
    sys.exit(main())
