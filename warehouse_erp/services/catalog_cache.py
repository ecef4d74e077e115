# warehouse_erp/services/catalog_cache.py
"""
Кэш справочника товаров для массовых расчётов (сводка остатков, инвентаризация,
проверка целостности).

Явный объект с TTL и invalidate(): передаётся в сервисы как зависимость,
а не живёт глобальной переменной. Любая запись в справочник должна
вызывать invalidate().
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy.orm import sessionmaker

from warehouse_erp.models.products import CONSUMABLE, REAGENT, Consumable, Reagent

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogProduct:
    id: int
    code: str
    name: str
    product_type: str


@dataclass(frozen=True)
class ProductCatalog:
    reagents: List[CatalogProduct]
    consumables: List[CatalogProduct]

    def all_products(self) -> List[CatalogProduct]:
        return [*self.reagents, *self.consumables]


class ProductCatalogCache:
    """Read-through кэш справочника реагентов и расходников."""

    def __init__(
        self,
        session_factory: sessionmaker,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._catalog: Optional[ProductCatalog] = None
        self._loaded_at: float = 0.0

    def get(self) -> ProductCatalog:
        with self._lock:
            if self._catalog is None or self._clock() - self._loaded_at >= self.ttl_seconds:
                self._catalog = self._load()
                self._loaded_at = self._clock()
            return self._catalog

    def invalidate(self) -> None:
        with self._lock:
            self._catalog = None
        log.debug("Product catalog cache invalidated")

    def _load(self) -> ProductCatalog:
        db = self.session_factory()
        try:
            reagents = [
                CatalogProduct(r.id, r.code, r.name, REAGENT)
                for r in db.query(Reagent).order_by(Reagent.code).all()
            ]
            consumables = [
                CatalogProduct(c.id, c.code, c.name, CONSUMABLE)
                for c in db.query(Consumable).order_by(Consumable.code).all()
            ]
        finally:
            db.close()
        log.info("Product catalog loaded: %d reagents, %d consumables", len(reagents), len(consumables))
        return ProductCatalog(reagents=reagents, consumables=consumables)
