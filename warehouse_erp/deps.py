from fastapi import Depends, Request
from sqlalchemy.orm import sessionmaker

from .db import get_session_factory
from .services.catalog_cache import ProductCatalogCache
from .services.stock_calculator import StockService
from .settings import settings


def get_stock_service(session_factory: sessionmaker = Depends(get_session_factory)) -> StockService:
    """Сервис расчёта остатков на запрос (сам по себе без состояния)."""
    return StockService(session_factory)


def get_catalog_cache(
    request: Request,
    session_factory: sessionmaker = Depends(get_session_factory),
) -> ProductCatalogCache:
    """
    Кэш справочника товаров — один на приложение, живёт в app.state.
    Создаётся при первом обращении.
    """
    cache = getattr(request.app.state, "catalog_cache", None)
    if cache is None:
        cache = ProductCatalogCache(session_factory, ttl_seconds=settings.CATALOG_CACHE_TTL_SECONDS)
        request.app.state.catalog_cache = cache
    return cache
