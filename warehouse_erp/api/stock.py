# warehouse_erp/api/stock.py
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, sessionmaker

from ..db import get_db, get_session_factory
from ..deps import get_catalog_cache, get_stock_service
from ..models.products import ProductType
from ..repositories.catalog_repository import get_product, get_warehouse
from ..schemas.stock import AvailabilityRead, StockIssueRead, StockRead, StockSummaryRead
from ..services.catalog_cache import ProductCatalogCache
from ..services.consistency_service import find_inconsistencies
from ..services.stock_calculator import StockService
from ..services.stock_summary_service import list_warehouse_stock

router = APIRouter(
    prefix="/api/stock",
    tags=["Stock"],
)


@router.get("/summary", response_model=list[StockSummaryRead])
def api_stock_summary(
    warehouse_id: Optional[int] = Query(None, description="ID склада (по умолчанию — все склады)"),
    session_factory: sessionmaker = Depends(get_session_factory),
    stock_service: StockService = Depends(get_stock_service),
    catalog: ProductCatalogCache = Depends(get_catalog_cache),
):
    """
    Сводка остатков: все товары с положительным остатком,
    сортировка по складу и коду товара.
    """
    return list_warehouse_stock(session_factory, stock_service, catalog, warehouse_id)


@router.get("/consistency", response_model=list[StockIssueRead])
def api_stock_consistency(
    session_factory: sessionmaker = Depends(get_session_factory),
    stock_service: StockService = Depends(get_stock_service),
    catalog: ProductCatalogCache = Depends(get_catalog_cache),
):
    """
    Проверка журнала: пары (склад, товар) с отрицательным расчётным остатком.
    Тяжёлый запрос — все склады × все товары.
    """
    return find_inconsistencies(session_factory, stock_service, catalog)


@router.get("/{warehouse_id}/{product_type}/{product_id}", response_model=StockRead)
def api_product_stock(
    warehouse_id: int,
    product_type: ProductType,
    product_id: int,
    stock_service: StockService = Depends(get_stock_service),
):
    """Текущий остаток товара на складе и его партии (новые сверху)."""
    stock = stock_service.compute_stock(warehouse_id, product_id, product_type)
    return {
        "warehouse_id": warehouse_id,
        "product_type": product_type,
        "product_id": product_id,
        "total_quantity": stock.total_quantity,
        "total_value": stock.total_value,
        "batches": stock.batches,
    }


@router.get("/{warehouse_id}/{product_type}/{product_id}/availability", response_model=AvailabilityRead)
def api_product_availability(
    warehouse_id: int,
    product_type: ProductType,
    product_id: int,
    qty: Decimal = Query(..., gt=0, description="Запрошенное количество"),
    db: Session = Depends(get_db),
    stock_service: StockService = Depends(get_stock_service),
):
    """Хватает ли остатка для списания qty."""
    get_warehouse(db, warehouse_id)
    get_product(db, product_type, product_id)
    result = stock_service.check_availability(warehouse_id, product_id, product_type, qty)
    return {"available": result.available, "current_stock": result.current_stock, "requested": qty}
