# warehouse_erp/api/catalog.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_catalog_cache
from ..models.products import ProductType
from ..repositories.catalog_repository import (
    create_product,
    create_warehouse,
    list_products,
    list_warehouses,
)
from ..schemas.catalog import ProductCreate, ProductRead, WarehouseCreate, WarehouseRead
from ..services.catalog_cache import ProductCatalogCache

router = APIRouter(
    prefix="/api",
    tags=["Catalog"],
)


@router.get("/warehouses", response_model=list[WarehouseRead])
def api_list_warehouses(db: Session = Depends(get_db)):
    return list_warehouses(db)


@router.post("/warehouses", response_model=WarehouseRead, status_code=status.HTTP_201_CREATED)
def api_create_warehouse(data: WarehouseCreate, db: Session = Depends(get_db)):
    return create_warehouse(db, name=data.name, code=data.code, address=data.address)


@router.get("/products/{product_type}", response_model=list[ProductRead])
def api_list_products(product_type: ProductType, db: Session = Depends(get_db)):
    return list_products(db, product_type)


@router.post("/products/{product_type}", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def api_create_product(
    product_type: ProductType,
    data: ProductCreate,
    db: Session = Depends(get_db),
    catalog: ProductCatalogCache = Depends(get_catalog_cache),
):
    """Новый товар в справочнике. Кэш справочника сбрасывается сразу."""
    obj = create_product(db, product_type, code=data.code, name=data.name)
    catalog.invalidate()
    return obj
