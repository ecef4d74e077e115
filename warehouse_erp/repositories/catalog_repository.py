from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from warehouse_erp.models.products import MODEL_BY_TYPE, PRODUCT_TYPES
from warehouse_erp.models.warehouse import Warehouse
from warehouse_erp.repositories.numbering import build_warehouse_code
from warehouse_erp.services.exceptions import DocumentNotFound, DocumentValidationError


def _product_model(product_type: str):
    model = MODEL_BY_TYPE.get(product_type)
    if model is None:
        raise DocumentValidationError(
            f"Unknown product type '{product_type}', expected one of {', '.join(PRODUCT_TYPES)}"
        )
    return model


def create_warehouse(
    db: Session,
    *,
    name: str,
    code: Optional[str] = None,
    address: Optional[str] = None,
) -> Warehouse:
    """
    Создаёт склад. Если код не задан — генерирует следующий WHnnn.
    """
    obj = Warehouse(
        name=name.strip(),
        code=(code or "").strip() or build_warehouse_code(db),
        address=address,
    )
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DocumentValidationError(f"Warehouse code '{obj.code}' already exists")
    db.refresh(obj)
    return obj


def list_warehouses(db: Session) -> List[Warehouse]:
    return db.query(Warehouse).order_by(Warehouse.name).all()


def get_warehouse(db: Session, warehouse_id: int) -> Warehouse:
    obj = db.get(Warehouse, warehouse_id)
    if obj is None:
        raise DocumentNotFound(f"Warehouse {warehouse_id} not found")
    return obj


def create_product(db: Session, product_type: str, *, code: str, name: str):
    """Добавляет реагент или расходный материал в справочник."""
    model = _product_model(product_type)
    obj = model(code=code.strip(), name=name.strip())
    db.add(obj)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DocumentValidationError(f"{product_type} code '{code}' already exists")
    db.refresh(obj)
    return obj


def list_products(db: Session, product_type: str):
    model = _product_model(product_type)
    return db.query(model).order_by(model.code).all()


def get_product(db: Session, product_type: str, product_id: int):
    model = _product_model(product_type)
    obj = db.get(model, product_id)
    if obj is None:
        raise DocumentNotFound(f"{product_type} {product_id} not found")
    return obj
