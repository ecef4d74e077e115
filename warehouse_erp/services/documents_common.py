# warehouse_erp/services/documents_common.py
"""Общие куски для сервисов документов: входные строки, проверки, удаление при компенсации."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from warehouse_erp.models.stock_out import StockOut, StockOutItem
from warehouse_erp.repositories.catalog_repository import get_product
from warehouse_erp.services.exceptions import DocumentValidationError, InsufficientStock
from warehouse_erp.services.stock_calculator import StockResult, StockService

ZERO = Decimal("0")


@dataclass
class DocumentLine:
    """Строка документа на входе сервиса."""
    product_type: str
    product_id: int
    quantity: Decimal
    unit_price: Optional[Decimal] = None
    batch_date: Optional[date] = None


def to_decimal(x) -> Decimal:
    """Безопасно приводит значение к Decimal."""
    if x is None:
        return ZERO
    if isinstance(x, Decimal):
        return x
    try:
        # str(x) чтобы не ловить двоичную грязь float напрямую
        return Decimal(str(x))
    except InvalidOperation:
        raise DocumentValidationError(f"Invalid number: {x!r}")


def validate_lines(db: Session, lines: Iterable[DocumentLine], *, require_price: bool = False) -> List[DocumentLine]:
    """
    Проверяет строки: товар существует, qty > 0, цена >= 0.
    Возвращает строки с приведёнными к Decimal числами.
    """
    result = []
    for idx, line in enumerate(lines, 1):
        get_product(db, line.product_type, line.product_id)
        qty = to_decimal(line.quantity)
        if qty <= 0:
            raise DocumentValidationError(f"Line {idx}: quantity must be greater than 0")
        price = None
        if line.unit_price is not None:
            price = to_decimal(line.unit_price)
            if price < 0:
                raise DocumentValidationError(f"Line {idx}: unit price must not be negative")
        elif require_price:
            raise DocumentValidationError(f"Line {idx}: unit price is required")
        result.append(
            DocumentLine(
                product_type=line.product_type,
                product_id=line.product_id,
                quantity=qty,
                unit_price=price,
                batch_date=line.batch_date,
            )
        )
    if not result:
        raise DocumentValidationError("Document has no lines")
    return result


def ensure_available(
    stock_service: StockService,
    warehouse_id: int,
    lines: Iterable[DocumentLine],
) -> Dict[Tuple[str, int], StockResult]:
    """
    Проверка перед списанием: по каждому товару сумма строк <= остатка.
    Возвращает рассчитанные остатки, чтобы не считать их повторно.
    """
    requested: Dict[Tuple[str, int], Decimal] = defaultdict(lambda: ZERO)
    for line in lines:
        requested[(line.product_type, line.product_id)] += line.quantity

    stocks: Dict[Tuple[str, int], StockResult] = {}
    for (product_type, product_id), qty in requested.items():
        stock = stock_service.compute_stock(warehouse_id, product_id, product_type)
        if stock.total_quantity < qty:
            raise InsufficientStock(warehouse_id, product_type, product_id, qty, stock.total_quantity)
        stocks[(product_type, product_id)] = stock
    return stocks


def delete_stock_out(db: Session, stock_out_id: int) -> None:
    """Компенсация: удаляет списание вместе со строками."""
    db.query(StockOutItem).filter(StockOutItem.stockout_id == stock_out_id).delete(synchronize_session=False)
    db.query(StockOut).filter(StockOut.id == stock_out_id).delete(synchronize_session=False)
