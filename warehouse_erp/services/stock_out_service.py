# warehouse_erp/services/stock_out_service.py
"""Ручное списание со склада (расход, прочее)."""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from warehouse_erp.config.stock_out_reasons import manual_reasons
from warehouse_erp.models.stock_out import StockOut, StockOutItem
from warehouse_erp.repositories.catalog_repository import get_warehouse
from warehouse_erp.services.documents_common import (
    DocumentLine,
    delete_stock_out,
    ensure_available,
    validate_lines,
)
from warehouse_erp.services.exceptions import DocumentValidationError, InsufficientStock
from warehouse_erp.services.saga import Saga
from warehouse_erp.services.stock_calculator import StockService

log = logging.getLogger(__name__)


def post_stock_out(
    db: Session,
    stock_service: StockService,
    *,
    warehouse_id: int,
    out_date: date,
    reason: str,
    lines: Iterable[DocumentLine],
) -> StockOut:
    """
    Списание партий со склада.

    Каждая строка указывает дату партии. Если цена не задана — берётся цена
    партии этой даты (первой по списку партий).
    """
    if reason not in manual_reasons():
        raise DocumentValidationError(
            f"Reason '{reason}' cannot be posted manually, expected one of {', '.join(manual_reasons())}"
        )
    get_warehouse(db, warehouse_id)

    lines = validate_lines(db, lines)
    for idx, line in enumerate(lines, 1):
        if line.batch_date is None:
            raise DocumentValidationError(f"Line {idx}: batch date is required")

    stocks = ensure_available(stock_service, warehouse_id, lines)

    priced: List[DocumentLine] = []
    for line in lines:
        stock = stocks[(line.product_type, line.product_id)]
        same_date = [b for b in stock.batches if b.batch_date == line.batch_date]
        available = sum((b.quantity for b in same_date), start=Decimal("0"))
        requested = sum(
            (l.quantity for l in lines
             if (l.product_type, l.product_id, l.batch_date) == (line.product_type, line.product_id, line.batch_date)),
            start=Decimal("0"),
        )
        if available < requested:
            raise InsufficientStock(warehouse_id, line.product_type, line.product_id, requested, available)

        unit_price = line.unit_price if line.unit_price is not None else same_date[0].unit_price
        priced.append(
            DocumentLine(line.product_type, line.product_id, line.quantity, unit_price, line.batch_date)
        )

    total_amount = sum((l.quantity * l.unit_price for l in priced), start=Decimal("0"))

    def add_header(db: Session, ctx):
        stock_out = StockOut(
            warehouse_id=warehouse_id,
            date=out_date,
            reason=reason,
            total_amount=total_amount,
        )
        db.add(stock_out)
        db.flush()
        return stock_out.id

    def add_lines(db: Session, ctx):
        db.add_all([
            StockOutItem(
                stockout_id=ctx["header"],
                product_type=l.product_type,
                product_id=l.product_id,
                batch_date=l.batch_date,
                quantity=l.quantity,
                unit_price=l.unit_price,
                total_price=l.quantity * l.unit_price,
            )
            for l in priced
        ])
        db.flush()

    ctx = (
        Saga("post_stock_out", db)
        .step("header", add_header, lambda db, ctx: delete_stock_out(db, ctx["header"]))
        .step("lines", add_lines)
        .run()
    )

    log.info("Stock-out %s posted: warehouse=%s reason=%s lines=%d", ctx["header"], warehouse_id, reason, len(priced))
    return db.get(StockOut, ctx["header"])


def list_stock_outs(
    db: Session,
    warehouse_id: Optional[int] = None,
    reason: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[StockOut]:
    """Журнал списаний, новые сверху."""
    q = db.query(StockOut)
    if warehouse_id is not None:
        q = q.filter(StockOut.warehouse_id == warehouse_id)
    if reason:
        q = q.filter(StockOut.reason == reason)
    return q.order_by(StockOut.date.desc(), StockOut.id.desc()).offset(skip).limit(limit).all()
