# warehouse_erp/services/transfer_service.py
"""
Перемещение между складами.

Шаги записи:
  1. шапка перемещения
  2. строки перемещения — приход на складе-получателе, дата партии = дата перемещения
  3. зеркальное списание (reason=transfer, transfer_id) на складе-отправителе
  4. строки списания — с ИСХОДНОЙ датой партии, чтобы уменьшить именно её

Расход склада-отправителя считается по строкам списания; строки самого
перемещения для отправителя не учитываются, пока есть зеркальное списание.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from warehouse_erp.config.stock_out_reasons import TRANSFER
from warehouse_erp.models.stock_out import StockOut, StockOutItem
from warehouse_erp.models.transfers import Transfer, TransferItem
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


def _delete_transfer(db: Session, transfer_id: int) -> None:
    db.query(TransferItem).filter(TransferItem.transfer_id == transfer_id).delete(synchronize_session=False)
    db.query(Transfer).filter(Transfer.id == transfer_id).delete(synchronize_session=False)


def create_transfer(
    db: Session,
    stock_service: StockService,
    *,
    from_warehouse_id: int,
    to_warehouse_id: int,
    transfer_date: date,
    lines: Iterable[DocumentLine],
) -> Transfer:
    """
    Перемещает партии со склада на склад.
    Каждая строка указывает исходную партию (batch_date + unit_price) и количество.
    """
    if from_warehouse_id == to_warehouse_id:
        raise DocumentValidationError("Source and destination warehouse must differ")
    get_warehouse(db, from_warehouse_id)
    get_warehouse(db, to_warehouse_id)

    lines = validate_lines(db, lines, require_price=True)
    for idx, line in enumerate(lines, 1):
        if line.batch_date is None:
            raise DocumentValidationError(f"Line {idx}: source batch date is required")

    stocks = ensure_available(stock_service, from_warehouse_id, lines)

    # Строка не может забрать больше, чем осталось в её партии
    for line in lines:
        stock = stocks[(line.product_type, line.product_id)]
        batch_qty = sum(
            (b.quantity for b in stock.batches
             if b.batch_date == line.batch_date and b.unit_price == line.unit_price),
            start=Decimal("0"),
        )
        requested = sum(
            (l.quantity for l in lines
             if (l.product_type, l.product_id, l.batch_date, l.unit_price)
             == (line.product_type, line.product_id, line.batch_date, line.unit_price)),
            start=Decimal("0"),
        )
        if batch_qty < requested:
            raise InsufficientStock(from_warehouse_id, line.product_type, line.product_id, requested, batch_qty)

    total_amount = sum((l.quantity * l.unit_price for l in lines), start=Decimal("0"))

    def add_header(db: Session, ctx):
        transfer = Transfer(
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            date=transfer_date,
            total_amount=total_amount,
        )
        db.add(transfer)
        db.flush()
        return transfer.id

    def add_transfer_lines(db: Session, ctx):
        db.add_all([
            TransferItem(
                transfer_id=ctx["header"],
                product_type=l.product_type,
                product_id=l.product_id,
                batch_date=transfer_date,
                quantity=l.quantity,
                unit_price=l.unit_price,
                total_price=l.quantity * l.unit_price,
            )
            for l in lines
        ])
        db.flush()

    def add_stock_out(db: Session, ctx):
        stock_out = StockOut(
            warehouse_id=from_warehouse_id,
            date=transfer_date,
            reason=TRANSFER,
            total_amount=total_amount,
            transfer_id=ctx["header"],
        )
        db.add(stock_out)
        db.flush()
        return stock_out.id

    def add_stock_out_lines(db: Session, ctx):
        db.add_all([
            StockOutItem(
                stockout_id=ctx["stock_out"],
                product_type=l.product_type,
                product_id=l.product_id,
                batch_date=l.batch_date,
                quantity=l.quantity,
                unit_price=l.unit_price,
                total_price=l.quantity * l.unit_price,
            )
            for l in lines
        ])
        db.flush()

    ctx = (
        Saga("create_transfer", db)
        .step("header", add_header, lambda db, ctx: _delete_transfer(db, ctx["header"]))
        .step("lines", add_transfer_lines)
        .step("stock_out", add_stock_out, lambda db, ctx: delete_stock_out(db, ctx["stock_out"]))
        .step("stock_out_lines", add_stock_out_lines)
        .run()
    )

    transfer = db.get(Transfer, ctx["header"])
    log.info(
        "Transfer %s created: %s -> %s, lines=%d, amount=%s",
        transfer.id, from_warehouse_id, to_warehouse_id, len(lines), total_amount,
    )
    return transfer
