# warehouse_erp/services/invoice_service.py
"""
Приходные накладные: создание и возврат поставщику.

Возврат не удаляет строки накладной: накладная переводится в статус
returned (её строки выпадают из расчёта), а для журнала создаётся
списание с причиной invoice_return, ссылающееся на накладную.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from warehouse_erp.config.stock_out_reasons import INVOICE_RETURN
from warehouse_erp.models.invoices import INVOICE_ACTIVE, INVOICE_RETURNED, Invoice, InvoiceItem
from warehouse_erp.models.stock_out import StockOut, StockOutItem
from warehouse_erp.repositories.catalog_repository import get_warehouse
from warehouse_erp.services.documents_common import (
    DocumentLine,
    delete_stock_out,
    ensure_available,
    validate_lines,
)
from warehouse_erp.services.exceptions import DocumentNotFound, DocumentValidationError, InsufficientStock
from warehouse_erp.services.saga import Saga
from warehouse_erp.services.stock_calculator import StockService

log = logging.getLogger(__name__)


def create_invoice(
    db: Session,
    *,
    warehouse_id: int,
    invoice_code: str,
    supplier: str,
    invoice_date: date,
    lines: Iterable[DocumentLine],
) -> Invoice:
    """
    Записывает поступление на склад: шапка накладной → строки.
    Дата партии у всех строк = дата накладной.
    """
    get_warehouse(db, warehouse_id)
    if not (invoice_code or "").strip() or not (supplier or "").strip():
        raise DocumentValidationError("Invoice code and supplier are required")
    lines = validate_lines(db, lines, require_price=True)

    def add_header(db: Session, ctx):
        invoice = Invoice(
            invoice_code=invoice_code.strip(),
            supplier=supplier.strip(),
            date=invoice_date,
            warehouse_id=warehouse_id,
            status=INVOICE_ACTIVE,
        )
        db.add(invoice)
        db.flush()
        return invoice.id

    def delete_header(db: Session, ctx):
        db.query(Invoice).filter(Invoice.id == ctx["header"]).delete(synchronize_session=False)

    def add_lines(db: Session, ctx):
        db.add_all([
            InvoiceItem(
                invoice_id=ctx["header"],
                product_type=line.product_type,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.quantity * line.unit_price,
                batch_date=invoice_date,
            )
            for line in lines
        ])
        db.flush()

    ctx = (
        Saga("create_invoice", db)
        .step("header", add_header, delete_header)
        .step("lines", add_lines)
        .run()
    )

    invoice = db.get(Invoice, ctx["header"])
    log.info(
        "Invoice %s created: warehouse=%s supplier=%s lines=%d",
        invoice.invoice_code, warehouse_id, invoice.supplier, len(lines),
    )
    return invoice


def return_invoice(
    db: Session,
    stock_service: StockService,
    *,
    invoice_id: int,
    return_date: Optional[date] = None,
) -> Invoice:
    """
    Возврат накладной.

    1. Проверяем, что на складе хватает остатка по каждому товару
       и что партии накладной ещё не израсходованы
    2. Списание invoice_return (ссылка на накладную) → его строки
       (исходные даты партий и цены)
    3. Статус накладной → returned
    """
    invoice = db.get(Invoice, invoice_id)
    if invoice is None:
        raise DocumentNotFound(f"Invoice {invoice_id} not found")
    if invoice.status != INVOICE_ACTIVE:
        raise DocumentValidationError(f"Invoice {invoice.invoice_code} is already {invoice.status}")

    items: List[InvoiceItem] = list(invoice.items)
    if not items:
        raise DocumentValidationError(f"Invoice {invoice.invoice_code} has no lines")

    stocks = ensure_available(
        stock_service,
        invoice.warehouse_id,
        [DocumentLine(i.product_type, i.product_id, i.quantity) for i in items],
    )

    # Возвращается именно партия накладной: её остаток должен покрывать строки.
    # Иначе расход, уже снятый с этой даты, после возврата "повиснет" без партии.
    returned: Dict[Tuple[str, int, date, Decimal], Decimal] = defaultdict(lambda: Decimal("0"))
    for i in items:
        returned[(i.product_type, i.product_id, i.batch_date, i.unit_price)] += i.quantity
    for (product_type, product_id, batch_date, unit_price), qty in returned.items():
        batch_qty = sum(
            (b.quantity for b in stocks[(product_type, product_id)].batches
             if b.batch_date == batch_date and b.unit_price == unit_price),
            start=Decimal("0"),
        )
        if batch_qty < qty:
            raise InsufficientStock(invoice.warehouse_id, product_type, product_id, qty, batch_qty)

    return_date = return_date or date.today()
    total_amount = sum((i.total_price for i in items), start=0)
    warehouse_id = invoice.warehouse_id

    def add_stock_out(db: Session, ctx):
        stock_out = StockOut(
            warehouse_id=warehouse_id,
            date=return_date,
            reason=INVOICE_RETURN,
            total_amount=total_amount,
            invoice_id=invoice_id,
        )
        db.add(stock_out)
        db.flush()
        return stock_out.id

    def add_stock_out_lines(db: Session, ctx):
        db.add_all([
            StockOutItem(
                stockout_id=ctx["stock_out"],
                product_type=i.product_type,
                product_id=i.product_id,
                batch_date=i.batch_date,
                quantity=i.quantity,
                unit_price=i.unit_price,
                total_price=i.total_price,
            )
            for i in items
        ])
        db.flush()

    def mark_returned(db: Session, ctx):
        db.query(Invoice).filter(Invoice.id == invoice_id).update(
            {Invoice.status: INVOICE_RETURNED}, synchronize_session=False
        )

    (
        Saga("return_invoice", db)
        .step("stock_out", add_stock_out, lambda db, ctx: delete_stock_out(db, ctx["stock_out"]))
        .step("stock_out_lines", add_stock_out_lines)
        .step("status", mark_returned)
        .run()
    )

    db.expire_all()
    invoice = db.get(Invoice, invoice_id)
    log.info("Invoice %s returned: warehouse=%s lines=%d", invoice.invoice_code, warehouse_id, len(items))
    return invoice


def list_invoices(
    db: Session,
    warehouse_id: Optional[int] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Invoice]:
    """История поступлений, новые сверху."""
    q = db.query(Invoice)
    if warehouse_id is not None:
        q = q.filter(Invoice.warehouse_id == warehouse_id)
    if status:
        q = q.filter(Invoice.status == status)
    return q.order_by(Invoice.date.desc(), Invoice.id.desc()).offset(skip).limit(limit).all()
