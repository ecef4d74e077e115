# warehouse_erp/repositories/ledger_queries.py
"""
Запросы к журналу движения товаров (накладные, перемещения, списания).

Каждый метод — один логический запрос. Любая ошибка SQLAlchemy
поднимается наружу как QueryFailure, а не как пустой результат.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import wraps
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from warehouse_erp.models.invoices import INVOICE_ACTIVE, Invoice, InvoiceItem
from warehouse_erp.models.stock_out import StockOut, StockOutItem
from warehouse_erp.models.transfers import Transfer, TransferItem
from warehouse_erp.services.exceptions import QueryFailure

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerLine:
    """Строка документа, влияющая на остаток."""
    quantity: Decimal
    unit_price: Decimal
    batch_date: date
    document_id: Optional[int] = None


@dataclass(frozen=True)
class StockOutHeader:
    id: int
    reason: str
    transfer_id: Optional[int] = None
    invoice_id: Optional[int] = None
    invoice_status: Optional[str] = None


def _query(name: str):
    """Оборачивает метод запроса: SQLAlchemyError → QueryFailure(name)."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except SQLAlchemyError as e:
                log.error("Ledger query %s failed: %s", name, e)
                raise QueryFailure(name, e) from e
        return wrapper
    return decorator


def _lines(rows) -> List[LedgerLine]:
    return [
        LedgerLine(
            quantity=Decimal(str(r.quantity)),
            unit_price=Decimal(str(r.unit_price)) if r.unit_price is not None else Decimal("0"),
            batch_date=r.batch_date,
            document_id=r.document_id,
        )
        for r in rows
    ]


class LedgerQueries:
    """Чтение журнала движения одного склада / товара."""

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Заголовки документов
    # -------------------------------------------------------------------------

    @_query("active_invoices")
    def active_invoices(self, warehouse_id: int) -> Dict[int, str]:
        """Активные накладные склада: {invoice_id: поставщик}, в порядке id."""
        rows = (
            self.db.query(Invoice.id, Invoice.supplier)
            .filter(
                Invoice.warehouse_id == warehouse_id,
                Invoice.status == INVOICE_ACTIVE,
            )
            .order_by(Invoice.id)
            .all()
        )
        return {r.id: r.supplier or "" for r in rows}

    @_query("transfers_in")
    def transfers_in(self, warehouse_id: int) -> List[int]:
        rows = (
            self.db.query(Transfer.id)
            .filter(Transfer.to_warehouse_id == warehouse_id)
            .order_by(Transfer.id)
            .all()
        )
        return [r.id for r in rows]

    @_query("transfers_out")
    def transfers_out(self, warehouse_id: int) -> List[int]:
        rows = (
            self.db.query(Transfer.id)
            .filter(Transfer.from_warehouse_id == warehouse_id)
            .order_by(Transfer.id)
            .all()
        )
        return [r.id for r in rows]

    @_query("stock_outs")
    def stock_outs(self, warehouse_id: int) -> List[StockOutHeader]:
        """Все списания склада (любая причина) + статус связанной накладной."""
        rows = (
            self.db.query(
                StockOut.id,
                StockOut.reason,
                StockOut.transfer_id,
                StockOut.invoice_id,
                Invoice.status.label("invoice_status"),
            )
            .outerjoin(Invoice, Invoice.id == StockOut.invoice_id)
            .filter(StockOut.warehouse_id == warehouse_id)
            .order_by(StockOut.id)
            .all()
        )
        return [
            StockOutHeader(
                id=r.id,
                reason=r.reason,
                transfer_id=r.transfer_id,
                invoice_id=r.invoice_id,
                invoice_status=r.invoice_status,
            )
            for r in rows
        ]

    # -------------------------------------------------------------------------
    # Строки документов по товару
    # -------------------------------------------------------------------------

    @_query("invoice_lines")
    def invoice_lines(
        self,
        invoice_ids: Iterable[int],
        product_type: str,
        product_id: int,
    ) -> List[LedgerLine]:
        ids = list(invoice_ids)
        if not ids:
            return []
        rows = (
            self.db.query(
                InvoiceItem.quantity,
                InvoiceItem.unit_price,
                InvoiceItem.batch_date,
                InvoiceItem.invoice_id.label("document_id"),
            )
            .filter(
                InvoiceItem.invoice_id.in_(ids),
                InvoiceItem.product_type == product_type,
                InvoiceItem.product_id == product_id,
            )
            .order_by(InvoiceItem.id)
            .all()
        )
        return _lines(rows)

    @_query("transfer_lines")
    def transfer_lines(
        self,
        transfer_ids: Iterable[int],
        product_type: str,
        product_id: int,
    ) -> List[LedgerLine]:
        ids = list(transfer_ids)
        if not ids:
            return []
        rows = (
            self.db.query(
                TransferItem.quantity,
                TransferItem.unit_price,
                TransferItem.batch_date,
                TransferItem.transfer_id.label("document_id"),
            )
            .filter(
                TransferItem.transfer_id.in_(ids),
                TransferItem.product_type == product_type,
                TransferItem.product_id == product_id,
            )
            .order_by(TransferItem.id)
            .all()
        )
        return _lines(rows)

    @_query("stock_out_lines")
    def stock_out_lines(
        self,
        stock_out_ids: Iterable[int],
        product_type: str,
        product_id: int,
    ) -> List[LedgerLine]:
        ids = list(stock_out_ids)
        if not ids:
            return []
        rows = (
            self.db.query(
                StockOutItem.quantity,
                StockOutItem.unit_price,
                StockOutItem.batch_date,
                StockOutItem.stockout_id.label("document_id"),
            )
            .filter(
                StockOutItem.stockout_id.in_(ids),
                StockOutItem.product_type == product_type,
                StockOutItem.product_id == product_id,
            )
            .order_by(StockOutItem.id)
            .all()
        )
        return _lines(rows)
