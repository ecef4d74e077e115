# warehouse_erp/services/inventory_count_service.py
"""
Инвентаризация склада.

Лист пересчёта: по каждому товару с положительным остатком — расчётное
количество и средняя цена партий. После ввода факта:
  - недостача = расчёт - факт (может быть отрицательной — излишек)
  - сумма недостачи = недостача * средняя цена
  - положительные недостачи списываются (reason=inventory_loss) с самых
    старых партий, чтобы списание попало на реальные даты партий
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from warehouse_erp.config.stock_out_reasons import INVENTORY_LOSS
from warehouse_erp.models.inventory_count import InventoryCount, InventoryCountItem
from warehouse_erp.models.stock_out import StockOut, StockOutItem
from warehouse_erp.repositories.catalog_repository import get_product, get_warehouse
from warehouse_erp.repositories.numbering import build_count_code
from warehouse_erp.services.catalog_cache import ProductCatalogCache
from warehouse_erp.services.documents_common import to_decimal, delete_stock_out
from warehouse_erp.services.exceptions import DocumentValidationError
from warehouse_erp.services.saga import Saga
from warehouse_erp.services.stock_calculator import StockBatch, StockService

log = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class CountSheetRow:
    product_type: str
    product_id: int
    product_code: str
    product_name: str
    system_qty: Decimal
    unit_price: Decimal


@dataclass
class CountInput:
    product_type: str
    product_id: int
    real_qty: Decimal


@dataclass
class _CountLine:
    product_type: str
    product_id: int
    system_qty: Decimal
    real_qty: Decimal
    loss_qty: Decimal
    loss_amount: Decimal
    batches: List[StockBatch]


def build_count_sheet(
    stock_service: StockService,
    catalog: ProductCatalogCache,
    warehouse_id: int,
) -> List[CountSheetRow]:
    """Лист пересчёта склада: товары с остатком > 0, отсортированы по коду."""
    rows: List[CountSheetRow] = []
    for product in catalog.get().all_products():
        stock = stock_service.compute_stock(warehouse_id, product.id, product.product_type)
        if stock.total_quantity <= 0:
            continue
        rows.append(
            CountSheetRow(
                product_type=product.product_type,
                product_id=product.id,
                product_code=product.code,
                product_name=product.name,
                system_qty=stock.total_quantity,
                unit_price=stock.average_unit_price,
            )
        )
    rows.sort(key=lambda r: r.product_code)
    return rows


def _allocate_oldest_first(batches: List[StockBatch], qty: Decimal) -> List[StockBatch]:
    """Раскладывает списание по партиям, начиная с самой старой."""
    allocated = []
    remaining = qty
    for batch in sorted(batches, key=lambda b: b.batch_date.isoformat()):
        if remaining <= 0:
            break
        take = min(batch.quantity, remaining)
        allocated.append(
            StockBatch(
                batch_date=batch.batch_date,
                quantity=take,
                unit_price=batch.unit_price,
                total_price=take * batch.unit_price,
                supplier=batch.supplier,
            )
        )
        remaining -= take
    return allocated


def create_inventory_count(
    db: Session,
    stock_service: StockService,
    *,
    warehouse_id: int,
    count_date: date,
    rows: Iterable[CountInput],
    count_code: Optional[str] = None,
) -> InventoryCount:
    """
    Сохраняет инвентаризацию: шапка → строки → (если есть недостача) списание → строки списания.
    Расчётное количество пересчитывается в момент сохранения.
    """
    get_warehouse(db, warehouse_id)

    lines: List[_CountLine] = []
    seen = set()
    for idx, row in enumerate(rows, 1):
        get_product(db, row.product_type, row.product_id)
        # один товар — одна строка, иначе недостача спишется дважды
        if (row.product_type, row.product_id) in seen:
            raise DocumentValidationError(f"Row {idx}: {row.product_type} {row.product_id} is already counted")
        seen.add((row.product_type, row.product_id))
        real_qty = to_decimal(row.real_qty)
        if real_qty < 0:
            raise DocumentValidationError(f"Row {idx}: real quantity must not be negative")

        stock = stock_service.compute_stock(warehouse_id, row.product_id, row.product_type)
        loss_qty = stock.total_quantity - real_qty
        lines.append(
            _CountLine(
                product_type=row.product_type,
                product_id=row.product_id,
                system_qty=stock.total_quantity,
                real_qty=real_qty,
                loss_qty=loss_qty,
                loss_amount=loss_qty * stock.average_unit_price,
                batches=stock.batches,
            )
        )
    if not lines:
        raise DocumentValidationError("Inventory count has no rows")

    total_loss = sum((l.loss_amount for l in lines), start=ZERO)
    losses = [l for l in lines if l.loss_qty > 0]
    code = count_code or build_count_code(db, count_date)

    def add_header(db: Session, ctx):
        count = InventoryCount(
            count_code=code,
            warehouse_id=warehouse_id,
            date=count_date,
            total_loss_amount=total_loss,
        )
        db.add(count)
        db.flush()
        return count.id

    def delete_header(db: Session, ctx):
        db.query(InventoryCountItem).filter(InventoryCountItem.count_id == ctx["header"]).delete(
            synchronize_session=False
        )
        db.query(InventoryCount).filter(InventoryCount.id == ctx["header"]).delete(synchronize_session=False)

    def add_lines(db: Session, ctx):
        db.add_all([
            InventoryCountItem(
                count_id=ctx["header"],
                product_type=l.product_type,
                product_id=l.product_id,
                system_qty=l.system_qty,
                real_qty=l.real_qty,
                loss_qty=l.loss_qty,
                loss_amount=l.loss_amount,
            )
            for l in lines
        ])
        db.flush()

    def add_loss_stock_out(db: Session, ctx):
        stock_out = StockOut(
            warehouse_id=warehouse_id,
            date=count_date,
            reason=INVENTORY_LOSS,
            total_amount=sum((l.loss_amount for l in losses), start=ZERO),
        )
        db.add(stock_out)
        db.flush()
        return stock_out.id

    def add_loss_lines(db: Session, ctx):
        items = []
        for l in losses:
            for part in _allocate_oldest_first(l.batches, l.loss_qty):
                items.append(
                    StockOutItem(
                        stockout_id=ctx["loss_stock_out"],
                        product_type=l.product_type,
                        product_id=l.product_id,
                        batch_date=part.batch_date,
                        quantity=part.quantity,
                        unit_price=part.unit_price,
                        total_price=part.total_price,
                    )
                )
        db.add_all(items)
        db.flush()

    saga = (
        Saga("create_inventory_count", db)
        .step("header", add_header, delete_header)
        .step("lines", add_lines)
    )
    if losses:
        saga.step("loss_stock_out", add_loss_stock_out, lambda db, ctx: delete_stock_out(db, ctx["loss_stock_out"]))
        saga.step("loss_lines", add_loss_lines)
    ctx = saga.run()

    count = db.get(InventoryCount, ctx["header"])
    log.info(
        "Inventory count %s saved: warehouse=%s rows=%d losses=%d total_loss=%s",
        count.count_code, warehouse_id, len(lines), len(losses), total_loss,
    )
    return count
