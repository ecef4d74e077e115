# warehouse_erp/services/stock_calculator.py
"""
Расчёт остатка товара на складе по журналу движения.

Остаток нигде не хранится — он каждый раз собирается заново из:
  + строк активных накладных склада
  + строк перемещений НА склад
  - строк списаний склада
  - строк перемещений СО склада (если перемещение не отражено списанием)

Партия = (дата партии, цена за единицу). Расход сопоставляется с партией
только по дате партии, цена при списании не учитывается.

Модуль разделён на два слоя:
  - fetch_ledger: параллельно читает журнал (каждый запрос в своей сессии)
  - aggregate_stock: чистая функция, считает остаток по прочитанным строкам
"""
from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session, sessionmaker

from warehouse_erp.config.stock_out_reasons import INVOICE_RETURN
from warehouse_erp.models.invoices import INVOICE_RETURNED
from warehouse_erp.repositories.ledger_queries import LedgerLine, LedgerQueries, StockOutHeader
from warehouse_erp.settings import settings

log = logging.getLogger(__name__)

ZERO = Decimal("0")

APPORTION_FULL = "full"
APPORTION_SPLIT = "split"


@dataclass
class StockBatch:
    batch_date: date
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    supplier: str = ""


@dataclass
class StockResult:
    total_quantity: Decimal = ZERO
    total_value: Decimal = ZERO
    batches: List[StockBatch] = field(default_factory=list)
    # Алгебраическая сумма всех событий без отсечения отрицательных партий.
    # Нужна только для проверки целостности журнала.
    raw_quantity: Decimal = ZERO

    @property
    def average_unit_price(self) -> Decimal:
        if self.total_quantity <= 0:
            return ZERO
        return self.total_value / self.total_quantity


@dataclass
class Availability:
    available: bool
    current_stock: Decimal


@dataclass
class LedgerSnapshot:
    """Строки журнала по одной паре (склад, товар), уже отобранные для расчёта."""
    suppliers: Dict[int, str] = field(default_factory=dict)
    invoice_lines: List[LedgerLine] = field(default_factory=list)
    transfer_in_lines: List[LedgerLine] = field(default_factory=list)
    stock_out_lines: List[LedgerLine] = field(default_factory=list)
    transfer_out_lines: List[LedgerLine] = field(default_factory=list)


@dataclass
class _Bucket:
    batch_date: date
    unit_price: Decimal
    quantity: Decimal = ZERO
    invoice_ids: List[int] = field(default_factory=list)


# =============================================================================
# Отбор документов: каждое движение учитывается ровно один раз
# =============================================================================

def counted_stock_out_ids(headers: Iterable[StockOutHeader]) -> List[int]:
    """
    Списания, которые уменьшают остаток.

    Учитываются все причины, кроме возврата накладной, которая уже
    переведена в статус returned: её строки и так исключены из прихода.
    """
    ids = []
    for h in headers:
        if (
            h.reason == INVOICE_RETURN
            and h.invoice_id is not None
            and h.invoice_status == INVOICE_RETURNED
        ):
            continue
        ids.append(h.id)
    return ids


def unmirrored_transfer_ids(
    transfer_out_ids: Iterable[int],
    headers: Iterable[StockOutHeader],
) -> List[int]:
    """
    Перемещения со склада, по которым нет зеркального списания.

    Если перемещение отражено списанием (stock_out.transfer_id), расход
    идёт через строки списания — они несут исходную дату партии.
    """
    mirrored = {h.transfer_id for h in headers if h.transfer_id is not None}
    return [t for t in transfer_out_ids if t not in mirrored]


# =============================================================================
# Чистый расчёт
# =============================================================================

def _net_full(buckets: Dict[Tuple[date, Decimal], _Bucket], decreases: Dict[date, Decimal]) -> Dict[Tuple[date, Decimal], Decimal]:
    # Каждая партия даты уменьшается на ВЕСЬ расход этой даты
    return {key: b.quantity - decreases.get(b.batch_date, ZERO) for key, b in buckets.items()}


def _net_split(buckets: Dict[Tuple[date, Decimal], _Bucket], decreases: Dict[date, Decimal]) -> Dict[Tuple[date, Decimal], Decimal]:
    # Расход даты распределяется по партиям этой даты от дешёвой к дорогой
    by_date: Dict[date, List[Tuple[Tuple[date, Decimal], _Bucket]]] = defaultdict(list)
    for key, b in buckets.items():
        by_date[b.batch_date].append((key, b))

    result = {}
    for batch_date, items in by_date.items():
        remaining = decreases.get(batch_date, ZERO)
        for key, b in sorted(items, key=lambda kb: kb[1].unit_price):
            taken = min(b.quantity, remaining) if remaining > 0 else ZERO
            result[key] = b.quantity - taken
            remaining -= taken
    return result


def aggregate_stock(snapshot: LedgerSnapshot, apportionment: str = APPORTION_FULL) -> StockResult:
    """
    Считает остаток и разбивку по партиям.

    1. Приход (накладные + перемещения на склад) → партии (дата, цена)
    2. Расход (списания + неотражённые перемещения со склада) → по дате партии
    3. Нетто по партии = приход партии - расход её даты
    4. В результат попадают только партии с нетто > 0
    5. Сортировка по дате партии, новые сверху
    """
    if apportionment not in (APPORTION_FULL, APPORTION_SPLIT):
        raise ValueError(f"Unknown apportionment mode: {apportionment}")

    buckets: Dict[Tuple[date, Decimal], _Bucket] = {}
    total_in = ZERO

    for line in snapshot.invoice_lines:
        key = (line.batch_date, line.unit_price)
        bucket = buckets.setdefault(key, _Bucket(line.batch_date, line.unit_price))
        bucket.quantity += line.quantity
        if line.document_id is not None and line.document_id not in bucket.invoice_ids:
            bucket.invoice_ids.append(line.document_id)
        total_in += line.quantity

    # У перемещений нет поставщика
    for line in snapshot.transfer_in_lines:
        key = (line.batch_date, line.unit_price)
        bucket = buckets.setdefault(key, _Bucket(line.batch_date, line.unit_price))
        bucket.quantity += line.quantity
        total_in += line.quantity

    decreases: Dict[date, Decimal] = defaultdict(lambda: ZERO)
    total_out = ZERO
    for line in list(snapshot.stock_out_lines) + list(snapshot.transfer_out_lines):
        decreases[line.batch_date] += line.quantity
        total_out += line.quantity

    if apportionment == APPORTION_SPLIT:
        net = _net_split(buckets, decreases)
    else:
        net = _net_full(buckets, decreases)

    result = StockResult(raw_quantity=total_in - total_out)

    for key, bucket in buckets.items():
        net_qty = net[key]
        if net_qty <= 0:
            # Отрицательные партии молча отбрасываются, их ловит проверка целостности
            continue

        supplier = ""
        if bucket.invoice_ids:
            supplier = snapshot.suppliers.get(bucket.invoice_ids[0], "")

        total_price = net_qty * bucket.unit_price
        result.batches.append(
            StockBatch(
                batch_date=bucket.batch_date,
                quantity=net_qty,
                unit_price=bucket.unit_price,
                total_price=total_price,
                supplier=supplier,
            )
        )
        result.total_quantity += net_qty
        result.total_value += total_price

    # ISO-даты сортируются лексически
    result.batches.sort(key=lambda b: b.batch_date.isoformat(), reverse=True)
    return result


# =============================================================================
# Сервис: чтение журнала + расчёт
# =============================================================================

class StockService:
    """
    Расчёт остатков склада.

    Запросы к журналу независимы и выполняются параллельно, каждый в своей
    сессии из session_factory. Сервис только читает, вызывать можно из
    любого количества потоков.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        max_workers: Optional[int] = None,
        apportionment: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.max_workers = max_workers or settings.STOCK_QUERY_WORKERS
        self.apportionment = apportionment or settings.STOCK_DECREASE_APPORTIONMENT

    def _run_queries(self, tasks: Dict[str, Callable[[LedgerQueries], object]]) -> Dict[str, object]:
        """Выполняет группу независимых запросов и дожидается всех."""

        def run(fn):
            db: Session = self.session_factory()
            try:
                return fn(LedgerQueries(db))
            finally:
                db.close()

        if self.max_workers <= 1:
            return {name: run(fn) for name, fn in tasks.items()}

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(tasks))) as pool:
            futures = {name: pool.submit(run, fn) for name, fn in tasks.items()}
            # .result() поднимет QueryFailure из потока
            return {name: fut.result() for name, fut in futures.items()}

    def fetch_ledger(self, warehouse_id: int, product_id: int, product_type: str) -> LedgerSnapshot:
        headers = self._run_queries({
            "invoices": lambda q: q.active_invoices(warehouse_id),
            "transfers_in": lambda q: q.transfers_in(warehouse_id),
            "transfers_out": lambda q: q.transfers_out(warehouse_id),
            "stock_outs": lambda q: q.stock_outs(warehouse_id),
        })

        suppliers: Dict[int, str] = headers["invoices"]
        stock_out_headers: List[StockOutHeader] = headers["stock_outs"]
        stock_out_ids = counted_stock_out_ids(stock_out_headers)
        transfer_out_ids = unmirrored_transfer_ids(headers["transfers_out"], stock_out_headers)
        transfer_in_ids = headers["transfers_in"]

        lines = self._run_queries({
            "invoice_lines": lambda q: q.invoice_lines(suppliers.keys(), product_type, product_id),
            "transfer_in_lines": lambda q: q.transfer_lines(transfer_in_ids, product_type, product_id),
            "stock_out_lines": lambda q: q.stock_out_lines(stock_out_ids, product_type, product_id),
            "transfer_out_lines": lambda q: q.transfer_lines(transfer_out_ids, product_type, product_id),
        })

        return LedgerSnapshot(
            suppliers=suppliers,
            invoice_lines=lines["invoice_lines"],
            transfer_in_lines=lines["transfer_in_lines"],
            stock_out_lines=lines["stock_out_lines"],
            transfer_out_lines=lines["transfer_out_lines"],
        )

    def compute_stock(self, warehouse_id: int, product_id: int, product_type: str) -> StockResult:
        """Текущий остаток и партии товара на складе."""
        snapshot = self.fetch_ledger(warehouse_id, product_id, product_type)
        result = aggregate_stock(snapshot, self.apportionment)
        log.debug(
            "Stock warehouse=%s %s=%s: qty=%s value=%s batches=%d",
            warehouse_id, product_type, product_id,
            result.total_quantity, result.total_value, len(result.batches),
        )
        return result

    def check_availability(
        self,
        warehouse_id: int,
        product_id: int,
        product_type: str,
        requested_qty,
    ) -> Availability:
        """Хватает ли остатка для списания requested_qty."""
        stock = self.compute_stock(warehouse_id, product_id, product_type)
        requested = Decimal(str(requested_qty))
        return Availability(
            available=stock.total_quantity >= requested,
            current_stock=stock.total_quantity,
        )
