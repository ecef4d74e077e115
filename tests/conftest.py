import os
from datetime import date
from decimal import Decimal

# settings читаются при импорте пакета, БД для тестов подменяется ниже
os.environ.setdefault("DATABASE_URL", "sqlite:///./warehouse_test.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from warehouse_erp.db import Base, get_db, get_session_factory
from warehouse_erp.models import (
    Consumable,
    Invoice,
    InvoiceItem,
    Reagent,
    StockOut,
    StockOutItem,
    Transfer,
    TransferItem,
    Warehouse,
)
from warehouse_erp.models.invoices import INVOICE_ACTIVE
from warehouse_erp.models.products import CONSUMABLE, REAGENT
from warehouse_erp.services.catalog_cache import ProductCatalogCache
from warehouse_erp.services.stock_calculator import StockService


def D(x) -> Decimal:
    return Decimal(str(x))


def product_type_of(product) -> str:
    return REAGENT if isinstance(product, Reagent) else CONSUMABLE


class Ledger:
    """
    Пишет документы журнала напрямую в БД, минуя сервисы и их проверки.
    Нужен, чтобы собрать любое состояние журнала (в т.ч. некорректное).
    """

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def warehouse(self, name: str, code: str | None = None) -> Warehouse:
        code = code or f"WH{self.db.query(Warehouse).count() + 1:03d}"
        return self._save(Warehouse(name=name, code=code))

    def reagent(self, code: str, name: str | None = None) -> Reagent:
        return self._save(Reagent(code=code, name=name or code))

    def consumable(self, code: str, name: str | None = None) -> Consumable:
        return self._save(Consumable(code=code, name=name or code))

    def invoice(self, warehouse, on: date, lines, supplier="Acme", status=INVOICE_ACTIVE, code=None) -> Invoice:
        """lines: [(product, qty, price)]; дата партии = дата накладной."""
        invoice = Invoice(
            invoice_code=code or f"INV-{on.isoformat()}",
            supplier=supplier,
            date=on,
            warehouse_id=warehouse.id,
            status=status,
        )
        invoice.items = [
            InvoiceItem(
                product_type=product_type_of(p),
                product_id=p.id,
                quantity=D(qty),
                unit_price=D(price),
                total_price=D(qty) * D(price),
                batch_date=on,
            )
            for p, qty, price in lines
        ]
        return self._save(invoice)

    def transfer(self, src, dst, on: date, lines, mirrored: bool = True) -> Transfer:
        """
        lines: [(product, qty, price, source_batch_date)].
        mirrored=False — перемещение без зеркального списания (как будто запись оборвалась).
        """
        transfer = Transfer(
            from_warehouse_id=src.id,
            to_warehouse_id=dst.id,
            date=on,
            total_amount=sum((D(q) * D(pr) for _, q, pr, _ in lines), start=Decimal("0")),
        )
        transfer.items = [
            TransferItem(
                product_type=product_type_of(p),
                product_id=p.id,
                batch_date=on,
                quantity=D(qty),
                unit_price=D(price),
                total_price=D(qty) * D(price),
            )
            for p, qty, price, _ in lines
        ]
        transfer = self._save(transfer)
        if mirrored:
            self.stock_out(
                src, on,
                [(p, batch_date, qty, price) for p, qty, price, batch_date in lines],
                reason="transfer",
                transfer=transfer,
            )
        return transfer

    def stock_out(self, warehouse, on: date, lines, reason="consumption", invoice=None, transfer=None) -> StockOut:
        """lines: [(product, batch_date, qty, price)]."""
        stock_out = StockOut(
            warehouse_id=warehouse.id,
            date=on,
            reason=reason,
            total_amount=sum((D(q) * D(pr) for _, _, q, pr in lines), start=Decimal("0")),
            invoice_id=invoice.id if invoice is not None else None,
            transfer_id=transfer.id if transfer is not None else None,
        )
        stock_out.items = [
            StockOutItem(
                product_type=product_type_of(p),
                product_id=p.id,
                batch_date=batch_date,
                quantity=D(qty),
                unit_price=D(price),
                total_price=D(qty) * D(price),
            )
            for p, batch_date, qty, price in lines
        ]
        return self._save(stock_out)


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'warehouse.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def ledger(db):
    return Ledger(db)


@pytest.fixture
def stock_service(session_factory):
    return StockService(session_factory, max_workers=4, apportionment="full")


@pytest.fixture
def catalog(session_factory):
    return ProductCatalogCache(session_factory, ttl_seconds=300)


@pytest.fixture
def client(session_factory):
    from warehouse_erp.app import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.catalog_cache = None
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.catalog_cache = None
