from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from warehouse_erp.models.invoices import INVOICE_RETURNED
from warehouse_erp.services.documents_common import DocumentLine
from warehouse_erp.services.exceptions import QueryFailure
from warehouse_erp.services.stock_calculator import StockService
from warehouse_erp.services.transfer_service import create_transfer

JAN_10 = date(2024, 1, 10)
JAN_15 = date(2024, 1, 15)


@pytest.fixture
def w1(ledger):
    return ledger.warehouse("Main", "W1")


@pytest.fixture
def w2(ledger):
    return ledger.warehouse("Field", "W2")


@pytest.fixture
def p1(ledger):
    return ledger.reagent("P1", "Ингибитор")


def test_empty_warehouse_has_zero_stock(stock_service, w1, p1):
    result = stock_service.compute_stock(w1.id, p1.id, "reagent")

    assert result.total_quantity == 0
    assert result.total_value == 0
    assert result.batches == []


def test_transfer_between_warehouses_keeps_original_batch_date(db, ledger, stock_service, w1, w2, p1):
    ledger.invoice(w1, JAN_10, [(p1, 100, "5.00")], supplier="Acme")

    before = stock_service.compute_stock(w1.id, p1.id, "reagent")
    assert before.total_quantity == Decimal("100")
    assert before.total_value == Decimal("500")
    assert [(b.batch_date, b.supplier) for b in before.batches] == [(JAN_10, "Acme")]

    create_transfer(
        db, stock_service,
        from_warehouse_id=w1.id,
        to_warehouse_id=w2.id,
        transfer_date=JAN_15,
        lines=[DocumentLine("reagent", p1.id, Decimal("30"), Decimal("5.00"), JAN_10)],
    )

    src = stock_service.compute_stock(w1.id, p1.id, "reagent")
    dst = stock_service.compute_stock(w2.id, p1.id, "reagent")
    assert src.total_quantity == Decimal("70")
    assert [b.batch_date for b in src.batches] == [JAN_10]
    assert dst.total_quantity == Decimal("30")
    assert [(b.batch_date, b.unit_price, b.supplier) for b in dst.batches] == [(JAN_15, Decimal("5.00"), "")]


def test_transfer_moves_exact_quantity(db, ledger, stock_service, w1, w2, p1):
    ledger.invoice(w1, JAN_10, [(p1, 40, 2)])
    ledger.invoice(w2, JAN_10, [(p1, 5, 2)])
    src_before = stock_service.compute_stock(w1.id, p1.id, "reagent").total_quantity
    dst_before = stock_service.compute_stock(w2.id, p1.id, "reagent").total_quantity

    ledger.transfer(w1, w2, JAN_15, [(p1, "12.5", 2, JAN_10)])

    assert stock_service.compute_stock(w1.id, p1.id, "reagent").total_quantity == src_before - Decimal("12.5")
    assert stock_service.compute_stock(w2.id, p1.id, "reagent").total_quantity == dst_before + Decimal("12.5")


def test_unmirrored_transfer_still_decreases_source(ledger, stock_service, w1, w2, p1):
    ledger.invoice(w1, JAN_15, [(p1, 50, 2)])

    ledger.transfer(w1, w2, JAN_15, [(p1, 20, 2, JAN_15)], mirrored=False)

    assert stock_service.compute_stock(w1.id, p1.id, "reagent").total_quantity == Decimal("30")
    assert stock_service.compute_stock(w2.id, p1.id, "reagent").total_quantity == Decimal("20")


def test_returned_invoice_lines_are_excluded(ledger, stock_service, w1, p1):
    ledger.invoice(w1, JAN_10, [(p1, 10, 1)])
    ledger.invoice(w1, JAN_15, [(p1, 25, 1)], status=INVOICE_RETURNED)

    result = stock_service.compute_stock(w1.id, p1.id, "reagent")

    assert result.total_quantity == Decimal("10")
    assert [b.batch_date for b in result.batches] == [JAN_10]


def test_product_types_do_not_mix(ledger, stock_service, w1):
    reagent = ledger.reagent("X-1")
    consumable = ledger.consumable("X-1")
    assert reagent.id == consumable.id
    ledger.invoice(w1, JAN_10, [(reagent, 10, 1), (consumable, 3, 1)])

    assert stock_service.compute_stock(w1.id, reagent.id, "reagent").total_quantity == Decimal("10")
    assert stock_service.compute_stock(w1.id, consumable.id, "consumable").total_quantity == Decimal("3")


def test_repeated_computation_is_identical(ledger, stock_service, w1, w2, p1):
    ledger.invoice(w1, JAN_10, [(p1, 10, 3), (p1, 4, 5)], supplier="Acme")
    ledger.transfer(w1, w2, JAN_15, [(p1, 2, 3, JAN_10)])
    ledger.stock_out(w1, JAN_15, [(p1, JAN_10, 1, 3)])

    first = stock_service.compute_stock(w1.id, p1.id, "reagent")
    second = stock_service.compute_stock(w1.id, p1.id, "reagent")

    assert first == second
    assert first.total_quantity == sum(b.quantity for b in first.batches)


def test_sequential_and_concurrent_fetch_agree(session_factory, ledger, w1, w2, p1):
    ledger.invoice(w1, JAN_10, [(p1, 10, 3)])
    ledger.transfer(w1, w2, JAN_15, [(p1, 4, 3, JAN_10)])

    sequential = StockService(session_factory, max_workers=1).compute_stock(w1.id, p1.id, "reagent")
    concurrent = StockService(session_factory, max_workers=8).compute_stock(w1.id, p1.id, "reagent")

    assert sequential == concurrent
    assert sequential.total_quantity == Decimal("6")


def test_apportionment_is_configurable(session_factory, ledger, w1, p1):
    ledger.invoice(w1, JAN_10, [(p1, 5, 10), (p1, 5, 12)])
    ledger.stock_out(w1, JAN_15, [(p1, JAN_10, 3, 10)])

    full = StockService(session_factory, apportionment="full").compute_stock(w1.id, p1.id, "reagent")
    split = StockService(session_factory, apportionment="split").compute_stock(w1.id, p1.id, "reagent")

    assert full.total_quantity == Decimal("4")
    assert split.total_quantity == Decimal("7")


@pytest.mark.parametrize("workers", [1, 4])
def test_store_failure_is_not_reported_as_empty_stock(tmp_path, workers):
    # БД без таблиц: любой запрос к журналу падает
    broken = create_engine(f"sqlite:///{tmp_path / 'empty.db'}", connect_args={"check_same_thread": False})
    service = StockService(sessionmaker(bind=broken), max_workers=workers)

    with pytest.raises(QueryFailure) as exc:
        service.compute_stock(1, 1, "reagent")

    assert exc.value.query_name in {"active_invoices", "transfers_in", "transfers_out", "stock_outs"}
    broken.dispose()


class TestAvailability:
    def test_enough_stock(self, ledger, stock_service, w1, p1):
        ledger.invoice(w1, JAN_10, [(p1, 10, 1)])

        result = stock_service.check_availability(w1.id, p1.id, "reagent", Decimal("10"))

        assert result.available is True
        assert result.current_stock == Decimal("10")

    def test_not_enough_stock(self, ledger, stock_service, w1, p1):
        ledger.invoice(w1, JAN_10, [(p1, 10, 1)])

        result = stock_service.check_availability(w1.id, p1.id, "reagent", "10.001")

        assert result.available is False
        assert result.current_stock == Decimal("10")

    def test_nothing_on_empty_warehouse(self, stock_service, w1, p1):
        result = stock_service.check_availability(w1.id, p1.id, "reagent", 1)

        assert result.available is False
        assert result.current_stock == 0
