from datetime import date
from decimal import Decimal

import pytest

from warehouse_erp.repositories.ledger_queries import LedgerLine, StockOutHeader
from warehouse_erp.services.stock_calculator import (
    LedgerSnapshot,
    StockResult,
    aggregate_stock,
    counted_stock_out_ids,
    unmirrored_transfer_ids,
)

JAN_10 = date(2024, 1, 10)
JAN_15 = date(2024, 1, 15)
FEB_01 = date(2024, 2, 1)


def line(qty, price, on, doc=None):
    return LedgerLine(Decimal(str(qty)), Decimal(str(price)), on, doc)


def test_single_invoice_line_gives_one_batch_with_supplier():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme"},
        invoice_lines=[line(100, "5.00", JAN_10, 1)],
    )

    result = aggregate_stock(snapshot)

    assert result.total_quantity == Decimal("100")
    assert result.total_value == Decimal("500")
    assert len(result.batches) == 1
    batch = result.batches[0]
    assert (batch.batch_date, batch.quantity, batch.unit_price, batch.total_price, batch.supplier) == (
        JAN_10, Decimal("100"), Decimal("5.00"), Decimal("500"), "Acme",
    )


def test_same_date_same_price_lines_merge():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme", 2: "Beta"},
        invoice_lines=[line(10, 5, JAN_10, 1), line(15, 5, JAN_10, 2)],
    )

    result = aggregate_stock(snapshot)

    assert len(result.batches) == 1
    assert result.batches[0].quantity == Decimal("25")
    # поставщик — первой накладной партии
    assert result.batches[0].supplier == "Acme"


def test_same_date_different_prices_stay_separate():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme"},
        invoice_lines=[line(10, 5, JAN_10, 1), line(10, 6, JAN_10, 1)],
    )

    result = aggregate_stock(snapshot)

    assert sorted(b.unit_price for b in result.batches) == [Decimal("5"), Decimal("6")]
    assert result.total_quantity == Decimal("20")
    assert result.total_value == Decimal("110")


def test_batches_sorted_newest_first():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme"},
        invoice_lines=[line(1, 1, JAN_15, 1), line(1, 1, FEB_01, 1), line(1, 1, JAN_10, 1)],
    )

    result = aggregate_stock(snapshot)

    assert [b.batch_date for b in result.batches] == [FEB_01, JAN_15, JAN_10]


def test_decrease_is_matched_by_batch_date_only():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme"},
        invoice_lines=[line(100, 5, JAN_10, 1), line(50, 7, JAN_15, 1)],
        stock_out_lines=[line(30, 999, JAN_10)],
    )

    result = aggregate_stock(snapshot)

    by_date = {b.batch_date: b.quantity for b in result.batches}
    assert by_date == {JAN_10: Decimal("70"), JAN_15: Decimal("50")}
    assert result.total_value == Decimal("70") * 5 + Decimal("50") * 7


def test_fully_consumed_and_overdrawn_batches_are_dropped():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme"},
        invoice_lines=[line(10, 5, JAN_10, 1), line(20, 5, JAN_15, 1)],
        stock_out_lines=[line(10, 5, JAN_10), line(25, 5, JAN_15)],
    )

    result = aggregate_stock(snapshot)

    assert result.batches == []
    assert result.total_quantity == Decimal("0")
    assert result.total_value == Decimal("0")
    assert result.raw_quantity == Decimal("-5")


def test_decrease_on_date_without_receipts_only_moves_raw_quantity():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme"},
        invoice_lines=[line(10, 5, JAN_10, 1)],
        stock_out_lines=[line(4, 5, FEB_01)],
    )

    result = aggregate_stock(snapshot)

    assert result.total_quantity == Decimal("10")
    assert result.raw_quantity == Decimal("6")


def test_transfer_in_batch_has_no_supplier():
    snapshot = LedgerSnapshot(transfer_in_lines=[line(30, 5, JAN_15, 9)])

    result = aggregate_stock(snapshot)

    assert result.batches[0].supplier == ""
    assert result.total_quantity == Decimal("30")


def test_unmirrored_transfer_out_decreases_by_transfer_date():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme"},
        invoice_lines=[line(100, 5, JAN_15, 1)],
        transfer_out_lines=[line(30, 5, JAN_15, 4)],
    )

    assert aggregate_stock(snapshot).total_quantity == Decimal("70")


class TestApportionment:
    """Две цены на одну дату и расход этой даты."""

    def snapshot(self):
        return LedgerSnapshot(
            suppliers={1: "Acme"},
            invoice_lines=[line(5, 10, JAN_10, 1), line(5, 12, JAN_10, 1)],
            stock_out_lines=[line(3, 10, JAN_10)],
        )

    def test_full_mode_subtracts_whole_decrease_from_each_batch(self):
        result = aggregate_stock(self.snapshot(), "full")

        assert sorted(b.quantity for b in result.batches) == [Decimal("2"), Decimal("2")]
        assert result.total_quantity == Decimal("4")
        # сырая сумма от режима не зависит
        assert result.raw_quantity == Decimal("7")

    def test_split_mode_consumes_cheaper_batch_first(self):
        result = aggregate_stock(self.snapshot(), "split")

        by_price = {b.unit_price: b.quantity for b in result.batches}
        assert by_price == {Decimal("10"): Decimal("2"), Decimal("12"): Decimal("5")}
        assert result.total_quantity == Decimal("7")

    def test_unknown_mode_is_rejected(self):
        with pytest.raises(ValueError):
            aggregate_stock(self.snapshot(), "proportional")


def test_total_quantity_is_sum_of_batches():
    snapshot = LedgerSnapshot(
        suppliers={1: "Acme", 2: "Beta"},
        invoice_lines=[line("12.5", 3, JAN_10, 1), line(8, "4.25", JAN_15, 2), line(3, 3, FEB_01, 2)],
        transfer_in_lines=[line(2, 3, JAN_15, 5)],
        stock_out_lines=[line("1.5", 3, JAN_10), line(3, 3, FEB_01)],
    )

    result = aggregate_stock(snapshot)

    assert all(b.quantity > 0 for b in result.batches)
    assert result.total_quantity == sum(b.quantity for b in result.batches)
    assert result.total_value == sum(b.total_price for b in result.batches)


def test_average_unit_price():
    assert StockResult().average_unit_price == Decimal("0")
    result = aggregate_stock(LedgerSnapshot(
        suppliers={1: "Acme"},
        invoice_lines=[line(10, 5, JAN_10, 1), line(10, 7, JAN_15, 1)],
    ))
    assert result.average_unit_price == Decimal("6")


class TestCountedStockOuts:
    def test_returned_invoice_stock_out_is_not_counted_twice(self):
        headers = [
            StockOutHeader(1, "consumption"),
            StockOutHeader(2, "invoice_return", invoice_id=7, invoice_status="returned"),
            StockOutHeader(3, "transfer", transfer_id=4),
            StockOutHeader(4, "inventory_loss"),
        ]

        assert counted_stock_out_ids(headers) == [1, 3, 4]

    def test_return_still_counted_while_invoice_is_active(self):
        # промежуточное состояние возврата: списание есть, статус ещё не сменён
        headers = [StockOutHeader(2, "invoice_return", invoice_id=7, invoice_status="active")]

        assert counted_stock_out_ids(headers) == [2]

    def test_return_without_invoice_link_is_counted(self):
        headers = [StockOutHeader(2, "invoice_return", invoice_id=None, invoice_status=None)]

        assert counted_stock_out_ids(headers) == [2]


def test_unmirrored_transfer_ids():
    headers = [
        StockOutHeader(1, "transfer", transfer_id=10),
        StockOutHeader(2, "consumption"),
    ]

    assert unmirrored_transfer_ids([10, 11, 12], headers) == [11, 12]
