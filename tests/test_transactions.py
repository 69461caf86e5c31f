"""Tests for transaction parsing and the CSV loader."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from rfm_audit.foundation.transactions import (
    Transaction,
    load_transactions,
    normalise_column_name,
    parse_order_date,
    parse_sales,
    transactions_from_records,
)


class TestTransaction:
    """Test Transaction dataclass validation."""

    def test_valid_transaction(self):
        txn = Transaction("C1", date(2017, 1, 5), Decimal("12.50"), "Furniture")
        assert txn.customer_id == "C1"
        assert txn.sales == Decimal("12.50")
        assert txn.category == "Furniture"

    def test_empty_customer_id_raises_error(self):
        with pytest.raises(ValueError, match="customer_id cannot be empty"):
            Transaction("", date(2017, 1, 5), Decimal("1"))

    def test_non_positive_sales_raises_error(self):
        with pytest.raises(ValueError, match="Sales must be positive"):
            Transaction("C1", date(2017, 1, 5), Decimal("0"))


class TestParsing:
    """Test field-level parsers."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Customer ID", "customer_id"),
            ("Order Date", "order_date"),
            ("Sales", "sales"),
            ("customer_id", "customer_id"),
            ("CustomerID", "customer_id"),
        ],
    )
    def test_normalise_column_name(self, header, expected):
        assert normalise_column_name(header) == expected

    def test_parse_month_day_year(self):
        assert parse_order_date("11/8/2016") == date(2016, 11, 8)
        assert parse_order_date("06-12-2016") == date(2016, 6, 12)

    def test_parse_date_objects_pass_through(self):
        assert parse_order_date(date(2017, 1, 1)) == date(2017, 1, 1)
        assert parse_order_date(datetime(2017, 1, 1, 10, 30)) == date(2017, 1, 1)

    @pytest.mark.parametrize("value", [None, "", "not a date", "2016/31/31"])
    def test_unparseable_dates_return_none(self, value):
        assert parse_order_date(value) is None

    def test_parse_sales(self):
        assert parse_sales("261.96") == Decimal("261.96")
        assert parse_sales("$1,044.63") == Decimal("1044.63")
        assert parse_sales(Decimal("3")) == Decimal("3")

    @pytest.mark.parametrize("value", [None, "", "abc", "nan"])
    def test_malformed_sales_return_none(self, value):
        assert parse_sales(value) is None


class TestTransactionsFromRecords:
    """Test the data-quality filter."""

    def test_invalid_rows_are_dropped(self):
        records = [
            {"customer_id": "C1", "order_date": "1/5/2017", "sales": "10"},
            {"customer_id": "", "order_date": "1/5/2017", "sales": "10"},
            {"customer_id": "C2", "order_date": "garbage", "sales": "10"},
            {"customer_id": "C3", "order_date": "1/5/2017", "sales": "0"},
            {"customer_id": "C4", "order_date": "1/5/2017", "sales": "-5"},
            {"customer_id": "C5", "order_date": "1/5/2017", "sales": ""},
        ]
        txns = transactions_from_records(records)
        assert [t.customer_id for t in txns] == ["C1"]

    def test_blank_category_becomes_none(self):
        txns = transactions_from_records(
            [{"customer_id": "C1", "order_date": "1/5/2017", "sales": "5", "category": " "}]
        )
        assert txns[0].category is None

    def test_falsy_non_string_id_is_kept(self):
        txns = transactions_from_records(
            [{"customer_id": 0, "order_date": "1/5/2017", "sales": "5"}]
        )
        assert [t.customer_id for t in txns] == ["0"]

    def test_input_order_is_preserved(self):
        records = [
            {"customer_id": "B", "order_date": "2/1/2017", "sales": "1"},
            {"customer_id": "A", "order_date": "1/1/2017", "sales": "1"},
        ]
        assert [t.customer_id for t in transactions_from_records(records)] == ["B", "A"]


class TestLoadTransactions:
    """Test loading a raw CSV export."""

    def test_loads_export_headers(self, tmp_path):
        path = tmp_path / "orders.csv"
        path.write_text(
            "Row ID,Customer ID,Order Date,Sales,Category\n"
            "1,CG-12520,11/8/2016,261.96,Furniture\n"
            "2,CG-12520,11/8/2016,731.94,Furniture\n"
            "3,DV-13045,6/12/2016,14.62,Office Supplies\n"
            "4,,6/12/2016,10.00,Technology\n"
        )
        txns = load_transactions(path)
        assert len(txns) == 3
        assert txns[0] == Transaction(
            "CG-12520", date(2016, 11, 8), Decimal("261.96"), "Furniture"
        )
        assert txns[2].category == "Office Supplies"

    def test_category_column_is_optional(self, tmp_path):
        path = tmp_path / "orders.csv"
        path.write_text("customer_id,order_date,sales\nC1,1/2/2017,5\n")
        txns = load_transactions(path)
        assert txns[0].category is None

    def test_missing_required_column_raises_error(self, tmp_path):
        path = tmp_path / "orders.csv"
        path.write_text("Customer ID,Sales\nC1,5\n")
        with pytest.raises(ValueError, match="missing required columns"):
            load_transactions(path)
