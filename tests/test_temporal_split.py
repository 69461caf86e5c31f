"""Tests for the cutoff-based temporal split."""

from datetime import date
from decimal import Decimal

import pytest

from rfm_audit.foundation.temporal_split import TemporalSplit, split_transactions
from rfm_audit.foundation.transactions import Transaction

CUTOFF = date(2017, 7, 1)


def _txn(customer_id: str, day: date, sales: str = "10") -> Transaction:
    return Transaction(customer_id, day, Decimal(sales))


class TestSplitTransactions:
    def test_partitions_are_exhaustive_and_disjoint(self):
        txns = [
            _txn("C1", date(2017, 1, 1)),
            _txn("C1", date(2017, 6, 30)),
            _txn("C2", date(2017, 7, 1)),
            _txn("C2", date(2017, 12, 31)),
        ]
        split = split_transactions(txns, CUTOFF)
        assert split.total_transactions == len(txns)
        assert all(t.order_date < CUTOFF for t in split.historical)
        assert all(t.order_date >= CUTOFF for t in split.future)

    def test_cutoff_day_belongs_to_future(self):
        split = split_transactions([_txn("C1", CUTOFF)], CUTOFF)
        assert split.historical == ()
        assert len(split.future) == 1

    def test_cutoff_before_all_data_leaves_history_empty(self, caplog):
        with caplog.at_level("WARNING"):
            split = split_transactions([_txn("C1", date(2018, 1, 1))], CUTOFF)
        assert split.historical == ()
        assert "No historical transactions" in caplog.text

    def test_cutoff_after_all_data_leaves_future_empty(self):
        split = split_transactions([_txn("C1", date(2016, 1, 1))], CUTOFF)
        assert len(split.historical) == 1
        assert split.future == ()


class TestTemporalSplitValidation:
    def test_misplaced_historical_transaction_raises_error(self):
        with pytest.raises(ValueError, match="is not before cutoff"):
            TemporalSplit(CUTOFF, (_txn("C1", CUTOFF),), ())

    def test_misplaced_future_transaction_raises_error(self):
        with pytest.raises(ValueError, match="is before cutoff"):
            TemporalSplit(CUTOFF, (), (_txn("C1", date(2017, 6, 1)),))
