"""Tests for RFM feature construction and quintile scoring."""

from datetime import date
from decimal import Decimal

import pytest

from rfm_audit.foundation.rfm import (
    CustomerRFMRecord,
    _aggregate_customers,
    calculate_rfm,
    ntile,
)
from rfm_audit.foundation.transactions import Transaction

CUTOFF = date(2017, 7, 1)


def _record(**overrides) -> CustomerRFMRecord:
    fields = dict(
        customer_id="C1",
        recency=30,
        frequency=2,
        monetary=Decimal("150"),
        first_purchase=date(2017, 5, 1),
        last_purchase=date(2017, 6, 1),
        avg_order_value=Decimal("75"),
        tenure_days=61,
        r_score=3,
        f_score=3,
        m_score=3,
    )
    fields.update(overrides)
    return CustomerRFMRecord(**fields)


class TestCustomerRFMRecord:
    """Test CustomerRFMRecord validation."""

    def test_valid_record(self):
        record = _record()
        assert record.rfm_score == "333"

    def test_negative_recency_raises_error(self):
        with pytest.raises(ValueError, match="Recency cannot be negative"):
            _record(recency=-1)

    def test_zero_frequency_raises_error(self):
        with pytest.raises(ValueError, match="Frequency must be positive"):
            _record(frequency=0)

    def test_tenure_shorter_than_recency_raises_error(self):
        with pytest.raises(ValueError, match="cannot be shorter than recency"):
            _record(tenure_days=10)

    def test_avg_order_value_mismatch_raises_error(self):
        with pytest.raises(ValueError, match="avg_order_value"):
            _record(avg_order_value=Decimal("70"))

    @pytest.mark.parametrize("score", [0, 6])
    def test_score_out_of_range_raises_error(self, score):
        with pytest.raises(ValueError, match="r_score must be between 1 and 5"):
            _record(r_score=score)


class TestNtile:
    """Test equal-population grouping."""

    def test_ten_values_two_per_group(self):
        assert ntile(list(range(10))) == [1, 1, 2, 2, 3, 3, 4, 4, 5, 5]

    def test_order_of_input_is_respected(self):
        assert ntile([50, 10, 30, 20, 40]) == [5, 1, 3, 2, 4]

    def test_ties_broken_by_position(self):
        assert ntile([7, 7, 7]) == [1, 2, 4]

    def test_fewer_values_than_bins(self):
        assert ntile([1.0, 2.0]) == [1, 3]
        assert ntile([42]) == [1]

    def test_scores_always_in_range(self):
        scores = ntile([3, 1, 4, 1, 5, 9, 2, 6, 5, 3, 5])
        assert all(1 <= s <= 5 for s in scores)

    def test_invalid_bins_raises_error(self):
        with pytest.raises(ValueError, match="bins must be positive"):
            ntile([1, 2], bins=0)


class TestCalculateRFM:
    """Test calculate_rfm aggregation and scoring."""

    def test_empty_input_returns_empty_list(self):
        assert calculate_rfm([], CUTOFF) == []

    def test_single_customer_features(self):
        txns = [
            Transaction("C1", date(2017, 5, 1), Decimal("100")),
            Transaction("C1", date(2017, 6, 1), Decimal("50")),
        ]
        (record,) = calculate_rfm(txns, CUTOFF)
        assert record.recency == 30
        assert record.frequency == 2
        assert record.monetary == Decimal("150")
        assert record.avg_order_value == Decimal("75")
        assert record.first_purchase == date(2017, 5, 1)
        assert record.last_purchase == date(2017, 6, 1)
        assert record.tenure_days == 61

    def test_ten_customers_score_two_per_quintile(self):
        # Customer i bought on day i before the cutoff: C00 is most recent
        txns = []
        for i in range(10):
            day = date(2017, 6, 30 - i)
            for _ in range(i + 1):
                txns.append(Transaction(f"C{i:02d}", day, Decimal(str(10 * (i + 1)))))
        records = calculate_rfm(txns, CUTOFF)
        r_scores = {r.customer_id: r.r_score for r in records}
        f_scores = {r.customer_id: r.f_score for r in records}

        assert [r_scores[f"C{i:02d}"] for i in range(10)] == [5, 5, 4, 4, 3, 3, 2, 2, 1, 1]
        assert [f_scores[f"C{i:02d}"] for i in range(10)] == [1, 1, 2, 2, 3, 3, 4, 4, 5, 5]
        for score in range(1, 6):
            assert sum(1 for r in records if r.m_score == score) == 2

    def test_records_sorted_by_customer_id(self):
        txns = [
            Transaction("B", date(2017, 1, 1), Decimal("1")),
            Transaction("A", date(2017, 1, 1), Decimal("1")),
        ]
        assert [r.customer_id for r in calculate_rfm(txns, CUTOFF)] == ["A", "B"]

    def test_one_record_per_customer_with_invariants(self):
        txns = [
            Transaction(f"C{i % 7}", date(2017, 1 + i % 6, 1 + i % 27), Decimal("5"))
            for i in range(60)
        ]
        records = calculate_rfm(txns, CUTOFF)
        assert len(records) == len({t.customer_id for t in txns})
        for record in records:
            assert record.tenure_days >= record.recency >= 0
            assert record.frequency >= 1

    def test_transaction_on_cutoff_raises_error(self):
        with pytest.raises(ValueError, match="must be before cutoff"):
            calculate_rfm([Transaction("C1", CUTOFF, Decimal("1"))], CUTOFF)

    def test_fewer_than_five_customers_warns(self, caplog):
        txns = [Transaction("C1", date(2017, 1, 1), Decimal("1"))]
        with caplog.at_level("WARNING"):
            (record,) = calculate_rfm(txns, CUTOFF)
        assert "quintile groups will be uneven" in caplog.text
        assert record.r_score == record.f_score == record.m_score == 1

    def test_parallel_path_matches_serial(self):
        txns = [
            Transaction(f"C{i % 12}", date(2017, 1 + i % 6, 1 + i % 28), Decimal(i + 1))
            for i in range(80)
        ]
        serial = calculate_rfm(txns, CUTOFF, parallel=False)
        parallel = calculate_rfm(txns, CUTOFF, parallel_threshold=1, n_workers=2)
        assert serial == parallel


class TestAggregateCustomers:
    def test_worker_helper_derives_features(self):
        chunk = {
            "C1": {
                "first_purchase": date(2017, 1, 1),
                "last_purchase": date(2017, 6, 1),
                "frequency": 4,
                "monetary": Decimal("100"),
            }
        }
        (row,) = _aggregate_customers(chunk, CUTOFF)
        assert row["recency"] == 30
        assert row["tenure_days"] == 181
        assert row["avg_order_value"] == Decimal("25")
