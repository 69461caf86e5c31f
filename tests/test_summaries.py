"""Tests for segment-level summaries."""

from decimal import Decimal

import pytest

from rfm_audit.analyses.summaries import (
    STRATEGY_RECOMMENDATIONS,
    UNASSIGNED,
    SegmentRetention,
    category_performance,
    retention_by_segment,
    strategic_segment_counts,
    tier_matrix,
    value_tier_profiles,
)


@pytest.fixture
def rows(make_row):
    return [
        make_row("C1", monetary="100", future_spend="10", segment="Champion",
                 value_tier="High Value", engagement_tier="Highly Engaged",
                 strategic_segment="High Value - Highly Engaged", top_category="Technology"),
        make_row("C2", monetary="300", segment="Champion",
                 value_tier="High Value", engagement_tier="Inactive",
                 strategic_segment="High Value - Inactive", top_category="Technology"),
        make_row("C3", monetary="50", segment="At Risk",
                 value_tier="Low Value", engagement_tier="Inactive",
                 strategic_segment="Low Value - Inactive", top_category="Furniture"),
        make_row("C4", monetary="80", future_spend="5", segment=None,
                 value_tier="Medium Value", engagement_tier="Occasional",
                 strategic_segment="Medium Value - Occasional"),
    ]


class TestRetentionBySegment:
    def test_churn_rates(self, rows):
        summary = {s.segment: s for s in retention_by_segment(rows)}
        assert summary["Champion"].n_customers == 2
        assert summary["Champion"].churn_rate == Decimal("50.00")
        assert summary["Champion"].avg_historical_spend == Decimal("200.00")
        assert summary["At Risk"].churn_rate == Decimal("100.00")
        assert summary[UNASSIGNED].churn_rate == Decimal("0.00")

    def test_sorted_by_churn_ascending(self, rows):
        rates = [s.churn_rate for s in retention_by_segment(rows)]
        assert rates == sorted(rates)

    def test_invalid_churn_rate_raises_error(self):
        with pytest.raises(ValueError, match="Churn rate must be 0-100"):
            SegmentRetention("X", 1, Decimal("101"), Decimal("0"))


class TestCategoryPerformance:
    def test_grouped_by_top_category(self, rows):
        summary = category_performance(rows)
        assert [s.top_category for s in summary] == ["Technology", UNASSIGNED, "Furniture"]
        assert summary[0].avg_historical_spend == Decimal("200.00")
        assert summary[0].churn_rate == Decimal("50.00")


class TestValueTierProfiles:
    def test_ordered_high_to_low(self, rows):
        profiles = value_tier_profiles(rows)
        assert [p.value_tier for p in profiles] == ["High Value", "Medium Value", "Low Value"]
        assert profiles[0].future_purchase_rate == Decimal("50.00")
        assert profiles[1].future_purchase_rate == Decimal("100.00")


class TestStrategicSegments:
    def test_counts_and_shares(self, rows):
        counts = strategic_segment_counts(rows)
        assert sum(c.n_customers for c in counts) == 4
        assert all(c.pct == Decimal("25.00") for c in counts)

    def test_tier_matrix_is_zero_filled(self, rows):
        matrix = tier_matrix(rows)
        assert len(matrix) == 12
        assert matrix[("High Value", "Inactive")] == 1
        assert matrix[("Low Value", "Highly Engaged")] == 0
        assert sum(matrix.values()) == 4

    def test_recommendations_cover_priority_segments(self):
        segments = [r.strategic_segment for r in STRATEGY_RECOMMENDATIONS]
        assert "High Value - Inactive" in segments
        assert len(segments) == 4
