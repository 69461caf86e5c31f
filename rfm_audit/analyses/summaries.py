"""Segment-level summaries of the enriched customer table.

These aggregates answer the descriptive questions left once predictive
modelling is ruled out:
- Which RFM segments churn the most?
- Which product categories attract the most valuable customers?
- How do historical value tiers behave in the future window?
- How are customers spread across strategic segments?
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Sequence

from rfm_audit.analyses.segmentation import ENGAGEMENT_TIERS, VALUE_TIERS
from rfm_audit.foundation.model_data import ModelData

# Standard percentage precision: 2 decimal places (e.g., 45.67%)
PERCENTAGE_PRECISION = Decimal("0.01")
MONEY_PRECISION = Decimal("0.01")

#: Label used when a grouping field was never assigned.
UNASSIGNED = "Unassigned"


@dataclass(frozen=True)
class SegmentRetention:
    """Churn and historical spend for one RFM segment."""

    segment: str
    n_customers: int
    churn_rate: Decimal
    avg_historical_spend: Decimal

    def __post_init__(self) -> None:
        if self.n_customers <= 0:
            raise ValueError(f"Segment {self.segment} must contain customers")
        if not 0 <= self.churn_rate <= 100:
            raise ValueError(f"Churn rate must be 0-100: {self.churn_rate}")


@dataclass(frozen=True)
class CategoryPerformance:
    """Historical spend and churn for customers sharing a top category."""

    top_category: str
    n_customers: int
    avg_historical_spend: Decimal
    churn_rate: Decimal

    def __post_init__(self) -> None:
        if not 0 <= self.churn_rate <= 100:
            raise ValueError(f"Churn rate must be 0-100: {self.churn_rate}")


@dataclass(frozen=True)
class ValueTierProfile:
    """Behaviour of one historical value tier."""

    value_tier: str
    n_customers: int
    avg_frequency: Decimal
    avg_recency: Decimal
    future_purchase_rate: Decimal


@dataclass(frozen=True)
class StrategicSegmentCount:
    strategic_segment: str
    n_customers: int
    pct: Decimal


@dataclass(frozen=True)
class StrategyRecommendation:
    """A marketing playbook entry for a strategic segment."""

    strategic_segment: str
    priority_level: str
    recommended_actions: str
    budget_allocation: str


STRATEGY_RECOMMENDATIONS = (
    StrategyRecommendation(
        "High Value - Highly Engaged",
        "Tier 1: Protect",
        "Loyalty rewards, exclusive access, VIP support",
        "High",
    ),
    StrategyRecommendation(
        "High Value - Inactive",
        "Tier 1: Reactivate",
        "URGENT: Personal outreach, win-back offers, satisfaction surveys",
        "High",
    ),
    StrategyRecommendation(
        "Medium Value - Moderately Engaged",
        "Tier 2: Grow",
        "Targeted promotions, product recommendations",
        "Medium",
    ),
    StrategyRecommendation(
        "Low Value - Highly Engaged",
        "Tier 2: Develop",
        "Educational content, community building",
        "Medium",
    ),
)


def _pct(numerator: int, denominator: int) -> Decimal:
    if denominator == 0:
        return Decimal("0")
    return (Decimal(numerator) / Decimal(denominator) * 100).quantize(
        PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP
    )


def _mean(values: Sequence) -> Decimal:
    if not values:
        return Decimal("0")
    total = sum((Decimal(str(v)) for v in values), Decimal("0"))
    return (total / len(values)).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def _group(
    model_data: Sequence[ModelData], key: Callable[[ModelData], str | None]
) -> dict[str, list[ModelData]]:
    groups: dict[str, list[ModelData]] = {}
    for row in model_data:
        groups.setdefault(key(row) or UNASSIGNED, []).append(row)
    return groups


def retention_by_segment(model_data: Sequence[ModelData]) -> list[SegmentRetention]:
    """Churn rate and average spend per RFM segment, lowest churn first."""
    summaries = [
        SegmentRetention(
            segment=segment,
            n_customers=len(rows),
            churn_rate=_pct(sum(1 for r in rows if r.is_churn), len(rows)),
            avg_historical_spend=_mean([r.monetary for r in rows]),
        )
        for segment, rows in _group(model_data, lambda r: r.segment).items()
    ]
    summaries.sort(key=lambda s: (s.churn_rate, s.segment))
    return summaries


def category_performance(
    model_data: Sequence[ModelData],
) -> list[CategoryPerformance]:
    """Spend and churn per top category, highest average spend first."""
    summaries = [
        CategoryPerformance(
            top_category=category,
            n_customers=len(rows),
            avg_historical_spend=_mean([r.monetary for r in rows]),
            churn_rate=_pct(sum(1 for r in rows if r.is_churn), len(rows)),
        )
        for category, rows in _group(model_data, lambda r: r.top_category).items()
    ]
    summaries.sort(key=lambda s: (-s.avg_historical_spend, s.top_category))
    return summaries


def value_tier_profiles(model_data: Sequence[ModelData]) -> list[ValueTierProfile]:
    """Frequency, recency and future purchase rate per value tier."""
    groups = _group(model_data, lambda r: r.value_tier)
    order = {tier: idx for idx, tier in enumerate(reversed(VALUE_TIERS))}
    profiles = [
        ValueTierProfile(
            value_tier=tier,
            n_customers=len(rows),
            avg_frequency=_mean([r.frequency for r in rows]),
            avg_recency=_mean([r.recency for r in rows]),
            future_purchase_rate=_pct(
                sum(1 for r in rows if r.future_spend > 0), len(rows)
            ),
        )
        for tier, rows in groups.items()
    ]
    profiles.sort(key=lambda p: (order.get(p.value_tier, len(order)), p.value_tier))
    return profiles


def strategic_segment_counts(
    model_data: Sequence[ModelData],
) -> list[StrategicSegmentCount]:
    """Customer count and share per strategic segment, largest first."""
    counts = Counter(row.strategic_segment or UNASSIGNED for row in model_data)
    total = len(model_data)
    summary = [
        StrategicSegmentCount(segment, n, _pct(n, total))
        for segment, n in counts.items()
    ]
    summary.sort(key=lambda s: (-s.n_customers, s.strategic_segment))
    return summary


def tier_matrix(model_data: Sequence[ModelData]) -> dict[tuple[str, str], int]:
    """Counts for every (value tier, engagement tier) pair, zero filled."""
    matrix = {
        (value, engagement): 0 for value in VALUE_TIERS for engagement in ENGAGEMENT_TIERS
    }
    for row in model_data:
        key = (row.value_tier, row.engagement_tier)
        if key in matrix:
            matrix[key] += 1
    return matrix
