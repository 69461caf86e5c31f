"""Customer segmentation: RFM segments plus value and engagement tiers.

Two independent labelling schemes are applied to every customer:

1. **RFM segment** from quintile scores (or from an external segment table
   when one is supplied):

   ================  ==========================
   Segment           Rule (first match wins)
   ================  ==========================
   Champion          r >= 4, f >= 4, m >= 4
   Loyal Customer    r >= 4, f >= 3, m >= 3
   Potential Loyal.  r >= 4, f >= 3, m <= 2
   Needs Attention   r >= 3, f <= 2, m <= 2
   At Risk           everything else
   ================  ==========================

2. **Strategic segment** = value tier (monetary quartiles recomputed per
   run) combined with engagement tier (recency/frequency thresholds).

The engagement predicates overlap, so they are evaluated in a fixed order:
a customer with recency 200 and frequency 10 is "Inactive".
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from rfm_audit.foundation.model_data import ModelData
from rfm_audit.foundation.transactions import Transaction, normalise_column_name

logger = logging.getLogger(__name__)

CHAMPION = "Champion"
LOYAL_CUSTOMER = "Loyal Customer"
POTENTIAL_LOYALIST = "Potential Loyalist"
NEEDS_ATTENTION = "Needs Attention"
AT_RISK = "At Risk"

HIGH_VALUE = "High Value"
MEDIUM_VALUE = "Medium Value"
LOW_VALUE = "Low Value"
VALUE_TIERS = (LOW_VALUE, MEDIUM_VALUE, HIGH_VALUE)

HIGHLY_ENGAGED = "Highly Engaged"
MODERATELY_ENGAGED = "Moderately Engaged"
INACTIVE = "Inactive"
OCCASIONAL = "Occasional"
ENGAGEMENT_TIERS = (INACTIVE, OCCASIONAL, MODERATELY_ENGAGED, HIGHLY_ENGAGED)


@dataclass(frozen=True)
class SegmentationConfig:
    """Thresholds for value and engagement tiers.

    Attributes
    ----------
    high_value_quantile:
        Monetary quantile at or above which a customer is High Value
    medium_value_quantile:
        Monetary quantile at or above which a customer is Medium Value
    highly_engaged_max_recency / highly_engaged_min_frequency:
        Highly Engaged requires recency <= max and frequency >= min
    moderately_engaged_max_recency / moderately_engaged_min_frequency:
        Moderately Engaged requires recency <= max and frequency >= min
    inactive_min_recency:
        Inactive when recency exceeds this many days
    """

    high_value_quantile: float = 0.75
    medium_value_quantile: float = 0.25
    highly_engaged_max_recency: int = 90
    highly_engaged_min_frequency: int = 8
    moderately_engaged_max_recency: int = 180
    moderately_engaged_min_frequency: int = 4
    inactive_min_recency: int = 180

    def __post_init__(self) -> None:
        for name in ("high_value_quantile", "medium_value_quantile"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValueError(f"{name} must be between 0 and 1: {value}")
        if self.medium_value_quantile > self.high_value_quantile:
            raise ValueError(
                f"medium_value_quantile ({self.medium_value_quantile}) cannot exceed "
                f"high_value_quantile ({self.high_value_quantile})"
            )


@dataclass(frozen=True)
class ValueTierThresholds:
    """Monetary cut points derived from the current customer base."""

    high: float
    medium: float

    def __post_init__(self) -> None:
        if self.medium > self.high:
            raise ValueError(
                f"Medium threshold ({self.medium}) cannot exceed high threshold ({self.high})"
            )


def monetary_quantile(monetary_values: Iterable, q: float) -> float:
    """Linear-interpolated quantile of monetary values (numpy default method)."""
    values = np.asarray([float(v) for v in monetary_values], dtype=float)
    if values.size == 0:
        raise ValueError("Cannot compute a quantile of an empty customer set")
    return float(np.quantile(values, q))


def value_tier_thresholds(
    model_data: Sequence[ModelData], config: SegmentationConfig | None = None
) -> ValueTierThresholds:
    """Compute the value tier cut points for this run's customers."""
    config = config or SegmentationConfig()
    monetary = [row.monetary for row in model_data]
    return ValueTierThresholds(
        high=monetary_quantile(monetary, config.high_value_quantile),
        medium=monetary_quantile(monetary, config.medium_value_quantile),
    )


def assign_rfm_segment(r_score: int, f_score: int, m_score: int) -> str:
    """Map quintile scores to an RFM segment label.

    >>> assign_rfm_segment(5, 5, 5)
    'Champion'
    >>> assign_rfm_segment(4, 3, 1)
    'Potential Loyalist'
    >>> assign_rfm_segment(1, 5, 5)
    'At Risk'
    """
    if r_score >= 4 and f_score >= 4 and m_score >= 4:
        return CHAMPION
    if r_score >= 4 and f_score >= 3 and m_score >= 3:
        return LOYAL_CUSTOMER
    if r_score >= 4 and f_score >= 3 and m_score <= 2:
        return POTENTIAL_LOYALIST
    if r_score >= 3 and f_score <= 2 and m_score <= 2:
        return NEEDS_ATTENTION
    return AT_RISK


def assign_value_tier(monetary: float, thresholds: ValueTierThresholds) -> str:
    """Place a customer in the High, Medium or Low value tier by monetary."""
    monetary = float(monetary)
    if monetary >= thresholds.high:
        return HIGH_VALUE
    if monetary >= thresholds.medium:
        return MEDIUM_VALUE
    return LOW_VALUE


def assign_engagement_tier(
    recency: int, frequency: int, config: SegmentationConfig | None = None
) -> str:
    """Classify engagement; predicates are checked in a fixed order.

    >>> assign_engagement_tier(30, 10)
    'Highly Engaged'
    >>> assign_engagement_tier(200, 10)
    'Inactive'
    >>> assign_engagement_tier(100, 2)
    'Occasional'
    """
    config = config or SegmentationConfig()
    if (
        recency <= config.highly_engaged_max_recency
        and frequency >= config.highly_engaged_min_frequency
    ):
        return HIGHLY_ENGAGED
    if (
        recency <= config.moderately_engaged_max_recency
        and frequency >= config.moderately_engaged_min_frequency
    ):
        return MODERATELY_ENGAGED
    if recency > config.inactive_min_recency:
        return INACTIVE
    return OCCASIONAL


def strategic_segment(value_tier: str, engagement_tier: str) -> str:
    """Combine value and engagement tiers, e.g. ``"High Value - Inactive"``."""
    return f"{value_tier} - {engagement_tier}"


class SegmentStrategy:
    """Base class for RFM segment assignment strategies."""

    name = "base"

    def assign(self, model_data: Sequence[ModelData]) -> dict[str, str | None]:
        """Return a customer_id -> segment label mapping."""
        raise NotImplementedError


class ComputedSegmentRule(SegmentStrategy):
    """Derive segments from quintile scores with :func:`assign_rfm_segment`."""

    name = "computed"

    def assign(self, model_data: Sequence[ModelData]) -> dict[str, str | None]:
        return {
            row.customer_id: assign_rfm_segment(row.r_score, row.f_score, row.m_score)
            for row in model_data
        }


class ExternalSegmentSource(SegmentStrategy):
    """Segments supplied by an upstream table, overriding the computed rules.

    Customers missing from the table are left unassigned (``None``).
    """

    name = "external"

    def __init__(self, segments: Mapping[str, str]) -> None:
        self.segments = {str(key): str(value) for key, value in segments.items()}

    @classmethod
    def from_csv(cls, path: str | Path) -> "ExternalSegmentSource":
        """Load a ``customer_id`` / ``Segment`` table.

        Raises
        ------
        ValueError
            If either column is missing.
        """
        path = Path(path)
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        df = df.rename(columns=normalise_column_name)
        missing = {"customer_id", "segment"} - set(df.columns)
        if missing:
            raise ValueError(f"Segment file {path} missing required columns: {missing}")
        df = df[(df["customer_id"] != "") & (df["segment"] != "")]
        # First row wins for duplicated customer ids
        df = df.drop_duplicates(subset="customer_id", keep="first")
        logger.info(f"Loaded {len(df)} external segment assignments from {path}")
        return cls(dict(zip(df["customer_id"], df["segment"])))

    def assign(self, model_data: Sequence[ModelData]) -> dict[str, str | None]:
        assigned = {row.customer_id: self.segments.get(row.customer_id) for row in model_data}
        unmatched = sum(1 for label in assigned.values() if label is None)
        if unmatched:
            logger.warning(f"{unmatched} customers missing from external segment table")
        return assigned


def resolve_segment_strategy(path: str | Path | None = None) -> SegmentStrategy:
    """Pick the segment strategy once, before any analysis runs.

    An existing segment file selects :class:`ExternalSegmentSource`;
    otherwise the computed rules are used.
    """
    if path is not None and Path(path).is_file():
        logger.info(f"Using external RFM segments from {path}")
        return ExternalSegmentSource.from_csv(path)
    if path is not None:
        logger.info(f"Segment file {path} not found; using computed RFM segments")
    return ComputedSegmentRule()


def top_categories(transactions: Iterable[Transaction]) -> dict[str, str]:
    """Return each customer's highest-spend product category.

    Ties in total category spend go to the category the customer bought
    first in input order. Transactions without a category are ignored.
    """
    totals: dict[str, dict[str, Decimal]] = {}
    for txn in transactions:
        if txn.category is None:
            continue
        by_category = totals.setdefault(txn.customer_id, {})
        by_category[txn.category] = by_category.get(txn.category, Decimal("0")) + txn.sales

    result: dict[str, str] = {}
    for customer_id, by_category in totals.items():
        # max() keeps the first maximal item; dicts preserve insertion order
        result[customer_id] = max(by_category.items(), key=lambda item: item[1])[0]
    return result


def segment_customers(
    model_data: Sequence[ModelData],
    strategy: SegmentStrategy | None = None,
    categories: Mapping[str, str] | None = None,
    config: SegmentationConfig | None = None,
) -> list[ModelData]:
    """Return enriched copies of ``model_data`` with every label filled in.

    Parameters
    ----------
    model_data:
        Joined per-customer rows.
    strategy:
        RFM segment strategy (default: :class:`ComputedSegmentRule`).
    categories:
        Optional customer_id -> top category mapping.
    config:
        Tier thresholds (default: :class:`SegmentationConfig`).
    """
    if not model_data:
        return []

    strategy = strategy or ComputedSegmentRule()
    config = config or SegmentationConfig()
    categories = categories or {}

    segments = strategy.assign(model_data)
    thresholds = value_tier_thresholds(model_data, config)
    logger.info(
        f"Value tier thresholds: high >= {thresholds.high:.2f}, "
        f"medium >= {thresholds.medium:.2f}"
    )

    enriched: list[ModelData] = []
    for row in model_data:
        value_tier = assign_value_tier(row.monetary, thresholds)
        engagement_tier = assign_engagement_tier(row.recency, row.frequency, config)
        enriched.append(
            replace(
                row,
                segment=segments.get(row.customer_id),
                value_tier=value_tier,
                engagement_tier=engagement_tier,
                strategic_segment=strategic_segment(value_tier, engagement_tier),
                top_category=categories.get(row.customer_id),
            )
        )

    counts = Counter(row.segment for row in enriched)
    logger.info(f"Segment distribution ({strategy.name}): {dict(counts)}")
    return enriched
