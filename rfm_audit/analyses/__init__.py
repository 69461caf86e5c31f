"""Analyses over the joined per-customer table.

1. Feasibility - does historical RFM behaviour predict future spend?
2. Segmentation - RFM segments, value and engagement tiers
3. Priority - actionable customer lists
4. Summaries - retention, category and tier aggregates
"""

from .feasibility import (
    FeasibilityVerdict,
    FeatureCorrelation,
    RecencyPurchaseRates,
    assess_feasibility,
    compute_future_spend_correlations,
    evaluate_feasibility,
    recency_purchase_rates,
)
from .priority import PriorityConfig, PriorityLists, select_priority_customers
from .segmentation import (
    ComputedSegmentRule,
    ExternalSegmentSource,
    SegmentationConfig,
    SegmentStrategy,
    assign_engagement_tier,
    assign_rfm_segment,
    assign_value_tier,
    resolve_segment_strategy,
    segment_customers,
    top_categories,
    value_tier_thresholds,
)
from .summaries import (
    STRATEGY_RECOMMENDATIONS,
    category_performance,
    retention_by_segment,
    strategic_segment_counts,
    tier_matrix,
    value_tier_profiles,
)

__all__ = [
    # Feasibility
    "FeasibilityVerdict",
    "FeatureCorrelation",
    "RecencyPurchaseRates",
    "assess_feasibility",
    "compute_future_spend_correlations",
    "evaluate_feasibility",
    "recency_purchase_rates",
    # Segmentation
    "ComputedSegmentRule",
    "ExternalSegmentSource",
    "SegmentationConfig",
    "SegmentStrategy",
    "assign_engagement_tier",
    "assign_rfm_segment",
    "assign_value_tier",
    "resolve_segment_strategy",
    "segment_customers",
    "top_categories",
    "value_tier_thresholds",
    # Priority
    "PriorityConfig",
    "PriorityLists",
    "select_priority_customers",
    # Summaries
    "STRATEGY_RECOMMENDATIONS",
    "category_performance",
    "retention_by_segment",
    "strategic_segment_counts",
    "tier_matrix",
    "value_tier_profiles",
]
