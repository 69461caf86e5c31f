"""End-to-end RFM audit pipeline.

Each stage takes the previous stage's output and returns a new immutable
structure:

    transactions -> TemporalSplit -> CustomerRFMRecord + OutcomeRecord
    -> ModelData -> FeasibilityVerdict -> enriched ModelData
    -> PriorityLists -> summaries

The segment strategy is resolved by the caller before the run starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from rfm_audit.analyses.feasibility import (
    DEFAULT_CORRELATION_THRESHOLD,
    FeasibilityVerdict,
    assess_feasibility,
)
from rfm_audit.analyses.priority import (
    PriorityConfig,
    PriorityLists,
    select_priority_customers,
)
from rfm_audit.analyses.segmentation import (
    ComputedSegmentRule,
    SegmentationConfig,
    SegmentStrategy,
    segment_customers,
    top_categories,
)
from rfm_audit.analyses.summaries import (
    CategoryPerformance,
    SegmentRetention,
    StrategicSegmentCount,
    ValueTierProfile,
    category_performance,
    retention_by_segment,
    strategic_segment_counts,
    tier_matrix,
    value_tier_profiles,
)
from rfm_audit.foundation.model_data import ModelData, build_model_data
from rfm_audit.foundation.outcomes import calculate_outcomes
from rfm_audit.foundation.rfm import SCORE_BINS, calculate_rfm
from rfm_audit.foundation.temporal_split import split_transactions
from rfm_audit.foundation.transactions import Transaction

logger = logging.getLogger(__name__)

DEFAULT_CUTOFF_DATE = date(2017, 7, 1)


@dataclass(frozen=True)
class PipelineConfig:
    """Run configuration.

    Attributes
    ----------
    cutoff_date:
        Boundary between the historical and future windows
    correlation_threshold:
        Feasibility threshold for max absolute correlation
    segmentation:
        Value/engagement tier thresholds
    priority:
        Priority list thresholds
    parallel:
        Allow process-pool aggregation for large customer bases
    parallel_threshold:
        Customer count at which parallel aggregation starts
    n_workers:
        Worker processes (default: CPU count)
    """

    cutoff_date: date = DEFAULT_CUTOFF_DATE
    correlation_threshold: float = DEFAULT_CORRELATION_THRESHOLD
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    priority: PriorityConfig = field(default_factory=PriorityConfig)
    parallel: bool = True
    parallel_threshold: int = 1_000_000
    n_workers: Optional[int] = None


@dataclass(frozen=True)
class PipelineResult:
    """Everything one run produces, ready for export."""

    cutoff_date: date
    historical_transactions: int
    future_transactions: int
    model_data: tuple[ModelData, ...]
    feasibility: FeasibilityVerdict
    priority: PriorityLists
    retention_by_segment: tuple[SegmentRetention, ...]
    category_performance: tuple[CategoryPerformance, ...]
    value_tier_profiles: tuple[ValueTierProfile, ...]
    strategic_segment_counts: tuple[StrategicSegmentCount, ...]
    tier_matrix: dict[tuple[str, str], int]
    segment_strategy: str
    diagnostics: tuple[str, ...] = ()

    @property
    def total_customers(self) -> int:
        return len(self.model_data)


def run_pipeline(
    transactions: Sequence[Transaction],
    config: PipelineConfig | None = None,
    segment_strategy: SegmentStrategy | None = None,
) -> PipelineResult:
    """Run the full audit on cleaned transactions.

    Parameters
    ----------
    transactions:
        Cleaned transactions (see :mod:`rfm_audit.foundation.transactions`).
    config:
        Run configuration (default: :class:`PipelineConfig`).
    segment_strategy:
        Pre-resolved RFM segment strategy (default: computed rules).

    Raises
    ------
    ValueError
        If there are no transactions, or none before the cutoff, since no
        customer-level output can be produced.
    """
    config = config or PipelineConfig()
    segment_strategy = segment_strategy or ComputedSegmentRule()

    if not transactions:
        raise ValueError("No transactions to analyse: the transaction set is empty")

    split = split_transactions(transactions, config.cutoff_date)
    if not split.historical:
        raise ValueError(
            f"No historical transactions before cutoff {config.cutoff_date}; "
            "cannot build customer features"
        )

    diagnostics: list[str] = []
    if not split.future:
        diagnostics.append(
            f"No transactions on or after cutoff {config.cutoff_date}: "
            "every customer is marked as churned"
        )

    rfm_records = calculate_rfm(
        split.historical,
        config.cutoff_date,
        parallel=config.parallel,
        parallel_threshold=config.parallel_threshold,
        n_workers=config.n_workers,
    )
    if len(rfm_records) < SCORE_BINS:
        diagnostics.append(
            f"Insufficient data for quintile scoring: {len(rfm_records)} customers "
            f"(fewer than {SCORE_BINS}); score groups are uneven"
        )

    outcomes = calculate_outcomes(split.future, [r.customer_id for r in rfm_records])
    model_data = build_model_data(rfm_records, outcomes)

    feasibility = assess_feasibility(model_data, threshold=config.correlation_threshold)
    if feasibility.insufficient_data:
        undefined = [c.feature for c in feasibility.correlations if not c.is_defined]
        diagnostics.append(
            f"Insufficient data for correlation with future spend: {', '.join(undefined)}"
        )

    # Segmentation runs regardless of the feasibility verdict
    enriched = segment_customers(
        model_data,
        strategy=segment_strategy,
        categories=top_categories(transactions),
        config=config.segmentation,
    )
    priority = select_priority_customers(enriched, config.priority)

    for message in diagnostics:
        logger.warning(message)

    return PipelineResult(
        cutoff_date=config.cutoff_date,
        historical_transactions=len(split.historical),
        future_transactions=len(split.future),
        model_data=tuple(enriched),
        feasibility=feasibility,
        priority=priority,
        retention_by_segment=tuple(retention_by_segment(enriched)),
        category_performance=tuple(category_performance(enriched)),
        value_tier_profiles=tuple(value_tier_profiles(enriched)),
        strategic_segment_counts=tuple(strategic_segment_counts(enriched)),
        tier_matrix=tier_matrix(enriched),
        segment_strategy=segment_strategy.name,
        diagnostics=tuple(diagnostics),
    )
