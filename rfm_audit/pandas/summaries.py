"""Pandas DataFrame adapters for feasibility, priority and summary outputs."""

from typing import Any, Sequence

import pandas as pd  # type: ignore

from rfm_audit.analyses.feasibility import FeasibilityVerdict
from rfm_audit.analyses.segmentation import ENGAGEMENT_TIERS, VALUE_TIERS
from ._utils import record_to_row


def summaries_to_dataframe(records: Sequence[Any]) -> pd.DataFrame:
    """Convert a sequence of summary dataclasses to a DataFrame.

    Args:
        records: Summary records such as SegmentRetention or
            CategoryPerformance

    Returns:
        DataFrame with one row per record, Decimal columns as floats

    Example:
        >>> df = summaries_to_dataframe(result.retention_by_segment)
    """
    return pd.DataFrame([record_to_row(record) for record in records])


def feasibility_to_dataframe(verdict: FeasibilityVerdict) -> pd.DataFrame:
    """One row per feature correlation, with the verdict repeated per row.

    Args:
        verdict: FeasibilityVerdict from assess_feasibility

    Returns:
        DataFrame with columns: feature, coefficient, p_value,
        n_observations, threshold, weak_signal
    """
    rows = [
        {
            "feature": corr.feature,
            "coefficient": corr.coefficient,
            "p_value": corr.p_value,
            "n_observations": corr.n_observations,
            "threshold": verdict.threshold,
            "weak_signal": verdict.weak_signal,
        }
        for corr in verdict.correlations
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "feature",
            "coefficient",
            "p_value",
            "n_observations",
            "threshold",
            "weak_signal",
        ],
    )


def tier_matrix_to_dataframe(matrix: dict[tuple[str, str], int]) -> pd.DataFrame:
    """Pivot tier counts into an engagement (rows) x value (columns) grid.

    Args:
        matrix: Output of tier_matrix

    Returns:
        DataFrame indexed by engagement tier with one column per value tier
    """
    grid = pd.DataFrame(0, index=list(ENGAGEMENT_TIERS), columns=list(VALUE_TIERS))
    for (value_tier, engagement_tier), count in matrix.items():
        grid.loc[engagement_tier, value_tier] = count
    grid.index.name = "engagement_tier"
    return grid
