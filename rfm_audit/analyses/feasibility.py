"""Predictive-modelling feasibility assessment.

Before investing in churn or CLV models we check whether historical RFM
behaviour carries any linear signal about future spend. The assessment
correlates future spend with recency, frequency, monetary and tenure among
customers who purchased again, and compares the strongest absolute
correlation with a threshold:

- max |r| < threshold: weak signal, the descriptive (segmentation) path is
  recommended
- otherwise: predictive modelling may be worth pursuing

The verdict is decision support only. Segmentation runs regardless.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Literal, Mapping, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from rfm_audit.foundation.model_data import ModelData

logger = logging.getLogger(__name__)

#: Correlation magnitude below which predictive signal is considered weak.
DEFAULT_CORRELATION_THRESHOLD = 0.1

#: Historical features correlated against future spend, in report order.
FEASIBILITY_FEATURES = ("recency", "frequency", "monetary", "tenure_days")

#: Fewest complete observations for which a correlation is reported.
MIN_CORRELATION_OBSERVATIONS = 3

PERCENTAGE_PRECISION = Decimal("0.01")


@dataclass(frozen=True)
class FeatureCorrelation:
    """Pearson correlation between one feature and future spend.

    Attributes
    ----------
    feature:
        Historical feature name
    coefficient:
        Pearson r, or None when undefined (too few rows or zero variance)
    p_value:
        Two-sided p-value, or None when the coefficient is undefined
    n_observations:
        Number of complete rows used
    """

    feature: str
    coefficient: float | None
    p_value: float | None
    n_observations: int

    @property
    def is_defined(self) -> bool:
        return self.coefficient is not None


@dataclass(frozen=True)
class RecencyPurchaseRates:
    """Future purchase rate for customers above and below median recency."""

    median_recency: float
    recent_customers: int
    recent_purchase_rate: Decimal
    lapsed_customers: int
    lapsed_purchase_rate: Decimal


@dataclass(frozen=True)
class FeasibilityVerdict:
    """Outcome of the feasibility assessment.

    Attributes
    ----------
    correlations:
        One entry per feature in :data:`FEASIBILITY_FEATURES` order
    max_abs_correlation:
        Largest absolute coefficient; undefined coefficients count as 0.0
    threshold:
        Threshold the maximum was compared against
    weak_signal:
        True when max_abs_correlation < threshold
    insufficient_data:
        True when at least one coefficient could not be computed
    recommended_path:
        "descriptive" for weak signal, otherwise "predictive"
    recency_purchase_rates:
        Optional recent-vs-lapsed purchase comparison
    """

    correlations: tuple[FeatureCorrelation, ...]
    max_abs_correlation: float
    threshold: float
    weak_signal: bool
    insufficient_data: bool
    recommended_path: Literal["descriptive", "predictive"]
    recency_purchase_rates: RecencyPurchaseRates | None = None

    def __post_init__(self) -> None:
        if self.threshold < 0:
            raise ValueError(f"Threshold cannot be negative: {self.threshold}")
        if self.max_abs_correlation < 0:
            raise ValueError(
                f"Max absolute correlation cannot be negative: {self.max_abs_correlation}"
            )
        if self.weak_signal != (self.max_abs_correlation < self.threshold):
            raise ValueError(
                f"weak_signal ({self.weak_signal}) inconsistent with "
                f"{self.max_abs_correlation} vs threshold {self.threshold}"
            )

    @property
    def coefficients(self) -> dict[str, float | None]:
        return {c.feature: c.coefficient for c in self.correlations}

    @property
    def interpretation(self) -> str:
        if self.weak_signal:
            text = (
                f"All correlations below {self.threshold}: very weak predictive signal. "
                "Predictive modelling would yield unreliable results; "
                "pivot to descriptive analytics."
            )
        else:
            text = (
                f"Maximum absolute correlation {self.max_abs_correlation:.4f} reaches "
                f"{self.threshold}: predictive modelling may be viable."
            )
        if self.insufficient_data:
            undefined = [c.feature for c in self.correlations if not c.is_defined]
            text += f" Insufficient data to correlate: {', '.join(undefined)}."
        return text


def _correlate(x: np.ndarray, y: np.ndarray, feature: str) -> FeatureCorrelation:
    n = len(x)
    if n < MIN_CORRELATION_OBSERVATIONS or np.ptp(x) == 0 or np.ptp(y) == 0:
        logger.warning(
            f"Correlation undefined for {feature} (n={n}); treating as no signal"
        )
        return FeatureCorrelation(feature, None, None, n)
    r, p = stats.pearsonr(x, y)
    if math.isnan(r):
        return FeatureCorrelation(feature, None, None, n)
    return FeatureCorrelation(feature, float(r), float(p), n)


def compute_future_spend_correlations(
    model_data: Sequence[ModelData],
) -> tuple[FeatureCorrelation, ...]:
    """Correlate future spend with each historical feature.

    Only customers with positive future spend are included, so the churn
    mass at zero does not dominate the coefficients. Rows with any missing
    value are excluded (complete-case), never imputed.
    """
    columns = ["future_spend", *FEASIBILITY_FEATURES]
    df = pd.DataFrame(
        [
            {
                "future_spend": float(row.future_spend),
                "recency": row.recency,
                "frequency": row.frequency,
                "monetary": float(row.monetary),
                "tenure_days": row.tenure_days,
            }
            for row in model_data
        ],
        columns=columns,
    )
    df = df[df["future_spend"] > 0].dropna()
    logger.info(f"Correlating future spend over {len(df)} repeat customers")

    target = df["future_spend"].to_numpy(dtype=float)
    return tuple(
        _correlate(df[feature].to_numpy(dtype=float), target, feature)
        for feature in FEASIBILITY_FEATURES
    )


def evaluate_feasibility(
    correlations: Sequence[FeatureCorrelation] | Mapping[str, float | None],
    threshold: float = DEFAULT_CORRELATION_THRESHOLD,
    recency_purchase_rates: RecencyPurchaseRates | None = None,
) -> FeasibilityVerdict:
    """Turn correlation coefficients into a verdict.

    Parameters
    ----------
    correlations:
        Computed correlations, or a plain ``feature -> coefficient`` mapping.
        ``None`` or NaN coefficients are undefined and count as 0.0.
    threshold:
        Minimum absolute correlation for a usable signal (default: 0.1).

    Examples
    --------
    >>> verdict = evaluate_feasibility(
    ...     {"recency": 0.03, "frequency": -0.05, "monetary": 0.08, "tenure_days": 0.02}
    ... )
    >>> verdict.max_abs_correlation, verdict.weak_signal, verdict.recommended_path
    (0.08, True, 'descriptive')
    """
    if isinstance(correlations, Mapping):
        correlations = tuple(
            FeatureCorrelation(feature, coefficient, None, 0)
            for feature, coefficient in correlations.items()
        )

    normalised: list[FeatureCorrelation] = []
    for corr in correlations:
        if corr.coefficient is not None and math.isnan(corr.coefficient):
            corr = FeatureCorrelation(corr.feature, None, None, corr.n_observations)
        normalised.append(corr)

    max_abs = max(
        (abs(c.coefficient) for c in normalised if c.coefficient is not None),
        default=0.0,
    )
    weak = max_abs < threshold
    insufficient = not normalised or any(not c.is_defined for c in normalised)

    verdict = FeasibilityVerdict(
        correlations=tuple(normalised),
        max_abs_correlation=max_abs,
        threshold=threshold,
        weak_signal=weak,
        insufficient_data=insufficient,
        recommended_path="descriptive" if weak else "predictive",
        recency_purchase_rates=recency_purchase_rates,
    )
    logger.info(
        f"Feasibility: max |r|={max_abs:.4f}, threshold={threshold}, "
        f"path={verdict.recommended_path}"
    )
    return verdict


def recency_purchase_rates(
    model_data: Sequence[ModelData],
) -> RecencyPurchaseRates | None:
    """Compare future purchase rates of recent vs lapsed customers.

    Customers with recency strictly below the median are "recent".
    Returns None for an empty table.
    """
    if not model_data:
        return None

    median = float(np.median([row.recency for row in model_data]))
    recent = [row for row in model_data if row.recency < median]
    lapsed = [row for row in model_data if row.recency >= median]

    def _rate(rows: Sequence[ModelData]) -> Decimal:
        if not rows:
            return Decimal("0")
        buyers = sum(1 for row in rows if row.future_spend > 0)
        return (Decimal(buyers) / Decimal(len(rows)) * 100).quantize(
            PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP
        )

    return RecencyPurchaseRates(
        median_recency=median,
        recent_customers=len(recent),
        recent_purchase_rate=_rate(recent),
        lapsed_customers=len(lapsed),
        lapsed_purchase_rate=_rate(lapsed),
    )


def assess_feasibility(
    model_data: Sequence[ModelData],
    threshold: float = DEFAULT_CORRELATION_THRESHOLD,
) -> FeasibilityVerdict:
    """Compute correlations and return the feasibility verdict."""
    correlations = compute_future_spend_correlations(model_data)
    verdict = evaluate_feasibility(
        correlations,
        threshold=threshold,
        recency_purchase_rates=recency_purchase_rates(model_data),
    )
    for corr in verdict.correlations:
        shown = "undefined" if corr.coefficient is None else f"{corr.coefficient:.4f}"
        logger.info(f"Correlation with future spend - {corr.feature}: {shown}")
    if verdict.weak_signal:
        logger.info("Weak predictive signal: recommending descriptive analytics")
    return verdict
