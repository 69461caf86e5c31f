"""Export pipeline results to flat files.

This module persists the customer table, priority lists, segment summaries
and the feasibility verdict as CSV, JSON and Markdown files for marketing
teams, dashboards and audit trails.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from rfm_audit.analyses.feasibility import FeasibilityVerdict
from rfm_audit.analyses.summaries import STRATEGY_RECOMMENDATIONS
from rfm_audit.foundation.model_data import ModelData
from rfm_audit.pandas import (
    model_data_to_dataframe,
    summaries_to_dataframe,
    tier_matrix_to_dataframe,
)
from rfm_audit.pipeline import PipelineResult

logger = logging.getLogger(__name__)

CUSTOMER_TABLE_FILE = "customer_analytics_comprehensive.csv"
HIGH_PRIORITY_FILE = "high_priority_customers.csv"
VIP_RECENT_FILE = "vip_recent_customers.csv"
LOYAL_INACTIVE_FILE = "loyal_inactive_customers.csv"
RETENTION_FILE = "retention_analysis_by_segment.csv"
CATEGORY_FILE = "product_category_analysis.csv"
VALUE_TIER_FILE = "value_tier_profiles.csv"
STRATEGIC_SEGMENT_FILE = "strategic_segment_summary.csv"
TIER_MATRIX_FILE = "segment_tier_matrix.csv"
RECOMMENDATIONS_FILE = "marketing_strategy_recommendations.csv"
FEASIBILITY_FILE = "feasibility_assessment.json"
METHODOLOGY_FILE = "methodology_notes.md"


def export_customer_table_csv(
    model_data: Sequence[ModelData], output_path: str | Path
) -> None:
    """Write per-customer rows to CSV."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    model_data_to_dataframe(model_data).to_csv(output_path, index=False)
    logger.info(f"{len(model_data)} customer rows exported to {output_path}")


def export_records_csv(records: Sequence[Any], output_path: str | Path) -> None:
    """Write summary dataclasses to CSV."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    summaries_to_dataframe(records).to_csv(output_path, index=False)
    logger.info(f"Summary exported to {output_path}")


def feasibility_to_dict(verdict: FeasibilityVerdict) -> dict[str, Any]:
    """Return a JSON-serialisable representation of the verdict."""
    payload: dict[str, Any] = {
        "correlations": {
            corr.feature: {
                "coefficient": corr.coefficient,
                "p_value": corr.p_value,
                "n_observations": corr.n_observations,
            }
            for corr in verdict.correlations
        },
        "max_abs_correlation": float(verdict.max_abs_correlation),
        "threshold": float(verdict.threshold),
        "weak_signal": bool(verdict.weak_signal),
        "insufficient_data": bool(verdict.insufficient_data),
        "recommended_path": verdict.recommended_path,
        "interpretation": verdict.interpretation,
    }
    rates = verdict.recency_purchase_rates
    if rates is not None:
        payload["recency_purchase_rates"] = {
            "median_recency": rates.median_recency,
            "recent_customers": rates.recent_customers,
            "recent_purchase_rate": float(rates.recent_purchase_rate),
            "lapsed_customers": rates.lapsed_customers,
            "lapsed_purchase_rate": float(rates.lapsed_purchase_rate),
        }
    return payload


def export_feasibility_json(
    verdict: FeasibilityVerdict,
    output_path: str | Path,
    metadata: dict[str, Any] | None = None,
) -> None:
    """Export the feasibility verdict to JSON.

    Parameters
    ----------
    verdict:
        Result of :func:`rfm_audit.analyses.feasibility.assess_feasibility`
    output_path:
        Path where the JSON file will be saved
    metadata:
        Optional metadata to include (e.g., cutoff date, data source)
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    report = {
        "metadata": metadata or {},
        "timestamp": datetime.now().isoformat(),
        "feasibility": feasibility_to_dict(verdict),
    }
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2)

    logger.info(f"Feasibility assessment exported to {output_path}")


def export_methodology_markdown(
    result: PipelineResult,
    output_path: str | Path,
    title: str = "Customer Analytics Methodology Notes",
) -> None:
    """Write a human-readable account of the run and its analytical decision."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    verdict = result.feasibility

    lines = []
    lines.append(f"# {title}\n")
    lines.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append(f"**Cutoff Date:** {result.cutoff_date.isoformat()}")
    lines.append(f"**Customers:** {result.total_customers}")
    lines.append(
        f"**Transactions:** {result.historical_transactions} historical, "
        f"{result.future_transactions} future"
    )
    lines.append(f"**RFM Segment Source:** {result.segment_strategy}\n")

    lines.append("## Predictive Modelling Feasibility\n")
    lines.append("| Feature | Correlation with Future Spend | p-value | n |")
    lines.append("|---------|-------------------------------|---------|---|")
    for corr in verdict.correlations:
        coef = "undefined" if corr.coefficient is None else f"{corr.coefficient:.4f}"
        p_value = "-" if corr.p_value is None else f"{corr.p_value:.4f}"
        lines.append(f"| {corr.feature} | {coef} | {p_value} | {corr.n_observations} |")
    lines.append("")
    lines.append(f"- **Maximum absolute correlation:** {verdict.max_abs_correlation:.4f}")
    lines.append(f"- **Threshold:** {verdict.threshold}")
    lines.append(f"- **Recommended path:** {verdict.recommended_path}")
    lines.append(f"- **Conclusion:** {verdict.interpretation}\n")

    rates = verdict.recency_purchase_rates
    if rates is not None:
        lines.append("## Future Purchase Rate by Recency\n")
        lines.append(f"- **Median recency:** {rates.median_recency:.1f} days")
        lines.append(
            f"- **Recent customers:** {rates.recent_customers} "
            f"({rates.recent_purchase_rate}% purchased again)"
        )
        lines.append(
            f"- **Lapsed customers:** {rates.lapsed_customers} "
            f"({rates.lapsed_purchase_rate}% purchased again)\n"
        )

    lines.append("## Priority Customers\n")
    lines.append(
        f"- **High-value at-risk:** {len(result.priority.high_risk_high_value)}"
    )
    lines.append(f"- **VIP recent:** {len(result.priority.vip_recent)}")
    lines.append(f"- **Loyal inactive:** {len(result.priority.loyal_inactive)}\n")

    if result.diagnostics:
        lines.append("## Data Quality Notes\n")
        for message in result.diagnostics:
            lines.append(f"- {message}")
        lines.append("")

    lines.append("## Method\n")
    lines.append(
        "- RFM features are built from orders before the cutoff; spend and churn "
        "are measured on orders on or after it."
    )
    lines.append("- Churn means no purchase at all in the future window.")
    lines.append(
        "- Value tiers use monetary quartiles recomputed for every run; "
        "engagement tiers use fixed recency/frequency thresholds."
    )

    with open(output_path, "w") as f:
        f.write("\n".join(lines))

    logger.info(f"Methodology notes exported to {output_path}")


def export_pipeline_result(
    result: PipelineResult, output_dir: str | Path
) -> dict[str, Path]:
    """Write every output table of a run into ``output_dir``.

    Returns
    -------
    dict[str, Path]
        Mapping of output file name to written path.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written: dict[str, Path] = {}

    def _path(name: str) -> Path:
        written[name] = output_dir / name
        return written[name]

    export_customer_table_csv(result.model_data, _path(CUSTOMER_TABLE_FILE))
    export_customer_table_csv(
        result.priority.high_risk_high_value, _path(HIGH_PRIORITY_FILE)
    )
    export_customer_table_csv(result.priority.vip_recent, _path(VIP_RECENT_FILE))
    export_customer_table_csv(result.priority.loyal_inactive, _path(LOYAL_INACTIVE_FILE))

    export_records_csv(result.retention_by_segment, _path(RETENTION_FILE))
    export_records_csv(result.category_performance, _path(CATEGORY_FILE))
    export_records_csv(result.value_tier_profiles, _path(VALUE_TIER_FILE))
    export_records_csv(result.strategic_segment_counts, _path(STRATEGIC_SEGMENT_FILE))
    export_records_csv(STRATEGY_RECOMMENDATIONS, _path(RECOMMENDATIONS_FILE))
    tier_matrix_to_dataframe(result.tier_matrix).to_csv(_path(TIER_MATRIX_FILE))

    export_feasibility_json(
        result.feasibility,
        _path(FEASIBILITY_FILE),
        metadata={
            "cutoff_date": result.cutoff_date.isoformat(),
            "customers": result.total_customers,
            "segment_strategy": result.segment_strategy,
        },
    )
    export_methodology_markdown(result, _path(METHODOLOGY_FILE))

    logger.info(f"Exported {len(written)} files to {output_dir}")
    return written
