"""Per-customer analysis table joining RFM features with future outcomes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

from rfm_audit.foundation.outcomes import OutcomeRecord
from rfm_audit.foundation.rfm import CustomerRFMRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelData:
    """Canonical per-customer row consumed by every downstream analysis.

    The RFM and outcome fields are filled by :func:`build_model_data`; the
    label fields stay ``None`` until segmentation returns enriched copies.
    """

    customer_id: str
    recency: int
    frequency: int
    monetary: Decimal
    first_purchase: date
    last_purchase: date
    avg_order_value: Decimal
    tenure_days: int
    r_score: int
    f_score: int
    m_score: int
    future_spend: Decimal
    is_churn: bool
    segment: str | None = None
    value_tier: str | None = None
    engagement_tier: str | None = None
    strategic_segment: str | None = None
    top_category: str | None = None

    def __post_init__(self) -> None:
        """Validate joined outcome fields."""
        if self.future_spend < 0:
            raise ValueError(
                f"Future spend cannot be negative: {self.future_spend} "
                f"(customer_id={self.customer_id})"
            )
        if self.is_churn and self.future_spend != 0:
            raise ValueError(
                f"Churned customer cannot have future spend: {self.future_spend} "
                f"(customer_id={self.customer_id})"
            )

    @property
    def rfm_score(self) -> str:
        return f"{self.r_score}{self.f_score}{self.m_score}"


def build_model_data(
    rfm_records: Sequence[CustomerRFMRecord],
    outcomes: Sequence[OutcomeRecord],
) -> list[ModelData]:
    """Left-join outcomes onto RFM records by customer_id.

    Every historical customer is retained. Customers without an outcome
    record default to zero future spend and ``is_churn=True``.

    Raises
    ------
    ValueError
        If either input contains duplicate customer ids.
    """
    outcome_by_id: dict[str, OutcomeRecord] = {}
    for outcome in outcomes:
        if outcome.customer_id in outcome_by_id:
            raise ValueError(f"Duplicate outcome for customer {outcome.customer_id}")
        outcome_by_id[outcome.customer_id] = outcome

    rows: list[ModelData] = []
    seen: set[str] = set()
    for record in rfm_records:
        if record.customer_id in seen:
            raise ValueError(f"Duplicate RFM record for customer {record.customer_id}")
        seen.add(record.customer_id)

        outcome = outcome_by_id.get(record.customer_id)
        rows.append(
            ModelData(
                customer_id=record.customer_id,
                recency=record.recency,
                frequency=record.frequency,
                monetary=record.monetary,
                first_purchase=record.first_purchase,
                last_purchase=record.last_purchase,
                avg_order_value=record.avg_order_value,
                tenure_days=record.tenure_days,
                r_score=record.r_score,
                f_score=record.f_score,
                m_score=record.m_score,
                future_spend=outcome.future_spend if outcome else Decimal("0"),
                is_churn=outcome.is_churn if outcome else True,
            )
        )

    rows.sort(key=lambda row: row.customer_id)
    logger.info(f"Model dataset created: {len(rows)} customers")
    return rows
