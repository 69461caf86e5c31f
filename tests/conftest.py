"""Shared fixtures for RFM audit tests."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from rfm_audit.foundation.model_data import ModelData

CUTOFF = date(2017, 7, 1)


@pytest.fixture
def make_row():
    """Factory for ModelData rows with consistent derived fields."""

    def _make(
        customer_id: str,
        recency: int = 30,
        frequency: int = 2,
        monetary: str = "100",
        future_spend: str = "0",
        **labels,
    ) -> ModelData:
        spend = Decimal(monetary)
        future = Decimal(future_spend)
        return ModelData(
            customer_id=customer_id,
            recency=recency,
            frequency=frequency,
            monetary=spend,
            first_purchase=CUTOFF - timedelta(days=recency + 10),
            last_purchase=CUTOFF - timedelta(days=recency),
            avg_order_value=spend / frequency,
            tenure_days=recency + 10,
            r_score=labels.pop("r_score", 3),
            f_score=labels.pop("f_score", 3),
            m_score=labels.pop("m_score", 3),
            future_spend=future,
            is_churn=future == 0,
            **labels,
        )

    return _make
