"""Actionable priority customer lists for marketing follow-up."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from rfm_audit.analyses.segmentation import monetary_quantile
from rfm_audit.foundation.model_data import ModelData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriorityConfig:
    """Thresholds for the priority lists.

    Attributes
    ----------
    high_value_quantile:
        Monetary quantile defining "high value"
    recent_max_recency:
        Customers with recency at or below this are "recent"
    loyal_min_frequency:
        Minimum historical orders for the loyal list
    """

    high_value_quantile: float = 0.75
    recent_max_recency: int = 90
    loyal_min_frequency: int = 8

    def __post_init__(self) -> None:
        if not 0 <= self.high_value_quantile <= 1:
            raise ValueError(
                f"high_value_quantile must be between 0 and 1: {self.high_value_quantile}"
            )


@dataclass(frozen=True)
class PriorityLists:
    """Independently derived priority lists, each sorted by monetary descending.

    Attributes
    ----------
    high_risk_high_value:
        High value customers who have not bought recently
    vip_recent:
        High value customers who bought recently
    loyal_inactive:
        Frequent buyers who have not bought recently
    high_value_threshold:
        Monetary cut point used for the two high value lists
    """

    high_risk_high_value: tuple[ModelData, ...]
    vip_recent: tuple[ModelData, ...]
    loyal_inactive: tuple[ModelData, ...]
    high_value_threshold: float

    def as_dict(self) -> dict[str, tuple[ModelData, ...]]:
        return {
            "high_risk_high_value": self.high_risk_high_value,
            "vip_recent": self.vip_recent,
            "loyal_inactive": self.loyal_inactive,
        }


def _select(
    model_data: Sequence[ModelData], predicate: Callable[[ModelData], bool]
) -> tuple[ModelData, ...]:
    selected = [row for row in model_data if predicate(row)]
    selected.sort(key=lambda row: (-row.monetary, row.customer_id))
    return tuple(selected)


def select_priority_customers(
    model_data: Sequence[ModelData], config: PriorityConfig | None = None
) -> PriorityLists:
    """Build the three priority lists.

    A customer may appear in more than one list; no deduplication is done.
    The two high value lists split on recency and are therefore disjoint.
    """
    config = config or PriorityConfig()
    if not model_data:
        return PriorityLists((), (), (), high_value_threshold=0.0)

    threshold = monetary_quantile(
        (row.monetary for row in model_data), config.high_value_quantile
    )
    recent = config.recent_max_recency

    lists = PriorityLists(
        high_risk_high_value=_select(
            model_data,
            lambda row: float(row.monetary) >= threshold and row.recency > recent,
        ),
        vip_recent=_select(
            model_data,
            lambda row: float(row.monetary) >= threshold and row.recency <= recent,
        ),
        loyal_inactive=_select(
            model_data,
            lambda row: row.frequency >= config.loyal_min_frequency
            and row.recency > recent,
        ),
        high_value_threshold=threshold,
    )
    logger.info(
        f"Priority customers identified: {len(lists.high_risk_high_value)} high-risk, "
        f"{len(lists.vip_recent)} VIP, {len(lists.loyal_inactive)} loyal inactive"
    )
    return lists
