"""Future-window outcomes: spend and churn per historical customer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from rfm_audit.foundation.transactions import Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutcomeRecord:
    """Observed future behaviour for one customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    future_spend:
        Total sales in the future window (0 when none)
    future_orders:
        Number of future-window transactions
    is_churn:
        True iff the customer has no future transactions
    """

    customer_id: str
    future_spend: Decimal
    future_orders: int
    is_churn: bool

    def __post_init__(self) -> None:
        """Validate outcome consistency."""
        if self.future_orders < 0:
            raise ValueError(
                f"Future orders cannot be negative: {self.future_orders} "
                f"(customer_id={self.customer_id})"
            )
        if self.future_spend < 0:
            raise ValueError(
                f"Future spend cannot be negative: {self.future_spend} "
                f"(customer_id={self.customer_id})"
            )
        if self.is_churn != (self.future_orders == 0):
            raise ValueError(
                f"is_churn ({self.is_churn}) inconsistent with future_orders "
                f"({self.future_orders}) (customer_id={self.customer_id})"
            )
        if self.is_churn and self.future_spend != 0:
            raise ValueError(
                f"Churned customer cannot have future spend: {self.future_spend} "
                f"(customer_id={self.customer_id})"
            )


def calculate_outcomes(
    future: Sequence[Transaction], customer_ids: Iterable[str]
) -> list[OutcomeRecord]:
    """Compute future spend and churn for every historical customer.

    Churn is decided by membership in the future window (order count), not
    by comparing spend to zero. Future-window customers absent from
    ``customer_ids`` have no historical features and are ignored.

    Parameters
    ----------
    future:
        Transactions dated on or after the cutoff.
    customer_ids:
        Customer ids from the historical feature set.

    Returns
    -------
    list[OutcomeRecord]
        Exactly one record per distinct customer id, sorted by customer_id.

    Examples
    --------
    >>> from datetime import date
    >>> future = [Transaction("C1", date(2017, 8, 1), Decimal("40"))]
    >>> [o.is_churn for o in calculate_outcomes(future, ["C1", "C2"])]
    [False, True]
    """
    totals: dict[str, list] = {}
    for txn in future:
        bucket = totals.setdefault(txn.customer_id, [Decimal("0"), 0])
        bucket[0] += txn.sales
        bucket[1] += 1

    outcomes: list[OutcomeRecord] = []
    for customer_id in sorted(set(customer_ids)):
        spend, orders = totals.get(customer_id, (Decimal("0"), 0))
        outcomes.append(
            OutcomeRecord(
                customer_id=customer_id,
                future_spend=spend,
                future_orders=orders,
                is_churn=orders == 0,
            )
        )

    churned = sum(1 for o in outcomes if o.is_churn)
    logger.info(
        f"Calculated outcomes for {len(outcomes)} customers ({churned} churned)"
    )
    return outcomes
