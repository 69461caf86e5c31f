"""Split transactions into a historical feature window and a future outcome window."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from rfm_audit.foundation.transactions import Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemporalSplit:
    """Historical and future partitions around a cutoff date.

    Attributes
    ----------
    cutoff:
        Boundary date. Orders strictly before it are historical, orders on
        or after it are future.
    historical:
        Transactions with ``order_date < cutoff``
    future:
        Transactions with ``order_date >= cutoff``
    """

    cutoff: date
    historical: tuple[Transaction, ...]
    future: tuple[Transaction, ...]

    def __post_init__(self) -> None:
        """Validate partition membership."""
        for txn in self.historical:
            if txn.order_date >= self.cutoff:
                raise ValueError(
                    f"Historical transaction dated {txn.order_date} is not before cutoff "
                    f"{self.cutoff} (customer_id={txn.customer_id})"
                )
        for txn in self.future:
            if txn.order_date < self.cutoff:
                raise ValueError(
                    f"Future transaction dated {txn.order_date} is before cutoff "
                    f"{self.cutoff} (customer_id={txn.customer_id})"
                )

    @property
    def total_transactions(self) -> int:
        return len(self.historical) + len(self.future)


def split_transactions(
    transactions: Iterable[Transaction], cutoff: date
) -> TemporalSplit:
    """Partition transactions by ``cutoff``.

    Every transaction lands in exactly one partition; an order dated on the
    cutoff itself belongs to the future window. A cutoff outside the data
    range simply leaves one partition empty.

    Examples
    --------
    >>> from decimal import Decimal
    >>> txns = [
    ...     Transaction("C1", date(2017, 6, 30), Decimal("10")),
    ...     Transaction("C1", date(2017, 7, 1), Decimal("20")),
    ... ]
    >>> split = split_transactions(txns, date(2017, 7, 1))
    >>> len(split.historical), len(split.future)
    (1, 1)
    """
    historical: list[Transaction] = []
    future: list[Transaction] = []
    for txn in transactions:
        if txn.order_date < cutoff:
            historical.append(txn)
        else:
            future.append(txn)

    if not historical:
        logger.warning(f"No historical transactions before cutoff {cutoff}")
    if not future:
        logger.warning(f"No future transactions on or after cutoff {cutoff}")
    logger.info(
        f"Split at {cutoff}: {len(historical)} historical, {len(future)} future transactions"
    )

    return TemporalSplit(
        cutoff=cutoff, historical=tuple(historical), future=tuple(future)
    )
