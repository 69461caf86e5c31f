"""RFM (Recency-Frequency-Monetary) feature construction.

Customers are described by three behavioural dimensions measured over the
historical window that ends at the cutoff date:
- Recency: How many days before the cutoff was the last purchase?
- Frequency: How many orders were placed?
- Monetary: How much was spent in total?

Tenure (days since the first purchase) and average order value are derived
alongside, and each of R/F/M is ranked into quintile scores 1-5.
"""

from __future__ import annotations

import logging
import multiprocessing
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

import pandas as pd  # Used for rank-based quintile scoring

from rfm_audit.foundation.transactions import Transaction

logger = logging.getLogger(__name__)

#: Number of equal-population groups used for R/F/M scores.
SCORE_BINS = 5

#: Allowed difference between avg_order_value and monetary / frequency.
AVG_ORDER_VALUE_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class CustomerRFMRecord:
    """RFM features and quintile scores for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    recency:
        Days from the last historical purchase to the cutoff
    frequency:
        Number of historical orders
    monetary:
        Total historical spend
    first_purchase:
        Earliest historical order date
    last_purchase:
        Latest historical order date
    avg_order_value:
        monetary / frequency
    tenure_days:
        Days from first_purchase to the cutoff
    r_score:
        Recency score (1-5, where 5 = most recent)
    f_score:
        Frequency score (1-5, where 5 = most frequent)
    m_score:
        Monetary score (1-5, where 5 = highest spend)
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

    def __post_init__(self) -> None:
        """Validate RFM features and scores."""
        if self.recency < 0:
            raise ValueError(
                f"Recency cannot be negative: {self.recency} (customer_id={self.customer_id})"
            )
        if self.frequency <= 0:
            raise ValueError(
                f"Frequency must be positive: {self.frequency} (customer_id={self.customer_id})"
            )
        if self.monetary <= 0:
            raise ValueError(
                f"Monetary value must be positive: {self.monetary} (customer_id={self.customer_id})"
            )
        if self.tenure_days < self.recency:
            raise ValueError(
                f"Tenure ({self.tenure_days}) cannot be shorter than recency "
                f"({self.recency}) (customer_id={self.customer_id})"
            )
        expected_aov = self.monetary / self.frequency
        if abs(self.avg_order_value - expected_aov) > AVG_ORDER_VALUE_TOLERANCE:
            raise ValueError(
                f"avg_order_value ({self.avg_order_value}) != monetary / frequency "
                f"({expected_aov}) (customer_id={self.customer_id})"
            )
        for score_name, score_value in [
            ("r_score", self.r_score),
            ("f_score", self.f_score),
            ("m_score", self.m_score),
        ]:
            if not 1 <= score_value <= SCORE_BINS:
                raise ValueError(
                    f"{score_name} must be between 1 and {SCORE_BINS}: {score_value} "
                    f"(customer_id={self.customer_id})"
                )

    @property
    def rfm_score(self) -> str:
        """Combined score string, e.g. ``"555"`` for the best customers."""
        return f"{self.r_score}{self.f_score}{self.m_score}"


def ntile(values: Sequence[float], bins: int = SCORE_BINS) -> list[int]:
    """Assign each value to one of ``bins`` equal-population groups.

    Values are ranked with ties broken by position (first occurrence ranks
    lower), then group ``floor(bins * (rank - 1) / n) + 1`` is assigned.
    Unlike ``pd.qcut`` this never drops bins on duplicate edges and always
    returns integers in ``1..bins``, even for fewer than ``bins`` values.

    Examples
    --------
    >>> ntile([10, 20, 30, 40, 50])
    [1, 2, 3, 4, 5]
    >>> ntile([7, 7, 7])
    [1, 2, 4]
    >>> ntile([])
    []
    """
    if bins <= 0:
        raise ValueError(f"bins must be positive: {bins}")
    n = len(values)
    if n == 0:
        return []
    ranks = pd.Series(list(values), dtype="float64").rank(method="first")
    return [int((int(rank) - 1) * bins // n) + 1 for rank in ranks]


def _aggregate_customers(
    customer_data_chunk: dict[str, dict], cutoff: date
) -> list[dict]:
    """Compute unscored RFM features for a chunk of customers.

    Designed to be called by multiprocessing workers; each customer is
    processed independently.
    """
    features: list[dict] = []
    for customer_id, data in customer_data_chunk.items():
        frequency = data["frequency"]
        monetary = data["monetary"]
        features.append(
            {
                "customer_id": customer_id,
                "recency": (cutoff - data["last_purchase"]).days,
                "frequency": frequency,
                "monetary": monetary,
                "first_purchase": data["first_purchase"],
                "last_purchase": data["last_purchase"],
                "avg_order_value": monetary / frequency,
                "tenure_days": (cutoff - data["first_purchase"]).days,
            }
        )
    return features


def calculate_rfm(
    historical: Sequence[Transaction],
    cutoff: date,
    parallel: bool = True,
    parallel_threshold: int = 1_000_000,
    n_workers: Optional[int] = None,
) -> list[CustomerRFMRecord]:
    """Build scored RFM records from historical transactions.

    **Scoring**: scores are assigned after all customers are aggregated, so
    quintile boundaries are recomputed from the current data on every run.
    r_score ranks negated recency so that recent customers score highest.

    **Small datasets**: with fewer than 5 customers the groups are uneven
    (some scores go unused); a warning is logged but scores remain valid.

    **Parallel Processing**: above ``parallel_threshold`` customers the
    per-customer aggregation is chunked across a process pool. Scoring runs
    on the merged result, so output is identical to the serial path.

    Parameters
    ----------
    historical:
        Transactions dated strictly before ``cutoff``.
    cutoff:
        Reference date for recency and tenure.
    parallel:
        Enable parallel aggregation (default: True).
    parallel_threshold:
        Customer count at which parallel aggregation kicks in.
    n_workers:
        Worker processes for parallel aggregation. Defaults to CPU count.

    Returns
    -------
    list[CustomerRFMRecord]
        One record per customer, sorted by customer_id. Empty input yields
        an empty list.

    Raises
    ------
    ValueError
        If a transaction is dated on or after the cutoff.

    Examples
    --------
    >>> from decimal import Decimal
    >>> txns = [
    ...     Transaction("C1", date(2017, 5, 1), Decimal("100")),
    ...     Transaction("C1", date(2017, 6, 1), Decimal("50")),
    ... ]
    >>> rfm = calculate_rfm(txns, date(2017, 7, 1))
    >>> rfm[0].recency, rfm[0].frequency, rfm[0].monetary
    (30, 2, Decimal('150'))
    """
    if not historical:
        return []

    customer_data: dict[str, dict] = {}
    for txn in historical:
        if txn.order_date >= cutoff:
            raise ValueError(
                f"Transaction date ({txn.order_date}) must be before cutoff "
                f"({cutoff}) for customer {txn.customer_id}"
            )
        data = customer_data.get(txn.customer_id)
        if data is None:
            customer_data[txn.customer_id] = {
                "first_purchase": txn.order_date,
                "last_purchase": txn.order_date,
                "frequency": 1,
                "monetary": txn.sales,
            }
            continue
        if txn.order_date < data["first_purchase"]:
            data["first_purchase"] = txn.order_date
        if txn.order_date > data["last_purchase"]:
            data["last_purchase"] = txn.order_date
        data["frequency"] += 1
        data["monetary"] += txn.sales

    num_customers = len(customer_data)
    use_parallel = parallel and num_customers >= parallel_threshold

    if use_parallel:
        workers = (os.cpu_count() or 1) if n_workers is None else max(1, n_workers)
        customer_items = list(customer_data.items())
        chunk_size = max(1, num_customers // workers)
        chunks = [
            (dict(customer_items[i : i + chunk_size]), cutoff)
            for i in range(0, num_customers, chunk_size)
        ]
        logger.info(
            f"Aggregating {num_customers} customers in {len(chunks)} chunks "
            f"across {workers} workers"
        )
        with multiprocessing.Pool(processes=workers) as pool:
            chunk_results = pool.starmap(_aggregate_customers, chunks)
        features: list[dict] = []
        for chunk_result in chunk_results:
            features.extend(chunk_result)
    else:
        features = _aggregate_customers(customer_data, cutoff)

    # Stable ranking needs a deterministic input order
    features.sort(key=lambda row: row["customer_id"])

    if num_customers < SCORE_BINS:
        logger.warning(
            f"Only {num_customers} customers: quintile groups will be uneven"
        )

    r_scores = ntile([-row["recency"] for row in features])
    f_scores = ntile([row["frequency"] for row in features])
    m_scores = ntile([float(row["monetary"]) for row in features])

    records = [
        CustomerRFMRecord(r_score=r, f_score=f, m_score=m, **row)
        for row, r, f, m in zip(features, r_scores, f_scores, m_scores)
    ]
    logger.info(f"Calculated RFM for {len(records)} customers")
    return records
