from __future__ import annotations

import csv
import math
import random
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence

from rfm_audit.foundation.transactions import Transaction

DEFAULT_CATEGORIES = ("Furniture", "Office Supplies", "Technology")


@dataclass(frozen=True)
class Customer:
    customer_id: str
    acquisition_date: date


@dataclass(frozen=True)
class StoreScenario:
    """Configuration for the synthetic store generator.

    Attributes
    ----------
    churn_hazard: Monthly probability that an active customer stops buying.
    base_orders_per_month: Average order lines per active customer per month.
    mean_sale: Average sale amount of a line.
    sale_variability: Coefficient in (0, 1] controlling sale amount variance.
    category_weights: Relative purchase weights aligned with ``categories``.
    categories: Product category labels.
    seed: Optional RNG seed for reproducibility.
    """

    churn_hazard: float = 0.05
    base_orders_per_month: float = 0.6
    mean_sale: float = 230.0
    sale_variability: float = 0.9
    category_weights: tuple[float, ...] = (0.2, 0.6, 0.2)
    categories: tuple[str, ...] = DEFAULT_CATEGORIES
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0 <= self.churn_hazard <= 1:
            raise ValueError(f"churn_hazard must be between 0 and 1: {self.churn_hazard}")
        if self.base_orders_per_month < 0:
            raise ValueError(
                f"base_orders_per_month cannot be negative: {self.base_orders_per_month}"
            )
        if len(self.category_weights) != len(self.categories):
            raise ValueError("category_weights must align with categories")


def _month_range(start: date, end: date) -> List[date]:
    cur = date(start.year, start.month, 1)
    last = date(end.year, end.month, 1)
    out: List[date] = []
    while cur <= last:
        out.append(cur)
        if cur.month == 12:
            cur = date(cur.year + 1, 1, 1)
        else:
            cur = date(cur.year, cur.month + 1, 1)
    return out


def generate_customers(
    n: int,
    start: date,
    end: date,
    *,
    seed: Optional[int] = None,
) -> List[Customer]:
    """Generate ``n`` customers with acquisition dates uniformly between start/end."""

    if n <= 0:
        return []
    if start > end:
        raise ValueError("start date must be <= end date")

    rng = random.Random(seed)
    total_days = (end - start).days + 1

    customers: List[Customer] = []
    for i in range(n):
        offset = rng.randrange(total_days)
        acq = start + timedelta(days=offset)
        customers.append(Customer(customer_id=f"C-{i + 1}", acquisition_date=acq))
    return customers


def _lines_for_customer_month(rng: random.Random, lam: float) -> int:
    # Knuth's Poisson draw, fine for small lambdas
    if lam <= 0:
        return 0
    L = math.exp(-lam)
    k = 0
    p = 1.0
    while p > L:
        k += 1
        p *= rng.random()
    return max(0, k - 1)


def _sample_sale(rng: random.Random, mean: float, variability: float) -> Decimal:
    sigma = min(max(variability, 0.01), 1.0)
    mu = math.log(max(mean, 0.01)) - 0.5 * sigma * sigma
    amount = max(math.exp(rng.normalvariate(mu, sigma)), 0.01)
    return Decimal(str(round(amount, 2)))


def generate_store_transactions(
    customers: Sequence[Customer],
    start: date,
    end: date,
    *,
    scenario: Optional[StoreScenario] = None,
) -> List[Transaction]:
    """Generate Superstore-style sale lines between ``start`` and ``end``.

    Each active customer buys a Poisson number of lines per month from a
    weighted category mix; a per-month churn hazard retires customers
    permanently.
    """

    if start > end:
        raise ValueError("start date must be <= end date")
    scenario = scenario or StoreScenario()
    rng = random.Random(scenario.seed)

    transactions: List[Transaction] = []
    active = {c.customer_id: c for c in customers if c.acquisition_date <= end}

    for month_start in _month_range(start, end):
        month_end = (
            date(month_start.year + 1, 1, 1)
            if month_start.month == 12
            else date(month_start.year, month_start.month + 1, 1)
        )

        if scenario.churn_hazard > 0:
            to_remove = [
                cid
                for cid, cust in active.items()
                if cust.acquisition_date < month_start
                and rng.random() < scenario.churn_hazard
            ]
            for cid in to_remove:
                active.pop(cid, None)

        for cust in list(active.values()):
            if cust.acquisition_date >= month_end:
                continue
            first_day = max(month_start, cust.acquisition_date)
            last_day = min(month_end - timedelta(days=1), end)
            if first_day > last_day:
                continue
            span = (last_day - first_day).days + 1
            for _ in range(_lines_for_customer_month(rng, scenario.base_orders_per_month)):
                transactions.append(
                    Transaction(
                        customer_id=cust.customer_id,
                        order_date=first_day + timedelta(days=rng.randrange(span)),
                        sales=_sample_sale(
                            rng, scenario.mean_sale, scenario.sale_variability
                        ),
                        category=rng.choices(
                            scenario.categories, weights=scenario.category_weights
                        )[0],
                    )
                )

    transactions.sort(key=lambda t: (t.customer_id, t.order_date))
    return transactions


def write_transactions_csv(
    transactions: Sequence[Transaction], path: str | Path
) -> Path:
    """Write transactions in the export layout the loader reads.

    Headers are ``Customer ID``, ``Order Date`` (M/D/YYYY), ``Sales`` and
    ``Category``.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(["Customer ID", "Order Date", "Sales", "Category"])
        for txn in transactions:
            writer.writerow(
                [
                    txn.customer_id,
                    f"{txn.order_date.month}/{txn.order_date.day}/{txn.order_date.year}",
                    str(txn.sales),
                    txn.category or "",
                ]
            )
    return path
