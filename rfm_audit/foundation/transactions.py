"""Transaction records and the upstream data-quality filter.

Everything downstream of this module assumes it only ever sees valid rows:
a non-empty customer identifier, a parseable order date and a strictly
positive sale amount. Rows failing any of these checks are dropped here
rather than surfaced as errors, mirroring how raw retail exports are
typically cleaned before analysis.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

logger = logging.getLogger(__name__)

#: Columns every transaction source must provide (after name normalisation).
REQUIRED_COLUMNS = ("customer_id", "order_date", "sales")

#: Accepted month/day/year layouts, tried in order.
ORDER_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y")


@dataclass(frozen=True)
class Transaction:
    """A single cleaned sale line.

    Attributes
    ----------
    customer_id:
        Opaque customer identifier
    order_date:
        Calendar date of the order
    sales:
        Sale amount, strictly positive
    category:
        Product category label, if the source provides one
    """

    customer_id: str
    order_date: date
    sales: Decimal
    category: str | None = None

    def __post_init__(self) -> None:
        """Validate transaction fields."""
        if not self.customer_id:
            raise ValueError("Transaction customer_id cannot be empty")
        if self.sales <= 0:
            raise ValueError(
                f"Sales must be positive: {self.sales} (customer_id={self.customer_id})"
            )


def normalise_column_name(name: str) -> str:
    """Return a snake_case version of a column header.

    >>> normalise_column_name("Customer ID")
    'customer_id'
    >>> normalise_column_name("Order-Date")
    'order_date'
    """
    cleaned = re.sub(r"[^0-9a-zA-Z]+", "_", str(name).strip()).strip("_")
    cleaned = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", cleaned)
    return cleaned.lower()


def parse_order_date(value: Any) -> date | None:
    """Parse a month/day/year order date, returning None when unparseable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for fmt in ORDER_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_sales(value: Any) -> Decimal | None:
    """Parse a sale amount, returning None for missing or malformed values."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip().replace(",", "").lstrip("$")
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    if not amount.is_finite():
        return None
    return amount


def transactions_from_records(
    records: Iterable[Mapping[str, Any]],
) -> list[Transaction]:
    """Build transactions from raw mappings, dropping invalid rows.

    Parameters
    ----------
    records:
        Mappings with at least ``customer_id``, ``order_date`` and ``sales``
        keys. ``category`` is optional.

    Returns
    -------
    list[Transaction]
        Valid transactions in input order.
    """
    transactions: list[Transaction] = []
    dropped = 0
    for record in records:
        raw_id = record.get("customer_id")
        customer_id = "" if raw_id is None else str(raw_id).strip()
        order_date = parse_order_date(record.get("order_date"))
        sales = parse_sales(record.get("sales"))
        if not customer_id or order_date is None or sales is None or sales <= 0:
            dropped += 1
            continue
        category = record.get("category")
        category = str(category).strip() if category is not None else None
        transactions.append(
            Transaction(
                customer_id=customer_id,
                order_date=order_date,
                sales=sales,
                category=category or None,
            )
        )

    if dropped:
        logger.info(f"Dropped {dropped} invalid transaction rows")
    logger.info(
        f"Loaded {len(transactions)} transactions for "
        f"{len({t.customer_id for t in transactions})} customers"
    )
    return transactions


def load_transactions(path: str | Path) -> list[Transaction]:
    """Load and clean transactions from a CSV export.

    Column headers are normalised to snake_case, so exports with headers
    such as ``Customer ID`` / ``Order Date`` / ``Sales`` / ``Category`` are
    accepted as-is.

    Raises
    ------
    ValueError
        If a required column is missing.
    """
    path = Path(path)
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df = df.rename(columns=normalise_column_name)

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Transaction file {path} missing required columns: {missing}")

    columns = list(REQUIRED_COLUMNS)
    if "category" in df.columns:
        columns.append("category")

    logger.info(f"Reading {len(df)} rows from {path}")
    return transactions_from_records(df[columns].to_dict("records"))
