"""Synthetic data generation utilities.

This package produces realistic-but-fake store transactions to exercise
the RFM audit pipeline without accessing production data.
"""

from .generator import (
    DEFAULT_CATEGORIES,
    Customer,
    StoreScenario,
    generate_customers,
    generate_store_transactions,
    write_transactions_csv,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "Customer",
    "StoreScenario",
    "generate_customers",
    "generate_store_transactions",
    "write_transactions_csv",
]
