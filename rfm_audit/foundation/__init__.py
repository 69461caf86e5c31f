"""Foundational building blocks for the RFM audit pipeline.

This package exposes the cleaned transaction record and loader, the
temporal split, RFM feature construction, future outcomes and the joined
per-customer analysis table.
"""

from .model_data import ModelData, build_model_data
from .outcomes import OutcomeRecord, calculate_outcomes
from .rfm import CustomerRFMRecord, calculate_rfm, ntile
from .temporal_split import TemporalSplit, split_transactions
from .transactions import (
    Transaction,
    load_transactions,
    transactions_from_records,
)

__all__ = [
    "Transaction",
    "load_transactions",
    "transactions_from_records",
    "TemporalSplit",
    "split_transactions",
    "CustomerRFMRecord",
    "calculate_rfm",
    "ntile",
    "OutcomeRecord",
    "calculate_outcomes",
    "ModelData",
    "build_model_data",
]
