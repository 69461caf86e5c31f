"""Pandas DataFrame adapters for RFM audit components."""

from .model_data import (
    MODEL_DATA_COLUMNS,
    dataframe_to_transactions,
    model_data_to_dataframe,
)
from .summaries import (
    feasibility_to_dataframe,
    summaries_to_dataframe,
    tier_matrix_to_dataframe,
)

__all__ = [
    # Customer table adapters
    "MODEL_DATA_COLUMNS",
    "dataframe_to_transactions",
    "model_data_to_dataframe",
    # Summary adapters
    "feasibility_to_dataframe",
    "summaries_to_dataframe",
    "tier_matrix_to_dataframe",
]
