"""Pandas DataFrame adapters for transactions and the customer table."""

from typing import List, Optional, Sequence

import pandas as pd  # type: ignore

from rfm_audit.foundation.model_data import ModelData
from rfm_audit.foundation.transactions import Transaction, transactions_from_records
from ._utils import record_to_row

#: Column order of the comprehensive customer export.
MODEL_DATA_COLUMNS = [
    "customer_id",
    "recency",
    "frequency",
    "monetary",
    "first_purchase",
    "last_purchase",
    "avg_order_value",
    "tenure_days",
    "r_score",
    "f_score",
    "m_score",
    "future_spend",
    "is_churn",
    "segment",
    "value_tier",
    "engagement_tier",
    "strategic_segment",
    "top_category",
]


def model_data_to_dataframe(model_data: Sequence[ModelData]) -> pd.DataFrame:
    """Convert per-customer rows to a DataFrame.

    Args:
        model_data: Sequence of ModelData rows

    Returns:
        DataFrame with one row per customer in MODEL_DATA_COLUMNS order.
        Money columns are floats; is_churn is boolean.

    Example:
        >>> result = run_pipeline(transactions)
        >>> df = model_data_to_dataframe(result.model_data)
        >>> df.groupby('segment')['future_spend'].mean()
    """
    if not model_data:
        return pd.DataFrame(columns=MODEL_DATA_COLUMNS)
    df = pd.DataFrame([record_to_row(row) for row in model_data])
    return df[MODEL_DATA_COLUMNS]


def dataframe_to_transactions(
    df: pd.DataFrame,
    customer_id_col: str = "customer_id",
    order_date_col: str = "order_date",
    sales_col: str = "sales",
    category_col: Optional[str] = "category",
) -> List[Transaction]:
    """Convert a raw transaction DataFrame into cleaned transactions.

    Rows with blank customer ids, unparseable dates or non-positive sales
    are dropped, exactly as in the CSV loader.

    Args:
        df: DataFrame of raw transactions
        *_col: Column name mappings for flexibility. category_col may be
            None or absent from the frame.

    Returns:
        List of valid Transaction objects

    Raises:
        ValueError: If DataFrame is missing a required column

    Example:
        >>> txns = dataframe_to_transactions(
        ...     raw_df, customer_id_col='Customer ID', order_date_col='Order Date',
        ...     sales_col='Sales', category_col='Category'
        ... )
    """
    mapping = {
        "customer_id": customer_id_col,
        "order_date": order_date_col,
        "sales": sales_col,
    }
    missing_cols = set(mapping.values()) - set(df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if category_col is not None and category_col in df.columns:
        mapping["category"] = category_col

    if df.empty:
        return []

    renamed = df[list(mapping.values())].rename(
        columns={source: target for target, source in mapping.items()}
    )
    # NaN floats would otherwise survive as the string "nan"
    renamed = renamed.astype(object).where(renamed.notna(), None)
    return transactions_from_records(renamed.to_dict("records"))
