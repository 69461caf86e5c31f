"""Shared utilities for pandas conversion operations."""

from dataclasses import asdict, is_dataclass
from decimal import Decimal
from typing import Any


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def record_to_row(record: Any) -> dict[str, Any]:
    """Flatten a dataclass record into a pandas-friendly dict.

    Decimal fields become floats; everything else is kept as-is.

    Raises:
        TypeError: If record is not a dataclass instance
    """
    if not is_dataclass(record) or isinstance(record, type):
        raise TypeError(f"Expected dataclass instance, got {type(record)}")
    return {
        key: decimal_to_float(value) if isinstance(value, Decimal) else value
        for key, value in asdict(record).items()
    }
