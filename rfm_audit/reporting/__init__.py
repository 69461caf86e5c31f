"""Flat-file exports of pipeline results."""

from rfm_audit.reporting.exports import (
    export_customer_table_csv,
    export_feasibility_json,
    export_methodology_markdown,
    export_pipeline_result,
    export_records_csv,
    feasibility_to_dict,
)

__all__ = [
    "export_customer_table_csv",
    "export_feasibility_json",
    "export_methodology_markdown",
    "export_pipeline_result",
    "export_records_csv",
    "feasibility_to_dict",
]
