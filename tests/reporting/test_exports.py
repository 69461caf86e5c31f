"""Tests for flat-file exports of pipeline results."""

import json
from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from rfm_audit.analyses.feasibility import evaluate_feasibility
from rfm_audit.foundation.transactions import Transaction
from rfm_audit.pipeline import PipelineConfig, run_pipeline
from rfm_audit.reporting.exports import (
    CUSTOMER_TABLE_FILE,
    FEASIBILITY_FILE,
    METHODOLOGY_FILE,
    RECOMMENDATIONS_FILE,
    RETENTION_FILE,
    TIER_MATRIX_FILE,
    export_feasibility_json,
    export_pipeline_result,
    feasibility_to_dict,
)


@pytest.fixture
def result():
    txns = []
    for n in range(1, 9):
        for k in range(n):
            txns.append(
                Transaction(f"C{n}", date(2017, 1 + k % 6, n), Decimal(10 * n), "Furniture")
            )
        if n % 2 == 0:
            txns.append(Transaction(f"C{n}", date(2017, 8, n), Decimal(3 * n), "Technology"))
    return run_pipeline(txns, PipelineConfig(cutoff_date=date(2017, 7, 1)))


class TestFeasibilityExport:
    def test_dict_includes_undefined_coefficients(self):
        verdict = evaluate_feasibility({"recency": None, "monetary": 0.2})
        payload = feasibility_to_dict(verdict)
        assert payload["correlations"]["recency"]["coefficient"] is None
        assert payload["recommended_path"] == "predictive"
        assert payload["insufficient_data"] is True

    def test_json_file(self, tmp_path):
        verdict = evaluate_feasibility({"recency": 0.03})
        path = tmp_path / "nested" / "feasibility.json"
        export_feasibility_json(verdict, path, metadata={"source": "test"})
        with open(path) as f:
            report = json.load(f)
        assert report["metadata"] == {"source": "test"}
        assert report["feasibility"]["weak_signal"] is True
        assert "timestamp" in report


class TestExportPipelineResult:
    def test_writes_every_output(self, result, tmp_path):
        written = export_pipeline_result(result, tmp_path)
        assert len(written) == 12
        assert all(path.exists() for path in written.values())

    def test_customer_table(self, result, tmp_path):
        export_pipeline_result(result, tmp_path)
        df = pd.read_csv(tmp_path / CUSTOMER_TABLE_FILE)
        assert len(df) == 8
        assert df["customer_id"].is_unique
        assert df["value_tier"].notna().all()

    def test_summary_tables(self, result, tmp_path):
        export_pipeline_result(result, tmp_path)
        retention = pd.read_csv(tmp_path / RETENTION_FILE)
        assert retention["n_customers"].sum() == 8
        matrix = pd.read_csv(tmp_path / TIER_MATRIX_FILE, index_col="engagement_tier")
        assert matrix.values.sum() == 8
        recommendations = pd.read_csv(tmp_path / RECOMMENDATIONS_FILE)
        assert len(recommendations) == 4

    def test_methodology_notes(self, result, tmp_path):
        export_pipeline_result(result, tmp_path)
        text = (tmp_path / METHODOLOGY_FILE).read_text()
        assert "# Customer Analytics Methodology Notes" in text
        assert "Recommended path" in text
        assert "2017-07-01" in text
        with open(tmp_path / FEASIBILITY_FILE) as f:
            assert json.load(f)["metadata"]["customers"] == 8
