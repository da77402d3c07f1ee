"""
Tests for cleaned-data export (CSV / XLSX) and the cleaning report.

Run with:
    pytest backend/tests/test_export_report.py -v
"""

from __future__ import annotations

import io
import os
import sys

# ── Make the backend package importable without installing it ──────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pandas as pd
import pytest

from datatidy.services.export import export_csv, export_filename, export_rows, export_xlsx
from datatidy.services.report import build_report, render_report_text
from datatidy.services.storage import DatasetRecord

ROWS = [{"id": 1, "name": "Ann", "score": 2.5}, {"id": 2, "name": None, "score": 3}]


def make_record(**overrides) -> DatasetRecord:
    stats = {
        "totalRows": 3,
        "totalColumns": 2,
        "duplicatesRemoved": 1,
        "nullValuesFixed": 2,
        "outlierCount": 0,
        "columnsRenamed": [
            {"original": "Full Name", "cleaned": "full_name", "type": "string"},
            {"original": "Age", "cleaned": "age", "type": "integer"},
        ],
        "dataTypeSummary": {"string": 1, "integer": 1},
    }
    values = dict(
        id=1,
        file_name="abc.csv",
        original_file_name="people.csv",
        file_size_bytes=2048,
        file_type="csv",
        created_at="2024-01-01T00:00:00",
        raw_data=[],
        cleaned_data=[],
        cleaning_stats=stats,
        is_processed=True,
    )
    values.update(overrides)
    return DatasetRecord(**values)


# ═════════════════════════════════════════════════════════════════════════════
# Export
# ═════════════════════════════════════════════════════════════════════════════

class TestExport:
    def test_filename(self):
        assert export_filename("sales.2024.csv", "xlsx") == "sales_cleaned.xlsx"
        assert export_filename("report.xlsx", "csv") == "report_cleaned.csv"

    def test_csv_keeps_integers_and_blanks(self):
        text = export_csv(ROWS).decode("utf-8")
        assert text.splitlines() == ["id,name,score", "1,Ann,2.5", "2,,3"]

    def test_xlsx_round_trips_through_openpyxl(self):
        df = pd.read_excel(io.BytesIO(export_xlsx(ROWS)), sheet_name="Cleaned Data")
        assert list(df.columns) == ["id", "name", "score"]
        assert df["id"].tolist() == [1, 2]
        assert df["score"].tolist() == [2.5, 3]

    def test_dispatch(self):
        assert export_rows(ROWS, "csv") == export_csv(ROWS)
        assert export_rows(ROWS, "xlsx")[:2] == b"PK"

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            export_rows(ROWS, "json")


# ═════════════════════════════════════════════════════════════════════════════
# Report
# ═════════════════════════════════════════════════════════════════════════════

class TestReport:
    def test_build_report(self):
        report = build_report(make_record())
        assert report["file_name"] == "people.csv"
        assert report["file_size"] == 2048
        assert report["stats"].duplicates_removed == 1
        assert report["stats"].columns_renamed[0].cleaned == "full_name"

    def test_text_report_sections(self):
        text = render_report_text(make_record())
        for heading in (
            "Data Cleaning Report",
            "Cleaning summary",
            "Column renaming details",
            "Data type distribution",
            "Notes",
        ):
            assert heading in text
        assert "File name:      people.csv" in text
        assert "File size:      2.0 KB" in text
        assert "Duplicates removed:  1" in text

    def test_text_report_rename_table(self):
        lines = render_report_text(make_record()).splitlines()
        header = next(i for i, line in enumerate(lines) if line.startswith("Original"))
        assert lines[header].split() == ["Original", "Cleaned", "Type"]
        assert lines[header + 2].split() == ["Full", "Name", "full_name", "string"]
        assert lines[header + 3].split() == ["Age", "age", "integer"]

    def test_text_report_type_percentages(self):
        text = render_report_text(make_record())
        assert "(50.0%)" in text

    def test_text_report_without_renames(self):
        record = make_record(
            cleaning_stats={"totalRows": 1, "totalColumns": 1, "columnsRenamed": [], "dataTypeSummary": {}}
        )
        text = render_report_text(record)
        assert "No columns were renamed during the cleaning process." in text
        assert "No column types were inferred." in text
