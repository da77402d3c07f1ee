"""
Tests for upload validation and CSV / Excel parsing.

Run with:
    pytest backend/tests/test_file_reader.py -v
"""

from __future__ import annotations

import io
import os
import sys

# ── Make the backend package importable without installing it ──────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pandas as pd
import pytest

from datatidy.config import Settings
from datatidy.schemas.cleaning import ProcessingOptions
from datatidy.services.cleaning import InvalidInputError, clean_data
from datatidy.services.file_reader import read_file_data, validate_upload


def xlsx_bytes(df: pd.DataFrame) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False)
    return buffer.getvalue()


# ═════════════════════════════════════════════════════════════════════════════
# validate_upload
# ═════════════════════════════════════════════════════════════════════════════

class TestValidateUpload:
    settings = Settings(MAX_UPLOAD_SIZE_MB=1)

    @pytest.mark.parametrize("name,file_type", [("a.csv", "csv"), ("B.XLSX", "xlsx"), ("c.xls", "xls")])
    def test_allowed_extensions(self, name, file_type):
        result = validate_upload(name, 100, self.settings)
        assert result["valid"] is True
        assert result["file_type"] == file_type

    def test_rejects_other_extensions(self):
        result = validate_upload("notes.txt", 100, self.settings)
        assert result["valid"] is False
        assert ".txt" in result["error"]

    def test_rejects_missing_extension(self):
        assert validate_upload("data", 100, self.settings)["valid"] is False

    def test_rejects_oversized_file(self):
        result = validate_upload("big.csv", 2 * 1024 * 1024, self.settings)
        assert result["valid"] is False
        assert "1MB" in result["error"]

    def test_size_at_limit_is_accepted(self):
        assert validate_upload("ok.csv", 1024 * 1024, self.settings)["valid"] is True


# ═════════════════════════════════════════════════════════════════════════════
# CSV
# ═════════════════════════════════════════════════════════════════════════════

class TestReadCsv:
    def test_cells_are_text_and_blanks_are_empty(self):
        content = b"Name,Age,City\nAnn,30,\nBob,,Paris\n"
        rows = read_file_data(content, "csv")
        assert rows == [
            {"Name": "Ann", "Age": "30", "City": ""},
            {"Name": "Bob", "Age": "", "City": "Paris"},
        ]

    def test_na_markers_are_kept_as_text(self):
        rows = read_file_data(b"a\nNA\nnull\n", "csv")
        assert [r["a"] for r in rows] == ["NA", "null"]

    def test_blank_lines_are_skipped(self):
        rows = read_file_data(b"a,b\n1,2\n\n3,4\n", "csv")
        assert len(rows) == 2

    def test_header_with_trailing_space_is_preserved(self):
        rows = read_file_data(b"A ,B\n1,2\n", "csv")
        assert list(rows[0]) == ["A ", "B"]

    def test_header_only_gives_no_rows(self):
        assert read_file_data(b"a,b\n", "csv") == []

    def test_empty_file(self):
        with pytest.raises(InvalidInputError):
            read_file_data(b"", "csv")


# ═════════════════════════════════════════════════════════════════════════════
# Excel
# ═════════════════════════════════════════════════════════════════════════════

class TestReadExcel:
    def test_first_sheet_is_read(self):
        df = pd.DataFrame({"Name": ["Ann", "Bob"], "Score": [1, 2.5]})
        rows = read_file_data(xlsx_bytes(df), "xlsx")
        assert rows == [{"Name": "Ann", "Score": 1}, {"Name": "Bob", "Score": 2.5}]

    def test_blank_cells_become_none(self):
        df = pd.DataFrame({"a": ["x", None], "b": [1.0, None]})
        rows = read_file_data(xlsx_bytes(df), "xlsx")
        assert rows[1] == {"a": None, "b": None}

    def test_integer_column_with_blank_keeps_integers(self):
        df = pd.DataFrame({"qty": [1, None, 3]})
        rows = read_file_data(xlsx_bytes(df), "xlsx")
        assert rows == [{"qty": 1}, {"qty": None}, {"qty": 3}]
        assert isinstance(rows[0]["qty"], int)

        result = clean_data(rows, ProcessingOptions(missing_value_strategy="constant", constant_value="0"))
        assert result.stats.columns_renamed[0].type == "integer"
        assert [r["qty"] for r in result.rows] == [1, 0, 3]
        assert all(isinstance(r["qty"], int) for r in result.rows)

    def test_dates_become_iso_strings(self):
        df = pd.DataFrame({"when": pd.to_datetime(["2024-01-05"])})
        rows = read_file_data(xlsx_bytes(df), "xlsx")
        assert rows[0]["when"].startswith("2024-01-05")

    def test_corrupt_workbook(self):
        with pytest.raises(InvalidInputError):
            read_file_data(b"definitely not a zip archive", "xlsx")


class TestUnsupportedType:
    def test_unknown_file_type(self):
        with pytest.raises(InvalidInputError):
            read_file_data(b"{}", "json")
