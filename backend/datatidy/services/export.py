"""Serialising cleaned rows and cleaning stats for download."""

import io
import os
from typing import Any

import pandas as pd

EXPORT_FORMATS = ("csv", "xlsx")

MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def export_filename(original_name: str, fmt: str) -> str:
    stem = os.path.basename(original_name).split(".")[0] or "dataset"
    return f"{stem}_cleaned.{fmt}"


def export_csv(rows: list[dict[str, Any]]) -> bytes:
    return pd.DataFrame(rows, dtype=object).to_csv(index=False).encode("utf-8")


def export_xlsx(rows: list[dict[str, Any]]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame(rows, dtype=object).to_excel(writer, sheet_name="Cleaned Data", index=False)
    return buffer.getvalue()


def export_rows(rows: list[dict[str, Any]], fmt: str) -> bytes:
    if fmt == "csv":
        return export_csv(rows)
    if fmt == "xlsx":
        return export_xlsx(rows)
    raise ValueError(f"Invalid format '{fmt}'. Use 'csv' or 'xlsx'")
