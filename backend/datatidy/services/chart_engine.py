"""
ChartEngine — prepares chart-ready data (histogram, bar, pie, scatter,
column type distribution) from cleaned rows.
"""

from typing import Any, Optional

import numpy as np
import pandas as pd

from datatidy.services.type_inference import is_missing, parse_date, parse_float, to_number

CHART_KINDS = ("histogram", "bar", "pie", "scatter", "types")

_BOOLEAN_TOKENS = {"true", "false", "0", "1", "yes", "no"}


class ChartEngine:
    def __init__(self, rows: list[dict[str, Any]]):
        self.df = pd.DataFrame(rows, dtype=object)

    def _numeric(self, column: str) -> pd.Series:
        return pd.to_numeric(self.df[column].map(parse_float), errors="coerce")

    def numeric_columns(self, sample_size: int = 10) -> list[str]:
        """Columns whose first values are all blank or start with a number."""
        cols = []
        for col in self.df.columns:
            sample = self.df[col].head(sample_size)
            if all(is_missing(v) or parse_float(v) is not None for v in sample):
                cols.append(col)
        return cols

    def categorical_columns(self, max_categories: int = 10) -> list[str]:
        numeric = set(self.numeric_columns())
        return [
            col
            for col in self.df.columns
            if col not in numeric and self.df[col].nunique(dropna=False) <= max_categories
        ]

    def histogram(self, column: str, bins: int = 10) -> list[dict]:
        if column not in self.df.columns:
            return []
        values = np.sort(self._numeric(column).dropna().to_numpy())
        if len(values) == 0:
            return []

        low, high = float(values[0]), float(values[-1])
        bin_size = (high - low) / bins
        data = [
            {"name": f"{low + i * bin_size:.1f}-{low + (i + 1) * bin_size:.1f}", "value": 0}
            for i in range(bins)
        ]
        for val in values:
            idx = 0 if bin_size == 0 else min(int((val - low) // bin_size), bins - 1)
            data[idx]["value"] += 1
        return data

    def bar(self, value_column: str, category_column: Optional[str] = None) -> list[dict]:
        """Mean of ``value_column`` per category, largest first (top 10)."""
        if value_column not in self.df.columns:
            return []

        category_column = category_column or next(iter(self.categorical_columns()), None)
        if not category_column or category_column not in self.df.columns:
            if value_column in self.numeric_columns():
                return self.histogram(value_column)
            return []

        df = pd.DataFrame(
            {
                "category": self.df[category_column].map(
                    lambda v: "Unknown" if is_missing(v) else str(v)
                ),
                "value": self._numeric(value_column),
            }
        ).dropna(subset=["value"])
        grouped = df.groupby("category", sort=False)["value"].mean()
        grouped = grouped.sort_values(ascending=False, kind="stable").head(10)
        return [{"name": str(k), "value": round(float(v), 4)} for k, v in grouped.items()]

    def pie(self, category_column: str) -> list[dict]:
        if category_column not in self.df.columns:
            return []
        labels = self.df[category_column].map(lambda v: "Unknown" if is_missing(v) else str(v))
        counts = labels.value_counts(sort=False).sort_values(ascending=False, kind="stable").head(8)
        return [{"name": str(k), "value": int(v)} for k, v in counts.items()]

    def scatter(self, x_column: str, y_column: str, limit: int = 50) -> list[dict]:
        if x_column not in self.df.columns or y_column not in self.df.columns:
            return []
        df = pd.DataFrame({"x": self._numeric(x_column), "y": self._numeric(y_column)}).dropna()
        return [
            {"x": float(r.x), "y": float(r.y), "z": 10}
            for r in df.head(limit).itertuples(index=False)
        ]

    def type_distribution(self, sample_size: int = 100) -> list[dict]:
        counts: dict[str, int] = {}
        for col in self.df.columns:
            present = [v for v in self.df[col].head(sample_size) if not is_missing(v)]
            if all(to_number(v) is not None for v in present):
                kind = "numeric"
            elif all(parse_date(v) is not None for v in present):
                kind = "date"
            elif all(str(v).lower() in _BOOLEAN_TOKENS for v in present):
                kind = "boolean"
            else:
                kind = "string"
            counts[kind] = counts.get(kind, 0) + 1
        return [{"name": k, "value": v} for k, v in counts.items()]

    def generate_chart_data(self, kind: str, x: Optional[str] = None, y: Optional[str] = None) -> dict:
        if kind not in CHART_KINDS:
            raise ValueError(f"Unknown chart kind '{kind}'. Use one of: {', '.join(CHART_KINDS)}")

        if kind == "types":
            return {"kind": kind, "data": self.type_distribution()}
        if not x:
            raise ValueError(f"Chart kind '{kind}' needs an x column")

        if kind == "histogram":
            data = self.histogram(x)
        elif kind == "bar":
            data = self.bar(x, y)
        elif kind == "pie":
            data = self.pie(x)
        else:
            if not y:
                raise ValueError("Scatter charts need both x and y columns")
            data = self.scatter(x, y)

        x_label = x.replace("_", " ").title()
        y_label = y.replace("_", " ").title() if y else "Count"
        return {"kind": kind, "data": data, "xLabel": x_label, "yLabel": y_label}
