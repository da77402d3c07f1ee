"""
Tests for ChartEngine — chart-ready data from cleaned rows.

Run with:
    pytest backend/tests/test_chart_engine.py -v
"""

from __future__ import annotations

import os
import sys

# ── Make the backend package importable without installing it ──────────────
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from datatidy.services.chart_engine import ChartEngine

ROWS = [
    {"region": "north", "unit_price": 1, "qty": 10, "shipped": "2024-01-01", "paid": "yes"},
    {"region": "south", "unit_price": 10, "qty": 20, "shipped": "2024-01-02", "paid": "no"},
    {"region": "north", "unit_price": 3, "qty": 30, "shipped": "2024-01-03", "paid": "yes"},
    {"region": None, "unit_price": 4, "qty": 40, "shipped": "", "paid": "no"},
]


@pytest.fixture
def engine():
    return ChartEngine(ROWS)


# ═════════════════════════════════════════════════════════════════════════════
# Column discovery
# ═════════════════════════════════════════════════════════════════════════════

class TestColumnDiscovery:
    def test_numeric_columns(self, engine):
        # ISO dates start with a number, as they do for the lenient parser
        assert engine.numeric_columns() == ["unit_price", "qty", "shipped"]

    def test_categorical_columns(self, engine):
        assert engine.categorical_columns() == ["region", "paid"]


# ═════════════════════════════════════════════════════════════════════════════
# Chart data
# ═════════════════════════════════════════════════════════════════════════════

class TestHistogram:
    def test_ten_bins_cover_every_value(self):
        data = ChartEngine([{"v": i} for i in range(10)]).histogram("v")
        assert len(data) == 10
        assert sum(b["value"] for b in data) == 10
        assert data[0]["name"] == "0.0-0.9"

    def test_constant_column_lands_in_first_bin(self):
        data = ChartEngine([{"v": 5}, {"v": 5}, {"v": 5}]).histogram("v")
        assert data[0]["value"] == 3

    def test_non_numeric_column(self):
        assert ChartEngine([{"v": "a"}]).histogram("v") == []


class TestBar:
    def test_mean_per_category_largest_first(self, engine):
        assert engine.bar("unit_price", "region") == [
            {"name": "south", "value": 10.0},
            {"name": "Unknown", "value": 4.0},
            {"name": "north", "value": 2.0},
        ]

    def test_defaults_to_first_categorical_column(self, engine):
        assert engine.bar("qty")[0] == {"name": "Unknown", "value": 40.0}

    def test_falls_back_to_histogram_without_categories(self):
        engine = ChartEngine([{"v": i} for i in range(20)])
        assert len(engine.bar("v")) == 10


class TestPieAndScatter:
    def test_pie_counts(self, engine):
        assert engine.pie("region") == [
            {"name": "north", "value": 2},
            {"name": "south", "value": 1},
            {"name": "Unknown", "value": 1},
        ]

    def test_pie_keeps_top_eight(self):
        rows = [{"c": f"k{i}"} for i in range(12)]
        assert len(ChartEngine(rows).pie("c")) == 8

    def test_scatter_points(self, engine):
        points = engine.scatter("unit_price", "qty")
        assert points[0] == {"x": 1.0, "y": 10.0, "z": 10}
        assert len(points) == 4

    def test_scatter_limit(self):
        rows = [{"x": i, "y": i} for i in range(80)]
        assert len(ChartEngine(rows).scatter("x", "y")) == 50


class TestTypeDistribution:
    def test_counts_each_kind(self, engine):
        dist = {d["name"]: d["value"] for d in engine.type_distribution()}
        assert dist == {"string": 1, "numeric": 2, "date": 1, "boolean": 1}


# ═════════════════════════════════════════════════════════════════════════════
# generate_chart_data
# ═════════════════════════════════════════════════════════════════════════════

class TestGenerateChartData:
    def test_labels_are_titled(self, engine):
        chart = engine.generate_chart_data("histogram", "unit_price")
        assert chart["kind"] == "histogram"
        assert chart["xLabel"] == "Unit Price"
        assert chart["yLabel"] == "Count"

    def test_types_needs_no_columns(self, engine):
        assert engine.generate_chart_data("types")["kind"] == "types"

    def test_unknown_kind(self, engine):
        with pytest.raises(ValueError):
            engine.generate_chart_data("radar", "qty")

    def test_missing_x(self, engine):
        with pytest.raises(ValueError):
            engine.generate_chart_data("pie")

    def test_scatter_needs_y(self, engine):
        with pytest.raises(ValueError):
            engine.generate_chart_data("scatter", "qty")
