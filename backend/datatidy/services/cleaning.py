"""
DataCleaningPipeline — 5-stage data cleaning service.

Stage 1: Column standardisation  (standardize_column_names, also infers column types)
Stage 2: Deduplication  (remove_duplicates)
Stage 3: Missing-value imputation  (fill_missing_values)
Stage 4: Outlier removal  (remove_outliers_iqr)
Stage 5: Type coercion  (fix_data_types)

Each stage replaces ``self.df`` with its output and writes its own counter in
``self.summary`` exactly once.  The rows handed to ``clean_data`` are never
mutated; a run either returns the complete cleaned rows + stats or raises
before producing anything.
"""

import logging
import re
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence, Union

import numpy as np
import pandas as pd

from datatidy.schemas.cleaning import (
    MISSING_VALUE_STRATEGIES,
    CleaningStats,
    ProcessingOptions,
)
from datatidy.services.type_inference import (
    SAMPLE_SIZE,
    STRING,
    as_plain_number,
    coerce_value,
    infer_column_type,
    is_missing,
    parse_float,
)

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w_]", re.ASCII)


class CleaningError(Exception):
    """Base exception for data cleaning errors."""


class InvalidInputError(CleaningError):
    """The dataset is empty or its rows do not share one column set."""


class UnsupportedStrategyError(CleaningError):
    """The missing-value strategy is not one of MISSING_VALUE_STRATEGIES."""


@dataclass
class CleaningResult:
    rows: list[dict[str, Any]]
    stats: CleaningStats
    audit_trail: list[dict[str, Any]] = field(default_factory=list)


# ─────────────────────────────────────────────────────────────────────────────
# Module-level helpers
# ─────────────────────────────────────────────────────────────────────────────

def normalize_column_name(name: Any) -> str:
    """Trim, lowercase, underscore whitespace runs and drop non-word characters."""
    cleaned = _WHITESPACE_RE.sub("_", str(name).strip().lower())
    return _NON_WORD_RE.sub("", cleaned)


def iqr_bounds(sorted_values: Sequence[float]) -> tuple[float, float]:
    """Positional (non-interpolated) quartiles → (Q1 - 1.5·IQR, Q3 + 1.5·IQR)."""
    n = len(sorted_values)
    q1 = sorted_values[int(n * 0.25)]
    q3 = sorted_values[int(n * 0.75)]
    iqr = q3 - q1
    return q1 - 1.5 * iqr, q3 + 1.5 * iqr


def _dedupe_key(value: Any) -> Any:
    if isinstance(value, (bool, np.bool_)):
        return ("bool", bool(value))
    return value


def _mode(values: list):
    # Counter.most_common keeps first-seen order among equal counts
    return Counter(values).most_common(1)[0][0]


def compute_fill_value(
    values: list, strategy: str, constant_value: Optional[str] = None
) -> Any:
    """
    Replacement for the missing cells of one column, given its present values.

    Numeric strategies work over the values that parse as numbers; when none
    do, the most frequent raw value is used instead.  Returns None when the
    column has no present values to compute from.
    """
    if strategy not in MISSING_VALUE_STRATEGIES:
        raise UnsupportedStrategyError(f"Unknown missing value strategy '{strategy}'")

    if strategy == "constant":
        return constant_value or ""

    if not values:
        return None

    numbers = [n for n in (parse_float(v) for v in values) if n is not None]
    if not numbers:
        return _mode(values)

    if strategy == "mean":
        return as_plain_number(np.mean(numbers))
    if strategy == "median":
        return as_plain_number(np.median(numbers))
    return as_plain_number(_mode(numbers))


def rows_to_frame(rows: Union[Sequence[Mapping], pd.DataFrame]) -> pd.DataFrame:
    """Validate a raw row collection and load it into an object-dtype DataFrame."""
    if isinstance(rows, pd.DataFrame):
        if rows.empty or len(rows.columns) == 0:
            raise InvalidInputError("Dataset is empty")
        return rows.astype(object)

    if not isinstance(rows, Sequence) or isinstance(rows, (str, bytes)) or len(rows) == 0:
        raise InvalidInputError("Dataset is empty")

    first = rows[0]
    if not isinstance(first, Mapping):
        raise InvalidInputError("Row 0 is not a mapping of column names to values")
    columns = list(first.keys())
    if not columns:
        raise InvalidInputError("Dataset has no columns")

    expected = set(columns)
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise InvalidInputError(f"Row {i} is not a mapping of column names to values")
        if set(row.keys()) != expected:
            raise InvalidInputError(f"Row {i} does not have the same columns as row 0")

    return pd.DataFrame(
        [[row[c] for c in columns] for row in rows], columns=columns, dtype=object
    )


def _plain(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    if value is pd.NaT:
        return None
    return value


def frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    columns = list(df.columns)
    return [
        {col: _plain(value) for col, value in zip(columns, record)}
        for record in df.itertuples(index=False, name=None)
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────────────────────

class DataCleaningPipeline:
    def __init__(
        self,
        df: pd.DataFrame,
        options: ProcessingOptions,
        dataset_id: Optional[int] = None,
    ):
        self.dataset_id = dataset_id
        self.df = df.copy()
        self.options = options
        # cleaned column name → inferred type; the first original column wins
        self.column_types: dict[str, str] = {}
        self.audit_trail: list[dict[str, Any]] = []
        self.summary: dict[str, Any] = {
            "total_rows": len(df),
            "total_columns": len(df.columns),
            "duplicates_removed": 0,
            "null_values_fixed": 0,
            "outlier_count": 0,
            "columns_renamed": [],
            "data_type_summary": {},
        }

    # ─────────────────────────────────────────────────────────────────
    # Internal helpers
    # ─────────────────────────────────────────────────────────────────

    def _log(
        self,
        action: str,
        reason: str,
        column_name: Optional[str] = None,
        row_index: Optional[int] = None,
        original_value: Any = None,
        new_value: Any = None,
    ):
        self.audit_trail.append(
            {
                "action": action,
                "reason": reason,
                "column_name": str(column_name) if column_name is not None else None,
                "row_index": row_index,
                "original_value": str(original_value) if original_value is not None else None,
                "new_value": str(new_value) if new_value is not None else None,
                "timestamp": datetime.utcnow(),
            }
        )

    # ─────────────────────────────────────────────────────────────────
    # STAGE 1: Column standardisation + type inference
    # ─────────────────────────────────────────────────────────────────

    def standardize_column_names(self) -> list[dict[str, str]]:
        """
        Rename every column and record its inferred type.

        Skipped entirely when standardisation is off, which also leaves the
        type map empty so fix_data_types has nothing to act on.
        """
        if not self.options.standardize_column_names:
            return []

        entries = []
        type_counts: dict[str, int] = {}
        mapping = {}
        for col in self.df.columns:
            cleaned = normalize_column_name(col)
            col_type = infer_column_type(self.df[col].head(SAMPLE_SIZE).tolist())
            entries.append({"original": str(col), "cleaned": cleaned, "type": col_type})
            type_counts[col_type] = type_counts.get(col_type, 0) + 1
            self.column_types.setdefault(cleaned, col_type)
            mapping[col] = cleaned
            if cleaned != str(col):
                self._log(
                    action="normalize_column_name",
                    reason=f"Column name normalised to lowercase with underscores ({col_type})",
                    column_name=col,
                    original_value=col,
                    new_value=cleaned,
                )

        # Colliding names keep the first position and the last column's values
        renamed: dict[str, pd.Series] = {}
        for original, cleaned in mapping.items():
            renamed[cleaned] = self.df[original]
        if len(renamed) < len(mapping):
            logger.warning(
                "Column names collided after standardisation: %d columns → %d",
                len(mapping),
                len(renamed),
            )

        self.df = pd.DataFrame(renamed, index=self.df.index)
        self.summary["columns_renamed"] = entries
        self.summary["data_type_summary"] = type_counts
        logger.debug("Standardised %d columns: %s", len(entries), type_counts)
        return entries

    # ─────────────────────────────────────────────────────────────────
    # STAGE 2: Deduplication
    # ─────────────────────────────────────────────────────────────────

    def remove_duplicates(self) -> int:
        """Remove fully duplicate rows, keeping the first occurrence."""
        # True and 1 hash alike in pandas; tag bools so only 1 and 1.0 compare equal
        dupe_mask = self.df.map(_dedupe_key).duplicated(keep="first")
        dupe_indices = self.df.index[dupe_mask].tolist()

        for idx in dupe_indices:
            self._log(
                action="remove_duplicate",
                reason="Row is an exact duplicate of a previous row",
                row_index=int(idx),
            )

        self.df = self.df[~dupe_mask].reset_index(drop=True)
        count = len(dupe_indices)
        self.summary["duplicates_removed"] = count
        logger.debug("Removed %d duplicate rows", count)
        return count

    # ─────────────────────────────────────────────────────────────────
    # STAGE 3: Missing-value imputation
    # ─────────────────────────────────────────────────────────────────

    def identify_missing_values(self) -> dict:
        """Return per-column missing-cell stats."""
        result = {}
        for col in self.df.columns:
            count = int(self.df[col].map(is_missing).sum())
            if count > 0:
                pct = round(count / len(self.df) * 100, 2)
                result[col] = {"count": count, "percentage": pct}
        return result

    def fill_missing_values(self) -> int:
        """Fill every missing cell of a column with one replacement value."""
        strategy = self.options.missing_value_strategy
        constant_value = self.options.constant_value

        # Constant strategy without a constant has nothing to fill with
        if strategy == "constant" and constant_value is None:
            self.summary["null_values_fixed"] = 0
            return 0

        fixed = 0
        for col in self.identify_missing_values():
            missing_mask = self.df[col].map(is_missing).astype(bool)
            present = [v for v in self.df[col] if not is_missing(v)]
            fill_value = compute_fill_value(present, strategy, constant_value)

            if fill_value is None:
                self._log(
                    action="skip_fill_missing",
                    reason=f"Column has no values to compute a {strategy} from",
                    column_name=col,
                )
                continue

            count = int(missing_mask.sum())
            self.df.loc[missing_mask, col] = fill_value
            self._log(
                action="fill_missing",
                reason=f"{count} missing value(s) filled with {strategy} ({fill_value!r})",
                column_name=col,
                new_value=fill_value,
            )
            fixed += count

        self.summary["null_values_fixed"] = fixed
        logger.debug("Filled %d missing cells using %s", fixed, strategy)
        return fixed

    # ─────────────────────────────────────────────────────────────────
    # STAGE 4: Outlier removal (IQR)
    # ─────────────────────────────────────────────────────────────────

    def remove_outliers_iqr(self) -> int:
        """
        Drop rows whose value lies outside the IQR band, column by column.

        Bounds for each column are computed on the rows that survived the
        previous columns, so the result depends on column order.  Values
        that do not parse as numbers never cause a row to be removed.
        """
        if not self.options.remove_outliers:
            return 0

        removed = 0
        for col in list(self.df.columns):
            numeric = pd.to_numeric(self.df[col].map(parse_float), errors="coerce")
            values = np.sort(numeric.dropna().to_numpy())
            if len(values) == 0:
                continue

            lower, upper = iqr_bounds(values)
            mask = (numeric < lower) | (numeric > upper)
            if not mask.any():
                continue

            for idx in self.df.index[mask]:
                val = self.df.at[idx, col]
                self._log(
                    action="remove_outlier",
                    reason=f"Value {val} is outside IQR range [{lower:.4g}, {upper:.4g}]",
                    column_name=col,
                    row_index=int(idx),
                    original_value=val,
                )

            removed += int(mask.sum())
            self.df = self.df[~mask].reset_index(drop=True)

        self.summary["outlier_count"] = removed
        logger.debug("Removed %d outlier rows", removed)
        return removed

    # ─────────────────────────────────────────────────────────────────
    # STAGE 5: Type coercion
    # ─────────────────────────────────────────────────────────────────

    def fix_data_types(self) -> int:
        """Cast cells to the type inferred for their column; unparseable cells stay as they are."""
        if not self.options.fix_data_types or not self.column_types:
            return 0

        converted = 0
        for col in self.df.columns:
            col_type = self.column_types.get(col)
            if col_type is None or col_type == STRING:
                continue

            new_values = []
            for idx, value in zip(self.df.index, self.df[col]):
                if is_missing(value):
                    new_values.append(value)
                    continue
                result = coerce_value(value, col_type)
                if not result.converted:
                    self._log(
                        action="coerce_fallback",
                        reason=f"Value could not be parsed as {col_type}; left unchanged",
                        column_name=col,
                        row_index=int(idx),
                        original_value=value,
                    )
                else:
                    converted += 1
                new_values.append(result.value)

            self.df[col] = pd.Series(new_values, index=self.df.index, dtype=object)

        logger.debug("Coerced %d cells", converted)
        return converted

    # ─────────────────────────────────────────────────────────────────
    # Run full pipeline
    # ─────────────────────────────────────────────────────────────────

    def run_all(self) -> CleaningResult:
        """Execute all 5 stages in sequence."""
        if self.options.missing_value_strategy not in MISSING_VALUE_STRATEGIES:
            raise UnsupportedStrategyError(
                f"Unknown missing value strategy '{self.options.missing_value_strategy}'. "
                f"Expected one of: {', '.join(MISSING_VALUE_STRATEGIES)}"
            )

        self.standardize_column_names()
        self.remove_duplicates()
        self.fill_missing_values()
        self.remove_outliers_iqr()
        self.fix_data_types()

        stats = CleaningStats(**self.summary)
        logger.info(
            "Cleaned dataset %s: %d → %d rows (duplicates=%d, nulls fixed=%d, outliers=%d)",
            self.dataset_id if self.dataset_id is not None else "<unsaved>",
            stats.total_rows,
            len(self.df),
            stats.duplicates_removed,
            stats.null_values_fixed,
            stats.outlier_count,
        )
        return CleaningResult(
            rows=frame_to_rows(self.df), stats=stats, audit_trail=self.audit_trail
        )


def clean_data(
    raw_rows: Union[Sequence[Mapping], pd.DataFrame],
    options: Union[ProcessingOptions, Mapping, None] = None,
    dataset_id: Optional[int] = None,
) -> CleaningResult:
    """Validate ``raw_rows`` and run the full cleaning pipeline over a copy of them."""
    if options is None:
        options = ProcessingOptions()
    elif not isinstance(options, ProcessingOptions):
        options = ProcessingOptions.model_validate(dict(options))

    df = rows_to_frame(raw_rows)
    return DataCleaningPipeline(df, options, dataset_id=dataset_id).run_all()
