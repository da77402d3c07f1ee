from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MISSING_VALUE_STRATEGIES = ("mean", "median", "mode", "constant")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessingOptions(CamelModel):
    remove_outliers: bool = False
    fix_data_types: bool = True
    standardize_column_names: bool = True
    # Checked by the pipeline so an unknown value raises UnsupportedStrategyError
    missing_value_strategy: str = "mean"
    constant_value: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ColumnRenameEntry(BaseModel):
    original: str
    cleaned: str
    type: str

    model_config = ConfigDict(frozen=True)


class CleaningStats(CamelModel):
    total_rows: int
    total_columns: int
    duplicates_removed: int = 0
    null_values_fixed: int = 0
    outlier_count: int = 0
    columns_renamed: tuple[ColumnRenameEntry, ...] = ()
    data_type_summary: dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class AuditLogEntry(CamelModel):
    action: str
    reason: str
    column_name: Optional[str] = None
    row_index: Optional[int] = None
    original_value: Optional[str] = None
    new_value: Optional[str] = None
    timestamp: datetime


class ProcessResponse(CamelModel):
    id: int
    stats: CleaningStats
    preview: list[dict[str, Any]]
    is_processed: bool
