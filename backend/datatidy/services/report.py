"""Cleaning report — JSON payload and a plain-text rendering of the same facts."""

from datatidy.schemas.cleaning import CleaningStats
from datatidy.services.storage import DatasetRecord


def build_report(record: DatasetRecord) -> dict:
    return {
        "file_name": record.original_file_name,
        "file_type": record.file_type,
        "file_size": record.file_size_bytes,
        "created_at": record.created_at,
        "stats": CleaningStats.model_validate(record.cleaning_stats),
    }


def _table(rows: list[tuple[str, ...]]) -> list[str]:
    widths = [max(len(r[i]) for r in rows) for i in range(len(rows[0]))]
    lines = []
    for n, row in enumerate(rows):
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip())
        if n == 0:
            lines.append("  ".join("-" * w for w in widths))
    return lines


def render_report_text(record: DatasetRecord) -> str:
    stats = CleaningStats.model_validate(record.cleaning_stats)
    lines = [
        "Data Cleaning Report",
        "====================",
        "",
        f"File name:      {record.original_file_name}",
        f"File type:      {record.file_type}",
        f"File size:      {record.file_size_bytes / 1024:.1f} KB",
        f"Uploaded:       {record.created_at}",
        f"Total rows:     {stats.total_rows}",
        f"Total columns:  {stats.total_columns}",
        "",
        "Cleaning summary",
        "----------------",
        f"Duplicates removed:  {stats.duplicates_removed}",
        f"Null values fixed:   {stats.null_values_fixed}",
        f"Outliers removed:    {stats.outlier_count}",
        f"Columns renamed:     {len(stats.columns_renamed)}",
        "",
        "Column renaming details",
        "-----------------------",
    ]

    if stats.columns_renamed:
        rows = [("Original", "Cleaned", "Type")]
        rows += [(c.original, c.cleaned, c.type) for c in stats.columns_renamed]
        lines += _table(rows)
    else:
        lines.append("No columns were renamed during the cleaning process.")

    lines += ["", "Data type distribution", "----------------------"]
    if stats.data_type_summary:
        total = sum(stats.data_type_summary.values())
        for name, count in stats.data_type_summary.items():
            lines.append(f"{name:<10} {count:>4}  ({count / total * 100:.1f}%)")
    else:
        lines.append("No column types were inferred.")

    lines += [
        "",
        "Notes",
        "-----",
        "* Outliers are detected with the IQR method (1.5 * interquartile range).",
        "* The original upload is preserved; cleaning works on a copy.",
    ]
    return "\n".join(lines) + "\n"
