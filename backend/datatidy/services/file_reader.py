"""Reading uploaded CSV / Excel files into row dictionaries."""

import io
import logging
import os
import zipfile
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

from datatidy.config import Settings, get_settings
from datatidy.services.cleaning import InvalidInputError

logger = logging.getLogger(__name__)


def validate_upload(filename: str, file_size: int, settings: Optional[Settings] = None) -> dict:
    settings = settings or get_settings()
    file_ext = os.path.splitext(filename or "")[1].lower()

    if file_ext not in settings.ALLOWED_EXTENSIONS:
        allowed = ", ".join(settings.ALLOWED_EXTENSIONS)
        return {
            "valid": False,
            "error": f"File type '{file_ext}' not allowed. Only {allowed} files are accepted.",
            "file_type": None,
            "file_size": file_size,
        }

    max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if file_size > max_size:
        return {
            "valid": False,
            "error": (
                f"File too large ({file_size / 1024 / 1024:.1f}MB). "
                f"Maximum {settings.MAX_UPLOAD_SIZE_MB}MB."
            ),
            "file_type": None,
            "file_size": file_size,
        }

    return {"valid": True, "error": None, "file_type": file_ext[1:], "file_size": file_size}


def _cell(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float) and np.isnan(value):
        return None
    if value is pd.NaT:
        return None
    return value


def _frame_to_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    columns = [str(c) for c in df.columns]
    return [
        {col: _cell(value) for col, value in zip(columns, record)}
        for record in df.astype(object).itertuples(index=False, name=None)
    ]


def read_file_data(content: bytes, file_type: str) -> list[dict[str, Any]]:
    """
    Parse file bytes into a list of uniform row dicts keyed by the header row.

    CSV cells are kept as text (blank → ""); Excel cells keep their numeric
    values, blanks become None and dates become ISO strings.  Only the first
    sheet of a workbook is read.
    """
    file_type = (file_type or "").lower().lstrip(".")
    try:
        if file_type == "csv":
            df = pd.read_csv(
                io.BytesIO(content),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        elif file_type in ("xlsx", "xls"):
            # object dtype keeps integer cells as int when the column has blanks
            df = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object)
        else:
            raise InvalidInputError(f"Unsupported file type: {file_type or '<none>'}")
    except InvalidInputError:
        raise
    except pd.errors.EmptyDataError as e:
        raise InvalidInputError("File contains no data") from e
    except (ValueError, OSError, zipfile.BadZipFile, pd.errors.ParserError) as e:
        raise InvalidInputError(f"Could not read {file_type} file: {e}") from e

    rows = _frame_to_records(df)
    logger.info("Read %d rows x %d columns from %s file", len(rows), len(df.columns), file_type)
    return rows
