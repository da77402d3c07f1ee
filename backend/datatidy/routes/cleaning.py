from __future__ import annotations

import io
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, StreamingResponse

from datatidy.config import Settings
from datatidy.dependencies import get_app_settings, get_repository
from datatidy.schemas.cleaning import (
    AuditLogEntry,
    CleaningStats,
    ProcessingOptions,
    ProcessResponse,
)
from datatidy.schemas.upload import (
    DatasetDetailResponse,
    DatasetListItem,
    ReportResponse,
    SaveProjectRequest,
    SaveProjectResponse,
)
from datatidy.services.cleaning import InvalidInputError, UnsupportedStrategyError, clean_data
from datatidy.services.export import EXPORT_FORMATS, MEDIA_TYPES, export_filename, export_rows
from datatidy.services.report import build_report, render_report_text
from datatidy.services.storage import DatasetRecord, DatasetRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["cleaning"])


def _get_dataset_or_404(dataset_id: int, repository: DatasetRepository) -> DatasetRecord:
    dataset = repository.get(dataset_id)
    if not dataset:
        raise HTTPException(status_code=404, detail="Dataset not found")
    return dataset


def _get_processed_or_400(dataset_id: int, repository: DatasetRepository) -> DatasetRecord:
    dataset = _get_dataset_or_404(dataset_id, repository)
    if not dataset.is_processed or dataset.cleaned_data is None:
        raise HTTPException(status_code=400, detail="Dataset has not been processed yet")
    return dataset


def _list_item(dataset: DatasetRecord) -> dict:
    return {
        "id": dataset.id,
        "file_name": dataset.original_file_name,
        "file_size": dataset.file_size_bytes,
        "file_type": dataset.file_type,
        "created_at": dataset.created_at,
        "is_processed": bool(dataset.is_processed),
        "saved_project_name": dataset.saved_project_name,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Processing
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/process/{dataset_id}", response_model=ProcessResponse)
def process_dataset(
    dataset_id: int,
    options: ProcessingOptions,
    repository: DatasetRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
):
    """Run the cleaning pipeline over the dataset's raw rows and store the result."""
    dataset = _get_dataset_or_404(dataset_id, repository)

    try:
        result = clean_data(dataset.raw_data, options, dataset_id=dataset_id)
    except UnsupportedStrategyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))

    audit = [AuditLogEntry(**entry).model_dump(mode="json") for entry in result.audit_trail]
    repository.update(
        dataset_id,
        cleaned_data=result.rows,
        cleaning_stats=result.stats.model_dump(mode="json", by_alias=True),
        audit_trail=audit,
        is_processed=True,
    )

    return ProcessResponse(
        id=dataset_id,
        stats=result.stats,
        preview=result.rows[: settings.PREVIEW_ROWS],
        is_processed=True,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Datasets
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/datasets", response_model=list[DatasetListItem])
def list_datasets(repository: DatasetRepository = Depends(get_repository)):
    return [DatasetListItem(**_list_item(d)) for d in repository.list()]


@router.get("/datasets/{dataset_id}", response_model=DatasetDetailResponse)
def get_dataset(
    dataset_id: int,
    repository: DatasetRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
):
    dataset = _get_dataset_or_404(dataset_id, repository)
    limit = settings.DETAIL_PREVIEW_ROWS
    return DatasetDetailResponse(
        **_list_item(dataset),
        raw_preview=dataset.raw_data[:limit],
        cleaned_preview=dataset.cleaned_data[:limit] if dataset.cleaned_data is not None else None,
        stats=CleaningStats.model_validate(dataset.cleaning_stats) if dataset.cleaning_stats else None,
    )


@router.post("/save-project", response_model=SaveProjectResponse)
def save_project(
    payload: SaveProjectRequest,
    repository: DatasetRepository = Depends(get_repository),
):
    _get_dataset_or_404(payload.dataset_id, repository)
    repository.update(payload.dataset_id, saved_project_name=payload.project_name)
    return SaveProjectResponse(id=payload.dataset_id, saved_project_name=payload.project_name)


# ─────────────────────────────────────────────────────────────────────────────
# Audit trail
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/datasets/{dataset_id}/audit-trail", response_model=list[AuditLogEntry])
def audit_trail(
    dataset_id: int,
    limit: int = 100,
    offset: int = 0,
    repository: DatasetRepository = Depends(get_repository),
):
    dataset = _get_processed_or_400(dataset_id, repository)
    entries = dataset.audit_trail or []
    return entries[offset: offset + limit]


# ─────────────────────────────────────────────────────────────────────────────
# Export
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/datasets/{dataset_id}/download/{fmt}")
def download_dataset(
    dataset_id: int,
    fmt: str,
    repository: DatasetRepository = Depends(get_repository),
):
    if fmt not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail="Invalid format. Use 'csv' or 'xlsx'")

    dataset = _get_processed_or_400(dataset_id, repository)
    content = export_rows(dataset.cleaned_data, fmt)
    filename = export_filename(dataset.original_file_name, fmt)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/datasets/{dataset_id}/report", response_model=ReportResponse)
def dataset_report(
    dataset_id: int,
    format: str = "json",
    repository: DatasetRepository = Depends(get_repository),
):
    dataset = _get_processed_or_400(dataset_id, repository)
    if dataset.cleaning_stats is None:
        raise HTTPException(status_code=400, detail="Dataset has not been processed yet")

    if format == "text":
        return PlainTextResponse(render_report_text(dataset))
    return ReportResponse(**build_report(dataset))
