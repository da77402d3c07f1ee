from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from datatidy.dependencies import get_repository
from datatidy.services.chart_engine import ChartEngine
from datatidy.services.storage import DatasetRepository

router = APIRouter(prefix="/api", tags=["charts"])


@router.get("/datasets/{dataset_id}/charts/{kind}")
def chart_data(
    dataset_id: int,
    kind: str,
    x: Optional[str] = None,
    y: Optional[str] = None,
    repository: DatasetRepository = Depends(get_repository),
):
    """Chart-ready data computed from the cleaned rows (raw rows before processing)."""
    dataset = repository.get(dataset_id)
    if not dataset:
        raise HTTPException(status_code=404, detail="Dataset not found")

    rows = dataset.cleaned_data if dataset.cleaned_data is not None else dataset.raw_data
    engine = ChartEngine(rows)
    for col in (x, y):
        if col and col not in engine.df.columns:
            raise HTTPException(status_code=400, detail=f"Column '{col}' not found")

    try:
        return engine.generate_chart_data(kind, x, y)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
