import logging
import os
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from datatidy.config import Settings
from datatidy.dependencies import get_app_settings, get_repository
from datatidy.schemas.upload import UploadResponse
from datatidy.services.cleaning import InvalidInputError
from datatidy.services.file_reader import read_file_data, validate_upload
from datatidy.services.storage import DatasetRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    repository: DatasetRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
):
    """Upload a CSV or Excel file; its rows are stored as the dataset's raw data."""
    content = await file.read()
    validation = validate_upload(file.filename, len(content), settings)
    if not validation["valid"]:
        raise HTTPException(status_code=400, detail=validation["error"])

    try:
        rows = read_file_data(content, validation["file_type"])
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    ext = os.path.splitext(file.filename)[1].lower()
    dataset = repository.create(
        file_name=f"{uuid.uuid4().hex}{ext}",
        original_file_name=file.filename,
        file_size_bytes=validation["file_size"],
        file_type=validation["file_type"],
        raw_data=rows,
    )
    logger.info("Stored upload %s as dataset %d (%d rows)", file.filename, dataset.id, len(rows))

    return UploadResponse(
        id=dataset.id,
        file_name=dataset.original_file_name,
        file_size=dataset.file_size_bytes,
        file_type=dataset.file_type,
        preview=rows[: settings.PREVIEW_ROWS],
        columns=list(rows[0].keys()) if rows else [],
        total_rows=len(rows),
    )
