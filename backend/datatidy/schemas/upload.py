from typing import Any, Optional

from pydantic import Field

from datatidy.schemas.cleaning import CamelModel, CleaningStats


class UploadResponse(CamelModel):
    id: int
    file_name: str
    file_size: int
    file_type: str
    preview: list[dict[str, Any]]
    columns: list[str]
    total_rows: int


class DatasetListItem(CamelModel):
    id: int
    file_name: str
    file_size: int
    file_type: str
    created_at: str
    is_processed: bool
    saved_project_name: Optional[str] = None


class DatasetDetailResponse(DatasetListItem):
    raw_preview: list[dict[str, Any]]
    cleaned_preview: Optional[list[dict[str, Any]]] = None
    stats: Optional[CleaningStats] = None


class SaveProjectRequest(CamelModel):
    dataset_id: int
    project_name: str = Field(min_length=1)


class SaveProjectResponse(CamelModel):
    id: int
    saved_project_name: str


class ReportResponse(CamelModel):
    file_name: str
    file_type: str
    file_size: int
    created_at: str
    stats: CleaningStats
