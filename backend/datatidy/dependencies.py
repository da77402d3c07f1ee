from fastapi import Request

from datatidy.config import Settings
from datatidy.services.storage import DatasetRepository


def get_repository(request: Request) -> DatasetRepository:
    return request.app.state.repository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
