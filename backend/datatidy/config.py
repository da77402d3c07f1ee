from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Empty → in-memory repository; otherwise any SQLAlchemy URL
    DATABASE_URL: str = ""
    MAX_UPLOAD_SIZE_MB: int = 10
    ALLOWED_EXTENSIONS: list[str] = [".csv", ".xls", ".xlsx"]
    PREVIEW_ROWS: int = 5
    DETAIL_PREVIEW_ROWS: int = 100
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
