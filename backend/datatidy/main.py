import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from datatidy.config import Settings, get_settings
from datatidy.routes.charts import router as charts_router
from datatidy.routes.cleaning import router as cleaning_router
from datatidy.routes.upload import router as upload_router
from datatidy.services.storage import DatasetRepository, build_repository

VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[DatasetRepository] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="DataTidy API", version=VERSION, debug=settings.DEBUG)
    app.state.settings = settings
    app.state.repository = repository if repository is not None else build_repository(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"message": "DataTidy API is running", "version": VERSION}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    app.include_router(upload_router)
    app.include_router(cleaning_router)
    app.include_router(charts_router)
    return app


app = create_app()
