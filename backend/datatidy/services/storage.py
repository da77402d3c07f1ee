"""
Dataset repositories.

Both implementations expose the same five operations (create / get / list /
update / delete) over DatasetRecord values.  One repository is constructed
per application in ``create_app`` and handed to the routes through a FastAPI
dependency.
"""

import copy
import logging
from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any, Optional, Protocol

from datatidy.config import Settings
from datatidy.database import make_session_factory
from datatidy.models.dataset import Dataset

logger = logging.getLogger(__name__)


@dataclass
class DatasetRecord:
    id: int
    file_name: str
    original_file_name: str
    file_size_bytes: int
    file_type: str
    created_at: str
    raw_data: list
    cleaned_data: Optional[list] = None
    cleaning_stats: Optional[dict] = None
    audit_trail: Optional[list] = None
    is_processed: bool = False
    saved_project_name: Optional[str] = None


_UPDATABLE = {"cleaned_data", "cleaning_stats", "audit_trail", "is_processed", "saved_project_name"}


def _check_updates(changes: dict) -> None:
    unknown = set(changes) - _UPDATABLE
    if unknown:
        raise ValueError(f"Cannot update dataset field(s): {', '.join(sorted(unknown))}")


class DatasetRepository(Protocol):
    def create(
        self,
        *,
        file_name: str,
        original_file_name: str,
        file_size_bytes: int,
        file_type: str,
        raw_data: list,
        created_at: Optional[str] = None,
    ) -> DatasetRecord: ...

    def get(self, dataset_id: int) -> Optional[DatasetRecord]: ...

    def list(self) -> list[DatasetRecord]: ...

    def update(self, dataset_id: int, **changes: Any) -> Optional[DatasetRecord]: ...

    def delete(self, dataset_id: int) -> bool: ...


class InMemoryDatasetRepository:
    """Dict-backed store with its own id counter; hands out copies only."""

    def __init__(self):
        self._datasets: dict[int, DatasetRecord] = {}
        self._next_id = 1

    def create(
        self,
        *,
        file_name: str,
        original_file_name: str,
        file_size_bytes: int,
        file_type: str,
        raw_data: list,
        created_at: Optional[str] = None,
    ) -> DatasetRecord:
        record = DatasetRecord(
            id=self._next_id,
            file_name=file_name,
            original_file_name=original_file_name,
            file_size_bytes=file_size_bytes,
            file_type=file_type,
            created_at=created_at or datetime.utcnow().isoformat(),
            raw_data=copy.deepcopy(raw_data),
        )
        self._datasets[record.id] = record
        self._next_id += 1
        return copy.deepcopy(record)

    def get(self, dataset_id: int) -> Optional[DatasetRecord]:
        record = self._datasets.get(dataset_id)
        return copy.deepcopy(record) if record else None

    def list(self) -> list[DatasetRecord]:
        return [copy.deepcopy(r) for r in self._datasets.values()]

    def update(self, dataset_id: int, **changes: Any) -> Optional[DatasetRecord]:
        _check_updates(changes)
        record = self._datasets.get(dataset_id)
        if record is None:
            return None
        updated = replace(record, **copy.deepcopy(changes))
        self._datasets[dataset_id] = updated
        return copy.deepcopy(updated)

    def delete(self, dataset_id: int) -> bool:
        return self._datasets.pop(dataset_id, None) is not None


class SqlDatasetRepository:
    """SQLAlchemy-backed store over the ``datasets`` table."""

    def __init__(self, database_url: str):
        self._session_factory = make_session_factory(database_url)

    @staticmethod
    def _to_record(row: Dataset) -> DatasetRecord:
        return DatasetRecord(**{f.name: getattr(row, f.name) for f in fields(DatasetRecord)})

    def create(
        self,
        *,
        file_name: str,
        original_file_name: str,
        file_size_bytes: int,
        file_type: str,
        raw_data: list,
        created_at: Optional[str] = None,
    ) -> DatasetRecord:
        db = self._session_factory()
        try:
            row = Dataset(
                file_name=file_name,
                original_file_name=original_file_name,
                file_size_bytes=file_size_bytes,
                file_type=file_type,
                created_at=created_at or datetime.utcnow().isoformat(),
                raw_data=raw_data,
                is_processed=False,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return self._to_record(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get(self, dataset_id: int) -> Optional[DatasetRecord]:
        db = self._session_factory()
        try:
            row = db.query(Dataset).filter(Dataset.id == dataset_id).first()
            return self._to_record(row) if row else None
        finally:
            db.close()

    def list(self) -> list[DatasetRecord]:
        db = self._session_factory()
        try:
            return [self._to_record(r) for r in db.query(Dataset).order_by(Dataset.id).all()]
        finally:
            db.close()

    def update(self, dataset_id: int, **changes: Any) -> Optional[DatasetRecord]:
        _check_updates(changes)
        db = self._session_factory()
        try:
            row = db.query(Dataset).filter(Dataset.id == dataset_id).first()
            if not row:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            db.commit()
            db.refresh(row)
            return self._to_record(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, dataset_id: int) -> bool:
        db = self._session_factory()
        try:
            row = db.query(Dataset).filter(Dataset.id == dataset_id).first()
            if not row:
                return False
            db.delete(row)
            db.commit()
            return True
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def build_repository(settings: Settings) -> DatasetRepository:
    if settings.DATABASE_URL:
        logger.info("Using SQL dataset repository")
        return SqlDatasetRepository(settings.DATABASE_URL)
    logger.info("Using in-memory dataset repository")
    return InMemoryDatasetRepository()
