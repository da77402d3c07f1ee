from sqlalchemy import Column, Integer, String, Boolean, JSON

from datatidy.database import Base


class Dataset(Base):
    __tablename__ = "datasets"

    id = Column(Integer, primary_key=True, index=True)

    # File metadata
    file_name = Column(String, nullable=False)
    original_file_name = Column(String, nullable=False)
    file_size_bytes = Column(Integer, nullable=False)
    file_type = Column(String, nullable=False)  # csv, xls, xlsx
    created_at = Column(String, nullable=False)  # ISO timestamp

    # Rows as uploaded: [{column: value}]
    raw_data = Column(JSON, nullable=False)

    # Results (filled after processing)
    cleaned_data = Column(JSON, nullable=True)
    cleaning_stats = Column(JSON, nullable=True)
    # [{action, reason, column_name, row_index, original_value, new_value, timestamp}]
    audit_trail = Column(JSON, nullable=True)
    is_processed = Column(Boolean, default=False)

    saved_project_name = Column(String, nullable=True)
