from __future__ import annotations

import logging

from sqlalchemy import inspect

from invigilation.db.base import Base
from invigilation.db.session import engine
import invigilation.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "role", "campus", "subjects", "availability_windows"},
    "exams": {"id", "date", "start_time", "end_time", "exam_type", "status"},
    "classrooms": {"id", "room_number", "campus", "is_active"},
    "allocations": {"id", "faculty_id", "acknowledgment_status", "live_status", "reserve_faculty", "version"},
    "conflicts": {"id", "conflict_type", "cause_key", "status"},
    "reserved_allocations": {"id", "primary_allocation_id", "reserved_faculty_id", "status"},
    "allocation_policies": {"id", "is_active", "time_gap_minutes"},
}


def missing_schema_items() -> tuple[list[str], list[str]]:
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in table_names)
        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
    return missing_tables, missing_columns


def ensure_schema() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        missing_tables, missing_columns = missing_schema_items()
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(missing_tables)}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Schema bootstrap failed")
        raise RuntimeError("Schema bootstrap failed") from exc
