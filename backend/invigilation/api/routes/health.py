from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from invigilation.core.config import get_settings
from invigilation.db.bootstrap import missing_schema_items

router = APIRouter()

settings = get_settings()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    db_ok = True
    db_error: str | None = None
    missing_tables: list[str] = []
    missing_columns: list[str] = []
    try:
        missing_tables, missing_columns = missing_schema_items()
    except Exception as exc:  # pragma: no cover - environment dependent
        db_ok = False
        db_error = str(exc)

    ready = db_ok and not missing_tables and not missing_columns
    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {
            "ok": db_ok,
            "missing_tables": missing_tables,
            "missing_columns": missing_columns,
            "error": db_error,
        },
        "smtp": {"configured": bool(settings.smtp_host and settings.smtp_from_email)},
        "tie_break": settings.allocation_tie_break,
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
