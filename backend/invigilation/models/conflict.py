import datetime as dt
import uuid
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from invigilation.db.base import Base


class ConflictType(str, Enum):
    overlapping_time = "overlapping_time"
    multiple_duties_same_day = "multiple_duties_same_day"
    availability_mismatch = "availability_mismatch"


class ConflictSeverity(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class ConflictStatus(str, Enum):
    detected = "detected"
    resolving = "resolving"
    resolved = "resolved"
    ignored = "ignored"


OPEN_CONFLICT_STATUSES = (ConflictStatus.detected, ConflictStatus.resolving)
CLOSED_CONFLICT_STATUSES = (ConflictStatus.resolved, ConflictStatus.ignored)


class Conflict(Base):
    __tablename__ = "conflicts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conflict_type: Mapped[ConflictType] = mapped_column(SAEnum(ConflictType, name="conflict_type"), nullable=False)
    severity: Mapped[ConflictSeverity] = mapped_column(
        SAEnum(ConflictSeverity, name="conflict_severity"),
        nullable=False,
    )
    faculty_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    allocation_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # Stable identity of the underlying cause so triaged conflicts are not re-raised.
    cause_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    suggested_actions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    auto_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    resolved_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    resolution_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ConflictStatus] = mapped_column(
        SAEnum(ConflictStatus, name="conflict_status"),
        nullable=False,
        default=ConflictStatus.detected,
        index=True,
    )
    detected_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
