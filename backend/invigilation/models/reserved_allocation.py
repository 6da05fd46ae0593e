import datetime as dt
import uuid
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from invigilation.db.base import Base


class ReservedAllocationStatus(str, Enum):
    available = "available"
    suggested = "suggested"
    activated = "activated"
    used = "used"


class ReservedAllocation(Base):
    __tablename__ = "reserved_allocations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    exam_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    primary_allocation_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    reserved_faculty_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[ReservedAllocationStatus] = mapped_column(
        SAEnum(ReservedAllocationStatus, name="reserved_allocation_status"),
        nullable=False,
        default=ReservedAllocationStatus.available,
    )
    suggested_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    activated_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    replacement_allocation_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
