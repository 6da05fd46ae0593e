import datetime as dt
import uuid
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from invigilation.db.base import Base


class AllocationStatus(str, Enum):
    assigned = "assigned"
    confirmed = "confirmed"
    replaced = "replaced"
    cancelled = "cancelled"


class AcknowledgmentStatus(str, Enum):
    pending = "pending"
    acknowledged = "acknowledged"
    unavailable = "unavailable"


class LiveStatus(str, Enum):
    none = "none"
    present = "present"
    on_the_way = "on_the_way"
    unable_to_reach = "unable_to_reach"


class ReserveStatus(str, Enum):
    available = "available"
    suggested = "suggested"
    activated = "activated"


ACTIVE_ALLOCATION_STATUSES = (
    AllocationStatus.assigned,
    AllocationStatus.confirmed,
    AllocationStatus.replaced,
)


class Allocation(Base):
    __tablename__ = "allocations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    exam_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    classroom_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    faculty_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    campus: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False, default="General")
    status: Mapped[AllocationStatus] = mapped_column(
        SAEnum(AllocationStatus, name="allocation_status"),
        nullable=False,
        default=AllocationStatus.assigned,
        index=True,
    )

    is_notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notified_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)

    acknowledgment_status: Mapped[AcknowledgmentStatus] = mapped_column(
        SAEnum(AcknowledgmentStatus, name="acknowledgment_status"),
        nullable=False,
        default=AcknowledgmentStatus.pending,
    )
    acknowledged_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    unavailable_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    acknowledgment_deadline: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    live_status: Mapped[LiveStatus] = mapped_column(
        SAEnum(LiveStatus, name="live_status"),
        nullable=False,
        default=LiveStatus.none,
    )
    eta: Mapped[str | None] = mapped_column(String(50), nullable=True)
    emergency_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    live_status_updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    live_window_opens_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    live_window_closes_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)

    # Ordered by priority: [{"faculty_id", "priority", "status", "suggested_at", "activated_at"}]
    reserve_faculty: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    replaces_allocation_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    allocated_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
