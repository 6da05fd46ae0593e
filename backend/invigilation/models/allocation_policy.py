import datetime as dt
import uuid

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from invigilation.db.base import Base


class AllocationPolicyRecord(Base):
    __tablename__ = "allocation_policies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    max_hours_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    max_duties_per_faculty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    allow_same_day_repetition: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    time_gap_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    department_preference_weight: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    campus_preference_weight: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    updated_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
