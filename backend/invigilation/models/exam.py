import uuid
import datetime as dt
from enum import Enum

from sqlalchemy import Date, DateTime, Enum as SAEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from invigilation.db.base import Base


class ExamType(str, Enum):
    mid_term = "mid-term"
    semester = "semester"
    labs = "labs"


class ExamStatus(str, Enum):
    scheduled = "scheduled"
    allocated = "allocated"
    completed = "completed"
    cancelled = "cancelled"


class Exam(Base):
    __tablename__ = "exams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    exam_code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    exam_name: Mapped[str] = mapped_column(String(200), nullable=False)
    course_code: Mapped[str] = mapped_column(String(50), nullable=False)
    course_name: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    campus: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str | None] = mapped_column(String(200), nullable=True)
    classroom_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    total_students: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    required_invigilators: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    exam_type: Mapped[ExamType] = mapped_column(
        SAEnum(ExamType, name="exam_type", values_callable=lambda items: [item.value for item in items]),
        nullable=False,
        default=ExamType.semester,
    )
    status: Mapped[ExamStatus] = mapped_column(
        SAEnum(ExamStatus, name="exam_status"),
        nullable=False,
        default=ExamStatus.scheduled,
        index=True,
    )
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
