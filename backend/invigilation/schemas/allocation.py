from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from invigilation.models.allocation import AcknowledgmentStatus, AllocationStatus, LiveStatus, ReserveStatus
from invigilation.schemas.conflict import ConflictOut


class AllocationRunRequest(BaseModel):
    exam_ids: list[str] | None = None
    campus: str | None = None
    department: str | None = None

    @field_validator("campus", "department")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class ReserveEntryOut(BaseModel):
    faculty_id: str
    priority: int
    status: ReserveStatus
    suggested_at: dt.datetime | None = None
    activated_at: dt.datetime | None = None


class AllocationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    exam_id: str
    classroom_id: str | None
    faculty_id: str
    date: dt.date
    start_time: str
    end_time: str
    campus: str
    department: str
    status: AllocationStatus
    is_notified: bool
    acknowledgment_status: AcknowledgmentStatus
    acknowledgment_deadline: dt.datetime
    acknowledged_at: dt.datetime | None
    unavailable_reason: str | None
    live_status: LiveStatus
    eta: str | None
    emergency_reason: str | None
    live_window_opens_at: dt.datetime
    live_window_closes_at: dt.datetime
    reserve_faculty: list[ReserveEntryOut] = Field(default_factory=list)
    replaces_allocation_id: str | None = None


class SessionResultOut(BaseModel):
    session_key: str
    date: dt.date
    time_band: str
    start_time: str
    end_time: str
    exam_ids: list[str]
    success: bool
    message: str
    rooms_allocated: int = 0
    allocations: list[AllocationOut] = Field(default_factory=list)


class FacultyWorkloadOut(BaseModel):
    faculty_id: str
    name: str
    duty_count: int
    total_hours: float
    dates: list[dt.date]


class AllocationSummaryOut(BaseModel):
    sessions_processed: int
    sessions_succeeded: int
    rooms_allocated: int
    allocations_created: int
    reserves_created: int
    conflicts_detected: int
    faculty_workload: list[FacultyWorkloadOut]


class AllocationRunOut(BaseModel):
    success: bool
    preview: bool
    message: str
    sessions: list[SessionResultOut]
    conflicts: list[ConflictOut]
    summary: AllocationSummaryOut


class ReplaceFacultyRequest(BaseModel):
    reserve_faculty_id: str = Field(min_length=1)


class ReplacementOut(BaseModel):
    replaced: AllocationOut
    replacement: AllocationOut


class NoticeDispatchOut(BaseModel):
    attempted: int
    delivered: int
    failed: list[dict]
