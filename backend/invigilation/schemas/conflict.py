from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from invigilation.models.conflict import ConflictSeverity, ConflictStatus, ConflictType


class ConflictOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    conflict_type: ConflictType
    severity: ConflictSeverity
    faculty_id: str
    allocation_ids: list[str]
    description: str
    suggested_actions: list[str] = Field(default_factory=list)
    status: ConflictStatus = ConflictStatus.detected
    auto_resolved: bool = False
    resolved_by_id: str | None = None
    resolved_at: datetime | None = None
    resolution_note: str | None = None


class ConflictTriageRequest(BaseModel):
    note: str | None = Field(default=None, max_length=2000)
