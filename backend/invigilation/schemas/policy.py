from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AllocationPolicyBase(BaseModel):
    max_hours_per_day: int = Field(default=6, ge=1, le=12)
    max_duties_per_faculty: int | None = Field(default=None, ge=1)
    allow_same_day_repetition: bool = True
    time_gap_minutes: int = Field(default=30, ge=0, le=240)
    department_preference_weight: int = Field(default=15, ge=0, le=100)
    campus_preference_weight: int = Field(default=20, ge=0, le=100)


class AllocationPolicyUpdate(AllocationPolicyBase):
    pass


class AllocationPolicyOut(AllocationPolicyBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    is_active: bool
