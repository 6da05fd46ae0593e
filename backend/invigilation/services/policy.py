from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from invigilation.models.allocation_policy import AllocationPolicyRecord
from invigilation.models.user import User
from invigilation.schemas.policy import AllocationPolicyUpdate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationPolicy:
    """Immutable snapshot of the active policy, taken once per allocation run."""

    max_hours_per_day: int = 6
    max_duties_per_faculty: int | None = None
    allow_same_day_repetition: bool = True
    time_gap_minutes: int = 30
    department_preference_weight: int = 15
    campus_preference_weight: int = 20

    @classmethod
    def from_record(cls, record: AllocationPolicyRecord) -> "AllocationPolicy":
        return cls(
            max_hours_per_day=record.max_hours_per_day,
            max_duties_per_faculty=record.max_duties_per_faculty,
            allow_same_day_repetition=record.allow_same_day_repetition,
            time_gap_minutes=record.time_gap_minutes,
            department_preference_weight=record.department_preference_weight,
            campus_preference_weight=record.campus_preference_weight,
        )


def get_active_policy_record(db: Session) -> AllocationPolicyRecord:
    record = db.execute(
        select(AllocationPolicyRecord)
        .where(AllocationPolicyRecord.is_active.is_(True))
        .order_by(AllocationPolicyRecord.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    if record is not None:
        return record

    defaults = AllocationPolicyUpdate()
    record = AllocationPolicyRecord(**defaults.model_dump(), is_active=True)
    db.add(record)
    db.flush()
    logger.info("Created default allocation policy %s", record.id)
    return record


def load_active_policy(db: Session) -> AllocationPolicy:
    return AllocationPolicy.from_record(get_active_policy_record(db))


def update_active_policy(
    db: Session,
    payload: AllocationPolicyUpdate,
    *,
    user: User | None = None,
) -> AllocationPolicyRecord:
    record = get_active_policy_record(db)
    for field_name, value in payload.model_dump().items():
        setattr(record, field_name, value)
    record.updated_by_id = user.id if user is not None else None
    record.is_active = True
    # Only one policy record may be active.
    db.execute(
        update(AllocationPolicyRecord)
        .where(AllocationPolicyRecord.id != record.id, AllocationPolicyRecord.is_active.is_(True))
        .values(is_active=False)
    )
    db.flush()
    return record
