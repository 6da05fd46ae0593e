from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from invigilation.core.exceptions import ResourceNotFoundError
from invigilation.models.allocation import ACTIVE_ALLOCATION_STATUSES, Allocation
from invigilation.models.conflict import (
    CLOSED_CONFLICT_STATUSES,
    OPEN_CONFLICT_STATUSES,
    Conflict,
    ConflictSeverity,
    ConflictStatus,
    ConflictType,
)
from invigilation.models.user import User
from invigilation.schemas.common import parse_time_to_minutes
from invigilation.services.scoring import DutyContext, fits_availability

logger = logging.getLogger(__name__)

SUGGESTED_RESOLUTIONS: dict[ConflictType, list[str]] = {
    ConflictType.overlapping_time: [
        "Reassign one of the conflicting allocations to another faculty member",
        "Reschedule one of the exams to a different time slot",
        "Cancel one of the allocations if not critical",
    ],
    ConflictType.multiple_duties_same_day: [
        "Distribute duties across different days",
        "Assign additional faculty to share the workload",
        "Verify if faculty can handle multiple duties on the same day",
    ],
    ConflictType.availability_mismatch: [
        "Confirm the duty with the faculty member",
        "Reassign the allocation to a faculty member available at that time",
    ],
}


@dataclass(frozen=True)
class DetectedConflict:
    conflict_type: ConflictType
    severity: ConflictSeverity
    faculty_id: str
    allocation_ids: tuple[str, ...]
    description: str
    cause_key: str
    suggested_actions: list[str] = field(default_factory=list)

    def to_record(self) -> Conflict:
        return Conflict(
            conflict_type=self.conflict_type,
            severity=self.severity,
            faculty_id=self.faculty_id,
            allocation_ids=list(self.allocation_ids),
            description=self.description,
            cause_key=self.cause_key,
            suggested_actions=list(self.suggested_actions),
            auto_resolved=False,
            status=ConflictStatus.detected,
        )


def _overlaps(first, second) -> bool:
    return parse_time_to_minutes(first.start_time) < parse_time_to_minutes(second.end_time) and parse_time_to_minutes(
        second.start_time
    ) < parse_time_to_minutes(first.end_time)


def find_conflicts(allocations: Iterable, faculty_by_id: Mapping[str, User]) -> list[DetectedConflict]:
    """Report scheduling conflicts among allocations; never modifies anything."""
    groups: dict[tuple[str, date], list] = defaultdict(list)
    for allocation in allocations:
        groups[(allocation.faculty_id, allocation.date)].append(allocation)

    detected: list[DetectedConflict] = []
    for (faculty_id, day), items in sorted(groups.items(), key=lambda entry: (entry[0][1], entry[0][0])):
        faculty = faculty_by_id.get(faculty_id)
        name = faculty.name if faculty is not None else faculty_id
        items = sorted(items, key=lambda item: parse_time_to_minutes(item.start_time))

        overlapping = False
        for index, first in enumerate(items):
            for second in items[index + 1 :]:
                if not _overlaps(first, second):
                    continue
                overlapping = True
                pair = tuple(sorted((first.id, second.id)))
                detected.append(
                    DetectedConflict(
                        conflict_type=ConflictType.overlapping_time,
                        severity=ConflictSeverity.high,
                        faculty_id=faculty_id,
                        allocation_ids=pair,
                        description=f"Faculty {name} has overlapping time slots on {day.isoformat()}",
                        cause_key=f"overlapping_time:{faculty_id}:{':'.join(pair)}",
                        suggested_actions=list(SUGGESTED_RESOLUTIONS[ConflictType.overlapping_time]),
                    )
                )

        if len(items) > 1 and not overlapping:
            ids = tuple(sorted(item.id for item in items))
            detected.append(
                DetectedConflict(
                    conflict_type=ConflictType.multiple_duties_same_day,
                    severity=ConflictSeverity.medium,
                    faculty_id=faculty_id,
                    allocation_ids=ids,
                    description=f"Faculty {name} has {len(items)} duties on {day.isoformat()}",
                    cause_key=f"multiple_duties_same_day:{faculty_id}:{day.isoformat()}:{':'.join(ids)}",
                    suggested_actions=list(SUGGESTED_RESOLUTIONS[ConflictType.multiple_duties_same_day]),
                )
            )

        if faculty is None:
            continue
        for item in items:
            context = DutyContext(day=day, start_time=item.start_time, end_time=item.end_time)
            if fits_availability(faculty, context) is False:
                detected.append(
                    DetectedConflict(
                        conflict_type=ConflictType.availability_mismatch,
                        severity=ConflictSeverity.low,
                        faculty_id=faculty_id,
                        allocation_ids=(item.id,),
                        description=(
                            f"Faculty {name} is allocated outside their declared availability "
                            f"on {day.isoformat()} ({item.start_time}-{item.end_time})"
                        ),
                        cause_key=f"availability_mismatch:{item.id}",
                        suggested_actions=list(SUGGESTED_RESOLUTIONS[ConflictType.availability_mismatch]),
                    )
                )
    return detected


class ConflictService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def detect(self) -> list[Conflict]:
        self.db.execute(delete(Conflict).where(Conflict.status.in_(OPEN_CONFLICT_STATUSES)))
        closed_causes = set(
            self.db.execute(select(Conflict.cause_key).where(Conflict.status.in_(CLOSED_CONFLICT_STATUSES))).scalars()
        )

        allocations = list(
            self.db.execute(select(Allocation).where(Allocation.status.in_(ACTIVE_ALLOCATION_STATUSES))).scalars()
        )
        faculty_ids = {allocation.faculty_id for allocation in allocations}
        faculty_by_id = {}
        if faculty_ids:
            faculty_by_id = {
                member.id: member for member in self.db.execute(select(User).where(User.id.in_(faculty_ids))).scalars()
            }

        records: list[Conflict] = []
        for conflict in find_conflicts(allocations, faculty_by_id):
            if conflict.cause_key in closed_causes:
                continue
            record = conflict.to_record()
            self.db.add(record)
            records.append(record)
        self.db.flush()
        logger.info("Conflict detection found %d open conflict(s)", len(records))
        return records

    def list_conflicts(
        self,
        *,
        status: ConflictStatus | None = None,
        severity: ConflictSeverity | None = None,
        faculty_id: str | None = None,
    ) -> list[Conflict]:
        query = select(Conflict).order_by(Conflict.detected_at.desc())
        if status is not None:
            query = query.where(Conflict.status == status)
        if severity is not None:
            query = query.where(Conflict.severity == severity)
        if faculty_id:
            query = query.where(Conflict.faculty_id == faculty_id)
        return list(self.db.execute(query).scalars())

    def _get(self, conflict_id: str) -> Conflict:
        conflict = self.db.get(Conflict, conflict_id)
        if conflict is None:
            raise ResourceNotFoundError("Conflict", conflict_id)
        return conflict

    def resolve(self, conflict_id: str, *, user: User, note: str | None = None, now: datetime | None = None) -> Conflict:
        conflict = self._get(conflict_id)
        conflict.status = ConflictStatus.resolved
        conflict.resolved_by_id = user.id
        conflict.resolved_at = now or datetime.now()
        conflict.resolution_note = note
        self.db.flush()
        return conflict

    def ignore(self, conflict_id: str, *, user: User, note: str | None = None, now: datetime | None = None) -> Conflict:
        conflict = self._get(conflict_id)
        conflict.status = ConflictStatus.ignored
        conflict.resolved_by_id = user.id
        conflict.resolved_at = now or datetime.now()
        conflict.resolution_note = note
        self.db.flush()
        return conflict
