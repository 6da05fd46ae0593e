from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from invigilation.schemas.common import parse_time_to_minutes


@dataclass
class FacultyWorkload:
    duty_count: int = 0
    total_hours: float = 0.0
    hours_by_date: dict[date, float] = field(default_factory=dict)
    # Busy intervals as (start_minute, end_minute) pairs.
    intervals_by_date: dict[date, list[tuple[int, int]]] = field(default_factory=dict)

    @property
    def dates(self) -> list[date]:
        return sorted(self.hours_by_date)

    def hours_on(self, day: date) -> float:
        return self.hours_by_date.get(day, 0.0)

    def has_duty_on(self, day: date) -> bool:
        return bool(self.intervals_by_date.get(day))

    def intervals_on(self, day: date) -> list[tuple[int, int]]:
        return list(self.intervals_by_date.get(day, ()))


def duty_hours(start_time: str, end_time: str) -> float:
    return max(0, parse_time_to_minutes(end_time) - parse_time_to_minutes(start_time)) / 60


class WorkloadTracker:
    """Run-scoped, in-memory view of each faculty member's duties.

    Seeded from persisted allocations so that fairness spans runs, then updated as
    the run assigns duties. Counters only ever grow during a run.
    """

    def __init__(self) -> None:
        self._entries: dict[str, FacultyWorkload] = {}

    @classmethod
    def from_allocations(cls, allocations: Iterable) -> "WorkloadTracker":
        tracker = cls()
        for allocation in allocations:
            tracker.record(allocation.faculty_id, allocation.date, allocation.start_time, allocation.end_time)
        return tracker

    def get(self, faculty_id: str) -> FacultyWorkload:
        entry = self._entries.get(faculty_id)
        if entry is None:
            return FacultyWorkload()
        return entry

    def record(self, faculty_id: str, day: date, start_time: str, end_time: str) -> None:
        entry = self._entries.setdefault(faculty_id, FacultyWorkload())
        hours = duty_hours(start_time, end_time)
        entry.duty_count += 1
        entry.total_hours += hours
        entry.hours_by_date[day] = entry.hours_by_date.get(day, 0.0) + hours
        entry.intervals_by_date.setdefault(day, []).append(
            (parse_time_to_minutes(start_time), parse_time_to_minutes(end_time))
        )

    def copy(self) -> "WorkloadTracker":
        clone = WorkloadTracker()
        clone._entries = copy.deepcopy(self._entries)
        return clone

    def faculty_ids(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, faculty_id: str) -> bool:
        return faculty_id in self._entries
