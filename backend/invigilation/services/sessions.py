from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
import logging

from invigilation.core.exceptions import AllocationInputError
from invigilation.models.exam import Exam, ExamType
from invigilation.schemas.common import TIME_PATTERN, parse_time_to_minutes

logger = logging.getLogger(__name__)


class TimeBand(str, Enum):
    morning = "morning"
    afternoon = "afternoon"


BAND_WINDOWS: dict[TimeBand, tuple[str, str]] = {
    TimeBand.morning: ("08:00", "12:00"),
    TimeBand.afternoon: ("12:00", "18:00"),
}
_BAND_ORDER = {TimeBand.morning: 0, TimeBand.afternoon: 1}


def time_band_for(start_time: str) -> TimeBand:
    return TimeBand.morning if parse_time_to_minutes(start_time) < 12 * 60 else TimeBand.afternoon


@dataclass
class ExamSession:
    day: date
    band: TimeBand
    campus: str
    exams: list[Exam] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.day.isoformat()}/{self.band.value}/{self.campus}"

    @property
    def window(self) -> tuple[str, str]:
        return BAND_WINDOWS[self.band]

    @property
    def start_time(self) -> str:
        return min((exam.start_time for exam in self.exams), key=parse_time_to_minutes)

    @property
    def end_time(self) -> str:
        return max((exam.end_time for exam in self.exams), key=parse_time_to_minutes)

    @property
    def is_lab(self) -> bool:
        return any(exam.exam_type == ExamType.labs for exam in self.exams)

    @property
    def course_names(self) -> list[str]:
        return [exam.course_name for exam in self.exams if exam.course_name]

    def exams_by_room(self, room_ids: list[str]) -> dict[str, Exam]:
        """Map every room of the session to the exam it hosts.

        A room booked by an exam hosts that exam. The other rooms are handed out
        in turn to the exams without an active booked room, or to all exams when
        every exam has one.
        """
        booked: dict[str, Exam] = {}
        for exam in self.exams:
            if exam.classroom_id in room_ids and exam.classroom_id not in booked:
                booked[exam.classroom_id] = exam
        hosted = {exam.id for exam in booked.values()}
        floating = [exam for exam in self.exams if exam.id not in hosted] or self.exams

        mapping: dict[str, Exam] = {}
        spare = 0
        for room_id in room_ids:
            if room_id in booked:
                mapping[room_id] = booked[room_id]
            else:
                mapping[room_id] = floating[spare % len(floating)]
                spare += 1
        return mapping


def validate_exam(exam: Exam) -> None:
    missing = [
        name
        for name in ("date", "start_time", "end_time", "campus")
        if getattr(exam, name, None) in (None, "")
    ]
    if missing:
        raise AllocationInputError(
            f"Exam {exam.exam_code or exam.id} is missing required fields",
            details={"exam_id": exam.id, "missing": missing},
        )
    for name in ("start_time", "end_time"):
        if not TIME_PATTERN.match(getattr(exam, name)):
            raise AllocationInputError(
                f"Exam {exam.exam_code or exam.id} has an invalid {name}",
                details={"exam_id": exam.id, name: getattr(exam, name)},
            )
    if parse_time_to_minutes(exam.end_time) <= parse_time_to_minutes(exam.start_time):
        raise AllocationInputError(
            f"Exam {exam.exam_code or exam.id} ends before it starts",
            details={"exam_id": exam.id},
        )


def group_exams_by_session(exams: Iterable[Exam]) -> list[ExamSession]:
    grouped: dict[tuple[date, TimeBand, str], ExamSession] = {}
    for exam in exams:
        validate_exam(exam)
        band = time_band_for(exam.start_time)
        key = (exam.date, band, exam.campus)
        session = grouped.get(key)
        if session is None:
            session = ExamSession(day=exam.date, band=band, campus=exam.campus)
            grouped[key] = session
        session.exams.append(exam)

    for session in grouped.values():
        exam_types = {exam.exam_type for exam in session.exams}
        if len(exam_types) > 1:
            logger.warning(
                "Session %s mixes exam types %s; treating it as %s",
                session.key,
                sorted(item.value for item in exam_types),
                "a lab session" if session.is_lab else "a written session",
            )

    return sorted(grouped.values(), key=lambda item: (item.day, _BAND_ORDER[item.band], item.campus))
