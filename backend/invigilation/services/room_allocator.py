from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from invigilation.core.exceptions import AllocationInputError, InsufficientResourceError
from invigilation.models.classroom import Classroom
from invigilation.models.exam import Exam
from invigilation.models.user import User
from invigilation.schemas.common import parse_time_to_minutes
from invigilation.services.policy import AllocationPolicy
from invigilation.services.scoring import DutyContext, is_faculty_available, rank_candidates, teaches_any
from invigilation.services.sessions import ExamSession
from invigilation.services.tie_break import TieBreaker
from invigilation.services.workload import WorkloadTracker

logger = logging.getLogger(__name__)

INVIGILATORS_PER_ROOM = 2
DEFAULT_DEPARTMENT = "General"


@dataclass
class RoomAssignment:
    classroom: Classroom
    exam: Exam
    context: DutyContext
    faculty: list[User]
    subject_matched: bool = False


@dataclass
class SessionPlan:
    session: ExamSession
    assignments: list[RoomAssignment] = field(default_factory=list)
    # Tracker state after every assignment in this plan has been recorded.
    tracker: WorkloadTracker | None = None

    @property
    def primary_faculty_ids(self) -> set[str]:
        return {member.id for assignment in self.assignments for member in assignment.faculty}

    @property
    def staffed_exams(self) -> list[Exam]:
        """Exams of the session that received at least one room, in session order."""
        staffed = {assignment.exam.id for assignment in self.assignments}
        return [exam for exam in self.session.exams if exam.id in staffed]


def validate_classroom(classroom: Classroom) -> None:
    missing = [name for name in ("room_number", "campus") if not getattr(classroom, name, None)]
    if missing:
        raise AllocationInputError(
            f"Classroom {classroom.id} is missing required fields",
            details={"classroom_id": classroom.id, "missing": missing},
        )


def validate_faculty(faculty: User) -> None:
    missing = [name for name in ("name", "campus") if not getattr(faculty, name, None)]
    if missing:
        raise AllocationInputError(
            f"Faculty {faculty.id} is missing required fields",
            details={"faculty_id": faculty.id, "missing": missing},
        )


def duty_department(exam: Exam, classroom: Classroom | None) -> str:
    if exam.department:
        return exam.department
    if classroom is not None and classroom.department:
        return classroom.department
    return DEFAULT_DEPARTMENT


class RoomSessionAllocator:
    """Staffs every room of a session with two distinct invigilators, or fails the session."""

    def __init__(self, policy: AllocationPolicy, tie_breaker: TieBreaker) -> None:
        self.policy = policy
        self.tie_breaker = tie_breaker

    def eligible_pool(
        self,
        session: ExamSession,
        faculty: Iterable[User],
        tracker: WorkloadTracker,
    ) -> list[User]:
        """Active faculty with no committed duty inside the session's time band."""
        window_start, window_end = (parse_time_to_minutes(value) for value in session.window)
        pool: list[User] = []
        for member in faculty:
            if not member.is_active:
                continue
            busy = tracker.get(member.id).intervals_on(session.day)
            if any(start < window_end and window_start < end for start, end in busy):
                continue
            pool.append(member)
        return pool

    def plan(
        self,
        session: ExamSession,
        rooms: list[Classroom],
        pool: list[User],
        tracker: WorkloadTracker,
    ) -> SessionPlan:
        for room in rooms:
            validate_classroom(room)
        for member in pool:
            validate_faculty(member)

        required = INVIGILATORS_PER_ROOM * len(rooms)
        if not rooms:
            raise InsufficientResourceError(
                f"No active classrooms available on campus {session.campus}",
                details={"session": session.key},
            )
        if len(pool) < required:
            raise InsufficientResourceError(
                f"Insufficient available faculty. Required: {required} "
                f"({INVIGILATORS_PER_ROOM} per room x {len(rooms)} rooms), Found: {len(pool)}",
                details={"session": session.key, "required": required, "found": len(pool)},
            )

        scratch = tracker.copy()
        ordered = self.tie_breaker.shuffle(pool, session.key)
        used: set[str] = set()
        plan = SessionPlan(session=session)
        hosted_exams = session.exams_by_room([room.id for room in rooms])

        for room in rooms:
            exam = hosted_exams[room.id]
            context = DutyContext(
                day=session.day,
                start_time=session.start_time,
                end_time=session.end_time,
                campus=room.campus,
                department=duty_department(exam, room),
                label=f"{session.key}/{room.id}",
            )
            remaining = [member for member in ordered if member.id not in used]
            if session.is_lab:
                picks, matched = self._pick_lab_pair(remaining, context, scratch, session.course_names)
            else:
                picks, matched = self._pick_available(remaining, context, scratch, INVIGILATORS_PER_ROOM), False

            if len(picks) < INVIGILATORS_PER_ROOM:
                raise InsufficientResourceError(
                    f"Could not assign {INVIGILATORS_PER_ROOM} unique faculty to room {room.room_number}. "
                    "Insufficient available faculty.",
                    details={"session": session.key, "classroom_id": room.id, "assigned": len(picks)},
                )

            for member in picks:
                scratch.record(member.id, context.day, context.start_time, context.end_time)
                used.add(member.id)
            plan.assignments.append(
                RoomAssignment(classroom=room, exam=exam, context=context, faculty=picks, subject_matched=matched)
            )

        plan.tracker = scratch
        return plan

    def _pick_available(
        self,
        candidates: list[User],
        context: DutyContext,
        tracker: WorkloadTracker,
        needed: int,
    ) -> list[User]:
        picks: list[User] = []
        for member, _ in rank_candidates(candidates, context, tracker, self.policy, self.tie_breaker):
            if len(picks) == needed:
                break
            if is_faculty_available(member, context, tracker, self.policy):
                picks.append(member)
        return picks

    def _pick_lab_pair(
        self,
        candidates: list[User],
        context: DutyContext,
        tracker: WorkloadTracker,
        course_names: list[str],
    ) -> tuple[list[User], bool]:
        subject_experts = [member for member in candidates if teaches_any(member, course_names)]
        picks = self._pick_available(subject_experts, context, tracker, 1)
        matched = bool(picks)
        if not matched:
            logger.info("No subject-matched faculty available for %s; using the general pool", context.label)

        chosen = {member.id for member in picks}
        others = [member for member in candidates if member.id not in chosen]
        picks.extend(self._pick_available(others, context, tracker, INVIGILATORS_PER_ROOM - len(picks)))
        return picks, matched
