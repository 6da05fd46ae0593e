from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
import logging
import uuid

from sqlalchemy.orm import Session

from invigilation.core.config import get_settings
from invigilation.core.exceptions import InsufficientResourceError
from invigilation.db.repositories import Repositories
from invigilation.models.allocation import (
    AcknowledgmentStatus,
    Allocation,
    AllocationStatus,
    LiveStatus,
    ReserveStatus,
)
from invigilation.models.conflict import Conflict
from invigilation.models.exam import Exam
from invigilation.models.reserved_allocation import ReservedAllocation, ReservedAllocationStatus
from invigilation.models.user import User, UserRole
from invigilation.services.conflict_service import ConflictService, find_conflicts
from invigilation.services.events import AllocationEvent, EventSink, emit
from invigilation.services.policy import AllocationPolicy, load_active_policy
from invigilation.services.reserves import select_reserves
from invigilation.services.room_allocator import RoomAssignment, RoomSessionAllocator, SessionPlan
from invigilation.services.sessions import ExamSession, group_exams_by_session
from invigilation.services.tie_break import TieBreaker, build_tie_breaker
from invigilation.services.workload import WorkloadTracker

logger = logging.getLogger(__name__)

ACKNOWLEDGMENT_CUTOFF = time(18, 0)
LIVE_WINDOW_LEAD = timedelta(minutes=30)


def acknowledgment_deadline(day: date) -> datetime:
    return datetime.combine(day - timedelta(days=1), ACKNOWLEDGMENT_CUTOFF)


def live_status_window(day: date, start_time: str) -> tuple[datetime, datetime]:
    starts_at = datetime.combine(day, time.fromisoformat(start_time))
    return starts_at - LIVE_WINDOW_LEAD, starts_at


@dataclass(frozen=True)
class ExamSelector:
    exam_ids: tuple[str, ...] | None = None
    campus: str | None = None
    department: str | None = None


@dataclass
class SessionResult:
    session: ExamSession
    success: bool
    message: str
    allocations: list[Allocation] = field(default_factory=list)
    rooms_allocated: int = 0

    def as_dict(self) -> dict:
        return {
            "session_key": self.session.key,
            "date": self.session.day,
            "time_band": self.session.band.value,
            "start_time": self.session.start_time,
            "end_time": self.session.end_time,
            "exam_ids": [exam.id for exam in self.session.exams],
            "success": self.success,
            "message": self.message,
            "rooms_allocated": self.rooms_allocated,
            "allocations": self.allocations,
        }


@dataclass
class AllocationRunResult:
    success: bool
    preview: bool
    message: str
    sessions: list[SessionResult] = field(default_factory=list)
    conflicts: list = field(default_factory=list)
    reserves_created: int = 0
    faculty_workload: list[dict] = field(default_factory=list)

    @property
    def allocations(self) -> list[Allocation]:
        return [allocation for result in self.sessions for allocation in result.allocations]

    def summary(self) -> dict:
        return {
            "sessions_processed": len(self.sessions),
            "sessions_succeeded": sum(1 for result in self.sessions if result.success),
            "rooms_allocated": sum(result.rooms_allocated for result in self.sessions),
            "allocations_created": len(self.allocations),
            "reserves_created": self.reserves_created,
            "conflicts_detected": len(self.conflicts),
            "faculty_workload": self.faculty_workload,
        }

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "preview": self.preview,
            "message": self.message,
            "sessions": [result.as_dict() for result in self.sessions],
            "conflicts": self.conflicts,
            "summary": self.summary(),
        }


class PersistentAllocationStore:
    preview = False

    def __init__(self, repos: Repositories) -> None:
        self.repos = repos

    def save_allocation(self, allocation: Allocation) -> None:
        self.repos.allocations.add(allocation)

    def save_reserve(self, reserve: ReservedAllocation) -> None:
        self.repos.reserves.add(reserve)

    def mark_exams_allocated(self, exams: list[Exam]) -> None:
        self.repos.exams.mark_allocated(exams)

    def finish(self, faculty_by_id: dict[str, User]) -> list[Conflict]:
        self.repos.db.flush()
        return ConflictService(self.repos.db).detect()


class PreviewAllocationStore:
    """Collects would-be records in memory; nothing reaches the database session."""

    preview = True

    def __init__(self) -> None:
        self.allocations: list[Allocation] = []
        self.reserves: list[ReservedAllocation] = []

    def save_allocation(self, allocation: Allocation) -> None:
        self.allocations.append(allocation)

    def save_reserve(self, reserve: ReservedAllocation) -> None:
        self.reserves.append(reserve)

    def mark_exams_allocated(self, exams: list[Exam]) -> None:
        return None

    def finish(self, faculty_by_id: dict[str, User]):
        return find_conflicts(self.allocations, faculty_by_id)


def build_allocation(assignment: RoomAssignment, faculty: User, *, allocated_by_id: str | None = None) -> Allocation:
    context = assignment.context
    opens_at, closes_at = live_status_window(context.day, context.start_time)
    # Every column is set explicitly so preview objects, which are never flushed, are complete.
    return Allocation(
        id=str(uuid.uuid4()),
        exam_id=assignment.exam.id,
        classroom_id=assignment.classroom.id,
        faculty_id=faculty.id,
        date=context.day,
        start_time=context.start_time,
        end_time=context.end_time,
        campus=assignment.classroom.campus,
        department=context.department,
        status=AllocationStatus.assigned,
        is_notified=False,
        acknowledgment_status=AcknowledgmentStatus.pending,
        acknowledgment_deadline=acknowledgment_deadline(context.day),
        reminder_sent=False,
        live_status=LiveStatus.none,
        live_window_opens_at=opens_at,
        live_window_closes_at=closes_at,
        reserve_faculty=[],
        allocated_by_id=allocated_by_id,
    )


class AllocationEngine:
    """Runs allocation over scheduled exams, either for real or as a dry run."""

    def __init__(
        self,
        db: Session,
        *,
        tie_breaker_factory: Callable[[], TieBreaker] | None = None,
        events: EventSink | None = None,
        policy: AllocationPolicy | None = None,
        actor: User | None = None,
    ) -> None:
        self.db = db
        self.repos = Repositories(db)
        self.tie_breaker_factory = tie_breaker_factory or (lambda: build_tie_breaker(get_settings()))
        self.events = events
        self.policy = policy
        self.actor = actor

    def allocate(self, selector: ExamSelector | None = None) -> AllocationRunResult:
        return self._run(selector or ExamSelector(), PersistentAllocationStore(self.repos))

    def announce(self, result: AllocationRunResult) -> None:
        """Publish the events of a run whose transaction has been committed."""
        for allocation in result.allocations:
            emit(
                self.events,
                AllocationEvent.new_allocation,
                {
                    "allocation_id": allocation.id,
                    "faculty_id": allocation.faculty_id,
                    "exam_id": allocation.exam_id,
                    "date": allocation.date,
                    "start_time": allocation.start_time,
                    "end_time": allocation.end_time,
                },
            )
        emit(self.events, AllocationEvent.allocation_complete, {"message": result.message, **result.summary()})

    def preview(self, selector: ExamSelector | None = None) -> AllocationRunResult:
        return self._run(selector or ExamSelector(), PreviewAllocationStore())

    def detect_conflicts(self) -> list[Conflict]:
        return ConflictService(self.db).detect()

    def _run(self, selector: ExamSelector, store) -> AllocationRunResult:
        policy = self.policy or load_active_policy(self.db)
        tie_breaker = self.tie_breaker_factory()

        exams = self.repos.exams.list_schedulable(
            exam_ids=selector.exam_ids,
            campus=selector.campus,
            department=selector.department,
        )
        if not exams:
            return AllocationRunResult(False, store.preview, "No scheduled exams found for allocation")
        sessions = group_exams_by_session(exams)

        if not self.repos.classrooms.list_active(campus=selector.campus):
            return AllocationRunResult(False, store.preview, "No active classrooms found")
        faculty = self.repos.users.list_active(
            UserRole.faculty,
            campus=selector.campus,
            department=selector.department,
        )
        if not faculty:
            return AllocationRunResult(False, store.preview, "No active faculty found")

        tracker = WorkloadTracker.from_allocations(self.repos.allocations.list_active())
        allocator = RoomSessionAllocator(policy, tie_breaker)
        rooms_by_campus: dict[str, list] = {}
        result = AllocationRunResult(False, store.preview, "")

        for session in sessions:
            if session.campus not in rooms_by_campus:
                rooms_by_campus[session.campus] = self.repos.classrooms.list_active(campus=session.campus)
            rooms = rooms_by_campus[session.campus]
            pool = allocator.eligible_pool(session, faculty, tracker)
            try:
                plan = allocator.plan(session, rooms, pool, tracker)
            except InsufficientResourceError as exc:
                logger.info("Session %s not allocated: %s", session.key, exc.message)
                result.sessions.append(SessionResult(session=session, success=False, message=exc.message))
                continue

            tracker = plan.tracker
            allocations, reserve_count = self._materialize(plan, store, faculty, tracker, policy, tie_breaker)
            store.mark_exams_allocated(plan.staffed_exams)
            result.reserves_created += reserve_count
            result.sessions.append(
                SessionResult(
                    session=session,
                    success=True,
                    message=f"Allocated {len(plan.assignments)} room(s) with {len(allocations)} invigilator(s)",
                    allocations=allocations,
                    rooms_allocated=len(plan.assignments),
                )
            )

        faculty_by_id = {member.id: member for member in faculty}
        result.conflicts = list(store.finish(faculty_by_id))
        result.faculty_workload = self._workload_rows(result, tracker, faculty_by_id)

        succeeded = sum(1 for item in result.sessions if item.success)
        result.success = succeeded > 0
        if result.success:
            result.message = f"Allocated {succeeded} of {len(result.sessions)} session(s)"
        else:
            result.message = "No sessions could be allocated"
        logger.info(
            "%s run finished: %s; %d allocation(s), %d conflict(s)",
            "Preview" if store.preview else "Allocation",
            result.message,
            len(result.allocations),
            len(result.conflicts),
        )
        return result

    def _materialize(
        self,
        plan: SessionPlan,
        store,
        faculty: list[User],
        tracker: WorkloadTracker,
        policy: AllocationPolicy,
        tie_breaker: TieBreaker,
    ) -> tuple[list[Allocation], int]:
        primary_ids = plan.primary_faculty_ids
        allocations: list[Allocation] = []
        reserve_count = 0
        for assignment in plan.assignments:
            for member in assignment.faculty:
                allocation = build_allocation(
                    assignment,
                    member,
                    allocated_by_id=self.actor.id if self.actor is not None else None,
                )
                reserves = select_reserves(
                    assignment.context,
                    faculty,
                    excluded_ids=primary_ids,
                    tracker=tracker,
                    policy=policy,
                    tie_breaker=tie_breaker,
                )
                allocation.reserve_faculty = [
                    {
                        "faculty_id": reserve.id,
                        "priority": priority,
                        "status": ReserveStatus.available.value,
                        "suggested_at": None,
                        "activated_at": None,
                    }
                    for priority, reserve in enumerate(reserves, start=1)
                ]
                store.save_allocation(allocation)
                for priority, reserve in enumerate(reserves, start=1):
                    store.save_reserve(
                        ReservedAllocation(
                            id=str(uuid.uuid4()),
                            exam_id=assignment.exam.id,
                            primary_allocation_id=allocation.id,
                            reserved_faculty_id=reserve.id,
                            priority=priority,
                            status=ReservedAllocationStatus.available,
                        )
                    )
                reserve_count += len(reserves)
                allocations.append(allocation)
        return allocations, reserve_count

    @staticmethod
    def _workload_rows(result: AllocationRunResult, tracker: WorkloadTracker, faculty_by_id: dict[str, User]) -> list[dict]:
        touched = sorted({allocation.faculty_id for allocation in result.allocations})
        rows: list[dict] = []
        for faculty_id in touched:
            workload = tracker.get(faculty_id)
            member = faculty_by_id.get(faculty_id)
            rows.append(
                {
                    "faculty_id": faculty_id,
                    "name": member.name if member is not None else faculty_id,
                    "duty_count": workload.duty_count,
                    "total_hours": round(workload.total_hours, 2),
                    "dates": workload.dates,
                }
            )
        return rows
