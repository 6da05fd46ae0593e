from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
import logging
import uuid

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from invigilation.core.exceptions import ConcurrentUpdateError, DutyStateError, ResourceNotFoundError
from invigilation.db.repositories import Repositories
from invigilation.models.allocation import (
    AcknowledgmentStatus,
    Allocation,
    AllocationStatus,
    LiveStatus,
    ReserveStatus,
)
from invigilation.models.reserved_allocation import ReservedAllocationStatus
from invigilation.models.user import User, UserRole
from invigilation.services.audit import log_activity
from invigilation.services.events import AllocationEvent, EventSink, emit
from invigilation.services.mailer import DutyMailer

logger = logging.getLogger(__name__)

REPLACED_NOTE = "Replaced by reserved faculty"
SUGGESTED_RESERVE_LIMIT = 2
_OPEN_STATUSES = (AllocationStatus.assigned, AllocationStatus.confirmed)


@dataclass
class Replacement:
    replaced: Allocation
    replacement: Allocation


def _iso(value: datetime) -> str:
    return value.isoformat()


class DutyLifecycle:
    """State transitions of a single invigilation duty after allocation.

    Timestamps are naive local datetimes, like the deadlines stored on allocations.
    """

    def __init__(
        self,
        db: Session,
        *,
        events: EventSink | None = None,
        mailer: DutyMailer | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.db = db
        self.repos = Repositories(db)
        self.events = events
        self.mailer = mailer
        self.clock = clock

    def _get(self, allocation_id: str) -> Allocation:
        allocation = self.repos.allocations.get(allocation_id)
        if allocation is None:
            raise ResourceNotFoundError("Allocation", allocation_id)
        return allocation

    def _owned(self, allocation_id: str, faculty: User) -> Allocation:
        allocation = self._get(allocation_id)
        if allocation.faculty_id != faculty.id:
            # Do not reveal other faculty members' duties.
            raise ResourceNotFoundError("Allocation", allocation_id)
        return allocation

    def _flush(self, allocation: Allocation) -> None:
        try:
            self.db.flush()
        except StaleDataError as exc:
            self.db.rollback()
            raise ConcurrentUpdateError("Allocation", allocation.id) from exc

    def acknowledge(self, allocation_id: str, faculty: User, *, now: datetime | None = None) -> Allocation:
        now = now or self.clock()
        allocation = self._owned(allocation_id, faculty)
        self._ensure_acknowledgeable(allocation, now)

        allocation.acknowledgment_status = AcknowledgmentStatus.acknowledged
        allocation.acknowledged_at = now
        allocation.unavailable_reason = None
        allocation.status = AllocationStatus.confirmed
        log_activity(self.db, user=faculty, action="allocation.acknowledge", entity_type="allocation", entity_id=allocation.id)
        self._flush(allocation)
        return allocation

    def mark_unavailable(
        self,
        allocation_id: str,
        faculty: User,
        reason: str,
        *,
        now: datetime | None = None,
    ) -> Allocation:
        now = now or self.clock()
        reason = (reason or "").strip()
        if not reason:
            raise DutyStateError("A reason is required when marking unavailable")
        allocation = self._owned(allocation_id, faculty)
        self._ensure_acknowledgeable(allocation, now)

        allocation.acknowledgment_status = AcknowledgmentStatus.unavailable
        allocation.acknowledged_at = now
        allocation.unavailable_reason = reason
        log_activity(
            self.db,
            user=faculty,
            action="allocation.unavailable",
            entity_type="allocation",
            entity_id=allocation.id,
            details={"reason": reason},
        )
        self._flush(allocation)
        emit(
            self.events,
            AllocationEvent.faculty_unavailable,
            {
                "allocation_id": allocation.id,
                "faculty_id": faculty.id,
                "faculty_name": faculty.name,
                "reason": reason,
                "reserves": self.available_reserves(allocation),
            },
        )
        return allocation

    def _ensure_acknowledgeable(self, allocation: Allocation, now: datetime) -> None:
        if allocation.status not in _OPEN_STATUSES:
            raise DutyStateError(
                f"Allocation is {allocation.status.value} and can no longer be acknowledged",
                details={"allocation_id": allocation.id, "status": allocation.status.value},
            )
        if now > allocation.acknowledgment_deadline:
            raise DutyStateError(
                "Acknowledgment deadline has passed",
                details={"deadline": _iso(allocation.acknowledgment_deadline)},
            )

    def update_live_status(
        self,
        allocation_id: str,
        faculty: User,
        status: LiveStatus,
        *,
        eta: str | None = None,
        emergency_reason: str | None = None,
        now: datetime | None = None,
    ) -> Allocation:
        now = now or self.clock()
        if status == LiveStatus.none:
            raise DutyStateError("Live status must be present, on_the_way or unable_to_reach")
        allocation = self._owned(allocation_id, faculty)
        if allocation.status not in _OPEN_STATUSES:
            raise DutyStateError(
                f"Allocation is {allocation.status.value}; live status cannot be updated",
                details={"allocation_id": allocation.id},
            )
        if not (allocation.live_window_opens_at <= now <= allocation.live_window_closes_at):
            raise DutyStateError(
                "Live status can only be updated from 30 minutes before the exam until it starts",
                details={
                    "window_opens_at": _iso(allocation.live_window_opens_at),
                    "window_closes_at": _iso(allocation.live_window_closes_at),
                },
            )
        if status == LiveStatus.unable_to_reach and not (emergency_reason or "").strip():
            raise DutyStateError("An emergency reason is required when unable to reach")

        allocation.live_status = status
        allocation.live_status_updated_at = now
        allocation.eta = eta if status == LiveStatus.on_the_way else None
        allocation.emergency_reason = emergency_reason.strip() if status == LiveStatus.unable_to_reach else None

        suggested: list[dict] = []
        if status == LiveStatus.unable_to_reach:
            suggested = self._suggest_reserves(allocation, now)
        log_activity(
            self.db,
            user=faculty,
            action="allocation.live_status",
            entity_type="allocation",
            entity_id=allocation.id,
            details={"status": status.value},
        )
        self._flush(allocation)

        emit(
            self.events,
            AllocationEvent.live_status_updated,
            {
                "allocation_id": allocation.id,
                "faculty_id": faculty.id,
                "live_status": status,
                "eta": allocation.eta,
                "emergency_reason": allocation.emergency_reason,
            },
        )
        if status == LiveStatus.unable_to_reach:
            emit(
                self.events,
                AllocationEvent.faculty_unable_to_reach,
                {
                    "allocation_id": allocation.id,
                    "faculty_id": faculty.id,
                    "faculty_name": faculty.name,
                    "emergency_reason": allocation.emergency_reason,
                    "suggested_reserves": suggested,
                },
            )
            self._alert_admins(allocation, faculty)
        return allocation

    def available_reserves(self, allocation: Allocation, limit: int = SUGGESTED_RESERVE_LIMIT) -> list[dict]:
        entries = [
            entry
            for entry in allocation.reserve_faculty or []
            if entry.get("status") == ReserveStatus.available.value
        ]
        entries.sort(key=lambda entry: entry.get("priority", 0))
        return entries[:limit]

    def _suggest_reserves(self, allocation: Allocation, now: datetime) -> list[dict]:
        chosen = {entry["faculty_id"] for entry in self.available_reserves(allocation)}
        if not chosen:
            return []
        updated: list[dict] = []
        suggested: list[dict] = []
        for entry in allocation.reserve_faculty:
            entry = dict(entry)
            if entry["faculty_id"] in chosen:
                entry["status"] = ReserveStatus.suggested.value
                entry["suggested_at"] = _iso(now)
                suggested.append(entry)
            updated.append(entry)
        # Reassign so the JSON column is flagged as modified.
        allocation.reserve_faculty = updated

        for entry in suggested:
            record = self.repos.reserves.find(allocation.id, entry["faculty_id"])
            if record is not None and record.status == ReservedAllocationStatus.available:
                record.status = ReservedAllocationStatus.suggested
                record.suggested_at = now

        names = self.repos.users.by_ids(entry["faculty_id"] for entry in suggested)
        for entry in suggested:
            member = names.get(entry["faculty_id"])
            entry["name"] = member.name if member is not None else None
        return sorted(suggested, key=lambda entry: entry["priority"])

    def _alert_admins(self, allocation: Allocation, faculty: User) -> None:
        if self.mailer is None:
            return
        for admin in self.repos.users.list_active(UserRole.admin):
            result = self.mailer.send_emergency_alert(admin, allocation, faculty, allocation.emergency_reason)
            if not result.success:
                logger.warning("Emergency alert to %s failed: %s", admin.email, result.message)

    def replace_with_reserve(
        self,
        allocation_id: str,
        reserve_faculty_id: str,
        *,
        actor: User,
        now: datetime | None = None,
    ) -> Replacement:
        now = now or self.clock()
        allocation = self._get(allocation_id)
        if allocation.status not in _OPEN_STATUSES:
            raise DutyStateError(
                f"Allocation is {allocation.status.value} and cannot be replaced",
                details={"allocation_id": allocation.id},
            )
        entry = next(
            (item for item in allocation.reserve_faculty or [] if item.get("faculty_id") == reserve_faculty_id),
            None,
        )
        if entry is None:
            raise DutyStateError(
                "Faculty is not on this allocation's reserve list",
                details={"allocation_id": allocation.id, "faculty_id": reserve_faculty_id},
            )
        if entry.get("status") == ReserveStatus.activated.value:
            raise DutyStateError("Reserve has already been activated")
        reserve_faculty = self.repos.users.get(reserve_faculty_id, role=UserRole.faculty)
        if reserve_faculty is None or not reserve_faculty.is_active:
            raise ResourceNotFoundError("Faculty", reserve_faculty_id)

        replacement = Allocation(
            id=str(uuid.uuid4()),
            exam_id=allocation.exam_id,
            classroom_id=allocation.classroom_id,
            faculty_id=reserve_faculty.id,
            date=allocation.date,
            start_time=allocation.start_time,
            end_time=allocation.end_time,
            campus=allocation.campus,
            department=allocation.department,
            status=AllocationStatus.assigned,
            is_notified=False,
            acknowledgment_status=AcknowledgmentStatus.pending,
            acknowledgment_deadline=allocation.acknowledgment_deadline,
            reminder_sent=False,
            live_status=LiveStatus.none,
            live_window_opens_at=allocation.live_window_opens_at,
            live_window_closes_at=allocation.live_window_closes_at,
            reserve_faculty=[],
            replaces_allocation_id=allocation.id,
            allocated_by_id=actor.id,
        )
        self.repos.allocations.add(replacement)

        allocation.status = AllocationStatus.replaced
        allocation.live_status = LiveStatus.unable_to_reach
        allocation.live_status_updated_at = now
        allocation.emergency_reason = allocation.emergency_reason or REPLACED_NOTE
        updated: list[dict] = []
        for item in allocation.reserve_faculty:
            item = dict(item)
            if item["faculty_id"] == reserve_faculty_id:
                item["status"] = ReserveStatus.activated.value
                item["activated_at"] = _iso(now)
            updated.append(item)
        allocation.reserve_faculty = updated

        record = self.repos.reserves.find(allocation.id, reserve_faculty_id)
        if record is not None:
            record.status = ReservedAllocationStatus.activated
            record.activated_at = now
            record.replacement_allocation_id = replacement.id

        log_activity(
            self.db,
            user=actor,
            action="allocation.replace",
            entity_type="allocation",
            entity_id=allocation.id,
            details={"replacement_id": replacement.id, "reserve_faculty_id": reserve_faculty_id},
        )
        self._flush(allocation)

        emit(
            self.events,
            AllocationEvent.faculty_replaced,
            {
                "allocation_id": allocation.id,
                "replacement_allocation_id": replacement.id,
                "faculty_id": reserve_faculty.id,
                "replaced_faculty_id": allocation.faculty_id,
            },
        )
        if self.mailer is not None:
            exam = self.repos.exams.get(replacement.exam_id)
            classroom = self.repos.classrooms.get(replacement.classroom_id) if replacement.classroom_id else None
            result = self.mailer.send_duty_notice(reserve_faculty, replacement, exam, classroom)
            if result.success:
                replacement.is_notified = True
                replacement.notified_at = now
                self._flush(replacement)
            else:
                logger.warning("Replacement notice to %s failed: %s", reserve_faculty.email, result.message)
        return Replacement(replaced=allocation, replacement=replacement)

    def cancel(self, allocation_id: str, *, actor: User) -> Allocation:
        allocation = self._get(allocation_id)
        if allocation.status == AllocationStatus.cancelled:
            raise DutyStateError("Allocation is already cancelled")
        allocation.status = AllocationStatus.cancelled
        log_activity(self.db, user=actor, action="allocation.cancel", entity_type="allocation", entity_id=allocation.id)
        self._flush(allocation)
        emit(
            self.events,
            AllocationEvent.allocation_cancelled,
            {"allocation_id": allocation.id, "faculty_id": allocation.faculty_id},
        )
        return allocation
