from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging

from sqlalchemy.orm import Session

from invigilation.db.repositories import Repositories
from invigilation.models.allocation import Allocation
from invigilation.services.mailer import DeliveryResult, DutyMailer

logger = logging.getLogger(__name__)


@dataclass
class NoticeDispatch:
    attempted: int = 0
    delivered: int = 0
    failed: list[dict] = field(default_factory=list)

    def record(self, allocation: Allocation, result: DeliveryResult) -> None:
        self.attempted += 1
        if result.success:
            self.delivered += 1
        else:
            self.failed.append({"allocation_id": allocation.id, "message": result.message})


def _duty_parts(repos: Repositories, allocation: Allocation):
    exam = repos.exams.get(allocation.exam_id)
    classroom = repos.classrooms.get(allocation.classroom_id) if allocation.classroom_id else None
    return exam, classroom


def notify_pending_allocations(db: Session, mailer: DutyMailer, *, now: datetime | None = None) -> NoticeDispatch:
    """Send the duty notice for every open allocation that has not been notified yet."""
    now = now or datetime.now()
    repos = Repositories(db)
    dispatch = NoticeDispatch()
    allocations = repos.allocations.list_unnotified()
    faculty_by_id = repos.users.by_ids(allocation.faculty_id for allocation in allocations)
    for allocation in allocations:
        faculty = faculty_by_id.get(allocation.faculty_id)
        if faculty is None:
            dispatch.record(allocation, DeliveryResult(False, "Faculty record not found"))
            continue
        exam, classroom = _duty_parts(repos, allocation)
        result = mailer.send_duty_notice(faculty, allocation, exam, classroom)
        dispatch.record(allocation, result)
        if result.success:
            allocation.is_notified = True
            allocation.notified_at = now
    db.flush()
    logger.info("Duty notices: %d of %d delivered", dispatch.delivered, dispatch.attempted)
    return dispatch


def send_acknowledgment_reminders(db: Session, mailer: DutyMailer, *, now: datetime | None = None) -> NoticeDispatch:
    """Remind faculty whose duty is today or tomorrow and still awaits acknowledgment."""
    now = now or datetime.now()
    today = now.date()
    repos = Repositories(db)
    dispatch = NoticeDispatch()
    allocations = repos.allocations.list_awaiting_reminder(today, today + timedelta(days=1))
    faculty_by_id = repos.users.by_ids(allocation.faculty_id for allocation in allocations)
    for allocation in allocations:
        faculty = faculty_by_id.get(allocation.faculty_id)
        if faculty is None:
            dispatch.record(allocation, DeliveryResult(False, "Faculty record not found"))
            continue
        exam, classroom = _duty_parts(repos, allocation)
        result = mailer.send_acknowledgment_reminder(faculty, allocation, exam, classroom)
        dispatch.record(allocation, result)
        if result.success:
            allocation.reminder_sent = True
    db.flush()
    logger.info("Acknowledgment reminders: %d of %d delivered", dispatch.delivered, dispatch.attempted)
    return dispatch
