from collections.abc import Callable
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from invigilation.api.deps import get_current_user, get_db, get_event_sink, get_mailer, get_tie_breaker_factory, require_roles
from invigilation.core.exceptions import ResourceNotFoundError
from invigilation.db.repositories import Repositories
from invigilation.models.allocation import AllocationStatus
from invigilation.models.user import User, UserRole
from invigilation.schemas.allocation import (
    AllocationOut,
    AllocationRunOut,
    AllocationRunRequest,
    NoticeDispatchOut,
    ReplaceFacultyRequest,
    ReplacementOut,
)
from invigilation.services.allocation_engine import AllocationEngine, ExamSelector
from invigilation.services.audit import log_activity
from invigilation.services.duty_lifecycle import DutyLifecycle
from invigilation.services.duty_notices import notify_pending_allocations, send_acknowledgment_reminders
from invigilation.services.events import EventSink
from invigilation.services.mailer import DutyMailer
from invigilation.services.run_lock import AllocationScope, allocation_run_lock
from invigilation.services.tie_break import TieBreaker

router = APIRouter()


def _selector(payload: AllocationRunRequest) -> ExamSelector:
    return ExamSelector(
        exam_ids=tuple(payload.exam_ids) if payload.exam_ids is not None else None,
        campus=payload.campus,
        department=payload.department,
    )


@router.post("/allocations/run", response_model=AllocationRunOut)
def run_allocation(
    payload: AllocationRunRequest,
    db: Session = Depends(get_db),
    events: EventSink = Depends(get_event_sink),
    tie_breaker_factory: Callable[[], TieBreaker] = Depends(get_tie_breaker_factory),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> AllocationRunOut:
    engine = AllocationEngine(db, tie_breaker_factory=tie_breaker_factory, events=events, actor=current_user)
    with allocation_run_lock(AllocationScope(campus=payload.campus, department=payload.department)):
        result = engine.allocate(_selector(payload))
        log_activity(
            db,
            user=current_user,
            action="allocation.run",
            entity_type="allocation_run",
            details={"message": result.message, "allocations_created": len(result.allocations)},
        )
        db.commit()
    engine.announce(result)
    return AllocationRunOut.model_validate(result.as_dict(), from_attributes=True)


@router.post("/allocations/preview", response_model=AllocationRunOut)
def preview_allocation(
    payload: AllocationRunRequest,
    db: Session = Depends(get_db),
    tie_breaker_factory: Callable[[], TieBreaker] = Depends(get_tie_breaker_factory),
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.hod)),
) -> AllocationRunOut:
    engine = AllocationEngine(db, tie_breaker_factory=tie_breaker_factory, actor=current_user)
    result = engine.preview(_selector(payload))
    # Only the default policy record can have been created by a preview.
    db.commit()
    return AllocationRunOut.model_validate(result.as_dict(), from_attributes=True)


@router.get("/allocations", response_model=list[AllocationOut])
def list_allocations(
    faculty_id: str | None = Query(default=None),
    exam_id: str | None = Query(default=None),
    status: AllocationStatus | None = Query(default=None),
    day: date | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[AllocationOut]:
    if current_user.role == UserRole.faculty:
        faculty_id = current_user.id
    return Repositories(db).allocations.search(
        faculty_id=faculty_id,
        exam_id=exam_id,
        status=status,
        day=day,
        limit=limit,
        offset=offset,
    )


@router.get("/allocations/{allocation_id}", response_model=AllocationOut)
def get_allocation(
    allocation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AllocationOut:
    allocation = Repositories(db).allocations.get(allocation_id)
    if allocation is None or (current_user.role == UserRole.faculty and allocation.faculty_id != current_user.id):
        raise ResourceNotFoundError("Allocation", allocation_id)
    return allocation


@router.delete("/allocations/{allocation_id}", response_model=AllocationOut)
def cancel_allocation(
    allocation_id: str,
    db: Session = Depends(get_db),
    events: EventSink = Depends(get_event_sink),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> AllocationOut:
    allocation = DutyLifecycle(db, events=events).cancel(allocation_id, actor=current_user)
    db.commit()
    db.refresh(allocation)
    return allocation


@router.post("/allocations/{allocation_id}/replace", response_model=ReplacementOut)
def replace_faculty(
    allocation_id: str,
    payload: ReplaceFacultyRequest,
    db: Session = Depends(get_db),
    events: EventSink = Depends(get_event_sink),
    mailer: DutyMailer = Depends(get_mailer),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> ReplacementOut:
    replacement = DutyLifecycle(db, events=events, mailer=mailer).replace_with_reserve(
        allocation_id,
        payload.reserve_faculty_id,
        actor=current_user,
    )
    db.commit()
    db.refresh(replacement.replaced)
    db.refresh(replacement.replacement)
    return ReplacementOut.model_validate(
        {"replaced": replacement.replaced, "replacement": replacement.replacement},
        from_attributes=True,
    )


@router.post("/allocations/notify-all", response_model=NoticeDispatchOut)
def notify_all(
    db: Session = Depends(get_db),
    mailer: DutyMailer = Depends(get_mailer),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> NoticeDispatchOut:
    dispatch = notify_pending_allocations(db, mailer)
    log_activity(
        db,
        user=current_user,
        action="allocation.notify_all",
        entity_type="allocation",
        details={"attempted": dispatch.attempted, "delivered": dispatch.delivered},
    )
    db.commit()
    return NoticeDispatchOut(attempted=dispatch.attempted, delivered=dispatch.delivered, failed=dispatch.failed)


@router.post("/allocations/reminders", response_model=NoticeDispatchOut)
def acknowledgment_reminders(
    db: Session = Depends(get_db),
    mailer: DutyMailer = Depends(get_mailer),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> NoticeDispatchOut:
    dispatch = send_acknowledgment_reminders(db, mailer)
    db.commit()
    return NoticeDispatchOut(attempted=dispatch.attempted, delivered=dispatch.delivered, failed=dispatch.failed)
