from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from invigilation.api.deps import get_db, get_event_sink, get_mailer, require_roles
from invigilation.models.allocation import LiveStatus
from invigilation.models.user import User, UserRole
from invigilation.schemas.allocation import AllocationOut
from invigilation.schemas.duty import AcknowledgeRequest, LiveStatusRequest
from invigilation.services.duty_lifecycle import DutyLifecycle
from invigilation.services.events import EventSink
from invigilation.services.mailer import DutyMailer

router = APIRouter()


@router.post("/duties/{allocation_id}/acknowledge", response_model=AllocationOut)
def acknowledge_duty(
    allocation_id: str,
    payload: AcknowledgeRequest,
    db: Session = Depends(get_db),
    events: EventSink = Depends(get_event_sink),
    current_user: User = Depends(require_roles(UserRole.faculty)),
) -> AllocationOut:
    lifecycle = DutyLifecycle(db, events=events)
    if payload.action == "unavailable":
        allocation = lifecycle.mark_unavailable(allocation_id, current_user, payload.reason or "")
    else:
        allocation = lifecycle.acknowledge(allocation_id, current_user)
    db.commit()
    db.refresh(allocation)
    return allocation


@router.post("/duties/{allocation_id}/live-status", response_model=AllocationOut)
def update_live_status(
    allocation_id: str,
    payload: LiveStatusRequest,
    db: Session = Depends(get_db),
    events: EventSink = Depends(get_event_sink),
    mailer: DutyMailer = Depends(get_mailer),
    current_user: User = Depends(require_roles(UserRole.faculty)),
) -> AllocationOut:
    allocation = DutyLifecycle(db, events=events, mailer=mailer).update_live_status(
        allocation_id,
        current_user,
        LiveStatus(payload.status),
        eta=payload.eta,
        emergency_reason=payload.emergency_reason,
    )
    db.commit()
    db.refresh(allocation)
    return allocation
