from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from invigilation.api.deps import get_db, require_roles
from invigilation.models.user import User, UserRole
from invigilation.schemas.policy import AllocationPolicyOut, AllocationPolicyUpdate
from invigilation.services.audit import log_activity
from invigilation.services.policy import get_active_policy_record, update_active_policy

router = APIRouter()


@router.get("/settings/allocation-policy", response_model=AllocationPolicyOut)
def get_allocation_policy(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.hod)),
) -> AllocationPolicyOut:
    record = get_active_policy_record(db)
    db.commit()
    return AllocationPolicyOut.model_validate(record)


@router.put("/settings/allocation-policy", response_model=AllocationPolicyOut)
def put_allocation_policy(
    payload: AllocationPolicyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> AllocationPolicyOut:
    record = update_active_policy(db, payload, user=current_user)
    log_activity(
        db,
        user=current_user,
        action="settings.allocation_policy.update",
        entity_type="allocation_policy",
        entity_id=record.id,
        details=payload.model_dump(),
    )
    db.commit()
    db.refresh(record)
    return AllocationPolicyOut.model_validate(record)
