from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from invigilation.api.deps import get_db, require_roles
from invigilation.models.conflict import ConflictSeverity, ConflictStatus
from invigilation.models.user import User, UserRole
from invigilation.schemas.conflict import ConflictOut, ConflictTriageRequest
from invigilation.services.audit import log_activity
from invigilation.services.conflict_service import ConflictService

router = APIRouter()


@router.get("", response_model=list[ConflictOut])
def list_conflicts(
    status: ConflictStatus | None = Query(default=None),
    severity: ConflictSeverity | None = Query(default=None),
    faculty_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.admin, UserRole.hod)),
) -> list[ConflictOut]:
    return ConflictService(db).list_conflicts(status=status, severity=severity, faculty_id=faculty_id)


@router.post("/detect", response_model=list[ConflictOut])
def detect_conflicts(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> list[ConflictOut]:
    conflicts = ConflictService(db).detect()
    log_activity(
        db,
        user=current_user,
        action="conflict.detect",
        entity_type="conflict",
        details={"count": len(conflicts)},
    )
    db.commit()
    return conflicts


@router.post("/{conflict_id}/resolve", response_model=ConflictOut)
def resolve_conflict(
    conflict_id: str,
    payload: ConflictTriageRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> ConflictOut:
    conflict = ConflictService(db).resolve(conflict_id, user=current_user, note=payload.note)
    log_activity(db, user=current_user, action="conflict.resolve", entity_type="conflict", entity_id=conflict_id)
    db.commit()
    db.refresh(conflict)
    return conflict


@router.post("/{conflict_id}/ignore", response_model=ConflictOut)
def ignore_conflict(
    conflict_id: str,
    payload: ConflictTriageRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.admin)),
) -> ConflictOut:
    conflict = ConflictService(db).ignore(conflict_id, user=current_user, note=payload.note)
    log_activity(db, user=current_user, action="conflict.ignore", entity_type="conflict", entity_id=conflict_id)
    db.commit()
    db.refresh(conflict)
    return conflict
