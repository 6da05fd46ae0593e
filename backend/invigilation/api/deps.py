from collections.abc import Callable, Generator, Iterable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from invigilation.core.config import get_settings
from invigilation.db.session import SessionLocal
from invigilation.models.user import User, UserRole
from invigilation.services.events import EventSink, HubEventSink
from invigilation.services.mailer import DutyMailer, SmtpDutyMailer
from invigilation.services.tie_break import TieBreaker, build_tie_breaker


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    x_user_id: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    # Identity is asserted by the upstream gateway that authenticated the caller.
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    user = db.get(User, x_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def require_roles(*roles: UserRole) -> Callable[[User], User]:
    allowed_roles: Iterable[UserRole] = set(roles)

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return role_checker


def get_event_sink() -> EventSink:
    return HubEventSink()


def get_mailer() -> DutyMailer:
    return SmtpDutyMailer(get_settings())


def get_tie_breaker_factory() -> Callable[[], TieBreaker]:
    settings = get_settings()
    return lambda: build_tie_breaker(settings)
