import itertools
import os
from datetime import date

# Point the application engine at SQLite before anything imports the session module.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from invigilation.api.deps import get_db, get_event_sink, get_mailer, get_tie_breaker_factory
from invigilation.db.base import Base
from invigilation.main import app
from invigilation.models.allocation import Allocation, AllocationStatus
from invigilation.models.classroom import Classroom
from invigilation.models.exam import Exam, ExamType
from invigilation.models.user import User, UserRole
from invigilation.services.allocation_engine import acknowledgment_deadline, live_status_window
from invigilation.services.mailer import DeliveryResult
from invigilation.services.run_lock import clear_allocation_runs
from invigilation.services.tie_break import NoTieBreaker

EXAM_DAY = date(2026, 11, 2)  # a Monday


class RecordingEventSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def publish(self, event, payload) -> None:
        self.events.append((event.value, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[dict]:
        return [payload for event, payload in self.events if event == name]


class FakeMailer:
    def __init__(self, failing_emails=()) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.failing_emails = set(failing_emails)

    def _deliver(self, kind: str, recipient: User, allocation: Allocation) -> DeliveryResult:
        self.sent.append((kind, recipient.email, allocation.id))
        if recipient.email in self.failing_emails:
            return DeliveryResult(success=False, message="SMTP connection failed")
        return DeliveryResult(success=True, message=f"Sent to {recipient.email}")

    def send_duty_notice(self, faculty, allocation, exam, classroom) -> DeliveryResult:
        return self._deliver("duty", faculty, allocation)

    def send_acknowledgment_reminder(self, faculty, allocation, exam, classroom) -> DeliveryResult:
        return self._deliver("reminder", faculty, allocation)

    def send_emergency_alert(self, recipient, allocation, faculty, reason) -> DeliveryResult:
        return self._deliver("emergency", recipient, allocation)


class Seeder:
    def __init__(self, db) -> None:
        self.db = db
        self._counter = itertools.count(1)

    def _save(self, record):
        self.db.add(record)
        self.db.commit()
        return record

    def faculty(
        self,
        name: str | None = None,
        *,
        campus: str = "Main",
        department: str = "CSE",
        subjects=(),
        max_hours_per_day: int | None = None,
        availability_windows=(),
        is_active: bool = True,
    ) -> User:
        number = next(self._counter)
        return self._save(
            User(
                name=name or f"Faculty {number}",
                email=f"faculty{number}@example.edu",
                role=UserRole.faculty,
                employee_id=f"EMP-{number:04d}",
                campus=campus,
                department=department,
                subjects=list(subjects),
                max_hours_per_day=max_hours_per_day,
                availability_windows=list(availability_windows),
                is_active=is_active,
            )
        )

    def admin(self, name: str = "Exam Cell", *, role: UserRole = UserRole.admin) -> User:
        number = next(self._counter)
        return self._save(
            User(name=name, email=f"staff{number}@example.edu", role=role, campus="Main", is_active=True)
        )

    def room(
        self,
        number: str | None = None,
        *,
        campus: str = "Main",
        block: str = "A",
        floor: int = 1,
        department: str | None = None,
        is_active: bool = True,
    ) -> Classroom:
        index = next(self._counter)
        return self._save(
            Classroom(
                room_number=number or f"R{index:03d}",
                block=block,
                floor=floor,
                campus=campus,
                department=department,
                capacity=60,
                is_active=is_active,
            )
        )

    def exam(
        self,
        *,
        day: date = EXAM_DAY,
        start: str = "09:00",
        end: str = "12:00",
        campus: str = "Main",
        department: str | None = "CSE",
        course_name: str = "Data Structures",
        exam_type: ExamType = ExamType.semester,
        classroom_id: str | None = None,
    ) -> Exam:
        index = next(self._counter)
        return self._save(
            Exam(
                exam_code=f"EX-{index:04d}",
                exam_name=f"{course_name} Exam",
                course_code=f"CS{index:03d}",
                course_name=course_name,
                date=day,
                start_time=start,
                end_time=end,
                campus=campus,
                department=department,
                classroom_id=classroom_id,
                total_students=60,
                exam_type=exam_type,
            )
        )

    def allocation(
        self,
        faculty: User,
        *,
        day: date = EXAM_DAY,
        start: str = "09:00",
        end: str = "12:00",
        exam: Exam | None = None,
        classroom: Classroom | None = None,
        status: AllocationStatus = AllocationStatus.assigned,
        reserve_faculty=(),
    ) -> Allocation:
        opens_at, closes_at = live_status_window(day, start)
        return self._save(
            Allocation(
                exam_id=exam.id if exam is not None else "external-exam",
                classroom_id=classroom.id if classroom is not None else None,
                faculty_id=faculty.id,
                date=day,
                start_time=start,
                end_time=end,
                campus=faculty.campus or "Main",
                department=faculty.department or "General",
                status=status,
                acknowledgment_deadline=acknowledgment_deadline(day),
                live_window_opens_at=opens_at,
                live_window_closes_at=closes_at,
                reserve_faculty=[
                    {"faculty_id": member.id, "priority": priority, "status": "available",
                     "suggested_at": None, "activated_at": None}
                    for priority, member in enumerate(reserve_faculty, start=1)
                ],
            )
        )


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seed(db):
    return Seeder(db)


@pytest.fixture()
def events():
    return RecordingEventSink()


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def client(session_factory, events, mailer):
    clear_allocation_runs()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_sink] = lambda: events
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_tie_breaker_factory] = lambda: NoTieBreaker

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    clear_allocation_runs()