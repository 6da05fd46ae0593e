"""Seed a small exam week (rooms, faculty, exams) and optionally preview its allocation.

Run:
  PYTHONPATH=backend python scripts/seed_exam_week_demo.py [--preview]
"""

from __future__ import annotations

import argparse
from datetime import date, timedelta
import os

from sqlalchemy import select

from invigilation.db.bootstrap import ensure_schema
from invigilation.db.session import SessionLocal
from invigilation.models.classroom import Classroom
from invigilation.models.exam import Exam, ExamStatus, ExamType
from invigilation.models.user import User, UserRole
from invigilation.services.allocation_engine import AllocationEngine, ExamSelector
from invigilation.services.tie_break import HashTieBreaker

CAMPUS = os.getenv("DEMO_CAMPUS", "Main")
DEPARTMENTS = ["CSE", "ECE", "MECH"]
SUBJECTS = {
    "CSE": ["Data Structures", "Operating Systems"],
    "ECE": ["Signals and Systems", "Digital Electronics"],
    "MECH": ["Thermodynamics", "Fluid Mechanics"],
}
FACULTY_PER_DEPARTMENT = 6
ROOMS = [("A", 1, "A101"), ("A", 1, "A102"), ("B", 2, "B201")]


def _first_exam_day() -> date:
    candidate = date.today() + timedelta(days=7)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


def _upsert_user(session, *, email: str, **fields) -> User:
    existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing is None:
        existing = User(email=email, **fields)
        session.add(existing)
    else:
        for key, value in fields.items():
            setattr(existing, key, value)
    return existing


def _seed_people(session) -> None:
    _upsert_user(
        session,
        email="exam.cell@example.edu",
        name="Exam Cell Admin",
        role=UserRole.admin,
        campus=CAMPUS,
        department="Administration",
        is_active=True,
    )
    for department in DEPARTMENTS:
        for index in range(1, FACULTY_PER_DEPARTMENT + 1):
            _upsert_user(
                session,
                email=f"{department.lower()}.faculty{index}@example.edu",
                name=f"{department} Faculty {index}",
                role=UserRole.faculty,
                employee_id=f"{department}-{index:03d}",
                campus=CAMPUS,
                department=department,
                subjects=[SUBJECTS[department][index % 2]],
                max_hours_per_day=6,
                availability_windows=[],
                is_active=True,
            )


def _seed_rooms(session) -> None:
    for block, floor, number in ROOMS:
        existing = session.execute(
            select(Classroom).where(Classroom.room_number == number, Classroom.campus == CAMPUS)
        ).scalar_one_or_none()
        if existing is None:
            session.add(
                Classroom(room_number=number, block=block, floor=floor, campus=CAMPUS, capacity=60, is_active=True)
            )


def _seed_exams(session) -> int:
    first_day = _first_exam_day()
    created = 0
    for offset, department in enumerate(DEPARTMENTS):
        day = first_day + timedelta(days=offset)
        for slot, (start, end, exam_type) in enumerate(
            [("09:30", "12:30", ExamType.semester), ("14:00", "17:00", ExamType.labs)]
        ):
            subject = SUBJECTS[department][slot]
            code = f"{department}-{day.strftime('%m%d')}-{slot + 1}"
            if session.execute(select(Exam).where(Exam.exam_code == code)).scalar_one_or_none() is not None:
                continue
            session.add(
                Exam(
                    exam_code=code,
                    exam_name=f"{subject} {'Lab' if exam_type == ExamType.labs else 'Final'}",
                    course_code=f"{department}{200 + slot}",
                    course_name=subject,
                    date=day,
                    start_time=start,
                    end_time=end,
                    campus=CAMPUS,
                    department=department,
                    total_students=120,
                    exam_type=exam_type,
                    status=ExamStatus.scheduled,
                )
            )
            created += 1
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--preview", action="store_true", help="print an allocation preview after seeding")
    args = parser.parse_args()

    ensure_schema()
    with SessionLocal() as session:
        _seed_people(session)
        _seed_rooms(session)
        created = _seed_exams(session)
        session.commit()
        print(f"Seeded campus {CAMPUS}: {created} new exam(s)")

        if args.preview:
            engine = AllocationEngine(session, tie_breaker_factory=lambda: HashTieBreaker(salt="demo"))
            result = engine.preview(ExamSelector(campus=CAMPUS))
            print(result.message)
            for item in result.sessions:
                status = "ok" if item.success else "failed"
                print(f"  - {item.session.key}: {status} ({item.message})")
            session.rollback()


if __name__ == "__main__":
    main()
