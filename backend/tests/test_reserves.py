from datetime import date

from invigilation.models.user import User, UserRole
from invigilation.services.policy import AllocationPolicy
from invigilation.services.reserves import select_reserves
from invigilation.services.scoring import DutyContext
from invigilation.services.tie_break import NoTieBreaker
from invigilation.services.workload import WorkloadTracker

MONDAY = date(2026, 11, 2)
CONTEXT = DutyContext(day=MONDAY, start_time="09:00", end_time="12:00", campus="Main", department="CSE")


def make_faculty(faculty_id: str, **overrides) -> User:
    fields = {
        "id": faculty_id,
        "name": f"Faculty {faculty_id}",
        "email": f"{faculty_id}@example.edu",
        "role": UserRole.faculty,
        "campus": "Main",
        "department": "CSE",
        "subjects": [],
        "availability_windows": [],
        "is_active": True,
    }
    fields.update(overrides)
    return User(**fields)


def select(faculty, tracker=None, excluded_ids=(), policy=None):
    return select_reserves(
        CONTEXT,
        faculty,
        excluded_ids=set(excluded_ids),
        tracker=tracker or WorkloadTracker(),
        policy=policy or AllocationPolicy(),
        tie_breaker=NoTieBreaker(),
    )


def test_reserves_never_include_primary_assignees():
    faculty = [make_faculty(name) for name in ("a", "b", "c", "d")]

    reserves = select(faculty, excluded_ids={"a", "b"})

    assert [member.id for member in reserves] == ["c", "d"]


def test_reserves_are_limited_to_the_duty_campus_and_active_faculty():
    faculty = [
        make_faculty("north", campus="North"),
        make_faculty("inactive", is_active=False),
        make_faculty("main"),
    ]

    reserves = select(faculty)

    assert [member.id for member in reserves] == ["main"]


def test_idle_faculty_rank_ahead_of_busy_faculty():
    tracker = WorkloadTracker()
    for offset in range(3):
        tracker.record("busy", date(2026, 10, 26 + offset), "09:00", "10:00")
    tracker.record("light", date(2026, 10, 26), "09:00", "10:00")
    faculty = [make_faculty("busy"), make_faculty("light"), make_faculty("idle")]

    reserves = select(faculty, tracker=tracker)

    assert [member.id for member in reserves] == ["idle", "light"]


def test_reserves_skip_faculty_without_capacity():
    tracker = WorkloadTracker()
    tracker.record("full", MONDAY, "13:00", "17:00")
    faculty = [make_faculty("full", max_hours_per_day=4), make_faculty("free")]

    reserves = select(faculty, tracker=tracker)

    assert [member.id for member in reserves] == ["free"]


def test_reserves_may_be_empty():
    assert select([make_faculty("a")], excluded_ids={"a"}) == []
