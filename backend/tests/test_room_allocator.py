from datetime import date

import pytest

from invigilation.core.exceptions import InsufficientResourceError
from invigilation.models.classroom import Classroom
from invigilation.models.exam import Exam, ExamType
from invigilation.models.user import User, UserRole
from invigilation.services.policy import AllocationPolicy
from invigilation.services.room_allocator import RoomSessionAllocator, duty_department
from invigilation.services.sessions import group_exams_by_session
from invigilation.services.tie_break import NoTieBreaker, RandomTieBreaker
from invigilation.services.workload import WorkloadTracker

MONDAY = date(2026, 11, 2)


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


def make_room(room_id: str) -> Classroom:
    return Classroom(id=room_id, room_number=room_id.upper(), block="A", floor=1, campus="Main", is_active=True)


def make_session(exam_type=ExamType.semester, course_name="Data Structures", start="09:00", end="12:00"):
    exam = Exam(
        id="exam-1",
        exam_code="EX1",
        exam_name="Exam",
        course_code="CS201",
        course_name=course_name,
        date=MONDAY,
        start_time=start,
        end_time=end,
        campus="Main",
        department="CSE",
        exam_type=exam_type,
    )
    return group_exams_by_session([exam])[0]


def test_every_room_gets_two_distinct_faculty():
    allocator = RoomSessionAllocator(AllocationPolicy(), RandomTieBreaker(11))
    rooms = [make_room(f"r{index}") for index in range(3)]
    faculty = [make_faculty(f"f{index}") for index in range(6)]

    plan = allocator.plan(make_session(), rooms, faculty, WorkloadTracker())

    assert len(plan.assignments) == 3
    assigned = [member.id for assignment in plan.assignments for member in assignment.faculty]
    assert len(assigned) == 6
    assert len(set(assigned)) == 6
    assert all(len({member.id for member in item.faculty}) == 2 for item in plan.assignments)


def test_plan_records_workload_on_a_copy_only():
    allocator = RoomSessionAllocator(AllocationPolicy(), NoTieBreaker())
    tracker = WorkloadTracker()

    plan = allocator.plan(make_session(), [make_room("r1")], [make_faculty("a"), make_faculty("b")], tracker)

    assert tracker.faculty_ids() == []
    assert sorted(plan.tracker.faculty_ids()) == ["a", "b"]
    assert plan.tracker.get("a").hours_on(MONDAY) == 3


def test_small_pool_fails_the_whole_session():
    allocator = RoomSessionAllocator(AllocationPolicy(), NoTieBreaker())
    rooms = [make_room(f"r{index}") for index in range(3)]
    faculty = [make_faculty(f"f{index}") for index in range(5)]

    with pytest.raises(InsufficientResourceError) as exc_info:
        allocator.plan(make_session(), rooms, faculty, WorkloadTracker())

    assert "Insufficient available faculty" in exc_info.value.message
    assert "Required: 6" in exc_info.value.message
    assert "Found: 5" in exc_info.value.message


def test_exhausted_pool_fails_the_room_instead_of_reusing_faculty():
    allocator = RoomSessionAllocator(AllocationPolicy(max_duties_per_faculty=1), NoTieBreaker())
    tracker = WorkloadTracker()
    # Two of the four candidates have already reached their duty limit.
    tracker.record("f2", date(2026, 10, 30), "09:00", "10:00")
    tracker.record("f3", date(2026, 10, 30), "09:00", "10:00")
    rooms = [make_room("r1"), make_room("r2")]
    faculty = [make_faculty(f"f{index}") for index in range(4)]

    with pytest.raises(InsufficientResourceError) as exc_info:
        allocator.plan(make_session(), rooms, faculty, tracker)

    assert "Could not assign 2 unique faculty to room R2" in exc_info.value.message


def test_no_rooms_fails_the_session():
    allocator = RoomSessionAllocator(AllocationPolicy(), NoTieBreaker())

    with pytest.raises(InsufficientResourceError):
        allocator.plan(make_session(), [], [make_faculty("a"), make_faculty("b")], WorkloadTracker())


def test_pool_excludes_faculty_busy_in_the_same_band():
    allocator = RoomSessionAllocator(AllocationPolicy(), NoTieBreaker())
    tracker = WorkloadTracker()
    tracker.record("busy", MONDAY, "11:00", "13:00")
    tracker.record("afternoon", MONDAY, "14:00", "17:00")
    faculty = [make_faculty("busy"), make_faculty("afternoon"), make_faculty("free"), make_faculty("off", is_active=False)]

    pool = allocator.eligible_pool(make_session(), faculty, tracker)

    assert [member.id for member in pool] == ["afternoon", "free"]


def test_lab_room_uses_the_subject_expert():
    allocator = RoomSessionAllocator(AllocationPolicy(), RandomTieBreaker(5))
    faculty = [make_faculty(f"f{index}") for index in range(5)]
    faculty.append(make_faculty("expert", subjects=["data structures"], department="ECE", campus="North"))

    plan = allocator.plan(make_session(ExamType.labs), [make_room("r1")], faculty, WorkloadTracker())

    chosen = [member.id for member in plan.assignments[0].faculty]
    assert "expert" in chosen
    assert len(set(chosen)) == 2
    assert plan.assignments[0].subject_matched


def test_lab_room_falls_back_when_the_expert_is_unavailable():
    allocator = RoomSessionAllocator(AllocationPolicy(max_hours_per_day=6), NoTieBreaker())
    tracker = WorkloadTracker()
    tracker.record("expert", MONDAY, "13:00", "17:00")
    faculty = [make_faculty("expert", subjects=["Data Structures"]), make_faculty("a"), make_faculty("b")]

    plan = allocator.plan(make_session(ExamType.labs), [make_room("r1")], faculty, tracker)

    chosen = sorted(member.id for member in plan.assignments[0].faculty)
    assert chosen == ["a", "b"]
    assert not plan.assignments[0].subject_matched


def test_same_day_repetition_disallowed_excludes_faculty_with_a_duty_today():
    allocator = RoomSessionAllocator(AllocationPolicy(allow_same_day_repetition=False), NoTieBreaker())
    tracker = WorkloadTracker()
    tracker.record("x", MONDAY, "08:00", "08:30")
    faculty = [make_faculty("x"), make_faculty("y", department="ECE"), make_faculty("z", department="ECE")]
    session = make_session(start="14:00", end="17:00")

    plan = allocator.plan(session, [make_room("r1")], faculty, tracker)

    assert sorted(member.id for member in plan.assignments[0].faculty) == ["y", "z"]


def test_duty_department_falls_back_to_room_then_general():
    exam = Exam(id="e", department=None)
    room = Classroom(id="r", department="Physics")

    assert duty_department(exam, room) == "Physics"
    assert duty_department(exam, Classroom(id="r2", department=None)) == "General"
    assert duty_department(Exam(id="e2", department="CSE"), room) == "CSE"
