from datetime import date

import pytest

from invigilation.models.user import User, UserRole
from invigilation.services.policy import AllocationPolicy
from invigilation.services.scoring import (
    DutyContext,
    daily_hour_cap,
    fits_availability,
    is_faculty_available,
    rank_candidates,
    score_faculty,
    teaches_any,
)
from invigilation.services.tie_break import HashTieBreaker
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
        "max_hours_per_day": None,
        "availability_windows": [],
        "is_active": True,
    }
    fields.update(overrides)
    return User(**fields)


def context(start="09:00", end="12:00", **overrides) -> DutyContext:
    fields = {"day": MONDAY, "start_time": start, "end_time": end, "campus": "Main", "department": "CSE"}
    fields.update(overrides)
    return DutyContext(**fields)


def test_fresh_faculty_gets_base_plus_campus_and_department_weights():
    policy = AllocationPolicy()
    score = score_faculty(make_faculty("a"), context(), WorkloadTracker(), policy)

    assert score == 100 + policy.campus_preference_weight + policy.department_preference_weight


def test_other_campus_and_department_get_no_preference_bonus():
    faculty = make_faculty("a", campus="North", department="ECE")

    assert score_faculty(faculty, context(), WorkloadTracker(), AllocationPolicy()) == 100


def test_existing_duties_and_hours_lower_the_score():
    tracker = WorkloadTracker()
    tracker.record("a", date(2026, 11, 1), "09:00", "12:00")
    tracker.record("a", MONDAY, "14:00", "16:00")
    policy = AllocationPolicy(campus_preference_weight=0, department_preference_weight=0)

    score = score_faculty(make_faculty("a"), context(), tracker, policy)

    # 100 - 2 duties * 10 - 2 hours today * 5 - 30 same-day (allowed)
    assert score == 40


def test_going_over_the_daily_cap_is_heavily_penalised():
    tracker = WorkloadTracker()
    tracker.record("a", MONDAY, "13:00", "17:00")
    policy = AllocationPolicy(max_hours_per_day=6, campus_preference_weight=0, department_preference_weight=0)

    score = score_faculty(make_faculty("a"), context(), tracker, policy)

    # 100 - 10 - 100 (4h + 3h > 6h) - 30 same day, clamped at zero
    assert score == 0


def test_same_day_penalty_depends_on_repetition_policy():
    tracker = WorkloadTracker()
    tracker.record("a", MONDAY, "14:00", "15:00")
    allowed = AllocationPolicy(campus_preference_weight=0, department_preference_weight=0)
    blocked = AllocationPolicy(
        allow_same_day_repetition=False, campus_preference_weight=0, department_preference_weight=0
    )

    allowed_score = score_faculty(make_faculty("a"), context(), tracker, allowed)
    blocked_score = score_faculty(make_faculty("a"), context(), tracker, blocked)

    assert allowed_score - blocked_score == 70


def test_availability_windows_adjust_the_score():
    inside = make_faculty("a", availability_windows=[{"day": "Monday", "start_time": "08:00", "end_time": "13:00"}])
    outside = make_faculty("b", availability_windows=[{"day": "Monday", "start_time": "13:00", "end_time": "17:00"}])
    other_day = make_faculty("c", availability_windows=[{"day": "Tuesday", "start_time": "08:00", "end_time": "13:00"}])
    policy = AllocationPolicy(campus_preference_weight=0, department_preference_weight=0)
    tracker = WorkloadTracker()

    assert score_faculty(inside, context(), tracker, policy) == 110
    assert score_faculty(outside, context(), tracker, policy) == 60
    assert score_faculty(other_day, context(), tracker, policy) == 100
    assert fits_availability(other_day, context()) is None


def test_jitter_is_bounded():
    policy = AllocationPolicy(campus_preference_weight=0, department_preference_weight=0)
    tie_breaker = HashTieBreaker(max_jitter=5.0)

    score = score_faculty(make_faculty("a"), context(), WorkloadTracker(), policy, tie_breaker)

    assert 100 <= score < 105


def test_personal_cap_lowers_the_policy_cap():
    policy = AllocationPolicy(max_hours_per_day=6)

    assert daily_hour_cap(make_faculty("a", max_hours_per_day=4), policy) == 4
    assert daily_hour_cap(make_faculty("b", max_hours_per_day=10), policy) == 6
    assert daily_hour_cap(make_faculty("c"), policy) == 6


def test_filter_rejects_duty_that_exceeds_daily_hours():
    tracker = WorkloadTracker()
    tracker.record("a", MONDAY, "13:00", "17:00")

    assert not is_faculty_available(make_faculty("a"), context(), tracker, AllocationPolicy(max_hours_per_day=6))
    assert is_faculty_available(make_faculty("a"), context(), tracker, AllocationPolicy(max_hours_per_day=8))


def test_filter_rejects_same_day_when_repetition_disallowed():
    tracker = WorkloadTracker()
    tracker.record("a", MONDAY, "15:00", "16:00")
    policy = AllocationPolicy(allow_same_day_repetition=False)

    assert not is_faculty_available(make_faculty("a"), context(), tracker, policy)


def test_filter_rejects_faculty_at_max_duties():
    tracker = WorkloadTracker()
    tracker.record("a", date(2026, 11, 1), "09:00", "10:00")
    tracker.record("a", date(2026, 10, 30), "09:00", "10:00")

    assert not is_faculty_available(make_faculty("a"), context(), tracker, AllocationPolicy(max_duties_per_faculty=2))
    assert is_faculty_available(make_faculty("a"), context(), tracker, AllocationPolicy(max_duties_per_faculty=3))


@pytest.mark.parametrize(
    ("existing", "gap_minutes", "expected"),
    [
        (("12:30", "14:00"), 30, True),
        (("12:15", "14:00"), 30, False),
        (("11:00", "13:00"), 0, False),
        (("12:00", "13:00"), 0, True),
        (("07:00", "08:30"), 30, True),
    ],
)
def test_filter_enforces_gap_between_duties(existing, gap_minutes, expected):
    tracker = WorkloadTracker()
    tracker.record("a", MONDAY, *existing)
    policy = AllocationPolicy(time_gap_minutes=gap_minutes, max_hours_per_day=12)

    assert is_faculty_available(make_faculty("a"), context(), tracker, policy) is expected


def test_ranking_is_stable_for_equal_scores():
    candidates = [make_faculty("c"), make_faculty("a"), make_faculty("b")]

    ranked = rank_candidates(candidates, context(), WorkloadTracker(), AllocationPolicy())

    assert [member.id for member, _ in ranked] == ["c", "a", "b"]


def test_ranking_prefers_lighter_workload():
    tracker = WorkloadTracker()
    tracker.record("busy", date(2026, 11, 1), "09:00", "12:00")
    candidates = [make_faculty("busy"), make_faculty("idle")]

    ranked = rank_candidates(candidates, context(), tracker, AllocationPolicy())

    assert [member.id for member, _ in ranked] == ["idle", "busy"]


def test_subject_matching_is_case_insensitive_and_trimmed():
    faculty = make_faculty("a", subjects=["  data structures "])

    assert teaches_any(faculty, ["Data Structures"])
    assert not teaches_any(faculty, ["Operating Systems"])
    assert not teaches_any(make_faculty("b"), ["Data Structures"])
