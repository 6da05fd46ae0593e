from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date

from invigilation.models.user import User
from invigilation.schemas.common import DAY_VALUES, parse_time_to_minutes
from invigilation.services.policy import AllocationPolicy
from invigilation.services.tie_break import NoTieBreaker, TieBreaker
from invigilation.services.workload import WorkloadTracker, duty_hours

BASE_SCORE = 100.0
DUTY_COUNT_PENALTY = 10.0
OVER_DAILY_CAP_PENALTY = 100.0
AT_DAILY_CAP_PENALTY = 50.0
HOURS_TODAY_PENALTY = 5.0
SAME_DAY_BLOCKED_PENALTY = 100.0
SAME_DAY_ALLOWED_PENALTY = 30.0
OUTSIDE_AVAILABILITY_PENALTY = 40.0
INSIDE_AVAILABILITY_BONUS = 10.0


@dataclass(frozen=True)
class DutyContext:
    """Where and when a prospective duty takes place."""

    day: date
    start_time: str
    end_time: str
    campus: str | None = None
    department: str | None = None
    label: str = ""

    @property
    def hours(self) -> float:
        return duty_hours(self.start_time, self.end_time)

    @property
    def start_minute(self) -> int:
        return parse_time_to_minutes(self.start_time)

    @property
    def end_minute(self) -> int:
        return parse_time_to_minutes(self.end_time)

    @property
    def key(self) -> str:
        return f"{self.day.isoformat()}|{self.start_time}-{self.end_time}|{self.label}"


def daily_hour_cap(faculty: User, policy: AllocationPolicy) -> float:
    personal = faculty.max_hours_per_day
    if personal is None or personal < 1:
        return float(policy.max_hours_per_day)
    return float(min(personal, policy.max_hours_per_day))


def _windows_for_day(faculty: User, day: date) -> list[tuple[int, int]]:
    day_name = DAY_VALUES[day.weekday()]
    windows: list[tuple[int, int]] = []
    for window in faculty.availability_windows or []:
        if str(window.get("day", "")).strip().lower() != day_name.lower():
            continue
        try:
            windows.append((parse_time_to_minutes(window["start_time"]), parse_time_to_minutes(window["end_time"])))
        except (KeyError, TypeError, ValueError):
            continue
    return windows


def fits_availability(faculty: User, context: DutyContext) -> bool | None:
    """True/False when the faculty declared windows for that weekday, None when they did not."""
    windows = _windows_for_day(faculty, context.day)
    if not windows:
        return None
    start, end = context.start_minute, context.end_minute
    return any(window_start <= start and end <= window_end for window_start, window_end in windows)


def score_faculty(
    faculty: User,
    context: DutyContext,
    tracker: WorkloadTracker,
    policy: AllocationPolicy,
    tie_breaker: TieBreaker | None = None,
) -> float:
    workload = tracker.get(faculty.id)
    score = BASE_SCORE
    score -= DUTY_COUNT_PENALTY * workload.duty_count

    hours_today = workload.hours_on(context.day)
    cap = daily_hour_cap(faculty, policy)
    if hours_today + context.hours > cap:
        score -= OVER_DAILY_CAP_PENALTY
    elif hours_today >= cap:
        score -= AT_DAILY_CAP_PENALTY
    else:
        score -= HOURS_TODAY_PENALTY * hours_today

    if workload.has_duty_on(context.day):
        if policy.allow_same_day_repetition:
            score -= SAME_DAY_ALLOWED_PENALTY
        else:
            score -= SAME_DAY_BLOCKED_PENALTY

    if context.campus and faculty.campus == context.campus:
        score += policy.campus_preference_weight
    if context.department and faculty.department == context.department:
        score += policy.department_preference_weight

    within_window = fits_availability(faculty, context)
    if within_window is False:
        score -= OUTSIDE_AVAILABILITY_PENALTY
    elif within_window is True:
        score += INSIDE_AVAILABILITY_BONUS

    score += (tie_breaker or NoTieBreaker()).jitter(faculty.id, context.key)
    return max(0.0, score)


def _gap_minutes(a: tuple[int, int], b: tuple[int, int]) -> int:
    # Negative when the intervals overlap.
    return max(b[0] - a[1], a[0] - b[1])


def is_faculty_available(
    faculty: User,
    context: DutyContext,
    tracker: WorkloadTracker,
    policy: AllocationPolicy,
) -> bool:
    workload = tracker.get(faculty.id)

    if workload.hours_on(context.day) + context.hours > daily_hour_cap(faculty, policy):
        return False
    if workload.has_duty_on(context.day) and not policy.allow_same_day_repetition:
        return False
    if policy.max_duties_per_faculty is not None and workload.duty_count >= policy.max_duties_per_faculty:
        return False

    candidate = (context.start_minute, context.end_minute)
    for interval in workload.intervals_on(context.day):
        gap = _gap_minutes(interval, candidate)
        if gap < 0 or gap < policy.time_gap_minutes:
            return False
    return True


def rank_candidates(
    candidates: Iterable[User],
    context: DutyContext,
    tracker: WorkloadTracker,
    policy: AllocationPolicy,
    tie_breaker: TieBreaker | None = None,
    *,
    bonus: Callable[[User], float] | None = None,
) -> list[tuple[User, float]]:
    """Score-descending ranking; stable, so equal scores keep their incoming order."""
    scored: list[tuple[User, float]] = []
    for faculty in candidates:
        score = score_faculty(faculty, context, tracker, policy, tie_breaker)
        if bonus is not None:
            score += bonus(faculty)
        scored.append((faculty, score))
    scored.sort(key=lambda item: item[1], reverse=True)
    return scored


def teaches_any(faculty: User, subject_names: Iterable[str]) -> bool:
    wanted = {name.strip().lower() for name in subject_names if name and name.strip()}
    if not wanted:
        return False
    return any(str(subject).strip().lower() in wanted for subject in faculty.subjects or [])
