from __future__ import annotations

from collections.abc import Iterable

from invigilation.models.user import User
from invigilation.services.policy import AllocationPolicy
from invigilation.services.scoring import DutyContext, is_faculty_available, rank_candidates
from invigilation.services.tie_break import TieBreaker
from invigilation.services.workload import WorkloadTracker

RESERVES_PER_ALLOCATION = 2
IDLE_FACULTY_BONUS = 50.0
LIGHT_WORKLOAD_BONUS = 20.0
LIGHT_WORKLOAD_MAX_DUTIES = 2


def select_reserves(
    context: DutyContext,
    faculty: Iterable[User],
    *,
    excluded_ids: set[str],
    tracker: WorkloadTracker,
    policy: AllocationPolicy,
    tie_breaker: TieBreaker | None = None,
    limit: int = RESERVES_PER_ALLOCATION,
) -> list[User]:
    """Pick standby invigilators for a duty, favouring faculty with little work so far.

    ``excluded_ids`` holds every primary assignee of the duty's session, so a
    reserve can never already be on duty in that slot.
    """
    candidates = [
        member
        for member in faculty
        if member.is_active and member.campus == context.campus and member.id not in excluded_ids
    ]

    def workload_bonus(member: User) -> float:
        duty_count = tracker.get(member.id).duty_count
        if duty_count == 0:
            return IDLE_FACULTY_BONUS
        if duty_count <= LIGHT_WORKLOAD_MAX_DUTIES:
            return LIGHT_WORKLOAD_BONUS
        return 0.0

    ranked = rank_candidates(candidates, context, tracker, policy, tie_breaker, bonus=workload_bonus)
    reserves: list[User] = []
    for member, _ in ranked:
        if len(reserves) == limit:
            break
        if is_faculty_available(member, context, tracker, policy):
            reserves.append(member)
    return reserves
