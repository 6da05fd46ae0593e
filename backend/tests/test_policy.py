import pytest
from pydantic import ValidationError
from sqlalchemy import select

from invigilation.models.allocation_policy import AllocationPolicyRecord
from invigilation.schemas.policy import AllocationPolicyUpdate
from invigilation.services.policy import AllocationPolicy, load_active_policy, update_active_policy


def test_default_policy_is_created_on_first_use(db):
    policy = load_active_policy(db)

    assert policy == AllocationPolicy()
    assert policy.max_hours_per_day == 6
    assert policy.allow_same_day_repetition is True
    assert len(list(db.execute(select(AllocationPolicyRecord)).scalars())) == 1


def test_update_keeps_a_single_active_policy(db, seed):
    admin = seed.admin()
    load_active_policy(db)

    record = update_active_policy(
        db,
        AllocationPolicyUpdate(max_hours_per_day=4, allow_same_day_repetition=False, max_duties_per_faculty=3),
        user=admin,
    )
    db.commit()

    assert record.updated_by_id == admin.id
    active = list(db.execute(select(AllocationPolicyRecord).where(AllocationPolicyRecord.is_active.is_(True))).scalars())
    assert [item.id for item in active] == [record.id]
    policy = load_active_policy(db)
    assert policy.max_hours_per_day == 4
    assert policy.max_duties_per_faculty == 3
    assert policy.allow_same_day_repetition is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_hours_per_day": 0},
        {"max_hours_per_day": 13},
        {"max_duties_per_faculty": 0},
        {"time_gap_minutes": -5},
        {"department_preference_weight": 101},
    ],
)
def test_policy_values_are_range_checked(overrides):
    with pytest.raises(ValidationError):
        AllocationPolicyUpdate(**overrides)
