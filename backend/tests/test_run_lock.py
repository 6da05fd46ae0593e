import pytest

from invigilation.core.exceptions import AllocationInProgressError
from invigilation.services.run_lock import AllocationRunRegistry, AllocationScope


def test_overlapping_scopes_are_rejected():
    registry = AllocationRunRegistry()

    with registry.hold(AllocationScope(campus="Main")):
        with pytest.raises(AllocationInProgressError):
            with registry.hold(AllocationScope(campus="Main", department="CSE")):
                pass


def test_disjoint_scopes_run_side_by_side():
    registry = AllocationRunRegistry()

    with registry.hold(AllocationScope(campus="Main")):
        with registry.hold(AllocationScope(campus="North")):
            pass


def test_unscoped_run_covers_everything():
    assert AllocationScope().overlaps(AllocationScope(campus="North", department="ECE"))
    assert not AllocationScope(campus="Main", department="CSE").overlaps(
        AllocationScope(campus="Main", department="ECE")
    )


def test_scope_is_released_after_a_failed_run():
    registry = AllocationRunRegistry()
    scope = AllocationScope(campus="Main")

    with pytest.raises(RuntimeError):
        with registry.hold(scope):
            raise RuntimeError("boom")

    with registry.hold(scope):
        pass
