from datetime import date

from invigilation.models.allocation import AllocationStatus
from invigilation.models.conflict import ConflictSeverity, ConflictStatus, ConflictType
from invigilation.services.conflict_service import ConflictService, find_conflicts

MONDAY = date(2026, 11, 2)


def test_overlapping_duties_raise_a_high_severity_conflict(db, seed):
    faculty = seed.faculty("Asha")
    first = seed.allocation(faculty, start="09:00", end="12:00")
    second = seed.allocation(faculty, start="11:00", end="13:00")

    conflicts = ConflictService(db).detect()
    db.commit()

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.conflict_type == ConflictType.overlapping_time
    assert conflict.severity == ConflictSeverity.high
    assert sorted(conflict.allocation_ids) == sorted([first.id, second.id])
    assert conflict.suggested_actions


def test_separate_duties_on_one_day_raise_a_medium_conflict(db, seed):
    faculty = seed.faculty()
    seed.allocation(faculty, start="09:00", end="11:00")
    seed.allocation(faculty, start="14:00", end="16:00")

    conflicts = ConflictService(db).detect()

    assert [item.conflict_type for item in conflicts] == [ConflictType.multiple_duties_same_day]
    assert conflicts[0].severity == ConflictSeverity.medium


def test_overlap_suppresses_the_same_day_conflict(db, seed):
    faculty = seed.faculty()
    seed.allocation(faculty, start="09:00", end="12:00")
    seed.allocation(faculty, start="10:00", end="11:00")
    seed.allocation(faculty, start="15:00", end="16:00")

    conflicts = ConflictService(db).detect()

    assert {item.conflict_type for item in conflicts} == {ConflictType.overlapping_time}


def test_cancelled_allocations_are_ignored(db, seed):
    faculty = seed.faculty()
    seed.allocation(faculty, start="09:00", end="12:00")
    seed.allocation(faculty, start="10:00", end="11:00", status=AllocationStatus.cancelled)

    assert ConflictService(db).detect() == []


def test_replaced_allocations_still_count(db, seed):
    faculty = seed.faculty()
    replaced = seed.allocation(faculty, start="09:00", end="12:00", status=AllocationStatus.replaced)
    current = seed.allocation(faculty, start="10:00", end="11:00")

    conflicts = ConflictService(db).detect()

    assert [item.conflict_type for item in conflicts] == [ConflictType.overlapping_time]
    assert sorted(conflicts[0].allocation_ids) == sorted([replaced.id, current.id])


def test_duty_outside_declared_availability_is_reported(db, seed):
    faculty = seed.faculty(availability_windows=[{"day": "Monday", "start_time": "13:00", "end_time": "17:00"}])
    allocation = seed.allocation(faculty, start="09:00", end="12:00")

    conflicts = ConflictService(db).detect()

    assert len(conflicts) == 1
    assert conflicts[0].conflict_type == ConflictType.availability_mismatch
    assert conflicts[0].severity == ConflictSeverity.low
    assert conflicts[0].allocation_ids == [allocation.id]


def test_detection_replaces_open_conflicts_and_keeps_triaged_ones_closed(db, seed):
    admin = seed.admin()
    faculty = seed.faculty()
    seed.allocation(faculty, start="09:00", end="12:00")
    seed.allocation(faculty, start="11:00", end="13:00")
    service = ConflictService(db)

    first = service.detect()
    db.commit()
    again = service.detect()
    db.commit()

    assert len(first) == 1
    assert len(again) == 1
    assert len(service.list_conflicts()) == 1

    service.resolve(again[0].id, user=admin, note="Swapped with a colleague")
    db.commit()
    assert service.detect() == []
    db.commit()

    remaining = service.list_conflicts()
    assert len(remaining) == 1
    assert remaining[0].status == ConflictStatus.resolved
    assert remaining[0].resolved_by_id == admin.id
    assert remaining[0].resolution_note == "Swapped with a colleague"


def test_ignored_conflicts_can_be_filtered(db, seed):
    admin = seed.admin()
    faculty = seed.faculty()
    seed.allocation(faculty, start="09:00", end="11:00")
    seed.allocation(faculty, start="14:00", end="16:00")
    service = ConflictService(db)
    conflict = service.detect()[0]

    service.ignore(conflict.id, user=admin)
    db.commit()

    assert service.list_conflicts(status=ConflictStatus.ignored)[0].id == conflict.id
    assert service.list_conflicts(status=ConflictStatus.detected) == []
    assert service.list_conflicts(faculty_id=faculty.id)[0].id == conflict.id


def test_find_conflicts_works_on_unsaved_allocations(seed):
    faculty = seed.faculty()

    class Duty:
        def __init__(self, duty_id, start, end):
            self.id = duty_id
            self.faculty_id = faculty.id
            self.date = MONDAY
            self.start_time = start
            self.end_time = end

    detected = find_conflicts([Duty("a", "09:00", "12:00"), Duty("b", "11:30", "12:30")], {faculty.id: faculty})

    assert len(detected) == 1
    assert detected[0].allocation_ids == ("a", "b")
    assert detected[0].cause_key == f"overlapping_time:{faculty.id}:a:b"
