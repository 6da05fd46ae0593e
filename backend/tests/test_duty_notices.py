from datetime import date, datetime

from invigilation.models.allocation import AcknowledgmentStatus, AllocationStatus
from invigilation.services.duty_notices import notify_pending_allocations, send_acknowledgment_reminders

EVE_OF_EXAMS = datetime(2026, 11, 1, 9, 0)


def test_duty_notices_mark_only_delivered_allocations(db, seed, mailer):
    reachable = seed.faculty()
    unreachable = seed.faculty()
    mailer.failing_emails.add(unreachable.email)
    delivered = seed.allocation(reachable)
    failed = seed.allocation(unreachable)
    seed.allocation(seed.faculty(), status=AllocationStatus.cancelled)

    dispatch = notify_pending_allocations(db, mailer, now=EVE_OF_EXAMS)
    db.commit()

    assert dispatch.attempted == 2
    assert dispatch.delivered == 1
    assert dispatch.failed == [{"allocation_id": failed.id, "message": "SMTP connection failed"}]
    assert delivered.is_notified
    assert delivered.notified_at == EVE_OF_EXAMS
    assert not failed.is_notified


def test_duty_notices_are_not_sent_twice(db, seed, mailer):
    seed.allocation(seed.faculty())

    notify_pending_allocations(db, mailer, now=EVE_OF_EXAMS)
    db.commit()
    second = notify_pending_allocations(db, mailer, now=EVE_OF_EXAMS)

    assert second.attempted == 0
    assert len(mailer.sent) == 1


def test_reminders_cover_pending_duties_for_today_and_tomorrow(db, seed, mailer):
    faculty = seed.faculty()
    tomorrow = seed.allocation(faculty)
    seed.allocation(faculty, day=date(2026, 11, 5))
    acknowledged = seed.allocation(seed.faculty())
    acknowledged.acknowledgment_status = AcknowledgmentStatus.acknowledged
    acknowledged.status = AllocationStatus.confirmed
    db.commit()

    dispatch = send_acknowledgment_reminders(db, mailer, now=EVE_OF_EXAMS)
    db.commit()

    assert dispatch.attempted == 1
    assert mailer.sent == [("reminder", faculty.email, tomorrow.id)]
    assert tomorrow.reminder_sent

    again = send_acknowledgment_reminders(db, mailer, now=EVE_OF_EXAMS)
    assert again.attempted == 0
