from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from invigilation.core.config import Settings, get_settings
from invigilation.models.allocation import Allocation
from invigilation.models.classroom import Classroom
from invigilation.models.exam import Exam
from invigilation.models.user import User
from invigilation.services.email import EmailDeliveryError, send_email


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message: str


class DutyMailer(Protocol):
    def send_duty_notice(
        self, faculty: User, allocation: Allocation, exam: Exam | None, classroom: Classroom | None
    ) -> DeliveryResult: ...

    def send_acknowledgment_reminder(
        self, faculty: User, allocation: Allocation, exam: Exam | None, classroom: Classroom | None
    ) -> DeliveryResult: ...

    def send_emergency_alert(
        self, recipient: User, allocation: Allocation, faculty: User, reason: str | None
    ) -> DeliveryResult: ...


def _format_deadline(value: datetime) -> str:
    return value.strftime("%d %b %Y %H:%M")


def _duty_lines(allocation: Allocation, exam: Exam | None, classroom: Classroom | None) -> list[str]:
    lines = [
        f"Date: {allocation.date.isoformat()}",
        f"Time: {allocation.start_time}-{allocation.end_time}",
        f"Campus: {allocation.campus}",
    ]
    if exam is not None:
        lines.insert(0, f"Exam: {exam.exam_name} ({exam.course_code})")
    if classroom is not None:
        lines.append(f"Room: {classroom.room_number}, Block {classroom.block}, Floor {classroom.floor}")
    return lines


class SmtpDutyMailer:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def _deliver(self, to_email: str, subject: str, body: str) -> DeliveryResult:
        try:
            send_email(to_email=to_email, subject=subject, text_content=body, settings=self.settings)
        except EmailDeliveryError as exc:
            return DeliveryResult(success=False, message=str(exc))
        return DeliveryResult(success=True, message=f"Sent to {to_email}")

    def send_duty_notice(self, faculty, allocation, exam, classroom) -> DeliveryResult:
        body = "\n".join(
            [
                f"Dear {faculty.name},",
                "",
                "You have been assigned an invigilation duty.",
                *_duty_lines(allocation, exam, classroom),
                "",
                f"Please acknowledge before {_format_deadline(allocation.acknowledgment_deadline)}.",
            ]
        )
        return self._deliver(faculty.email, "Invigilation duty assigned", body)

    def send_acknowledgment_reminder(self, faculty, allocation, exam, classroom) -> DeliveryResult:
        body = "\n".join(
            [
                f"Dear {faculty.name},",
                "",
                "Your invigilation duty is still awaiting acknowledgment.",
                *_duty_lines(allocation, exam, classroom),
                "",
                f"Deadline: {_format_deadline(allocation.acknowledgment_deadline)}.",
            ]
        )
        return self._deliver(faculty.email, "Reminder: acknowledge your invigilation duty", body)

    def send_emergency_alert(self, recipient, allocation, faculty, reason) -> DeliveryResult:
        body = "\n".join(
            [
                f"{faculty.name} cannot reach their invigilation duty.",
                *_duty_lines(allocation, None, None),
                f"Reason: {reason or 'not given'}",
                "",
                "Activate a reserve invigilator from the allocation dashboard.",
            ]
        )
        return self._deliver(recipient.email, "Urgent: invigilator unable to reach", body)
