from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from invigilation.models.allocation import (
    ACTIVE_ALLOCATION_STATUSES,
    AcknowledgmentStatus,
    Allocation,
    AllocationStatus,
)
from invigilation.models.classroom import Classroom
from invigilation.models.exam import Exam, ExamStatus
from invigilation.models.reserved_allocation import ReservedAllocation
from invigilation.models.user import User, UserRole


class ExamRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, exam_id: str) -> Exam | None:
        return self.db.get(Exam, exam_id)

    def list_schedulable(
        self,
        *,
        exam_ids: Iterable[str] | None = None,
        campus: str | None = None,
        department: str | None = None,
    ) -> list[Exam]:
        query = select(Exam).where(Exam.status == ExamStatus.scheduled)
        if exam_ids is not None:
            query = query.where(Exam.id.in_(list(exam_ids)))
        if campus:
            query = query.where(Exam.campus == campus)
        if department:
            query = query.where(Exam.department == department)
        query = query.order_by(Exam.date, Exam.start_time, Exam.exam_code)
        return list(self.db.execute(query).scalars())

    def mark_allocated(self, exams: Iterable[Exam]) -> None:
        for exam in exams:
            exam.status = ExamStatus.allocated


class ClassroomRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, classroom_id: str) -> Classroom | None:
        return self.db.get(Classroom, classroom_id)

    def list_active(self, *, campus: str | None = None) -> list[Classroom]:
        query = select(Classroom).where(Classroom.is_active.is_(True))
        if campus:
            query = query.where(Classroom.campus == campus)
        query = query.order_by(Classroom.block, Classroom.floor, Classroom.room_number)
        return list(self.db.execute(query).scalars())


class UserRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, user_id: str, *, role: UserRole | None = None) -> User | None:
        user = self.db.get(User, user_id)
        if user is None or (role is not None and user.role != role):
            return None
        return user

    def list_active(
        self,
        role: UserRole,
        *,
        campus: str | None = None,
        department: str | None = None,
    ) -> list[User]:
        query = select(User).where(User.role == role, User.is_active.is_(True))
        if campus:
            query = query.where(User.campus == campus)
        if department:
            query = query.where(User.department == department)
        query = query.order_by(User.name, User.id)
        return list(self.db.execute(query).scalars())

    def by_ids(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        return {user.id: user for user in self.db.execute(select(User).where(User.id.in_(ids))).scalars()}


class AllocationRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, allocation_id: str) -> Allocation | None:
        return self.db.get(Allocation, allocation_id)

    def add(self, allocation: Allocation) -> Allocation:
        self.db.add(allocation)
        return allocation

    def list_active(self) -> list[Allocation]:
        query = select(Allocation).where(Allocation.status.in_(ACTIVE_ALLOCATION_STATUSES))
        return list(self.db.execute(query).scalars())

    def search(
        self,
        *,
        faculty_id: str | None = None,
        exam_id: str | None = None,
        status: AllocationStatus | None = None,
        day: date | None = None,
        limit: int = 200,
        offset: int = 0,
    ) -> list[Allocation]:
        query = select(Allocation).order_by(Allocation.date, Allocation.start_time, Allocation.classroom_id)
        if faculty_id:
            query = query.where(Allocation.faculty_id == faculty_id)
        if exam_id:
            query = query.where(Allocation.exam_id == exam_id)
        if status is not None:
            query = query.where(Allocation.status == status)
        if day is not None:
            query = query.where(Allocation.date == day)
        return list(self.db.execute(query.offset(offset).limit(limit)).scalars())

    def list_unnotified(self) -> list[Allocation]:
        query = select(Allocation).where(
            Allocation.status.in_((AllocationStatus.assigned, AllocationStatus.confirmed)),
            Allocation.is_notified.is_(False),
        )
        return list(self.db.execute(query.order_by(Allocation.date, Allocation.start_time)).scalars())

    def list_awaiting_reminder(self, first_day: date, last_day: date) -> list[Allocation]:
        query = select(Allocation).where(
            Allocation.status == AllocationStatus.assigned,
            Allocation.acknowledgment_status == AcknowledgmentStatus.pending,
            Allocation.reminder_sent.is_(False),
            Allocation.date >= first_day,
            Allocation.date <= last_day,
        )
        return list(self.db.execute(query.order_by(Allocation.date, Allocation.start_time)).scalars())


class ReservedAllocationRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def add(self, reserve: ReservedAllocation) -> ReservedAllocation:
        self.db.add(reserve)
        return reserve

    def for_allocation(self, allocation_id: str) -> list[ReservedAllocation]:
        query = (
            select(ReservedAllocation)
            .where(ReservedAllocation.primary_allocation_id == allocation_id)
            .order_by(ReservedAllocation.priority)
        )
        return list(self.db.execute(query).scalars())

    def find(self, allocation_id: str, faculty_id: str) -> ReservedAllocation | None:
        query = select(ReservedAllocation).where(
            ReservedAllocation.primary_allocation_id == allocation_id,
            ReservedAllocation.reserved_faculty_id == faculty_id,
        )
        return self.db.execute(query).scalars().first()


class Repositories:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.exams = ExamRepository(db)
        self.classrooms = ClassroomRepository(db)
        self.users = UserRepository(db)
        self.allocations = AllocationRepository(db)
        self.reserves = ReservedAllocationRepository(db)
