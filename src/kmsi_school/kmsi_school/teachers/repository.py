from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..students.model import Student
from ..users.model import User
from .model import ClassSchedule, Teacher, TeacherSchedule


class TeacherRepository(Protocol):
    """Teachers plus the records hanging off them (schedules, classes, students)."""

    def get_by_id(self, teacher_id: int) -> Optional[Teacher]:
        raise NotImplementedError

    def list_by_site(self, site_id: int) -> Sequence[Teacher]:
        raise NotImplementedError

    def get_user(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def list_schedules(self, teacher_id: int) -> Sequence[TeacherSchedule]:
        raise NotImplementedError

    def list_class_schedules(self, teacher_id: int, *, start_date: date, end_date: date) -> Sequence[ClassSchedule]:
        raise NotImplementedError

    def get_class_schedule(self, class_schedule_id: int) -> Optional[ClassSchedule]:
        raise NotImplementedError

    def list_assigned_students(self, teacher_id: int) -> Sequence[Student]:
        raise NotImplementedError
