from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Attendance


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[Attendance]:
        raise NotImplementedError

    def get_for_schedule_and_student(self, class_schedule_id: int, student_id: int) -> Optional[Attendance]:
        raise NotImplementedError

    def list_for_teacher(self, teacher_id: int, *, start_date: date, end_date: date) -> Sequence[Attendance]:
        raise NotImplementedError

    def list_for_student(self, student_id: int, *, limit: int) -> Sequence[Attendance]:
        raise NotImplementedError

    def add(self, attendance: Attendance) -> int:
        raise NotImplementedError

    def update(self, attendance: Attendance) -> bool:
        raise NotImplementedError
