from __future__ import annotations

import logging
from datetime import date, time, timedelta
from typing import Optional

from ..attendance.repository import AttendanceRepository
from ..common import datetime_utils
from ..core.constants import DEFAULT_REPORT_DAYS
from ..core.exceptions import NotFoundError, ValidationError
from ..validation import validate
from .model import Teacher
from .reports import TeacherPerformanceStats, build_performance_stats
from .repository import TeacherRepository

logger = logging.getLogger(__name__)


class TeacherService:
    """Read-side use cases: profile, availability and performance of a teacher."""

    def __init__(self, teachers: TeacherRepository, attendance: AttendanceRepository):
        self._teachers = teachers
        self._attendance = attendance

    def load(self, teacher_id: int, *, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Teacher:
        """Teacher with user, schedules, students, and classes/attendance in the window attached.

        The window defaults to the last and next DEFAULT_REPORT_DAYS days.
        """
        teacher = self._teachers.get_by_id(teacher_id)
        if not teacher:
            raise NotFoundError(f"Teacher {teacher_id} not found")

        today = datetime_utils.today()
        start_date = start_date or today - timedelta(days=DEFAULT_REPORT_DAYS)
        end_date = end_date or today + timedelta(days=DEFAULT_REPORT_DAYS)

        teacher.user = self._teachers.get_user(teacher.user_id)
        teacher.schedules = list(self._teachers.list_schedules(teacher_id))
        teacher.assigned_students = list(self._teachers.list_assigned_students(teacher_id))
        teacher.class_schedules = list(
            self._teachers.list_class_schedules(teacher_id, start_date=start_date, end_date=end_date)
        )
        teacher.attendances = list(
            self._attendance.list_for_teacher(teacher_id, start_date=start_date, end_date=end_date)
        )
        return teacher

    def available_slots(self, teacher_id: int, day: date) -> list[tuple[time, time]]:
        teacher = self.load(teacher_id, start_date=day, end_date=day)
        return teacher.get_available_time_slots(day)

    def is_available(self, teacher_id: int, day: date, start_time: time, end_time: time) -> bool:
        if end_time <= start_time:
            raise ValidationError("End time must be after start time")
        teacher = self.load(teacher_id, start_date=day, end_date=day)
        return teacher.is_available_at(day, start_time, end_time)

    def performance(self, teacher_id: int, *, start_date: date, end_date: date) -> TeacherPerformanceStats:
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")
        teacher = self.load(teacher_id, start_date=start_date, end_date=end_date)
        return build_performance_stats(teacher, start_date, end_date)

    def check(self, teacher_id: int) -> list[str]:
        """Business-rule violations of the teacher's current setup."""
        teacher = self.load(teacher_id)
        errors = validate(teacher)
        if errors:
            logger.warning("teacher %s has %d rule violations", teacher.teacher_code, len(errors))
        return errors
