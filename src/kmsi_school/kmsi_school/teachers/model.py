from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from ..attendance.model import Attendance
from ..common import datetime_utils
from ..common.validators import to_decimal
from ..core.constants import DEFAULT_MAX_STUDENTS_PER_DAY
from ..core.enums import ClassScheduleStatus, UserLevel
from ..organization.model import Site
from ..students.model import Student
from ..users.model import User

_SLOT_MINUTES = 60


def iso_day(day: date) -> int:
    """Monday=1 .. Sunday=7, the numbering stored in teacher schedules."""
    return day.isoweekday()


def _minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def _time_of_minutes(minutes: int) -> time:
    return time(hour=minutes // 60, minute=minutes % 60)


@dataclass(frozen=True)
class TeacherSchedule:
    """Weekly working window of a teacher."""

    teacher_schedule_id: int
    teacher_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = True


@dataclass(frozen=True)
class ClassSchedule:
    class_schedule_id: int
    company_id: int
    site_id: int
    student_id: int
    teacher_id: int
    grade_id: int
    schedule_date: date
    start_time: time
    end_time: time
    duration: int = 60
    schedule_type: str = "Regular"
    status: str = ClassScheduleStatus.SCHEDULED.value
    room: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return ClassScheduleStatus.parse(self.status) is ClassScheduleStatus.CANCELLED

    def overlaps(self, day: date, start: time, end: time) -> bool:
        return self.schedule_date == day and self.start_time < end and self.end_time > start


def _hours(attendances: Iterable[Attendance]) -> Decimal:
    """Teaching hours from Present lessons that have a recorded duration."""
    minutes = sum(a.actual_duration for a in attendances if a.was_present and a.actual_duration is not None)
    return Decimal(minutes) / 60


@dataclass
class Teacher:
    user_id: int
    company_id: int
    site_id: int
    teacher_code: str
    specialization: Optional[str] = None
    experience_years: Optional[int] = None
    hourly_rate: Optional[Decimal] = None
    max_students_per_day: int = DEFAULT_MAX_STUDENTS_PER_DAY
    is_available_for_trial: bool = True
    is_active: bool = True
    teacher_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_date: Optional[datetime] = None
    updated_by: Optional[int] = None

    # None means "not loaded"; views treat it as empty.
    user: Optional[User] = field(default=None, repr=False, compare=False)
    site: Optional[Site] = field(default=None, repr=False, compare=False)
    schedules: Optional[list[TeacherSchedule]] = field(default=None, repr=False, compare=False)
    assigned_students: Optional[list[Student]] = field(default=None, repr=False, compare=False)
    class_schedules: Optional[list[ClassSchedule]] = field(default=None, repr=False, compare=False)
    attendances: Optional[list[Attendance]] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.hourly_rate = to_decimal(self.hourly_rate)

    @property
    def teacher_name(self) -> str:
        return self.user.full_name if self.user else "Unknown"

    @property
    def display_name(self) -> str:
        return f"{self.teacher_code} - {self.teacher_name}"

    @property
    def experience_level_display(self) -> str:
        years = self.experience_years
        if years is None:
            return "Not Specified"
        if years == 0:
            return "Fresh Graduate"
        if 1 <= years <= 2:
            return "Junior Teacher"
        if 3 <= years <= 5:
            return "Experienced Teacher"
        if 6 <= years <= 10:
            return "Senior Teacher"
        if years > 10:
            return "Expert Teacher"
        return "Unknown"

    # ---- students -----------------------------------------------------

    def students_by_status(self, status: str) -> list[Student]:
        return [
            s for s in self.assigned_students or []
            if s.is_active and s.status.lower() == status.lower()
        ]

    @property
    def active_students_count(self) -> int:
        return sum(1 for s in self.assigned_students or [] if s.is_enrolled)

    @property
    def trial_students_count(self) -> int:
        return sum(1 for s in self.assigned_students or [] if s.is_on_trial)

    @property
    def total_students_count(self) -> int:
        return sum(1 for s in self.assigned_students or [] if s.is_active)

    @property
    def utilization_rate(self) -> Decimal:
        if self.max_students_per_day <= 0:
            return Decimal("0")
        return Decimal(self.active_students_count) / self.max_students_per_day * 100

    @property
    def is_at_capacity(self) -> bool:
        return self.active_students_count >= self.max_students_per_day

    @property
    def available_slots(self) -> int:
        return max(0, self.max_students_per_day - self.active_students_count)

    def can_take_more_students(self) -> bool:
        return self.is_active and self.active_students_count < self.max_students_per_day

    # ---- hours and earnings -------------------------------------------

    def calculate_teaching_hours(self, start_date: date, end_date: date) -> Decimal:
        return _hours(a for a in self.attendances or [] if start_date <= a.attendance_date <= end_date)

    def calculate_earnings(self, start_date: date, end_date: date) -> Decimal:
        return self.calculate_teaching_hours(start_date, end_date) * (self.hourly_rate or Decimal("0"))

    @property
    def current_month_hours(self) -> Decimal:
        today = datetime_utils.today()
        return _hours(
            a for a in self.attendances or []
            if a.attendance_date.year == today.year and a.attendance_date.month == today.month
        )

    @property
    def current_month_earnings(self) -> Decimal:
        return self.current_month_hours * (self.hourly_rate or Decimal("0"))

    @property
    def average_weekly_hours(self) -> Decimal:
        """Hours over the last 30 days spread across four weeks."""
        since = datetime_utils.today() - timedelta(days=30)
        return _hours(a for a in self.attendances or [] if a.attendance_date >= since) / 4

    @property
    def performance_rating(self) -> str:
        since = datetime_utils.today() - timedelta(days=30)
        recent = [a for a in self.attendances or [] if a.attendance_date >= since]
        if not recent:
            return "No Data"
        rate = sum(1 for a in recent if a.was_present) / len(recent) * 100
        if rate >= 95:
            return "Excellent"
        if rate >= 85:
            return "Very Good"
        if rate >= 75:
            return "Good"
        if rate >= 60:
            return "Fair"
        return "Needs Improvement"

    # ---- classes ------------------------------------------------------

    @property
    def this_week_classes_count(self) -> int:
        """Non-cancelled classes in the current Sunday-to-Saturday week."""
        today = datetime_utils.today()
        start = today - timedelta(days=today.isoweekday() % 7)
        end = start + timedelta(days=6)
        return sum(
            1 for cs in self.class_schedules or []
            if start <= cs.schedule_date <= end and not cs.is_cancelled
        )

    @property
    def this_month_completed_classes_count(self) -> int:
        today = datetime_utils.today()
        return sum(
            1 for cs in self.class_schedules or []
            if cs.schedule_date.year == today.year
            and cs.schedule_date.month == today.month
            and ClassScheduleStatus.parse(cs.status) is ClassScheduleStatus.COMPLETED
        )

    def get_upcoming_classes(self, days: int = 7) -> list[ClassSchedule]:
        today = datetime_utils.today()
        until = today + timedelta(days=days)
        upcoming = [
            cs for cs in self.class_schedules or []
            if today <= cs.schedule_date <= until
            and ClassScheduleStatus.parse(cs.status) is ClassScheduleStatus.SCHEDULED
        ]
        return sorted(upcoming, key=lambda cs: (cs.schedule_date, cs.start_time))

    @property
    def next_class_date(self) -> Optional[date]:
        today = datetime_utils.today()
        future = [
            cs for cs in self.class_schedules or []
            if cs.schedule_date >= today
            and ClassScheduleStatus.parse(cs.status) is ClassScheduleStatus.SCHEDULED
        ]
        if not future:
            return None
        return min(future, key=lambda cs: (cs.schedule_date, cs.start_time)).schedule_date

    # ---- availability -------------------------------------------------

    def _working_windows(self, day: date) -> list[TeacherSchedule]:
        weekday = iso_day(day)
        return sorted(
            (ts for ts in self.schedules or [] if ts.is_active and ts.day_of_week == weekday),
            key=lambda ts: ts.start_time,
        )

    def _busy(self, day: date) -> list[ClassSchedule]:
        return [cs for cs in self.class_schedules or [] if cs.schedule_date == day and not cs.is_cancelled]

    def is_available_at(self, day: date, start_time: time, end_time: time) -> bool:
        """Inside a working window and not clashing with a live class."""
        if not self.is_active:
            return False
        inside = any(ts.start_time <= start_time and ts.end_time >= end_time for ts in self._working_windows(day))
        if not inside:
            return False
        return not any(cs.overlaps(day, start_time, end_time) for cs in self._busy(day))

    def get_available_time_slots(self, day: date) -> list[tuple[time, time]]:
        """Free one-hour slots, stepping from the start of each working window."""
        busy = self._busy(day)
        out: list[tuple[time, time]] = []
        for window in self._working_windows(day):
            cursor = _minutes_of_day(window.start_time)
            limit = _minutes_of_day(window.end_time)
            while cursor + _SLOT_MINUTES <= limit:
                start, end = _time_of_minutes(cursor), _time_of_minutes(cursor + _SLOT_MINUTES)
                if not any(cs.overlaps(day, start, end) for cs in busy):
                    out.append((start, end))
                cursor += _SLOT_MINUTES
        return out

    # ---- rules --------------------------------------------------------

    def is_teacher_code_unique(self, other_teachers: Iterable["Teacher"]) -> bool:
        """Codes are unique per site, compared case-insensitively."""
        code = self.teacher_code.upper()
        return not any(
            t.teacher_code.upper() == code
            and t.site_id == self.site_id
            and (self.teacher_id is None or t.teacher_id != self.teacher_id)
            for t in other_teachers
            if t is not self
        )

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.user is not None:
            if self.user.site_id != self.site_id:
                errors.append("Teacher's user account must be assigned to the same site")
            if UserLevel.parse(self.user.level_code) is not UserLevel.TEACHER:
                errors.append("User must have TEACHER user level")
        if self.is_active and self.schedules is not None and not any(ts.is_active for ts in self.schedules):
            errors.append("Active teacher must have at least one working schedule")
        if self.is_active and self.hourly_rate is None:
            errors.append("Active teacher should have hourly rate set for payroll calculation")
        if self.active_students_count > self.max_students_per_day:
            errors.append(
                f"Teacher has {self.active_students_count} students but maximum capacity is {self.max_students_per_day}"
            )
        return errors
