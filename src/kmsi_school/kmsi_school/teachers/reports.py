from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from ..common.stats import percent, round2, safe_ratio
from .model import Teacher, iso_day


@dataclass(frozen=True)
class TeacherPerformanceStats:
    teacher_id: int | None
    start_date: date
    end_date: date
    working_days: int
    total_classes: int
    completed_classes: int
    completion_rate: Decimal
    total_hours: Decimal
    average_hours_per_class: Decimal
    total_earnings: Decimal
    active_students: int
    trial_students: int
    utilization_rate: Decimal
    available_slots: int


def working_days_count(teacher: Teacher, start_date: date, end_date: date) -> int:
    """Days in the range falling on a weekday the teacher has an active schedule for."""
    weekdays = {ts.day_of_week for ts in teacher.schedules or [] if ts.is_active}
    if not weekdays:
        return 0
    count = 0
    day = start_date
    while day <= end_date:
        if iso_day(day) in weekdays:
            count += 1
        day += timedelta(days=1)
    return count


def build_performance_stats(teacher: Teacher, start_date: date, end_date: date) -> TeacherPerformanceStats:
    period = [a for a in teacher.attendances or [] if start_date <= a.attendance_date <= end_date]
    completed = sum(1 for a in period if a.was_present)
    hours = teacher.calculate_teaching_hours(start_date, end_date)

    return TeacherPerformanceStats(
        teacher_id=teacher.teacher_id,
        start_date=start_date,
        end_date=end_date,
        working_days=working_days_count(teacher, start_date, end_date),
        total_classes=len(period),
        completed_classes=completed,
        completion_rate=percent(completed, len(period)),
        total_hours=round2(hours),
        average_hours_per_class=round2(safe_ratio(hours, completed)),
        total_earnings=round2(hours * (teacher.hourly_rate or Decimal("0"))),
        active_students=teacher.active_students_count,
        trial_students=teacher.trial_students_count,
        utilization_rate=round2(teacher.utilization_rate),
        available_slots=teacher.available_slots,
    )
