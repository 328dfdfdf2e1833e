from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from kmsi_school.attendance.model import Attendance
from kmsi_school.students.model import Student
from kmsi_school.teachers.model import ClassSchedule, Teacher


def _student(student_id: int, status: str, *, is_active: bool = True) -> Student:
    return Student(
        student_id=student_id,
        company_id=1,
        site_id=1,
        student_code=f"S{student_id:03d}",
        full_name=f"Student {student_id}",
        status=status,
        assigned_teacher_id=3,
        is_active=is_active,
    )


def _lesson(day: date, start: time, end: time, status: str = "Present") -> Attendance:
    return Attendance(
        class_schedule_id=1,
        student_id=10,
        teacher_id=3,
        attendance_date=day,
        status=status,
        actual_start_time=start,
        actual_end_time=end,
    )


def _class(class_id: int, day: date, status: str = "Scheduled") -> ClassSchedule:
    return ClassSchedule(
        class_schedule_id=class_id,
        company_id=1,
        site_id=1,
        student_id=10,
        teacher_id=3,
        grade_id=2,
        schedule_date=day,
        start_time=time(15, 0),
        end_time=time(16, 0),
        status=status,
    )


@pytest.fixture
def teacher() -> Teacher:
    t = Teacher(
        user_id=20,
        company_id=1,
        site_id=1,
        teacher_code="T001",
        experience_years=4,
        hourly_rate="50000",
        max_students_per_day=2,
        teacher_id=3,
    )
    t.assigned_students = [
        _student(1, "Active"),
        _student(2, "active"),
        _student(3, "Trial"),
        _student(4, "Active", is_active=False),
    ]
    t.attendances = [
        _lesson(date(2025, 2, 20), time(10, 0), time(11, 0)),
        _lesson(date(2025, 3, 3), time(13, 0), time(14, 30)),
        _lesson(date(2025, 3, 5), time(13, 0), time(14, 0)),
        _lesson(date(2025, 3, 7), time(13, 10), time(14, 0), status="Late"),
    ]
    t.class_schedules = [
        _class(1, date(2025, 3, 3), status="Completed"),
        _class(2, date(2025, 3, 10)),
        _class(3, date(2025, 3, 12), status="Cancelled"),
        _class(4, date(2025, 3, 14)),
        _class(5, date(2025, 3, 20)),
    ]
    return t


def test_hourly_rate_is_coerced_to_decimal(teacher):
    assert teacher.hourly_rate == Decimal("50000")


@pytest.mark.parametrize(
    "years, label",
    [
        (None, "Not Specified"),
        (0, "Fresh Graduate"),
        (2, "Junior Teacher"),
        (4, "Experienced Teacher"),
        (8, "Senior Teacher"),
        (12, "Expert Teacher"),
    ],
)
def test_experience_level_display(teacher, years, label):
    teacher.experience_years = years

    assert teacher.experience_level_display == label


def test_student_counts_and_capacity(teacher):
    assert teacher.active_students_count == 2
    assert teacher.trial_students_count == 1
    assert teacher.total_students_count == 3
    assert teacher.utilization_rate == Decimal("100")
    assert teacher.is_at_capacity
    assert teacher.available_slots == 0
    assert not teacher.can_take_more_students()


def test_unloaded_students_count_as_none():
    t = Teacher(user_id=1, company_id=1, site_id=1, teacher_code="T9")

    assert t.active_students_count == 0
    assert t.can_take_more_students()


def test_hours_only_count_present_lessons(teacher):
    assert teacher.calculate_teaching_hours(date(2025, 3, 1), date(2025, 3, 31)) == Decimal("2.5")
    assert teacher.calculate_earnings(date(2025, 3, 1), date(2025, 3, 31)) == Decimal("125000")
    assert teacher.current_month_hours == Decimal("2.5")
    assert teacher.current_month_earnings == Decimal("125000")


def test_average_weekly_hours_spreads_last_thirty_days(teacher):
    assert teacher.average_weekly_hours == Decimal("0.875")


def test_performance_rating_from_recent_attendance(teacher):
    # 3 of 4 recent lessons were Present
    assert teacher.performance_rating == "Good"

    teacher.attendances = []
    assert teacher.performance_rating == "No Data"


def test_class_counts_and_upcoming(teacher):
    assert teacher.this_week_classes_count == 2
    assert teacher.this_month_completed_classes_count == 1
    assert [cs.class_schedule_id for cs in teacher.get_upcoming_classes()] == [2, 4]
    assert [cs.class_schedule_id for cs in teacher.get_upcoming_classes(days=14)] == [2, 4, 5]
    assert teacher.next_class_date == date(2025, 3, 10)


def test_teacher_code_unique_per_site(teacher):
    same_site = Teacher(user_id=21, company_id=1, site_id=1, teacher_code="t001", teacher_id=4)
    other_site = Teacher(user_id=22, company_id=1, site_id=2, teacher_code="T001", teacher_id=5)

    assert not teacher.is_teacher_code_unique([same_site])
    assert teacher.is_teacher_code_unique([other_site, teacher])


def test_over_capacity_is_a_rule_violation(teacher):
    teacher.max_students_per_day = 1

    assert "Teacher has 2 students but maximum capacity is 1" in teacher.validate()
