from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from kmsi_school.attendance.model import Attendance
from kmsi_school.core.exceptions import NotFoundError, ValidationError
from kmsi_school.students.model import Student
from kmsi_school.teachers.model import ClassSchedule, Teacher, TeacherSchedule
from kmsi_school.teachers.service import TeacherService
from kmsi_school.users.model import User
from tests.fakes import InMemoryAttendance, InMemoryTeachers

MONDAY = date(2025, 3, 10)


def _teacher(teacher_id: int, *, hourly_rate=Decimal("50000"), max_students=2) -> Teacher:
    return Teacher(
        user_id=20 + teacher_id,
        company_id=1,
        site_id=1,
        teacher_code=f"T{teacher_id:03d}",
        hourly_rate=hourly_rate,
        max_students_per_day=max_students,
        teacher_id=teacher_id,
    )


def _student(student_id: int, status: str = "Active") -> Student:
    return Student(
        student_id=student_id,
        company_id=1,
        site_id=1,
        student_code=f"S{student_id:03d}",
        full_name=f"Student {student_id}",
        status=status,
        assigned_teacher_id=3,
    )


@pytest.fixture
def attendance():
    repo = InMemoryAttendance()
    for day, status in ((3, "Present"), (4, "Present"), (5, "Late")):
        repo.add(
            Attendance(
                class_schedule_id=day,
                student_id=1,
                teacher_id=3,
                attendance_date=date(2025, 3, day),
                status=status,
                actual_start_time=time(9, 0),
                actual_end_time=time(10, 30),
            )
        )
    return repo


@pytest.fixture
def service(attendance):
    teachers = InMemoryTeachers(
        teachers={3: _teacher(3), 4: _teacher(4, hourly_rate=None)},
        users={
            23: User(user_id=23, full_name="Ayu", username="ayu", company_id=1, site_id=1, level_code="TEACHER"),
            24: User(user_id=24, full_name="Bima", username="bima", company_id=1, site_id=2, level_code="STAFF"),
        },
        schedules=[
            TeacherSchedule(teacher_schedule_id=1, teacher_id=3, day_of_week=1, start_time=time(9, 0), end_time=time(12, 0)),
            TeacherSchedule(teacher_schedule_id=2, teacher_id=3, day_of_week=3, start_time=time(14, 0), end_time=time(16, 0)),
            TeacherSchedule(
                teacher_schedule_id=3, teacher_id=4, day_of_week=1, start_time=time(9, 0), end_time=time(12, 0), is_active=False
            ),
        ],
        class_schedules={
            1: ClassSchedule(
                class_schedule_id=1,
                company_id=1,
                site_id=1,
                student_id=1,
                teacher_id=3,
                grade_id=1,
                schedule_date=MONDAY,
                start_time=time(10, 0),
                end_time=time(11, 0),
            ),
        },
        students=[_student(1), _student(2, "Trial")],
    )
    return TeacherService(teachers, attendance)


def test_available_slots_skip_booked_hours(service):
    assert service.available_slots(3, MONDAY) == [(time(9, 0), time(10, 0)), (time(11, 0), time(12, 0))]


def test_no_slots_on_days_without_schedule(service):
    assert service.available_slots(3, date(2025, 3, 11)) == []


def test_is_available_checks_window_and_clashes(service):
    assert service.is_available(3, MONDAY, time(11, 0), time(12, 0))
    assert not service.is_available(3, MONDAY, time(10, 30), time(11, 30))
    assert not service.is_available(3, MONDAY, time(11, 30), time(12, 30))


def test_is_available_rejects_inverted_times(service):
    with pytest.raises(ValidationError):
        service.is_available(3, MONDAY, time(12, 0), time(11, 0))


def test_unknown_teacher(service):
    with pytest.raises(NotFoundError):
        service.available_slots(99, MONDAY)


def test_performance_counts_present_lessons_only(service):
    stats = service.performance(3, start_date=date(2025, 3, 1), end_date=date(2025, 3, 9))

    assert stats.total_classes == 3
    assert stats.completed_classes == 2
    assert stats.total_hours == Decimal("3.00")
    assert stats.total_earnings == Decimal("150000.00")
    assert stats.average_hours_per_class == Decimal("1.50")
    assert stats.completion_rate == Decimal("66.67")
    # Monday 3 and Wednesday 5 March
    assert stats.working_days == 2
    assert (stats.active_students, stats.trial_students) == (1, 1)
    assert stats.utilization_rate == Decimal("50.00")


def test_check_reports_rule_violations(service):
    assert service.check(3) == []

    errors = service.check(4)

    assert "Teacher's user account must be assigned to the same site" in errors
    assert "User must have TEACHER user level" in errors
    assert "Active teacher must have at least one working schedule" in errors
    assert "Active teacher should have hourly rate set for payroll calculation" in errors
