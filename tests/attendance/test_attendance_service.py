from __future__ import annotations

from datetime import date, time

import pytest

from kmsi_school.attendance.service import AttendanceService
from kmsi_school.core.enums import AttendanceStatus
from kmsi_school.core.exceptions import NotFoundError, ValidationError
from kmsi_school.teachers.model import ClassSchedule
from tests.fakes import InMemoryAttendance, InMemoryTeachers


def _schedule(class_schedule_id=1, *, day=date(2025, 3, 10), student_id=10) -> ClassSchedule:
    return ClassSchedule(
        class_schedule_id=class_schedule_id,
        company_id=1,
        site_id=1,
        student_id=student_id,
        teacher_id=3,
        grade_id=2,
        schedule_date=day,
        start_time=time(9, 0),
        end_time=time(10, 0),
    )


@pytest.fixture
def repo():
    return InMemoryAttendance()


@pytest.fixture
def service(repo, audit):
    teachers = InMemoryTeachers(
        class_schedules={1: _schedule(1), 2: _schedule(2, day=date(2025, 3, 11)), 3: _schedule(3)}
    )
    return AttendanceService(repo, teachers, audit, grace_minutes=5)


def test_arrival_within_grace_is_present_and_audited(service, actor, audit_logs):
    record = service.record_arrival(
        actor, class_schedule_id=1, student_id=10, arrived_at=time(9, 3), ended_at=time(10, 0)
    )

    assert record.status == AttendanceStatus.PRESENT.value
    assert record.teacher_id == 3
    assert record.actual_duration == 57
    assert [l.action for l in audit_logs.logs] == ["Insert"]
    assert audit_logs.logs[0].table_name == "Attendances"


def test_arrival_after_grace_is_late_with_note(service, actor):
    record = service.record_arrival(
        actor, class_schedule_id=1, student_id=10, arrived_at=time(9, 12), ended_at=time(10, 0)
    )

    assert record.status == AttendanceStatus.LATE.value
    assert record.teacher_notes == "Late by 12 min"
    assert record.attendance_description() == "Partial Attendance"


def test_arrival_twice_for_same_class_is_rejected(service, actor):
    service.record_arrival(actor, class_schedule_id=1, student_id=10, arrived_at=time(9, 0), ended_at=time(10, 0))

    with pytest.raises(ValidationError):
        service.record_arrival(
            actor, class_schedule_id=1, student_id=10, arrived_at=time(9, 0), ended_at=time(10, 0)
        )


def test_arrival_for_other_student_is_rejected(service, actor):
    with pytest.raises(ValidationError, match="not booked"):
        service.record_arrival(
            actor, class_schedule_id=1, student_id=99, arrived_at=time(9, 0), ended_at=time(10, 0)
        )


def test_arrival_for_unknown_schedule(service, actor):
    with pytest.raises(NotFoundError):
        service.record_arrival(
            actor, class_schedule_id=404, student_id=10, arrived_at=time(9, 0), ended_at=time(10, 0)
        )


def test_lesson_shorter_than_five_minutes_is_invalid(service, actor, repo):
    with pytest.raises(ValidationError) as exc:
        service.record_arrival(
            actor, class_schedule_id=1, student_id=10, arrived_at=time(9, 0), ended_at=time(9, 3)
        )

    assert "Class duration seems too short (less than 5 minutes)" in exc.value.errors
    assert repo.records == {}


def test_lesson_in_the_future_is_invalid(service, actor):
    with pytest.raises(ValidationError) as exc:
        service.record_arrival(
            actor, class_schedule_id=2, student_id=10, arrived_at=time(9, 0), ended_at=time(10, 0)
        )

    assert "Attendance date cannot be in the future" in exc.value.errors


def test_mark_absent_overwrites_existing_record(service, actor, audit_logs):
    record = service.record_arrival(
        actor, class_schedule_id=1, student_id=10, arrived_at=time(9, 0), ended_at=time(10, 0)
    )

    changed = service.mark_absent(actor, class_schedule_id=1, student_id=10, is_excused=True)

    assert changed is record
    assert changed.status == AttendanceStatus.EXCUSED.value
    assert changed.actual_start_time is None
    assert [l.action for l in audit_logs.logs] == ["Insert", "Update"]
    assert "status" in audit_logs.logs[-1].get_changes()


def test_mark_absent_creates_record_when_missing(service, actor, repo):
    record = service.mark_absent(actor, class_schedule_id=3, student_id=10)

    assert record.status == AttendanceStatus.ABSENT.value
    assert repo.get_by_id(record.attendance_id) is record


def test_lesson_details_ignore_out_of_range_score(service, actor):
    record = service.record_arrival(
        actor, class_schedule_id=1, student_id=10, arrived_at=time(9, 0), ended_at=time(10, 0)
    )
    service.add_lesson_details(actor, record.attendance_id, topic="Scales", teacher_notes="Good", performance_score=8)

    updated = service.add_lesson_details(
        actor, record.attendance_id, topic="Scales", teacher_notes="Good", performance_score=11, homework="Page 4"
    )

    assert updated.student_performance_score == 8
    assert updated.has_homework_assigned
    assert updated.is_complete()


def test_teacher_summary_counts_statuses(service, actor):
    service.record_arrival(actor, class_schedule_id=1, student_id=10, arrived_at=time(9, 10), ended_at=time(10, 0))
    service.mark_absent(actor, class_schedule_id=3, student_id=10)

    summary = service.teacher_summary(3, start_date=date(2025, 3, 1), end_date=date(2025, 3, 31))

    assert (summary.total, summary.late, summary.absent) == (2, 1, 1)
    assert summary.attendance_rate == 50


def test_teacher_summary_rejects_inverted_range(service):
    with pytest.raises(ValidationError):
        service.teacher_summary(3, start_date=date(2025, 3, 31), end_date=date(2025, 3, 1))
