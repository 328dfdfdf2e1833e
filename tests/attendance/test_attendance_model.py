from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from kmsi_school.attendance.model import Attendance


def _record(status: str = "Present", **kwargs) -> Attendance:
    return Attendance(
        class_schedule_id=1,
        student_id=10,
        teacher_id=3,
        attendance_date=date(2025, 3, 10),
        status=status,
        **kwargs,
    )


def test_formatted_duration():
    assert _record(actual_start_time=time(9, 0), actual_end_time=time(10, 30)).formatted_duration == "1h 30m"
    assert _record(actual_start_time=time(9, 0), actual_end_time=time(9, 45)).formatted_duration == "45 min"
    assert _record("Absent").formatted_duration == "Not recorded"


@pytest.mark.parametrize(
    "score, grade",
    [(None, "Not Graded"), (10, "Excellent"), (8, "Very Good"), (6, "Satisfactory"), (5, "Needs Improvement"), (4, "Poor")],
)
def test_performance_grade(score, grade):
    assert _record(student_performance_score=score).performance_grade == grade


def test_lesson_completion_counts_filled_checkpoints():
    record = _record(actual_start_time=time(9, 0), actual_end_time=time(10, 0), lesson_topic="Scales")

    assert record.lesson_completion_percentage == Decimal("0.4")

    record.add_lesson_details("Scales", progress="Good", teacher_notes="Keep practising", performance_score=8)
    assert record.lesson_completion_percentage == Decimal("1")
    assert record.is_complete()


def test_homework_and_prep():
    record = _record()
    record.add_homework_and_prep("  ", "Bring metronome")

    assert not record.has_homework_assigned
    assert record.has_next_lesson_prep


def test_excused_absence():
    record = _record(actual_start_time=time(9, 0), actual_end_time=time(10, 0), student_performance_score=7)
    record.mark_absent(is_excused=True)

    assert record.is_excused_absence
    assert record.actual_start_time is None
    assert record.student_performance_score is None
    assert record.attendance_points() == Decimal("0.25")
    assert record.attendance_description() == "Excused Absence"
    # Excused still needs the lesson record; plain Absent does not
    assert not record.is_complete()
    record.mark_absent()
    assert record.is_complete()
    assert record.attendance_description() == "Unexcused Absence"


def test_summary_includes_score():
    record = _record(actual_start_time=time(9, 0), actual_end_time=time(10, 0), student_performance_score=8)

    assert record.summary == "Mar 10: Present - Score: 8/10"
    assert record.display_name == "Unknown Student - Mar 10, 2025 (Present)"


def test_rules_for_absent_with_score():
    errors = _record("Absent", student_performance_score=8).validate()

    assert errors == ["Performance score should only be given when student is present or late"]


def test_rules_for_present_without_times_and_bad_status():
    assert "Actual start and end times are required when student is present or late" in _record().validate()
    assert any(e.startswith("Status must be one of") for e in _record("Sleeping").validate())


def test_too_long_lesson():
    record = _record(actual_start_time=time(8, 0), actual_end_time=time(17, 0))

    assert record.validate() == ["Class duration seems too long (more than 8 hours)"]
