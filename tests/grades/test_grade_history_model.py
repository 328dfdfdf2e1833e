from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from kmsi_school.grades.model import Grade, StudentGradeHistory

GRADE_ONE = Grade(grade_id=1, company_id=1, grade_code="G1", grade_name="Grade 1", duration=12)


def _history(start: date, completion="0", *, history_id=1, grade_id=1, status="Active") -> StudentGradeHistory:
    h = StudentGradeHistory(
        student_id=10,
        grade_id=grade_id,
        start_date=start,
        completion_percentage=completion,
        status=status,
        is_current_grade=status == "Active",
        student_grade_history_id=history_id,
    )
    h.grade = GRADE_ONE
    return h


@pytest.mark.parametrize(
    "weeks, text",
    [(None, "Not specified"), (3, "3 weeks"), (4, "1 month"), (10, "2 months 2 weeks"), (12, "3 months")],
)
def test_grade_duration_display(weeks, text):
    assert Grade(grade_id=1, company_id=1, grade_code="G", grade_name="G", duration=weeks).duration_display == text


@pytest.mark.parametrize(
    "start, text",
    [(date(2025, 3, 8), "2 days"), (date(2025, 2, 10), "4 weeks"), (date(2024, 12, 16), "3 months")],
)
def test_history_duration_display(start, text):
    assert _history(start).duration_display == text


def test_period_and_academic_year():
    history = _history(date(2024, 12, 16))

    assert history.period_display == "Dec 2024 - Ongoing"
    assert history.academic_year == "2024/2025"
    assert _history(date(2025, 2, 3)).academic_year == "2024/2025"
    assert _history(date(2024, 9, 2)).academic_year == "2024/2025"

    history.mark_as_completed(date(2025, 3, 9))
    assert history.period_display == "Dec 2024 - Mar 2025"


def test_schedule_views_against_grade_duration():
    on_time = _history(date(2024, 12, 16), "60")

    assert on_time.expected_completion_date == date(2025, 3, 10)
    assert on_time.days_remaining == 0
    assert not on_time.is_extended
    assert on_time.expected_progress() == Decimal("100")
    assert on_time.progress_velocity == Decimal("5")
    assert on_time.estimated_completion_date == date(2025, 5, 5)
    assert on_time.performance_indicator == "Behind Schedule"

    assert _history(date(2024, 10, 1)).is_extended


@pytest.mark.parametrize(
    "completion, label",
    [("0", "Not Started"), ("10", "Just Started"), ("25", "Beginning"), ("95", "Nearly Complete"), ("100", "Completed")],
)
def test_progress_status(completion, label):
    assert _history(date(2025, 1, 6), completion).progress_status == label


def test_milestones():
    assert _history(date(2025, 1, 6), "60").milestones_achieved() == ["25% Complete", "Halfway Point"]


def test_similar_patterns_closest_first():
    me = _history(date(2025, 1, 6), "60")
    others = [
        _history(date(2025, 1, 6), "72", history_id=2),
        _history(date(2025, 1, 6), "65", history_id=3),
        _history(date(2025, 1, 6), "55", history_id=4),
        _history(date(2025, 1, 6), "60", history_id=5, grade_id=2),
        _history(date(2025, 1, 6), "60", history_id=6, status="Extended"),
        me,
    ]

    assert [h.student_grade_history_id for h in me.similar_patterns(others)] == [3, 4]
    assert [h.student_grade_history_id for h in me.similar_patterns(others, similarity_threshold=15)] == [3, 4, 2]


def test_completed_history_rules():
    history = _history(date(2025, 1, 6), "80", status="Completed")
    history.is_current_grade = False

    assert history.validate() == [
        "Completed grade must have an end date",
        "Completed grade must have 100% completion",
    ]
