from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest

from kmsi_school.core.enums import GradeHistoryStatus
from kmsi_school.core.exceptions import NotFoundError, ValidationError
from kmsi_school.grades.model import Grade, StudentGradeHistory
from kmsi_school.grades.service import GradeProgressService
from kmsi_school.students.model import Student
from tests.fakes import InMemoryGradeHistories, InMemoryReferences


@pytest.fixture
def histories():
    return InMemoryGradeHistories()


@pytest.fixture
def service(histories, audit):
    references = InMemoryReferences(
        grades={
            1: Grade(grade_id=1, company_id=1, grade_code="G1", grade_name="Grade 1", duration=12, sort_order=1),
            2: Grade(grade_id=2, company_id=1, grade_code="G2", grade_name="Grade 2", duration=12, sort_order=2),
        },
        students={
            10: Student(student_id=10, company_id=1, site_id=1, student_code="S010", full_name="Budi", status="Active"),
            11: Student(student_id=11, company_id=1, site_id=1, student_code="S011", full_name="Citra", status="Active"),
        },
    )
    return GradeProgressService(histories, references, audit)


def test_enroll_makes_new_grade_the_only_current_one(service, actor, histories, audit_logs):
    first = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))
    second = service.enroll(actor, student_id=10, grade_id=2, start_date=date(2025, 3, 3))

    assert second.is_current_grade
    assert not first.is_current_grade
    assert sum(1 for h in histories.list_for_student(10) if h.is_current_grade) == 1
    assert [l.action for l in audit_logs.logs] == ["Insert", "Insert", "Update"]
    assert audit_logs.logs[2].get_changes()["is_current_grade"] == (True, False)


def test_enroll_without_making_current(service, actor):
    service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))

    extra = service.enroll(actor, student_id=10, grade_id=2, make_current=False)

    assert not extra.is_current_grade
    assert extra.start_date == date(2025, 3, 10)


def test_enroll_unknown_student_or_grade(service, actor):
    with pytest.raises(NotFoundError):
        service.enroll(actor, student_id=99, grade_id=1)
    with pytest.raises(NotFoundError):
        service.enroll(actor, student_id=10, grade_id=99)


def test_completion_of_hundred_completes_history(service, actor):
    history = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))

    done = service.update_completion(actor, history.student_grade_history_id, 100)

    assert done.status == GradeHistoryStatus.COMPLETED.value
    assert done.end_date == date(2025, 3, 10)
    assert done.completion_percentage == Decimal("100")
    assert not done.is_current_grade
    assert done.milestones_achieved()[-1] == "Grade Completed"


def test_partial_completion_keeps_history_active(service, actor):
    history = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))

    updated = service.update_completion(actor, history.student_grade_history_id, "55.5")

    assert updated.status == GradeHistoryStatus.ACTIVE.value
    assert updated.progress_status == "Halfway"


@pytest.mark.parametrize("value", [-1, 100.5, 150, "NaN", "Infinity", "-Infinity", "abc"])
def test_completion_outside_range_is_rejected(service, actor, value):
    history = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))

    with pytest.raises(ValidationError):
        service.update_completion(actor, history.student_grade_history_id, value)


def test_extend_non_current_grade_appends_reason(service, actor):
    first = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6), notes="Slow start")
    service.enroll(actor, student_id=10, grade_id=2, start_date=date(2025, 3, 3))

    extended = service.extend(actor, first.student_grade_history_id, reason="Holiday")

    assert extended.status == GradeHistoryStatus.EXTENDED.value
    assert extended.notes == "Slow start; Extended: Holiday"


def test_extending_the_current_grade_breaks_current_rule(service, actor):
    history = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))

    with pytest.raises(ValidationError) as exc:
        service.extend(actor, history.student_grade_history_id)

    assert "Current grade must have Active status" in exc.value.errors


def test_set_current_moves_flag_back(service, actor, histories):
    first = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))
    second = service.enroll(actor, student_id=10, grade_id=2, start_date=date(2025, 3, 3))

    service.set_current(actor, first.student_grade_history_id)

    assert first.is_current_grade
    assert not second.is_current_grade


def test_progression_report(service, actor):
    first = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))
    service.update_completion(actor, first.student_grade_history_id, 100)
    second = service.enroll(actor, student_id=10, grade_id=2, start_date=date(2025, 3, 3))
    service.update_completion(actor, second.student_grade_history_id, 40)

    report = service.progression(10)

    assert report.total_grades == 2
    assert report.completed_grades == 1
    assert report.current_grade_name == "Grade 2"
    assert report.current_progress == Decimal("40")
    assert [e.grade_name for e in report.progression] == ["Grade 1", "Grade 2"]
    assert report.performance_trend == "Insufficient Data"


def test_progression_warns_about_duplicate_current_grades(service, histories, caplog):
    for grade_id in (1, 2):
        histories.add(
            StudentGradeHistory(
                student_id=10, grade_id=grade_id, start_date=date(2025, 1, 6), is_current_grade=True
            )
        )

    with caplog.at_level(logging.WARNING, logger="kmsi_school.grades.service"):
        service.progression(10)

    assert "more than one current grade" in caplog.text


def test_statistics_and_promotion_candidates(service, actor):
    a = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))
    b = service.enroll(actor, student_id=11, grade_id=1, start_date=date(2025, 1, 6))
    service.update_completion(actor, a.student_grade_history_id, 85)
    service.update_completion(actor, b.student_grade_history_id, 30)

    stats = service.statistics(1)
    candidates = service.promotion_candidates(1)

    assert (stats.total, stats.active, stats.completed) == (2, 2, 0)
    assert stats.average_completion == Decimal("57.50")
    assert stats.distribution.advanced == 1
    assert stats.distribution.beginning == 1
    assert [h.student_id for h in candidates] == [10]
    assert [h.student_id for h in service.promotion_candidates(1, minimum_completion=20)] == [10, 11]


def test_promotion_minimum_must_be_a_percentage(service):
    with pytest.raises(ValidationError):
        service.promotion_candidates(1, minimum_completion=120)


def test_failed_enrolment_keeps_previous_current_grade(service, actor, histories, audit_logs, monkeypatch):
    first = service.enroll(actor, student_id=10, grade_id=1, start_date=date(2025, 1, 6))

    def broken_add(history):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(histories, "add", broken_add)

    with pytest.raises(RuntimeError):
        service.enroll(actor, student_id=10, grade_id=2, start_date=date(2025, 3, 3))

    assert first.is_current_grade
    assert [h.student_grade_history_id for h in histories.list_for_student(10) if h.is_current_grade] == [
        first.student_grade_history_id
    ]
    assert [l.action for l in audit_logs.logs] == ["Insert"]
