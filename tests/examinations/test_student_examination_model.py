from __future__ import annotations

from datetime import time
from decimal import Decimal

import pytest

from kmsi_school.examinations.model import StudentExamination


def _graded(score: str) -> StudentExamination:
    se = StudentExamination(examination_id=1, student_id=11, student_examination_id=1)
    se.record_attendance("Present", time(9, 0))
    se.grade_examination(Decimal(score))
    return se


@pytest.mark.parametrize(
    "score, needed",
    [("40", Decimal("20")), ("55", Decimal("5")), ("65", Decimal("0")), ("85", None)],
)
def test_points_needed_to_pass(score, needed):
    assert _graded(score).points_needed_to_pass == needed


def test_ungraded_registration():
    se = StudentExamination(examination_id=1, student_id=11)

    assert se.points_needed_to_pass is None
    assert se.performance_level == "Not Graded"
    assert se.certificate_status == "Not Eligible"


@pytest.mark.parametrize(
    "score, level, letter",
    [("98", "Outstanding", "A+"), ("85", "Excellent", "B"), ("66", "Satisfactory", "D"), ("40", "Poor", "F")],
)
def test_performance_level_and_letter(score, level, letter):
    se = _graded(score)

    assert se.performance_level == level
    assert se.letter_grade == letter


def test_passed_registration_is_eligible():
    se = _graded("85")

    assert se.certificate_status == "Eligible"
    assert se.is_eligible_for_certificate()
