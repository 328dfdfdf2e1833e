from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from kmsi_school.certificates.model import Certificate
from kmsi_school.certificates.reports import by_date_range, by_status
from kmsi_school.examinations.model import StudentExamination
from kmsi_school.grades.model import Grade


def _cert(number="CERT-KMSI-G1-202503-0001", *, title="Grade 1 Piano Certificate", issued=date(2025, 3, 1), **kwargs):
    return Certificate(
        student_id=11,
        student_examination_id=1,
        grade_id=2,
        certificate_number=number,
        certificate_title=title,
        issued_by="KMSI Music School",
        issue_date=issued,
        **kwargs,
    )


def _graded(score: str) -> StudentExamination:
    se = StudentExamination(examination_id=1, student_id=11, student_examination_id=1)
    se.record_attendance("Present", time(9, 0))
    se.grade_examination(Decimal(score))
    return se


@pytest.mark.parametrize(
    "title, kind",
    [
        ("Course Completion", "Completion Certificate"),
        ("Award of Achievement", "Achievement Certificate"),
        ("Level 2 Theory", "Grade Certificate"),
        ("Piano Recital", "Academic Certificate"),
    ],
)
def test_certificate_type_from_title(title, kind):
    assert _cert(title=title).certificate_type == kind


@pytest.mark.parametrize(
    "issued, category",
    [
        (date(2025, 3, 5), "New"),
        (date(2025, 2, 20), "Recent"),
        (date(2024, 6, 1), "Current Year"),
        (date(2023, 1, 1), "Within 3 Years"),
        (date(2020, 1, 1), "Historical"),
    ],
)
def test_age_category(issued, category):
    assert _cert(issued=issued).age_category == category


def test_achievement_and_priority():
    cert = _cert()
    assert cert.achievement_level == "Not Available"
    assert cert.priority == "Normal"

    cert.student_examination = _graded("96")
    assert cert.achievement_level == "Outstanding"
    assert cert.priority == "High"

    cert.student_examination = _graded("72")
    assert cert.achievement_level == "Acceptable"
    cert.grade = Grade(grade_id=2, company_id=1, grade_code="G6", grade_name="Grade 6", sort_order=6)
    assert cert.priority == "High"


def test_file_name_and_pdf_rule():
    cert = _cert(certificate_path="C:\\certs\\2025\\CERT-0001.pdf")
    assert cert.file_name == "CERT-0001.pdf"
    assert cert.validate() == []

    cert.certificate_path = "/srv/certs/CERT-0001.png"
    assert cert.validate() == ["Certificate file must be a PDF"]


@pytest.mark.parametrize("count, label", [(0, "Never Printed"), (1, "Printed Once"), (3, "Printed Few Times"), (12, "Extensively Printed")])
def test_print_frequency(count, label):
    assert _cert(print_count=count).print_frequency == label


def test_update_status_follows_transitions():
    cert = _cert()

    assert cert.valid_status_transitions() == ["Revoked", "Replaced"]
    assert cert.update_status("revoked", notes="Duplicate")
    assert cert.is_revoked
    assert cert.valid_status_transitions() == []

    result = cert.update_status("Issued")
    assert result.reason == "Cannot change certificate status from Revoked to Issued"
    assert cert.notes == "Duplicate"


def test_rules_for_bad_number_and_failed_exam():
    cert = _cert("cert-kmsi-1")
    cert.student_examination = _graded("40")

    assert cert.validate() == [
        "Certificate number must contain only uppercase letters, numbers, and hyphens",
        "Certificate can only be issued for passed examinations",
    ]


def test_filters():
    certs = [
        _cert("CERT-A-1", issued=date(2025, 1, 15)),
        _cert("CERT-A-2", issued=date(2025, 2, 1), status="Revoked"),
        _cert("CERT-A-3", issued=date(2025, 2, 28)),
    ]

    assert [c.certificate_number for c in by_status(certs, "issued")] == ["CERT-A-1", "CERT-A-3"]
    assert by_status(certs, "Lost") == []
    assert [c.certificate_number for c in by_date_range(certs, date(2025, 2, 1), date(2025, 2, 28))] == [
        "CERT-A-2",
        "CERT-A-3",
    ]
