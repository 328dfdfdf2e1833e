from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from kmsi_school.certificates.model import Certificate
from kmsi_school.certificates.qr import verification_payload
from kmsi_school.certificates.service import CertificateService
from kmsi_school.core.enums import CertificateStatus
from kmsi_school.core.exceptions import InvalidOperationError, NotFoundError, ValidationError
from kmsi_school.examinations.model import Examination, StudentExamination
from kmsi_school.grades.model import Grade
from kmsi_school.organization.model import Company, Site
from tests.fakes import InMemoryCertificates, InMemoryExaminations, InMemoryReferences


@pytest.fixture
def exams():
    repo = InMemoryExaminations()
    repo.exams[1] = Examination(
        company_id=1,
        site_id=1,
        grade_id=2,
        examiner_teacher_id=3,
        exam_code="EX-JKT-G1-2503-01",
        exam_name="Grade 1 Piano",
        exam_date=date(2025, 3, 5),
        start_time=time(9, 0),
        end_time=time(10, 0),
        status="Completed",
        examination_id=1,
    )
    for se_id, score in ((1, "88"), (2, "45")):
        se = StudentExamination(examination_id=1, student_id=10 + se_id, student_examination_id=se_id)
        se.record_attendance("Present", time(9, 0))
        se.grade_examination(Decimal(score))
        repo.registrations[se_id] = se
    return repo


@pytest.fixture
def certificates():
    return InMemoryCertificates()


@pytest.fixture
def service(certificates, exams, audit):
    references = InMemoryReferences(
        companies={1: Company(company_id=1, company_code="KMSI", company_name="KMSI Music School")},
        sites={1: Site(site_id=1, company_id=1, site_code="JKT", site_name="Jakarta")},
        grades={2: Grade(grade_id=2, company_id=1, grade_code="G1", grade_name="Grade 1")},
    )
    return CertificateService(
        certificates, exams, references, audit, verify_url="https://kmsi.example/verify"
    )


def test_issue_for_passed_exam(service, actor, audit_logs):
    cert = service.issue(actor, 1, signed_by="Principal")

    assert cert.certificate_number == "CERT-KMSI-G1-202503-0001"
    assert cert.certificate_title == "Grade 1 Piano Certificate"
    assert cert.issued_by == "KMSI Music School"
    assert cert.status == CertificateStatus.ISSUED.value
    assert cert.issue_date == date(2025, 3, 10)
    assert audit_logs.logs[-1].action == "Insert"


def test_issue_for_failed_exam_is_rejected(service, actor, certificates):
    with pytest.raises(InvalidOperationError, match="not eligible"):
        service.issue(actor, 2)

    assert certificates.items == {}


def test_issue_twice_is_rejected(service, actor):
    service.issue(actor, 1)

    with pytest.raises(InvalidOperationError):
        service.issue(actor, 1)


def test_issue_for_unknown_registration(service, actor):
    with pytest.raises(NotFoundError):
        service.issue(actor, 404)


def test_revoke_needs_reason(service, actor):
    cert = service.issue(actor, 1)

    with pytest.raises(ValidationError):
        service.revoke(actor, cert.certificate_id, reason="  ")


def test_revoked_certificate_cannot_be_revoked_or_replaced(service, actor):
    cert = service.issue(actor, 1)
    revoked = service.revoke(actor, cert.certificate_id, reason="Issued in error")

    assert revoked.status == CertificateStatus.REVOKED.value
    assert revoked.notes == "Revoked: Issued in error"
    with pytest.raises(InvalidOperationError):
        service.revoke(actor, cert.certificate_id, reason="again")
    with pytest.raises(InvalidOperationError):
        service.replace(actor, cert.certificate_id)
    with pytest.raises(InvalidOperationError):
        service.record_print(actor, cert.certificate_id)


def test_replace_issues_new_number_and_retires_old(service, actor, certificates, audit_logs):
    old = service.issue(actor, 1, signed_by="Principal")

    new = service.replace(actor, old.certificate_id)

    assert new.certificate_number == "CERT-KMSI-G1-202503-0002"
    assert new.signed_by == "Principal"
    assert certificates.get_by_id(old.certificate_id).status == CertificateStatus.REPLACED.value
    assert old.notes == f"Replaced by certificate: {new.certificate_number}"
    assert [l.action for l in audit_logs.logs[-2:]] == ["Insert", "Update"]

    with pytest.raises(InvalidOperationError):
        service.replace(actor, old.certificate_id)
    with pytest.raises(InvalidOperationError):
        service.revoke(actor, old.certificate_id, reason="x")


def test_record_print_counts(service, actor):
    cert = service.issue(actor, 1)

    service.record_print(actor, cert.certificate_id)
    printed = service.record_print(actor, cert.certificate_id)

    assert printed.print_count == 2
    assert printed.last_print_date is not None


def test_verify_normalises_number(service, actor):
    cert = service.issue(actor, 1)

    assert service.verify(" cert-kmsi-g1-202503-0001 ") is cert
    with pytest.raises(NotFoundError):
        service.verify("CERT-NOPE")


def test_statistics_over_issue_dates(service, actor):
    first = service.issue(actor, 1)
    service.replace(actor, first.certificate_id)

    stats = service.statistics(start_date=date(2025, 3, 1), end_date=date(2025, 3, 31))

    assert (stats.total, stats.valid, stats.replaced) == (2, 1, 1)
    assert stats.validity_rate == Decimal("50.00")


def test_statistics_rejects_inverted_range(service):
    with pytest.raises(ValidationError):
        service.statistics(start_date=date(2025, 3, 31), end_date=date(2025, 3, 1))


def test_qr_png_is_an_image(service, actor):
    cert = service.issue(actor, 1)

    png = service.qr_png(cert.certificate_id)

    assert png.startswith(b"\x89PNG")


def test_verification_payload():
    assert verification_payload("CERT-A-1") == "CERT-A-1"
    assert verification_payload("CERT-A-1", "https://x/verify") == "https://x/verify?number=CERT-A-1"
    assert verification_payload("CERT-A-1", "https://x/v?lang=en") == "https://x/v?lang=en&number=CERT-A-1"


def test_number_sequence_ignores_foreign_numbers():
    number = Certificate.generate_certificate_number(
        "KMSI", "G1", date(2025, 3, 1), ["CERT-KMSI-G1-202503-0007", "CERT-KMSI-G1-202503-X", "CERT-OTHER-0009"]
    )

    assert number == "CERT-KMSI-G1-202503-0008"
