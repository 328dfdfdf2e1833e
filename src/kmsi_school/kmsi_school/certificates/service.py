from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..audit.service import Actor, AuditTrail
from ..audit.snapshots import snapshot
from ..common import datetime_utils
from ..core.exceptions import InvalidOperationError, NotFoundError, ValidationError
from ..examinations.model import StudentExamination
from ..examinations.repository import ExaminationRepository
from ..organization.repository import ReferenceRepository
from ..validation import ensure_valid
from .model import Certificate
from .qr import certificate_qr_png
from .reports import CertificateStatistics, certificate_statistics
from .repository import CertificateRepository

logger = logging.getLogger(__name__)

TABLE = "Certificates"


class CertificateService:
    """Issue, revoke, replace and print certificates."""

    def __init__(
        self,
        certificates: CertificateRepository,
        examinations: ExaminationRepository,
        references: ReferenceRepository,
        audit: AuditTrail,
        *,
        verify_url: Optional[str] = None,
    ):
        self._certificates = certificates
        self._examinations = examinations
        self._references = references
        self._audit = audit
        self._verify_url = verify_url

    # ---- loading ------------------------------------------------------

    def get(self, certificate_id: int) -> Certificate:
        cert = self._certificates.get_by_id(certificate_id)
        if not cert:
            raise NotFoundError(f"Certificate {certificate_id} not found")
        return cert

    def verify(self, certificate_number: str) -> Certificate:
        cert = self._certificates.get_by_number(certificate_number.strip().upper())
        if not cert:
            raise NotFoundError(f"Certificate {certificate_number} not found")
        return cert

    def _load_registration(self, student_examination_id: int) -> StudentExamination:
        registration = self._examinations.get_registration(student_examination_id)
        if not registration:
            raise NotFoundError(f"Student examination {student_examination_id} not found")

        exam = self._examinations.get_by_id(registration.examination_id)
        if not exam:
            raise NotFoundError(f"Examination {registration.examination_id} not found")
        exam.company = self._references.get_company(exam.company_id)
        exam.grade = self._references.get_grade(exam.grade_id)
        if exam.company is None or exam.grade is None:
            raise NotFoundError(f"Company or grade of examination {exam.examination_id} not found")

        registration.examination = exam
        registration.certificate = self._certificates.get_for_registration(student_examination_id)
        return registration

    def _next_number(self, registration: StudentExamination, issue_date: date) -> str:
        exam = registration.examination
        company_code, grade_code = exam.company.company_code, exam.grade.grade_code
        prefix = f"CERT-{company_code}-{grade_code}-{issue_date:%Y%m}"
        return Certificate.generate_certificate_number(
            company_code, grade_code, issue_date, self._certificates.list_numbers(prefix)
        )

    # ---- commands -----------------------------------------------------

    def issue(self, actor: Actor, student_examination_id: int, *, signed_by: Optional[str] = None) -> Certificate:
        registration = self._load_registration(student_examination_id)
        number = self._next_number(registration, datetime_utils.today())

        # raises InvalidOperationError when the result is not a pass
        cert = registration.issue_certificate(number, issued_by=actor.user_id)
        cert.signed_by = signed_by
        cert.student_examination = registration
        cert.grade = registration.examination.grade
        ensure_valid(cert)

        cert.certificate_id = self._certificates.add(cert)
        self._audit.record_insert(actor, table_name=TABLE, record_id=cert.certificate_id, new_values=cert)
        logger.info("certificate %s issued for student %s", cert.certificate_number, cert.student_id)
        return cert

    def revoke(self, actor: Actor, certificate_id: int, *, reason: str) -> Certificate:
        if not (reason or "").strip():
            raise ValidationError("A reason is required to revoke a certificate")
        cert = self.get(certificate_id)
        before = snapshot(cert)

        result = cert.revoke_certificate(reason.strip())
        if not result:
            logger.warning("revoke rejected for certificate %s: %s", certificate_id, result.reason)
            raise InvalidOperationError(result.reason)

        self._certificates.update(cert)
        self._audit.record_update(actor, table_name=TABLE, record_id=certificate_id, old_values=before, new_values=cert)
        logger.info("certificate %s revoked", cert.certificate_number)
        return cert

    def replace(self, actor: Actor, certificate_id: int, *, signed_by: Optional[str] = None) -> Certificate:
        """Issue a fresh certificate for the same exam and mark the old one Replaced."""
        old = self.get(certificate_id)
        if not old.is_valid:
            raise InvalidOperationError(f"Certificate is {old.status} and cannot be replaced")

        registration = self._load_registration(old.student_examination_id)
        # the old certificate is still attached; it is being superseded
        registration.certificate = None

        new = Certificate.create_certificate(
            student_id=old.student_id,
            student_examination_id=old.student_examination_id,
            grade_id=old.grade_id,
            certificate_number=self._next_number(registration, datetime_utils.today()),
            certificate_title=old.certificate_title,
            issued_by=old.issued_by,
            signed_by=signed_by or old.signed_by,
            created_by=actor.user_id,
        )
        new.student_examination = registration
        ensure_valid(new)

        before = snapshot(old)
        result = old.mark_as_replaced(new.certificate_number)
        if not result:
            raise InvalidOperationError(result.reason)

        new.certificate_id = self._certificates.add(new)
        self._certificates.update(old)
        self._audit.record_insert(actor, table_name=TABLE, record_id=new.certificate_id, new_values=new)
        self._audit.record_update(actor, table_name=TABLE, record_id=certificate_id, old_values=before, new_values=old)
        logger.info("certificate %s replaced by %s", old.certificate_number, new.certificate_number)
        return new

    def record_print(self, actor: Actor, certificate_id: int) -> Certificate:
        cert = self.get(certificate_id)
        before = snapshot(cert)

        result = cert.record_print()
        if not result:
            logger.warning("print rejected for certificate %s: %s", certificate_id, result.reason)
            raise InvalidOperationError(result.reason)

        self._certificates.update(cert)
        self._audit.record_update(actor, table_name=TABLE, record_id=certificate_id, old_values=before, new_values=cert)
        return cert

    # ---- queries ------------------------------------------------------

    def for_student(self, student_id: int) -> Sequence[Certificate]:
        return self._certificates.list_for_student(student_id)

    def statistics(self, *, start_date: date, end_date: date) -> CertificateStatistics:
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")
        return certificate_statistics(self._certificates.list_issued_between(start_date, end_date))

    def qr_png(self, certificate_id: int) -> bytes:
        return certificate_qr_png(self.get(certificate_id).certificate_number, self._verify_url)
