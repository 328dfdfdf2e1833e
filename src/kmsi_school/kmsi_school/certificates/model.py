from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import PurePath
from typing import TYPE_CHECKING, Iterable, Optional

from ..common import datetime_utils
from ..common.numbering import next_sequence_number
from ..common.validators import is_code
from ..core.enums import CertificateStatus, ExamResult
from ..core.results import OperationResult
from ..grades.model import Grade
from ..students.model import Student

if TYPE_CHECKING:
    from ..examinations.model import StudentExamination

# first keyword found in the lower-cased title wins
_TYPE_KEYWORDS = (
    (("completion",), "Completion Certificate"),
    (("achievement",), "Achievement Certificate"),
    (("participation",), "Participation Certificate"),
    (("excellence",), "Excellence Certificate"),
    (("grade", "level"), "Grade Certificate"),
)

_AGE_CATEGORIES = (
    (7, "New"),
    (30, "Recent"),
    (365, "Current Year"),
    (1095, "Within 3 Years"),
)

_ACHIEVEMENT_LEVELS = (
    (Decimal("95"), "Outstanding"),
    (Decimal("90"), "Excellent"),
    (Decimal("85"), "Very Good"),
    (Decimal("80"), "Good"),
    (Decimal("75"), "Satisfactory"),
    (Decimal("70"), "Acceptable"),
)

_HIGH_PRIORITY_SORT_ORDER = 5

_TRANSITIONS = {
    CertificateStatus.ISSUED: (CertificateStatus.REVOKED, CertificateStatus.REPLACED),
    CertificateStatus.REVOKED: (),
    CertificateStatus.REPLACED: (),
}


@dataclass
class Certificate:
    """Certificate awarded for a passed examination.

    Once Revoked or Replaced the certificate is frozen: every guarded
    mutation returns a failed ``OperationResult``.
    """

    student_id: int
    student_examination_id: int
    grade_id: int
    certificate_number: str
    certificate_title: str
    issued_by: str
    issue_date: date = field(default_factory=lambda: datetime_utils.today())
    signed_by: Optional[str] = None
    certificate_path: Optional[str] = None
    status: str = CertificateStatus.ISSUED.value
    print_count: int = 0
    last_print_date: Optional[datetime] = None
    notes: Optional[str] = None
    certificate_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None

    student: Optional[Student] = field(default=None, repr=False, compare=False)
    grade: Optional[Grade] = field(default=None, repr=False, compare=False)
    student_examination: Optional["StudentExamination"] = field(default=None, repr=False, compare=False)

    @property
    def status_enum(self) -> Optional[CertificateStatus]:
        return CertificateStatus.parse(self.status)

    @property
    def display_name(self) -> str:
        who = self.student.full_name if self.student else "Unknown Student"
        return f"{self.certificate_number} - {who}"

    @property
    def certificate_type(self) -> str:
        title = (self.certificate_title or "").lower()
        for keywords, label in _TYPE_KEYWORDS:
            if any(k in title for k in keywords):
                return label
        return "Academic Certificate"

    @property
    def is_valid(self) -> bool:
        return self.status_enum is CertificateStatus.ISSUED

    @property
    def is_revoked(self) -> bool:
        return self.status_enum is CertificateStatus.REVOKED

    @property
    def is_replaced(self) -> bool:
        return self.status_enum is CertificateStatus.REPLACED

    @property
    def is_printed(self) -> bool:
        return self.print_count > 0

    @property
    def days_since_issued(self) -> int:
        return (datetime_utils.today() - self.issue_date).days

    @property
    def age_category(self) -> str:
        days = self.days_since_issued
        for limit, label in _AGE_CATEGORIES:
            if days <= limit:
                return label
        return "Historical"

    @property
    def exam_percentage(self) -> Optional[Decimal]:
        return self.student_examination.percentage if self.student_examination else None

    @property
    def letter_grade(self) -> Optional[str]:
        return self.student_examination.letter_grade if self.student_examination else None

    @property
    def achievement_level(self) -> str:
        pct = self.exam_percentage
        if pct is None:
            return "Not Available"
        for threshold, label in _ACHIEVEMENT_LEVELS:
            if pct >= threshold:
                return label
        return "Pass"

    @property
    def priority(self) -> str:
        if self.achievement_level in ("Outstanding", "Excellent"):
            return "High"
        if self.grade and (self.grade.sort_order or 0) >= _HIGH_PRIORITY_SORT_ORDER:
            return "High"
        return "Normal"

    @property
    def has_pdf(self) -> bool:
        return bool(self.certificate_path)

    @property
    def file_name(self) -> Optional[str]:
        if not self.certificate_path:
            return None
        return PurePath(self.certificate_path.replace("\\", "/")).name

    @property
    def print_frequency(self) -> str:
        n = self.print_count
        if n == 0:
            return "Never Printed"
        if n == 1:
            return "Printed Once"
        if n <= 3:
            return "Printed Few Times"
        if n <= 10:
            return "Frequently Printed"
        return "Extensively Printed"

    # ---- state machine ------------------------------------------------

    def valid_status_transitions(self) -> list[str]:
        return [s.value for s in _TRANSITIONS.get(self.status_enum, ())]

    def update_status(self, new_status: str, notes: Optional[str] = None) -> OperationResult:
        target = CertificateStatus.parse(new_status)
        if target is None or target.value not in self.valid_status_transitions():
            return OperationResult.failure(f"Cannot change certificate status from {self.status} to {new_status}")
        self.status = target.value
        if notes:
            self.notes = notes
        return OperationResult.success()

    def revoke_certificate(self, reason: str) -> OperationResult:
        if not self.is_valid:
            return OperationResult.failure(f"Certificate is {self.status} and cannot be revoked")
        self.status = CertificateStatus.REVOKED.value
        self.notes = f"Revoked: {reason}"
        return OperationResult.success()

    def mark_as_replaced(self, replacement_number: str) -> OperationResult:
        if not self.is_valid:
            return OperationResult.failure(f"Certificate is {self.status} and cannot be replaced")
        self.status = CertificateStatus.REPLACED.value
        self.notes = f"Replaced by certificate: {replacement_number}"
        return OperationResult.success()

    def record_print(self, printed_at: Optional[datetime] = None) -> OperationResult:
        if not self.is_valid:
            return OperationResult.failure(f"Certificate is {self.status} and cannot be printed")
        self.print_count += 1
        self.last_print_date = printed_at or datetime_utils.now_local()
        return OperationResult.success()

    # ---- rules --------------------------------------------------------

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.issue_date > datetime_utils.today():
            errors.append("Issue date cannot be in the future")

        if not (self.certificate_number or "").strip():
            errors.append("Certificate number is required")
        elif not is_code(self.certificate_number):
            errors.append("Certificate number must contain only uppercase letters, numbers, and hyphens")

        if not (self.certificate_title or "").strip():
            errors.append("Certificate title is required")

        if self.status_enum is None:
            errors.append(f"Invalid status. Must be one of: {CertificateStatus.choices_text()}")

        if self.certificate_path and PurePath(self.certificate_path).suffix.lower() != ".pdf":
            errors.append("Certificate file must be a PDF")

        if self.print_count < 0:
            errors.append("Print count cannot be negative")

        # skipped when the examination is not loaded
        if self.student_examination is not None and ExamResult.parse(self.student_examination.result) is not ExamResult.PASS:
            errors.append("Certificate can only be issued for passed examinations")
        return errors

    # ---- factories ----------------------------------------------------

    @staticmethod
    def generate_certificate_number(
        company_code: str, grade_code: str, issue_date: date, existing_numbers: Iterable[str]
    ) -> str:
        """CERT-{company}-{grade}-{yyyyMM}-{nnnn}."""
        prefix = f"CERT-{company_code}-{grade_code}-{issue_date:%Y%m}"
        return next_sequence_number(prefix, existing_numbers, parts=5, width=4)

    @classmethod
    def create_certificate(
        cls,
        *,
        student_id: int,
        student_examination_id: int,
        grade_id: int,
        certificate_number: str,
        certificate_title: str,
        issued_by: str,
        signed_by: Optional[str] = None,
        issue_date: Optional[date] = None,
        created_by: Optional[int] = None,
    ) -> "Certificate":
        return cls(
            student_id=student_id,
            student_examination_id=student_examination_id,
            grade_id=grade_id,
            certificate_number=certificate_number,
            certificate_title=certificate_title,
            issued_by=issued_by,
            signed_by=signed_by,
            issue_date=issue_date or datetime_utils.today(),
            status=CertificateStatus.ISSUED.value,
            print_count=0,
            created_by=created_by,
            created_date=datetime_utils.now_local(),
        )
