from __future__ import annotations

from enum import Enum
from typing import Optional, TypeVar

E = TypeVar("E", bound="LookupEnum")


class LookupEnum(str, Enum):
    """String enum stored verbatim in the database.

    Records keep their status as plain text (rows may carry legacy casing),
    so comparisons go through ``parse`` which matches case-insensitively.
    """

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls: type[E], value: object) -> Optional[E]:
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return None

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]

    @classmethod
    def choices_text(cls) -> str:
        return ", ".join(cls.values())


class AttendanceStatus(LookupEnum):
    """Lesson attendance outcome for a student."""

    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    EXCUSED = "Excused"


class CertificateStatus(LookupEnum):
    ISSUED = "Issued"
    REVOKED = "Revoked"
    REPLACED = "Replaced"


class ExaminationStatus(LookupEnum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ExamAttendanceStatus(LookupEnum):
    """Attendance on exam day (no excused state for exams)."""

    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"


class ExamResult(LookupEnum):
    PASS = "Pass"
    FAIL = "Fail"
    NEED_RETAKE = "Need Retake"


class PayrollStatus(LookupEnum):
    DRAFT = "Draft"
    APPROVED = "Approved"
    PAID = "Paid"


class GradeHistoryStatus(LookupEnum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    EXTENDED = "Extended"


class RequisitionLineStatus(LookupEnum):
    """Derived status of a book requisition line (never stored)."""

    PENDING_APPROVAL = "Pending Approval"
    APPROVED_PENDING_FULFILLMENT = "Approved - Pending Fulfillment"
    PARTIALLY_FULFILLED = "Partially Fulfilled"
    FULFILLED = "Fulfilled"
    OVER_FULFILLED = "Over Fulfilled"


class AuditAction(LookupEnum):
    INSERT = "Insert"
    UPDATE = "Update"
    DELETE = "Delete"


class StudentStatus(LookupEnum):
    PENDING = "Pending"
    TRIAL = "Trial"
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    GRADUATED = "Graduated"


class ClassScheduleStatus(LookupEnum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No Show"


class BillingPeriodStatus(LookupEnum):
    DRAFT = "Draft"
    GENERATED = "Generated"
    FINALIZED = "Finalized"
    CLOSED = "Closed"


class UserLevel(LookupEnum):
    """Access level codes a user account can carry."""

    SUPER = "SUPER"
    HO_ADMIN = "HO_ADMIN"
    BRANCH_MGR = "BRANCH_MGR"
    TEACHER = "TEACHER"
    STAFF = "STAFF"
