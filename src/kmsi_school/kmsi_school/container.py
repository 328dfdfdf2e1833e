from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .attendance.factory import ArrivalStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_log_repository import MySQLAuditLogRepository
from .audit.service import AuditTrail
from .books.mysql_book_repository import MySQLBookRepository
from .books.service import BookService
from .certificates.mysql_certificate_repository import MySQLCertificateRepository
from .certificates.service import CertificateService
from .core.constants import DEFAULT_LATE_GRACE_MINUTES, DEFAULT_TAX_RATE
from .database.connection import DatabaseConnection, DBConfig
from .examinations.mysql_examination_repository import MySQLExaminationRepository
from .examinations.service import ExaminationService
from .grades.mysql_grade_history_repository import MySQLGradeHistoryRepository
from .grades.service import GradeProgressService
from .organization.mysql_reference_repository import MySQLReferenceRepository
from .payroll.calculator.standard_calculator import StandardPayrollCalculator
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.service import PayrollService
from .teachers.mysql_teacher_repository import MySQLTeacherRepository
from .teachers.service import TeacherService


@dataclass(frozen=True)
class Container:
    """The database context: every repository and service wired to one connection factory."""

    conn: Optional[DatabaseConnection]

    audit_trail: AuditTrail
    teacher_service: TeacherService
    attendance_service: AttendanceService
    certificate_service: CertificateService
    examination_service: ExaminationService
    payroll_service: PayrollService
    grade_progress_service: GradeProgressService
    book_service: BookService


def build_container(
    *,
    db_config: dict,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    verify_url: Optional[str] = None,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    references_repo = MySQLReferenceRepository(conn)
    teachers_repo = MySQLTeacherRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    examinations_repo = MySQLExaminationRepository(conn)
    certificates_repo = MySQLCertificateRepository(conn)
    payrolls_repo = MySQLPayrollRepository(conn)
    histories_repo = MySQLGradeHistoryRepository(conn)
    books_repo = MySQLBookRepository(conn)

    audit_trail = AuditTrail(MySQLAuditLogRepository(conn))
    certificate_service = CertificateService(
        certificates_repo, examinations_repo, references_repo, audit_trail, verify_url=verify_url
    )

    return Container(
        conn=conn,
        audit_trail=audit_trail,
        teacher_service=TeacherService(teachers_repo, attendance_repo),
        attendance_service=AttendanceService(
            attendance_repo,
            teachers_repo,
            audit_trail,
            strategy_factory=ArrivalStrategyFactory(),
            grace_minutes=grace_minutes,
        ),
        certificate_service=certificate_service,
        examination_service=ExaminationService(examinations_repo, references_repo, certificate_service, audit_trail),
        payroll_service=PayrollService(
            payrolls_repo,
            teachers_repo,
            attendance_repo,
            references_repo,
            audit_trail,
            calculator=StandardPayrollCalculator(),
            tax_rate=tax_rate,
        ),
        grade_progress_service=GradeProgressService(histories_repo, references_repo, audit_trail),
        book_service=BookService(books_repo, references_repo, audit_trail),
    )
