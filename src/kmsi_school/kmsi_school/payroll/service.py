from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..attendance.repository import AttendanceRepository
from ..audit.service import Actor, AuditTrail
from ..audit.snapshots import snapshot
from ..common.stats import round2
from ..common.validators import require_non_empty, to_decimal
from ..core.constants import DEFAULT_TAX_RATE
from ..core.exceptions import NotFoundError, ValidationError
from ..organization.repository import ReferenceRepository
from ..teachers.repository import TeacherRepository
from ..validation import ensure_valid
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import BillingPeriod, Payslip, TeacherPayroll
from .reports import PayrollPeriodSummary, summarize_period
from .repository import PayrollRepository

logger = logging.getLogger(__name__)

TABLE = "TeacherPayrolls"

EXPORT_FIELDS = [
    "payroll_number",
    "teacher_code",
    "teacher_name",
    "status",
    "total_teaching_hours",
    "hourly_rate",
    "basic_salary",
    "allowances",
    "deductions",
    "tax",
    "net_salary",
    "payment_date",
]


@dataclass(frozen=True)
class PayrollReportData:
    rows: list[dict]
    summary: PayrollPeriodSummary


class PayrollService:
    """Draft, approve and pay teacher payrolls for a billing period."""

    def __init__(
        self,
        payrolls: PayrollRepository,
        teachers: TeacherRepository,
        attendance: AttendanceRepository,
        references: ReferenceRepository,
        audit: AuditTrail,
        *,
        calculator: Optional[PayrollCalculator] = None,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
    ):
        self._payrolls = payrolls
        self._teachers = teachers
        self._attendance = attendance
        self._references = references
        self._audit = audit
        self._calculator = calculator or StandardPayrollCalculator()
        self._tax_rate = to_decimal(tax_rate)

    def _period(self, billing_period_id: int) -> BillingPeriod:
        period = self._payrolls.get_billing_period(billing_period_id)
        if not period:
            raise NotFoundError(f"Billing period {billing_period_id} not found")
        return period

    def get(self, payroll_id: int) -> TeacherPayroll:
        payroll = self._payrolls.get_by_id(payroll_id)
        if not payroll:
            raise NotFoundError(f"Payroll {payroll_id} not found")
        payroll.billing_period = self._payrolls.get_billing_period(payroll.billing_period_id)
        return payroll

    def _attach_teacher(self, payroll: TeacherPayroll) -> None:
        teacher = self._teachers.get_by_id(payroll.teacher_id)
        if teacher is not None:
            teacher.user = self._teachers.get_user(teacher.user_id)
        payroll.teacher = teacher

    def draft_payroll(
        self,
        actor: Actor,
        *,
        teacher_id: int,
        billing_period_id: int,
        allowances: Decimal = Decimal("0"),
        insurance: Decimal = Decimal("0"),
        other_deductions: Decimal = Decimal("0"),
        notes: Optional[str] = None,
    ) -> TeacherPayroll:
        """Build a Draft payroll from the teacher's Present lessons in the period."""
        teacher = self._teachers.get_by_id(teacher_id)
        if not teacher:
            raise NotFoundError(f"Teacher {teacher_id} not found")
        if teacher.hourly_rate is None:
            raise ValidationError("Teacher has no hourly rate set")

        period = self._period(billing_period_id)
        if self._payrolls.get_for_teacher_and_period(teacher_id, billing_period_id):
            raise ValidationError(f"A payroll already exists for {teacher.teacher_code} in {period.period_name}")

        lessons = self._attendance.list_for_teacher(teacher_id, start_date=period.start_date, end_date=period.end_date)
        minutes = sum(self._calculator.teaching_minutes(a) for a in lessons)

        prefix = f"PAY-{teacher.teacher_code}-{period.start_date:%Y%m}"
        payroll = TeacherPayroll(
            company_id=teacher.company_id,
            site_id=teacher.site_id,
            billing_period_id=billing_period_id,
            teacher_id=teacher_id,
            payroll_number=TeacherPayroll.generate_payroll_number(
                teacher.teacher_code, period, self._payrolls.list_numbers(prefix)
            ),
            total_teaching_hours=round2(Decimal(minutes) / 60),
            hourly_rate=teacher.hourly_rate,
            allowances=to_decimal(allowances, default=Decimal("0")),
            notes=notes,
            created_by=actor.user_id,
        )
        payroll.billing_period = period
        payroll.teacher = teacher
        payroll.recalculate_all_salary_components()
        payroll.apply_standard_deductions(insurance, other_deductions)
        payroll.apply_tax_calculation(self._tax_rate)
        ensure_valid(payroll)

        payroll.payroll_id = self._payrolls.add(payroll)
        self._audit.record_insert(actor, table_name=TABLE, record_id=payroll.payroll_id, new_values=payroll)
        logger.info(
            "payroll %s drafted: %s h, net %s", payroll.payroll_number, payroll.total_teaching_hours, payroll.net_salary
        )
        return payroll

    def _save(self, actor: Actor, payroll: TeacherPayroll, before: dict) -> TeacherPayroll:
        ensure_valid(payroll)
        self._payrolls.update(payroll)
        self._audit.record_update(
            actor, table_name=TABLE, record_id=payroll.payroll_id, old_values=before, new_values=payroll
        )
        logger.info("payroll %s is now %s", payroll.payroll_number, payroll.status)
        return payroll

    def approve(self, actor: Actor, payroll_id: int) -> TeacherPayroll:
        payroll = self.get(payroll_id)
        before = snapshot(payroll)
        payroll.approve(actor.user_id)
        return self._save(actor, payroll, before)

    def pay(
        self,
        actor: Actor,
        payroll_id: int,
        *,
        payment_date: date,
        payment_method: str,
        payment_reference: Optional[str] = None,
    ) -> TeacherPayroll:
        payment_method = require_non_empty(payment_method, "Payment method")
        payroll = self.get(payroll_id)
        before = snapshot(payroll)
        payroll.mark_as_paid(payment_date, payment_method, payment_reference, actor.user_id)
        return self._save(actor, payroll, before)

    def revert(self, actor: Actor, payroll_id: int) -> TeacherPayroll:
        payroll = self.get(payroll_id)
        before = snapshot(payroll)
        payroll.revert_to_draft(actor.user_id)
        return self._save(actor, payroll, before)

    def payslip(self, payroll_id: int) -> Payslip:
        payroll = self.get(payroll_id)
        self._attach_teacher(payroll)
        payroll.site = self._references.get_site(payroll.site_id)
        payroll.company = self._references.get_company(payroll.company_id)
        return payroll.payslip()

    def period_summary(self, billing_period_id: int) -> PayrollPeriodSummary:
        period = self._period(billing_period_id)
        payrolls = list(self._payrolls.list_for_period(billing_period_id))
        for p in payrolls:
            p.billing_period = period
        return summarize_period(payrolls, period)

    def period_report(self, billing_period_id: int) -> PayrollReportData:
        """Rows for the CSV export plus the period totals."""
        period = self._period(billing_period_id)
        payrolls = list(self._payrolls.list_for_period(billing_period_id))
        rows = []
        for p in payrolls:
            p.billing_period = period
            self._attach_teacher(p)
            rows.append(
                {
                    "payroll_number": p.payroll_number,
                    "teacher_code": p.teacher.teacher_code if p.teacher else "-",
                    "teacher_name": p.teacher.teacher_name if p.teacher else "-",
                    "status": p.status,
                    "total_teaching_hours": str(p.total_teaching_hours),
                    "hourly_rate": str(p.hourly_rate),
                    "basic_salary": str(round2(p.basic_salary)),
                    "allowances": str(round2(p.allowances)),
                    "deductions": str(round2(p.deductions)),
                    "tax": str(round2(p.tax)),
                    "net_salary": str(round2(p.net_salary)),
                    "payment_date": p.payment_date.strftime("%Y-%m-%d") if p.payment_date else "-",
                }
            )
        return PayrollReportData(rows=rows, summary=summarize_period(payrolls, period))
