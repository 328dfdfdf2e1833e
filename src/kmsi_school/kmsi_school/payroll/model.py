from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Optional

from ..common import datetime_utils
from ..common.numbering import next_sequence_number
from ..common.stats import round2, safe_ratio
from ..common.validators import to_decimal
from ..core.constants import (
    DEFAULT_TAX_RATE,
    MAX_HOURS_PER_DAY,
    MONEY_QUANTUM,
    MONEY_TOLERANCE,
    PAYROLL_OVERDUE_DAYS,
    STANDARD_HOURS_PER_DAY,
)
from ..core.enums import BillingPeriodStatus, PayrollStatus
from ..core.exceptions import InvalidOperationError
from ..core.results import OperationResult
from ..organization.model import Company, Site
from ..teachers.model import Teacher

_ZERO = Decimal("0")

_TRANSITIONS = {
    PayrollStatus.DRAFT: (PayrollStatus.APPROVED,),
    PayrollStatus.APPROVED: (PayrollStatus.PAID, PayrollStatus.DRAFT),
    PayrollStatus.PAID: (),
}

_PERFORMANCE = (
    (Decimal("0.95"), "Excellent"),
    (Decimal("0.85"), "Very Good"),
    (Decimal("0.75"), "Good"),
    (Decimal("0.60"), "Fair"),
)

_PERIOD_TYPES = (
    (7, "Weekly"),
    (14, "Bi-weekly"),
    (31, "Monthly"),
    (93, "Quarterly"),
    (186, "Semi-annual"),
    (366, "Annual"),
)


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


@dataclass
class BillingPeriod:
    """Payroll/billing window of a company (e.g. one calendar month)."""

    company_id: int
    period_name: str
    start_date: date
    end_date: date
    due_date: date
    status: str = BillingPeriodStatus.DRAFT.value
    generated_date: Optional[datetime] = None
    finalized_date: Optional[datetime] = None
    billing_period_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None

    @property
    def period_duration(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def grace_period(self) -> int:
        return (self.due_date - self.end_date).days

    @property
    def is_active_period(self) -> bool:
        return self.start_date <= datetime_utils.today() <= self.end_date

    @property
    def is_overdue(self) -> bool:
        return self.due_date < datetime_utils.today() and BillingPeriodStatus.parse(self.status) is not BillingPeriodStatus.CLOSED

    @property
    def period_type(self) -> str:
        for limit, label in _PERIOD_TYPES:
            if self.period_duration <= limit:
                return label
        return "Custom"

    @property
    def display_name(self) -> str:
        return f"{self.period_name} ({self.status})"

    @property
    def description(self) -> str:
        return f"{self.period_name} - {self.start_date:%b %d} to {self.end_date:%b %d, %Y}"

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.end_date <= self.start_date:
            errors.append("End date must be after start date")
        if self.due_date < self.end_date:
            errors.append("Due date should be on or after end date")
        if self.period_duration > 366:
            errors.append("Billing period cannot exceed 1 year")
        if self.grace_period > 90:
            errors.append("Grace period should not exceed 90 days")

        status = BillingPeriodStatus.parse(self.status)
        if status is None:
            errors.append(f"Status must be one of: {BillingPeriodStatus.choices_text()}")
        if status is BillingPeriodStatus.GENERATED and self.generated_date is None:
            errors.append("Generated date is required when status is 'Generated'")
        if status is BillingPeriodStatus.FINALIZED and self.finalized_date is None:
            errors.append("Finalized date is required when status is 'Finalized'")
        return errors


@dataclass(frozen=True)
class Payslip:
    """Printable breakdown of one payroll."""

    payroll_number: str
    payroll_date: date
    company_name: Optional[str]
    site_name: Optional[str]
    period_name: Optional[str]
    period_start: Optional[date]
    period_end: Optional[date]
    teacher_code: Optional[str]
    teacher_name: Optional[str]
    total_teaching_hours: Decimal
    hourly_rate: Decimal
    working_days: int
    average_hours_per_day: Decimal
    performance: str
    basic_salary: Decimal
    allowances: Decimal
    gross_salary: Decimal
    deductions: Decimal
    tax: Decimal
    total_deductions: Decimal
    tax_percentage: Decimal
    net_salary: Decimal
    net_hourly_rate: Decimal
    status: str
    payment_date: Optional[date]
    payment_method: Optional[str]
    payment_reference: Optional[str]
    notes: Optional[str]
    generated_at: datetime


@dataclass
class TeacherPayroll:
    """Monthly pay of a teacher for one billing period.

    Net = Basic + Allowances - Deductions - Tax. The salary helpers keep
    ``net_salary`` in step whenever a component changes.
    """

    company_id: int
    site_id: int
    billing_period_id: int
    teacher_id: int
    payroll_number: str
    payroll_date: date = field(default_factory=lambda: datetime_utils.today())
    total_teaching_hours: Decimal = _ZERO
    hourly_rate: Decimal = _ZERO
    basic_salary: Decimal = _ZERO
    allowances: Decimal = _ZERO
    deductions: Decimal = _ZERO
    tax: Decimal = _ZERO
    net_salary: Decimal = _ZERO
    status: str = PayrollStatus.DRAFT.value
    payment_date: Optional[date] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    payroll_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_date: Optional[datetime] = None
    updated_by: Optional[int] = None

    company: Optional[Company] = field(default=None, repr=False, compare=False)
    site: Optional[Site] = field(default=None, repr=False, compare=False)
    teacher: Optional[Teacher] = field(default=None, repr=False, compare=False)
    billing_period: Optional[BillingPeriod] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        for name in (
            "total_teaching_hours",
            "hourly_rate",
            "basic_salary",
            "allowances",
            "deductions",
            "tax",
            "net_salary",
        ):
            setattr(self, name, to_decimal(getattr(self, name), default=_ZERO))

    @property
    def status_enum(self) -> Optional[PayrollStatus]:
        return PayrollStatus.parse(self.status)

    @property
    def display_name(self) -> str:
        return f"{self.payroll_number} - {self.teacher.teacher_name if self.teacher else 'Unknown'}"

    @property
    def payment_method_display(self) -> str:
        return self.payment_method or "Not Specified"

    @property
    def gross_salary(self) -> Decimal:
        return self.basic_salary + self.allowances

    @property
    def total_deductions(self) -> Decimal:
        return self.deductions + self.tax

    @property
    def effective_hourly_rate(self) -> Decimal:
        return safe_ratio(self.gross_salary, self.total_teaching_hours)

    @property
    def net_hourly_rate(self) -> Decimal:
        return safe_ratio(self.net_salary, self.total_teaching_hours)

    # the three percentages below are 0..1 shares of gross salary
    @property
    def tax_percentage(self) -> Decimal:
        return safe_ratio(self.tax, self.gross_salary)

    @property
    def deduction_percentage(self) -> Decimal:
        return safe_ratio(self.deductions, self.gross_salary)

    @property
    def total_deduction_percentage(self) -> Decimal:
        return safe_ratio(self.total_deductions, self.gross_salary)

    @property
    def is_overdue(self) -> bool:
        if self.status_enum is not PayrollStatus.APPROVED or self.billing_period is None:
            return False
        return self.billing_period.end_date < datetime_utils.today() - timedelta(days=PAYROLL_OVERDUE_DAYS)

    @property
    def is_ready_for_payment(self) -> bool:
        return self.status_enum is PayrollStatus.APPROVED and self.payment_date is None

    @property
    def is_paid(self) -> bool:
        return self.status_enum is PayrollStatus.PAID and self.payment_date is not None

    @property
    def working_days(self) -> int:
        if self.billing_period is None:
            return 0
        return self.billing_period.period_duration

    @property
    def average_hours_per_day(self) -> Decimal:
        return safe_ratio(self.total_teaching_hours, self.working_days)

    @property
    def performance_indicator(self) -> str:
        expected = self.working_days * STANDARD_HOURS_PER_DAY
        if expected == 0:
            return "No Data"
        ratio = safe_ratio(self.total_teaching_hours, expected)
        for threshold, label in _PERFORMANCE:
            if ratio >= threshold:
                return label
        return "Below Standard"

    # ---- salary -------------------------------------------------------

    def calculate_basic_salary(self) -> Decimal:
        self.basic_salary = self.total_teaching_hours * self.hourly_rate
        return self.basic_salary

    def calculate_net_salary(self) -> Decimal:
        self.net_salary = self.basic_salary + self.allowances - self.deductions - self.tax
        return self.net_salary

    def recalculate_all_salary_components(self) -> None:
        self.calculate_basic_salary()
        self.calculate_net_salary()

    def apply_tax_calculation(self, rate: Decimal = DEFAULT_TAX_RATE) -> None:
        """Tax is rounded half-to-even on the cent."""
        self.tax = (self.gross_salary * to_decimal(rate)).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)
        self.calculate_net_salary()

    def apply_standard_deductions(self, insurance: Decimal = _ZERO, other: Decimal = _ZERO) -> None:
        self.deductions = to_decimal(insurance, default=_ZERO) + to_decimal(other, default=_ZERO)
        self.calculate_net_salary()

    # ---- workflow -----------------------------------------------------

    def _touch(self, user_id: Optional[int]) -> None:
        if user_id is not None:
            self.updated_by = user_id
        self.updated_date = datetime_utils.now_local()

    def _clear_payment(self) -> None:
        self.payment_date = None
        self.payment_method = None
        self.payment_reference = None

    def approve(self, approved_by: int) -> None:
        if self.status_enum is not PayrollStatus.DRAFT:
            raise InvalidOperationError("Only draft payrolls can be approved")
        self.status = PayrollStatus.APPROVED.value
        self._touch(approved_by)

    def mark_as_paid(
        self,
        payment_date: date,
        payment_method: str,
        payment_reference: Optional[str],
        processed_by: int,
    ) -> None:
        if self.status_enum is not PayrollStatus.APPROVED:
            raise InvalidOperationError("Only approved payrolls can be marked as paid")
        self.status = PayrollStatus.PAID.value
        self.payment_date = payment_date
        self.payment_method = payment_method
        self.payment_reference = payment_reference
        self._touch(processed_by)

    def revert_to_draft(self, reverted_by: int) -> None:
        if self.status_enum is PayrollStatus.PAID:
            raise InvalidOperationError("Paid payrolls cannot be reverted to draft")
        if PayrollStatus.DRAFT.value not in self.valid_status_transitions():
            raise InvalidOperationError(f"Cannot change payroll status from {self.status} to Draft")
        self.status = PayrollStatus.DRAFT.value
        self._clear_payment()
        self._touch(reverted_by)

    def valid_status_transitions(self) -> list[str]:
        return [s.value for s in _TRANSITIONS.get(self.status_enum, ())]

    def update_status(self, new_status: str, *, updated_by: Optional[int] = None) -> OperationResult:
        """Guarded status change; Paid also needs a payment date already set."""
        target = PayrollStatus.parse(new_status)
        if target is None or target.value not in self.valid_status_transitions():
            return OperationResult.failure(f"Cannot change payroll status from {self.status} to {new_status}")
        if target is PayrollStatus.PAID and self.payment_date is None:
            return OperationResult.failure("Payment date is required before a payroll can be paid")
        self.status = target.value
        if target is PayrollStatus.DRAFT:
            self._clear_payment()
        self._touch(updated_by)
        return OperationResult.success()

    # ---- rules --------------------------------------------------------

    def is_payroll_number_unique(self, other_payrolls: Iterable["TeacherPayroll"]) -> bool:
        number = self.payroll_number.upper()
        return not any(
            p.payroll_number.upper() == number
            and p.billing_period_id == self.billing_period_id
            and p.site_id == self.site_id
            and (self.payroll_id is None or p.payroll_id != self.payroll_id)
            for p in other_payrolls
            if p is not self
        )

    def validate(self) -> list[str]:
        errors: list[str] = []
        expected_basic = self.total_teaching_hours * self.hourly_rate
        if abs(self.basic_salary - expected_basic) > MONEY_TOLERANCE:
            errors.append(
                f"Basic salary ({_money(self.basic_salary)}) doesn't match calculated amount ({_money(expected_basic)})"
            )

        expected_net = self.basic_salary + self.allowances - self.deductions - self.tax
        if abs(self.net_salary - expected_net) > MONEY_TOLERANCE:
            errors.append(
                f"Net salary ({_money(self.net_salary)}) doesn't match calculated amount ({_money(expected_net)})"
            )

        if self.status_enum is PayrollStatus.PAID and self.payment_date is None:
            errors.append("Paid payrolls must have payment date")
        if self.payment_date is not None and self.payment_date > datetime_utils.today():
            errors.append("Payment date cannot be in the future")

        # needs the billing period to know how many days were worked
        if self.billing_period is not None and self.total_teaching_hours > self.working_days * MAX_HOURS_PER_DAY:
            errors.append(
                f"Teaching hours ({self.total_teaching_hours}) seems excessive for {self.working_days} working days"
            )

        if self.net_salary < 0:
            errors.append("Net salary cannot be negative")
        return errors

    @staticmethod
    def generate_payroll_number(
        teacher_code: str, billing_period: BillingPeriod, existing_numbers: Iterable[str]
    ) -> str:
        """PAY-{teacher}-{yyyyMM}-{nnn}."""
        prefix = f"PAY-{teacher_code}-{billing_period.start_date:%Y%m}"
        return next_sequence_number(prefix, existing_numbers, parts=4, width=3)

    def payslip(self) -> Payslip:
        period = self.billing_period
        return Payslip(
            payroll_number=self.payroll_number,
            payroll_date=self.payroll_date,
            company_name=self.company.company_name if self.company else None,
            site_name=self.site.site_name if self.site else None,
            period_name=period.period_name if period else None,
            period_start=period.start_date if period else None,
            period_end=period.end_date if period else None,
            teacher_code=self.teacher.teacher_code if self.teacher else None,
            teacher_name=self.teacher.teacher_name if self.teacher else None,
            total_teaching_hours=self.total_teaching_hours,
            hourly_rate=self.hourly_rate,
            working_days=self.working_days,
            average_hours_per_day=round2(self.average_hours_per_day),
            performance=self.performance_indicator,
            basic_salary=self.basic_salary,
            allowances=self.allowances,
            gross_salary=self.gross_salary,
            deductions=self.deductions,
            tax=self.tax,
            total_deductions=self.total_deductions,
            tax_percentage=self.tax_percentage,
            net_salary=self.net_salary,
            net_hourly_rate=round2(self.net_hourly_rate),
            status=self.status,
            payment_date=self.payment_date,
            payment_method=self.payment_method,
            payment_reference=self.payment_reference,
            notes=self.notes,
            generated_at=datetime_utils.now_local(),
        )
