from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from kmsi_school.attendance.model import Attendance
from kmsi_school.core.enums import PayrollStatus
from kmsi_school.core.exceptions import InvalidOperationError, NotFoundError, ValidationError
from kmsi_school.organization.model import Company, Site
from kmsi_school.payroll.model import BillingPeriod
from kmsi_school.payroll.service import PayrollService
from kmsi_school.teachers.model import Teacher
from kmsi_school.users.model import User
from tests.fakes import InMemoryAttendance, InMemoryPayrolls, InMemoryReferences, InMemoryTeachers

MARCH = BillingPeriod(
    company_id=1,
    period_name="March 2025",
    start_date=date(2025, 3, 1),
    end_date=date(2025, 3, 31),
    due_date=date(2025, 4, 5),
    billing_period_id=1,
)


def _lesson(day: int, start: time, end: time, status: str = "Present", teacher_id: int = 3) -> Attendance:
    return Attendance(
        class_schedule_id=100 + day,
        student_id=10,
        teacher_id=teacher_id,
        attendance_date=date(2025, 3, day),
        status=status,
        actual_start_time=start,
        actual_end_time=end,
    )


@pytest.fixture
def attendance():
    repo = InMemoryAttendance()
    # 20 lessons of two hours = 40 teaching hours
    for day in range(1, 21):
        repo.add(_lesson(day, time(13, 0), time(15, 0)))
    repo.add(_lesson(21, time(13, 0), time(14, 0), status="Late"))
    repo.add(_lesson(22, time(13, 0), time(14, 0), status="Absent"))
    return repo


@pytest.fixture
def teachers():
    return InMemoryTeachers(
        teachers={
            3: Teacher(
                user_id=20, company_id=1, site_id=1, teacher_code="T001", hourly_rate=Decimal("50000"), teacher_id=3
            ),
            4: Teacher(user_id=21, company_id=1, site_id=1, teacher_code="T002", teacher_id=4),
        },
        users={20: User(user_id=20, full_name="Ayu Lestari", username="ayu", company_id=1, site_id=1, level_code="TEACHER")},
    )


@pytest.fixture
def payrolls():
    return InMemoryPayrolls(periods={1: MARCH})


@pytest.fixture
def service(payrolls, teachers, attendance, audit):
    references = InMemoryReferences(
        companies={1: Company(company_id=1, company_code="KMSI", company_name="KMSI Music School")},
        sites={1: Site(site_id=1, company_id=1, site_code="JKT", site_name="Jakarta")},
    )
    return PayrollService(payrolls, teachers, attendance, references, audit, tax_rate=Decimal("0.05"))


def test_forty_hours_at_fifty_thousand(service, actor):
    payroll = service.draft_payroll(actor, teacher_id=3, billing_period_id=1)

    assert payroll.payroll_number == "PAY-T001-202503-001"
    assert payroll.total_teaching_hours == Decimal("40.00")
    assert payroll.basic_salary == Decimal("2000000")
    assert payroll.tax == Decimal("100000.00")
    assert payroll.net_salary == Decimal("1900000.00")
    assert payroll.status == PayrollStatus.DRAFT.value


def test_net_salary_equation_with_allowances_and_deductions(service, actor):
    payroll = service.draft_payroll(
        actor,
        teacher_id=3,
        billing_period_id=1,
        allowances=Decimal("250000"),
        insurance=Decimal("100000"),
        other_deductions=Decimal("50000"),
    )

    assert payroll.gross_salary == Decimal("2250000")
    assert payroll.deductions == Decimal("150000")
    assert payroll.tax == Decimal("112500.00")
    assert payroll.net_salary == payroll.basic_salary + payroll.allowances - payroll.deductions - payroll.tax
    assert payroll.net_salary == Decimal("1987500.00")
    assert payroll.validate() == []


def test_second_payroll_for_same_period_is_rejected(service, actor):
    service.draft_payroll(actor, teacher_id=3, billing_period_id=1)

    with pytest.raises(ValidationError, match="already exists"):
        service.draft_payroll(actor, teacher_id=3, billing_period_id=1)


def test_teacher_without_rate_is_rejected(service, actor):
    with pytest.raises(ValidationError, match="hourly rate"):
        service.draft_payroll(actor, teacher_id=4, billing_period_id=1)


def test_unknown_period(service, actor):
    with pytest.raises(NotFoundError):
        service.draft_payroll(actor, teacher_id=3, billing_period_id=99)


def test_approve_pay_and_revert_rules(service, actor, audit_logs):
    payroll = service.draft_payroll(actor, teacher_id=3, billing_period_id=1)

    with pytest.raises(InvalidOperationError):
        service.pay(actor, payroll.payroll_id, payment_date=date(2025, 3, 10), payment_method="Transfer")

    service.approve(actor, payroll.payroll_id)
    with pytest.raises(InvalidOperationError):
        service.approve(actor, payroll.payroll_id)

    paid = service.pay(
        actor, payroll.payroll_id, payment_date=date(2025, 3, 10), payment_method="Transfer", payment_reference="TRX-1"
    )
    assert paid.is_paid
    assert paid.payment_reference == "TRX-1"
    with pytest.raises(InvalidOperationError):
        service.revert(actor, payroll.payroll_id)

    assert [l.action for l in audit_logs.logs] == ["Insert", "Update", "Update"]


def test_revert_approved_clears_payment(service, actor):
    payroll = service.draft_payroll(actor, teacher_id=3, billing_period_id=1)
    service.approve(actor, payroll.payroll_id)

    reverted = service.revert(actor, payroll.payroll_id)

    assert reverted.status == PayrollStatus.DRAFT.value
    assert reverted.payment_date is None


def test_payment_in_the_future_is_rejected(service, actor):
    payroll = service.draft_payroll(actor, teacher_id=3, billing_period_id=1)
    service.approve(actor, payroll.payroll_id)

    with pytest.raises(ValidationError):
        service.pay(actor, payroll.payroll_id, payment_date=date(2025, 3, 11), payment_method="Cash")


def test_payment_method_is_required(service, actor):
    payroll = service.draft_payroll(actor, teacher_id=3, billing_period_id=1)
    service.approve(actor, payroll.payroll_id)

    with pytest.raises(ValidationError):
        service.pay(actor, payroll.payroll_id, payment_date=date(2025, 3, 10), payment_method=" ")


def test_payslip_carries_names_and_ratios(service, actor):
    payroll = service.draft_payroll(actor, teacher_id=3, billing_period_id=1)

    slip = service.payslip(payroll.payroll_id)

    assert slip.teacher_name == "Ayu Lestari"
    assert slip.company_name == "KMSI Music School"
    assert slip.site_name == "Jakarta"
    assert slip.period_name == "March 2025"
    assert slip.working_days == 31
    assert slip.tax_percentage == Decimal("0.05")


def test_period_report_rows_and_totals(service, actor):
    service.draft_payroll(actor, teacher_id=3, billing_period_id=1)

    report = service.period_report(1)

    assert report.rows[0]["teacher_code"] == "T001"
    assert report.rows[0]["net_salary"] == "1900000.00"
    assert report.rows[0]["payment_date"] == "-"
    assert report.summary.payroll_count == 1
    assert report.summary.total_net == Decimal("1900000.00")
    assert report.summary.by_status == {"Draft": 1}
