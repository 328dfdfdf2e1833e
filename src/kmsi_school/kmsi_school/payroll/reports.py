from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from ..common.stats import average, round2
from .model import BillingPeriod, Payslip, TeacherPayroll

__all__ = ["Payslip", "PayrollPeriodSummary", "summarize_period"]

_ZERO = Decimal("0")


@dataclass(frozen=True)
class PayrollPeriodSummary:
    billing_period_id: Optional[int] = None
    period_name: Optional[str] = None
    payroll_count: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    total_hours: Decimal = _ZERO
    total_basic: Decimal = _ZERO
    total_allowances: Decimal = _ZERO
    total_gross: Decimal = _ZERO
    total_deductions: Decimal = _ZERO
    total_tax: Decimal = _ZERO
    total_net: Decimal = _ZERO
    average_net: Decimal = _ZERO
    overdue_count: int = 0


def summarize_period(
    payrolls: Iterable[TeacherPayroll], period: Optional[BillingPeriod] = None
) -> PayrollPeriodSummary:
    items = list(payrolls)
    period_id = period.billing_period_id if period else None
    period_name = period.period_name if period else None
    if not items:
        return PayrollPeriodSummary(billing_period_id=period_id, period_name=period_name)

    return PayrollPeriodSummary(
        billing_period_id=period_id,
        period_name=period_name,
        payroll_count=len(items),
        by_status=dict(Counter(p.status for p in items)),
        total_hours=round2(sum((p.total_teaching_hours for p in items), _ZERO)),
        total_basic=round2(sum((p.basic_salary for p in items), _ZERO)),
        total_allowances=round2(sum((p.allowances for p in items), _ZERO)),
        total_gross=round2(sum((p.gross_salary for p in items), _ZERO)),
        total_deductions=round2(sum((p.deductions for p in items), _ZERO)),
        total_tax=round2(sum((p.tax for p in items), _ZERO)),
        total_net=round2(sum((p.net_salary for p in items), _ZERO)),
        average_net=round2(average(p.net_salary for p in items)),
        overdue_count=sum(1 for p in items if p.is_overdue),
    )
