from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import BillingPeriod, TeacherPayroll


class PayrollRepository(Protocol):
    def get_by_id(self, payroll_id: int) -> Optional[TeacherPayroll]:
        raise NotImplementedError

    def get_for_teacher_and_period(self, teacher_id: int, billing_period_id: int) -> Optional[TeacherPayroll]:
        raise NotImplementedError

    def list_for_period(self, billing_period_id: int) -> Sequence[TeacherPayroll]:
        raise NotImplementedError

    def list_numbers(self, prefix: str) -> Sequence[str]:
        raise NotImplementedError

    def add(self, payroll: TeacherPayroll) -> int:
        raise NotImplementedError

    def update(self, payroll: TeacherPayroll) -> bool:
        raise NotImplementedError

    def get_billing_period(self, billing_period_id: int) -> Optional[BillingPeriod]:
        raise NotImplementedError
