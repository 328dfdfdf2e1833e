from __future__ import annotations

from abc import ABC, abstractmethod

from ...attendance.model import Attendance


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def teaching_minutes(self, attendance: Attendance) -> int:
        raise NotImplementedError
