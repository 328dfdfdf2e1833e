from __future__ import annotations

from ...attendance.model import Attendance
from .base import PayrollCalculator


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule: Present lessons with both actual times, end - start, not below 0."""

    def teaching_minutes(self, attendance: Attendance) -> int:
        if not attendance.was_present:
            return 0
        minutes = attendance.actual_duration
        if minutes is None:
            return 0
        return max(minutes, 0)
