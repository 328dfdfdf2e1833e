from __future__ import annotations

from datetime import date, time
from typing import TYPE_CHECKING, Optional

from ...core.enums import AttendanceStatus
from .base import ArrivalStrategy, StatusDecision

if TYPE_CHECKING:
    from ...teachers.model import ClassSchedule


class OnTimeStrategy(ArrivalStrategy):
    """Arrived before the grace window closed (or no schedule to compare with)."""

    def decide(
        self,
        *,
        arrived_at: time,
        lesson_date: date,
        class_schedule: Optional["ClassSchedule"],
        grace_minutes: int,
    ) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
