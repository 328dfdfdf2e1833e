from __future__ import annotations

from datetime import date, time
from typing import TYPE_CHECKING, Optional

from ...common.datetime_utils import minutes_between
from ...core.enums import AttendanceStatus
from .base import ArrivalStrategy, StatusDecision

if TYPE_CHECKING:
    from ...teachers.model import ClassSchedule


class LateStrategy(ArrivalStrategy):
    """Late arrival."""

    def decide(
        self,
        *,
        arrived_at: time,
        lesson_date: date,
        class_schedule: Optional["ClassSchedule"],
        grace_minutes: int,
    ) -> StatusDecision:
        note = None
        if class_schedule is not None:
            note = f"Late by {minutes_between(class_schedule.start_time, arrived_at)} min"
        return StatusDecision(status=AttendanceStatus.LATE, note=note)
