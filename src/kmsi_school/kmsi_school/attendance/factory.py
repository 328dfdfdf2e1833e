from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Optional

from .strategies.base import ArrivalStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy

if TYPE_CHECKING:
    from ..teachers.model import ClassSchedule


@dataclass
class ArrivalStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_arrival(
        self,
        *,
        arrived_at: time,
        lesson_date: date,
        class_schedule: Optional["ClassSchedule"],
        grace_minutes: int,
    ) -> ArrivalStrategy:
        if not class_schedule:
            return OnTimeStrategy()

        lesson_start = datetime.combine(lesson_date, class_schedule.start_time)
        if datetime.combine(lesson_date, arrived_at) <= lesson_start + timedelta(minutes=grace_minutes):
            return OnTimeStrategy()
        return LateStrategy()
