from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, time
from typing import TYPE_CHECKING, Optional

from ...core.enums import AttendanceStatus

if TYPE_CHECKING:
    from ...teachers.model import ClassSchedule


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class ArrivalStrategy(ABC):
    """Strategy Pattern: decide how a student's arrival is recorded."""

    @abstractmethod
    def decide(
        self,
        *,
        arrived_at: time,
        lesson_date: date,
        class_schedule: Optional["ClassSchedule"],
        grace_minutes: int,
    ) -> StatusDecision:
        raise NotImplementedError
