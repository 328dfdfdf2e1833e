from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from ..common.datetime_utils import format_minutes
from ..common.stats import average, percent, round2
from ..core.enums import AttendanceStatus
from .model import Attendance


@dataclass(frozen=True)
class AttendanceSummary:
    total: int = 0
    present: int = 0
    late: int = 0
    excused: int = 0
    absent: int = 0
    attendance_rate: Decimal = Decimal("0")
    points_rate: Decimal = Decimal("0")
    average_performance: Optional[Decimal] = None
    total_minutes: int = 0

    @property
    def total_duration_display(self) -> str:
        return format_minutes(self.total_minutes)


def summarize_attendance(records: Iterable[Attendance]) -> AttendanceSummary:
    items = list(records)
    if not items:
        return AttendanceSummary()

    def count(status: AttendanceStatus) -> int:
        return sum(1 for a in items if a.status_enum is status)

    present, late = count(AttendanceStatus.PRESENT), count(AttendanceStatus.LATE)
    scores = [a.student_performance_score for a in items if a.student_performance_score is not None]
    avg_score = average(scores)

    return AttendanceSummary(
        total=len(items),
        present=present,
        late=late,
        excused=count(AttendanceStatus.EXCUSED),
        absent=count(AttendanceStatus.ABSENT),
        attendance_rate=percent(present + late, len(items)),
        points_rate=percent(sum(a.attendance_points() for a in items), len(items)),
        average_performance=round2(avg_score) if avg_score is not None else None,
        total_minutes=sum(a.actual_duration for a in items if a.actual_duration and a.actual_duration > 0),
    )
