from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from ..common.stats import average, median, percent, round2
from ..core.enums import GradeHistoryStatus
from .model import StudentGradeHistory


@dataclass(frozen=True)
class ProgressDistribution:
    just_started: int = 0
    beginning: int = 0
    halfway: int = 0
    advanced: int = 0
    completed: int = 0


@dataclass(frozen=True)
class CompletionStatistics:
    total: int = 0
    completed: int = 0
    active: int = 0
    extended: int = 0
    completion_rate: Decimal = Decimal("0")
    average_completion: Decimal = Decimal("0")
    average_duration_days: Decimal = Decimal("0")
    median_duration_days: Decimal = Decimal("0")
    distribution: ProgressDistribution = ProgressDistribution()


@dataclass(frozen=True)
class GradeProgressionEntry:
    grade_id: int
    grade_name: Optional[str]
    start_date: date
    end_date: Optional[date]
    duration: str
    completion: Decimal
    status: str


@dataclass(frozen=True)
class StudentProgressionReport:
    student_id: Optional[int]
    total_grades: int
    completed_grades: int
    current_grade_name: Optional[str]
    current_progress: Decimal
    total_study_days: int
    average_grade_duration: Decimal
    progression: tuple[GradeProgressionEntry, ...]
    performance_trend: str


def _status(h: StudentGradeHistory) -> Optional[GradeHistoryStatus]:
    return GradeHistoryStatus.parse(h.status)


def completion_statistics(
    histories: Iterable[StudentGradeHistory], *, grade_id: Optional[int] = None
) -> CompletionStatistics:
    items = [h for h in histories if grade_id is None or h.grade_id == grade_id]
    if not items:
        return CompletionStatistics()

    completed = [h for h in items if _status(h) is GradeHistoryStatus.COMPLETED]
    durations = [h.duration_days for h in completed]

    def bucket(low=None, high=None) -> int:
        return sum(
            1
            for h in items
            if (low is None or h.completion_percentage >= low)
            and (high is None or h.completion_percentage < high)
        )

    return CompletionStatistics(
        total=len(items),
        completed=len(completed),
        active=sum(1 for h in items if _status(h) is GradeHistoryStatus.ACTIVE),
        extended=sum(1 for h in items if _status(h) is GradeHistoryStatus.EXTENDED),
        completion_rate=percent(len(completed), len(items)),
        average_completion=round2(average(h.completion_percentage for h in items)),
        average_duration_days=round2(average(durations) or 0),
        median_duration_days=round2(median(durations) or 0),
        distribution=ProgressDistribution(
            just_started=bucket(high=25),
            beginning=bucket(25, 50),
            halfway=bucket(50, 75),
            advanced=bucket(75, 100),
            completed=bucket(100),
        ),
    )


def _performance_trend(histories: list[StudentGradeHistory]) -> str:
    """Compare recent completed grades' velocity with earlier ones.

    The most recent up to three completed grades are "recent"; at least one
    earlier grade is always kept for the baseline.
    """
    completed = sorted(
        (h for h in histories if _status(h) is GradeHistoryStatus.COMPLETED),
        key=lambda h: h.start_date,
    )
    if len(completed) < 2:
        return "Insufficient Data"
    recent_count = min(3, len(completed) - 1)
    recent = average(h.progress_velocity for h in completed[-recent_count:])
    earlier = average(h.progress_velocity for h in completed[:-recent_count])
    if recent > earlier * Decimal("1.1"):
        return "Improving"
    if recent < earlier * Decimal("0.9"):
        return "Declining"
    return "Consistent"


def student_progression_report(histories: Iterable[StudentGradeHistory]) -> StudentProgressionReport:
    ordered = sorted(histories, key=lambda h: h.start_date)
    current = next((h for h in ordered if h.is_current_grade), None)
    completed = [h for h in ordered if _status(h) is GradeHistoryStatus.COMPLETED]

    return StudentProgressionReport(
        student_id=ordered[0].student_id if ordered else None,
        total_grades=len(ordered),
        completed_grades=len(completed),
        current_grade_name=current.grade.grade_name if current and current.grade else None,
        current_progress=current.completion_percentage if current else Decimal("0"),
        total_study_days=sum(h.duration_days for h in ordered),
        average_grade_duration=round2(average(h.duration_days for h in completed) or 0),
        progression=tuple(
            GradeProgressionEntry(
                grade_id=h.grade_id,
                grade_name=h.grade.grade_name if h.grade else None,
                start_date=h.start_date,
                end_date=h.end_date,
                duration=h.duration_display,
                completion=h.completion_percentage,
                status=h.status,
            )
            for h in ordered
        ),
        performance_trend=_performance_trend(ordered),
    )


def find_multiple_current_grades(histories: Iterable[StudentGradeHistory]) -> list[int]:
    """Student ids flagged current on more than one grade history."""
    counts = Counter(h.student_id for h in histories if h.is_current_grade)
    return sorted(student_id for student_id, n in counts.items() if n > 1)
