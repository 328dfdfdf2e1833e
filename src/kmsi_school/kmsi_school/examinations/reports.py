from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from ..common.stats import average, median, percent, round2
from ..core.enums import ExamResult
from .model import Examination, StudentExamination

_TREND_WINDOW = 3
_TREND_MARGIN = Decimal("5")


@dataclass(frozen=True)
class ExamStatistics:
    examination_id: Optional[int]
    exam_code: str
    exam_name: str
    exam_date: date
    status: str
    max_capacity: int
    enrolled: int
    attended: int
    completed: int
    passed: int
    failed: int
    pass_rate: Decimal
    average_score: Decimal
    highest_score: Optional[Decimal]
    lowest_score: Optional[Decimal]
    duration_minutes: int
    location: Optional[str]


@dataclass(frozen=True)
class ExaminationResultsStats:
    total: int = 0
    attended: int = 0
    completed: int = 0
    attendance_rate: Decimal = Decimal("0")
    passed: int = 0
    failed: int = 0
    need_retake: int = 0
    pass_rate: Decimal = Decimal("0")
    average_percentage: Optional[Decimal] = None
    highest_percentage: Optional[Decimal] = None
    lowest_percentage: Optional[Decimal] = None
    median_percentage: Optional[Decimal] = None
    grade_distribution: dict[str, int] = field(default_factory=dict)
    performance_levels: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class RecentExamination:
    exam_name: Optional[str]
    exam_date: Optional[date]
    letter_grade: Optional[str]
    result: Optional[str]
    percentage: Optional[Decimal]


@dataclass(frozen=True)
class StudentExaminationHistory:
    total: int = 0
    passed: int = 0
    failed: int = 0
    retakes: int = 0
    average_score: Decimal = Decimal("0")
    certificates_earned: int = 0
    recent: tuple[RecentExamination, ...] = ()
    performance_trend: str = "Insufficient Data"


def exam_statistics(exam: Examination) -> ExamStatistics:
    registrations = exam.student_examinations or []
    with_result = [se for se in registrations if se.result]
    scores = [se.score for se in registrations if se.score is not None]

    return ExamStatistics(
        examination_id=exam.examination_id,
        exam_code=exam.exam_code,
        exam_name=exam.exam_name,
        exam_date=exam.exam_date,
        status=exam.status,
        max_capacity=exam.max_capacity,
        enrolled=exam.enrolled_students_count,
        attended=exam.attendance_count,
        completed=len(with_result),
        passed=sum(1 for se in with_result if se.is_passed),
        failed=sum(1 for se in with_result if se.is_failed),
        pass_rate=exam.pass_rate,
        average_score=exam.average_score,
        highest_score=max(scores) if scores else None,
        lowest_score=min(scores) if scores else None,
        duration_minutes=exam.duration_minutes,
        location=exam.location,
    )


def _pct(se: StudentExamination) -> Decimal:
    return se.percentage if se.percentage is not None else Decimal("0")


def examination_results_stats(registrations: Iterable[StudentExamination]) -> ExaminationResultsStats:
    items = list(registrations)
    if not items:
        return ExaminationResultsStats()

    attended = [se for se in items if se.was_attended]
    completed = [se for se in items if se.is_completed]
    passed = sum(1 for se in completed if se.is_passed)
    percentages = [_pct(se) for se in completed]
    graded = [se.percentage for se in completed if se.percentage is not None]

    return ExaminationResultsStats(
        total=len(items),
        attended=len(attended),
        completed=len(completed),
        attendance_rate=percent(len(attended), len(items)),
        passed=passed,
        failed=sum(1 for se in completed if se.is_failed),
        need_retake=sum(1 for se in completed if se.needs_retake),
        pass_rate=percent(passed, len(completed)),
        average_percentage=round2(average(percentages)) if percentages else None,
        highest_percentage=max(percentages) if percentages else None,
        lowest_percentage=min(percentages) if percentages else None,
        median_percentage=round2(median(graded)) if graded else None,
        grade_distribution=dict(Counter(se.letter_grade or "Ungraded" for se in completed)),
        performance_levels=dict(Counter(se.performance_level for se in completed)),
    )


def _trend(registrations: list[StudentExamination]) -> str:
    """Average of the last three completed exams against the ones before them."""
    completed = sorted(
        (se for se in registrations if se.is_completed),
        key=lambda se: se.exam_date or date.min,
    )
    if len(completed) <= _TREND_WINDOW:
        return "Insufficient Data"
    recent = average(_pct(se) for se in completed[-_TREND_WINDOW:])
    earlier = average(_pct(se) for se in completed[:-_TREND_WINDOW])
    if recent > earlier + _TREND_MARGIN:
        return "Improving"
    if recent < earlier - _TREND_MARGIN:
        return "Declining"
    return "Stable"


def student_examination_history(registrations: Iterable[StudentExamination]) -> StudentExaminationHistory:
    exams = sorted(registrations, key=lambda se: se.exam_date or date.min, reverse=True)
    if not exams:
        return StudentExaminationHistory()

    completed_avg = average(_pct(se) for se in exams if se.is_completed)
    return StudentExaminationHistory(
        total=len(exams),
        passed=sum(1 for se in exams if se.is_passed),
        failed=sum(1 for se in exams if ExamResult.parse(se.result) is ExamResult.FAIL),
        retakes=sum(1 for se in exams if se.needs_retake),
        average_score=round2(completed_avg) if completed_avg is not None else Decimal("0"),
        certificates_earned=sum(1 for se in exams if se.certificate is not None),
        recent=tuple(
            RecentExamination(
                exam_name=se.examination.exam_name if se.examination else None,
                exam_date=se.exam_date,
                letter_grade=se.letter_grade,
                result=se.result,
                percentage=se.percentage,
            )
            for se in exams[:5]
        ),
        performance_trend=_trend(exams),
    )
