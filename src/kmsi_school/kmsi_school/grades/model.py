from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from ..common import datetime_utils
from ..common.datetime_utils import plural
from ..common.validators import to_decimal
from ..core.constants import PROMOTION_MIN_COMPLETION
from ..core.enums import GradeHistoryStatus
from ..core.exceptions import ValidationError
from ..students.model import Student


@dataclass(frozen=True)
class Grade:
    """Course level. ``duration`` is the nominal length in weeks."""

    grade_id: int
    company_id: int
    grade_code: str
    grade_name: str
    duration: Optional[int] = None
    sort_order: Optional[int] = None
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return f"{self.grade_code} - {self.grade_name}"

    @property
    def duration_display(self) -> str:
        if self.duration is None:
            return "Not specified"
        weeks = self.duration
        if weeks < 4:
            return plural(weeks, "week")
        months, rest = divmod(weeks, 4)
        out = plural(months, "month")
        if rest:
            out += f" {plural(rest, 'week')}"
        return out


_PROGRESS_BUCKETS = (
    (Decimal("100"), "Completed"),
    (Decimal("90"), "Nearly Complete"),
    (Decimal("75"), "Advanced"),
    (Decimal("50"), "Halfway"),
    (Decimal("25"), "Beginning"),
)

_MILESTONES = (
    (Decimal("25"), "25% Complete"),
    (Decimal("50"), "Halfway Point"),
    (Decimal("75"), "75% Complete"),
    (Decimal("90"), "Nearly Complete"),
    (Decimal("100"), "Grade Completed"),
)


@dataclass
class StudentGradeHistory:
    """A student's enrolment in one grade.

    At most one history per student carries ``is_current_grade``; use
    ``set_as_current`` to move the flag.
    """

    student_id: int
    grade_id: int
    start_date: date
    end_date: Optional[date] = None
    status: str = GradeHistoryStatus.ACTIVE.value
    completion_percentage: Decimal = Decimal("0")
    is_current_grade: bool = False
    notes: Optional[str] = None
    student_grade_history_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_date: Optional[datetime] = None
    updated_by: Optional[int] = None

    student: Optional[Student] = field(default=None, repr=False, compare=False)
    grade: Optional[Grade] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.completion_percentage = to_decimal(self.completion_percentage, default=Decimal("0"))

    def _is(self, status: GradeHistoryStatus) -> bool:
        return GradeHistoryStatus.parse(self.status) is status

    # ---- durations ----------------------------------------------------

    @property
    def duration_days(self) -> int:
        end = self.end_date or datetime_utils.today()
        return (end - self.start_date).days

    @property
    def duration_weeks(self) -> int:
        return round(self.duration_days / 7)

    @property
    def duration_months(self) -> int:
        return round(self.duration_days / 30)

    @property
    def duration_display(self) -> str:
        days = self.duration_days
        if days < 7:
            return plural(days, "day")
        if days < 60:
            return plural(self.duration_weeks, "week")
        return plural(self.duration_months, "month")

    @property
    def period_display(self) -> str:
        start = self.start_date.strftime("%b %Y")
        if self.end_date:
            return f"{start} - {self.end_date.strftime('%b %Y')}"
        return f"{start} - Ongoing"

    @property
    def academic_year(self) -> str:
        # academic year starts in September
        year = self.start_date.year if self.start_date.month >= 9 else self.start_date.year - 1
        return f"{year}/{year + 1}"

    # ---- progress -----------------------------------------------------

    @property
    def display_name(self) -> str:
        student = self.student.full_name if self.student else f"Student ID: {self.student_id}"
        grade = self.grade.grade_name if self.grade else f"Grade ID: {self.grade_id}"
        return f"{student} - {grade} ({self.status})"

    @property
    def progress_status(self) -> str:
        pct = self.completion_percentage
        for threshold, label in _PROGRESS_BUCKETS:
            if pct >= threshold:
                return label
        return "Just Started" if pct > 0 else "Not Started"

    @property
    def is_active(self) -> bool:
        return self._is(GradeHistoryStatus.ACTIVE) and self.is_current_grade and self.end_date is None

    @property
    def is_completed(self) -> bool:
        return self._is(GradeHistoryStatus.COMPLETED) and self.end_date is not None

    @property
    def is_extended(self) -> bool:
        """Running more than 50% longer than the grade's nominal duration."""
        if not self.grade or self.grade.duration is None:
            return False
        return self.duration_days > self.grade.duration * 7 * 1.5

    @property
    def expected_completion_date(self) -> Optional[date]:
        if not self.grade or self.grade.duration is None:
            return None
        return self.start_date + timedelta(days=self.grade.duration * 7)

    @property
    def days_remaining(self) -> Optional[int]:
        expected = self.expected_completion_date
        if expected is None or self.is_completed:
            return None
        return max(0, (expected - datetime_utils.today()).days)

    @property
    def progress_velocity(self) -> Decimal:
        """Completion points gained per week."""
        weeks = self.duration_weeks
        if weeks <= 0:
            return Decimal("0")
        return self.completion_percentage / weeks

    @property
    def estimated_completion_date(self) -> Optional[date]:
        velocity = self.progress_velocity
        if self.is_completed or velocity <= 0:
            return None
        weeks_left = (Decimal("100") - self.completion_percentage) / velocity
        return datetime_utils.today() + timedelta(days=float(weeks_left * 7))

    @property
    def performance_indicator(self) -> str:
        if not self.grade or not self.grade.duration:
            return "Unknown"
        expected = Decimal(self.duration_weeks) / Decimal(self.grade.duration) * 100
        ratio = self.completion_percentage / expected if expected > 0 else Decimal("0")
        if ratio >= Decimal("1.2"):
            return "Excellent"
        if ratio >= Decimal("1.0"):
            return "On Track"
        if ratio >= Decimal("0.8"):
            return "Slightly Behind"
        if ratio >= Decimal("0.6"):
            return "Behind Schedule"
        return "Significantly Behind"

    def expected_progress(self) -> Decimal:
        """Percentage the student should have reached by now, capped at 100."""
        if not self.grade or not self.grade.duration:
            return Decimal("0")
        ratio = min(1.0, self.duration_days / (self.grade.duration * 7))
        return Decimal(str(ratio)) * 100

    def is_ready_for_promotion(self, minimum_completion=PROMOTION_MIN_COMPLETION) -> bool:
        return self._is(GradeHistoryStatus.ACTIVE) and self.completion_percentage >= Decimal(
            str(minimum_completion)
        )

    def milestones_achieved(self) -> list[str]:
        return [label for threshold, label in _MILESTONES if self.completion_percentage >= threshold]

    def similar_patterns(
        self, all_histories: Iterable["StudentGradeHistory"], similarity_threshold=10
    ) -> list["StudentGradeHistory"]:
        """Same grade and status, completion within the threshold, closest first."""
        threshold = Decimal(str(similarity_threshold))

        def distance(h: StudentGradeHistory) -> Decimal:
            return abs(h.completion_percentage - self.completion_percentage)

        matches = [
            h
            for h in all_histories
            if h is not self
            and (h.student_grade_history_id is None or h.student_grade_history_id != self.student_grade_history_id)
            and h.grade_id == self.grade_id
            and GradeHistoryStatus.parse(h.status) is GradeHistoryStatus.parse(self.status)
            and distance(h) <= threshold
        ]
        return sorted(matches, key=distance)

    # ---- mutations ----------------------------------------------------

    def _touch(self, actor: Optional[int]) -> None:
        self.updated_date = datetime_utils.now_local()
        if actor is not None:
            self.updated_by = actor

    def mark_as_completed(self, completion_date: Optional[date] = None, completed_by: Optional[int] = None) -> None:
        self.status = GradeHistoryStatus.COMPLETED.value
        self.end_date = completion_date or datetime_utils.today()
        self.completion_percentage = Decimal("100")
        self.is_current_grade = False
        self._touch(completed_by)

    def extend_grade(self, extended_by: int, reason: Optional[str] = None) -> None:
        self.status = GradeHistoryStatus.EXTENDED.value
        if reason:
            self.notes = f"{self.notes}; Extended: {reason}" if self.notes else reason
        self._touch(extended_by)

    def update_completion(self, percentage, updated_by: Optional[int] = None) -> None:
        """Set completion; reaching 100% on an Active history completes it today.

        Raises ValidationError for values outside 0..100.
        """
        try:
            pct = to_decimal(percentage)
        except InvalidOperation:
            pct = None
        if pct is None or not pct.is_finite() or pct < 0 or pct > 100:
            raise ValidationError("Completion percentage must be between 0 and 100")
        self.completion_percentage = pct
        if pct >= 100 and self._is(GradeHistoryStatus.ACTIVE):
            self.mark_as_completed(completed_by=updated_by)
        else:
            self._touch(updated_by)

    def set_as_current(self, student_histories: Iterable["StudentGradeHistory"]) -> None:
        """Make this the student's only current grade."""
        for history in student_histories:
            if history.student_id == self.student_id:
                history.is_current_grade = False
        self.is_current_grade = True
        self.status = GradeHistoryStatus.ACTIVE.value
        self.end_date = None

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.end_date is not None and self.end_date <= self.start_date:
            errors.append("End date must be after start date")
        if self._is(GradeHistoryStatus.COMPLETED) and self.end_date is None:
            errors.append("Completed grade must have an end date")
        if self._is(GradeHistoryStatus.ACTIVE) and self.end_date is not None:
            errors.append("Active grade should not have an end date")
        if self._is(GradeHistoryStatus.COMPLETED) and self.completion_percentage < 100:
            errors.append("Completed grade must have 100% completion")
        if self.is_current_grade and not self._is(GradeHistoryStatus.ACTIVE):
            errors.append("Current grade must have Active status")
        if self.start_date > datetime_utils.today() + timedelta(days=1):
            errors.append("Start date cannot be in the future")
        return errors
