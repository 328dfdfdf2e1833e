from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, Optional

from ..certificates.model import Certificate
from ..common import datetime_utils
from ..common.datetime_utils import minutes_between, plural
from ..common.numbering import next_sequence_number
from ..common.stats import average, percent, round2
from ..common.validators import to_decimal
from ..core.constants import (
    DEFAULT_EXAM_CAPACITY,
    DEFAULT_ISSUER,
    DEFAULT_MAX_SCORE,
    MAX_EXAM_MINUTES,
    MAX_REASONABLE_EXAM_CAPACITY,
    MIN_EXAM_MINUTES,
    PASS_PERCENTAGE,
    POINTS_TO_PASS_RATIO,
    RETAKE_PERCENTAGE,
)
from ..core.enums import ExamAttendanceStatus, ExaminationStatus, ExamResult
from ..core.exceptions import InvalidOperationError
from ..core.results import OperationResult
from ..grades.model import Grade
from ..organization.model import Company, Site
from ..students.model import Student

_TRANSITIONS = {
    ExaminationStatus.SCHEDULED: (ExaminationStatus.IN_PROGRESS, ExaminationStatus.CANCELLED),
    ExaminationStatus.IN_PROGRESS: (ExaminationStatus.COMPLETED, ExaminationStatus.CANCELLED),
    ExaminationStatus.COMPLETED: (),
    ExaminationStatus.CANCELLED: (ExaminationStatus.SCHEDULED,),
}

_LETTER_GRADES = (
    (Decimal("97"), "A+"),
    (Decimal("93"), "A"),
    (Decimal("90"), "A-"),
    (Decimal("87"), "B+"),
    (Decimal("83"), "B"),
    (Decimal("80"), "B-"),
    (Decimal("77"), "C+"),
    (Decimal("73"), "C"),
    (Decimal("70"), "C-"),
    (Decimal("67"), "D+"),
    (Decimal("65"), "D"),
)

_PERFORMANCE_LEVELS = (
    (Decimal("95"), "Outstanding"),
    (Decimal("85"), "Excellent"),
    (Decimal("75"), "Good"),
    (Decimal("65"), "Satisfactory"),
    (Decimal("50"), "Needs Improvement"),
)


def letter_grade_for(percentage: Decimal) -> str:
    for threshold, letter in _LETTER_GRADES:
        if percentage >= threshold:
            return letter
    return "F"


def result_for(percentage: Decimal) -> ExamResult:
    if percentage >= PASS_PERCENTAGE:
        return ExamResult.PASS
    if percentage >= RETAKE_PERCENTAGE:
        return ExamResult.NEED_RETAKE
    return ExamResult.FAIL


@dataclass
class StudentExamination:
    """A student's registration for, attendance at and result of one exam."""

    examination_id: int
    student_id: int
    registration_date: datetime = field(default_factory=lambda: datetime_utils.now_local())
    attendance_status: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    actual_duration: Optional[int] = None
    score: Optional[Decimal] = None
    max_score: Decimal = DEFAULT_MAX_SCORE
    percentage: Optional[Decimal] = None
    letter_grade: Optional[str] = None
    result: Optional[str] = None
    teacher_notes: Optional[str] = None
    student_examination_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_date: Optional[datetime] = None
    updated_by: Optional[int] = None

    examination: Optional["Examination"] = field(default=None, repr=False, compare=False)
    student: Optional[Student] = field(default=None, repr=False, compare=False)
    certificate: Optional[Certificate] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.score = to_decimal(self.score)
        self.max_score = to_decimal(self.max_score, default=DEFAULT_MAX_SCORE)
        self.percentage = to_decimal(self.percentage)

    @property
    def display_name(self) -> str:
        who = self.student.full_name if self.student else "Unknown Student"
        exam = self.examination.exam_name if self.examination else "Unknown Exam"
        return f"{who} - {exam}"

    @property
    def short_display(self) -> str:
        code = self.examination.exam_code if self.examination else "?"
        return f"{code} - {self.letter_grade or 'Pending'} ({self.result or 'Pending'})"

    @property
    def attendance_status_display(self) -> str:
        return self.attendance_status or "Not Recorded"

    @property
    def exam_date(self) -> Optional[date]:
        return self.examination.exam_date if self.examination else None

    @property
    def exam_time_display(self) -> str:
        if self.start_time and self.end_time:
            return f"{self.start_time:%H:%M} - {self.end_time:%H:%M}"
        if self.examination:
            return f"{self.examination.start_time:%H:%M} - {self.examination.end_time:%H:%M}"
        return "Not Specified"

    @property
    def duration_display(self) -> str:
        if self.actual_duration is None:
            return "Not Recorded"
        hours, minutes = divmod(self.actual_duration, 60)
        return f"{hours}h {minutes}m" if hours else f"{minutes}m"

    @property
    def score_display(self) -> str:
        if self.score is None:
            return "Not Graded"
        return f"{self.score:.1f}/{self.max_score:.0f}"

    @property
    def performance_level(self) -> str:
        if self.percentage is None:
            return "Not Graded"
        for threshold, label in _PERFORMANCE_LEVELS:
            if self.percentage >= threshold:
                return label
        return "Poor"

    @property
    def was_attended(self) -> bool:
        return ExamAttendanceStatus.parse(self.attendance_status) in (
            ExamAttendanceStatus.PRESENT,
            ExamAttendanceStatus.LATE,
        )

    @property
    def is_completed(self) -> bool:
        return self.was_attended and self.score is not None

    @property
    def is_passed(self) -> bool:
        return ExamResult.parse(self.result) is ExamResult.PASS

    @property
    def needs_retake(self) -> bool:
        return ExamResult.parse(self.result) is ExamResult.NEED_RETAKE

    @property
    def is_failed(self) -> bool:
        return ExamResult.parse(self.result) is ExamResult.FAIL

    @property
    def is_pending(self) -> bool:
        return not self.result or (self.score is None and self.was_attended)

    @property
    def time_reference(self) -> str:
        exam_date = self.exam_date
        if exam_date is None:
            return "Unknown Date"
        days = (exam_date - datetime_utils.today()).days
        if days > 0:
            return f"In {plural(days, 'day')}"
        if days == 0:
            return "Today"
        if days > -7:
            return f"{plural(-days, 'day')} ago"
        if days > -30:
            return f"{plural(-days // 7, 'week')} ago"
        return f"{exam_date:%b %Y}"

    @property
    def points_needed_to_pass(self) -> Optional[Decimal]:
        if self.score is None or self.is_passed:
            return None
        return max(Decimal("0"), self.max_score * POINTS_TO_PASS_RATIO - self.score)

    @property
    def certificate_status(self) -> str:
        if self.certificate is not None:
            return "Issued"
        return "Eligible" if self.is_passed else "Not Eligible"

    # ---- mutations ----------------------------------------------------

    def _touch(self, user_id: Optional[int]) -> None:
        if user_id is not None:
            self.updated_by = user_id
        self.updated_date = datetime_utils.now_local()

    def record_attendance(
        self, status: str, start_time: Optional[time] = None, *, recorded_by: Optional[int] = None
    ) -> None:
        self.attendance_status = status
        self.start_time = start_time
        self._touch(recorded_by)

    def complete_examination(self, end_time: time, *, completed_by: Optional[int] = None) -> None:
        self.end_time = end_time
        if self.start_time is not None:
            self.actual_duration = minutes_between(self.start_time, end_time)
        self._touch(completed_by)

    def grade_examination(
        self, score: Decimal, *, graded_by: Optional[int] = None, notes: Optional[str] = None
    ) -> None:
        """Store the score and derive percentage, letter grade and result."""
        self.score = to_decimal(score)
        self.teacher_notes = notes
        self.percentage = percent(self.score, self.max_score)
        self.letter_grade = letter_grade_for(self.percentage)
        self.result = result_for(self.percentage).value
        self._touch(graded_by)

    def is_eligible_for_certificate(self) -> bool:
        return self.is_passed and self.was_attended and self.certificate is None

    def issue_certificate(self, certificate_number: str, *, issued_by: int) -> Certificate:
        """Build the certificate for a passed exam; raises when not eligible."""
        if not self.is_eligible_for_certificate():
            raise InvalidOperationError("Student is not eligible for certificate")

        exam = self.examination
        issuer = exam.company.company_name if exam and exam.company else DEFAULT_ISSUER
        title = f"{exam.exam_name if exam else 'Examination'} Certificate"
        return Certificate.create_certificate(
            student_id=self.student_id,
            student_examination_id=self.student_examination_id,
            grade_id=exam.grade_id if exam else 0,
            certificate_number=certificate_number,
            certificate_title=title,
            issued_by=issuer,
            created_by=issued_by,
        )

    def schedule_retake(self, new_examination_id: int, *, scheduled_by: int) -> "StudentExamination":
        if not (self.is_failed or self.needs_retake):
            raise InvalidOperationError("Only failed examinations can be retaken")
        return StudentExamination(
            examination_id=new_examination_id,
            student_id=self.student_id,
            max_score=self.max_score,
            created_by=scheduled_by,
        )

    def validate(self, *, require_score: bool = True) -> list[str]:
        """Rule violations; ``require_score=False`` allows a Present student not yet graded."""
        errors: list[str] = []
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            errors.append("End time must be after start time")

        if self.score is not None and self.score > self.max_score:
            errors.append(f"Score ({self.score}) cannot exceed maximum score ({self.max_score})")

        attendance = ExamAttendanceStatus.parse(self.attendance_status)
        if require_score and attendance is ExamAttendanceStatus.PRESENT and self.score is None:
            errors.append("Present students should have scores recorded")
        if attendance is ExamAttendanceStatus.ABSENT and self.score is not None:
            errors.append("Absent students should not have scores")

        if self.is_passed and self.certificate is None and not self.is_eligible_for_certificate():
            errors.append("Passed examinations should be eligible for certificates")
        return errors


@dataclass
class Examination:
    """An exam session for one grade at one site."""

    company_id: int
    site_id: int
    grade_id: int
    examiner_teacher_id: int
    exam_code: str
    exam_name: str
    exam_date: date
    start_time: time
    end_time: time
    location: Optional[str] = None
    max_capacity: int = DEFAULT_EXAM_CAPACITY
    status: str = ExaminationStatus.SCHEDULED.value
    description: Optional[str] = None
    examination_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_date: Optional[datetime] = None
    updated_by: Optional[int] = None

    company: Optional[Company] = field(default=None, repr=False, compare=False)
    site: Optional[Site] = field(default=None, repr=False, compare=False)
    grade: Optional[Grade] = field(default=None, repr=False, compare=False)
    student_examinations: Optional[list[StudentExamination]] = field(default=None, repr=False, compare=False)

    @property
    def status_enum(self) -> Optional[ExaminationStatus]:
        return ExaminationStatus.parse(self.status)

    @property
    def display_name(self) -> str:
        return f"{self.exam_name} - {self.exam_date:%d/%m/%Y}"

    @property
    def schedule_display(self) -> str:
        return f"{self.exam_date:%d/%m/%Y} at {self.start_time:%H:%M} - {self.end_time:%H:%M}"

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start_time, self.end_time)

    @property
    def enrolled_students_count(self) -> int:
        return len(self.student_examinations or [])

    @property
    def available_capacity(self) -> int:
        return self.max_capacity - self.enrolled_students_count

    @property
    def is_full(self) -> bool:
        return self.enrolled_students_count >= self.max_capacity

    @property
    def is_open_for_registration(self) -> bool:
        return (
            self.status_enum is ExaminationStatus.SCHEDULED
            and not self.is_full
            and self.exam_date > datetime_utils.today()
        )

    @property
    def is_active(self) -> bool:
        return self.status_enum in (ExaminationStatus.SCHEDULED, ExaminationStatus.IN_PROGRESS)

    @property
    def is_completed(self) -> bool:
        return self.status_enum is ExaminationStatus.COMPLETED

    @property
    def days_until_exam(self) -> int:
        return (self.exam_date - datetime_utils.today()).days

    @property
    def exam_status_indicator(self) -> str:
        if self.status_enum is ExaminationStatus.CANCELLED:
            return "Cancelled"
        if self.status_enum is ExaminationStatus.COMPLETED:
            return "Completed"
        days = self.days_until_exam
        if days < 0:
            return "Overdue"
        if days == 0:
            return "Today"
        if days == 1:
            return "Tomorrow"
        if days <= 7:
            return "This Week"
        if days <= 30:
            return "This Month"
        return "Future"

    @property
    def attendance_count(self) -> int:
        return sum(
            1 for se in self.student_examinations or []
            if ExamAttendanceStatus.parse(se.attendance_status) is ExamAttendanceStatus.PRESENT
        )

    @property
    def pass_rate(self) -> Decimal:
        """Share of registrations with a result that passed, as a percentage."""
        with_result = [se for se in self.student_examinations or [] if se.result]
        return percent(sum(1 for se in with_result if se.is_passed), len(with_result))

    @property
    def average_score(self) -> Decimal:
        avg = average(se.score for se in self.student_examinations or [] if se.score is not None)
        return round2(avg) if avg is not None else Decimal("0")

    # ---- registration -------------------------------------------------

    def is_registered(self, student_id: int) -> bool:
        return any(se.student_id == student_id for se in self.student_examinations or [])

    def can_student_register(self, student_id: int) -> bool:
        return self.is_open_for_registration and not self.is_registered(student_id)

    def register_student(self, student_id: int, *, registered_by: Optional[int] = None) -> OperationResult:
        if not self.is_open_for_registration:
            return OperationResult.failure("Examination is not open for registration")
        if self.is_registered(student_id):
            return OperationResult.failure("Student is already registered for this examination")

        if self.student_examinations is None:
            self.student_examinations = []
        self.student_examinations.append(
            StudentExamination(
                examination_id=self.examination_id,
                student_id=student_id,
                created_by=registered_by,
                examination=self,
            )
        )
        return OperationResult.success()

    def get_eligible_students(self, students: Iterable[Student]) -> list[Student]:
        """Enrolled students of this grade that are not registered yet."""
        return [
            s for s in students
            if s.current_grade_id == self.grade_id and s.is_enrolled and not self.is_registered(s.student_id)
        ]

    # ---- state machine ------------------------------------------------

    def valid_status_transitions(self) -> list[str]:
        return [s.value for s in _TRANSITIONS.get(self.status_enum, ())]

    def update_status(self, new_status: str, *, updated_by: Optional[int] = None) -> OperationResult:
        target = ExaminationStatus.parse(new_status)
        if target is None or target.value not in self.valid_status_transitions():
            return OperationResult.failure(f"Cannot change examination status from {self.status} to {new_status}")
        self.status = target.value
        self.updated_date = datetime_utils.now_local()
        if updated_by is not None:
            self.updated_by = updated_by
        return OperationResult.success()

    # ---- rules --------------------------------------------------------

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.start_time >= self.end_time:
            errors.append("End time must be after start time")

        duration = self.duration_minutes
        if duration < MIN_EXAM_MINUTES:
            errors.append("Examination duration should be at least 15 minutes")
        if duration > MAX_EXAM_MINUTES:
            errors.append("Examination duration should not exceed 8 hours")

        if self.exam_date < datetime_utils.today() and self.status_enum is ExaminationStatus.SCHEDULED:
            errors.append("Scheduled examination date cannot be in the past")

        if self.max_capacity <= 0:
            errors.append("Maximum capacity must be greater than zero")
        if self.max_capacity > MAX_REASONABLE_EXAM_CAPACITY:
            errors.append("Maximum capacity seems excessive (>100), please verify")

        if self.enrolled_students_count > self.max_capacity:
            errors.append(
                f"Current enrollment ({self.enrolled_students_count}) exceeds maximum capacity ({self.max_capacity})"
            )
        return errors

    # ---- factories ----------------------------------------------------

    @staticmethod
    def generate_exam_code(site_code: str, grade_code: str, exam_date: date, existing_codes: Iterable[str]) -> str:
        """EX-{site}-{grade}-{yyMM}-{nn}."""
        prefix = f"EX-{site_code}-{grade_code}-{exam_date:%y%m}"
        return next_sequence_number(prefix, existing_codes, parts=5, width=2)

    @classmethod
    def create_examination(
        cls,
        *,
        company_id: int,
        site_id: int,
        grade_id: int,
        examiner_teacher_id: int,
        exam_code: str,
        exam_name: str,
        exam_date: date,
        start_time: time,
        end_time: time,
        location: Optional[str] = None,
        max_capacity: int = DEFAULT_EXAM_CAPACITY,
        created_by: Optional[int] = None,
    ) -> "Examination":
        return cls(
            company_id=company_id,
            site_id=site_id,
            grade_id=grade_id,
            examiner_teacher_id=examiner_teacher_id,
            exam_code=exam_code,
            exam_name=exam_name,
            exam_date=exam_date,
            start_time=start_time,
            end_time=end_time,
            location=location,
            max_capacity=max_capacity,
            status=ExaminationStatus.SCHEDULED.value,
            created_by=created_by,
            created_date=datetime_utils.now_local(),
            student_examinations=[],
        )
