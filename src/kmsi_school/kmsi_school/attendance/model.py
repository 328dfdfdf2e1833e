from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from ..common import datetime_utils
from ..common.datetime_utils import format_minutes, minutes_between
from ..core.constants import MAX_LESSON_MINUTES, MIN_LESSON_MINUTES
from ..core.enums import AttendanceStatus
from ..students.model import Student

if TYPE_CHECKING:
    from ..teachers.model import ClassSchedule

_POINTS = {
    AttendanceStatus.PRESENT: Decimal("1.0"),
    AttendanceStatus.LATE: Decimal("0.5"),
    AttendanceStatus.EXCUSED: Decimal("0.25"),
    AttendanceStatus.ABSENT: Decimal("0.0"),
}

_PERFORMANCE_GRADES = (
    (9, "Excellent"),
    (8, "Very Good"),
    (7, "Good"),
    (6, "Satisfactory"),
    (5, "Needs Improvement"),
)

_LESSON_CHECKPOINTS = 5


def _filled(value: Optional[str]) -> bool:
    return bool(value and value.strip())


@dataclass
class Attendance:
    """One student's attendance at one scheduled lesson."""

    class_schedule_id: int
    student_id: int
    teacher_id: int
    attendance_date: date
    status: str
    actual_start_time: Optional[time] = None
    actual_end_time: Optional[time] = None
    lesson_topic: Optional[str] = None
    student_progress: Optional[str] = None
    teacher_notes: Optional[str] = None
    homework_assigned: Optional[str] = None
    next_lesson_prep: Optional[str] = None
    student_performance_score: Optional[int] = None
    attendance_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_date: Optional[datetime] = None
    updated_by: Optional[int] = None

    student: Optional[Student] = field(default=None, repr=False, compare=False)
    class_schedule: Optional["ClassSchedule"] = field(default=None, repr=False, compare=False)

    @property
    def status_enum(self) -> Optional[AttendanceStatus]:
        return AttendanceStatus.parse(self.status)

    @property
    def actual_duration(self) -> Optional[int]:
        """Minutes between actual start and end, None unless both are recorded."""
        return minutes_between(self.actual_start_time, self.actual_end_time)

    @property
    def formatted_duration(self) -> str:
        minutes = self.actual_duration
        if minutes is None:
            return "Not recorded"
        return format_minutes(minutes)

    @property
    def was_present(self) -> bool:
        return self.status_enum is AttendanceStatus.PRESENT

    @property
    def was_late(self) -> bool:
        return self.status_enum is AttendanceStatus.LATE

    @property
    def is_excused_absence(self) -> bool:
        return self.status_enum is AttendanceStatus.EXCUSED

    @property
    def is_unexcused_absence(self) -> bool:
        return self.status_enum is AttendanceStatus.ABSENT

    @property
    def attended(self) -> bool:
        return self.was_present or self.was_late

    @property
    def performance_grade(self) -> str:
        score = self.student_performance_score
        if score is None:
            return "Not Graded"
        for threshold, label in _PERFORMANCE_GRADES:
            if score >= threshold:
                return label
        return "Poor"

    @property
    def was_class_conducted(self) -> bool:
        return self.actual_start_time is not None and self.actual_end_time is not None

    @property
    def has_homework_assigned(self) -> bool:
        return _filled(self.homework_assigned)

    @property
    def has_next_lesson_prep(self) -> bool:
        return _filled(self.next_lesson_prep)

    @property
    def lesson_completion_percentage(self) -> Decimal:
        """Share (0..1) of the lesson record checkpoints filled in."""
        done = sum(
            [
                self.was_class_conducted,
                _filled(self.lesson_topic),
                _filled(self.student_progress),
                _filled(self.teacher_notes),
                self.student_performance_score is not None,
            ]
        )
        return Decimal(done) / _LESSON_CHECKPOINTS

    @property
    def display_name(self) -> str:
        who = self.student.full_name if self.student else "Unknown Student"
        return f"{who} - {self.attendance_date:%b %d, %Y} ({self.status})"

    @property
    def summary(self) -> str:
        text = f"{self.attendance_date:%b %d}: {self.status}"
        if self.student_performance_score is not None:
            text += f" - Score: {self.student_performance_score}/10"
        return text

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.status_enum is None:
            errors.append(f"Status must be one of: {AttendanceStatus.choices_text()}")

        if self.was_class_conducted and self.actual_end_time <= self.actual_start_time:
            errors.append("End time must be after start time")

        if self.attendance_date > datetime_utils.today():
            errors.append("Attendance date cannot be in the future")

        score = self.student_performance_score
        if score is not None and not 1 <= score <= 10:
            errors.append("Performance score must be between 1 and 10")

        if self.attended and not self.was_class_conducted:
            errors.append("Actual start and end times are required when student is present or late")

        duration = self.actual_duration
        if duration is not None:
            if duration < MIN_LESSON_MINUTES:
                errors.append("Class duration seems too short (less than 5 minutes)")
            elif duration > MAX_LESSON_MINUTES:
                errors.append("Class duration seems too long (more than 8 hours)")

        if score is not None and not self.attended:
            errors.append("Performance score should only be given when student is present or late")
        return errors

    def is_complete(self) -> bool:
        """Absent needs nothing more; otherwise times, topic and notes are required."""
        if self.is_unexcused_absence:
            return True
        return self.was_class_conducted and _filled(self.lesson_topic) and _filled(self.teacher_notes)

    def mark_present(self, start_time: time, end_time: time, *, is_late: bool = False) -> None:
        self.status = (AttendanceStatus.LATE if is_late else AttendanceStatus.PRESENT).value
        self.actual_start_time = start_time
        self.actual_end_time = end_time

    def mark_absent(self, *, is_excused: bool = False) -> None:
        self.status = (AttendanceStatus.EXCUSED if is_excused else AttendanceStatus.ABSENT).value
        self.actual_start_time = None
        self.actual_end_time = None
        self.student_performance_score = None

    def add_lesson_details(
        self,
        topic: str,
        progress: Optional[str] = None,
        teacher_notes: Optional[str] = None,
        performance_score: Optional[int] = None,
    ) -> None:
        """Out-of-range scores are ignored and leave the previous score."""
        self.lesson_topic = topic
        self.student_progress = progress
        self.teacher_notes = teacher_notes
        if performance_score is not None and 1 <= performance_score <= 10:
            self.student_performance_score = performance_score

    def add_homework_and_prep(self, homework: Optional[str] = None, next_prep: Optional[str] = None) -> None:
        self.homework_assigned = homework
        self.next_lesson_prep = next_prep

    def attendance_points(self) -> Decimal:
        return _POINTS.get(self.status_enum, Decimal("0.0"))

    def attendance_description(self) -> str:
        points = self.attendance_points()
        if points == 1:
            return "Full Attendance"
        if points >= Decimal("0.5"):
            return "Partial Attendance"
        if points >= Decimal("0.25"):
            return "Excused Absence"
        return "Unexcused Absence"
