from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional, Sequence

from ..audit.service import Actor, AuditTrail
from ..audit.snapshots import snapshot
from ..common import datetime_utils
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LATE_GRACE_MINUTES
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..teachers.repository import TeacherRepository
from ..validation import ensure_valid
from .factory import ArrivalStrategyFactory
from .model import Attendance
from .reports import AttendanceSummary, summarize_attendance
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

TABLE = "Attendances"


class AttendanceService:
    """Use cases around lesson attendance."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        teachers: TeacherRepository,
        audit: AuditTrail,
        *,
        strategy_factory: ArrivalStrategyFactory | None = None,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    ):
        self._attendance = attendance
        self._teachers = teachers
        self._audit = audit
        self._factory = strategy_factory or ArrivalStrategyFactory()
        self._grace_minutes = int(grace_minutes)

    def _get(self, attendance_id: int) -> Attendance:
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError(f"Attendance {attendance_id} not found")
        return record

    def record_arrival(
        self,
        actor: Actor,
        *,
        class_schedule_id: int,
        student_id: int,
        arrived_at: time,
        ended_at: time,
        lesson_date: Optional[date] = None,
    ) -> Attendance:
        """Create the attendance for a lesson; Present or Late is decided from the class start."""
        schedule = self._teachers.get_class_schedule(class_schedule_id)
        if not schedule:
            raise NotFoundError(f"Class schedule {class_schedule_id} not found")
        if schedule.student_id != student_id:
            raise ValidationError("Student is not booked on this class")

        if self._attendance.get_for_schedule_and_student(class_schedule_id, student_id):
            raise ValidationError("Attendance has already been recorded for this class")

        lesson_date = lesson_date or schedule.schedule_date
        strategy = self._factory.for_arrival(
            arrived_at=arrived_at,
            lesson_date=lesson_date,
            class_schedule=schedule,
            grace_minutes=self._grace_minutes,
        )
        decision = strategy.decide(
            arrived_at=arrived_at,
            lesson_date=lesson_date,
            class_schedule=schedule,
            grace_minutes=self._grace_minutes,
        )

        record = Attendance(
            class_schedule_id=class_schedule_id,
            student_id=student_id,
            teacher_id=schedule.teacher_id,
            attendance_date=lesson_date,
            status=decision.status.value,
            teacher_notes=decision.note,
            created_by=actor.user_id,
            created_date=datetime_utils.now_local(),
        )
        record.mark_present(arrived_at, ended_at, is_late=decision.status is AttendanceStatus.LATE)
        ensure_valid(record)

        record.attendance_id = self._attendance.add(record)
        self._audit.record_insert(actor, table_name=TABLE, record_id=record.attendance_id, new_values=record)
        logger.info("attendance %s recorded as %s", record.attendance_id, record.status)
        return record

    def mark_absent(
        self,
        actor: Actor,
        *,
        class_schedule_id: int,
        student_id: int,
        is_excused: bool = False,
    ) -> Attendance:
        """Record (or overwrite) an absence for a booked lesson."""
        existing = self._attendance.get_for_schedule_and_student(class_schedule_id, student_id)
        if existing:
            before = snapshot(existing)
            existing.mark_absent(is_excused=is_excused)
            existing.updated_by = actor.user_id
            existing.updated_date = datetime_utils.now_local()
            ensure_valid(existing)
            self._attendance.update(existing)
            self._audit.record_update(
                actor, table_name=TABLE, record_id=existing.attendance_id, old_values=before, new_values=existing
            )
            logger.info("attendance %s changed to %s", existing.attendance_id, existing.status)
            return existing

        schedule = self._teachers.get_class_schedule(class_schedule_id)
        if not schedule:
            raise NotFoundError(f"Class schedule {class_schedule_id} not found")

        record = Attendance(
            class_schedule_id=class_schedule_id,
            student_id=student_id,
            teacher_id=schedule.teacher_id,
            attendance_date=schedule.schedule_date,
            status=AttendanceStatus.ABSENT.value,
            created_by=actor.user_id,
            created_date=datetime_utils.now_local(),
        )
        record.mark_absent(is_excused=is_excused)
        ensure_valid(record)
        record.attendance_id = self._attendance.add(record)
        self._audit.record_insert(actor, table_name=TABLE, record_id=record.attendance_id, new_values=record)
        logger.info("attendance %s recorded as %s", record.attendance_id, record.status)
        return record

    def add_lesson_details(
        self,
        actor: Actor,
        attendance_id: int,
        *,
        topic: str,
        progress: Optional[str] = None,
        teacher_notes: Optional[str] = None,
        performance_score: Optional[int] = None,
        homework: Optional[str] = None,
        next_prep: Optional[str] = None,
    ) -> Attendance:
        record = self._get(attendance_id)
        before = snapshot(record)

        record.add_lesson_details(topic, progress, teacher_notes, performance_score)
        if homework is not None or next_prep is not None:
            record.add_homework_and_prep(homework, next_prep)
        record.updated_by = actor.user_id
        record.updated_date = datetime_utils.now_local()
        ensure_valid(record)

        self._attendance.update(record)
        self._audit.record_update(actor, table_name=TABLE, record_id=attendance_id, old_values=before, new_values=record)
        logger.info("lesson details saved for attendance %s", attendance_id)
        return record

    def teacher_summary(self, teacher_id: int, *, start_date: date, end_date: date) -> AttendanceSummary:
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")
        return summarize_attendance(
            self._attendance.list_for_teacher(teacher_id, start_date=start_date, end_date=end_date)
        )

    def student_history(self, student_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[Attendance]:
        return self._attendance.list_for_student(student_id, limit=limit)
