from __future__ import annotations

import logging
from datetime import date, time
from decimal import Decimal
from typing import Optional, Sequence

from ..audit.service import Actor, AuditTrail
from ..audit.snapshots import snapshot
from ..certificates.model import Certificate
from ..certificates.service import CertificateService
from ..common.validators import require_min_length, require_non_empty, to_decimal
from ..core.constants import DEFAULT_EXAM_CAPACITY
from ..core.enums import ExamAttendanceStatus
from ..core.exceptions import InvalidOperationError, NotFoundError, ValidationError
from ..organization.repository import ReferenceRepository
from ..students.model import Student
from ..validation import ensure_valid
from .model import Examination, StudentExamination
from .reports import (
    ExaminationResultsStats,
    ExamStatistics,
    StudentExaminationHistory,
    exam_statistics,
    examination_results_stats,
    student_examination_history,
)
from .repository import ExaminationRepository

logger = logging.getLogger(__name__)

EXAM_TABLE = "Examinations"
REGISTRATION_TABLE = "StudentExaminations"


class ExaminationService:
    """Exam sessions, registrations and grading."""

    def __init__(
        self,
        examinations: ExaminationRepository,
        references: ReferenceRepository,
        certificates: CertificateService,
        audit: AuditTrail,
    ):
        self._examinations = examinations
        self._references = references
        self._certificates = certificates
        self._audit = audit

    # ---- loading ------------------------------------------------------

    def get(self, examination_id: int) -> Examination:
        exam = self._examinations.get_by_id(examination_id)
        if not exam:
            raise NotFoundError(f"Examination {examination_id} not found")
        exam.student_examinations = list(self._examinations.list_registrations(examination_id))
        for se in exam.student_examinations:
            se.examination = exam
        return exam

    def _registration(self, student_examination_id: int) -> StudentExamination:
        registration = self._examinations.get_registration(student_examination_id)
        if not registration:
            raise NotFoundError(f"Student examination {student_examination_id} not found")
        return registration

    # ---- sessions -----------------------------------------------------

    def create(
        self,
        actor: Actor,
        *,
        site_id: int,
        grade_id: int,
        examiner_teacher_id: int,
        exam_name: str,
        exam_date: date,
        start_time: time,
        end_time: time,
        location: Optional[str] = None,
        max_capacity: int = DEFAULT_EXAM_CAPACITY,
    ) -> Examination:
        exam_name = require_min_length(require_non_empty(exam_name, "Exam name"), "Exam name", 3)
        site = self._references.get_site(site_id)
        if not site:
            raise NotFoundError(f"Site {site_id} not found")
        grade = self._references.get_grade(grade_id)
        if not grade:
            raise NotFoundError(f"Grade {grade_id} not found")

        prefix = f"EX-{site.site_code}-{grade.grade_code}-{exam_date:%y%m}"
        code = Examination.generate_exam_code(
            site.site_code, grade.grade_code, exam_date, self._examinations.list_codes(prefix)
        )
        exam = Examination.create_examination(
            company_id=site.company_id,
            site_id=site_id,
            grade_id=grade_id,
            examiner_teacher_id=examiner_teacher_id,
            exam_code=code,
            exam_name=exam_name,
            exam_date=exam_date,
            start_time=start_time,
            end_time=end_time,
            location=location,
            max_capacity=max_capacity,
            created_by=actor.user_id,
        )
        exam.site, exam.grade = site, grade
        ensure_valid(exam)

        exam.examination_id = self._examinations.add(exam)
        self._audit.record_insert(actor, table_name=EXAM_TABLE, record_id=exam.examination_id, new_values=exam)
        logger.info("examination %s created for %s", exam.exam_code, exam.exam_date)
        return exam

    def change_status(self, actor: Actor, examination_id: int, new_status: str) -> Examination:
        exam = self.get(examination_id)
        before = snapshot(exam)

        result = exam.update_status(new_status, updated_by=actor.user_id)
        if not result:
            logger.warning("status change rejected for examination %s: %s", examination_id, result.reason)
            raise InvalidOperationError(result.reason)

        ensure_valid(exam)
        self._examinations.update(exam)
        self._audit.record_update(
            actor, table_name=EXAM_TABLE, record_id=examination_id, old_values=before, new_values=exam
        )
        logger.info("examination %s is now %s", exam.exam_code, exam.status)
        return exam

    # ---- registrations ------------------------------------------------

    def register_student(self, actor: Actor, examination_id: int, student_id: int) -> StudentExamination:
        exam = self.get(examination_id)
        if not self._references.get_student(student_id):
            raise NotFoundError(f"Student {student_id} not found")

        result = exam.register_student(student_id, registered_by=actor.user_id)
        if not result:
            logger.warning("registration rejected for student %s on exam %s: %s", student_id, examination_id, result.reason)
            raise InvalidOperationError(result.reason)

        registration = exam.student_examinations[-1]
        ensure_valid(registration, require_score=False)
        registration.student_examination_id = self._examinations.add_registration(registration)
        self._audit.record_insert(
            actor,
            table_name=REGISTRATION_TABLE,
            record_id=registration.student_examination_id,
            new_values=registration,
        )
        logger.info("student %s registered for %s", student_id, exam.exam_code)
        return registration

    def eligible_students(self, examination_id: int) -> list[Student]:
        exam = self.get(examination_id)
        return exam.get_eligible_students(self._references.list_students_in_grade(exam.grade_id, site_id=exam.site_id))

    def _save_registration(
        self, actor: Actor, registration: StudentExamination, before: dict, *, require_score: bool = False
    ) -> StudentExamination:
        ensure_valid(registration, require_score=require_score)
        self._examinations.update_registration(registration)
        self._audit.record_update(
            actor,
            table_name=REGISTRATION_TABLE,
            record_id=registration.student_examination_id,
            old_values=before,
            new_values=registration,
        )
        return registration

    def record_attendance(
        self, actor: Actor, student_examination_id: int, *, status: str, start_time: Optional[time] = None
    ) -> StudentExamination:
        parsed = ExamAttendanceStatus.parse(status)
        if parsed is None:
            raise ValidationError(f"Attendance status must be one of: {ExamAttendanceStatus.choices_text()}")

        registration = self._registration(student_examination_id)
        before = snapshot(registration)
        registration.record_attendance(parsed.value, start_time, recorded_by=actor.user_id)
        return self._save_registration(actor, registration, before)

    def complete(self, actor: Actor, student_examination_id: int, *, end_time: time) -> StudentExamination:
        registration = self._registration(student_examination_id)
        before = snapshot(registration)
        registration.complete_examination(end_time, completed_by=actor.user_id)
        return self._save_registration(actor, registration, before)

    def grade(
        self, actor: Actor, student_examination_id: int, *, score: Decimal, notes: Optional[str] = None
    ) -> StudentExamination:
        score = to_decimal(score)
        if score is None or not score.is_finite() or score < 0:
            raise ValidationError("Score must be zero or greater")

        registration = self._registration(student_examination_id)
        if not registration.was_attended:
            raise InvalidOperationError("Only students who attended the examination can be graded")

        before = snapshot(registration)
        registration.grade_examination(score, graded_by=actor.user_id, notes=notes)
        self._save_registration(actor, registration, before, require_score=True)
        logger.info(
            "student examination %s graded %s (%s)",
            student_examination_id,
            registration.letter_grade,
            registration.result,
        )
        return registration

    def issue_certificate(
        self, actor: Actor, student_examination_id: int, *, signed_by: Optional[str] = None
    ) -> Certificate:
        return self._certificates.issue(actor, student_examination_id, signed_by=signed_by)

    def schedule_retake(self, actor: Actor, student_examination_id: int, new_examination_id: int) -> StudentExamination:
        registration = self._registration(student_examination_id)
        # raises InvalidOperationError unless the exam was failed
        retake = registration.schedule_retake(new_examination_id, scheduled_by=actor.user_id)

        exam = self.get(new_examination_id)
        if not exam.can_student_register(retake.student_id):
            raise InvalidOperationError(f"Examination {exam.exam_code} is not open for this student")

        retake.examination = exam
        ensure_valid(retake, require_score=False)
        retake.student_examination_id = self._examinations.add_registration(retake)
        self._audit.record_insert(
            actor, table_name=REGISTRATION_TABLE, record_id=retake.student_examination_id, new_values=retake
        )
        logger.info("retake of %s scheduled on %s", student_examination_id, exam.exam_code)
        return retake

    # ---- reports ------------------------------------------------------

    def statistics(self, examination_id: int) -> ExamStatistics:
        return exam_statistics(self.get(examination_id))

    def results(self, examination_id: int) -> ExaminationResultsStats:
        return examination_results_stats(self.get(examination_id).student_examinations)

    def student_history(self, student_id: int) -> StudentExaminationHistory:
        registrations: Sequence[StudentExamination] = self._examinations.list_registrations_for_student(student_id)
        issued = {c.student_examination_id: c for c in self._certificates.for_student(student_id)}
        for se in registrations:
            se.certificate = issued.get(se.student_examination_id)
        return student_examination_history(registrations)
