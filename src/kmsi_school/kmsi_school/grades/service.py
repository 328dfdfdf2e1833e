from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..audit.service import Actor, AuditTrail
from ..audit.snapshots import snapshot
from ..common import datetime_utils
from ..common.validators import require_range
from ..core.constants import PROMOTION_MIN_COMPLETION
from ..core.exceptions import NotFoundError
from ..organization.repository import ReferenceRepository
from ..validation import ensure_valid
from .model import StudentGradeHistory
from .reports import (
    CompletionStatistics,
    StudentProgressionReport,
    completion_statistics,
    find_multiple_current_grades,
    student_progression_report,
)
from .repository import GradeHistoryRepository

logger = logging.getLogger(__name__)

TABLE = "StudentGradeHistories"


class GradeProgressService:
    """Enrolment of students in grades and their progress through them."""

    def __init__(self, histories: GradeHistoryRepository, references: ReferenceRepository, audit: AuditTrail):
        self._histories = histories
        self._references = references
        self._audit = audit

    def get(self, history_id: int) -> StudentGradeHistory:
        history = self._histories.get_by_id(history_id)
        if not history:
            raise NotFoundError(f"Grade history {history_id} not found")
        history.grade = self._references.get_grade(history.grade_id)
        return history

    def _save(self, actor: Actor, history: StudentGradeHistory, before: dict) -> None:
        ensure_valid(history)
        self._histories.update(history)
        self._audit.record_update(
            actor,
            table_name=TABLE,
            record_id=history.student_grade_history_id,
            old_values=before,
            new_values=history,
        )

    def _make_current(self, actor: Actor, history: StudentGradeHistory) -> None:
        """Flag ``history`` as current and persist every sibling that lost the flag."""
        siblings = [
            h
            for h in self._histories.list_for_student(history.student_id)
            if h.student_grade_history_id != history.student_grade_history_id
        ]
        previous = {h.student_grade_history_id: (h.is_current_grade, snapshot(h)) for h in siblings}
        history.set_as_current(siblings)
        for sibling in siblings:
            was_current, before = previous[sibling.student_grade_history_id]
            if was_current and not sibling.is_current_grade:
                sibling.updated_by = actor.user_id
                sibling.updated_date = datetime_utils.now_local()
                self._save(actor, sibling, before)

    # ---- commands -----------------------------------------------------

    def enroll(
        self,
        actor: Actor,
        *,
        student_id: int,
        grade_id: int,
        start_date: Optional[date] = None,
        make_current: bool = True,
        notes: Optional[str] = None,
    ) -> StudentGradeHistory:
        if not self._references.get_student(student_id):
            raise NotFoundError(f"Student {student_id} not found")
        grade = self._references.get_grade(grade_id)
        if not grade:
            raise NotFoundError(f"Grade {grade_id} not found")

        history = StudentGradeHistory(
            student_id=student_id,
            grade_id=grade_id,
            start_date=start_date or datetime_utils.today(),
            is_current_grade=make_current,
            notes=notes,
            created_by=actor.user_id,
            created_date=datetime_utils.now_local(),
        )
        history.grade = grade
        ensure_valid(history)

        # the previous current grade is cleared only after the insert succeeds
        history.student_grade_history_id = self._histories.add(history)
        self._audit.record_insert(
            actor, table_name=TABLE, record_id=history.student_grade_history_id, new_values=history
        )
        if make_current:
            self._make_current(actor, history)
        logger.info("student %s enrolled in grade %s", student_id, grade_id)
        return history

    def update_completion(self, actor: Actor, history_id: int, percentage) -> StudentGradeHistory:
        history = self.get(history_id)
        before = snapshot(history)
        # raises ValidationError outside 0..100
        history.update_completion(percentage, updated_by=actor.user_id)
        self._save(actor, history, before)
        logger.info("grade history %s at %s%% (%s)", history_id, history.completion_percentage, history.status)
        return history

    def set_current(self, actor: Actor, history_id: int) -> StudentGradeHistory:
        history = self.get(history_id)
        before = snapshot(history)
        self._make_current(actor, history)
        history.updated_by = actor.user_id
        history.updated_date = datetime_utils.now_local()
        self._save(actor, history, before)
        logger.info("grade history %s is now current for student %s", history_id, history.student_id)
        return history

    def complete(
        self, actor: Actor, history_id: int, *, completion_date: Optional[date] = None
    ) -> StudentGradeHistory:
        history = self.get(history_id)
        before = snapshot(history)
        history.mark_as_completed(completion_date, completed_by=actor.user_id)
        self._save(actor, history, before)
        logger.info("grade history %s completed", history_id)
        return history

    def extend(self, actor: Actor, history_id: int, *, reason: Optional[str] = None) -> StudentGradeHistory:
        history = self.get(history_id)
        before = snapshot(history)
        history.extend_grade(actor.user_id, reason)
        self._save(actor, history, before)
        logger.info("grade history %s extended", history_id)
        return history

    # ---- queries ------------------------------------------------------

    def progression(self, student_id: int) -> StudentProgressionReport:
        histories = list(self._histories.list_for_student(student_id))
        for h in histories:
            h.grade = self._references.get_grade(h.grade_id)
        duplicates = find_multiple_current_grades(histories)
        if duplicates:
            logger.warning("student %s has more than one current grade", student_id)
        return student_progression_report(histories)

    def statistics(self, grade_id: int) -> CompletionStatistics:
        grade = self._references.get_grade(grade_id)
        if not grade:
            raise NotFoundError(f"Grade {grade_id} not found")
        histories = list(self._histories.list_for_grade(grade_id))
        for h in histories:
            h.grade = grade
        return completion_statistics(histories, grade_id=grade_id)

    def promotion_candidates(
        self, grade_id: int, *, minimum_completion=PROMOTION_MIN_COMPLETION
    ) -> Sequence[StudentGradeHistory]:
        require_range(minimum_completion, "Minimum completion", 0, 100)
        return [h for h in self._histories.list_for_grade(grade_id) if h.is_ready_for_promotion(minimum_completion)]
