from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import StudentGradeHistory


class GradeHistoryRepository(Protocol):
    def get_by_id(self, history_id: int) -> Optional[StudentGradeHistory]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[StudentGradeHistory]:
        raise NotImplementedError

    def list_for_grade(self, grade_id: int) -> Sequence[StudentGradeHistory]:
        raise NotImplementedError

    def add(self, history: StudentGradeHistory) -> int:
        raise NotImplementedError

    def update(self, history: StudentGradeHistory) -> bool:
        raise NotImplementedError
