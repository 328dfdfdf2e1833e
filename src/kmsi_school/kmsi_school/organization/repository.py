from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..grades.model import Grade
from ..students.model import Student
from .model import Company, Site


class ReferenceRepository(Protocol):
    """Read-only lookups of the master data other features hang off."""

    def get_company(self, company_id: int) -> Optional[Company]:
        raise NotImplementedError

    def get_site(self, site_id: int) -> Optional[Site]:
        raise NotImplementedError

    def get_grade(self, grade_id: int) -> Optional[Grade]:
        raise NotImplementedError

    def get_student(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def list_students_in_grade(self, grade_id: int, *, site_id: int) -> Sequence[Student]:
        raise NotImplementedError
