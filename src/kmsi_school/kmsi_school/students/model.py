from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import StudentStatus


@dataclass(frozen=True)
class Student:
    student_id: int
    company_id: int
    site_id: int
    student_code: str
    full_name: str
    status: str = StudentStatus.PENDING.value
    current_grade_id: Optional[int] = None
    assigned_teacher_id: Optional[int] = None
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return f"{self.student_code} - {self.full_name}"

    @property
    def is_enrolled(self) -> bool:
        """Active record with status Active."""
        return self.is_active and StudentStatus.parse(self.status) is StudentStatus.ACTIVE

    @property
    def is_on_trial(self) -> bool:
        return self.is_active and StudentStatus.parse(self.status) is StudentStatus.TRIAL
