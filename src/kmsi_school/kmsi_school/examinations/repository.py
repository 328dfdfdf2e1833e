from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Examination, StudentExamination


class ExaminationRepository(Protocol):
    def get_by_id(self, examination_id: int) -> Optional[Examination]:
        raise NotImplementedError

    def list_by_site(self, site_id: int) -> Sequence[Examination]:
        raise NotImplementedError

    def list_codes(self, prefix: str) -> Sequence[str]:
        raise NotImplementedError

    def add(self, exam: Examination) -> int:
        raise NotImplementedError

    def update(self, exam: Examination) -> bool:
        raise NotImplementedError

    def list_registrations(self, examination_id: int) -> Sequence[StudentExamination]:
        raise NotImplementedError

    def get_registration(self, student_examination_id: int) -> Optional[StudentExamination]:
        raise NotImplementedError

    def list_registrations_for_student(self, student_id: int) -> Sequence[StudentExamination]:
        raise NotImplementedError

    def add_registration(self, registration: StudentExamination) -> int:
        raise NotImplementedError

    def update_registration(self, registration: StudentExamination) -> bool:
        raise NotImplementedError
