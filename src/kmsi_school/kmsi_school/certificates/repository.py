from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Certificate


class CertificateRepository(Protocol):
    def get_by_id(self, certificate_id: int) -> Optional[Certificate]:
        raise NotImplementedError

    def get_by_number(self, certificate_number: str) -> Optional[Certificate]:
        raise NotImplementedError

    def get_for_registration(self, student_examination_id: int) -> Optional[Certificate]:
        raise NotImplementedError

    def list_numbers(self, prefix: str) -> Sequence[str]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[Certificate]:
        raise NotImplementedError

    def list_issued_between(self, start_date: date, end_date: date) -> Sequence[Certificate]:
        raise NotImplementedError

    def add(self, certificate: Certificate) -> int:
        raise NotImplementedError

    def update(self, certificate: Certificate) -> bool:
        raise NotImplementedError
