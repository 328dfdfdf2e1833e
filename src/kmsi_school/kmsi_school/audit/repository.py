from __future__ import annotations

from typing import Protocol, Sequence

from .model import AuditLog


class AuditLogRepository(Protocol):
    def add(self, log: AuditLog) -> int:
        raise NotImplementedError

    def list_for_record(self, table_name: str, record_id: int) -> Sequence[AuditLog]:
        raise NotImplementedError

    def list_recent(self, company_id: int, *, limit: int) -> Sequence[AuditLog]:
        raise NotImplementedError
