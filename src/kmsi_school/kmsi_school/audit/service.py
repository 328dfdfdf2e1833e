from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..validation import ensure_valid
from .model import AuditLog
from .repository import AuditLogRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Who performs a change, as recorded in the audit trail."""

    user_id: int
    company_id: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditTrail:
    """Use case: record data changes made by the other services."""

    def __init__(self, logs: AuditLogRepository):
        self._logs = logs

    def _store(self, log: AuditLog) -> AuditLog:
        ensure_valid(log)
        log.audit_log_id = self._logs.add(log)
        logger.debug("audit %s %s", log.action, log.entity_display)
        return log

    def record_insert(self, actor: Actor, *, table_name: str, record_id: int, new_values: Any) -> AuditLog:
        return self._store(
            AuditLog.create_insert_log(
                company_id=actor.company_id,
                user_id=actor.user_id,
                table_name=table_name,
                record_id=record_id,
                new_values=new_values,
                ip_address=actor.ip_address,
                user_agent=actor.user_agent,
            )
        )

    def record_update(
        self, actor: Actor, *, table_name: str, record_id: int, old_values: Any, new_values: Any
    ) -> AuditLog:
        return self._store(
            AuditLog.create_update_log(
                company_id=actor.company_id,
                user_id=actor.user_id,
                table_name=table_name,
                record_id=record_id,
                old_values=old_values,
                new_values=new_values,
                ip_address=actor.ip_address,
                user_agent=actor.user_agent,
            )
        )

    def record_delete(self, actor: Actor, *, table_name: str, record_id: int, old_values: Any) -> AuditLog:
        return self._store(
            AuditLog.create_delete_log(
                company_id=actor.company_id,
                user_id=actor.user_id,
                table_name=table_name,
                record_id=record_id,
                old_values=old_values,
                ip_address=actor.ip_address,
                user_agent=actor.user_agent,
            )
        )

    def history(self, table_name: str, record_id: int) -> Sequence[AuditLog]:
        return self._logs.list_for_record(table_name, record_id)

    def recent(self, company_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AuditLog]:
        return self._logs.list_recent(company_id, limit=limit)
