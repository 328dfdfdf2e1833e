from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AuditLog
from .repository import AuditLogRepository

_COLUMNS = """
    audit_log_id, company_id, user_id, table_name, record_id, action,
    old_values, new_values, ip_address, user_agent, action_date
"""


def _row_to_log(r: dict) -> AuditLog:
    return AuditLog(
        audit_log_id=int(r["audit_log_id"]),
        company_id=int(r["company_id"]),
        user_id=int(r["user_id"]),
        table_name=r["table_name"],
        record_id=int(r["record_id"]),
        action=r["action"],
        old_values=r.get("old_values"),
        new_values=r.get("new_values"),
        ip_address=r.get("ip_address"),
        user_agent=r.get("user_agent"),
        action_date=r["action_date"],
    )


class MySQLAuditLogRepository(AuditLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, log: AuditLog) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(
                    company_id, user_id, table_name, record_id, action,
                    old_values, new_values, ip_address, user_agent, action_date
                )
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    log.company_id,
                    log.user_id,
                    log.table_name,
                    log.record_id,
                    log.action,
                    log.old_values,
                    log.new_values,
                    log.ip_address,
                    log.user_agent,
                    log.action_date,
                ),
            )
            return int(cur.lastrowid)

    def list_for_record(self, table_name: str, record_id: int) -> Sequence[AuditLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM audit_logs
                WHERE table_name=%s AND record_id=%s
                ORDER BY action_date, audit_log_id
                """,
                (table_name, record_id),
            )
            return [_row_to_log(r) for r in fetchall(cur)]

    def list_recent(self, company_id: int, *, limit: int) -> Sequence[AuditLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM audit_logs
                WHERE company_id=%s
                ORDER BY action_date DESC, audit_log_id DESC
                LIMIT %s
                """,
                (company_id, int(limit)),
            )
            return [_row_to_log(r) for r in fetchall(cur)]
