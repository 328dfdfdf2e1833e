from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, optional_int
from .model import Certificate
from .repository import CertificateRepository

_COLUMNS = """
    certificate_id, student_id, student_examination_id, grade_id, certificate_number, issue_date,
    certificate_title, issued_by, signed_by, certificate_path, status, print_count,
    last_print_date, notes, created_date, created_by
"""


def _row_to_certificate(r: dict) -> Certificate:
    return Certificate(
        certificate_id=int(r["certificate_id"]),
        student_id=int(r["student_id"]),
        student_examination_id=int(r["student_examination_id"]),
        grade_id=int(r["grade_id"]),
        certificate_number=r["certificate_number"],
        issue_date=r["issue_date"],
        certificate_title=r["certificate_title"],
        issued_by=r["issued_by"],
        signed_by=r.get("signed_by"),
        certificate_path=r.get("certificate_path"),
        status=r["status"],
        print_count=int(r.get("print_count") or 0),
        last_print_date=r.get("last_print_date"),
        notes=r.get("notes"),
        created_date=r.get("created_date"),
        created_by=optional_int(r.get("created_by")),
    )


class MySQLCertificateRepository(CertificateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _one(self, where: str, params: tuple) -> Optional[Certificate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM certificates WHERE {where}", params)
            r = fetchone(cur)
            return _row_to_certificate(r) if r else None

    def get_by_id(self, certificate_id: int) -> Optional[Certificate]:
        return self._one("certificate_id=%s", (certificate_id,))

    def get_by_number(self, certificate_number: str) -> Optional[Certificate]:
        return self._one("certificate_number=%s", (certificate_number,))

    def get_for_registration(self, student_examination_id: int) -> Optional[Certificate]:
        return self._one("student_examination_id=%s", (student_examination_id,))

    def list_numbers(self, prefix: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT certificate_number FROM certificates WHERE certificate_number LIKE %s",
                (f"{prefix}%",),
            )
            return [r["certificate_number"] for r in fetchall(cur)]

    def list_for_student(self, student_id: int) -> Sequence[Certificate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM certificates WHERE student_id=%s ORDER BY issue_date DESC",
                (student_id,),
            )
            return [_row_to_certificate(r) for r in fetchall(cur)]

    def list_issued_between(self, start_date: date, end_date: date) -> Sequence[Certificate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM certificates
                WHERE issue_date BETWEEN %s AND %s
                ORDER BY issue_date, certificate_number
                """,
                (start_date, end_date),
            )
            return [_row_to_certificate(r) for r in fetchall(cur)]

    def add(self, certificate: Certificate) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO certificates(
                    student_id, student_examination_id, grade_id, certificate_number, issue_date,
                    certificate_title, issued_by, signed_by, certificate_path, status, print_count, created_by
                )
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    certificate.student_id,
                    certificate.student_examination_id,
                    certificate.grade_id,
                    certificate.certificate_number,
                    certificate.issue_date,
                    certificate.certificate_title,
                    certificate.issued_by,
                    certificate.signed_by,
                    certificate.certificate_path,
                    certificate.status,
                    certificate.print_count,
                    certificate.created_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, certificate: Certificate) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE certificates
                SET status=%s, print_count=%s, last_print_date=%s, notes=%s,
                    signed_by=%s, certificate_path=%s
                WHERE certificate_id=%s
                """,
                (
                    certificate.status,
                    certificate.print_count,
                    certificate.last_print_date,
                    certificate.notes,
                    certificate.signed_by,
                    certificate.certificate_path,
                    certificate.certificate_id,
                ),
            )
            return cur.rowcount > 0
