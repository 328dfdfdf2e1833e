from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, optional_decimal, optional_int
from .model import StudentGradeHistory
from .repository import GradeHistoryRepository

_COLUMNS = """
    student_grade_history_id, student_id, grade_id, start_date, end_date, status,
    completion_percentage, is_current_grade, notes, created_date, created_by,
    updated_date, updated_by
"""


def _row_to_history(r: dict) -> StudentGradeHistory:
    return StudentGradeHistory(
        student_grade_history_id=int(r["student_grade_history_id"]),
        student_id=int(r["student_id"]),
        grade_id=int(r["grade_id"]),
        start_date=r["start_date"],
        end_date=r.get("end_date"),
        status=r["status"],
        completion_percentage=optional_decimal(r.get("completion_percentage")),
        is_current_grade=bool(r["is_current_grade"]),
        notes=r.get("notes"),
        created_date=r.get("created_date"),
        created_by=optional_int(r.get("created_by")),
        updated_date=r.get("updated_date"),
        updated_by=optional_int(r.get("updated_by")),
    )


class MySQLGradeHistoryRepository(GradeHistoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, history_id: int) -> Optional[StudentGradeHistory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM student_grade_histories WHERE student_grade_history_id=%s",
                (history_id,),
            )
            r = fetchone(cur)
            return _row_to_history(r) if r else None

    def list_for_student(self, student_id: int) -> Sequence[StudentGradeHistory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM student_grade_histories WHERE student_id=%s ORDER BY start_date",
                (student_id,),
            )
            return [_row_to_history(r) for r in fetchall(cur)]

    def list_for_grade(self, grade_id: int) -> Sequence[StudentGradeHistory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM student_grade_histories WHERE grade_id=%s ORDER BY start_date",
                (grade_id,),
            )
            return [_row_to_history(r) for r in fetchall(cur)]

    def add(self, history: StudentGradeHistory) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO student_grade_histories(
                    student_id, grade_id, start_date, end_date, status, completion_percentage,
                    is_current_grade, notes, created_by
                )
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    history.student_id,
                    history.grade_id,
                    history.start_date,
                    history.end_date,
                    history.status,
                    history.completion_percentage,
                    1 if history.is_current_grade else 0,
                    history.notes,
                    history.created_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, history: StudentGradeHistory) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE student_grade_histories
                SET end_date=%s, status=%s, completion_percentage=%s, is_current_grade=%s,
                    notes=%s, updated_date=%s, updated_by=%s
                WHERE student_grade_history_id=%s
                """,
                (
                    history.end_date,
                    history.status,
                    history.completion_percentage,
                    1 if history.is_current_grade else 0,
                    history.notes,
                    history.updated_date,
                    history.updated_by,
                    history.student_grade_history_id,
                ),
            )
            return cur.rowcount > 0
