from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, optional_int
from .model import Attendance
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, class_schedule_id, student_id, teacher_id, attendance_date, status,
    actual_start_time, actual_end_time, lesson_topic, student_progress, teacher_notes,
    homework_assigned, next_lesson_prep, student_performance_score,
    created_date, created_by, updated_date, updated_by
"""


def _row_to_attendance(r: dict) -> Attendance:
    return Attendance(
        attendance_id=int(r["attendance_id"]),
        class_schedule_id=int(r["class_schedule_id"]),
        student_id=int(r["student_id"]),
        teacher_id=int(r["teacher_id"]),
        attendance_date=r["attendance_date"],
        status=r["status"],
        actual_start_time=normalize_mysql_time(r.get("actual_start_time")),
        actual_end_time=normalize_mysql_time(r.get("actual_end_time")),
        lesson_topic=r.get("lesson_topic"),
        student_progress=r.get("student_progress"),
        teacher_notes=r.get("teacher_notes"),
        homework_assigned=r.get("homework_assigned"),
        next_lesson_prep=r.get("next_lesson_prep"),
        student_performance_score=optional_int(r.get("student_performance_score")),
        created_date=r.get("created_date"),
        created_by=optional_int(r.get("created_by")),
        updated_date=r.get("updated_date"),
        updated_by=optional_int(r.get("updated_by")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendances WHERE attendance_id=%s", (attendance_id,))
            r = fetchone(cur)
            return _row_to_attendance(r) if r else None

    def get_for_schedule_and_student(self, class_schedule_id: int, student_id: int) -> Optional[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendances WHERE class_schedule_id=%s AND student_id=%s",
                (class_schedule_id, student_id),
            )
            r = fetchone(cur)
            return _row_to_attendance(r) if r else None

    def list_for_teacher(self, teacher_id: int, *, start_date: date, end_date: date) -> Sequence[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendances
                WHERE teacher_id=%s AND attendance_date BETWEEN %s AND %s
                ORDER BY attendance_date, actual_start_time
                """,
                (teacher_id, start_date, end_date),
            )
            return [_row_to_attendance(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int, *, limit: int) -> Sequence[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendances
                WHERE student_id=%s
                ORDER BY attendance_date DESC
                LIMIT %s
                """,
                (student_id, int(limit)),
            )
            return [_row_to_attendance(r) for r in fetchall(cur)]

    def add(self, attendance: Attendance) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendances(
                    class_schedule_id, student_id, teacher_id, attendance_date, status,
                    actual_start_time, actual_end_time, lesson_topic, student_progress, teacher_notes,
                    homework_assigned, next_lesson_prep, student_performance_score, created_by
                )
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    attendance.class_schedule_id,
                    attendance.student_id,
                    attendance.teacher_id,
                    attendance.attendance_date,
                    attendance.status,
                    attendance.actual_start_time,
                    attendance.actual_end_time,
                    attendance.lesson_topic,
                    attendance.student_progress,
                    attendance.teacher_notes,
                    attendance.homework_assigned,
                    attendance.next_lesson_prep,
                    attendance.student_performance_score,
                    attendance.created_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, attendance: Attendance) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendances
                SET status=%s, actual_start_time=%s, actual_end_time=%s, lesson_topic=%s,
                    student_progress=%s, teacher_notes=%s, homework_assigned=%s, next_lesson_prep=%s,
                    student_performance_score=%s, updated_date=NOW(), updated_by=%s
                WHERE attendance_id=%s
                """,
                (
                    attendance.status,
                    attendance.actual_start_time,
                    attendance.actual_end_time,
                    attendance.lesson_topic,
                    attendance.student_progress,
                    attendance.teacher_notes,
                    attendance.homework_assigned,
                    attendance.next_lesson_prep,
                    attendance.student_performance_score,
                    attendance.updated_by,
                    attendance.attendance_id,
                ),
            )
            return cur.rowcount > 0
