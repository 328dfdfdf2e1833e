from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, optional_decimal, optional_int
from ..students.model import Student
from ..users.model import User
from .model import ClassSchedule, Teacher, TeacherSchedule
from .repository import TeacherRepository

_TEACHER_COLUMNS = """
    teacher_id, user_id, company_id, site_id, teacher_code, specialization, experience_years,
    hourly_rate, max_students_per_day, is_available_for_trial, is_active,
    created_date, created_by, updated_date, updated_by
"""

_CLASS_COLUMNS = """
    class_schedule_id, company_id, site_id, student_id, teacher_id, grade_id, schedule_date,
    start_time, end_time, duration, schedule_type, status, room
"""


def _teacher(r: dict) -> Teacher:
    return Teacher(
        teacher_id=int(r["teacher_id"]),
        user_id=int(r["user_id"]),
        company_id=int(r["company_id"]),
        site_id=int(r["site_id"]),
        teacher_code=r["teacher_code"],
        specialization=r.get("specialization"),
        experience_years=optional_int(r.get("experience_years")),
        hourly_rate=optional_decimal(r.get("hourly_rate")),
        max_students_per_day=int(r["max_students_per_day"]),
        is_available_for_trial=bool(r["is_available_for_trial"]),
        is_active=bool(r["is_active"]),
        created_date=r.get("created_date"),
        created_by=optional_int(r.get("created_by")),
        updated_date=r.get("updated_date"),
        updated_by=optional_int(r.get("updated_by")),
    )


def class_schedule_from_row(r: dict) -> ClassSchedule:
    return ClassSchedule(
        class_schedule_id=int(r["class_schedule_id"]),
        company_id=int(r["company_id"]),
        site_id=int(r["site_id"]),
        student_id=int(r["student_id"]),
        teacher_id=int(r["teacher_id"]),
        grade_id=int(r["grade_id"]),
        schedule_date=r["schedule_date"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        duration=int(r.get("duration") or 60),
        schedule_type=r.get("schedule_type") or "Regular",
        status=r["status"],
        room=r.get("room"),
    )


class MySQLTeacherRepository(TeacherRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, teacher_id: int) -> Optional[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TEACHER_COLUMNS} FROM teachers WHERE teacher_id=%s", (teacher_id,))
            r = fetchone(cur)
            return _teacher(r) if r else None

    def list_by_site(self, site_id: int) -> Sequence[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TEACHER_COLUMNS} FROM teachers WHERE site_id=%s ORDER BY teacher_code",
                (site_id,),
            )
            return [_teacher(r) for r in fetchall(cur)]

    def get_user(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.full_name, u.username, u.company_id, u.site_id, ul.level_code, u.is_active
                FROM users u
                JOIN user_levels ul ON ul.user_level_id = u.user_level_id
                WHERE u.user_id=%s
                """,
                (user_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return User(
                user_id=int(r["user_id"]),
                full_name=r["full_name"],
                username=r["username"],
                company_id=int(r["company_id"]),
                site_id=optional_int(r.get("site_id")),
                level_code=r["level_code"],
                is_active=bool(r["is_active"]),
            )

    def list_schedules(self, teacher_id: int) -> Sequence[TeacherSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT teacher_schedule_id, teacher_id, day_of_week, start_time, end_time, is_active
                FROM teacher_schedules
                WHERE teacher_id=%s
                ORDER BY day_of_week, start_time
                """,
                (teacher_id,),
            )
            return [
                TeacherSchedule(
                    teacher_schedule_id=int(r["teacher_schedule_id"]),
                    teacher_id=int(r["teacher_id"]),
                    day_of_week=int(r["day_of_week"]),
                    start_time=normalize_mysql_time(r["start_time"]),
                    end_time=normalize_mysql_time(r["end_time"]),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            ]

    def list_class_schedules(self, teacher_id: int, *, start_date: date, end_date: date) -> Sequence[ClassSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_CLASS_COLUMNS}
                FROM class_schedules
                WHERE teacher_id=%s AND schedule_date BETWEEN %s AND %s
                ORDER BY schedule_date, start_time
                """,
                (teacher_id, start_date, end_date),
            )
            return [class_schedule_from_row(r) for r in fetchall(cur)]

    def get_class_schedule(self, class_schedule_id: int) -> Optional[ClassSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_CLASS_COLUMNS} FROM class_schedules WHERE class_schedule_id=%s",
                (class_schedule_id,),
            )
            r = fetchone(cur)
            return class_schedule_from_row(r) if r else None

    def list_assigned_students(self, teacher_id: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, company_id, site_id, student_code, full_name, status,
                       current_grade_id, assigned_teacher_id, is_active
                FROM students
                WHERE assigned_teacher_id=%s
                ORDER BY full_name
                """,
                (teacher_id,),
            )
            return [student_from_row(r) for r in fetchall(cur)]


def student_from_row(r: dict) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        company_id=int(r["company_id"]),
        site_id=int(r["site_id"]),
        student_code=r["student_code"],
        full_name=r["full_name"],
        status=r["status"],
        current_grade_id=optional_int(r.get("current_grade_id")),
        assigned_teacher_id=optional_int(r.get("assigned_teacher_id")),
        is_active=bool(r["is_active"]),
    )
