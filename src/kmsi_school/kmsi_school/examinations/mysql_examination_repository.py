from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, optional_decimal, optional_int
from .model import Examination, StudentExamination
from .repository import ExaminationRepository

_EXAM_COLUMNS = """
    examination_id, company_id, site_id, grade_id, examiner_teacher_id, exam_code, exam_name,
    exam_date, start_time, end_time, location, max_capacity, status, description,
    created_date, created_by, updated_date, updated_by
"""

_REG_COLUMNS = """
    se.student_examination_id, se.examination_id, se.student_id, se.registration_date,
    se.attendance_status, se.start_time, se.end_time, se.actual_duration, se.score, se.max_score,
    se.percentage, se.letter_grade, se.result, se.teacher_notes,
    se.created_date, se.created_by, se.updated_date, se.updated_by
"""


def _row_to_exam(r: dict) -> Examination:
    return Examination(
        examination_id=int(r["examination_id"]),
        company_id=int(r["company_id"]),
        site_id=int(r["site_id"]),
        grade_id=int(r["grade_id"]),
        examiner_teacher_id=int(r["examiner_teacher_id"]),
        exam_code=r["exam_code"],
        exam_name=r["exam_name"],
        exam_date=r["exam_date"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        location=r.get("location"),
        max_capacity=int(r["max_capacity"]),
        status=r["status"],
        description=r.get("description"),
        created_date=r.get("created_date"),
        created_by=optional_int(r.get("created_by")),
        updated_date=r.get("updated_date"),
        updated_by=optional_int(r.get("updated_by")),
    )


def _row_to_registration(r: dict) -> StudentExamination:
    return StudentExamination(
        student_examination_id=int(r["student_examination_id"]),
        examination_id=int(r["examination_id"]),
        student_id=int(r["student_id"]),
        registration_date=r["registration_date"],
        attendance_status=r.get("attendance_status"),
        start_time=normalize_mysql_time(r.get("start_time")),
        end_time=normalize_mysql_time(r.get("end_time")),
        actual_duration=optional_int(r.get("actual_duration")),
        score=optional_decimal(r.get("score")),
        max_score=optional_decimal(r.get("max_score")),
        percentage=optional_decimal(r.get("percentage")),
        letter_grade=r.get("letter_grade"),
        result=r.get("result"),
        teacher_notes=r.get("teacher_notes"),
        created_date=r.get("created_date"),
        created_by=optional_int(r.get("created_by")),
        updated_date=r.get("updated_date"),
        updated_by=optional_int(r.get("updated_by")),
    )


class MySQLExaminationRepository(ExaminationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, examination_id: int) -> Optional[Examination]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EXAM_COLUMNS} FROM examinations WHERE examination_id=%s", (examination_id,))
            r = fetchone(cur)
            return _row_to_exam(r) if r else None

    def list_by_site(self, site_id: int) -> Sequence[Examination]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_EXAM_COLUMNS} FROM examinations WHERE site_id=%s ORDER BY exam_date DESC, start_time",
                (site_id,),
            )
            return [_row_to_exam(r) for r in fetchall(cur)]

    def list_codes(self, prefix: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT exam_code FROM examinations WHERE exam_code LIKE %s", (f"{prefix}%",))
            return [r["exam_code"] for r in fetchall(cur)]

    def add(self, exam: Examination) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO examinations(
                    company_id, site_id, grade_id, examiner_teacher_id, exam_code, exam_name,
                    exam_date, start_time, end_time, location, max_capacity, status, description, created_by
                )
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    exam.company_id,
                    exam.site_id,
                    exam.grade_id,
                    exam.examiner_teacher_id,
                    exam.exam_code,
                    exam.exam_name,
                    exam.exam_date,
                    exam.start_time,
                    exam.end_time,
                    exam.location,
                    exam.max_capacity,
                    exam.status,
                    exam.description,
                    exam.created_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, exam: Examination) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE examinations
                SET exam_name=%s, exam_date=%s, start_time=%s, end_time=%s, location=%s,
                    max_capacity=%s, status=%s, description=%s, updated_date=NOW(), updated_by=%s
                WHERE examination_id=%s
                """,
                (
                    exam.exam_name,
                    exam.exam_date,
                    exam.start_time,
                    exam.end_time,
                    exam.location,
                    exam.max_capacity,
                    exam.status,
                    exam.description,
                    exam.updated_by,
                    exam.examination_id,
                ),
            )
            return cur.rowcount > 0

    def list_registrations(self, examination_id: int) -> Sequence[StudentExamination]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REG_COLUMNS}
                FROM student_examinations se
                WHERE se.examination_id=%s
                ORDER BY se.registration_date
                """,
                (examination_id,),
            )
            return [_row_to_registration(r) for r in fetchall(cur)]

    def get_registration(self, student_examination_id: int) -> Optional[StudentExamination]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_REG_COLUMNS} FROM student_examinations se WHERE se.student_examination_id=%s",
                (student_examination_id,),
            )
            r = fetchone(cur)
            return _row_to_registration(r) if r else None

    def list_registrations_for_student(self, student_id: int) -> Sequence[StudentExamination]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_REG_COLUMNS} FROM student_examinations se WHERE se.student_id=%s",
                (student_id,),
            )
            registrations = [_row_to_registration(r) for r in fetchall(cur)]
            if not registrations:
                return []

            ids = sorted({se.examination_id for se in registrations})
            placeholders = ",".join(["%s"] * len(ids))
            cur.execute(
                f"SELECT {_EXAM_COLUMNS} FROM examinations WHERE examination_id IN ({placeholders})",
                tuple(ids),
            )
            exams = {e.examination_id: e for e in (_row_to_exam(r) for r in fetchall(cur))}

        for se in registrations:
            se.examination = exams.get(se.examination_id)
        return registrations

    def add_registration(self, registration: StudentExamination) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO student_examinations(examination_id, student_id, registration_date, max_score, created_by)
                VALUES (%s,%s,%s,%s,%s)
                """,
                (
                    registration.examination_id,
                    registration.student_id,
                    registration.registration_date,
                    registration.max_score,
                    registration.created_by,
                ),
            )
            return int(cur.lastrowid)

    def update_registration(self, registration: StudentExamination) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE student_examinations
                SET attendance_status=%s, start_time=%s, end_time=%s, actual_duration=%s, score=%s,
                    percentage=%s, letter_grade=%s, result=%s, teacher_notes=%s,
                    updated_date=NOW(), updated_by=%s
                WHERE student_examination_id=%s
                """,
                (
                    registration.attendance_status,
                    registration.start_time,
                    registration.end_time,
                    registration.actual_duration,
                    registration.score,
                    registration.percentage,
                    registration.letter_grade,
                    registration.result,
                    registration.teacher_notes,
                    registration.updated_by,
                    registration.student_examination_id,
                ),
            )
            return cur.rowcount > 0
