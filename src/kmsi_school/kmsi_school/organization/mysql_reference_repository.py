from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, optional_int
from ..grades.model import Grade
from ..students.model import Student
from ..teachers.mysql_teacher_repository import student_from_row
from .model import Company, Site
from .repository import ReferenceRepository

_STUDENT_COLUMNS = """
    student_id, company_id, site_id, student_code, full_name, status,
    current_grade_id, assigned_teacher_id, is_active
"""


class MySQLReferenceRepository(ReferenceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_company(self, company_id: int) -> Optional[Company]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT company_id, company_code, company_name, parent_company_id,
                       address, city, province, is_head_office, is_active
                FROM companies WHERE company_id=%s
                """,
                (company_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Company(
                company_id=int(r["company_id"]),
                company_code=r["company_code"],
                company_name=r["company_name"],
                parent_company_id=optional_int(r.get("parent_company_id")),
                address=r.get("address"),
                city=r.get("city"),
                province=r.get("province"),
                is_head_office=bool(r["is_head_office"]),
                is_active=bool(r["is_active"]),
            )

    def get_site(self, site_id: int) -> Optional[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT site_id, company_id, site_code, site_name, address, city, province,
                       manager_name, is_active
                FROM sites WHERE site_id=%s
                """,
                (site_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Site(
                site_id=int(r["site_id"]),
                company_id=int(r["company_id"]),
                site_code=r["site_code"],
                site_name=r["site_name"],
                address=r.get("address"),
                city=r.get("city"),
                province=r.get("province"),
                manager_name=r.get("manager_name"),
                is_active=bool(r["is_active"]),
            )

    def get_grade(self, grade_id: int) -> Optional[Grade]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT grade_id, company_id, grade_code, grade_name, duration, sort_order, is_active
                FROM grades WHERE grade_id=%s
                """,
                (grade_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Grade(
                grade_id=int(r["grade_id"]),
                company_id=int(r["company_id"]),
                grade_code=r["grade_code"],
                grade_name=r["grade_name"],
                duration=optional_int(r.get("duration")),
                sort_order=optional_int(r.get("sort_order")),
                is_active=bool(r["is_active"]),
            )

    def get_student(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_STUDENT_COLUMNS} FROM students WHERE student_id=%s", (student_id,))
            r = fetchone(cur)
            return student_from_row(r) if r else None

    def list_students_in_grade(self, grade_id: int, *, site_id: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STUDENT_COLUMNS}
                FROM students
                WHERE current_grade_id=%s AND site_id=%s
                ORDER BY full_name
                """,
                (grade_id, site_id),
            )
            return [student_from_row(r) for r in fetchall(cur)]
