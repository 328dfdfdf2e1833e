from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, optional_decimal, optional_int
from .model import BillingPeriod, TeacherPayroll
from .repository import PayrollRepository

_COLUMNS = """
    payroll_id, company_id, site_id, billing_period_id, teacher_id, payroll_number, payroll_date,
    total_teaching_hours, hourly_rate, basic_salary, allowances, deductions, tax, net_salary,
    status, payment_date, payment_method, payment_reference, notes,
    created_date, created_by, updated_date, updated_by
"""


def _row_to_payroll(r: dict) -> TeacherPayroll:
    return TeacherPayroll(
        payroll_id=int(r["payroll_id"]),
        company_id=int(r["company_id"]),
        site_id=int(r["site_id"]),
        billing_period_id=int(r["billing_period_id"]),
        teacher_id=int(r["teacher_id"]),
        payroll_number=r["payroll_number"],
        payroll_date=r["payroll_date"],
        total_teaching_hours=optional_decimal(r.get("total_teaching_hours")),
        hourly_rate=optional_decimal(r.get("hourly_rate")),
        basic_salary=optional_decimal(r.get("basic_salary")),
        allowances=optional_decimal(r.get("allowances")),
        deductions=optional_decimal(r.get("deductions")),
        tax=optional_decimal(r.get("tax")),
        net_salary=optional_decimal(r.get("net_salary")),
        status=r["status"],
        payment_date=r.get("payment_date"),
        payment_method=r.get("payment_method"),
        payment_reference=r.get("payment_reference"),
        notes=r.get("notes"),
        created_date=r.get("created_date"),
        created_by=optional_int(r.get("created_by")),
        updated_date=r.get("updated_date"),
        updated_by=optional_int(r.get("updated_by")),
    )


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, payroll_id: int) -> Optional[TeacherPayroll]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM teacher_payrolls WHERE payroll_id=%s", (payroll_id,))
            r = fetchone(cur)
            return _row_to_payroll(r) if r else None

    def get_for_teacher_and_period(self, teacher_id: int, billing_period_id: int) -> Optional[TeacherPayroll]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM teacher_payrolls WHERE teacher_id=%s AND billing_period_id=%s",
                (teacher_id, billing_period_id),
            )
            r = fetchone(cur)
            return _row_to_payroll(r) if r else None

    def list_for_period(self, billing_period_id: int) -> Sequence[TeacherPayroll]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM teacher_payrolls WHERE billing_period_id=%s ORDER BY payroll_number",
                (billing_period_id,),
            )
            return [_row_to_payroll(r) for r in fetchall(cur)]

    def list_numbers(self, prefix: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT payroll_number FROM teacher_payrolls WHERE payroll_number LIKE %s", (f"{prefix}%",))
            return [r["payroll_number"] for r in fetchall(cur)]

    def add(self, payroll: TeacherPayroll) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO teacher_payrolls(
                    company_id, site_id, billing_period_id, teacher_id, payroll_number, payroll_date,
                    total_teaching_hours, hourly_rate, basic_salary, allowances, deductions, tax,
                    net_salary, status, notes, created_by
                )
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    payroll.company_id,
                    payroll.site_id,
                    payroll.billing_period_id,
                    payroll.teacher_id,
                    payroll.payroll_number,
                    payroll.payroll_date,
                    payroll.total_teaching_hours,
                    payroll.hourly_rate,
                    payroll.basic_salary,
                    payroll.allowances,
                    payroll.deductions,
                    payroll.tax,
                    payroll.net_salary,
                    payroll.status,
                    payroll.notes,
                    payroll.created_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, payroll: TeacherPayroll) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE teacher_payrolls
                SET total_teaching_hours=%s, hourly_rate=%s, basic_salary=%s, allowances=%s,
                    deductions=%s, tax=%s, net_salary=%s, status=%s, payment_date=%s,
                    payment_method=%s, payment_reference=%s, notes=%s, updated_date=NOW(), updated_by=%s
                WHERE payroll_id=%s
                """,
                (
                    payroll.total_teaching_hours,
                    payroll.hourly_rate,
                    payroll.basic_salary,
                    payroll.allowances,
                    payroll.deductions,
                    payroll.tax,
                    payroll.net_salary,
                    payroll.status,
                    payroll.payment_date,
                    payroll.payment_method,
                    payroll.payment_reference,
                    payroll.notes,
                    payroll.updated_by,
                    payroll.payroll_id,
                ),
            )
            return cur.rowcount > 0

    def get_billing_period(self, billing_period_id: int) -> Optional[BillingPeriod]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT billing_period_id, company_id, period_name, start_date, end_date, due_date,
                       status, generated_date, finalized_date, created_date, created_by
                FROM billing_periods
                WHERE billing_period_id=%s
                """,
                (billing_period_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return BillingPeriod(
                billing_period_id=int(r["billing_period_id"]),
                company_id=int(r["company_id"]),
                period_name=r["period_name"],
                start_date=r["start_date"],
                end_date=r["end_date"],
                due_date=r["due_date"],
                status=r["status"],
                generated_date=r.get("generated_date"),
                finalized_date=r.get("finalized_date"),
                created_date=r.get("created_date"),
                created_by=optional_int(r.get("created_by")),
            )
