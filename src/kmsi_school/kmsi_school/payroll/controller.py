from __future__ import annotations

import csv
import io
from decimal import Decimal

from flask import Flask

from ..container import Container
from ..web import as_date, as_decimal, as_int, body, current_actor, json_errors, login_required, ok, required
from .service import EXPORT_FIELDS, PayrollReportData


def register(app: Flask, container: Container) -> None:
    service = container.payroll_service

    def _write_report_csv(*, data: PayrollReportData, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        for row in data.rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/payrolls", methods=["POST"], endpoint="payroll_draft")
    @login_required
    @json_errors
    def draft():
        data = body()
        payroll = service.draft_payroll(
            current_actor(),
            teacher_id=as_int(required(data, "teacher_id"), "teacher_id"),
            billing_period_id=as_int(required(data, "billing_period_id"), "billing_period_id"),
            allowances=as_decimal(data.get("allowances"), "allowances", default=Decimal("0")),
            insurance=as_decimal(data.get("insurance"), "insurance", default=Decimal("0")),
            other_deductions=as_decimal(data.get("other_deductions"), "other_deductions", default=Decimal("0")),
            notes=data.get("notes"),
        )
        return ok(payroll, status=201)

    @app.route("/api/payrolls/<int:payroll_id>", endpoint="payroll_get")
    @login_required
    @json_errors
    def get(payroll_id: int):
        payroll = service.get(payroll_id)
        return ok(payroll, gross_salary=payroll.gross_salary, is_paid=payroll.is_paid)

    @app.route("/api/payrolls/<int:payroll_id>/approve", methods=["POST"], endpoint="payroll_approve")
    @login_required
    @json_errors
    def approve(payroll_id: int):
        return ok(service.approve(current_actor(), payroll_id))

    @app.route("/api/payrolls/<int:payroll_id>/pay", methods=["POST"], endpoint="payroll_pay")
    @login_required
    @json_errors
    def pay(payroll_id: int):
        data = body()
        payroll = service.pay(
            current_actor(),
            payroll_id,
            payment_date=as_date(required(data, "payment_date"), "payment_date"),
            payment_method=required(data, "payment_method"),
            payment_reference=data.get("payment_reference"),
        )
        return ok(payroll)

    @app.route("/api/payrolls/<int:payroll_id>/revert", methods=["POST"], endpoint="payroll_revert")
    @login_required
    @json_errors
    def revert(payroll_id: int):
        return ok(service.revert(current_actor(), payroll_id))

    @app.route("/api/payrolls/<int:payroll_id>/payslip", endpoint="payroll_payslip")
    @login_required
    @json_errors
    def payslip(payroll_id: int):
        return ok(service.payslip(payroll_id))

    @app.route("/api/billing-periods/<int:period_id>/payroll-summary", endpoint="payroll_period_summary")
    @login_required
    @json_errors
    def period_summary(period_id: int):
        return ok(service.period_summary(period_id))

    @app.route("/api/billing-periods/<int:period_id>/payroll.csv", endpoint="payroll_period_csv")
    @login_required
    @json_errors
    def period_csv(period_id: int):
        data = service.period_report(period_id)
        return _write_report_csv(data=data, filename=f"payroll_period_{period_id}.csv")
