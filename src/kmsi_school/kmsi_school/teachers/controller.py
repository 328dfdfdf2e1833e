from __future__ import annotations

from flask import Flask, request

from ..common import datetime_utils
from ..container import Container
from ..web import as_date, as_time, date_range_args, json_errors, login_required, ok, required


def register(app: Flask, container: Container) -> None:
    @app.route("/api/teachers/<int:teacher_id>/slots", endpoint="teacher_available_slots")
    @login_required
    @json_errors
    def available_slots(teacher_id: int):
        day = as_date(request.args.get("date"), "date", default=datetime_utils.today())
        slots = container.teacher_service.available_slots(teacher_id, day)
        return ok([{"start": start, "end": end} for start, end in slots], date=day)

    @app.route("/api/teachers/<int:teacher_id>/availability", endpoint="teacher_availability")
    @login_required
    @json_errors
    def availability(teacher_id: int):
        args = request.args
        day = as_date(required(args, "date"), "date")
        available = container.teacher_service.is_available(
            teacher_id,
            day,
            as_time(required(args, "start"), "start"),
            as_time(required(args, "end"), "end"),
        )
        return ok({"available": available})

    @app.route("/api/teachers/<int:teacher_id>/performance", endpoint="teacher_performance")
    @login_required
    @json_errors
    def performance(teacher_id: int):
        start, end = date_range_args()
        return ok(container.teacher_service.performance(teacher_id, start_date=start, end_date=end))

    @app.route("/api/teachers/<int:teacher_id>/check", endpoint="teacher_check")
    @login_required
    @json_errors
    def check(teacher_id: int):
        violations = container.teacher_service.check(teacher_id)
        return ok({"valid": not violations, "errors": violations})
