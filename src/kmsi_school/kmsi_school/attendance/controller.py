from __future__ import annotations

from flask import Flask, request

from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..web import (
    as_date,
    as_int,
    as_time,
    body,
    current_actor,
    date_range_args,
    json_errors,
    login_required,
    ok,
    required,
)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/arrivals", methods=["POST"], endpoint="attendance_record_arrival")
    @login_required
    @json_errors
    def record_arrival():
        data = body()
        record = container.attendance_service.record_arrival(
            current_actor(),
            class_schedule_id=as_int(required(data, "class_schedule_id"), "class_schedule_id"),
            student_id=as_int(required(data, "student_id"), "student_id"),
            arrived_at=as_time(required(data, "arrived_at"), "arrived_at"),
            ended_at=as_time(required(data, "ended_at"), "ended_at"),
            lesson_date=as_date(data.get("lesson_date"), "lesson_date"),
        )
        return ok(record, status=201)

    @app.route("/api/attendance/absences", methods=["POST"], endpoint="attendance_mark_absent")
    @login_required
    @json_errors
    def mark_absent():
        data = body()
        record = container.attendance_service.mark_absent(
            current_actor(),
            class_schedule_id=as_int(required(data, "class_schedule_id"), "class_schedule_id"),
            student_id=as_int(required(data, "student_id"), "student_id"),
            is_excused=bool(data.get("is_excused", False)),
        )
        return ok(record)

    @app.route("/api/attendance/<int:attendance_id>/lesson", methods=["PUT"], endpoint="attendance_lesson_details")
    @login_required
    @json_errors
    def lesson_details(attendance_id: int):
        data = body()
        score = data.get("performance_score")
        record = container.attendance_service.add_lesson_details(
            current_actor(),
            attendance_id,
            topic=required(data, "topic"),
            progress=data.get("progress"),
            teacher_notes=data.get("teacher_notes"),
            performance_score=as_int(score, "performance_score") if score is not None else None,
            homework=data.get("homework"),
            next_prep=data.get("next_prep"),
        )
        return ok(record)

    @app.route("/api/teachers/<int:teacher_id>/attendance-summary", endpoint="attendance_teacher_summary")
    @login_required
    @json_errors
    def teacher_summary(teacher_id: int):
        start, end = date_range_args()
        return ok(container.attendance_service.teacher_summary(teacher_id, start_date=start, end_date=end))

    @app.route("/api/students/<int:student_id>/attendance", endpoint="attendance_student_history")
    @login_required
    @json_errors
    def student_history(student_id: int):
        limit = as_int(request.args.get("limit", DEFAULT_HISTORY_LIMIT), "limit")
        return ok(container.attendance_service.student_history(student_id, limit=limit))
