from __future__ import annotations

from flask import Flask, request

from ..container import Container
from ..core.constants import PROMOTION_MIN_COMPLETION
from ..web import as_date, as_decimal, as_int, body, current_actor, json_errors, login_required, ok, required


def register(app: Flask, container: Container) -> None:
    service = container.grade_progress_service

    def _progress(history):
        return {
            "progress_status": history.progress_status,
            "milestones": history.milestones_achieved(),
            "duration": history.duration_display,
        }

    @app.route("/api/grade-histories", methods=["POST"], endpoint="grade_enroll")
    @login_required
    @json_errors
    def enroll():
        data = body()
        history = service.enroll(
            current_actor(),
            student_id=as_int(required(data, "student_id"), "student_id"),
            grade_id=as_int(required(data, "grade_id"), "grade_id"),
            start_date=as_date(data.get("start_date"), "start_date"),
            make_current=bool(data.get("make_current", True)),
            notes=data.get("notes"),
        )
        return ok(history, status=201)

    @app.route("/api/grade-histories/<int:history_id>", endpoint="grade_history_get")
    @login_required
    @json_errors
    def get(history_id: int):
        history = service.get(history_id)
        return ok(history, **_progress(history))

    @app.route("/api/grade-histories/<int:history_id>/completion", methods=["PUT"], endpoint="grade_completion")
    @login_required
    @json_errors
    def update_completion(history_id: int):
        percentage = as_decimal(required(body(), "percentage"), "percentage")
        history = service.update_completion(current_actor(), history_id, percentage)
        return ok(history, **_progress(history))

    @app.route("/api/grade-histories/<int:history_id>/current", methods=["POST"], endpoint="grade_set_current")
    @login_required
    @json_errors
    def set_current(history_id: int):
        return ok(service.set_current(current_actor(), history_id))

    @app.route("/api/grade-histories/<int:history_id>/complete", methods=["POST"], endpoint="grade_complete")
    @login_required
    @json_errors
    def complete(history_id: int):
        completion_date = as_date(body().get("completion_date"), "completion_date")
        return ok(service.complete(current_actor(), history_id, completion_date=completion_date))

    @app.route("/api/grade-histories/<int:history_id>/extend", methods=["POST"], endpoint="grade_extend")
    @login_required
    @json_errors
    def extend(history_id: int):
        return ok(service.extend(current_actor(), history_id, reason=body().get("reason")))

    @app.route("/api/students/<int:student_id>/progression", endpoint="grade_student_progression")
    @login_required
    @json_errors
    def progression(student_id: int):
        return ok(service.progression(student_id))

    @app.route("/api/grades/<int:grade_id>/completion-statistics", endpoint="grade_completion_statistics")
    @login_required
    @json_errors
    def statistics(grade_id: int):
        return ok(service.statistics(grade_id))

    @app.route("/api/grades/<int:grade_id>/promotion-candidates", endpoint="grade_promotion_candidates")
    @login_required
    @json_errors
    def promotion_candidates(grade_id: int):
        minimum = as_int(request.args.get("minimum", PROMOTION_MIN_COMPLETION), "minimum")
        return ok(service.promotion_candidates(grade_id, minimum_completion=minimum))
