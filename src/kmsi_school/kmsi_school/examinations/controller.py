from __future__ import annotations

from flask import Flask

from ..container import Container
from ..core.constants import DEFAULT_EXAM_CAPACITY
from ..web import (
    as_date,
    as_decimal,
    as_int,
    as_time,
    body,
    current_actor,
    json_errors,
    login_required,
    ok,
    required,
)


def register(app: Flask, container: Container) -> None:
    service = container.examination_service

    @app.route("/api/examinations", methods=["POST"], endpoint="exam_create")
    @login_required
    @json_errors
    def create():
        data = body()
        exam = service.create(
            current_actor(),
            site_id=as_int(required(data, "site_id"), "site_id"),
            grade_id=as_int(required(data, "grade_id"), "grade_id"),
            examiner_teacher_id=as_int(required(data, "examiner_teacher_id"), "examiner_teacher_id"),
            exam_name=required(data, "exam_name"),
            exam_date=as_date(required(data, "exam_date"), "exam_date"),
            start_time=as_time(required(data, "start_time"), "start_time"),
            end_time=as_time(required(data, "end_time"), "end_time"),
            location=data.get("location"),
            max_capacity=as_int(data.get("max_capacity", DEFAULT_EXAM_CAPACITY), "max_capacity"),
        )
        return ok(exam, status=201)

    @app.route("/api/examinations/<int:examination_id>", endpoint="exam_get")
    @login_required
    @json_errors
    def get(examination_id: int):
        exam = service.get(examination_id)
        return ok(
            exam,
            registrations=exam.student_examinations or [],
            available_capacity=exam.available_capacity,
            indicator=exam.exam_status_indicator,
        )

    @app.route("/api/examinations/<int:examination_id>/status", methods=["POST"], endpoint="exam_change_status")
    @login_required
    @json_errors
    def change_status(examination_id: int):
        exam = service.change_status(current_actor(), examination_id, required(body(), "status"))
        return ok(exam)

    @app.route(
        "/api/examinations/<int:examination_id>/registrations", methods=["POST"], endpoint="exam_register_student"
    )
    @login_required
    @json_errors
    def register_student(examination_id: int):
        student_id = as_int(required(body(), "student_id"), "student_id")
        return ok(service.register_student(current_actor(), examination_id, student_id), status=201)

    @app.route("/api/examinations/<int:examination_id>/eligible-students", endpoint="exam_eligible_students")
    @login_required
    @json_errors
    def eligible_students(examination_id: int):
        return ok(service.eligible_students(examination_id))

    @app.route("/api/examinations/<int:examination_id>/statistics", endpoint="exam_statistics")
    @login_required
    @json_errors
    def statistics(examination_id: int):
        return ok(service.statistics(examination_id))

    @app.route("/api/examinations/<int:examination_id>/results", endpoint="exam_results")
    @login_required
    @json_errors
    def results(examination_id: int):
        return ok(service.results(examination_id))

    @app.route(
        "/api/student-examinations/<int:registration_id>/attendance", methods=["POST"], endpoint="exam_attendance"
    )
    @login_required
    @json_errors
    def record_attendance(registration_id: int):
        data = body()
        registration = service.record_attendance(
            current_actor(),
            registration_id,
            status=required(data, "status"),
            start_time=as_time(data.get("start_time"), "start_time"),
        )
        return ok(registration)

    @app.route("/api/student-examinations/<int:registration_id>/complete", methods=["POST"], endpoint="exam_complete")
    @login_required
    @json_errors
    def complete(registration_id: int):
        end_time = as_time(required(body(), "end_time"), "end_time")
        return ok(service.complete(current_actor(), registration_id, end_time=end_time))

    @app.route("/api/student-examinations/<int:registration_id>/grade", methods=["POST"], endpoint="exam_grade")
    @login_required
    @json_errors
    def grade(registration_id: int):
        data = body()
        registration = service.grade(
            current_actor(),
            registration_id,
            score=as_decimal(required(data, "score"), "score"),
            notes=data.get("notes"),
        )
        return ok(registration)

    @app.route(
        "/api/student-examinations/<int:registration_id>/certificate",
        methods=["POST"],
        endpoint="exam_issue_certificate",
    )
    @login_required
    @json_errors
    def issue_certificate(registration_id: int):
        cert = service.issue_certificate(current_actor(), registration_id, signed_by=body().get("signed_by"))
        return ok(cert, status=201)

    @app.route("/api/student-examinations/<int:registration_id>/retake", methods=["POST"], endpoint="exam_retake")
    @login_required
    @json_errors
    def schedule_retake(registration_id: int):
        new_exam_id = as_int(required(body(), "examination_id"), "examination_id")
        return ok(service.schedule_retake(current_actor(), registration_id, new_exam_id), status=201)

    @app.route("/api/students/<int:student_id>/examinations", endpoint="exam_student_history")
    @login_required
    @json_errors
    def student_history(student_id: int):
        return ok(service.student_history(student_id))
