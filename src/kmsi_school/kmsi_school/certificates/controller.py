from __future__ import annotations

import io

from flask import Flask, send_file

from ..container import Container
from ..web import body, current_actor, date_range_args, json_errors, login_required, ok, required


def register(app: Flask, container: Container) -> None:
    service = container.certificate_service

    def _describe(cert):
        return {
            "certificate_type": cert.certificate_type,
            "is_valid": cert.is_valid,
            "age_category": cert.age_category,
            "print_frequency": cert.print_frequency,
        }

    @app.route("/api/certificates/<int:certificate_id>", endpoint="certificate_get")
    @login_required
    @json_errors
    def get(certificate_id: int):
        cert = service.get(certificate_id)
        return ok(cert, **_describe(cert))

    @app.route("/api/certificates/verify/<certificate_number>", endpoint="certificate_verify")
    @json_errors
    def verify(certificate_number: str):
        # public: printed QR codes point here
        cert = service.verify(certificate_number)
        return ok(
            {
                "certificate_number": cert.certificate_number,
                "issue_date": cert.issue_date,
                "certificate_title": cert.certificate_title,
                "status": cert.status,
                "is_valid": cert.is_valid,
            }
        )

    @app.route("/api/certificates/<int:certificate_id>/revoke", methods=["POST"], endpoint="certificate_revoke")
    @login_required
    @json_errors
    def revoke(certificate_id: int):
        cert = service.revoke(current_actor(), certificate_id, reason=required(body(), "reason"))
        return ok(cert)

    @app.route("/api/certificates/<int:certificate_id>/replace", methods=["POST"], endpoint="certificate_replace")
    @login_required
    @json_errors
    def replace(certificate_id: int):
        cert = service.replace(current_actor(), certificate_id, signed_by=body().get("signed_by"))
        return ok(cert, status=201)

    @app.route("/api/certificates/<int:certificate_id>/print", methods=["POST"], endpoint="certificate_print")
    @login_required
    @json_errors
    def record_print(certificate_id: int):
        return ok(service.record_print(current_actor(), certificate_id))

    @app.route("/api/certificates/<int:certificate_id>/qr.png", endpoint="certificate_qr")
    @login_required
    @json_errors
    def qr_image(certificate_id: int):
        buf = io.BytesIO(service.qr_png(certificate_id))
        return send_file(buf, mimetype="image/png")

    @app.route("/api/certificates/statistics", endpoint="certificate_statistics")
    @login_required
    @json_errors
    def statistics():
        start, end = date_range_args()
        return ok(service.statistics(start_date=start, end_date=end))

    @app.route("/api/students/<int:student_id>/certificates", endpoint="certificate_for_student")
    @login_required
    @json_errors
    def for_student(student_id: int):
        return ok(service.for_student(student_id))
