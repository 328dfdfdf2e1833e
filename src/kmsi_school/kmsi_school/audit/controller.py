from __future__ import annotations

from flask import Flask, request, session

from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..web import as_int, json_errors, login_required, ok


def register(app: Flask, container: Container) -> None:
    def _entry(log):
        return {
            "log": log,
            "summary": log.summary,
            "changes": log.change_summary(),
            "time_ago": log.time_ago,
            "browser": log.browser,
            "operating_system": log.operating_system,
        }

    @app.route("/api/audit/<table_name>/<int:record_id>", endpoint="audit_history")
    @login_required
    @json_errors
    def history(table_name: str, record_id: int):
        return ok([_entry(log) for log in container.audit_trail.history(table_name, record_id)])

    @app.route("/api/audit/recent", endpoint="audit_recent")
    @login_required
    @json_errors
    def recent():
        limit = as_int(request.args.get("limit", DEFAULT_HISTORY_LIMIT), "limit")
        company_id = int(session.get("company_id") or 0)
        return ok([_entry(log) for log in container.audit_trail.recent(company_id, limit=limit)])
