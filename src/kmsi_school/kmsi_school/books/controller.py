from __future__ import annotations

from flask import Flask, request

from ..container import Container
from ..web import as_decimal, as_int, body, current_actor, json_errors, login_required, ok, required


def register(app: Flask, container: Container) -> None:
    service = container.book_service

    @app.route("/api/grades/<int:grade_id>/books", endpoint="books_for_grade")
    @login_required
    @json_errors
    def grade_books(grade_id: int):
        groups = service.grade_books(grade_id)
        return ok(
            {
                status: [{"grade_book": gb, "description": gb.full_description} for gb in mappings]
                for status, mappings in groups.items()
            }
        )

    @app.route("/api/grades/<int:grade_id>/books", methods=["POST"], endpoint="books_assign")
    @login_required
    @json_errors
    def assign(grade_id: int):
        data = body()
        sort_order = data.get("sort_order")
        gb = service.assign_book(
            current_actor(),
            grade_id=grade_id,
            book_id=as_int(required(data, "book_id"), "book_id"),
            is_required=bool(data.get("is_required", True)),
            quantity=as_int(data.get("quantity", 1), "quantity"),
            sort_order=as_int(sort_order, "sort_order") if sort_order is not None else None,
        )
        return ok(gb, status=201)

    @app.route("/api/grade-books/<int:grade_book_id>", methods=["PUT"], endpoint="books_update_mapping")
    @login_required
    @json_errors
    def update_mapping(grade_book_id: int):
        data = body()
        actor = current_actor()
        gb = None
        if "quantity" in data:
            gb = service.change_quantity(actor, grade_book_id, as_int(data["quantity"], "quantity"))
        if "is_required" in data:
            gb = service.change_requirement(
                actor,
                grade_book_id,
                is_required=bool(data["is_required"]),
                update_sort_order=bool(data.get("update_sort_order", True)),
            )
        if gb is None:
            return ok(None, message="Nothing to update")
        return ok(gb)

    @app.route("/api/grade-books/<int:grade_book_id>", methods=["DELETE"], endpoint="books_remove_mapping")
    @login_required
    @json_errors
    def remove_mapping(grade_book_id: int):
        service.remove_book(current_actor(), grade_book_id)
        return ok(None)

    @app.route("/api/grades/<int:grade_id>/book-cost", endpoint="books_grade_cost")
    @login_required
    @json_errors
    def grade_cost(grade_id: int):
        site_id = as_int(required(request.args, "site_id"), "site_id")
        include_optional = request.args.get("include_optional", "").lower() in ("1", "true", "yes")
        total = service.grade_cost(grade_id, site_id, include_optional=include_optional)
        return ok({"grade_id": grade_id, "site_id": site_id, "total_cost": total})

    @app.route("/api/requisitions/<int:requisition_id>/lines", endpoint="books_requisition_lines")
    @login_required
    @json_errors
    def requisition_lines(requisition_id: int):
        lines = service.requisition_lines(requisition_id)
        return ok([{"line": d, "status": d.status, "total_cost": d.total_cost} for d in lines])

    @app.route("/api/requisitions/<int:requisition_id>/lines", methods=["POST"], endpoint="books_request")
    @login_required
    @json_errors
    def request_books(requisition_id: int):
        data = body()
        detail = service.request_books(
            current_actor(),
            requisition_id=requisition_id,
            book_id=as_int(required(data, "book_id"), "book_id"),
            quantity=as_int(required(data, "quantity"), "quantity"),
            notes=data.get("notes"),
        )
        return ok(detail, status=201)

    @app.route("/api/requisition-lines/<int:detail_id>/approve", methods=["POST"], endpoint="books_approve_line")
    @login_required
    @json_errors
    def approve_line(detail_id: int):
        quantity = as_int(required(body(), "quantity"), "quantity")
        detail = service.approve_line(current_actor(), detail_id, quantity)
        return ok(detail, status_label=detail.status)

    @app.route("/api/requisition-lines/<int:detail_id>/fulfil", methods=["POST"], endpoint="books_fulfil_line")
    @login_required
    @json_errors
    def fulfil_line(detail_id: int):
        data = body()
        detail = service.fulfil_line(
            current_actor(),
            detail_id,
            as_int(required(data, "quantity"), "quantity"),
            unit_cost=as_decimal(data.get("unit_cost"), "unit_cost"),
        )
        return ok(detail, status_label=detail.status)
