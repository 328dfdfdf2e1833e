from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Sequence

from ..audit.service import Actor, AuditTrail
from ..audit.snapshots import snapshot
from ..core.constants import MAX_REQUISITION_QUANTITY
from ..core.exceptions import InvalidOperationError, NotFoundError, ValidationError
from ..organization.repository import ReferenceRepository
from ..validation import ensure_valid
from .model import (
    BookRequisitionDetail,
    GradeBook,
    calculate_grade_total_cost,
    group_by_requirement,
    is_mapping_unique,
)
from .repository import BookRepository

logger = logging.getLogger(__name__)

GRADE_BOOKS = "GradeBooks"
REQUISITION_DETAILS = "BookRequisitionDetails"


class BookService:
    """Books required per grade and the approval/fulfilment of requisition lines."""

    def __init__(self, books: BookRepository, references: ReferenceRepository, audit: AuditTrail):
        self._books = books
        self._references = references
        self._audit = audit

    # ---- grade books --------------------------------------------------

    def _grade_book(self, grade_book_id: int) -> GradeBook:
        gb = self._books.get_grade_book(grade_book_id)
        if not gb:
            raise NotFoundError(f"Grade book {grade_book_id} not found")
        return gb

    def grade_books(self, grade_id: int) -> dict[str, list[GradeBook]]:
        """Mappings of a grade grouped into Required and Optional."""
        grade = self._references.get_grade(grade_id)
        if not grade:
            raise NotFoundError(f"Grade {grade_id} not found")
        mappings = list(self._books.list_grade_books(grade_id))
        for gb in mappings:
            gb.grade = grade
        return group_by_requirement(mappings)

    def assign_book(
        self,
        actor: Actor,
        *,
        grade_id: int,
        book_id: int,
        is_required: bool = True,
        quantity: int = 1,
        sort_order: Optional[int] = None,
    ) -> GradeBook:
        grade = self._references.get_grade(grade_id)
        if not grade:
            raise NotFoundError(f"Grade {grade_id} not found")
        book = self._books.get_book(book_id)
        if not book:
            raise NotFoundError(f"Book {book_id} not found")

        gb = GradeBook.create_mapping(
            grade_id,
            book_id,
            is_required=is_required,
            quantity=quantity,
            sort_order=sort_order,
            created_by=actor.user_id,
        )
        gb.grade, gb.book = grade, book
        if not is_mapping_unique(gb, self._books.list_grade_books(grade_id)):
            raise ValidationError(f"{book.book_title} is already assigned to {grade.grade_name}")
        ensure_valid(gb)

        gb.grade_book_id = self._books.add_grade_book(gb)
        self._audit.record_insert(actor, table_name=GRADE_BOOKS, record_id=gb.grade_book_id, new_values=gb)
        logger.info("book %s assigned to grade %s", book_id, grade_id)
        return gb

    def change_quantity(self, actor: Actor, grade_book_id: int, quantity: int) -> GradeBook:
        gb = self._grade_book(grade_book_id)
        before = snapshot(gb)

        result = gb.update_quantity(quantity)
        if not result:
            logger.warning("quantity change rejected for grade book %s: %s", grade_book_id, result.reason)
            raise InvalidOperationError(result.reason)
        ensure_valid(gb)

        self._books.update_grade_book(gb)
        self._audit.record_update(
            actor, table_name=GRADE_BOOKS, record_id=grade_book_id, old_values=before, new_values=gb
        )
        return gb

    def change_requirement(
        self, actor: Actor, grade_book_id: int, *, is_required: bool, update_sort_order: bool = True
    ) -> GradeBook:
        gb = self._grade_book(grade_book_id)
        before = snapshot(gb)
        gb.update_requirement(is_required, update_sort_order=update_sort_order)
        ensure_valid(gb)

        self._books.update_grade_book(gb)
        self._audit.record_update(
            actor, table_name=GRADE_BOOKS, record_id=grade_book_id, old_values=before, new_values=gb
        )
        logger.info("grade book %s is now %s", grade_book_id, gb.requirement_status)
        return gb

    def remove_book(self, actor: Actor, grade_book_id: int) -> None:
        gb = self._grade_book(grade_book_id)
        self._books.delete_grade_book(grade_book_id)
        self._audit.record_delete(actor, table_name=GRADE_BOOKS, record_id=grade_book_id, old_values=gb)
        logger.info("grade book %s removed", grade_book_id)

    def grade_cost(self, grade_id: int, site_id: int, *, include_optional: bool = False) -> Decimal:
        return calculate_grade_total_cost(
            self._books.list_grade_books(grade_id), site_id, include_optional=include_optional
        )

    # ---- requisition lines --------------------------------------------

    def _detail(self, detail_id: int) -> BookRequisitionDetail:
        detail = self._books.get_requisition_detail(detail_id)
        if not detail:
            raise NotFoundError(f"Requisition line {detail_id} not found")
        return detail

    def request_books(
        self,
        actor: Actor,
        *,
        requisition_id: int,
        book_id: int,
        quantity: int,
        notes: Optional[str] = None,
    ) -> BookRequisitionDetail:
        if quantity > MAX_REQUISITION_QUANTITY:
            raise ValidationError(f"Requested quantity cannot exceed {MAX_REQUISITION_QUANTITY}")
        book = self._books.get_book(book_id)
        if not book:
            raise NotFoundError(f"Book {book_id} not found")

        detail = BookRequisitionDetail(
            requisition_id=requisition_id,
            book_id=book_id,
            requested_quantity=quantity,
            notes=notes,
        )
        detail.book = book
        ensure_valid(detail)

        detail.requisition_detail_id = self._books.add_requisition_detail(detail)
        self._audit.record_insert(
            actor, table_name=REQUISITION_DETAILS, record_id=detail.requisition_detail_id, new_values=detail
        )
        logger.info("requisition %s: %s x book %s requested", requisition_id, quantity, book_id)
        return detail

    def approve_line(self, actor: Actor, detail_id: int, quantity: int) -> BookRequisitionDetail:
        detail = self._detail(detail_id)
        before = snapshot(detail)

        result = detail.update_approved_quantity(quantity)
        if not result:
            logger.warning("approval rejected for requisition line %s: %s", detail_id, result.reason)
            raise InvalidOperationError(result.reason)
        ensure_valid(detail)

        self._books.update_requisition_detail(detail)
        self._audit.record_update(
            actor, table_name=REQUISITION_DETAILS, record_id=detail_id, old_values=before, new_values=detail
        )
        logger.info("requisition line %s approved for %s", detail_id, quantity)
        return detail

    def fulfil_line(self, actor: Actor, detail_id: int, quantity: int, *, unit_cost=None) -> BookRequisitionDetail:
        detail = self._detail(detail_id)
        before = snapshot(detail)

        result = detail.update_fulfilled_quantity(quantity, unit_cost)
        if not result:
            logger.warning("fulfilment rejected for requisition line %s: %s", detail_id, result.reason)
            raise InvalidOperationError(result.reason)
        ensure_valid(detail)

        self._books.update_requisition_detail(detail)
        self._audit.record_update(
            actor, table_name=REQUISITION_DETAILS, record_id=detail_id, old_values=before, new_values=detail
        )
        logger.info("requisition line %s fulfilled %s (%s)", detail_id, quantity, detail.status.value)
        return detail

    def requisition_lines(self, requisition_id: int) -> Sequence[BookRequisitionDetail]:
        return self._books.list_requisition_details(requisition_id)
