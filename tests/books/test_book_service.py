from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from kmsi_school.books.model import Book, BookPrice, BookRequisitionDetail
from kmsi_school.books.service import BookService
from kmsi_school.core.enums import RequisitionLineStatus
from kmsi_school.core.exceptions import InvalidOperationError, NotFoundError, ValidationError
from kmsi_school.grades.model import Grade
from tests.fakes import InMemoryBooks, InMemoryReferences

PIANO = Book(
    book_id=5,
    company_id=1,
    book_code="PA-1",
    book_title="Piano Adventures 1",
    category="Method",
    prices=(
        BookPrice(book_price_id=1, book_id=5, site_id=1, price=Decimal("120000"), effective_date=date(2024, 1, 1)),
        BookPrice(book_price_id=2, book_id=5, site_id=1, price=Decimal("150000"), effective_date=date(2025, 1, 1)),
    ),
)
THEORY = Book(
    book_id=6,
    company_id=1,
    book_code="TH-1",
    book_title="Theory Workbook",
    prices=(
        BookPrice(book_price_id=3, book_id=6, site_id=1, price=Decimal("50000"), effective_date=date(2025, 1, 1)),
        BookPrice(
            book_price_id=4,
            book_id=6,
            site_id=1,
            price=Decimal("90000"),
            effective_date=date(2025, 2, 1),
            expiry_date=date(2025, 2, 28),
        ),
    ),
)
UNPRICED = Book(book_id=7, company_id=1, book_code="SB-1", book_title="Songbook")


@pytest.fixture
def books():
    return InMemoryBooks(books={5: PIANO, 6: THEORY, 7: UNPRICED})


@pytest.fixture
def service(books, audit):
    references = InMemoryReferences(
        grades={1: Grade(grade_id=1, company_id=1, grade_code="G1", grade_name="Grade 1")}
    )
    return BookService(books, references, audit)


def test_assign_and_group_by_requirement(service, actor):
    service.assign_book(actor, grade_id=1, book_id=6, is_required=False, quantity=2, sort_order=100)
    service.assign_book(actor, grade_id=1, book_id=5, sort_order=1)
    service.assign_book(actor, grade_id=1, book_id=7, sort_order=2)

    groups = service.grade_books(1)

    assert [gb.book.book_title for gb in groups["Required"]] == ["Piano Adventures 1", "Songbook"]
    assert [gb.book_id for gb in groups["Optional"]] == [6]


def test_assigning_same_book_twice_is_rejected(service, actor):
    service.assign_book(actor, grade_id=1, book_id=5)

    with pytest.raises(ValidationError, match="Piano Adventures 1 is already assigned to Grade 1"):
        service.assign_book(actor, grade_id=1, book_id=5)


def test_assign_unknown_book_or_grade(service, actor):
    with pytest.raises(NotFoundError):
        service.assign_book(actor, grade_id=1, book_id=404)
    with pytest.raises(NotFoundError):
        service.grade_books(404)


def test_grade_cost_uses_current_prices(service, actor):
    service.assign_book(actor, grade_id=1, book_id=5, sort_order=1)
    service.assign_book(actor, grade_id=1, book_id=6, is_required=False, quantity=2, sort_order=100)
    service.assign_book(actor, grade_id=1, book_id=7)

    assert service.grade_cost(1, 1) == Decimal("150000")
    assert service.grade_cost(1, 1, include_optional=True) == Decimal("250000")
    assert service.grade_cost(1, 2, include_optional=True) == Decimal("0")


def test_change_quantity_bounds(service, actor):
    gb = service.assign_book(actor, grade_id=1, book_id=5)

    with pytest.raises(InvalidOperationError):
        service.change_quantity(actor, gb.grade_book_id, 0)
    with pytest.raises(ValidationError, match="excessive"):
        service.change_quantity(actor, gb.grade_book_id, 20)

    assert service.change_quantity(actor, gb.grade_book_id, 3).quantity == 3


def test_change_requirement_moves_sort_order(service, actor):
    gb = service.assign_book(actor, grade_id=1, book_id=5, sort_order=1)

    optional = service.change_requirement(actor, gb.grade_book_id, is_required=False)
    assert (optional.is_required, optional.sort_order) == (False, 100)

    required = service.change_requirement(actor, gb.grade_book_id, is_required=True)
    assert required.sort_order == 1


def test_remove_book_is_audited(service, actor, books, audit_logs):
    gb = service.assign_book(actor, grade_id=1, book_id=5)

    service.remove_book(actor, gb.grade_book_id)

    assert books.grade_books == {}
    assert audit_logs.logs[-1].action == "Delete"
    assert audit_logs.logs[-1].new_values is None


def test_request_quantity_is_bounded(service, actor):
    with pytest.raises(ValidationError):
        service.request_books(actor, requisition_id=1, book_id=5, quantity=10001)
    with pytest.raises(ValidationError):
        service.request_books(actor, requisition_id=1, book_id=5, quantity=0)
    with pytest.raises(NotFoundError):
        service.request_books(actor, requisition_id=1, book_id=404, quantity=1)


def test_line_approval_and_fulfilment(service, actor):
    line = service.request_books(actor, requisition_id=1, book_id=5, quantity=10)
    assert line.status is RequisitionLineStatus.PENDING_APPROVAL

    with pytest.raises(InvalidOperationError):
        service.approve_line(actor, line.requisition_detail_id, 12)
    service.approve_line(actor, line.requisition_detail_id, 8)
    assert line.status is RequisitionLineStatus.APPROVED_PENDING_FULFILLMENT

    with pytest.raises(InvalidOperationError):
        service.fulfil_line(actor, line.requisition_detail_id, 9, unit_cost=Decimal("150000"))

    service.fulfil_line(actor, line.requisition_detail_id, 5, unit_cost=Decimal("150000"))
    assert line.status is RequisitionLineStatus.PARTIALLY_FULFILLED

    service.fulfil_line(actor, line.requisition_detail_id, 8)
    assert line.status is RequisitionLineStatus.FULFILLED
    assert line.total_cost == Decimal("1200000")
    assert line.is_completed()


def test_fulfilment_needs_unit_cost(service, actor):
    line = service.request_books(actor, requisition_id=1, book_id=5, quantity=4)
    service.approve_line(actor, line.requisition_detail_id, 4)

    with pytest.raises(ValidationError, match="Unit cost"):
        service.fulfil_line(actor, line.requisition_detail_id, 2)


def test_reduced_approval_caps_fulfilled():
    line = BookRequisitionDetail(requisition_id=1, book_id=5, requested_quantity=10, unit_cost=Decimal("1000"))
    line.update_approved_quantity(8)
    line.update_fulfilled_quantity(8)

    assert line.update_approved_quantity(6)
    assert line.fulfilled_quantity == 6
    assert line.validate() == []


def test_requisition_lines(service, actor):
    service.request_books(actor, requisition_id=1, book_id=5, quantity=2)
    service.request_books(actor, requisition_id=1, book_id=6, quantity=3)
    service.request_books(actor, requisition_id=2, book_id=6, quantity=1)

    assert [d.book_id for d in service.requisition_lines(1)] == [5, 6]
