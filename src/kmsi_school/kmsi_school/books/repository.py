from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Book, BookRequisitionDetail, GradeBook


class BookRepository(Protocol):
    def get_book(self, book_id: int) -> Optional[Book]:
        raise NotImplementedError

    def get_grade_book(self, grade_book_id: int) -> Optional[GradeBook]:
        raise NotImplementedError

    def list_grade_books(self, grade_id: int) -> Sequence[GradeBook]:
        raise NotImplementedError

    def add_grade_book(self, grade_book: GradeBook) -> int:
        raise NotImplementedError

    def update_grade_book(self, grade_book: GradeBook) -> bool:
        raise NotImplementedError

    def delete_grade_book(self, grade_book_id: int) -> bool:
        raise NotImplementedError

    def get_requisition_detail(self, detail_id: int) -> Optional[BookRequisitionDetail]:
        raise NotImplementedError

    def list_requisition_details(self, requisition_id: int) -> Sequence[BookRequisitionDetail]:
        raise NotImplementedError

    def add_requisition_detail(self, detail: BookRequisitionDetail) -> int:
        raise NotImplementedError

    def update_requisition_detail(self, detail: BookRequisitionDetail) -> bool:
        raise NotImplementedError
