from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, optional_decimal, optional_int
from .model import Book, BookPrice, BookRequisitionDetail, GradeBook
from .repository import BookRepository

_BOOK_COLUMNS = "book_id, company_id, book_code, book_title, category, author, is_active"

_GRADE_BOOK_COLUMNS = """
    grade_book_id, grade_id, book_id, is_required, quantity, sort_order, created_date, created_by
"""

_DETAIL_COLUMNS = """
    requisition_detail_id, requisition_id, book_id, requested_quantity, approved_quantity,
    fulfilled_quantity, unit_cost, notes
"""


def _row_to_price(r: dict) -> BookPrice:
    return BookPrice(
        book_price_id=int(r["book_price_id"]),
        book_id=int(r["book_id"]),
        site_id=int(r["site_id"]),
        price=optional_decimal(r["price"]),
        effective_date=r["effective_date"],
        expiry_date=r.get("expiry_date"),
        currency=r.get("currency") or "IDR",
        is_active=bool(r["is_active"]),
    )


def _row_to_grade_book(r: dict) -> GradeBook:
    return GradeBook(
        grade_book_id=int(r["grade_book_id"]),
        grade_id=int(r["grade_id"]),
        book_id=int(r["book_id"]),
        is_required=bool(r["is_required"]),
        quantity=int(r["quantity"]),
        sort_order=optional_int(r.get("sort_order")),
        created_date=r.get("created_date"),
        created_by=optional_int(r.get("created_by")),
    )


def _row_to_detail(r: dict) -> BookRequisitionDetail:
    return BookRequisitionDetail(
        requisition_detail_id=int(r["requisition_detail_id"]),
        requisition_id=int(r["requisition_id"]),
        book_id=int(r["book_id"]),
        requested_quantity=int(r["requested_quantity"]),
        approved_quantity=int(r.get("approved_quantity") or 0),
        fulfilled_quantity=int(r.get("fulfilled_quantity") or 0),
        unit_cost=optional_decimal(r.get("unit_cost")),
        notes=r.get("notes"),
    )


class MySQLBookRepository(BookRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _books(self, cur, book_ids: list[int]) -> dict[int, Book]:
        if not book_ids:
            return {}
        marks = ",".join(["%s"] * len(book_ids))
        cur.execute(f"SELECT {_BOOK_COLUMNS} FROM books WHERE book_id IN ({marks})", tuple(book_ids))
        rows = fetchall(cur)
        cur.execute(
            f"""
            SELECT book_price_id, book_id, site_id, price, effective_date, expiry_date, currency, is_active
            FROM book_prices
            WHERE book_id IN ({marks})
            """,
            tuple(book_ids),
        )
        prices: dict[int, list[BookPrice]] = {}
        for p in fetchall(cur):
            prices.setdefault(int(p["book_id"]), []).append(_row_to_price(p))

        return {
            int(r["book_id"]): Book(
                book_id=int(r["book_id"]),
                company_id=int(r["company_id"]),
                book_code=r["book_code"],
                book_title=r["book_title"],
                category=r.get("category"),
                author=r.get("author"),
                is_active=bool(r["is_active"]),
                prices=tuple(prices.get(int(r["book_id"]), ())),
            )
            for r in rows
        }

    def get_book(self, book_id: int) -> Optional[Book]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._books(cur, [book_id]).get(book_id)

    def get_grade_book(self, grade_book_id: int) -> Optional[GradeBook]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_GRADE_BOOK_COLUMNS} FROM grade_books WHERE grade_book_id=%s", (grade_book_id,))
            r = fetchone(cur)
            if not r:
                return None
            gb = _row_to_grade_book(r)
            gb.book = self._books(cur, [gb.book_id]).get(gb.book_id)
            return gb

    def list_grade_books(self, grade_id: int) -> Sequence[GradeBook]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_GRADE_BOOK_COLUMNS} FROM grade_books WHERE grade_id=%s ORDER BY sort_order, grade_book_id",
                (grade_id,),
            )
            mappings = [_row_to_grade_book(r) for r in fetchall(cur)]
            books = self._books(cur, sorted({gb.book_id for gb in mappings}))
            for gb in mappings:
                gb.book = books.get(gb.book_id)
            return mappings

    def add_grade_book(self, grade_book: GradeBook) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO grade_books(grade_id, book_id, is_required, quantity, sort_order, created_by)
                VALUES (%s,%s,%s,%s,%s,%s)
                """,
                (
                    grade_book.grade_id,
                    grade_book.book_id,
                    1 if grade_book.is_required else 0,
                    grade_book.quantity,
                    grade_book.sort_order,
                    grade_book.created_by,
                ),
            )
            return int(cur.lastrowid)

    def update_grade_book(self, grade_book: GradeBook) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE grade_books SET is_required=%s, quantity=%s, sort_order=%s WHERE grade_book_id=%s",
                (
                    1 if grade_book.is_required else 0,
                    grade_book.quantity,
                    grade_book.sort_order,
                    grade_book.grade_book_id,
                ),
            )
            return cur.rowcount > 0

    def delete_grade_book(self, grade_book_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM grade_books WHERE grade_book_id=%s", (grade_book_id,))
            return cur.rowcount > 0

    def get_requisition_detail(self, detail_id: int) -> Optional[BookRequisitionDetail]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_DETAIL_COLUMNS} FROM book_requisition_details WHERE requisition_detail_id=%s",
                (detail_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            detail = _row_to_detail(r)
            detail.book = self._books(cur, [detail.book_id]).get(detail.book_id)
            return detail

    def list_requisition_details(self, requisition_id: int) -> Sequence[BookRequisitionDetail]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_DETAIL_COLUMNS}
                FROM book_requisition_details
                WHERE requisition_id=%s
                ORDER BY requisition_detail_id
                """,
                (requisition_id,),
            )
            details = [_row_to_detail(r) for r in fetchall(cur)]
            books = self._books(cur, sorted({d.book_id for d in details}))
            for d in details:
                d.book = books.get(d.book_id)
            return details

    def add_requisition_detail(self, detail: BookRequisitionDetail) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO book_requisition_details(
                    requisition_id, book_id, requested_quantity, approved_quantity,
                    fulfilled_quantity, unit_cost, notes
                )
                VALUES (%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    detail.requisition_id,
                    detail.book_id,
                    detail.requested_quantity,
                    detail.approved_quantity,
                    detail.fulfilled_quantity,
                    detail.unit_cost,
                    detail.notes,
                ),
            )
            return int(cur.lastrowid)

    def update_requisition_detail(self, detail: BookRequisitionDetail) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE book_requisition_details
                SET approved_quantity=%s, fulfilled_quantity=%s, unit_cost=%s, notes=%s
                WHERE requisition_detail_id=%s
                """,
                (
                    detail.approved_quantity,
                    detail.fulfilled_quantity,
                    detail.unit_cost,
                    detail.notes,
                    detail.requisition_detail_id,
                ),
            )
            return cur.rowcount > 0
