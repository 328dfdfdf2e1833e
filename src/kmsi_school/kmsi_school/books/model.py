from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from ..common import datetime_utils
from ..common.stats import safe_ratio
from ..common.validators import to_decimal
from ..core.constants import (
    MAX_GRADE_BOOK_QUANTITY,
    OPTIONAL_BOOK_SORT_ORDER,
    PRIMARY_BOOK_SORT_ORDER,
    REQUIRED_BOOK_SORT_ORDER,
)
from ..core.enums import RequisitionLineStatus
from ..core.results import OperationResult
from ..grades.model import Grade


@dataclass(frozen=True)
class BookPrice:
    book_price_id: int
    book_id: int
    site_id: int
    price: Decimal
    effective_date: date
    expiry_date: Optional[date] = None
    currency: str = "IDR"
    is_active: bool = True

    def is_valid_on(self, day: date) -> bool:
        return (
            self.is_active
            and self.effective_date <= day
            and (self.expiry_date is None or self.expiry_date >= day)
        )


@dataclass(frozen=True)
class Book:
    book_id: int
    company_id: int
    book_code: str
    book_title: str
    category: Optional[str] = None
    author: Optional[str] = None
    is_active: bool = True
    prices: tuple[BookPrice, ...] = ()

    @property
    def display_name(self) -> str:
        return f"{self.book_code} - {self.book_title}"

    def current_price(self, site_id: int, *, on: Optional[date] = None) -> Optional[BookPrice]:
        """Active price for the site valid on the given day, latest effective date first."""
        day = on or datetime_utils.today()
        candidates = [p for p in self.prices if p.site_id == site_id and p.is_valid_on(day)]
        if not candidates:
            return None
        return max(candidates, key=lambda p: p.effective_date)


@dataclass
class GradeBook:
    """Book assigned to a grade. (grade_id, book_id) is unique."""

    grade_id: int
    book_id: int
    is_required: bool = True
    quantity: int = 1
    sort_order: Optional[int] = None
    grade_book_id: Optional[int] = None
    created_date: Optional[datetime] = None
    created_by: Optional[int] = None

    grade: Optional[Grade] = field(default=None, repr=False, compare=False)
    book: Optional[Book] = field(default=None, repr=False, compare=False)

    @property
    def display_name(self) -> str:
        grade_name = self.grade.grade_name if self.grade else f"Grade ID: {self.grade_id}"
        book_title = self.book.book_title if self.book else f"Book ID: {self.book_id}"
        return f"{grade_name} - {book_title}"

    @property
    def requirement_status(self) -> str:
        return "Required" if self.is_required else "Optional"

    @property
    def full_description(self) -> str:
        title = self.book.book_title if self.book else f"Book ID: {self.book_id}"
        qty = f" (Qty: {self.quantity})" if self.quantity > 1 else ""
        return f"{title} - {self.requirement_status}{qty}"

    @property
    def is_primary_book(self) -> bool:
        return self.sort_order is not None and self.sort_order <= PRIMARY_BOOK_SORT_ORDER

    @property
    def book_category(self) -> str:
        if self.book and self.book.category:
            return self.book.category
        return "Uncategorized"

    @property
    def has_multiple_copies(self) -> bool:
        return self.quantity > 1

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.quantity <= 0:
            errors.append("Quantity must be greater than zero")
        if self.quantity > 10:
            errors.append("Quantity seems excessive (>10), please verify")
        if self.sort_order is not None and self.sort_order < 0:
            errors.append("Sort order cannot be negative")
        if self.is_required and self.sort_order is not None and self.sort_order > 100:
            errors.append("Required books should typically have lower sort order for better organization")
        return errors

    def current_price(self, site_id: int) -> Optional[Decimal]:
        if not self.book:
            return None
        price = self.book.current_price(site_id)
        return price.price if price else None

    def calculate_total_cost(self, site_id: int) -> Decimal:
        """Current unit price times quantity, 0 when no price applies."""
        price = self.current_price(site_id)
        return price * self.quantity if price is not None else Decimal("0")

    @classmethod
    def create_mapping(
        cls,
        grade_id: int,
        book_id: int,
        *,
        is_required: bool = True,
        quantity: int = 1,
        sort_order: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> "GradeBook":
        return cls(
            grade_id=grade_id,
            book_id=book_id,
            is_required=is_required,
            quantity=quantity,
            sort_order=sort_order,
            created_by=created_by,
            created_date=datetime_utils.now_local(),
        )

    def update_requirement(self, is_required: bool, *, update_sort_order: bool = True) -> None:
        """Required books move to the front of the list, optional ones to the back."""
        self.is_required = is_required
        if not update_sort_order:
            return
        if is_required and (self.sort_order is None or self.sort_order > 50):
            self.sort_order = REQUIRED_BOOK_SORT_ORDER
        elif not is_required and (self.sort_order is None or self.sort_order <= 50):
            self.sort_order = OPTIONAL_BOOK_SORT_ORDER

    def update_quantity(self, new_quantity: int) -> OperationResult:
        if new_quantity <= 0 or new_quantity > MAX_GRADE_BOOK_QUANTITY:
            return OperationResult.failure(f"Quantity must be between 1 and {MAX_GRADE_BOOK_QUANTITY}")
        self.quantity = new_quantity
        return OperationResult.success()


def _mapping_sort_key(gb: GradeBook):
    title = gb.book.book_title if gb.book else ""
    return (gb.sort_order if gb.sort_order is not None else float("inf"), title)


def group_by_requirement(grade_books: Iterable[GradeBook]) -> dict[str, list[GradeBook]]:
    groups: dict[str, list[GradeBook]] = {}
    for gb in grade_books:
        groups.setdefault(gb.requirement_status, []).append(gb)
    return {k: sorted(v, key=_mapping_sort_key) for k, v in groups.items()}


def calculate_grade_total_cost(
    grade_books: Iterable[GradeBook], site_id: int, *, include_optional: bool = False
) -> Decimal:
    total = Decimal("0")
    for gb in grade_books:
        if gb.is_required or include_optional:
            total += gb.calculate_total_cost(site_id)
    return total


def find_duplicate_mappings(grade_books: Iterable[GradeBook]) -> list[tuple[int, int]]:
    """(grade_id, book_id) pairs that appear more than once."""
    seen: set[tuple[int, int]] = set()
    dupes: list[tuple[int, int]] = []
    for gb in grade_books:
        key = (gb.grade_id, gb.book_id)
        if key in seen and key not in dupes:
            dupes.append(key)
        seen.add(key)
    return dupes


def is_mapping_unique(candidate: GradeBook, others: Iterable[GradeBook]) -> bool:
    return not any(
        o.grade_id == candidate.grade_id
        and o.book_id == candidate.book_id
        and (candidate.grade_book_id is None or o.grade_book_id != candidate.grade_book_id)
        for o in others
    )


@dataclass
class BookRequisitionDetail:
    """One book line of a requisition. Fulfilled <= Approved <= Requested."""

    requisition_id: int
    book_id: int
    requested_quantity: int
    approved_quantity: int = 0
    fulfilled_quantity: int = 0
    unit_cost: Optional[Decimal] = None
    notes: Optional[str] = None
    requisition_detail_id: Optional[int] = None

    book: Optional[Book] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.unit_cost = to_decimal(self.unit_cost)

    @property
    def total_cost(self) -> Decimal:
        return self.fulfilled_quantity * (self.unit_cost or Decimal("0"))

    @property
    def remaining_to_approve(self) -> int:
        return self.requested_quantity - self.approved_quantity

    @property
    def remaining_to_fulfill(self) -> int:
        return self.approved_quantity - self.fulfilled_quantity

    @property
    def approval_percentage(self) -> Decimal:
        """Ratio in [0, 1]; 0 when nothing was requested."""
        return safe_ratio(self.approved_quantity, self.requested_quantity)

    @property
    def fulfillment_percentage(self) -> Decimal:
        return safe_ratio(self.fulfilled_quantity, self.approved_quantity)

    @property
    def completion_percentage(self) -> Decimal:
        return safe_ratio(self.fulfilled_quantity, self.requested_quantity)

    @property
    def status(self) -> RequisitionLineStatus:
        if self.approved_quantity == 0:
            return RequisitionLineStatus.PENDING_APPROVAL
        if self.fulfilled_quantity == 0:
            return RequisitionLineStatus.APPROVED_PENDING_FULFILLMENT
        if self.fulfilled_quantity < self.approved_quantity:
            return RequisitionLineStatus.PARTIALLY_FULFILLED
        if self.fulfilled_quantity == self.approved_quantity:
            return RequisitionLineStatus.FULFILLED
        return RequisitionLineStatus.OVER_FULFILLED

    @property
    def display_name(self) -> str:
        return self.book.book_title if self.book else f"Book ID: {self.book_id}"

    @property
    def description(self) -> str:
        return (
            f"{self.display_name} - Requested: {self.requested_quantity}, "
            f"Approved: {self.approved_quantity}, Fulfilled: {self.fulfilled_quantity}"
        )

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.approved_quantity > self.requested_quantity:
            errors.append(
                f"Approved quantity ({self.approved_quantity}) cannot exceed "
                f"requested quantity ({self.requested_quantity})"
            )
        if self.fulfilled_quantity > self.approved_quantity:
            errors.append(
                f"Fulfilled quantity ({self.fulfilled_quantity}) cannot exceed "
                f"approved quantity ({self.approved_quantity})"
            )
        if self.fulfilled_quantity > 0 and (self.unit_cost is None or self.unit_cost <= 0):
            errors.append("Unit cost must be specified and greater than zero when items are fulfilled")
        if self.requested_quantity <= 0:
            errors.append("Requested quantity must be greater than zero")
        if self.approved_quantity < 0:
            errors.append("Approved quantity cannot be negative")
        if self.fulfilled_quantity < 0:
            errors.append("Fulfilled quantity cannot be negative")
        return errors

    def can_be_approved(self) -> bool:
        return self.approved_quantity == 0 and self.requested_quantity > 0

    def can_be_fulfilled(self) -> bool:
        return self.approved_quantity > self.fulfilled_quantity

    def is_completed(self) -> bool:
        return self.fulfilled_quantity > 0 and self.fulfilled_quantity == self.approved_quantity

    def update_approved_quantity(self, quantity: int) -> OperationResult:
        if quantity < 0 or quantity > self.requested_quantity:
            return OperationResult.failure(
                f"Approved quantity must be between 0 and {self.requested_quantity}"
            )
        self.approved_quantity = quantity
        # a reduced approval caps what was already fulfilled
        if self.fulfilled_quantity > self.approved_quantity:
            self.fulfilled_quantity = self.approved_quantity
        return OperationResult.success()

    def update_fulfilled_quantity(self, quantity: int, unit_cost=None) -> OperationResult:
        if quantity < 0 or quantity > self.approved_quantity:
            return OperationResult.failure(
                f"Fulfilled quantity must be between 0 and {self.approved_quantity}"
            )
        self.fulfilled_quantity = quantity
        if unit_cost is not None:
            self.unit_cost = to_decimal(unit_cost)
        return OperationResult.success()
