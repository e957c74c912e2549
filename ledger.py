from __future__ import annotations

from datetime import datetime
from threading import RLock
from typing import Any, Callable, List, Optional, Tuple

from borrow_record import BorrowRecord
from catalog import Catalog
from config import settings
from exceptions import ConflictError, NotFoundError, ValidationError
from registry import Registry
from timestamps import utc_now
from validators import FieldValidator, IdentifierParser


class LoanLedger:
    """Owns borrow records and keeps book and borrower counters in step with them.

    Borrow and return touch three collections (the book's available copies,
    the borrower's active loans and the records themselves). Both run under
    the lock shared with the catalog and registry, and every check happens
    before the first write, so either all three change or none do.
    """

    def __init__(self, catalog: Catalog, registry: Registry, lock: Optional[RLock] = None,
                 clock: Callable[[], datetime] = utc_now, default_days: Optional[int] = None) -> None:
        self.catalog = catalog
        self.registry = registry
        self.lock = lock or catalog.lock
        self.clock = clock
        self.default_days = settings.default_loan_days if default_days is None else default_days
        self.records: List[BorrowRecord] = []
        self._next_id = 1

    # ------------------------- Borrowing workflow ------------------------- #
    def borrow(self, book_id: Any, borrower_id: Any, days_to_return: Any = None) -> BorrowRecord:
        if IdentifierParser.is_missing(book_id) or IdentifierParser.is_missing(borrower_id):
            raise ValidationError("Book ID and Borrower ID are required")
        days = FieldValidator.coerce_days(days_to_return, self.default_days)

        with self.lock:
            book = self.catalog.get(book_id)
            borrower = self.registry.get(borrower_id)
            if book.available_copies <= 0:
                raise ConflictError("No copies available for borrowing")

            record = BorrowRecord.open(self._next_id, book, borrower, self.clock(), days)
            self.records.append(record)
            self._next_id += 1
            book.available_copies -= 1
            borrower.active_loans += 1
            return record

    def return_book(self, borrow_id: Any) -> BorrowRecord:
        """Close an active loan.

        A book or borrower that has since disappeared is skipped rather than
        treated as an error; the record is still closed.
        """
        if IdentifierParser.is_missing(borrow_id):
            raise ValidationError("Borrow ID is required")

        with self.lock:
            record = self._find_active(borrow_id)
            if not record:
                raise NotFoundError("Active borrow record not found")

            book = self.catalog.find(record.book_id)
            borrower = self.registry.find(record.borrower_id)

            record.mark_returned(self.clock())
            if book:
                # capped: copies may have shrunk below the number on loan
                book.available_copies = min(book.copies, book.available_copies + 1)
            if borrower:
                borrower.active_loans = max(0, borrower.active_loans - 1)
            return record

    # ------------------------- Queries ------------------------- #
    def get(self, borrow_id: Any) -> BorrowRecord:
        key = IdentifierParser.parse(borrow_id)
        with self.lock:
            record = next((r for r in self.records if r.id == key), None)
        if not record:
            raise NotFoundError("Borrow record not found")
        return record

    def list_active(self) -> Tuple[List[BorrowRecord], int]:
        with self.lock:
            active = [r for r in self.records if r.is_active]
        return active, len(active)

    def list_overdue(self, now: Optional[datetime] = None) -> Tuple[List[BorrowRecord], int]:
        now = now or self.clock()
        with self.lock:
            overdue = [r for r in self.records if r.is_overdue(now)]
        return overdue, len(overdue)

    def count_active_for_book(self, book_id: int) -> int:
        with self.lock:
            return sum(1 for r in self.records if r.is_active and r.book_id == book_id)

    def count_active_for_borrower(self, borrower_id: int) -> int:
        with self.lock:
            return sum(1 for r in self.records if r.is_active and r.borrower_id == borrower_id)

    def _find_active(self, borrow_id: Any) -> Optional[BorrowRecord]:
        key = IdentifierParser.parse(borrow_id)
        if key is None:
            return None
        return next((r for r in self.records if r.id == key and r.is_active), None)
