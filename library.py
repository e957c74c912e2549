import logging
from datetime import datetime
from functools import wraps
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Tuple

from book import Book
from borrow_record import BorrowRecord
from borrower import Borrower
from catalog import Catalog
from exceptions import LibraryError
from ledger import LoanLedger
from registry import Registry
from timestamps import utc_now

logger = logging.getLogger(__name__)


def _logged(action: str):
    """Log the outcome of a mutating operation; errors are re-raised untouched."""
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                result = func(self, *args, **kwargs)
            except LibraryError as e:
                logger.warning(f"{action} rejected ({e.kind}): {e.message}")
                raise
            logger.info(f"{action}: id={getattr(result, 'id', None)}")
            return result
        return wrapper
    return decorator


class Library:
    """Holds the catalog, registry and loan ledger for one process.

    The three components share one re-entrant lock so a borrow or return is
    never interleaved with another mutation touching the same book or
    borrower. Build one per process (or per test) and hand it to the API.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now, default_loan_days: Optional[int] = None,
                 default_category: Optional[str] = None) -> None:
        self.lock = RLock()
        self.catalog = Catalog(lock=self.lock, default_category=default_category, clock=clock)
        self.registry = Registry(lock=self.lock, clock=clock)
        self.ledger = LoanLedger(self.catalog, self.registry, lock=self.lock, clock=clock,
                                 default_days=default_loan_days)

    # ------------------------- Books ------------------------- #
    def list_books(self, q: Optional[str] = None, category: Optional[str] = None,
                   available: Optional[bool] = None) -> Tuple[List[Book], int]:
        return self.catalog.list(q=q, category=category, available=available)

    def search_books(self, q: Optional[str] = None, category: Optional[str] = None,
                     author: Optional[str] = None, available: Optional[bool] = None) -> Tuple[List[Book], int]:
        return self.catalog.search(q=q, category=category, author=author, available=available)

    def get_book(self, book_id: Any) -> Book:
        return self.catalog.get(book_id)

    def list_categories(self) -> List[str]:
        return self.catalog.list_categories()

    @_logged("Book added")
    def add_book(self, title, author, isbn, copies, category=None, description=None) -> Book:
        return self.catalog.create(title, author, isbn, copies, category=category, description=description)

    @_logged("Book updated")
    def update_book(self, book_id: Any, **fields) -> Book:
        return self.catalog.update(book_id, **fields)

    @_logged("Book deleted")
    def remove_book(self, book_id: Any) -> Book:
        return self.catalog.delete(book_id)

    # ------------------------- Borrowers ------------------------- #
    def list_borrowers(self) -> Tuple[List[Borrower], int]:
        return self.registry.list()

    @_logged("Borrower registered")
    def register_borrower(self, name, email, phone=None) -> Borrower:
        return self.registry.register(name, email, phone=phone)

    # ------------------------- Loans ------------------------- #
    @_logged("Book borrowed")
    def borrow_book(self, book_id: Any, borrower_id: Any, days_to_return: Any = None) -> BorrowRecord:
        return self.ledger.borrow(book_id, borrower_id, days_to_return)

    @_logged("Book returned")
    def return_book(self, borrow_id: Any) -> BorrowRecord:
        return self.ledger.return_book(borrow_id)

    def list_active_loans(self) -> Tuple[List[BorrowRecord], int]:
        return self.ledger.list_active()

    def list_overdue_loans(self) -> Tuple[List[BorrowRecord], int]:
        return self.ledger.list_overdue()

    # ------------------------- Reporting ------------------------- #
    def get_statistics(self) -> Dict[str, Any]:
        """Get library statistics."""
        with self.lock:
            books = self.catalog.books
            _, total_borrowers = self.registry.list()
            _, active = self.ledger.list_active()
            _, overdue = self.ledger.list_overdue()
            return {
                "total_books": len(books),
                "total_copies": sum(b.copies for b in books),
                "available_copies": sum(b.available_copies for b in books),
                "unique_authors": len({b.author for b in books}),
                "categories": len(self.catalog.list_categories()),
                "total_borrowers": total_borrowers,
                "active_loans": active,
                "overdue_loans": overdue,
            }

    def audit(self) -> List[str]:
        """Return a description of every counter that disagrees with the loan records."""
        problems: List[str] = []
        with self.lock:
            for book in self.catalog.books:
                on_loan = self.ledger.count_active_for_book(book.id)
                if not 0 <= book.available_copies <= book.copies:
                    problems.append(f"book {book.id}: available copies {book.available_copies} outside 0..{book.copies}")
                elif book.borrowed_count != on_loan:
                    problems.append(f"book {book.id}: {book.borrowed_count} copies out but {on_loan} active loans")
            for borrower in self.registry.borrowers:
                on_loan = self.ledger.count_active_for_borrower(borrower.id)
                if borrower.active_loans != on_loan:
                    problems.append(f"borrower {borrower.id}: counter {borrower.active_loans} but {on_loan} active loans")
        return problems
