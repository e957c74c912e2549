from __future__ import annotations

from datetime import datetime
from threading import RLock
from typing import Any, Callable, List, Optional, Tuple

from book import Book
from config import settings
from exceptions import ConflictError, NotFoundError
from timestamps import utc_now
from validators import FieldValidator, IdentifierParser


class Catalog:
    """Owns the book collection.

    Books are kept in insertion order and handed out by reference; the loan
    ledger adjusts ``available_copies`` on them while holding the same lock.
    """

    def __init__(self, lock: Optional[RLock] = None, default_category: Optional[str] = None,
                 clock: Callable[[], datetime] = utc_now) -> None:
        self.lock = lock or RLock()
        self.default_category = default_category or settings.default_category
        self.clock = clock
        self.books: List[Book] = []
        self._next_id = 1

    # ------------------------- Lookups ------------------------- #
    def find(self, book_id: Any) -> Optional[Book]:
        key = IdentifierParser.parse(book_id)
        if key is None:
            return None
        with self.lock:
            for book in self.books:
                if book.id == key:
                    return book
        return None

    def get(self, book_id: Any) -> Book:
        book = self.find(book_id)
        if not book:
            raise NotFoundError("Book not found")
        return book

    def list(self, q: Optional[str] = None, category: Optional[str] = None,
             available: Optional[bool] = None) -> Tuple[List[Book], int]:
        """Filter by free text (title, author, isbn), category and availability."""
        with self.lock:
            items = list(self.books)
        if q:
            term = q.lower()
            items = [b for b in items if self._matches_text(b, term)]
        if category:
            wanted = category.lower()
            items = [b for b in items if b.category and b.category.lower() == wanted]
        if available is not None:
            items = [b for b in items if b.is_available == available]
        return items, len(items)

    def search(self, q: Optional[str] = None, category: Optional[str] = None,
               author: Optional[str] = None, available: Optional[bool] = None) -> Tuple[List[Book], int]:
        """Like ``list`` but ``q`` also looks at the description and ``author`` is a partial match."""
        with self.lock:
            results = list(self.books)
        if q:
            term = q.lower()
            results = [
                b for b in results
                if self._matches_text(b, term) or term in b.description.lower()
            ]
        if category:
            wanted = category.lower()
            results = [b for b in results if b.category.lower() == wanted]
        if author:
            needle = author.lower()
            results = [b for b in results if needle in b.author.lower()]
        if available is not None:
            results = [b for b in results if b.is_available == available]
        return results, len(results)

    def list_categories(self) -> List[str]:
        with self.lock:
            return list(dict.fromkeys(b.category for b in self.books))

    # ------------------------- Mutations ------------------------- #
    def create(self, title: Optional[str], author: Optional[str], isbn: Optional[str], copies: Any,
               category: Optional[str] = None, description: Optional[str] = None) -> Book:
        FieldValidator.require("Title, author, ISBN, and copies are required", title, author, isbn, copies)
        total = FieldValidator.coerce_count(copies)
        with self.lock:
            book = Book(
                id=self._next_id,
                title=title,
                author=author,
                isbn=isbn,
                copies=total,
                category=category or self.default_category,
                description=description or "",
                date_added=self.clock(),
            )
            self.books.append(book)
            self._next_id += 1
            return book

    def update(self, book_id: Any, *, title: Optional[str] = None, author: Optional[str] = None,
               isbn: Optional[str] = None, copies: Any = None, category: Optional[str] = None,
               description: Optional[str] = None) -> Book:
        """Apply the provided fields. Empty values are ignored, except that
        ``description=""`` clears the description.

        A new ``copies`` total keeps the copies already on loan out of
        ``available_copies``, clamped at zero when the total shrinks below them.
        """
        with self.lock:
            book = self.get(book_id)
            new_total = FieldValidator.coerce_count(copies) if copies else None

            if title:
                book.title = title
            if author:
                book.author = author
            if isbn:
                book.isbn = isbn
            if new_total is not None:
                on_loan = book.borrowed_count
                book.copies = new_total
                book.available_copies = max(0, new_total - on_loan)
            if category:
                book.category = category
            if description is not None:
                book.description = description
            return book

    def delete(self, book_id: Any) -> Book:
        with self.lock:
            book = self.get(book_id)
            if book.available_copies < book.copies:
                raise ConflictError("Cannot delete book with borrowed copies")
            self.books.remove(book)
            return book

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _matches_text(book: Book, term: str) -> bool:
        return (
            term in book.title.lower()
            or term in book.author.lower()
            or term in book.isbn
        )
