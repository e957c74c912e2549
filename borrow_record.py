from __future__ import annotations

from datetime import datetime, timedelta

from timestamps import format_timestamp


class BorrowRecord:
    """One loan of one copy of a book to one borrower.

    ``book_title`` and ``borrower_name`` are snapshots taken when the loan
    was made. They are a historical record and are not refreshed when the
    book or borrower is later edited or removed.
    """

    def __init__(self, id: int, book_id: int, borrower_id: int, book_title: str,
                 borrower_name: str, borrow_date: datetime, due_date: datetime,
                 returned: bool = False, return_date: datetime | None = None) -> None:
        self.id = id
        self.book_id = book_id
        self.borrower_id = borrower_id
        self.book_title = book_title
        self.borrower_name = borrower_name
        self.borrow_date = borrow_date
        self.due_date = due_date
        self.returned = returned
        self.return_date = return_date

    @classmethod
    def open(cls, id: int, book, borrower, borrowed_at: datetime, days_to_return: int) -> "BorrowRecord":
        return cls(
            id=id,
            book_id=book.id,
            borrower_id=borrower.id,
            book_title=book.title,
            borrower_name=borrower.name,
            borrow_date=borrowed_at,
            due_date=borrowed_at + timedelta(days=days_to_return),
        )

    @property
    def is_active(self) -> bool:
        return not self.returned

    def is_overdue(self, now: datetime) -> bool:
        return self.is_active and self.due_date < now

    def mark_returned(self, when: datetime) -> None:
        if self.returned:
            raise RuntimeError(f"Borrow record {self.id} is already returned")
        self.returned = True
        self.return_date = when

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "book_id": self.book_id,
            "borrower_id": self.borrower_id,
            "book_title": self.book_title,
            "borrower_name": self.borrower_name,
            "borrow_date": format_timestamp(self.borrow_date),
            "due_date": format_timestamp(self.due_date),
            "returned": self.returned,
        }
        if self.return_date is not None:
            data["return_date"] = format_timestamp(self.return_date)
        return data
