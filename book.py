from __future__ import annotations

from datetime import datetime

from timestamps import format_timestamp, utc_now


class Book:
    """A catalogued title and how many of its physical copies are on the shelf."""

    def __init__(self, id: int, title: str, author: str, isbn: str, copies: int,
                 available_copies: int | None = None, category: str = "General",
                 description: str = "", date_added: datetime | None = None) -> None:
        self.id = id
        self.title = title
        self.author = author
        self.isbn = isbn
        self.copies = copies
        self.available_copies = copies if available_copies is None else available_copies
        self.category = category
        self.description = description
        self.date_added = date_added or utc_now()

    def __str__(self) -> str:
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"

    @property
    def borrowed_count(self) -> int:
        return self.copies - self.available_copies

    @property
    def is_available(self) -> bool:
        return self.available_copies > 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "copies": self.copies,
            "available_copies": self.available_copies,
            "category": self.category,
            "description": self.description,
            "date_added": format_timestamp(self.date_added),
        }
