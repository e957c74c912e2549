from __future__ import annotations

from datetime import datetime
from threading import RLock
from typing import Any, Callable, List, Optional, Tuple

from borrower import Borrower
from exceptions import ConflictError, NotFoundError
from timestamps import utc_now
from validators import FieldValidator, IdentifierParser


class Registry:
    """Owns the borrower collection and keeps emails unique."""

    def __init__(self, lock: Optional[RLock] = None, clock: Callable[[], datetime] = utc_now) -> None:
        self.lock = lock or RLock()
        self.clock = clock
        self.borrowers: List[Borrower] = []
        self._next_id = 1

    def list(self) -> Tuple[List[Borrower], int]:
        with self.lock:
            items = list(self.borrowers)
        return items, len(items)

    def find(self, borrower_id: Any) -> Optional[Borrower]:
        key = IdentifierParser.parse(borrower_id)
        if key is None:
            return None
        with self.lock:
            return next((b for b in self.borrowers if b.id == key), None)

    def get(self, borrower_id: Any) -> Borrower:
        borrower = self.find(borrower_id)
        if not borrower:
            raise NotFoundError("Borrower not found")
        return borrower

    def find_by_email(self, email: str) -> Optional[Borrower]:
        # Exact, case-sensitive comparison against the stored address
        with self.lock:
            return next((b for b in self.borrowers if b.email == email), None)

    def register(self, name: Optional[str], email: Optional[str], phone: Optional[str] = None) -> Borrower:
        FieldValidator.require("Name and email are required", name, email)
        with self.lock:
            if self.find_by_email(email):
                raise ConflictError("Borrower with this email already exists")
            borrower = Borrower(id=self._next_id, name=name, email=email, phone=phone or "",
                                registration_date=self.clock())
            self.borrowers.append(borrower)
            self._next_id += 1
            return borrower
