from __future__ import annotations

from datetime import datetime

from timestamps import format_timestamp, utc_now


class Borrower:
    """A registered library member."""

    def __init__(self, id: int, name: str, email: str, phone: str = "",
                 registration_date: datetime | None = None, active_loans: int = 0) -> None:
        self.id = id
        self.name = name
        self.email = email
        self.phone = phone
        self.registration_date = registration_date or utc_now()
        self.active_loans = active_loans

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "registration_date": format_timestamp(self.registration_date),
            "active_loans": self.active_loans,
        }
