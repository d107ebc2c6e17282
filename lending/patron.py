from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Set, Tuple


@dataclass
class BorrowRecord:
    isbn: str
    borrowed_at: datetime
    returned_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    def to_dict(self) -> dict:
        return {
            "isbn": self.isbn,
            "borrowed_at": self.borrowed_at.isoformat(),
            "returned_at": self.returned_at.isoformat() if self.returned_at else None,
        }


class Patron:
    """A library member. Owns its own borrow history; the inventory only opens and closes records."""

    def __init__(self, patron_id: int, name: str, email: str = "") -> None:
        self.id = patron_id
        self.name = name
        self.email = email
        self._borrow_history: List[BorrowRecord] = []
        self._current_isbns: Set[str] = set()

    def set_name(self, name: Optional[str]) -> None:
        if name is not None and name.strip():
            self.name = name.strip()

    def set_email(self, email: Optional[str]) -> None:
        if email is not None and email.strip():
            self.email = email.strip()

    def add_borrow_record(self, isbn: str) -> BorrowRecord:
        record = BorrowRecord(isbn=isbn, borrowed_at=datetime.now())
        self._borrow_history.append(record)
        self._current_isbns.add(isbn)
        return record

    def return_borrowed_book(self, isbn: str) -> Optional[BorrowRecord]:
        """Close the most recently opened record for ``isbn``; returns it, or None if none was open."""
        closed = None
        for record in reversed(self._borrow_history):
            if record.isbn == isbn and record.is_open:
                record.returned_at = datetime.now()
                closed = record
                break
        # another open loan of the same title keeps the isbn current
        if not any(r.isbn == isbn and r.is_open for r in self._borrow_history):
            self._current_isbns.discard(isbn)
        return closed

    @property
    def borrow_history(self) -> Tuple[BorrowRecord, ...]:
        return tuple(self._borrow_history)

    @property
    def current_borrowed_isbns(self) -> frozenset:
        return frozenset(self._current_isbns)

    def __repr__(self) -> str:
        return f"Patron(id={self.id}, name={self.name!r}, email={self.email!r}, borrowed={sorted(self._current_isbns)})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "borrowed": sorted(self._current_isbns),
            "history": [r.to_dict() for r in self._borrow_history],
        }
