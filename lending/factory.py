from threading import Lock
from typing import Optional

from lending.book import Book
from lending.patron import Patron
from lending.utils.validators import ISBNValidator, TextValidator


class IdAllocator:
    """Sequential integer identities, seeded at zero. Each owner gets its own sequence."""

    def __init__(self, start: int = 0) -> None:
        self._current = start
        self._lock = Lock()

    def next_id(self) -> int:
        with self._lock:
            self._current += 1
            return self._current

    @property
    def last_id(self) -> int:
        return self._current


class BookFactory:
    def __init__(self, ids: Optional[IdAllocator] = None) -> None:
        self.ids = ids or IdAllocator()

    def create(self, isbn: str, title: Optional[str], author: Optional[str], year: int = 0) -> Book:
        isbn = ISBNValidator.normalize_isbn(isbn)
        if not ISBNValidator.is_valid_isbn(isbn):
            raise ValueError("ISBN cannot be empty.")
        return Book(
            isbn=isbn,
            title=TextValidator.clean(title),
            author=TextValidator.clean(author),
            publication_year=year if year and year > 0 else 0,
            book_id=self.ids.next_id(),
        )


class PatronFactory:
    def __init__(self, ids: Optional[IdAllocator] = None) -> None:
        self.ids = ids or IdAllocator()

    def create(self, name: Optional[str], email: Optional[str] = None) -> Patron:
        if not TextValidator.validate_name(name):
            raise ValueError("Patron name is required.")
        if not TextValidator.validate_email(email):
            raise ValueError(f"Invalid email address: {email}")
        return Patron(self.ids.next_id(), name.strip(), (email or "").strip())
