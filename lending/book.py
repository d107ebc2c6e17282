from __future__ import annotations

from enum import Enum


class BookStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BORROWED = "BORROWED"
    RESERVED = "RESERVED"


class Book:
    """Represents a single title in the catalog, independent of how many copies exist."""

    def __init__(self, isbn: str, title: str, author: str, publication_year: int = 0,
                 book_id: int | None = None, status: BookStatus = BookStatus.AVAILABLE) -> None:
        self.id = book_id
        self.isbn = isbn.strip()
        self.title = (title or "").strip()
        self.author = (author or "").strip()
        self.publication_year = publication_year
        self.status = status

    def set_title(self, title: str | None) -> None:
        if title is not None and title.strip():
            self.title = title.strip()

    def set_author(self, author: str | None) -> None:
        if author is not None and author.strip():
            self.author = author.strip()

    def set_publication_year(self, year: int | None) -> None:
        if year is not None and year > 0:
            self.publication_year = year

    # ISBN identifies an edition; metadata is irrelevant for identity
    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Book):
            return NotImplemented
        return self.isbn == other.isbn

    def __hash__(self) -> int:
        return hash(self.isbn)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"

    def __repr__(self) -> str:
        return (f"Book(id={self.id}, isbn={self.isbn!r}, title={self.title!r}, "
                f"author={self.author!r}, publication_year={self.publication_year}, "
                f"status={self.status.value})")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "isbn": self.isbn,
            "title": self.title,
            "author": self.author,
            "publication_year": self.publication_year,
            "status": self.status.value,
        }
