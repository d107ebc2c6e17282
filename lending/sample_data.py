from typing import Dict

from lending.library import Library
from lending.patron import Patron

SAMPLE_PATRONS = [
    ("Alice", "alice@example.com"),
    ("Bob", "bob@example.com"),
]

# isbn, title, author, year, copies
SAMPLE_BOOKS = [
    ("ISBN-001", "Effective Java", "Joshua Bloch", 2018, 2),
    ("ISBN-002", "Clean Code", "Robert C. Martin", 2008, 1),
    ("ISBN-003", "Design Patterns", "GoF", 1994, 1),
]


def seed(library: Library) -> Dict[str, Patron]:
    """Load the sample catalog and patrons; returns patrons keyed by name."""
    patrons = {name: library.add_patron(name, email) for name, email in SAMPLE_PATRONS}
    for isbn, title, author, year, copies in SAMPLE_BOOKS:
        library.add_book(isbn, title, author, year, copies)
    return patrons
