"""Copy counters and the checkout/return state machine.

The ledger is the only owner of title records and their counters. For
every ISBN it tracks ``available`` and ``borrowed`` copies plus the
patrons holding an earmarked copy (set aside on return for the head of
the title's waiting list). All mutations run under a single lock; when
the ledger needs the reservation registry it calls it while holding its
own lock, never the other way round.
"""
import logging
from collections import deque
from threading import RLock
from typing import Any, Deque, Dict, List, Optional

from lending.book import Book, BookStatus
from lending.patron import Patron
from lending.reservations import ReservationRegistry

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Catalog of titles with available/borrowed copy counts."""

    def __init__(self, reservations: ReservationRegistry) -> None:
        self.reservations = reservations
        self._books: Dict[str, Book] = {}
        self._available: Dict[str, int] = {}
        self._borrowed: Dict[str, int] = {}
        self._earmarks: Dict[str, Deque[Patron]] = {}
        self._lock = RLock()

    # ------------------------- Stock ------------------------- #
    def add_copies(self, book: Book, copies: int) -> Book:
        """Add ``copies`` of ``book``. The first insertion registers the record; later ones reuse it."""
        if book is None or not book.isbn:
            raise ValueError("A book with an ISBN is required.")
        if copies <= 0:
            raise ValueError(f"Number of copies must be positive, got {copies}.")
        with self._lock:
            record = self._books.setdefault(book.isbn, book)
            self._available[book.isbn] = self._available.get(book.isbn, 0) + copies
            self._borrowed.setdefault(book.isbn, 0)
            self._refresh_status(record.isbn)
        logger.info(f"Added {copies} copies of {book.isbn}")
        return record

    def remove_copies(self, isbn: str, copies: int) -> bool:
        """Withdraw available copies; the title is purged once nothing is left on or off the shelf."""
        if not isbn:
            raise ValueError("ISBN cannot be empty.")
        if copies <= 0:
            raise ValueError(f"Number of copies must be positive, got {copies}.")
        with self._lock:
            available = self._available.get(isbn)
            if available is None or available < copies:
                logger.warning(f"Not enough copies to remove {copies} of {isbn}")
                return False
            self._available[isbn] = available - copies
            if (self._available[isbn] == 0 and self._borrowed.get(isbn, 0) == 0
                    and not self._earmarks.get(isbn)):
                self._purge(isbn)
                logger.info(f"Removed book entirely from inventory: {isbn}")
            else:
                self._refresh_status(isbn)
                logger.info(f"Removed {copies} copies of {isbn}")
            return True

    def _purge(self, isbn: str) -> None:
        self._books.pop(isbn, None)
        self._available.pop(isbn, None)
        self._borrowed.pop(isbn, None)
        self._earmarks.pop(isbn, None)

    def _refresh_status(self, isbn: str) -> None:
        # caller holds the lock
        book = self._books[isbn]
        if self._earmarks.get(isbn):
            book.status = BookStatus.RESERVED
        elif self._available.get(isbn, 0) == 0 and self._borrowed.get(isbn, 0) > 0:
            book.status = BookStatus.BORROWED
        else:
            book.status = BookStatus.AVAILABLE

    def update_metadata(self, isbn: str, title: Optional[str] = None, author: Optional[str] = None,
                        year: Optional[int] = None) -> Optional[Book]:
        """Overwrite non-blank fields. Returns the updated record, or None if the ISBN is unknown."""
        with self._lock:
            book = self._books.get(isbn)
            if book is None:
                logger.warning(f"Book not found: {isbn}")
                return None
            book.set_title(title)
            book.set_author(author)
            book.set_publication_year(year)
        logger.info(f"Updated book info for {isbn}")
        return book

    # ------------------------- Queries ------------------------- #
    def get_book(self, isbn: str) -> Optional[Book]:
        with self._lock:
            return self._books.get(isbn)

    def list_books(self) -> List[Book]:
        with self._lock:
            return sorted(self._books.values(), key=lambda b: (b.title.lower(), b.isbn))

    def available_copies(self, isbn: str) -> int:
        with self._lock:
            return self._available.get(isbn, 0)

    def borrowed_copies(self, isbn: str) -> int:
        with self._lock:
            return self._borrowed.get(isbn, 0)

    def earmarked_copies(self, isbn: str) -> int:
        with self._lock:
            return len(self._earmarks.get(isbn, ()))

    def earmarked_for(self, isbn: str) -> List[Patron]:
        with self._lock:
            return list(self._earmarks.get(isbn, ()))

    def stock(self, isbn: str) -> Optional[Dict[str, Any]]:
        """Consistent snapshot of one title's counters and status."""
        with self._lock:
            book = self._books.get(isbn)
            if book is None:
                return None
            return {
                "isbn": isbn,
                "status": book.status.value,
                "available": self._available.get(isbn, 0),
                "borrowed": self._borrowed.get(isbn, 0),
                "earmarked": len(self._earmarks.get(isbn, ())),
            }

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            available = sum(self._available.values())
            borrowed = sum(self._borrowed.values())
            earmarked = sum(len(q) for q in self._earmarks.values())
            return {
                "total_books": len(self._books),
                "total_copies": available + borrowed + earmarked,
                "available_copies": available,
                "borrowed_copies": borrowed,
                "earmarked_copies": earmarked,
                "unique_authors": len({b.author for b in self._books.values() if b.author}),
            }

    # ------------------------- Lending ------------------------- #
    def checkout(self, isbn: str, patron: Patron) -> bool:
        """Lend one free copy to ``patron``. Never reserves on its own."""
        with self._lock:
            book = self._books.get(isbn)
            if book is None:
                logger.warning(f"Checkout failed - book unknown: {isbn}")
                return False
            if self._available.get(isbn, 0) == 0:
                logger.info(f"Book not available for checkout, consider reservation: {isbn}")
                return False
            self._available[isbn] -= 1
            self._borrowed[isbn] = self._borrowed.get(isbn, 0) + 1
            if self._available[isbn] == 0:
                book.status = BookStatus.BORROWED
            patron.add_borrow_record(isbn)
        logger.info(f"Patron {patron.name} checked out ISBN {isbn}")
        return True

    def return_copy(self, isbn: str, patron: Patron) -> bool:
        """Take a copy back and hand it to the next waiting patron, if any.

        Returns False for an unknown title, and for a return with no
        outstanding loan recorded: that copy is still put on the shelf
        but the patron's history is left alone.
        """
        with self._lock:
            book = self._books.get(isbn)
            if book is None:
                logger.warning(f"Return failed - book unknown: {isbn}")
                return False

            borrowed = self._borrowed.get(isbn, 0)
            if borrowed <= 0:
                logger.warning(f"Return failed - no borrowed copies recorded for {isbn}; shelving stray copy")
                self._available[isbn] = self._available.get(isbn, 0) + 1
                return False

            self._borrowed[isbn] = borrowed - 1
            self._available[isbn] = self._available.get(isbn, 0) + 1
            patron.return_borrowed_book(isbn)

            if self._available[isbn] > 0 and not self.reservations.has_reservations(isbn):
                book.status = BookStatus.AVAILABLE
            logger.info(f"Patron {patron.name} returned ISBN {isbn}")

            next_patron = self.reservations.poll_next_patron(isbn)
            if next_patron is not None:
                book.status = BookStatus.RESERVED
                # the freed copy is set aside, not put back on the shelf
                if self._available[isbn] > 0:
                    self._available[isbn] -= 1
                    self._earmarks.setdefault(isbn, deque()).append(next_patron)
                self.reservations.notify_book_available(book, next_patron)
                logger.info(f"Notified patron {next_patron.name} for reserved book {isbn}")
            return True

    def collect_reserved(self, isbn: str, patron: Patron) -> bool:
        """Lend the copy earmarked for ``patron``. False if they hold no earmark for this title."""
        with self._lock:
            book = self._books.get(isbn)
            holders = self._earmarks.get(isbn)
            if book is None or not holders or patron not in holders:
                logger.warning(f"Collect failed - no copy of {isbn} set aside for patron {patron.name}")
                return False
            holders.remove(patron)
            if not holders:
                del self._earmarks[isbn]
            self._borrowed[isbn] = self._borrowed.get(isbn, 0) + 1
            self._refresh_status(isbn)
            patron.add_borrow_record(isbn)
        logger.info(f"Patron {patron.name} collected reserved ISBN {isbn}")
        return True

    def holds_earmark(self, isbn: str, patron: Patron) -> bool:
        with self._lock:
            return patron in self._earmarks.get(isbn, ())
