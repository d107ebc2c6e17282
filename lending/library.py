import logging
from enum import Enum
from threading import RLock
from typing import Any, Dict, List, Optional

from lending.book import Book
from lending.config import settings
from lending.factory import BookFactory, PatronFactory
from lending.inventory import InventoryLedger
from lending.notifications import LoggingNotifier, Notification
from lending.patron import Patron
from lending.recommend import RecommendationEngine
from lending.reservations import ReservationRegistry
from lending.search import SearchKind, search_books
from lending.utils.validators import ISBNValidator, TextValidator

logger = logging.getLogger(__name__)


class CheckoutOutcome(str, Enum):
    CHECKED_OUT = "checked_out"
    COLLECTED = "collected"
    RESERVED = "reserved"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"

    @property
    def success(self) -> bool:
        return self in (CheckoutOutcome.CHECKED_OUT, CheckoutOutcome.COLLECTED)


class Library:
    """Maps patron ids and ISBNs to records and drives the inventory and reservations."""

    def __init__(self, auto_reserve: Optional[bool] = None) -> None:
        self.reservations = ReservationRegistry()
        self.inventory = InventoryLedger(self.reservations)
        self.notifier = LoggingNotifier()
        self.reservations.add_listener(self.notifier)

        self.book_factory = BookFactory()
        self.patron_factory = PatronFactory()
        self.recommender = RecommendationEngine()
        self.auto_reserve = settings.auto_reserve if auto_reserve is None else auto_reserve

        self._patrons: Dict[int, Patron] = {}
        self._lock = RLock()

    # ------------------------- Patrons ------------------------- #
    def add_patron(self, name: str, email: str = "") -> Patron:
        patron = self.patron_factory.create(name, email)
        with self._lock:
            self._patrons[patron.id] = patron
        logger.info(f"Added patron {patron.name}")
        return patron

    def get_patron(self, patron_id: int) -> Optional[Patron]:
        with self._lock:
            return self._patrons.get(patron_id)

    def update_patron(self, patron_id: int, *, name: Optional[str] = None,
                      email: Optional[str] = None) -> Optional[Patron]:
        """Update name and/or email. Returns the patron or None if not found."""
        if email is not None and not TextValidator.validate_email(email):
            raise ValueError(f"Invalid email address: {email}")
        patron = self.get_patron(patron_id)
        if patron is None:
            return None
        patron.set_name(name)
        patron.set_email(email)
        logger.info(f"Updated patron {patron_id}")
        return patron

    def list_patrons(self) -> List[Patron]:
        with self._lock:
            return list(self._patrons.values())

    # ------------------------- Books ------------------------- #
    def add_book(self, isbn: str, title: str, author: str, year: int = 0, copies: int = 1) -> Book:
        """Add copies of a title. Metadata is taken from the first insertion only."""
        if copies <= 0:
            raise ValueError(f"Number of copies must be positive, got {copies}.")
        existing = self.find_book(isbn)
        book = existing or self.book_factory.create(isbn, title, author, year)
        return self.inventory.add_copies(book, copies)

    def remove_book(self, isbn: str, copies: int = 1) -> bool:
        return self.inventory.remove_copies(ISBNValidator.normalize_isbn(isbn), copies)

    def update_book(self, isbn: str, *, title: Optional[str] = None, author: Optional[str] = None,
                    year: Optional[int] = None) -> Optional[Book]:
        return self.inventory.update_metadata(ISBNValidator.normalize_isbn(isbn), title, author, year)

    def find_book(self, isbn: str) -> Optional[Book]:
        return self.inventory.get_book(ISBNValidator.normalize_isbn(isbn))

    def list_books(self) -> List[Book]:
        return self.inventory.list_books()

    def stock(self, isbn: str) -> Optional[Dict[str, Any]]:
        return self.inventory.stock(ISBNValidator.normalize_isbn(isbn))

    # ------------------------- Search ------------------------- #
    def search_title(self, title: str) -> List[Book]:
        return search_books(SearchKind.TITLE, self.list_books(), title)

    def search_author(self, author: str) -> List[Book]:
        return search_books(SearchKind.AUTHOR, self.list_books(), author)

    def search_isbn(self, isbn: str) -> List[Book]:
        return search_books(SearchKind.ISBN, self.list_books(), isbn)

    def search(self, kind: str, query: str) -> List[Book]:
        """Search by a kind tag ('title', 'author', 'isbn'); unknown tags search titles."""
        return search_books(kind, self.list_books(), query)

    # ------------------------- Lending ------------------------- #
    def checkout_outcome(self, isbn: str, patron_id: int) -> CheckoutOutcome:
        patron = self.get_patron(patron_id)
        if patron is None:
            logger.warning(f"Checkout failed - unknown patron {patron_id}")
            return CheckoutOutcome.NOT_FOUND
        isbn = ISBNValidator.normalize_isbn(isbn)
        if self.inventory.holds_earmark(isbn, patron):
            if self.inventory.collect_reserved(isbn, patron):
                return CheckoutOutcome.COLLECTED
        if self.inventory.checkout(isbn, patron):
            return CheckoutOutcome.CHECKED_OUT
        if self.inventory.get_book(isbn) is None:
            return CheckoutOutcome.NOT_FOUND
        if self.auto_reserve:
            logger.info(f"Auto-reserving {isbn} for patron {patron.name}")
            self.reservations.reserve(isbn, patron)
            return CheckoutOutcome.RESERVED
        return CheckoutOutcome.UNAVAILABLE

    def checkout(self, isbn: str, patron_id: int) -> bool:
        return self.checkout_outcome(isbn, patron_id).success

    def return_book(self, isbn: str, patron_id: int) -> bool:
        patron = self.get_patron(patron_id)
        if patron is None:
            logger.warning(f"Return failed - unknown patron {patron_id}")
            return False
        return self.inventory.return_copy(ISBNValidator.normalize_isbn(isbn), patron)

    def collect(self, isbn: str, patron_id: int) -> bool:
        patron = self.get_patron(patron_id)
        if patron is None:
            logger.warning(f"Collect failed - unknown patron {patron_id}")
            return False
        return self.inventory.collect_reserved(ISBNValidator.normalize_isbn(isbn), patron)

    # ------------------------- Reservations ------------------------- #
    def reserve(self, isbn: str, patron_id: int) -> bool:
        patron = self.get_patron(patron_id)
        if patron is None:
            logger.warning(f"Reserve failed - unknown patron {patron_id}")
            return False
        isbn = ISBNValidator.normalize_isbn(isbn)
        if self.inventory.get_book(isbn) is None:
            logger.warning(f"Reserve failed - book unknown: {isbn}")
            return False
        self.reservations.reserve(isbn, patron)
        return True

    def waiting_list(self, isbn: str) -> List[Patron]:
        return self.reservations.waiting_patrons(ISBNValidator.normalize_isbn(isbn))

    # ------------------------- Recommendations ------------------------- #
    def recommend_for_patron(self, patron_id: int, limit: Optional[int] = None) -> List[Book]:
        patron = self.get_patron(patron_id)
        if patron is None:
            return []
        if limit is None:
            limit = settings.default_recommendation_limit
        return self.recommender.recommend(patron, self.list_books(), limit)

    # ------------------------- Reporting ------------------------- #
    @property
    def notifications(self) -> List[Notification]:
        return self.notifier.outbox

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.inventory.get_statistics()
        stats["total_patrons"] = len(self.list_patrons())
        stats["pending_reservations"] = sum(
            self.reservations.queue_length(isbn) for isbn in self.reservations.reserved_isbns()
        )
        stats["notifications_sent"] = len(self.notifier.outbox)
        return stats
