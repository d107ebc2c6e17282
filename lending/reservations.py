"""Per-title waiting lists and availability listeners.

Every title has its own FIFO queue: the patron who has waited longest is
served first. When the inventory earmarks a returned copy for the head of
a queue, the registry tells every registered listener about it. A failing
listener is logged and skipped; it never stops the others or the return
that triggered the notice.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from threading import RLock
from typing import Deque, Dict, List, Optional, Protocol, Tuple

from lending.book import Book
from lending.patron import Patron

logger = logging.getLogger(__name__)


class ReservationListener(Protocol):
    def on_book_available(self, book: Book, patron: Patron) -> None:
        ...


@dataclass(frozen=True)
class ReservationEntry:
    patron: Patron
    isbn: str
    enqueued_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ListenerFailure:
    listener: object
    isbn: str
    patron_id: int
    error: str


class ReservationQueue:
    """FIFO waiting list for a single title."""

    def __init__(self, isbn: str) -> None:
        self.isbn = isbn
        self._entries: Deque[ReservationEntry] = deque()

    def enqueue(self, patron: Patron) -> ReservationEntry:
        entry = ReservationEntry(patron=patron, isbn=self.isbn)
        self._entries.append(entry)
        return entry

    def dequeue_next(self) -> Optional[ReservationEntry]:
        if not self._entries:
            return None
        return self._entries.popleft()

    def is_empty(self) -> bool:
        return not self._entries

    def patrons(self) -> List[Patron]:
        return [entry.patron for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)


class ReservationRegistry:
    """Owns all reservation queues and the ordered list of availability listeners."""

    def __init__(self) -> None:
        self._queues: Dict[str, ReservationQueue] = {}
        self._listeners: List[ReservationListener] = []
        self._lock = RLock()
        self.listener_failures: List[ListenerFailure] = []

    # ------------------------- Queues ------------------------- #
    def reserve(self, isbn: str, patron: Patron) -> ReservationEntry:
        """Append ``patron`` to the title's queue. Repeated calls occupy repeated slots."""
        if not isbn:
            raise ValueError("ISBN cannot be empty.")
        if patron is None:
            raise ValueError("A patron is required to reserve a title.")
        with self._lock:
            queue = self._queues.get(isbn)
            if queue is None:
                queue = self._queues[isbn] = ReservationQueue(isbn)
            entry = queue.enqueue(patron)
            position = len(queue)
        logger.info(f"Patron {patron.name} reserved ISBN {isbn} (position {position})")
        return entry

    def has_reservations(self, isbn: str) -> bool:
        with self._lock:
            queue = self._queues.get(isbn)
            return queue is not None and not queue.is_empty()

    def poll_next_patron(self, isbn: str) -> Optional[Patron]:
        with self._lock:
            queue = self._queues.get(isbn)
            if queue is None:
                return None
            entry = queue.dequeue_next()
            if queue.is_empty():
                del self._queues[isbn]
        return entry.patron if entry else None

    def waiting_patrons(self, isbn: str) -> List[Patron]:
        with self._lock:
            queue = self._queues.get(isbn)
            return queue.patrons() if queue else []

    def queue_length(self, isbn: str) -> int:
        with self._lock:
            queue = self._queues.get(isbn)
            return len(queue) if queue else 0

    def reserved_isbns(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(isbn for isbn, queue in self._queues.items() if not queue.is_empty())

    # ------------------------- Listeners ------------------------- #
    def add_listener(self, listener: ReservationListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ReservationListener) -> bool:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return False
            return True

    @property
    def listeners(self) -> Tuple[ReservationListener, ...]:
        with self._lock:
            return tuple(self._listeners)

    def notify_book_available(self, book: Book, patron: Patron) -> int:
        """Deliver the availability notice to every listener; returns how many succeeded."""
        # dispatch outside the lock so a listener may call back into the library
        listeners = self.listeners
        delivered = 0
        for listener in listeners:
            try:
                listener.on_book_available(book, patron)
                delivered += 1
            except Exception as e:
                logger.warning(f"Listener {listener!r} failed for ISBN {book.isbn}: {e}")
                with self._lock:
                    self.listener_failures.append(
                        ListenerFailure(listener=listener, isbn=book.isbn, patron_id=patron.id, error=str(e))
                    )
        return delivered
