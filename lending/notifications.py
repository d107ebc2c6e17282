import logging
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import List

from lending.book import Book
from lending.patron import Patron

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    isbn: str
    title: str
    patron_id: int
    patron_name: str
    patron_email: str
    sent_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "isbn": self.isbn,
            "title": self.title,
            "patron_id": self.patron_id,
            "patron_name": self.patron_name,
            "patron_email": self.patron_email,
            "sent_at": self.sent_at.isoformat(),
        }


class LoggingNotifier:
    """Delivers availability notices to the log and keeps them in an outbox."""

    def __init__(self) -> None:
        self._outbox: List[Notification] = []
        self._lock = Lock()

    def on_book_available(self, book: Book, patron: Patron) -> None:
        notice = Notification(
            isbn=book.isbn,
            title=book.title,
            patron_id=patron.id,
            patron_name=patron.name,
            patron_email=patron.email,
        )
        with self._lock:
            self._outbox.append(notice)
        logger.info(f"NOTIFICATION: Book available - {book.title} for patron {patron.name} ({patron.email})")

    @property
    def outbox(self) -> List[Notification]:
        with self._lock:
            return list(self._outbox)

    def notices_for(self, patron_id: int) -> List[Notification]:
        return [n for n in self.outbox if n.patron_id == patron_id]
