from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Union

from lending.book import Book


class SearchKind(str, Enum):
    TITLE = "title"
    AUTHOR = "author"
    ISBN = "isbn"

    @classmethod
    def parse(cls, tag: Union["SearchKind", str, None]) -> "SearchKind":
        """Resolve a tag case-insensitively; anything unrecognised means a title search."""
        if isinstance(tag, SearchKind):
            return tag
        try:
            return cls((tag or "").strip().lower())
        except ValueError:
            return cls.TITLE


def search_title(books: Iterable[Book], query: Optional[str]) -> List[Book]:
    if query is None:
        return []
    q = query.strip().lower()
    return [b for b in books if b.title and q in b.title.lower()]


def search_author(books: Iterable[Book], query: Optional[str]) -> List[Book]:
    if query is None:
        return []
    q = query.strip().lower()
    return [b for b in books if b.author and q in b.author.lower()]


def search_isbn(books: Iterable[Book], query: Optional[str]) -> List[Book]:
    if query is None:
        return []
    q = query.strip().lower()
    return [b for b in books if b.isbn.lower() == q]


SEARCHES: Dict[SearchKind, Callable[[Iterable[Book], Optional[str]], List[Book]]] = {
    SearchKind.TITLE: search_title,
    SearchKind.AUTHOR: search_author,
    SearchKind.ISBN: search_isbn,
}


def search_books(kind: Union[SearchKind, str, None], books: Iterable[Book], query: Optional[str]) -> List[Book]:
    return SEARCHES[SearchKind.parse(kind)](books, query)
