from collections import Counter
from typing import Iterable, List

from lending.book import Book, BookStatus
from lending.patron import Patron


class RecommendationEngine:
    """Suggest available titles by the authors a patron borrows most."""

    def recommend(self, patron: Patron, catalog: Iterable[Book], limit: int) -> List[Book]:
        catalog = list(catalog)
        if limit <= 0:
            return []
        by_isbn = {book.isbn: book for book in catalog}

        author_count: Counter = Counter()
        for record in patron.borrow_history:
            book = by_isbn.get(record.isbn)
            if book is not None and book.author:
                author_count[book.author] += 1

        available = [b for b in catalog if b.status == BookStatus.AVAILABLE]
        if author_count:
            preferred = [b for b in available if b.author in author_count]
            if preferred:
                # stable: equally preferred authors keep catalog order
                preferred.sort(key=lambda b: author_count[b.author], reverse=True)
                return preferred[:limit]

        # no history or nothing by a known author: newest publications first
        available.sort(key=lambda b: b.publication_year, reverse=True)
        return available[:limit]
