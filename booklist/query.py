"""Free-text filtering and status counts over a book list."""
from typing import Dict, List, Optional

from booklist.models import Book


def _norm(s: Optional[str]) -> str:
    """Lower-case a possibly missing field for substring matching."""
    return (s or "").lower()


def filter_books(books: List[Book], query: Optional[str]) -> List[Book]:
    """
    Keep books whose title, author or note contains the query.

    Args:
        books: Books in display order
        query: Free text; blank matches everything

    Returns:
        New list preserving the original order
    """
    q = (query or "").strip().lower()
    if not q:
        return list(books)
    return [
        b for b in books
        if q in _norm(b.title) or q in _norm(b.author) or q in _norm(b.note)
    ]


def count_by_status(books: List[Book]) -> Dict[str, int]:
    """Tally purchased and unpurchased books."""
    purchased = sum(1 for b in books if b.purchased)
    return {
        "purchased": purchased,
        "unpurchased": len(books) - purchased,
        "total": len(books),
    }
