"""Uniform random pick from a filtered pool."""
import logging
import random
from typing import List, Optional

from booklist.errors import NoCandidatesError
from booklist.models import Book
from booklist.query import filter_books

logger = logging.getLogger(__name__)

MODE_ALL = "all"
MODE_PURCHASED = "purchased"
MODE_UNPURCHASED = "unpurchased"
MODES = (MODE_ALL, MODE_PURCHASED, MODE_UNPURCHASED)

_EMPTY_MESSAGES = {
    MODE_ALL: "No candidates",
    MODE_PURCHASED: "No purchased books match the search",
    MODE_UNPURCHASED: "No unpurchased books match the search",
}


def build_pool(books: List[Book], query: Optional[str] = "", mode: str = MODE_ALL) -> List[Book]:
    """
    Derive the pick pool from the query and purchase mode.

    Args:
        books: Full book list
        query: Free-text search applied first
        mode: One of ``all``, ``purchased``, ``unpurchased``

    Returns:
        Books eligible for the pick
    """
    if mode not in MODES:
        raise ValueError(f"Unknown purchase mode: {mode!r}")

    pool = filter_books(books, query)
    if mode == MODE_PURCHASED:
        pool = [b for b in pool if b.purchased]
    elif mode == MODE_UNPURCHASED:
        pool = [b for b in pool if not b.purchased]
    return pool


def pick_one(pool: List[Book], rng: Optional[random.Random] = None, mode: str = MODE_ALL) -> Book:
    """
    Choose one element with uniform probability.

    Raises:
        NoCandidatesError: If the pool is empty
    """
    if not pool:
        reason = _EMPTY_MESSAGES.get(mode, _EMPTY_MESSAGES[MODE_ALL])
        raise NoCandidatesError(mode, f"{reason}. Try different conditions.")
    idx = (rng or random).randrange(len(pool))
    return pool[idx]


def pick_random(
    books: List[Book],
    query: Optional[str] = "",
    mode: str = MODE_ALL,
    rng: Optional[random.Random] = None
) -> Book:
    """Build the pool for ``query``/``mode`` and pick one book from it."""
    pool = build_pool(books, query, mode)
    book = pick_one(pool, rng=rng, mode=mode)
    logger.info(f"Picked {book.id} from a pool of {len(pool)} (mode={mode})")
    return book
