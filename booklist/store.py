"""In-memory book list persisted to a key-value slot."""
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from booklist.errors import ValidationError
from booklist.models import Book, coerce_created_at, ensure_https, new_id, now_ms

logger = logging.getLogger(__name__)

STORAGE_KEY = "booklist-v1"


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim an optional text field; blank becomes None."""
    if value is None:
        return None
    return value.strip() or None


def _clean_url(value: Optional[str]) -> Optional[str]:
    url = _clean(value)
    return ensure_https(url) if url else None


def _require_title(title: Optional[str]) -> str:
    t = (title or "").strip()
    if not t:
        raise ValidationError("Title is required")
    return t


class BookStore:
    """Owns the ordered book list and mirrors it to storage."""

    def __init__(
        self,
        storage,
        key: str = STORAGE_KEY,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = new_id
    ):
        """
        Initialize the store.

        Args:
            storage: Backend exposing ``read(key)`` and ``write(key, text)``
            key: Slot the list is persisted under
            clock: Returns the current time in epoch milliseconds
            id_factory: Returns a fresh unique book id
        """
        self.storage = storage
        self.key = key
        self.clock = clock
        self.id_factory = id_factory
        self._books: List[Book] = []

    @property
    def books(self) -> List[Book]:
        """Snapshot of the list, newest first."""
        return list(self._books)

    def __len__(self) -> int:
        return len(self._books)

    def load(self) -> List[Book]:
        """
        Read the persisted list into memory.

        Missing, unreadable or malformed data degrades to an empty list;
        this method never raises.

        Returns:
            The loaded books
        """
        self._books, repaired = self._read_persisted()
        if repaired:
            logger.warning(f"Repaired {repaired} stored records with bad ids or fields")
            try:
                self.save()
            except Exception as e:
                logger.warning(f"Could not write repaired list '{self.key}': {e}")
        logger.info(f"Loaded {len(self._books)} books")
        return self.books

    def _read_persisted(self) -> Tuple[List[Book], int]:
        try:
            raw = self.storage.read(self.key)
        except Exception as e:
            logger.warning(f"Could not read stored list '{self.key}': {e}")
            return [], 0
        if not raw:
            return [], 0

        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Stored list '{self.key}' is not valid JSON: {e}")
            return [], 0
        if not isinstance(parsed, list):
            logger.warning(f"Stored list '{self.key}' is not an array, ignoring it")
            return [], 0

        books = []
        seen_ids = set()
        repaired = 0
        for entry in parsed:
            if not isinstance(entry, dict) or not isinstance(entry.get("title"), str):
                continue
            record = self._repair_entry(entry, seen_ids)
            if record != entry:
                repaired += 1
            seen_ids.add(record["id"])
            books.append(Book.from_dict(record))
        return books, repaired

    def _repair_entry(self, entry: Dict[str, Any], seen_ids: set) -> Dict[str, Any]:
        """
        Coerce a stored record into the shape ``Book`` expects.

        Ids must be non-empty strings unique within the list; a missing,
        non-string or repeated id is replaced with a fresh one.
        """
        record = dict(entry)
        book_id = record.get("id")
        if not isinstance(book_id, str) or not book_id or book_id in seen_ids:
            record["id"] = self.id_factory()
        record["createdAt"] = coerce_created_at(record.get("createdAt"), 0)
        for name in ("author", "url", "note"):
            value = record.get(name)
            if value is None or isinstance(value, str):
                continue
            record[name] = str(value) if value else None
        # Records written before the purchased flag existed
        if not isinstance(record.get("purchased"), bool):
            record["purchased"] = False
        return record

    def save(self) -> None:
        """Write the full list to storage."""
        payload = json.dumps([b.to_dict() for b in self._books], ensure_ascii=False)
        self.storage.write(self.key, payload)

    def get(self, book_id: str) -> Optional[Book]:
        """Get a book by ID."""
        return next((b for b in self._books if b.id == book_id), None)

    def add(
        self,
        title: str,
        author: Optional[str] = None,
        url: Optional[str] = None,
        note: Optional[str] = None,
        purchased: bool = False
    ) -> Book:
        """
        Register a new book at the top of the list.

        Args:
            title: Required, trimmed
            author: Optional author
            url: Optional link, ``https://`` prepended when schemeless
            note: Optional free text
            purchased: Initial purchase flag

        Returns:
            The created book

        Raises:
            ValidationError: If the title is blank
        """
        book = Book(
            id=self.id_factory(),
            title=_require_title(title),
            created_at=self.clock(),
            author=_clean(author),
            url=_clean_url(url),
            note=_clean(note),
            purchased=bool(purchased),
        )
        self._books.insert(0, book)
        self.save()
        logger.info(f"Added book {book.id}: {book.title}")
        return book

    def update(
        self,
        book_id: str,
        title: str,
        author: Optional[str] = None,
        url: Optional[str] = None,
        note: Optional[str] = None,
        purchased: bool = False
    ) -> Optional[Book]:
        """
        Replace the editable fields of a book.

        ``id`` and ``created_at`` are kept. Returns None when no book has
        the given id.

        Raises:
            ValidationError: If the title is blank
        """
        clean_title = _require_title(title)
        book = self.get(book_id)
        if book is None:
            logger.info(f"Update skipped, no book {book_id}")
            return None

        book.title = clean_title
        book.author = _clean(author)
        book.url = _clean_url(url)
        book.note = _clean(note)
        book.purchased = bool(purchased)
        self.save()
        logger.info(f"Updated book {book_id}")
        return book

    def remove(self, book_id: str) -> bool:
        """Delete a book. Returns False when the id is unknown."""
        remaining = [b for b in self._books if b.id != book_id]
        if len(remaining) == len(self._books):
            return False
        self._books = remaining
        self.save()
        logger.info(f"Removed book {book_id}")
        return True

    def toggle_purchased(self, book_id: str) -> Optional[Book]:
        """Flip the purchased flag of a book."""
        book = self.get(book_id)
        if book is None:
            return None
        book.purchased = not book.purchased
        self.save()
        logger.info(f"Book {book_id} marked {book.status_str}")
        return book

    def clear(self) -> None:
        """Remove every book. Callers confirm with the user first."""
        if not self._books:
            return
        count = len(self._books)
        self._books = []
        self.save()
        logger.info(f"Cleared {count} books")

    def replace_all(self, books: List[Book]) -> None:
        """Swap in a whole new list, e.g. after an import."""
        self._books = list(books)
        self.save()
        logger.info(f"Replaced list with {len(self._books)} books")
