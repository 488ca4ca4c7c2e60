"""Export the book list to JSON and import it back with sanitizing."""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from booklist.errors import MalformedInputError
from booklist.models import Book, coerce_created_at, new_id, now_ms

logger = logging.getLogger(__name__)

MODE_REPLACE = "replace"
MODE_MERGE = "merge"
IMPORT_MODES = (MODE_REPLACE, MODE_MERGE)


@dataclass
class ImportBatch:
    """Sanitized books parsed from an import document."""
    books: List[Book] = field(default_factory=list)
    rejected: List[Any] = field(default_factory=list)


@dataclass
class ImportResult:
    """Outcome of an applied import."""
    mode: str
    existing: int
    incoming: int
    rejected: int
    total: int


def export_filename(now: Optional[datetime] = None) -> str:
    """
    Build a filesystem-safe export name from an ISO timestamp.

    Example: ``books-2026-10-18T09-05-03-120Z.json``
    """
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return "books-" + stamp.replace(":", "-").replace(".", "-") + ".json"


def dumps_books(books: List[Book]) -> str:
    """Serialize books as a pretty-printed JSON array."""
    return json.dumps([b.to_dict() for b in books], indent=2, ensure_ascii=False)


def export_books(books: List[Book], directory=".", now: Optional[datetime] = None) -> Path:
    """
    Write the list to a timestamped JSON file.

    Args:
        books: Books to export
        directory: Target directory (created if missing)
        now: Timestamp used for the filename

    Returns:
        Path of the written file
    """
    out_dir = Path(directory).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / export_filename(now)
    path.write_text(dumps_books(books), encoding="utf-8")
    logger.info(f"Exported {len(books)} books to {path}")
    return path


def sanitize_record(
    raw: Any,
    now: Optional[int] = None,
    id_factory: Callable[[], str] = new_id
) -> Optional[Book]:
    """
    Coerce one untrusted JSON element into a Book.

    Args:
        raw: Element of the imported array
        now: Timestamp for records without ``createdAt``
        id_factory: Generates ids for records without one

    Returns:
        Book or None if the element has no usable title
    """
    if not isinstance(raw, dict):
        return None

    title = str(raw.get("title") or "").strip()
    if not title:
        return None

    def _text(name: str) -> Optional[str]:
        value = raw.get(name)
        return str(value) if value else None

    book_id = raw.get("id")
    purchased = raw.get("purchased")
    default_created = now if now is not None else now_ms()
    return Book(
        id=str(book_id) if book_id else id_factory(),
        title=title,
        created_at=coerce_created_at(raw.get("createdAt"), default_created),
        author=_text("author"),
        url=_text("url"),
        note=_text("note"),
        purchased=purchased if isinstance(purchased, bool) else False,
    )


def parse_import(
    text: str,
    now: Optional[int] = None,
    id_factory: Callable[[], str] = new_id
) -> ImportBatch:
    """
    Parse an import document into sanitized books.

    Raises:
        MalformedInputError: If the text is not JSON or not an array
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedInputError(f"Import file is not valid JSON: {e}") from e
    if not isinstance(parsed, list):
        raise MalformedInputError("Import file must contain a JSON array")

    stamp = now if now is not None else now_ms()
    batch = ImportBatch()
    for raw in parsed:
        book = sanitize_record(raw, now=stamp, id_factory=id_factory)
        if book is None:
            batch.rejected.append(raw)
        else:
            batch.books.append(book)

    if batch.rejected:
        logger.warning(f"Dropped {len(batch.rejected)} import records without a title")
    return batch


def _sort_newest_first(books: List[Book]) -> List[Book]:
    return sorted(books, key=lambda b: b.created_at or 0, reverse=True)


def replace_books(incoming: List[Book]) -> List[Book]:
    """Result list for a replacing import."""
    return _sort_newest_first(incoming)


def merge_books(
    existing: List[Book],
    incoming: List[Book],
    id_factory: Callable[[], str] = new_id
) -> List[Book]:
    """
    Merge incoming books into the existing list.

    Records are keyed by id, or by ``title|author`` when they have no id.
    Existing records seed the map (first one per key wins); each incoming
    record then overlays the entry under its key. Fields the incoming
    record leaves unset keep their existing value. Entries still without
    an id get a fresh one.

    ``sanitize_record`` and ``BookStore.load`` both assign ids, so books
    reaching this function through ``import_books`` always key by id. An
    import file without ids therefore adds new entries each time it is
    merged; the ``title|author`` key only collapses id-less books passed
    in directly.

    Returns:
        Merged list, newest first
    """
    merged: Dict[str, Dict[str, Any]] = {}
    for book in existing:
        merged.setdefault(book.merge_key, book.to_dict())
    for book in incoming:
        key = book.merge_key
        merged[key] = {**merged.get(key, {}), **book.to_dict()}

    books = [Book.from_dict(data) for data in merged.values()]
    for book in books:
        if not book.id:
            book.id = id_factory()
    return _sort_newest_first(books)


def summarize_import(existing: List[Book], text: str) -> Dict[str, int]:
    """Counts shown before the user picks replace or merge."""
    batch = parse_import(text)
    return {
        "existing": len(existing),
        "incoming": len(batch.books),
        "rejected": len(batch.rejected),
    }


def import_books(store, text: str, mode: str) -> ImportResult:
    """
    Apply an import document to a store.

    The store is untouched unless the whole document parses.

    Args:
        store: BookStore to update
        text: Raw JSON document
        mode: ``replace`` or ``merge``

    Returns:
        ImportResult with before/after counts

    Raises:
        MalformedInputError: If the document cannot be parsed
        ValueError: If the mode is unknown
    """
    if mode not in IMPORT_MODES:
        raise ValueError(f"Unknown import mode: {mode!r}")

    batch = parse_import(text, now=store.clock(), id_factory=store.id_factory)
    existing = store.books
    if mode == MODE_REPLACE:
        result = replace_books(batch.books)
    else:
        result = merge_books(existing, batch.books, id_factory=store.id_factory)

    store.replace_all(result)
    logger.info(
        f"Imported {len(batch.books)} books ({mode}); list now has {len(result)}"
    )
    return ImportResult(
        mode=mode,
        existing=len(existing),
        incoming=len(batch.books),
        rejected=len(batch.rejected),
        total=len(result),
    )
