"""Tests for export, sanitize and import merging."""
import json
from datetime import datetime, timezone

import pytest

from booklist.errors import MalformedInputError
from booklist.models import Book
from booklist.storage import MemoryStorage
from booklist.store import BookStore, STORAGE_KEY
from booklist.transfer import (
    dumps_books,
    export_books,
    export_filename,
    import_books,
    merge_books,
    parse_import,
    sanitize_record,
    summarize_import,
)


def test_export_filename():
    """Test colons and periods of the ISO timestamp are replaced."""
    now = datetime(2026, 10, 18, 9, 5, 3, 120500, tzinfo=timezone.utc)

    assert export_filename(now) == "books-2026-10-18T09-05-03-120Z.json"


def test_export_books_writes_pretty_json(tmp_path):
    """Test the export file is an indented JSON array of records."""
    books = [Book("1", "吾輩は猫である", 10, author="夏目漱石")]

    path = export_books(books, tmp_path / "out")

    text = path.read_text(encoding="utf-8")
    assert path.name.startswith("books-") and path.suffix == ".json"
    assert "\n  {" in text
    assert "夏目漱石" in text
    assert json.loads(text) == [
        {"id": "1", "title": "吾輩は猫である", "author": "夏目漱石", "createdAt": 10, "purchased": False}
    ]


def test_sanitize_complete_record():
    """Test a well-formed record passes through."""
    raw = {"id": "a", "title": " Dune ", "author": "Frank", "url": "https://x",
           "note": "n", "createdAt": 42, "purchased": True, "extra": 1}

    book = sanitize_record(raw, now=99)

    assert book == Book("a", "Dune", 42, author="Frank", url="https://x", note="n", purchased=True)


def test_sanitize_defaults():
    """Test missing id, createdAt and purchased get defaults."""
    book = sanitize_record({"title": "Dune", "author": "", "purchased": "yes"},
                           now=99, id_factory=lambda: "new")

    assert book.id == "new"
    assert book.created_at == 99
    assert book.author is None
    assert book.purchased is False


def test_sanitize_coerces_values():
    """Test non-string values are turned into text and numbers."""
    book = sanitize_record({"id": 7, "title": 1984, "note": 5, "createdAt": "1500.0"}, now=1)

    assert book.id == "7"
    assert book.title == "1984"
    assert book.note == "5"
    assert book.created_at == 1500


def test_sanitize_rejects_untitled():
    """Test records without a usable title are dropped."""
    assert sanitize_record({"title": "   "}) is None
    assert sanitize_record({"author": "Nobody"}) is None
    assert sanitize_record("Dune") is None
    assert sanitize_record(None) is None


def test_sanitize_is_idempotent():
    """Test sanitizing a sanitized record yields the same record."""
    first = sanitize_record({"title": " Dune ", "note": "x", "purchased": 1}, now=5, id_factory=lambda: "i")

    again = sanitize_record(first.to_dict(), now=1000, id_factory=lambda: "other")

    assert again == first


def test_parse_import_malformed():
    """Test invalid JSON and non-array documents are rejected."""
    for text in ("{not json", '{"title": "Dune"}', '"Dune"', "null"):
        with pytest.raises(MalformedInputError):
            parse_import(text)


def test_parse_import_drops_bad_records():
    """Test bad elements are dropped without failing the import."""
    batch = parse_import(json.dumps([{"title": "Dune"}, {"title": ""}, 3, {"title": "Foo"}]))

    assert [b.title for b in batch.books] == ["Dune", "Foo"]
    assert batch.rejected == [{"title": ""}, 3]


def test_merge_incoming_wins():
    """Test incoming fields take precedence on the same id."""
    existing = [Book("1", "A", 1, purchased=False)]
    incoming = [Book("1", "A", 1, purchased=True)]

    merged = merge_books(existing, incoming)

    assert merged == [Book("1", "A", 1, purchased=True)]


def test_merge_keeps_fields_missing_from_incoming():
    """Test an incoming record without a note does not erase the local one."""
    existing = [Book("1", "A", 1, note="keep me")]
    incoming = [Book("1", "A renamed", 1)]

    merged = merge_books(existing, incoming)

    assert merged[0].title == "A renamed"
    assert merged[0].note == "keep me"


def test_merge_key_fallback():
    """Test id-less books passed in directly collapse on title and author."""
    existing = [Book("", "X", 1, author="Y")]
    incoming = [Book("", "X", 2, author="Y", note="from file")]

    merged = merge_books(existing, incoming, id_factory=lambda: "fresh")

    assert len(merged) == 1
    assert merged[0].note == "from file"
    assert merged[0].id == "fresh"


def test_merge_first_existing_wins_and_sorts():
    """Test duplicate existing keys keep the first and the result is newest first."""
    existing = [Book("1", "First", 5), Book("1", "Second", 6), Book("2", "Old", 1)]
    incoming = [Book("3", "New", 10)]

    merged = merge_books(existing, incoming)

    assert [(b.id, b.title) for b in merged] == [("3", "New"), ("1", "First"), ("2", "Old")]


def test_import_replace(store):
    """Test replace mode swaps the list and sorts by createdAt."""
    store.add("Local")
    text = json.dumps([
        {"id": "a", "title": "Older", "createdAt": 1},
        {"id": "b", "title": "Newer", "createdAt": 2},
    ])

    result = import_books(store, text, "replace")

    assert [b.id for b in store.books] == ["b", "a"]
    assert (result.existing, result.incoming, result.total) == (1, 2, 2)
    assert json.loads(store.storage.read(STORAGE_KEY))[0]["id"] == "b"


def test_import_merge(store):
    """Test merge mode overlays matching ids and adds new ones."""
    local = store.add("Dune", note="sand")
    text = json.dumps([
        {"id": local.id, "title": "Dune", "purchased": True, "createdAt": local.created_at},
        {"id": "x", "title": "Foo", "createdAt": 1},
    ])

    result = import_books(store, text, "merge")

    assert result.total == 2
    merged = store.get(local.id)
    assert merged.purchased is True
    assert merged.note == "sand"
    assert store.books[-1].id == "x"


def test_import_malformed_leaves_store_untouched(store):
    """Test a bad document aborts without mutation."""
    store.add("Dune")
    before = store.storage.read(STORAGE_KEY)

    with pytest.raises(MalformedInputError):
        import_books(store, '{"title": "Foo"}', "merge")

    assert [b.title for b in store.books] == ["Dune"]
    assert store.storage.read(STORAGE_KEY) == before


def test_import_unknown_mode(store):
    """Test an unknown mode is rejected before parsing."""
    with pytest.raises(ValueError):
        import_books(store, "[]", "append")


def test_summarize_import(store):
    """Test the counts shown before choosing a mode."""
    store.add("Dune")
    text = json.dumps([{"title": "Foo"}, {"title": ""}])

    assert summarize_import(store.books, text) == {"existing": 1, "incoming": 1, "rejected": 1}
    assert len(store) == 1


def test_round_trip(store, clock):
    """Test export then replace-import reproduces the list."""
    store.add("Dune", author="Frank Herbert", url="example.com")
    store.add("Foo", note="bar", purchased=True)
    store.add("Hyperion")
    original = store.books

    other = BookStore(MemoryStorage(), clock=clock)
    import_books(other, dumps_books(original), "replace")

    assert other.books == original


def test_merge_same_idless_file_twice_adds_copies(store):
    """Test ids assigned while sanitizing make repeated merges add new entries."""
    text = json.dumps([{"title": "X", "author": "Y"}])

    import_books(store, text, "merge")
    import_books(store, text, "merge")

    assert [b.title for b in store.books] == ["X", "X"]
    assert len({b.id for b in store.books}) == 2
