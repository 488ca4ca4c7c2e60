#!/usr/bin/env python3
"""Shelfpick CLI - want-to-read list with a random pick."""
import argparse
import sys
import json
from pathlib import Path
from tabulate import tabulate
from booklist.config import Config
from booklist.errors import BookListError, MalformedInputError
from booklist.picker import MODES, MODE_ALL, pick_random
from booklist.query import filter_books, count_by_status
from booklist.storage import JsonFileStorage
from booklist.store import BookStore
from booklist.transfer import (
    IMPORT_MODES,
    MODE_MERGE,
    MODE_REPLACE,
    export_books,
    import_books,
    summarize_import,
)
import logging

logger = logging.getLogger(__name__)


def setup_store(config: Config) -> BookStore:
    """Open the persisted book list."""
    store = BookStore(JsonFileStorage(config.DATA_DIR), key=config.STORAGE_KEY)
    store.load()
    logger.debug(f"Using book list at {config.storage_path}")
    return store


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on the terminal."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def display_books(books, format_type: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["ID", "Title", "Author", "Status", "Note"]
        rows = [
            [
                book.id[:8],
                book.title[:50] + "..." if len(book.title) > 50 else book.title,
                book.author or "",
                book.status_str,
                (book.note or "")[:30] + "..." if len(book.note or "") > 30 else (book.note or "")
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book.to_dict() for book in books], indent=2, ensure_ascii=False))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            author = f" - {book.author}" if book.author else ""
            print(f"{i}. {book.title}{author} [{book.status_str}]")


def display_pick(book):
    """Show the picked book."""
    print("\n" + "=" * 50)
    print("TODAY'S BOOK")
    print("=" * 50)
    print(book.title)
    if book.author:
        print(book.author)
    if book.note:
        print(f"\n{book.note}")
    if book.url:
        print(f"\n{book.url}")
    print(f"\nStatus: {book.status_str}")
    print("=" * 50 + "\n")


def resolve_id(store: BookStore, prefix: str) -> str:
    """Expand an id prefix as shown by ``list`` to a full id."""
    matches = [b.id for b in store.books if b.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise BookListError(f"No book with id {prefix}")
    raise BookListError(f"Id prefix {prefix} is ambiguous ({len(matches)} books)")


def add_book(args, config: Config):
    """Register a new book."""
    store = setup_store(config)
    book = store.add(
        args.title,
        author=args.author,
        url=args.url,
        note=args.note,
        purchased=args.purchased
    )
    print(f"✅ Added {book.title} ({book.id[:8]})")


def edit_book(args, config: Config):
    """Edit a book, keeping fields that were not given."""
    store = setup_store(config)
    book = store.get(resolve_id(store, args.id))

    purchased = book.purchased if args.purchased is None else args.purchased
    store.update(
        book.id,
        args.title if args.title is not None else book.title,
        author=args.author if args.author is not None else book.author,
        url=args.url if args.url is not None else book.url,
        note=args.note if args.note is not None else book.note,
        purchased=purchased
    )
    print(f"✅ Updated {book.id[:8]}")


def remove_book(args, config: Config):
    """Delete a book."""
    store = setup_store(config)
    book_id = resolve_id(store, args.id)
    store.remove(book_id)
    print(f"✅ Removed {book_id[:8]}")


def toggle_book(args, config: Config):
    """Flip the purchased flag."""
    store = setup_store(config)
    book = store.toggle_purchased(resolve_id(store, args.id))
    print(f"✅ {book.title} is now {book.status_str}")


def list_books(args, config: Config):
    """Show the (optionally filtered) list with status counts."""
    store = setup_store(config)
    if not len(store):
        print("No books yet. Add one with `shelfpick add TITLE`.")
        return

    books = filter_books(store.books, args.query)
    counts = count_by_status(books)
    display_books(books, args.format)
    if args.format != "json":
        print(
            f"\nShowing {counts['total']} "
            f"(purchased {counts['purchased']} / unpurchased {counts['unpurchased']})"
        )


def pick_book(args, config: Config):
    """Pick a random book from the filtered pool."""
    store = setup_store(config)
    while True:
        book = pick_random(store.books, query=args.query, mode=args.mode)
        display_pick(book)
        if not args.again or not confirm("Pick again?"):
            break


def export_data(args, config: Config):
    """Export the list to a timestamped JSON file."""
    store = setup_store(config)
    path = export_books(store.books, args.output_dir or config.EXPORT_DIR)
    print(f"✅ Exported {len(store)} books to {path}")


def read_source(source: str) -> str:
    """Read an import document from a local file."""
    try:
        return Path(source).expanduser().read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"{source} is not UTF-8 text: {e}") from e
    except OSError as e:
        raise BookListError(f"Cannot read {source}: {e.strerror or e}") from e


def import_data(args, config: Config):
    """Import a JSON file, replacing or merging into the list."""
    store = setup_store(config)
    text = read_source(args.source)

    mode = args.mode
    if mode is None:
        summary = summarize_import(store.books, text)
        print(f"Existing: {summary['existing']} / Incoming: {summary['incoming']}")
        if summary["rejected"]:
            print(f"Skipped {summary['rejected']} records without a title")
        mode = MODE_REPLACE if confirm("Replace the list? (No = merge)") else MODE_MERGE

    result = import_books(store, text, mode)
    print(f"✅ Import complete ({result.mode}): {result.total} books in the list")


def clear_books(args, config: Config):
    """Delete every book after confirmation."""
    store = setup_store(config)
    if not len(store):
        print("The list is already empty")
        return
    if args.yes or confirm(f"Delete all {len(store)} books?"):
        store.clear()
        print("✅ The list is now empty")


COMMANDS = {
    "add": add_book,
    "edit": edit_book,
    "remove": remove_book,
    "toggle": toggle_book,
    "list": list_books,
    "pick": pick_book,
    "export": export_data,
    "import": import_data,
    "clear": clear_books,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Shelfpick - want-to-read list with a random pick",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Add a book
  %(prog)s add "Dune" --author "Frank Herbert" --url example.com/dune

  # Search the list
  %(prog)s list --query herbert

  # Pick something you already own, and keep drawing
  %(prog)s pick --mode purchased --again

  # Back up and restore
  %(prog)s export --output-dir backups
  %(prog)s import backups/books-2026-10-18T09-05-03-120Z.json --mode merge
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Add command
    add_parser = subparsers.add_parser("add", help="Register a book")
    add_parser.add_argument("title", help="Book title (required)")
    add_parser.add_argument("--author", help="Author")
    add_parser.add_argument("--url", help="Link; https:// is added when missing")
    add_parser.add_argument("--note", help="Free-form note")
    add_parser.add_argument("--purchased", action="store_true", help="Mark as purchased")

    # Edit command
    edit_parser = subparsers.add_parser("edit", help="Edit a book")
    edit_parser.add_argument("id", help="Book id (prefix from `list` is enough)")
    edit_parser.add_argument("--title", help="New title")
    edit_parser.add_argument("--author", help="New author (empty string clears)")
    edit_parser.add_argument("--url", help="New link (empty string clears)")
    edit_parser.add_argument("--note", help="New note (empty string clears)")
    status = edit_parser.add_mutually_exclusive_group()
    status.add_argument("--purchased", dest="purchased", action="store_true", default=None)
    status.add_argument("--unpurchased", dest="purchased", action="store_false")

    # Remove / toggle commands
    remove_parser = subparsers.add_parser("remove", help="Delete a book")
    remove_parser.add_argument("id", help="Book id")
    toggle_parser = subparsers.add_parser("toggle", help="Flip the purchased flag")
    toggle_parser.add_argument("id", help="Book id")

    # List command
    list_parser = subparsers.add_parser("list", help="List books")
    list_parser.add_argument("--query", "-q", default="", help="Search title, author and note")
    list_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    # Pick command
    pick_parser = subparsers.add_parser("pick", help="Pick a random book")
    pick_parser.add_argument("--query", "-q", default="", help="Restrict the pool by search")
    pick_parser.add_argument("--mode", choices=MODES, default=MODE_ALL, help="Purchase mode (default: all)")
    pick_parser.add_argument("--again", action="store_true", help="Offer to pick again")

    # Export command
    export_parser = subparsers.add_parser("export", help="Export the list to JSON")
    export_parser.add_argument("--output-dir", help="Target directory (default: BOOKLIST_EXPORT_DIR)")

    # Import command
    import_parser = subparsers.add_parser("import", help="Import a JSON file")
    import_parser.add_argument("source", help="Path of a JSON array file")
    import_parser.add_argument("--mode", choices=IMPORT_MODES, help="Skip the prompt and replace or merge")

    # Clear command
    clear_parser = subparsers.add_parser("clear", help="Delete every book")
    clear_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        COMMANDS[args.command](args, config)

    except BookListError as e:
        print(f"❌ {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
