"""Want-to-read book list with a random pick."""
from booklist.errors import (
    BookListError,
    MalformedInputError,
    NoCandidatesError,
    ValidationError,
)
from booklist.models import Book
from booklist.store import BookStore

__all__ = [
    "Book",
    "BookStore",
    "BookListError",
    "MalformedInputError",
    "NoCandidatesError",
    "ValidationError",
]
