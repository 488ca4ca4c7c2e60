"""Exceptions raised by the book list core."""


class BookListError(Exception):
    """Base class for errors surfaced to the user."""


class ValidationError(BookListError):
    """A book was submitted without a title."""


class MalformedInputError(BookListError):
    """Import data is not valid JSON or not a JSON array."""


class NoCandidatesError(BookListError):
    """Random pick requested against an empty pool."""

    def __init__(self, mode: str, message: str):
        super().__init__(message)
        self.mode = mode
