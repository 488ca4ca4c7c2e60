"""Shared fixtures."""
import itertools

import pytest

from booklist.storage import MemoryStorage
from booklist.store import BookStore


@pytest.fixture
def clock():
    """Deterministic millisecond clock that advances on every call."""
    ticks = itertools.count(1_700_000_000_000, 1000)
    return lambda: next(ticks)


@pytest.fixture
def store(clock):
    """Empty store backed by memory."""
    ids = (f"id{n}" for n in itertools.count(1))
    s = BookStore(MemoryStorage(), clock=clock, id_factory=lambda: next(ids))
    s.load()
    return s
