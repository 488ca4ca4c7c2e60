"""Data models for books."""
import re
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Dict, Any

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def new_id() -> str:
    """Generate a fresh opaque book identifier."""
    return uuid.uuid4().hex


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def coerce_created_at(value: Any, default: int) -> int:
    """Turn an untrusted timestamp into epoch milliseconds, or ``default``."""
    if not value or isinstance(value, bool):
        return default
    try:
        if isinstance(value, (int, float)):
            return int(value)
        return int(float(str(value)))
    except (ValueError, OverflowError):
        return default


def ensure_https(url: str) -> str:
    """Prepend ``https://`` when the URL carries no http(s) scheme."""
    return url if _SCHEME_RE.match(url) else f"https://{url}"


@dataclass
class Book:
    """A single want-to-read entry."""
    id: str
    title: str
    created_at: int
    author: Optional[str] = None
    url: Optional[str] = None
    note: Optional[str] = None
    purchased: bool = False

    @property
    def status_str(self) -> str:
        """Human readable purchase status."""
        return "purchased" if self.purchased else "unpurchased"

    @property
    def merge_key(self) -> str:
        """Key used to deduplicate records during an import merge."""
        return self.id or f"{self.title}|{self.author or ''}"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the JSON record shape.

        Optional fields that are unset are left out instead of written
        as null.

        Returns:
            Dictionary with ``createdAt`` in camelCase
        """
        data: Dict[str, Any] = {"id": self.id, "title": self.title}
        for name in ("author", "url", "note"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        data["createdAt"] = self.created_at
        data["purchased"] = self.purchased
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        """Build a book from an already validated JSON record."""
        return cls(
            id=data.get("id", ""),
            title=data["title"],
            created_at=data.get("createdAt") or 0,
            author=data.get("author"),
            url=data.get("url"),
            note=data.get("note"),
            purchased=data.get("purchased", False),
        )

