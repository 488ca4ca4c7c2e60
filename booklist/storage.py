"""Key-value storage backends for the persisted book list."""
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """Stores each key as ``<key>.json`` inside a data directory."""

    def __init__(self, data_dir):
        """
        Initialize file storage.

        Args:
            data_dir: Directory holding one file per key (created on demand)
        """
        self.data_dir = Path(data_dir).expanduser()

    def path_for(self, key: str) -> Path:
        """Return the file backing ``key``."""
        return self.data_dir / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        """
        Read the raw text stored under a key.

        Args:
            key: Storage key

        Returns:
            Stored text or None if nothing has been written yet
        """
        path = self.path_for(key)
        if not path.exists():
            logger.info(f"No stored data at {path}")
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, text: str) -> None:
        """
        Replace the text stored under a key.

        The file is swapped in with ``os.replace`` so a crash mid-write
        never leaves a truncated document behind.
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Wrote {len(text)} chars to {path}")


class MemoryStorage:
    """In-process storage, useful for tests and embedding."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, text: str) -> None:
        self.data[key] = text
