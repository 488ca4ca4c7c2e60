"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Storage
    DATA_DIR = os.getenv("BOOKLIST_DATA_DIR", os.path.join("~", ".booklist"))
    STORAGE_KEY = os.getenv("BOOKLIST_STORAGE_KEY", "booklist-v1")

    # Export
    EXPORT_DIR = os.getenv("BOOKLIST_EXPORT_DIR", ".")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def storage_path(self):
        """File that backs the persisted list."""
        return os.path.join(os.path.expanduser(self.DATA_DIR), f"{self.STORAGE_KEY}.json")
