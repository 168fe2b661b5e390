# ==============================================================================
# JSON File Document Source
# ==============================================================================
"""
Filesystem implementation of the DocumentSource interface.

Reads three JSON arrays from a directory:

    tracking.json    - customer visit documents
    listings.json    - product listing documents
    categories.json  - product category documents

Useful for offline analysis of exported collections and for fixtures. The
engine row caps apply exactly as they do for MongoDB. A missing file yields
an empty collection with a warning; a file that is not a JSON array of
objects is an error.
"""

import json
import logging
from pathlib import Path

from cartlens.base.repositories import DocumentSource, RawDocument
from cartlens.core.errors import DocumentSourceError
from cartlens.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

TRACKING_FILE = "tracking.json"
LISTINGS_FILE = "listings.json"
CATEGORIES_FILE = "categories.json"


class JsonDocumentSource(DocumentSource):
    """Reads exported collections from JSON files in one directory."""

    def __init__(self, directory: str | Path, settings: Settings | None = None):
        """
        Initialize the document source.

        Args:
            directory: Directory holding the three JSON files
            settings: Application settings. If None, uses get_settings().
        """
        self._directory = Path(directory)
        self._settings = settings or get_settings()
        self._connected = False

    @property
    def directory(self) -> Path:
        """Get the source directory."""
        return self._directory

    def connect(self) -> None:
        """
        Verify the source directory exists.

        Raises:
            DocumentSourceError: If the directory does not exist
        """
        if not self._directory.is_dir():
            raise DocumentSourceError(f"Not a directory: {self._directory}")
        self._connected = True
        logger.info("JsonDocumentSource connected (directory=%s)", self._directory)

    def _load(self, filename: str, limit: int) -> list[RawDocument]:
        if not self._connected:
            raise DocumentSourceError("JSON source not connected. Call connect() first.")

        path = self._directory / filename
        if not path.exists():
            logger.warning("%s not found; using an empty collection", path)
            return []

        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DocumentSourceError(f"Failed to read {path}: {e}") from e

        if not isinstance(data, list):
            raise DocumentSourceError(f"{path} must contain a JSON array")

        docs = [doc for doc in data if isinstance(doc, dict)]
        if len(docs) != len(data):
            logger.debug("Skipped %d non-object entries in %s", len(data) - len(docs), path)
        return docs[: max(limit, 0)]

    def fetch_tracking(self) -> list[RawDocument]:
        """Fetch customer visit documents."""
        return self._load(TRACKING_FILE, self._settings.engine.tracking_limit)

    def fetch_listings(self) -> list[RawDocument]:
        """Fetch product listing documents."""
        return self._load(LISTINGS_FILE, self._settings.engine.listings_limit)

    def fetch_categories(self) -> list[RawDocument]:
        """Fetch product category documents."""
        return self._load(CATEGORIES_FILE, self._settings.engine.categories_limit)

    def close(self) -> None:
        """Release the source."""
        self._connected = False
