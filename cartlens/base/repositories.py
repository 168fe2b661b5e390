# ==============================================================================
# Document Source Abstract Base Class
# ==============================================================================
"""
Repository ABC for reading the raw document collections.

This defines the "what" (fetch three collections) not the "how" (a database
query or files on disk). Concrete implementations in infrastructure/ handle
the specifics.

Every fetch returns a fully materialized list so that all I/O completes
before the analytics engine starts computing.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

RawDocument = Mapping[str, Any]


class DocumentSource(ABC):
    """Source of tracking, listing and category documents."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the data store."""
        ...

    @abstractmethod
    def fetch_tracking(self) -> list[RawDocument]:
        """
        Fetch customer visit documents.

        Returns:
            Up to the configured cap of tracking documents
        """
        ...

    @abstractmethod
    def fetch_listings(self) -> list[RawDocument]:
        """
        Fetch product listing documents.

        Returns:
            Up to the configured cap of listing documents
        """
        ...

    @abstractmethod
    def fetch_categories(self) -> list[RawDocument]:
        """
        Fetch product category documents.

        Returns:
            Up to the configured cap of category documents
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Close connection and release resources."""
        ...

    def __enter__(self) -> "DocumentSource":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
