# ==============================================================================
# MongoDB Document Source
# ==============================================================================
"""
MongoDB implementation of the DocumentSource interface.

Reads the three raw collections (customer visits, listings, product
categories) with a plain ``find({})`` capped by the engine row limits.
Connection checks and fetches are retried on transient driver errors; a
failure that survives every retry is raised as DocumentSourceError.
"""

import logging

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from cartlens.base.repositories import DocumentSource, RawDocument
from cartlens.core.errors import ConfigurationError, DocumentSourceError
from cartlens.utils.config import Settings, get_settings
from cartlens.utils.retry import MONGO_RETRY_EXCEPTIONS, retry_light, retry_standard

logger = logging.getLogger(__name__)


class MongoDocumentSource(DocumentSource):
    """
    MongoDB implementation of DocumentSource.

    Collection names, pool size, timeouts and row caps all come from
    settings. A cap of 0 reads nothing (pymongo treats ``limit(0)`` as no
    limit, so the query is skipped).
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the document source.

        Args:
            settings: Application settings. If None, uses get_settings().
        """
        self._settings = settings or get_settings()
        self._client: MongoClient | None = None

    @property
    def db_name(self) -> str:
        """Get the database name."""
        return self._settings.mongo.db_name

    def connect(self) -> None:
        """
        Create the client and verify the server is reachable.

        Raises:
            ConfigurationError: If MONGO_URI is not set
            DocumentSourceError: If the server cannot be reached after retries
        """
        mongo = self._settings.mongo
        if not mongo.is_configured:
            raise ConfigurationError("MONGO_URI is not set")

        self._client = MongoClient(
            mongo.uri,
            maxPoolSize=mongo.max_pool_size,
            serverSelectionTimeoutMS=mongo.server_selection_timeout_ms,
        )
        try:
            self._ping()
        except PyMongoError as e:
            self.close()
            raise DocumentSourceError(f"Could not connect to MongoDB: {e}") from e
        logger.info("MongoDocumentSource connected (db=%s)", mongo.db_name)

    @retry_light(MONGO_RETRY_EXCEPTIONS, logger)
    def _ping(self) -> None:
        self._client.admin.command("ping")

    @retry_standard(MONGO_RETRY_EXCEPTIONS, logger)
    def _find(self, collection: str, limit: int) -> list[RawDocument]:
        docs = list(self._client[self.db_name][collection].find({}).limit(limit))
        logger.debug("Fetched %d documents from %s (limit=%d)", len(docs), collection, limit)
        return docs

    def _fetch(self, collection: str, limit: int) -> list[RawDocument]:
        if self._client is None:
            raise DocumentSourceError("MongoDB connection not established. Call connect() first.")
        if limit <= 0:
            return []
        try:
            return self._find(collection, limit)
        except PyMongoError as e:
            raise DocumentSourceError(f"Failed to fetch {collection}: {e}") from e

    def fetch_tracking(self) -> list[RawDocument]:
        """Fetch customer visit documents."""
        return self._fetch(
            self._settings.mongo.tracking_collection, self._settings.engine.tracking_limit
        )

    def fetch_listings(self) -> list[RawDocument]:
        """Fetch product listing documents."""
        return self._fetch(
            self._settings.mongo.listings_collection, self._settings.engine.listings_limit
        )

    def fetch_categories(self) -> list[RawDocument]:
        """Fetch product category documents."""
        return self._fetch(
            self._settings.mongo.categories_collection, self._settings.engine.categories_limit
        )

    def close(self) -> None:
        """Close connection and release resources."""
        if self._client:
            try:
                self._client.close()
                logger.info("MongoDocumentSource connection closed")
            except PyMongoError as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._client = None


def check_mongodb_connection(settings: Settings | None = None) -> bool:
    """
    Check if MongoDB is reachable.

    Args:
        settings: Application settings. If None, uses get_settings().

    Returns:
        True if connection successful, False otherwise
    """
    source = MongoDocumentSource(settings)
    try:
        source.connect()
        return True
    except (ConfigurationError, DocumentSourceError):
        return False
    finally:
        source.close()
