# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()

# Version tag for bundles computed from a source checkout (not installed)
FALLBACK_VERSION = "0.1.0"


def package_version(name: str, default: str = "unknown") -> str:
    """Installed version of a distribution, or default when it is not installed."""
    try:
        return version(name)
    except PackageNotFoundError:
        return default


def _default_version_tag() -> str:
    return package_version("cartlens", FALLBACK_VERSION)


class MongoSettings(BaseSettings):
    """MongoDB connection settings for the raw document collections."""

    model_config = SettingsConfigDict(env_prefix="MONGO_")

    uri: Optional[str] = Field(default=None, description="MongoDB connection URI")
    db_name: str = Field(default="BMR", description="Database name")

    # Collection names
    tracking_collection: str = Field(
        default="customervisits", description="Customer visit (tracking) collection"
    )
    listings_collection: str = Field(default="listings", description="Product listing collection")
    categories_collection: str = Field(
        default="productcategories", description="Product category collection"
    )

    # Client tuning
    max_pool_size: int = Field(default=5, description="Maximum connection pool size")
    server_selection_timeout_ms: int = Field(
        default=5000, description="Server selection timeout in milliseconds"
    )

    @property
    def is_configured(self) -> bool:
        """Check if a connection URI is set."""
        return bool(self.uri)


class EngineSettings(BaseSettings):
    """Analytics engine settings.

    Row caps bound how many documents are read from each collection, which
    in turn bounds the wall-clock cost of a single compute run.
    """

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    tracking_limit: int = Field(default=20000, ge=0, description="Max tracking documents to read")
    listings_limit: int = Field(default=5000, ge=0, description="Max listing documents to read")
    categories_limit: int = Field(default=10000, ge=0, description="Max category documents to read")
    version_tag: str = Field(
        default_factory=_default_version_tag,
        description="Version tag written into every bundle",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    mongo: MongoSettings = Field(default_factory=MongoSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def effective_log_level(self) -> str:
        """Log level, forced to DEBUG when debug mode is on."""
        return "DEBUG" if self.debug else self.log_level.upper()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
