# ==============================================================================
# Cartlens Utilities
# ==============================================================================
"""
Shared utilities: configuration (with version lookup) and retry policies.
"""

from cartlens.utils.config import (
    EngineSettings,
    MongoSettings,
    Settings,
    get_settings,
    package_version,
)
from cartlens.utils.retry import (
    MONGO_RETRY_EXCEPTIONS,
    retry_light,
    retry_standard,
)

__all__ = [
    # Config
    "EngineSettings",
    "MongoSettings",
    "Settings",
    "get_settings",
    "package_version",
    # Retry
    "MONGO_RETRY_EXCEPTIONS",
    "retry_light",
    "retry_standard",
]
