# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

This module contains concrete implementations of the base interfaces:
- repositories/ - Document sources (MongoDB, JSON files)
"""

from cartlens.infrastructure.repositories import (
    JsonDocumentSource,
    MongoDocumentSource,
    check_mongodb_connection,
)

__all__ = [
    "JsonDocumentSource",
    "MongoDocumentSource",
    "check_mongodb_connection",
]
