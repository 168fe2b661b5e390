# ==============================================================================
# Document Source Adapters
# ==============================================================================
"""
Adapters implementing the DocumentSource interface from base/repositories.py.

Currently supported:
- MongoDB (mongodb.py)
- JSON exports on disk (json_files.py)
"""

from cartlens.infrastructure.repositories.json_files import JsonDocumentSource
from cartlens.infrastructure.repositories.mongodb import (
    MongoDocumentSource,
    check_mongodb_connection,
)

__all__ = [
    "JsonDocumentSource",
    "MongoDocumentSource",
    "check_mongodb_connection",
]
