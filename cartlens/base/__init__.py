# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the contracts for the ports-and-adapters
architecture.
"""

from cartlens.base.repositories import DocumentSource, RawDocument

__all__ = [
    "DocumentSource",
    "RawDocument",
]
