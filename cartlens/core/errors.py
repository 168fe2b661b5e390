# ==============================================================================
# Cartlens Exceptions
# ==============================================================================
"""
Exception hierarchy for cartlens.

The analytics engine itself never raises on malformed documents. These
exceptions cover caller mistakes (bad date ranges) and missing external
dependencies (document store configuration and connectivity).
"""


class CartlensError(Exception):
    """Base class for all cartlens errors."""


class ConfigurationError(CartlensError):
    """A required external dependency is not configured (e.g. MONGO_URI)."""


class InvalidDateRangeError(CartlensError, ValueError):
    """A reprojection was requested with a malformed or inverted date range."""


class DocumentSourceError(CartlensError):
    """A document source failed or was used before connect()."""
