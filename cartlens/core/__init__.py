# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure analytics logic with no I/O.

This module contains:
- Domain and bundle models (Session, ItemInfo, AnalyticsBundle, ...)
- Ingestion of raw documents into sessions and item metadata
- Aggregators (leak, pricing, sequences, recommendations, daily, geo)
- Date-range reprojection and dashboard insights
- The AnalyticsEngine that wires them together

All code here is framework-agnostic and easily unit-testable.
"""

from cartlens.core.engine import AnalyticsEngine
from cartlens.core.errors import (
    CartlensError,
    ConfigurationError,
    DocumentSourceError,
    InvalidDateRangeError,
)
from cartlens.core.models import (
    TRANSITION_STATES,
    AnalyticsBundle,
    EventType,
    ItemInfo,
    Session,
    SessionEvent,
)
from cartlens.core.reprojection import (
    apportion,
    default_date_range,
    reproject_for_date_range,
    validate_date_range,
)

__all__ = [
    "AnalyticsBundle",
    "AnalyticsEngine",
    "CartlensError",
    "ConfigurationError",
    "DocumentSourceError",
    "EventType",
    "InvalidDateRangeError",
    "ItemInfo",
    "Session",
    "SessionEvent",
    "TRANSITION_STATES",
    "apportion",
    "default_date_range",
    "reproject_for_date_range",
    "validate_date_range",
]
