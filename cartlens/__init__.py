# ==============================================================================
# Cartlens
# ==============================================================================
"""
E-commerce cart analytics: sessions, leak, price tiers, transitions,
recommendations and date-range reprojection.
"""

from cartlens.core import AnalyticsBundle, AnalyticsEngine

__all__ = [
    "AnalyticsBundle",
    "AnalyticsEngine",
]
