# ==============================================================================
# Behavioral Aggregators
# ==============================================================================
"""
Cart leak, category interaction, daily trend and geo conversion aggregates.

All functions are pure: they read sessions and item metadata and return new
bundle models. Every ratio guards its zero denominator and yields 0.
"""

from collections import defaultdict
from datetime import UTC, datetime

import numpy as np

from cartlens.core.models import (
    AnomalyThresholds,
    CategoryInteraction,
    DailyPoint,
    DailyTrends,
    GeoInsight,
    ItemMeta,
    LeakRow,
    LeakSummary,
    Session,
    SessionSummary,
)
from cartlens.core.pricing import clamp

TOP_CATEGORIES = 20
TOP_COUNTRIES = 20
ANOMALY_SIGMAS = 2
ANOMALY_MIN_DAYS = 3


def sort_leak_rows(rows: list[LeakRow]) -> list[LeakRow]:
    """Sort by leak descending, ties broken by more removes first."""
    return sorted(rows, key=lambda r: (-r.leak, -r.removes))


def leak_analytics(sessions: list[Session]) -> LeakSummary:
    """
    Per-item cart abandonment.

    Adds and removes are keyed by item id (never by category).
    """
    adds: dict[str, int] = defaultdict(int)
    removes: dict[str, int] = defaultdict(int)
    total_adds = 0
    total_removes = 0

    for session in sessions:
        for event in session.carts:
            if event.add:
                adds[event.item_id] += event.add
                total_adds += event.add
            if event.remove:
                removes[event.item_id] += event.remove
                total_removes += event.remove

    rows = []
    for item in dict.fromkeys([*adds, *removes]):
        a = adds.get(item, 0)
        r = removes.get(item, 0)
        rows.append(LeakRow(item=item, adds=a, removes=r, leak=clamp(r / a) if a > 0 else 0.0))

    return LeakSummary(
        overall=clamp(total_removes / total_adds) if total_adds > 0 else 0.0,
        items=sort_leak_rows(rows),
    )


def category_interactions(sessions: list[Session], item_meta: ItemMeta) -> list[CategoryInteraction]:
    """Views, cart adds and wishlist adds per category; top 20 by total."""
    by_category: dict[str, dict[str, int]] = {}

    def bump(item_id: str, key: str) -> None:
        info = item_meta.get(item_id)
        category = info.category if info else "Other"
        entry = by_category.setdefault(category, {"views": 0, "carts": 0, "wish": 0, "total": 0})
        entry[key] += 1
        entry["total"] += 1

    for session in sessions:
        for view in session.views:
            bump(view.item_id, "views")
        for cart in session.carts:
            if cart.add:
                bump(cart.item_id, "carts")
        for wish in session.wish:
            if wish.add:
                bump(wish.item_id, "wish")

    rows = [CategoryInteraction(category=name, **counts) for name, counts in by_category.items()]
    return sorted(rows, key=lambda r: -r.total)[:TOP_CATEGORIES]


def day_key(ts: datetime) -> str:
    """UTC calendar day bucket key (YYYY-MM-DD)."""
    return ts.astimezone(UTC).strftime("%Y-%m-%d")


def anomaly_thresholds(series: list[DailyPoint]) -> AnomalyThresholds:
    """
    Mean +/- 2 sample standard deviations of daily cart counts.

    Thresholds only activate with at least three days and non-zero spread;
    otherwise no outliers are ever reported. The lower bound is floored at 0.
    """
    cart_counts = np.asarray([point.carts for point in series], dtype=float)
    avg = float(cart_counts.mean()) if cart_counts.size else 0.0
    std = float(cart_counts.std(ddof=1)) if cart_counts.size >= 2 else 0.0

    lower = max(0.0, avg - ANOMALY_SIGMAS * std) if avg > 0 else 0.0
    upper = avg + ANOMALY_SIGMAS * std
    has_thresholds = cart_counts.size >= ANOMALY_MIN_DAYS and std > 0
    outliers = (
        [p.date for p in series if p.carts < lower or p.carts > upper] if has_thresholds else []
    )
    return AnomalyThresholds(
        has_thresholds=has_thresholds,
        lower=lower,
        upper=upper,
        outliers=outliers,
    )


def daily_trends(sessions: list[Session]) -> DailyTrends:
    """
    Daily views and cart adds, bucketed by each event's own timestamp.

    Returns:
        DailyTrends with a chronological series and anomaly thresholds
    """
    by_day: dict[str, dict[str, int]] = defaultdict(lambda: {"views": 0, "carts": 0})
    for session in sessions:
        for view in session.views:
            by_day[day_key(view.ts)]["views"] += 1
        for cart in session.carts:
            if cart.add:
                by_day[day_key(cart.ts)]["carts"] += 1

    series = [DailyPoint(date=day, **by_day[day]) for day in sorted(by_day)]
    return DailyTrends(series=series, anomaly=anomaly_thresholds(series))


def geo_insights(sessions: list[Session] | list[SessionSummary]) -> list[GeoInsight]:
    """
    Per-country share of sessions with at least one cart add; top 20.

    Accepts full sessions or their bundle summaries, so a reprojected bundle
    gets the same figures as a fresh computation over the same sessions.
    """
    by_country: dict[str, list[int]] = {}
    for session in sessions:
        stats = by_country.setdefault(session.country or "Unknown", [0, 0])
        stats[0] += 1
        if session.n_cart_add > 0:
            stats[1] += 1

    rows = [
        GeoInsight(country=country, conversion_rate=converted / n if n else 0.0)
        for country, (n, converted) in by_country.items()
    ]
    return sorted(rows, key=lambda r: -r.conversion_rate)[:TOP_COUNTRIES]
