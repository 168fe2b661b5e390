# ==============================================================================
# Date-Range Reprojection
# ==============================================================================
"""
Recompute a full analytics bundle for a date sub-range.

Reprojection never touches raw documents. It works from the bundle's own
session summaries (filtered exactly by session date) and its pre-aggregated
fields:

- Exact ground truth (cart adds/removes, daily series, geo conversion)
  comes from the filtered sessions.
- Item leak rows and category cart counts are rescaled to that ground truth
  with largest-remainder apportionment, so totals shared by two views agree.
- Everything without exact ground truth is scaled by
  ratio = filtered sessions / all sessions.

Each call reads its source bundle only and returns a fresh bundle, so it is
safe to run repeatedly and concurrently against the same source.
"""

import calendar
import logging
import math
import re
from dataclasses import dataclass
from datetime import date

from cartlens.core.behavior import anomaly_thresholds, geo_insights, sort_leak_rows
from cartlens.core.errors import InvalidDateRangeError
from cartlens.core.models import (
    TRANSITION_STATES,
    AnalyticsBundle,
    CategoryInteraction,
    DailyTrends,
    LeakRow,
    LeakSummary,
    PriceBands,
    PriceRangeData,
    Sankey,
    Transitions,
)
from cartlens.core.pricing import clamp
from cartlens.core.sequences import empty_matrix, flow_links, row_normalize

logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negatives."""
    return math.floor(value + 0.5)


def apportion(total: int, weights: list[float]) -> list[int]:
    """
    Split an integer total across weights so the parts sum exactly to it.

    Largest-remainder (Hamilton) method: floor each proportional share, then
    hand the leftover units one at a time to the entries with the largest
    fractional remainders, ties going to the earlier entry. Negative weights
    count as zero. With an all-zero weight vector the whole total is handed
    out as leftovers, cycling through the entries in order.

    Args:
        total: Target integer total (>= 0)
        weights: Non-negative weights, one per entry

    Returns:
        Integer allocations, one per weight; empty when there are no weights

    Example:
        >>> apportion(10, [3, 3, 3])
        [4, 3, 3]
    """
    if not weights:
        return []
    clean = [w if w > 0 else 0 for w in weights]
    weight_sum = sum(clean) or 1
    raw = [w / weight_sum * total for w in clean]
    base = [math.floor(x) for x in raw]
    remainder = total - sum(base)

    order = sorted(range(len(raw)), key=lambda i: -(raw[i] - base[i]))
    for k in range(remainder):
        base[order[k % len(order)]] += 1
    return base


# ==============================================================================
# Date Range Helpers
# ==============================================================================


@dataclass(frozen=True)
class DateRangeValidation:
    is_valid: bool
    error: str | None = None


def validate_date_range(date_from: str, date_to: str) -> DateRangeValidation:
    """
    Validate a YYYY-MM-DD date range.

    Two empty bounds are valid (no filter). A single bound, malformed strings,
    impossible calendar dates and inverted ranges are not.
    """
    if not date_from and not date_to:
        return DateRangeValidation(is_valid=True)
    if not date_from or not date_to:
        return DateRangeValidation(is_valid=False, error="Both start and end dates are required")
    if not _DATE_PATTERN.match(date_from) or not _DATE_PATTERN.match(date_to):
        return DateRangeValidation(is_valid=False, error="Invalid date format (YYYY-MM-DD)")
    try:
        start = date.fromisoformat(date_from)
        end = date.fromisoformat(date_to)
    except ValueError:
        return DateRangeValidation(is_valid=False, error="Invalid date values")
    if end < start:
        return DateRangeValidation(is_valid=False, error="End date cannot be before start date")
    return DateRangeValidation(is_valid=True)


def default_date_range(bundle: AnalyticsBundle, today: date | None = None) -> tuple[str, str]:
    """
    Pick the initial range for a bundle.

    The current calendar month when the daily series has data in it;
    otherwise the full span of the series; today..today when it is empty.
    """
    today = today or date.today()
    month_start = today.replace(day=1)
    month_end = today.replace(day=calendar.monthrange(today.year, today.month)[1])

    series = bundle.daily.series
    start_key, end_key = month_start.isoformat(), month_end.isoformat()
    if any(start_key <= point.date <= end_key for point in series):
        return start_key, end_key
    if not series:
        return today.isoformat(), today.isoformat()
    return series[0].date, series[-1].date


# ==============================================================================
# Reprojection
# ==============================================================================


def empty_bundle(bundle: AnalyticsBundle) -> AnalyticsBundle:
    """
    The defined shape for a range with no sessions.

    Empty lists everywhere, a zero-filled 5x5 transition matrix and a flow
    graph with nodes but no links. Item metadata, the price funnel and the
    version tag carry over as copies.
    """
    size = len(TRANSITION_STATES)
    shell = bundle.model_copy(
        update={
            "sessions": [],
            "daily": DailyTrends(),
            "leak": LeakSummary(overall=0.0, items=[]),
            "category_interactions": [],
            "recos": {},
            "frequent_bundles": [],
            "price_range_data": PriceRangeData(),
            "price_bands": PriceBands(bands=[]),
            "transitions": Transitions(
                states=list(TRANSITION_STATES),
                counts=empty_matrix(size),
                probs=[[0.0] * size for _ in range(size)],
            ),
            "sankey": Sankey(nodes=list(TRANSITION_STATES), links=[]),
            "geo_insights": [],
        }
    )
    return shell.model_copy(deep=True)


def reproject_for_date_range(
    bundle: AnalyticsBundle, date_from: str, date_to: str
) -> AnalyticsBundle:
    """
    Recompute every aggregate in a bundle for [date_from, date_to].

    Args:
        bundle: Full (unfiltered) analytics bundle
        date_from: Inclusive start day, YYYY-MM-DD
        date_to: Inclusive end day, YYYY-MM-DD

    Returns:
        A new bundle scoped to the range; the empty shape when no session
        falls inside it

    Raises:
        InvalidDateRangeError: If the range is malformed or inverted
    """
    check = validate_date_range(date_from, date_to)
    if not check.is_valid:
        raise InvalidDateRangeError(check.error)
    if not date_from and not date_to:
        return bundle.model_copy(deep=True)

    sessions = [s for s in bundle.sessions if date_from <= s.day <= date_to]
    if not sessions:
        logger.info("No sessions between %s and %s; returning empty bundle", date_from, date_to)
        return empty_bundle(bundle)

    ratio = clamp(len(sessions) / len(bundle.sessions))
    total_adds = sum(s.n_cart_add for s in sessions)
    total_removes = sum(s.n_cart_remove for s in sessions)

    # Daily series: exact filter
    series = [p for p in bundle.daily.series if date_from <= p.date <= date_to]
    daily = DailyTrends(series=series, anomaly=anomaly_thresholds(series))

    # Transitions: scale counts, renormalize, rebuild links without self-loops
    counts = [[round_half_up(c * ratio) for c in row] for row in bundle.transitions.counts]
    transitions = Transitions(
        states=list(bundle.transitions.states),
        counts=counts,
        probs=row_normalize(counts),
    )
    sankey = Sankey(
        nodes=list(bundle.sankey.nodes),
        links=flow_links(counts, include_self_loops=False),
    )

    # Leak: apportion exact adds/removes across the existing item rows
    rows = bundle.leak.items
    adds_alloc = apportion(total_adds, [r.adds for r in rows])
    removes_alloc = apportion(total_removes, [r.removes for r in rows])
    leak_rows = [
        LeakRow(
            item=row.item,
            adds=adds,
            removes=removes,
            leak=clamp(removes / adds) if adds > 0 else 0.0,
        )
        for row, adds, removes in zip(rows, adds_alloc, removes_alloc)
    ]
    leak = LeakSummary(
        overall=clamp(total_removes / total_adds) if total_adds > 0 else 0.0,
        items=sort_leak_rows(leak_rows),
    )

    # Categories: scale views/wish, carts apportioned to the exact add total
    categories = bundle.category_interactions
    carts_alloc = apportion(total_adds, [c.carts for c in categories])
    category_rows = []
    for cat, carts in zip(categories, carts_alloc):
        views = round_half_up(cat.views * ratio)
        wish = round_half_up(cat.wish * ratio)
        category_rows.append(
            CategoryInteraction(
                category=cat.category,
                views=views,
                carts=carts,
                wish=wish,
                total=views + carts + wish,
            )
        )
    category_rows.sort(key=lambda c: -c.total)

    # Price samples: proportional truncation (approximation, not a resample)
    prices = bundle.price_range_data

    def truncate(values: list[float]) -> list[float]:
        return values[: round_half_up(len(values) * ratio)]

    price_range = PriceRangeData(
        view_from_prices=truncate(prices.view_from_prices),
        view_to_cart_from_prices=truncate(prices.view_to_cart_from_prices),
        cart_add_prices=truncate(prices.cart_add_prices),
        cart_remove_prices=truncate(prices.cart_remove_prices),
    )

    # Price bands: rates kept, sample sizes scaled
    bands = PriceBands(
        bands=[
            band.model_copy(
                update={
                    "n_view": round_half_up(band.n_view * ratio),
                    "n_wish": round_half_up(band.n_wish * ratio),
                }
            )
            for band in bundle.price_bands.bands
        ]
    )

    # Bundles: support scaled; recommendation rankings are scale-invariant
    frequent = [b.model_copy(update={"support": b.support * ratio}) for b in bundle.frequent_bundles]

    logger.debug(
        "Reprojected %s..%s: %d/%d sessions (ratio=%.3f), adds=%d removes=%d",
        date_from,
        date_to,
        len(sessions),
        len(bundle.sessions),
        ratio,
        total_adds,
        total_removes,
    )

    scoped = bundle.model_copy(
        update={
            "sessions": sessions,
            "daily": daily,
            "leak": leak,
            "category_interactions": category_rows,
            "price_range_data": price_range,
            "price_bands": bands,
            "transitions": transitions,
            "sankey": sankey,
            "recos": bundle.recos,
            "frequent_bundles": frequent,
            "geo_insights": geo_insights(sessions),
        }
    )
    # Untouched fields are shared with the source until this deep copy
    return scoped.model_copy(deep=True)
