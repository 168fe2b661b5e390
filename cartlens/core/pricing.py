# ==============================================================================
# Price Segmentation Model
# ==============================================================================
"""
Robust price tiers and the price-tiered conversion funnel.

Tier boundaries come from a robust split of item prices: clip to the
[5th, 95th] percentile window, take the 33rd/66th percentiles in log1p space
and map them back with expm1. When the two boundaries collapse, every item
falls in a single "All" tier.

Quantiles use linear interpolation between order statistics (numpy's default
method).
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from cartlens.core.models import (
    PRICE_TIERS,
    EventType,
    ItemMeta,
    PriceBand,
    PriceBands,
    PriceMarkovMeta,
    PriceRangeData,
    Session,
    TierRates,
    Transition,
)

# Laplace smoothing strength for price band rates
BAND_ALPHA = 1


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]."""
    return min(max(value, low), high)


@dataclass(frozen=True)
class PriceSplits:
    """
    Robust tier boundaries.

    Attributes:
        t_low: Upper bound of the Low tier (None without enough data)
        t_high: Upper bound of the Mid tier (None without enough data)
        disp_min: 5th percentile of prices (display range start)
        disp_max: 95th percentile of prices (display range end)
    """

    t_low: float | None
    t_high: float | None
    disp_min: float = 0.0
    disp_max: float = 0.0

    @property
    def collapsed(self) -> bool:
        """True when tiers are undefined and everything maps to "All"."""
        return self.t_low is None or self.t_high is None or self.t_low == self.t_high

    def tier_for(self, price: float) -> str:
        """Assign a price to Low, Mid or High, or "All" when tiers collapse."""
        if self.collapsed:
            return "All"
        if price <= self.t_low:
            return "Low"
        if price <= self.t_high:
            return "Mid"
        return "High"


def item_prices(item_meta: ItemMeta) -> list[float]:
    """All finite item prices."""
    return [info.price for info in item_meta.values() if math.isfinite(info.price)]


def robust_price_splits(prices: Iterable[float]) -> PriceSplits:
    """
    Compute robust tier boundaries from a collection of prices.

    Args:
        prices: Item prices (non-finite values are ignored)

    Returns:
        PriceSplits; boundaries are None when no prices survive clipping
    """
    values = np.sort(np.asarray([p for p in prices if math.isfinite(p)], dtype=float))
    if values.size == 0:
        return PriceSplits(t_low=None, t_high=None, disp_min=0.0, disp_max=0.0)

    p05, p95 = (float(q) for q in np.quantile(values, [0.05, 0.95]))
    clipped = values[(values >= p05) & (values <= p95)]
    if clipped.size == 0:
        return PriceSplits(t_low=None, t_high=None, disp_min=p05, disp_max=p95)

    logs = np.sort(np.log1p(clipped))
    l33, l66 = np.quantile(logs, [0.33, 0.66])
    return PriceSplits(
        t_low=float(np.expm1(l33)),
        t_high=float(np.expm1(l66)),
        disp_min=p05,
        disp_max=p95,
    )


# ==============================================================================
# Price-Tiered Funnel
# ==============================================================================


@dataclass
class _TierCounts:
    view_sessions: int = 0
    view_then_cart_sessions: int = 0
    adds: int = 0
    removes: int = 0

    def rates(self) -> TierRates:
        view_to_cart = (
            self.view_then_cart_sessions / self.view_sessions if self.view_sessions > 0 else 0.0
        )
        cart_to_checkout = (
            clamp((self.adds - self.removes) / self.adds) if self.adds > 0 else 0.0
        )
        return TierRates(p_view_to_cart=view_to_cart, p_cart_to_checkout=cart_to_checkout)


@dataclass(frozen=True)
class PriceMarkov:
    """Price-tiered funnel model plus the boundaries it was built with."""

    model: dict[str, TierRates]
    meta: PriceMarkovMeta


def price_segmented_funnel(sessions: list[Session], item_meta: ItemMeta) -> PriceMarkov:
    """
    Build the price-tiered view -> cart -> checkout funnel.

    Per tier, pViewToCart is the share of sessions viewing the tier that also
    added an item of the same tier to the cart. pCartToCheckout is the proxy
    clamp((adds - removes) / adds), 0 for tiers without adds. The "All" tier
    is always computed from session-level totals.

    Args:
        sessions: Normalized sessions
        item_meta: Item metadata table

    Returns:
        PriceMarkov with rates for Low, Mid, High and All
    """
    splits = robust_price_splits(item_prices(item_meta))

    def tier_for_item(item_id: str) -> str:
        info = item_meta.get(item_id)
        return splits.tier_for(info.price if info else 0.0)

    tiers: dict[str, _TierCounts] = {}
    overall = _TierCounts()

    for session in sessions:
        viewed = {tier_for_item(e.item_id) for e in session.views}
        added = {tier_for_item(e.item_id) for e in session.carts if e.add}

        if session.views:
            overall.view_sessions += 1
            if any(e.add for e in session.carts):
                overall.view_then_cart_sessions += 1

        for tier in viewed:
            counts = tiers.setdefault(tier, _TierCounts())
            counts.view_sessions += 1
            if tier in added:
                counts.view_then_cart_sessions += 1

        for event in session.carts:
            counts = tiers.setdefault(tier_for_item(event.item_id), _TierCounts())
            counts.adds += event.add
            counts.removes += event.remove
            overall.adds += event.add
            overall.removes += event.remove

    model = {tier: TierRates() for tier in PRICE_TIERS}
    for tier, counts in tiers.items():
        model[tier] = counts.rates()
    model["All"] = overall.rates()

    return PriceMarkov(
        model=model,
        meta=PriceMarkovMeta(
            t_low=splits.t_low,
            t_high=splits.t_high,
            min=splits.disp_min,
            max=splits.disp_max,
        ),
    )


# ==============================================================================
# Price Bands
# ==============================================================================


def _smoothed(hits: int, total: int) -> float:
    """Laplace-smoothed rate (hits + a) / (total + 2a); 0 without samples."""
    if total == 0:
        return 0.0
    return (hits + BAND_ALPHA) / (total + 2 * BAND_ALPHA)


def price_bands(item_meta: ItemMeta, transitions: list[Transition]) -> PriceBands:
    """
    Compute view -> cart and wishlist -> cart rates per price band.

    Bands reuse the robust tier boundaries. Each transition whose source is a
    view (or wishlist add) is attributed to the band of the source event's
    price; it counts as a hit when the next event is a cart add.

    Returns:
        PriceBands with Low/Mid/High bands, or a single zeroed "All" band when
        there are no prices or the tiers collapse
    """
    prices = item_prices(item_meta)
    if not prices:
        return PriceBands(bands=[PriceBand(name="All", min=0.0, max=0.0)])

    splits = robust_price_splits(prices)
    if not (splits.t_low is not None and splits.t_high is not None and splits.t_low < splits.t_high):
        return PriceBands(bands=[PriceBand(name="All", min=splits.disp_min, max=splits.disp_max)])

    bounds = {
        "Low": (splits.disp_min, splits.t_low),
        "Mid": (splits.t_low, splits.t_high),
        "High": (splits.t_high, splits.disp_max),
    }
    totals = {name: {"view": 0, "wish": 0} for name in bounds}
    hits = {name: {"view": 0, "wish": 0} for name in bounds}

    for source, target in transitions:
        band = splits.tier_for(source.price)
        if source.type == EventType.VIEW:
            key = "view"
        elif source.type == EventType.WISHLIST_ADD:
            key = "wish"
        else:
            continue
        totals[band][key] += 1
        if target.type == EventType.CART_ADD:
            hits[band][key] += 1

    return PriceBands(
        bands=[
            PriceBand(
                name=name,
                min=low,
                max=high,
                view_to_cart=_smoothed(hits[name]["view"], totals[name]["view"]),
                wish_to_cart=_smoothed(hits[name]["wish"], totals[name]["wish"]),
                n_view=totals[name]["view"],
                n_wish=totals[name]["wish"],
            )
            for name, (low, high) in bounds.items()
        ]
    )


def price_range_data(
    sessions: list[Session], item_meta: ItemMeta, transitions: list[Transition]
) -> PriceRangeData:
    """
    Collect raw price samples by event type.

    View samples come from transitions (the source event's price); cart
    samples come from every session cart event.
    """
    view_from: list[float] = []
    view_to_cart_from: list[float] = []
    cart_add: list[float] = []
    cart_remove: list[float] = []

    for source, target in transitions:
        if source.type == EventType.VIEW:
            view_from.append(source.price)
            if target.type == EventType.CART_ADD:
                view_to_cart_from.append(source.price)

    for session in sessions:
        for event in session.carts:
            info = item_meta.get(event.item_id)
            price = info.price if info else 0.0
            if event.add:
                cart_add.append(price)
            if event.remove:
                cart_remove.append(price)

    return PriceRangeData(
        view_from_prices=view_from,
        view_to_cart_from_prices=view_to_cart_from,
        cart_add_prices=cart_add,
        cart_remove_prices=cart_remove,
    )
