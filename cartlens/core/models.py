# ==============================================================================
# Cartlens Domain Models
# ==============================================================================
"""
Pydantic models for sessions, item metadata and the analytics bundle.

Two families live here:

- Domain models (SessionEvent, Session, ItemInfo, TransitionEvent) produced by
  ingestion and consumed read-only by every aggregator. They are frozen and
  hold tuples, so a computation can never mutate its shared inputs.
- Wire models (everything under "Analytics Bundle") that make up the engine
  output. They serialize to the camelCase JSON shape consumed by dashboards
  via ``AnalyticsBundle.to_json_dict()``.

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    """Session event types, in transition-matrix state order."""

    CART_ADD = "cart_add"
    CART_REMOVE = "cart_remove"
    VIEW = "view"
    WISHLIST_ADD = "wishlist_add"
    WISHLIST_REMOVE = "wishlist_remove"


# Fixed state order for the transition matrix and the flow graph
TRANSITION_STATES: list[str] = [e.value for e in EventType]

PriceTier = Literal["Low", "Mid", "High", "All"]
PRICE_TIERS: tuple[str, ...] = ("Low", "Mid", "High", "All")


def format_timestamp(ts: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with millisecond precision."""
    return ts.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ==============================================================================
# Domain Models
# ==============================================================================


class SessionEvent(BaseModel):
    """
    A single view, cart or wishlist action inside a session.

    Attributes:
        item_id: Identifier of the item acted on
        ts: When the action happened (UTC)
        add: 1 for an add action (cart/wishlist), else 0
        remove: 1 for a remove action (cart/wishlist), else 0
    """

    model_config = ConfigDict(frozen=True)

    item_id: str
    ts: datetime
    add: int = 0
    remove: int = 0


class Session(BaseModel):
    """
    One customer visit, normalized from a raw tracking document.

    Counts are derived from the event lists, so ``n_cart_add`` and
    ``n_cart_remove`` always equal the sums of the cart event flags.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., description="Unique session identifier")
    visitor_id: str = Field(default="unknown", description="Visitor identifier")
    country: str = Field(default="Unknown", description="Visitor country code")
    ts: datetime = Field(..., description="Session timestamp (UTC)")
    views: tuple[SessionEvent, ...] = ()
    carts: tuple[SessionEvent, ...] = ()
    wish: tuple[SessionEvent, ...] = ()

    @property
    def n_view(self) -> int:
        """Number of view events in session."""
        return len(self.views)

    @property
    def n_cart_add(self) -> int:
        """Number of cart additions in session."""
        return sum(e.add for e in self.carts)

    @property
    def n_cart_remove(self) -> int:
        """Number of cart removals in session."""
        return sum(e.remove for e in self.carts)

    @property
    def unique_items(self) -> frozenset[str]:
        """Set of item IDs touched by any event in session."""
        return frozenset(e.item_id for e in (*self.views, *self.carts, *self.wish))

    def to_summary(self) -> "SessionSummary":
        """Convert session to its serializable bundle view."""
        return SessionSummary(
            session_id=self.session_id,
            visitor_id=self.visitor_id,
            country=self.country,
            ts=self.ts,
            n_view=self.n_view,
            n_cart_add=self.n_cart_add,
            n_cart_remove=self.n_cart_remove,
        )


class ItemInfo(BaseModel):
    """Product metadata for one item."""

    model_config = ConfigDict(frozen=True)

    title: str
    price: float = Field(default=0.0, ge=0)
    category: str = "Other"
    brand: str = ""


ItemMeta = dict[str, ItemInfo]


class TransitionEvent(BaseModel):
    """A typed, timestamped action tagged with the acting item's price."""

    model_config = ConfigDict(frozen=True)

    ts: datetime
    type: EventType
    item_id: str
    price: float = 0.0


Transition = tuple[TransitionEvent, TransitionEvent]


# ==============================================================================
# Analytics Bundle (wire models)
# ==============================================================================


class WireModel(BaseModel):
    """Base for bundle models: frozen, camelCase aliases on output."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class SessionSummary(WireModel):
    session_id: str
    visitor_id: str
    country: str
    ts: datetime
    n_view: int
    n_cart_add: int
    n_cart_remove: int

    @property
    def day(self) -> str:
        """UTC calendar day of the session (YYYY-MM-DD)."""
        return self.ts.astimezone(UTC).strftime("%Y-%m-%d")

    @field_serializer("ts")
    def _serialize_ts(self, ts: datetime) -> str:
        return format_timestamp(ts)


class LeakRow(WireModel):
    item: str
    adds: int
    removes: int
    leak: float


class LeakSummary(WireModel):
    overall: float = 0.0
    items: list[LeakRow] = Field(default_factory=list)


class Reco(WireModel):
    item: str
    score: float


class FrequentBundle(WireModel):
    items: tuple[str, str]
    support: float


class TierRates(WireModel):
    p_view_to_cart: float = 0.0
    p_cart_to_checkout: float = 0.0


class PriceMarkovMeta(WireModel):
    t_low: float | None = None
    t_high: float | None = None
    min: float = 0.0
    max: float = 0.0


class PriceBand(WireModel):
    name: PriceTier
    min: float
    max: float
    view_to_cart: float = 0.0
    wish_to_cart: float = 0.0
    n_view: int = 0
    n_wish: int = 0


class PriceBands(WireModel):
    bands: list[PriceBand] = Field(default_factory=list)


class PriceRangeData(WireModel):
    """
    Raw per-event price samples.

    Under date-range reprojection each list is truncated to
    ``round(len * ratio)`` leading elements. This is a proportional
    approximation, not an exact resample of the events inside the range.
    """

    view_from_prices: list[float] = Field(default_factory=list)
    view_to_cart_from_prices: list[float] = Field(default_factory=list)
    cart_add_prices: list[float] = Field(default_factory=list)
    cart_remove_prices: list[float] = Field(default_factory=list)


class CategoryInteraction(WireModel):
    category: str
    views: int = 0
    carts: int = 0
    wish: int = 0
    total: int = 0


class Transitions(WireModel):
    states: list[str] = Field(default_factory=lambda: list(TRANSITION_STATES))
    counts: list[list[int]]
    probs: list[list[float]]


class SankeyLink(WireModel):
    source: int
    target: int
    value: int


class Sankey(WireModel):
    nodes: list[str] = Field(default_factory=lambda: list(TRANSITION_STATES))
    links: list[SankeyLink] = Field(default_factory=list)


class DailyPoint(WireModel):
    date: str
    views: int = 0
    carts: int = 0


class AnomalyThresholds(WireModel):
    has_thresholds: bool = False
    lower: float = 0.0
    upper: float = 0.0
    outliers: list[str] = Field(default_factory=list)


class DailyTrends(WireModel):
    series: list[DailyPoint] = Field(default_factory=list)
    anomaly: AnomalyThresholds = Field(default_factory=AnomalyThresholds)


class GeoInsight(WireModel):
    country: str
    conversion_rate: float


class AnalyticsBundle(WireModel):
    """
    The engine's single output.

    Every numeric field is derivable from the sessions and item metadata that
    produced it. Bundles are immutable: reprojection always builds a new one.
    """

    sessions: list[SessionSummary] = Field(default_factory=list)
    leak: LeakSummary = Field(default_factory=LeakSummary)
    recos: dict[str, list[Reco]] = Field(default_factory=dict)
    frequent_bundles: list[FrequentBundle] = Field(default_factory=list)
    price_markov: dict[str, TierRates] = Field(default_factory=dict)
    price_markov_meta: PriceMarkovMeta = Field(default_factory=PriceMarkovMeta)
    price_bands: PriceBands = Field(default_factory=PriceBands)
    price_range_data: PriceRangeData = Field(default_factory=PriceRangeData)
    category_interactions: list[CategoryInteraction] = Field(default_factory=list)
    transitions: Transitions
    sankey: Sankey = Field(default_factory=Sankey)
    daily: DailyTrends = Field(default_factory=DailyTrends)
    geo_insights: list[GeoInsight] = Field(default_factory=list)
    item_meta: dict[str, ItemInfo] = Field(default_factory=dict)
    version: str = Field(default="", alias="__version")

    def to_json_dict(self) -> dict:
        """Serialize to the camelCase JSON shape."""
        return self.model_dump(mode="json", by_alias=True)
