# ==============================================================================
# Dashboard Insights
# ==============================================================================
"""
Read-only views derived from an analytics bundle.

These helpers back the summary cards and drill-downs of a dashboard. Each one
takes a bundle (full or reprojected) and never re-reads raw data:

- summary_kpis: session, visitor and cart totals
- price_range_metrics: funnel rates for an arbitrary price window
- day_details: one day's sessions and scaled category interactions
- category_leak: item leak rolled up to categories
- recommendations_for: an item's partners enriched with metadata
- acyclic_flow: the flow graph pruned to a renderable DAG
"""

from dataclasses import dataclass, field

from cartlens.core.models import AnalyticsBundle, CategoryInteraction
from cartlens.core.pricing import clamp
from cartlens.core.reprojection import round_half_up

# Links below this share of the strongest link are dropped from the flow view
FLOW_MIN_SHARE = 0.02


@dataclass(frozen=True)
class SummaryKpis:
    sessions: int
    visitors: int
    conversion_rate: float
    cart_adds: int


def summary_kpis(bundle: AnalyticsBundle) -> SummaryKpis:
    """Headline totals for the bundle's sessions."""
    sessions = bundle.sessions
    converted = sum(1 for s in sessions if s.n_cart_add > 0)
    return SummaryKpis(
        sessions=len(sessions),
        visitors=len({s.visitor_id for s in sessions}),
        conversion_rate=converted / len(sessions) if sessions else 0.0,
        cart_adds=sum(s.n_cart_add for s in sessions),
    )


@dataclass(frozen=True)
class PriceRangeMetrics:
    views: int
    view_to_cart: int
    adds: int
    removes: int
    view_rate: float
    checkout_rate: float


def price_range_metrics(
    bundle: AnalyticsBundle,
    min_price: float | None = None,
    max_price: float | None = None,
) -> PriceRangeMetrics:
    """
    Funnel counts and rates for prices inside [min_price, max_price].

    A None bound is open. Rates are 0 when their denominator is 0.
    """
    low = float("-inf") if min_price is None else min_price
    high = float("inf") if max_price is None else max_price
    data = bundle.price_range_data

    def count(values: list[float]) -> int:
        return sum(1 for v in values if low <= v <= high)

    views = count(data.view_from_prices)
    view_to_cart = count(data.view_to_cart_from_prices)
    adds = count(data.cart_add_prices)
    removes = count(data.cart_remove_prices)
    return PriceRangeMetrics(
        views=views,
        view_to_cart=view_to_cart,
        adds=adds,
        removes=removes,
        view_rate=view_to_cart / views if views > 0 else 0.0,
        checkout_rate=clamp((adds - removes) / adds) if adds > 0 else 0.0,
    )


@dataclass(frozen=True)
class DayDetails:
    date: str
    sessions: int
    views: int
    carts: int
    is_anomaly: bool
    categories: list[CategoryInteraction] = field(default_factory=list)


def day_details(bundle: AnalyticsBundle, day: str, top: int = 10) -> DayDetails | None:
    """
    Drill into one calendar day.

    Category interactions are the bundle's totals scaled by the day's share
    of sessions. Returns None when no session falls on the day.
    """
    day_sessions = [s for s in bundle.sessions if s.day == day]
    if not day_sessions:
        return None

    share = len(day_sessions) / len(bundle.sessions)
    scaled = [
        CategoryInteraction(
            category=cat.category,
            views=round_half_up(cat.views * share),
            carts=round_half_up(cat.carts * share),
            wish=round_half_up(cat.wish * share),
            total=round_half_up(cat.total * share),
        )
        for cat in bundle.category_interactions
    ]
    scaled = sorted((c for c in scaled if c.total > 0), key=lambda c: -c.total)

    point = next((p for p in bundle.daily.series if p.date == day), None)
    return DayDetails(
        date=day,
        sessions=len(day_sessions),
        views=point.views if point else 0,
        carts=point.carts if point else 0,
        is_anomaly=day in bundle.daily.anomaly.outliers,
        categories=scaled[:top],
    )


@dataclass(frozen=True)
class CategoryLeakRow:
    category: str
    adds: int
    removes: int
    leak: float
    item_count: int


def category_leak(bundle: AnalyticsBundle) -> list[CategoryLeakRow]:
    """
    Roll item leak rows up to their categories.

    Adds are taken from the category interaction table when the category is
    listed there, so both views agree on cart adds; removes are capped at
    adds.
    """
    groups: dict[str, list[int]] = {}
    for row in bundle.leak.items:
        info = bundle.item_meta.get(row.item)
        category = info.category if info and info.category else "Other"
        group = groups.setdefault(category, [0, 0, 0])
        group[0] += row.adds
        group[1] += row.removes
        group[2] += 1

    category_carts = {c.category: c.carts for c in bundle.category_interactions}
    rows = []
    for category, (item_adds, item_removes, item_count) in groups.items():
        adds = category_carts.get(category) or item_adds
        removes = min(item_removes, adds)
        rows.append(
            CategoryLeakRow(
                category=category,
                adds=adds,
                removes=removes,
                leak=removes / adds if adds > 0 else 0.0,
                item_count=item_count,
            )
        )
    return sorted(rows, key=lambda r: (-r.leak, -r.removes))


@dataclass(frozen=True)
class RecommendedItem:
    item: str
    score: float
    title: str
    category: str
    price: float


@dataclass(frozen=True)
class ItemRecommendations:
    anchor: str
    title: str
    category: str
    price: float
    total: int
    items: list[RecommendedItem]


def recommendations_for(bundle: AnalyticsBundle, item_id: str, top: int = 10) -> ItemRecommendations:
    """An anchor item's details and its top partners with metadata."""
    anchor = bundle.item_meta.get(item_id)
    partners = bundle.recos.get(item_id, [])

    items = []
    for reco in partners[:top]:
        info = bundle.item_meta.get(reco.item)
        items.append(
            RecommendedItem(
                item=reco.item,
                score=reco.score,
                title=info.title if info else reco.item,
                category=info.category if info else "Unknown",
                price=info.price if info else 0.0,
            )
        )

    return ItemRecommendations(
        anchor=item_id,
        title=anchor.title if anchor else "Unknown item",
        category=anchor.category if anchor else "Unknown category",
        price=anchor.price if anchor else 0.0,
        total=len(partners),
        items=items,
    )


@dataclass(frozen=True)
class FlowLink:
    source: str
    target: str
    value: int


def acyclic_flow(bundle: AnalyticsBundle, min_share: float = FLOW_MIN_SHARE) -> list[FlowLink]:
    """
    Prune the flow graph into a directed acyclic graph for rendering.

    Links weaker than min_share of the strongest link are dropped, as are
    self-loops. Remaining links are added in order unless the target can
    already reach the source, which would close a cycle.
    """
    nodes = bundle.sankey.nodes
    links = bundle.sankey.links
    strongest = max((link.value for link in links), default=0)
    if strongest > 0:
        links = [link for link in links if link.value >= strongest * min_share]

    adjacency: dict[str, set[str]] = {node: set() for node in nodes}

    def reaches(start: str, goal: str) -> bool:
        seen: set[str] = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current == goal:
                return True
            if current in seen:
                continue
            seen.add(current)
            stack.extend(adjacency.get(current, ()))
        return False

    flow: list[FlowLink] = []
    for link in links:
        if not (0 <= link.source < len(nodes) and 0 <= link.target < len(nodes)):
            continue
        source, target = nodes[link.source], nodes[link.target]
        if source == target or reaches(target, source):
            continue
        flow.append(FlowLink(source=source, target=target, value=link.value))
        adjacency[source].add(target)
    return flow
