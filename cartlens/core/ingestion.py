# ==============================================================================
# Ingestion & Normalization
# ==============================================================================
"""
Turn raw tracking, listing and category documents into typed domain models.

Produces:
- Session models, one per tracking document
- The item metadata table (item id -> ItemInfo)

Malformed fields fall back to defaults rather than raising, so a single bad
record never prevents the rest of the batch from being normalized.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from cartlens.core.extract import first_of, parse_date, safe_get, str_id, to_price
from cartlens.core.models import ItemInfo, ItemMeta, Session, SessionEvent

logger = logging.getLogger(__name__)

RawDoc = Mapping[str, Any]
CategoryMap = dict[str, str]

TITLE_PATHS = ("productInfo.item_name.0.value", "alias", "productInfo.sku")
PRICE_PATHS = (
    "prodPricing.retailPrice",
    "prodPricing.listingWithoutStockVariations.0.retailPrice",
)
CATEGORY_FALLBACK_PATHS = ("prodTechInfo.type", "productInfo.brand.0.value")
BRAND_PATH = "productInfo.brand.0.value"
DEFAULT_CATEGORY = "Other"


@dataclass(frozen=True)
class IngestResult:
    """Normalized ingestion output shared read-only by every aggregator."""

    sessions: list[Session]
    item_meta: ItemMeta


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def build_category_map(categories: Iterable[RawDoc] | None) -> CategoryMap:
    """Map category id -> trimmed category name, skipping incomplete entries."""
    mapping: CategoryMap = {}
    for cat in categories or []:
        if not isinstance(cat, Mapping):
            continue
        cat_id = str_id(cat.get("_id")) or str_id(cat.get("id"))
        name = str(cat.get("name") or "").strip()
        if cat_id and name:
            mapping[cat_id] = name
    return mapping


def resolve_category(listing: RawDoc, category_map: CategoryMap) -> str:
    """
    Resolve an item's category name.

    Order: explicit category id looked up in the map, then the technical
    type field, then the brand name, then "Other". The result is trimmed and
    never empty.
    """
    category_id = str_id(safe_get(listing, "productInfo.productCategory"))
    category = category_map.get(category_id) if category_id else None
    if not category:
        category = first_of(listing, CATEGORY_FALLBACK_PATHS)
    return str(category or DEFAULT_CATEGORY).strip() or DEFAULT_CATEGORY


def build_item_meta(listings: Iterable[RawDoc] | None, category_map: CategoryMap) -> ItemMeta:
    """
    Build the item metadata table from product listings.

    Listings without a resolvable identifier are skipped. Items with missing
    or non-numeric prices are kept with a price of 0.
    """
    meta: ItemMeta = {}
    for listing in listings or []:
        if not isinstance(listing, Mapping):
            continue
        item_id = str_id(listing.get("_id"))
        if not item_id:
            continue

        title = first_of(listing, TITLE_PATHS)
        brand = safe_get(listing, BRAND_PATH)
        meta[item_id] = ItemInfo(
            title=str(title) if title is not None else item_id,
            price=to_price(first_of(listing, PRICE_PATHS)),
            category=resolve_category(listing, category_map),
            brand=str(brand) if brand is not None else "",
        )
    return meta


def _collect_actions(raw_items: Any, fallback: datetime, date_keys: tuple[str, ...]) -> list[SessionEvent]:
    """
    Collect cart or wishlist actions.

    Each entry becomes an add event at its creation time. An entry flagged as
    deleted also yields a remove event at its update time, defaulting to the
    creation time.
    """
    events: list[SessionEvent] = []
    for raw in _as_list(raw_items):
        if not isinstance(raw, Mapping):
            continue
        item_id = str_id(raw.get("item"))
        if not item_id:
            continue
        created = parse_date(first_of(raw, date_keys)) or fallback
        events.append(SessionEvent(item_id=item_id, ts=created, add=1, remove=0))
        if raw.get("deleted"):
            removed = parse_date(raw.get("updatedAt")) or created
            events.append(SessionEvent(item_id=item_id, ts=removed, add=0, remove=1))
    return events


def collect_session(doc: RawDoc, now: datetime | None = None) -> Session:
    """
    Normalize one tracking document into a Session.

    Args:
        doc: Raw customer visit document
        now: Processing time used only when the session has no usable date

    Returns:
        Session with views, cart events and wishlist events
    """
    session_id = str_id(doc.get("_id")) or str(uuid.uuid4())
    visitor_id = str_id(doc.get("visitorId")) or "unknown"
    country = safe_get(doc, "geo.country")
    ts = parse_date(doc.get("createdAt"))
    if ts is None:
        logger.debug("Session %s has no usable createdAt; using processing time", session_id)
        ts = now or datetime.now(tz=UTC)

    views: list[SessionEvent] = []
    for raw in _as_list(doc.get("viewItems")):
        if not isinstance(raw, Mapping):
            continue
        item_id = str_id(raw.get("item"))
        if not item_id:
            continue
        views.append(
            SessionEvent(item_id=item_id, ts=parse_date(first_of(raw, ("createdAt", "date"))) or ts)
        )

    return Session(
        session_id=session_id,
        visitor_id=visitor_id,
        country=str(country) if country else "Unknown",
        ts=ts,
        views=tuple(views),
        carts=tuple(_collect_actions(doc.get("cartItems"), ts, ("createdAt",))),
        wish=tuple(_collect_actions(doc.get("wishlistItems"), ts, ("createdAt", "date"))),
    )


def ingest(
    tracking: Iterable[RawDoc] | None,
    listings: Iterable[RawDoc] | None,
    categories: Iterable[RawDoc] | None,
    now: datetime | None = None,
) -> IngestResult:
    """
    Normalize the three raw document collections.

    Args:
        tracking: Customer visit documents
        listings: Product listing documents
        categories: Product category documents
        now: Processing time fallback for undated sessions (defaults to now)

    Returns:
        IngestResult with sessions and item metadata
    """
    now = now or datetime.now(tz=UTC)
    category_map = build_category_map(categories)
    item_meta = build_item_meta(listings, category_map)
    sessions = [collect_session(doc, now) for doc in tracking or [] if isinstance(doc, Mapping)]
    logger.debug(
        "Ingested %d sessions, %d items, %d categories",
        len(sessions),
        len(item_meta),
        len(category_map),
    )
    return IngestResult(sessions=sessions, item_meta=item_meta)
