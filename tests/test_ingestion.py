# ==============================================================================
# Tests for Ingestion & Normalization
# ==============================================================================
"""
Unit tests for cartlens.core.ingestion.

Tests cover:
- Category map construction and category resolution fallbacks
- Item metadata (titles, prices, categories, brands)
- Session normalization (ids, visitors, countries, timestamps)
- Cart and wishlist actions, including deleted entries
- Robustness against malformed documents
"""

from datetime import UTC, datetime

import pytest
from bson import ObjectId

from cartlens.core.ingestion import (
    build_category_map,
    build_item_meta,
    collect_session,
    ingest,
    resolve_category,
)


# ==============================================================================
# Categories & Item Metadata
# ==============================================================================


class TestCategoryMap:
    """Tests for the category id -> name map."""

    def test_names_are_trimmed_and_incomplete_entries_skipped(self, categories_docs):
        assert build_category_map(categories_docs) == {"cat-shoes": "Shoes", "cat-bags": "Bags"}

    def test_object_id_keys(self):
        oid = ObjectId("65f000000000000000000001")
        assert build_category_map([{"_id": oid, "name": "Hats"}]) == {str(oid): "Hats"}

    def test_none_and_garbage(self):
        assert build_category_map(None) == {}
        assert build_category_map(["not a doc", 3]) == {}


class TestResolveCategory:
    """Tests for the category fallback chain."""

    def test_category_id_lookup(self):
        listing = {"productInfo": {"productCategory": "c1"}}
        assert resolve_category(listing, {"c1": "Shoes"}) == "Shoes"

    def test_unknown_id_falls_back_to_type(self):
        listing = {"productInfo": {"productCategory": "missing"}, "prodTechInfo": {"type": "Hats"}}
        assert resolve_category(listing, {}) == "Hats"

    def test_brand_fallback(self):
        listing = {"productInfo": {"brand": [{"value": "Zeta"}]}}
        assert resolve_category(listing, {}) == "Zeta"

    def test_default_other(self):
        assert resolve_category({}, {}) == "Other"

    def test_blank_name_becomes_other(self):
        listing = {"prodTechInfo": {"type": "   "}}
        assert resolve_category(listing, {}) == "Other"


class TestItemMeta:
    """Tests for the item metadata table."""

    def test_all_listings_resolved(self, listings_docs, categories_docs):
        meta = build_item_meta(listings_docs, build_category_map(categories_docs))

        assert set(meta) == {"itemA", "itemB", "itemC", "itemD", "itemE"}

        assert meta["itemA"].title == "Runner"
        assert meta["itemA"].price == 10.0
        assert meta["itemA"].category == "Shoes"
        assert meta["itemA"].brand == "Acme"

        # Price from the stock-variation fallback, category via $oid wrapper
        assert meta["itemC"].price == 50.0
        assert meta["itemC"].category == "Bags"

        # SKU title, string price, technical type category
        assert meta["itemD"].title == "SKU-D"
        assert meta["itemD"].price == 30.5
        assert meta["itemD"].category == "Hats"

        # Alias title, missing price, brand category
        assert meta["itemE"].title == "Mystery"
        assert meta["itemE"].price == 0.0
        assert meta["itemE"].category == "Zeta"

    def test_listing_without_id_is_skipped(self):
        assert build_item_meta([{"alias": "orphan"}], {}) == {}

    def test_title_defaults_to_item_id(self):
        meta = build_item_meta([{"_id": "bare"}], {})
        assert meta["bare"].title == "bare"
        assert meta["bare"].category == "Other"


# ==============================================================================
# Sessions
# ==============================================================================


class TestCollectSession:
    """Tests for single-document session normalization."""

    def test_counts_match_event_flags(self, tracking_docs, now):
        session = collect_session(tracking_docs[0], now)

        assert session.session_id == "s1"
        assert session.visitor_id == "v1"
        assert session.country == "US"
        assert session.n_view == 2
        assert session.n_cart_add == 2
        assert session.n_cart_remove == 1
        assert session.n_cart_add == sum(e.add for e in session.carts)
        assert session.n_cart_remove == sum(e.remove for e in session.carts)

    def test_deleted_cart_entry_yields_remove_at_update_time(self, tracking_docs, now):
        session = collect_session(tracking_docs[0], now)
        removes = [e for e in session.carts if e.remove]

        assert len(removes) == 1
        assert removes[0].item_id == "itemA"
        assert removes[0].ts == datetime(2024, 3, 1, 10, 5, tzinfo=UTC)

    def test_deleted_without_update_time_uses_creation_time(self, now):
        doc = {
            "_id": "s",
            "createdAt": "2024-03-01T10:00:00Z",
            "cartItems": [{"item": "x", "createdAt": "2024-03-01T10:03:00Z", "deleted": True}],
        }
        session = collect_session(doc, now)
        assert [e.ts for e in session.carts] == [datetime(2024, 3, 1, 10, 3, tzinfo=UTC)] * 2

    def test_wishlist_events(self, tracking_docs, now):
        session = collect_session(tracking_docs[0], now)
        assert [(e.item_id, e.add) for e in session.wish] == [("itemC", 1)]

    def test_defaults_for_missing_fields(self, now):
        session = collect_session({"viewItems": [{"item": "x"}]}, now)

        assert session.session_id  # generated
        assert session.visitor_id == "unknown"
        assert session.country == "Unknown"
        assert session.ts == now
        # Undated views inherit the session timestamp
        assert session.views[0].ts == now

    def test_view_date_fallback_key(self, now):
        doc = {
            "_id": "s",
            "createdAt": "2024-03-01T10:00:00Z",
            "viewItems": [{"item": "x", "date": {"$date": "2024-03-01T11:00:00Z"}}],
        }
        session = collect_session(doc, now)
        assert session.views[0].ts == datetime(2024, 3, 1, 11, 0, tzinfo=UTC)

    def test_malformed_entries_are_skipped(self, now):
        doc = {
            "_id": "s",
            "createdAt": "2024-03-01T10:00:00Z",
            "viewItems": [None, "x", {"item": None}, {"item": {"$oid": "ok"}}],
            "cartItems": "not a list",
            "wishlistItems": [{"noitem": True}],
        }
        session = collect_session(doc, now)

        assert [e.item_id for e in session.views] == ["ok"]
        assert session.carts == ()
        assert session.wish == ()

    def test_object_id_references(self, now):
        oid = ObjectId("65f000000000000000000009")
        doc = {"_id": oid, "visitorId": {"$oid": "visitor-1"}, "viewItems": [{"item": oid}]}
        session = collect_session(doc, now)

        assert session.session_id == str(oid)
        assert session.visitor_id == "visitor-1"
        assert session.views[0].item_id == str(oid)

    @pytest.mark.parametrize(
        "raw, expected",
        [(42, "42"), ("v-9", "v-9"), ({"$oid": "abc"}, "abc"), ({"name": "x"}, "unknown"), (None, "unknown")],
    )
    def test_visitor_id_forms(self, raw, expected, now):
        session = collect_session({"_id": "s", "visitorId": raw}, now)
        assert session.visitor_id == expected


class TestIngest:
    """Tests for the full ingestion pass."""

    def test_sessions_and_meta(self, ingested):
        assert [s.session_id for s in ingested.sessions] == ["s1", "s2", "s3"]
        assert len(ingested.item_meta) == 5

    def test_empty_inputs(self, now):
        result = ingest(None, None, None, now=now)
        assert result.sessions == []
        assert result.item_meta == {}

    def test_non_mapping_documents_are_ignored(self, now):
        result = ingest([None, "x", {"_id": "s"}], [], [], now=now)
        assert [s.session_id for s in result.sessions] == ["s"]
