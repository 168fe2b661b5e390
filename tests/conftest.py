# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- Raw category, listing and tracking documents shaped like the MongoDB
  collections (three sessions over 2024-03-01..2024-03-03)
- A fixed processing time for undated sessions
- The normalized ingestion result and the computed analytics bundle
- A factory for ad-hoc tracking documents
"""

from datetime import UTC, datetime

import pytest

from cartlens.core.engine import AnalyticsEngine
from cartlens.core.ingestion import ingest
from cartlens.utils.config import EngineSettings, MongoSettings, Settings


@pytest.fixture()
def now():
    """Processing time used for sessions without a usable date."""
    return datetime(2024, 3, 15, 12, 0, tzinfo=UTC)


@pytest.fixture()
def categories_docs():
    """Product categories; the last entry has no name and is skipped."""
    return [
        {"_id": "cat-shoes", "name": " Shoes "},
        {"_id": "cat-bags", "name": "Bags"},
        {"_id": "cat-empty"},
    ]


@pytest.fixture()
def listings_docs():
    """Five listings covering every title, price and category fallback.

    Prices: itemA 10, itemB 20, itemC 50, itemD 30.5 (string), itemE missing.
    """
    return [
        {
            "_id": "itemA",
            "productInfo": {
                "item_name": [{"value": "Runner"}],
                "productCategory": "cat-shoes",
                "brand": [{"value": "Acme"}],
            },
            "prodPricing": {"retailPrice": 10},
        },
        {
            "_id": "itemB",
            "productInfo": {"item_name": [{"value": "Trail"}], "productCategory": "cat-shoes"},
            "prodPricing": {"retailPrice": 20},
        },
        {
            "_id": "itemC",
            "productInfo": {"item_name": [{"value": "Tote"}], "productCategory": {"$oid": "cat-bags"}},
            "prodPricing": {"listingWithoutStockVariations": [{"retailPrice": 50}]},
        },
        {
            "_id": "itemD",
            "productInfo": {"sku": "SKU-D"},
            "prodTechInfo": {"type": "Hats"},
            "prodPricing": {"retailPrice": "30.5"},
        },
        {
            "_id": "itemE",
            "alias": "Mystery",
            "productInfo": {"brand": [{"value": "Zeta"}]},
        },
    ]


@pytest.fixture()
def tracking_docs():
    """Three customer visits.

    s1 (v1, US, 2024-03-01): views A, B; carts A (later removed), B; wishlist C
    s2 (v2, DE, 2024-03-02): views C; carts C
    s3 (v1, US, 2024-03-03): views A
    """
    return [
        {
            "_id": "s1",
            "visitorId": "v1",
            "geo": {"country": "US"},
            "createdAt": "2024-03-01T10:00:00Z",
            "viewItems": [
                {"item": "itemA", "createdAt": "2024-03-01T10:01:00Z"},
                {"item": "itemB", "createdAt": "2024-03-01T10:02:00Z"},
            ],
            "cartItems": [
                {
                    "item": "itemA",
                    "createdAt": "2024-03-01T10:03:00Z",
                    "deleted": True,
                    "updatedAt": "2024-03-01T10:05:00Z",
                },
                {"item": "itemB", "createdAt": "2024-03-01T10:04:00Z"},
            ],
            "wishlistItems": [{"item": "itemC", "createdAt": "2024-03-01T10:06:00Z"}],
        },
        {
            "_id": "s2",
            "visitorId": "v2",
            "geo": {"country": "DE"},
            "createdAt": "2024-03-02T09:00:00Z",
            "viewItems": [{"item": "itemC", "createdAt": "2024-03-02T09:01:00Z"}],
            "cartItems": [{"item": "itemC", "createdAt": "2024-03-02T09:02:00Z"}],
        },
        {
            "_id": "s3",
            "visitorId": "v1",
            "geo": {"country": "US"},
            "createdAt": "2024-03-03T12:00:00Z",
            "viewItems": [{"item": "itemA", "createdAt": "2024-03-03T12:01:00Z"}],
        },
    ]


@pytest.fixture()
def ingested(tracking_docs, listings_docs, categories_docs, now):
    """Normalized sessions and item metadata for the fixture documents."""
    return ingest(tracking_docs, listings_docs, categories_docs, now=now)


@pytest.fixture()
def engine():
    """An engine with a fixed version tag."""
    return AnalyticsEngine(version="test-1")


@pytest.fixture()
def bundle(engine, tracking_docs, listings_docs, categories_docs, now):
    """The full analytics bundle for the fixture documents."""
    return engine.compute(tracking_docs, listings_docs, categories_docs, now=now)


@pytest.fixture()
def make_visit():
    """Factory for minimal tracking documents.

    Each item in ``views`` / ``carts`` is an item id; all events share the
    visit's timestamp.
    """

    def _make(session_id, created_at, views=(), carts=(), wish=(), visitor="v", country="US"):
        return {
            "_id": session_id,
            "visitorId": visitor,
            "geo": {"country": country},
            "createdAt": created_at,
            "viewItems": [{"item": item, "createdAt": created_at} for item in views],
            "cartItems": [{"item": item, "createdAt": created_at} for item in carts],
            "wishlistItems": [{"item": item, "createdAt": created_at} for item in wish],
        }

    return _make


@pytest.fixture()
def settings():
    """Settings with a Mongo URI and small row caps, independent of the environment."""
    return Settings(
        mongo=MongoSettings(uri="mongodb://localhost:27017", db_name="testdb"),
        engine=EngineSettings(
            tracking_limit=2,
            listings_limit=100,
            categories_limit=100,
            version_tag="test-1",
        ),
    )
