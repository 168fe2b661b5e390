# ==============================================================================
# Tests for the Analytics Engine
# ==============================================================================
"""
Unit tests for cartlens.core.engine.

Tests cover:
- Full bundle computation from raw documents
- Version tagging and JSON serialization shape
- Computation from a DocumentSource (fetch before compute)
- Reprojection delegation and stage logging
"""

import json
import logging

import pytest

from cartlens.base.repositories import DocumentSource
from cartlens.core.engine import AnalyticsEngine, _precision
from cartlens.core.errors import InvalidDateRangeError
from cartlens.core.models import AnalyticsBundle


class _ListSource(DocumentSource):
    """In-memory DocumentSource recording the call order."""

    def __init__(self, tracking, listings, categories):
        self._data = {"tracking": tracking, "listings": listings, "categories": categories}
        self.calls: list[str] = []

    def connect(self) -> None:
        self.calls.append("connect")

    def fetch_tracking(self):
        self.calls.append("tracking")
        return self._data["tracking"]

    def fetch_listings(self):
        self.calls.append("listings")
        return self._data["listings"]

    def fetch_categories(self):
        self.calls.append("categories")
        return self._data["categories"]

    def close(self) -> None:
        self.calls.append("close")


# ==============================================================================
# compute
# ==============================================================================


class TestCompute:
    """Tests for bundle computation."""

    def test_bundle_contents(self, bundle):
        assert [s.session_id for s in bundle.sessions] == ["s1", "s2", "s3"]
        assert bundle.leak.overall == pytest.approx(1 / 3)
        assert set(bundle.item_meta) == {"itemA", "itemB", "itemC", "itemD", "itemE"}
        assert set(bundle.price_markov) == {"Low", "Mid", "High", "All"}
        assert [p.date for p in bundle.daily.series] == ["2024-03-01", "2024-03-02", "2024-03-03"]
        assert [g.country for g in bundle.geo_insights] == ["DE", "US"]
        assert len(bundle.frequent_bundles) == 3

    def test_session_summaries_match_sessions(self, bundle, ingested):
        for summary, session in zip(bundle.sessions, ingested.sessions):
            assert summary.n_view == session.n_view
            assert summary.n_cart_add == session.n_cart_add
            assert summary.n_cart_remove == session.n_cart_remove

    def test_version_tag(self, bundle):
        assert bundle.version == "test-1"
        assert bundle.to_json_dict()["__version"] == "test-1"

    def test_empty_inputs(self, engine):
        bundle = engine.compute([], [], [])

        assert bundle.sessions == []
        assert bundle.leak.overall == 0.0
        assert bundle.transitions.counts == [[0] * 5 for _ in range(5)]
        assert bundle.sankey.links == []
        assert [b.name for b in bundle.price_bands.bands] == ["All"]
        assert bundle.daily.series == []

    def test_garbage_documents_never_raise(self, engine, now):
        tracking = [{"_id": {"_id": None}, "viewItems": [{"item": 5}], "cartItems": [{"item": []}]}]
        listings = [{"_id": "x", "prodPricing": {"retailPrice": "free"}}, {"alias": "no id"}]
        bundle = engine.compute(tracking, listings, [{"name": "orphan"}], now=now)

        assert len(bundle.sessions) == 1
        assert bundle.item_meta["x"].price == 0.0

    def test_logs_stage_timings(self, engine, tracking_docs, listings_docs, categories_docs, caplog):
        with caplog.at_level(logging.INFO, logger="cartlens.core.engine"):
            engine.compute(tracking_docs, listings_docs, categories_docs)
        assert "Bundle: 3 sessions, 5 items, 6 transitions" in caplog.text
        assert "total=" in caplog.text


class TestJsonShape:
    """Tests for the serialized bundle."""

    def test_camel_case_keys(self, bundle):
        data = bundle.to_json_dict()

        assert set(data) == {
            "sessions",
            "leak",
            "recos",
            "frequentBundles",
            "priceMarkov",
            "priceMarkovMeta",
            "priceBands",
            "priceRangeData",
            "categoryInteractions",
            "transitions",
            "sankey",
            "daily",
            "geoInsights",
            "itemMeta",
            "__version",
        }
        assert set(data["sessions"][0]) == {
            "sessionId",
            "visitorId",
            "country",
            "ts",
            "nView",
            "nCartAdd",
            "nCartRemove",
        }
        assert set(data["priceMarkov"]["All"]) == {"pViewToCart", "pCartToCheckout"}
        assert set(data["priceMarkovMeta"]) == {"tLow", "tHigh", "min", "max"}
        assert set(data["daily"]["anomaly"]) == {"hasThresholds", "lower", "upper", "outliers"}

    def test_timestamps_are_iso_utc(self, bundle):
        assert bundle.to_json_dict()["sessions"][0]["ts"] == "2024-03-01T10:00:00.000Z"

    def test_json_round_trip(self, bundle):
        text = json.dumps(bundle.to_json_dict())
        assert AnalyticsBundle.model_validate_json(text) == bundle


# ==============================================================================
# compute_from_source / reproject
# ==============================================================================


class TestComputeFromSource:
    """Tests for computing through a DocumentSource."""

    def test_fetches_all_collections_then_computes(
        self, engine, tracking_docs, listings_docs, categories_docs, now
    ):
        source = _ListSource(tracking_docs, listings_docs, categories_docs)
        with source:
            bundle = engine.compute_from_source(source, now=now)

        assert source.calls == ["connect", "tracking", "listings", "categories", "close"]
        assert bundle == engine.compute(tracking_docs, listings_docs, categories_docs, now=now)

    def test_empty_source(self, engine):
        bundle = engine.compute_from_source(_ListSource([], [], []))
        assert bundle.sessions == []


class TestReproject:
    """Tests for reprojection through the engine."""

    def test_delegates(self, engine, bundle):
        scoped = engine.reproject(bundle, "2024-03-02", "2024-03-02")
        assert [s.session_id for s in scoped.sessions] == ["s2"]

    def test_invalid_range(self, engine, bundle):
        with pytest.raises(InvalidDateRangeError):
            engine.reproject(bundle, "2024-03-02", "2024-03-01")


class TestPrecision:
    """Tests for millisecond formatting precision."""

    @pytest.mark.parametrize("ms, expected", [(85.0, 0), (10.0, 0), (3.2, 1), (0.45, 2)])
    def test_precision(self, ms, expected):
        assert _precision(ms) == expected
