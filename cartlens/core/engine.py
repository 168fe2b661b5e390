# ==============================================================================
# Analytics Engine
# ==============================================================================
"""
Orchestrates ingestion and every aggregator into one analytics bundle.

The engine is a thin composition object: it runs the pure stages in order,
times them with time.monotonic() and logs one INFO line per run:

    1. ingest                      - raw documents -> sessions + item metadata
    2. leak / recos / price funnel - independent session aggregates
    3. transition model            - event streams, matrix, flow graph
    4. price bands / price samples - built on the transition pairs
    5. daily / geo / categories    - calendar, country and category rollups

Usage:
    engine = AnalyticsEngine(version="0.1.0")
    bundle = engine.compute(tracking, listings, categories)
    march = engine.reproject(bundle, "2024-03-01", "2024-03-31")

Usage (with a document source):
    with MongoDocumentSource(settings) as source:
        bundle = engine.compute_from_source(source)
"""

import logging
import time
from collections.abc import Iterable
from datetime import datetime

from cartlens.base.repositories import DocumentSource
from cartlens.core.behavior import category_interactions, daily_trends, geo_insights, leak_analytics
from cartlens.core.ingestion import RawDoc, ingest
from cartlens.core.models import AnalyticsBundle
from cartlens.core.pricing import price_bands, price_range_data, price_segmented_funnel
from cartlens.core.recommendations import cooccurrence_recos
from cartlens.core.reprojection import reproject_for_date_range
from cartlens.core.sequences import transition_model

logger = logging.getLogger(__name__)


class AnalyticsEngine:
    """
    Computes analytics bundles tagged with a fixed version string.

    The engine holds no per-run state, so one instance can serve any number
    of compute and reproject calls, including concurrent ones.
    """

    def __init__(self, version: str):
        """
        Initialize the engine.

        Args:
            version: Version tag written into every bundle's ``__version`` field
        """
        self.version = version

    def compute(
        self,
        tracking: Iterable[RawDoc] | None,
        listings: Iterable[RawDoc] | None,
        categories: Iterable[RawDoc] | None,
        now: datetime | None = None,
    ) -> AnalyticsBundle:
        """
        Build a full analytics bundle from raw document collections.

        Malformed documents never raise; they fall back to defaults during
        ingestion.

        Args:
            tracking: Customer visit documents
            listings: Product listing documents
            categories: Product category documents
            now: Processing time used for undated sessions (defaults to now)

        Returns:
            AnalyticsBundle covering every session
        """
        t0 = time.monotonic()
        result = ingest(tracking, listings, categories, now=now)
        sessions, item_meta = result.sessions, result.item_meta

        t1 = time.monotonic()
        leak = leak_analytics(sessions)
        recommendations = cooccurrence_recos(sessions)
        price_markov = price_segmented_funnel(sessions, item_meta)

        t2 = time.monotonic()
        model = transition_model(sessions, item_meta)
        bands = price_bands(item_meta, model.all_transitions)
        samples = price_range_data(sessions, item_meta, model.all_transitions)

        t3 = time.monotonic()
        daily = daily_trends(sessions)
        geo = geo_insights(sessions)
        categories_rows = category_interactions(sessions, item_meta)

        bundle = AnalyticsBundle(
            sessions=[s.to_summary() for s in sessions],
            leak=leak,
            recos=recommendations.recos,
            frequent_bundles=recommendations.bundles,
            price_markov=price_markov.model,
            price_markov_meta=price_markov.meta,
            price_bands=bands,
            price_range_data=samples,
            category_interactions=categories_rows,
            transitions=model.transitions,
            sankey=model.sankey,
            daily=daily,
            geo_insights=geo,
            item_meta=item_meta,
            version=self.version,
        )
        t4 = time.monotonic()

        ingest_ms = (t1 - t0) * 1000
        aggregate_ms = (t2 - t1) * 1000
        sequence_ms = (t3 - t2) * 1000
        rollup_ms = (t4 - t3) * 1000
        total_ms = (t4 - t0) * 1000

        logger.info(
            "Bundle: %s sessions, %s items, %s transitions | "
            "ingest=%.*fms aggregate=%.*fms sequence=%.*fms rollup=%.*fms | "
            "total=%.*fms",
            f"{len(sessions):,}",
            f"{len(item_meta):,}",
            f"{len(model.all_transitions):,}",
            _precision(ingest_ms),
            ingest_ms,
            _precision(aggregate_ms),
            aggregate_ms,
            _precision(sequence_ms),
            sequence_ms,
            _precision(rollup_ms),
            rollup_ms,
            _precision(total_ms),
            total_ms,
        )
        return bundle

    def compute_from_source(self, source: DocumentSource, now: datetime | None = None) -> AnalyticsBundle:
        """
        Fetch all three collections from a connected source, then compute.

        Every fetch completes before computation starts.

        Args:
            source: A connected document source
            now: Processing time used for undated sessions

        Returns:
            AnalyticsBundle covering every fetched session
        """
        t0 = time.monotonic()
        tracking = source.fetch_tracking()
        listings = source.fetch_listings()
        categories = source.fetch_categories()
        fetch_ms = (time.monotonic() - t0) * 1000

        logger.info(
            "Fetched %s tracking, %s listings, %s categories in %.*fms",
            f"{len(tracking):,}",
            f"{len(listings):,}",
            f"{len(categories):,}",
            _precision(fetch_ms),
            fetch_ms,
        )
        return self.compute(tracking, listings, categories, now=now)

    def reproject(self, bundle: AnalyticsBundle, date_from: str, date_to: str) -> AnalyticsBundle:
        """
        Scope a bundle to [date_from, date_to] (inclusive, YYYY-MM-DD).

        Raises:
            InvalidDateRangeError: If the range is malformed or inverted
        """
        return reproject_for_date_range(bundle, date_from, date_to)


def _precision(ms: float) -> int:
    """Return decimal precision for millisecond values.

    >= 10ms  -> 0 decimals (e.g., 85ms)
    >= 1ms   -> 1 decimal  (e.g., 3.2ms)
    < 1ms    -> 2 decimals (e.g., 0.45ms)
    """
    if ms >= 10:
        return 0
    if ms >= 1:
        return 1
    return 2
