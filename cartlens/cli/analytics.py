# ==============================================================================
# Analytics Command
# ==============================================================================
"""
Analytics command for the cartlens CLI.

Computes the analytics bundle from MongoDB (or JSON exports on disk),
optionally scopes it to a date range, and displays the headline metrics.
"""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from cartlens.cli.shared import (
    BOX_WIDTH,
    C,
    I,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _section_header_plain,
    fail,
    open_document_source,
)
from cartlens.core.engine import AnalyticsEngine
from cartlens.core.errors import CartlensError
from cartlens.core.insights import category_leak, summary_kpis
from cartlens.core.models import AnalyticsBundle
from cartlens.core.reprojection import default_date_range
from cartlens.utils.config import get_settings

# Rows shown in each detail table
TOP_ROWS = 5


def _load_bundle(bundle_file: Path) -> AnalyticsBundle:
    """Read a bundle previously written with --output."""
    try:
        return AnalyticsBundle.model_validate_json(bundle_file.read_text(encoding="utf-8"))
    except OSError as e:
        raise CartlensError(f"Cannot read bundle file {bundle_file}: {e}") from e
    except ValidationError as e:
        raise CartlensError(f"Invalid bundle file {bundle_file}: {e.error_count()} errors") from e


# ==============================================================================
# Commands
# ==============================================================================


def show_analytics(
    source_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--source",
            "-s",
            help="Directory with tracking.json, listings.json and categories.json (default: MongoDB)",
        ),
    ] = None,
    bundle_file: Annotated[
        Optional[Path],
        typer.Option("--bundle", "-b", help="Reuse a bundle written with --output"),
    ] = None,
    date_from: Annotated[
        str, typer.Option("--from", help="Inclusive start day (YYYY-MM-DD)")
    ] = "",
    date_to: Annotated[str, typer.Option("--to", help="Inclusive end day (YYYY-MM-DD)")] = "",
    month: Annotated[
        bool,
        typer.Option(
            "--month",
            "-m",
            help="Scope to the current month (the data's full span when the month is empty)",
        ),
    ] = False,
    output_file: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the full bundle as JSON to this file"),
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output the full bundle as JSON for scripting")
    ] = False,
) -> None:
    """Show cart analytics metrics.

    Computes sessions, cart leak, price tiers, category interactions and
    daily trends. With --from/--to the bundle is reprojected onto that date
    range without re-reading the raw documents. --month picks the current
    calendar month, falling back to the span of the daily series when the
    month has no data.

    Examples:
        cartlens analytics                                  # From MongoDB
        cartlens analytics -s ./export                      # From JSON exports
        cartlens analytics -s ./export -o bundle.json       # Save the bundle
        cartlens analytics -b bundle.json --from 2024-03-01 --to 2024-03-31
        cartlens analytics -b bundle.json --month             # Current month
        cartlens analytics --json                           # JSON output for scripting
    """
    settings = get_settings()
    engine = AnalyticsEngine(version=settings.engine.version_tag)

    if month and (date_from or date_to):
        fail("--month cannot be combined with --from/--to", json_output)

    try:
        if bundle_file is not None:
            bundle = _load_bundle(bundle_file)
        else:
            with open_document_source(source_dir, settings) as source:
                bundle = engine.compute_from_source(source)
        if month:
            date_from, date_to = default_date_range(bundle)
        if date_from or date_to:
            bundle = engine.reproject(bundle, date_from, date_to)
    except CartlensError as e:
        fail(str(e), json_output)

    payload = bundle.to_json_dict()
    if output_file is not None:
        output_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # JSON output mode
    if json_output:
        print(json.dumps(payload, indent=2))
        return

    _print_summary(bundle, date_from, date_to)
    _print_tables(bundle)

    if output_file is not None:
        print(f"  {C.BRIGHT_GREEN}{I.CHECK}{C.RESET} Wrote bundle to {output_file}")
        print()


# ==============================================================================
# Formatted Output
# ==============================================================================


def _print_summary(bundle: AnalyticsBundle, date_from: str, date_to: str) -> None:
    W = BOX_WIDTH
    kpis = summary_kpis(bundle)
    meta = bundle.price_markov_meta
    window = f"{date_from} {I.ARROW} {date_to}" if date_from and date_to else "All time"

    print()
    print(_box_header("CART ANALYTICS", W))
    print(_empty_line(W))
    print(_box_line(f"  {'Range':<26}{C.WHITE}{window}{C.RESET}", W))
    print(_empty_line(W))

    print(_section_header_plain("Sessions", W))
    print(_box_line(f"  {'Sessions':<26}{kpis.sessions:>12,}", W))
    print(_box_line(f"  {'Unique Visitors':<26}{kpis.visitors:>12,}", W))
    print(_box_line(f"  {'Cart Adds':<26}{kpis.cart_adds:>12,}", W))
    print(_box_line(f"  {'Conversion Rate':<26}{kpis.conversion_rate * 100:>11.1f}%", W))
    print(_box_line(f"  {'Cart Leak':<26}{bundle.leak.overall * 100:>11.1f}%", W))
    print(_empty_line(W))

    # Tier rates are not reprojected
    tiers_title = "Price Tiers" if window == "All time" else "Price Tiers (all time)"
    print(_section_header_plain(tiers_title, W))
    if meta.t_low is None or meta.t_high is None or meta.t_low == meta.t_high:
        print(_box_line(f"  {C.DIM}Not enough price spread for tiers{C.RESET}", W))
    else:
        print(_box_line(f"  {'Low / Mid boundary':<26}{meta.t_low:>12,.2f}", W))
        print(_box_line(f"  {'Mid / High boundary':<26}{meta.t_high:>12,.2f}", W))
    for tier, rates in bundle.price_markov.items():
        row = (
            f"  {tier:<8}view{I.ARROW}cart {rates.p_view_to_cart * 100:>6.1f}%"
            f"   cart{I.ARROW}checkout {rates.p_cart_to_checkout * 100:>6.1f}%"
        )
        print(_box_line(row, W))
    print(_empty_line(W))

    anomaly = bundle.daily.anomaly
    print(_section_header_plain("Daily Trends", W))
    print(_box_line(f"  {'Days':<26}{len(bundle.daily.series):>12,}", W))
    if anomaly.has_thresholds:
        bounds = f"{anomaly.lower:,.1f} .. {anomaly.upper:,.1f}"
        print(_box_line(f"  {'Normal cart range':<26}{bounds:>12}", W))
        outliers = ", ".join(anomaly.outliers[:3]) or "none"
        print(_box_line(f"  {'Outlier days':<26}{C.BRIGHT_YELLOW}{outliers}{C.RESET}", W))
    else:
        print(_box_line(f"  {C.DIM}Not enough days for anomaly detection{C.RESET}", W))
    print(_empty_line(W))
    print(_box_bottom(f"cartlens {bundle.version}" if bundle.version else "", W))
    print()


def _print_tables(bundle: AnalyticsBundle) -> None:
    console = Console()

    if bundle.leak.items:
        table = Table(title="Top Leaking Items", show_header=True, header_style="bold")
        table.add_column("Item", justify="left")
        table.add_column("Adds", justify="right")
        table.add_column("Removes", justify="right")
        table.add_column("Leak", justify="right", style="bold")
        for row in bundle.leak.items[:TOP_ROWS]:
            info = bundle.item_meta.get(row.item)
            table.add_row(
                info.title if info else row.item,
                f"{row.adds:,}",
                f"{row.removes:,}",
                f"{row.leak:.0%}",
            )
        console.print(table)

    leak_by_category = category_leak(bundle)
    if bundle.category_interactions:
        leak_lookup = {row.category: row.leak for row in leak_by_category}
        table = Table(title="Top Categories", show_header=True, header_style="bold")
        table.add_column("Category", justify="left")
        table.add_column("Views", justify="right")
        table.add_column("Carts", justify="right")
        table.add_column("Wishlist", justify="right")
        table.add_column("Leak", justify="right", style="bold")
        for cat in bundle.category_interactions[:TOP_ROWS]:
            leak = leak_lookup.get(cat.category)
            table.add_row(
                cat.category,
                f"{cat.views:,}",
                f"{cat.carts:,}",
                f"{cat.wish:,}",
                f"{leak:.0%}" if leak is not None else "—",
            )
        console.print(table)

    if bundle.geo_insights:
        table = Table(title="Conversion by Country", show_header=True, header_style="bold")
        table.add_column("Country", justify="left")
        table.add_column("Conversion", justify="right", style="bold")
        for geo in bundle.geo_insights[:TOP_ROWS]:
            table.add_row(geo.country, f"{geo.conversion_rate:.1%}")
        console.print(table)
    print()
