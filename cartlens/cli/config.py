# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration management commands for the cartlens CLI.
"""

import json
from typing import Annotated

import typer

from cartlens.cli.shared import C
from cartlens.utils.config import get_settings, package_version


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes the Mongo URI in JSON mode)."""
    settings = get_settings()
    mongo = settings.mongo
    engine = settings.engine

    # JSON output mode
    if json_output:
        config = {
            "mongo": {
                "uri": mongo.uri,
                "configured": mongo.is_configured,
                "db_name": mongo.db_name,
                "tracking_collection": mongo.tracking_collection,
                "listings_collection": mongo.listings_collection,
                "categories_collection": mongo.categories_collection,
                "max_pool_size": mongo.max_pool_size,
                "server_selection_timeout_ms": mongo.server_selection_timeout_ms,
            },
            "engine": {
                "tracking_limit": engine.tracking_limit,
                "listings_limit": engine.listings_limit,
                "categories_limit": engine.categories_limit,
                "version_tag": engine.version_tag,
            },
            "logging": {
                "log_level": settings.effective_log_level,
                "debug": settings.debug,
            },
            "versions": {
                "pymongo": package_version("pymongo"),
                "numpy": package_version("numpy"),
            },
        }
        print(json.dumps(config, indent=2))
        return

    # Human-readable output
    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    # MongoDB
    print(f"{C.CYAN}MongoDB{C.RESET}")
    uri_status = "configured" if mongo.is_configured else f"{C.BRIGHT_YELLOW}not set{C.RESET}"
    print(f"  URI:        {C.WHITE}{uri_status}{C.RESET}")
    print(f"  Database:   {C.WHITE}{mongo.db_name}{C.RESET}")
    print(f"  Tracking:   {C.WHITE}{mongo.tracking_collection}{C.RESET}")
    print(f"  Listings:   {C.WHITE}{mongo.listings_collection}{C.RESET}")
    print(f"  Categories: {C.WHITE}{mongo.categories_collection}{C.RESET}")
    print(f"  Pool Size:  {C.WHITE}{mongo.max_pool_size}{C.RESET}")
    print(f"  Timeout:    {C.WHITE}{mongo.server_selection_timeout_ms} ms{C.RESET}")
    print()

    # Engine
    print(f"{C.CYAN}Engine{C.RESET}")
    print(f"  Tracking:   {C.WHITE}{engine.tracking_limit:,} documents{C.RESET}")
    print(f"  Listings:   {C.WHITE}{engine.listings_limit:,} documents{C.RESET}")
    print(f"  Categories: {C.WHITE}{engine.categories_limit:,} documents{C.RESET}")
    print(f"  Version:    {C.WHITE}{engine.version_tag}{C.RESET}")
    print()

    # Logging
    print(f"{C.CYAN}Logging{C.RESET}")
    print(f"  Level:      {C.WHITE}{settings.effective_log_level}{C.RESET}")
    print()
