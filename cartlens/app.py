# ==============================================================================
# Cartlens CLI
# ==============================================================================
"""
Command-line interface for the cartlens e-commerce analytics engine.

Usage:
    cartlens --help
    cartlens analytics
    cartlens analytics --source ./export --json
    cartlens analytics --bundle bundle.json --from 2024-03-01 --to 2024-03-31
    cartlens config show
"""

import logging

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
import os

import typer

from cartlens.utils.config import get_settings

if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="cartlens",
    help="E-commerce cart analytics CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

# Register config commands from cli.config module
from cartlens.cli.config import config_show

config_app.command("show")(config_show)

# Analytics command is imported from cartlens.cli.analytics
from cartlens.cli.analytics import show_analytics

app.command("analytics")(show_analytics)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.effective_log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app()


if __name__ == "__main__":
    main()
