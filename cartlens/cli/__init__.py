# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for cartlens.

Commands are organized into separate modules for maintainability:
- shared.py: Common utilities, constants, and helpers
- analytics.py: Analytics command computing and displaying the bundle
- config.py: Configuration display
"""

from cartlens.cli.shared import (
    # Constants
    BOX_WIDTH,
    # Classes
    Box,
    Colors,
    Icons,
    # Aliases
    B,
    C,
    I,
    # Box drawing helpers (private)
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _section_header_plain,
    _visible_len,
    # Command helpers
    fail,
    open_document_source,
)

__all__ = [
    # Constants
    "BOX_WIDTH",
    # Classes
    "Box",
    "Colors",
    "Icons",
    # Aliases
    "B",
    "C",
    "I",
    # Box drawing helpers (private - kept for internal use)
    "_box_bottom",
    "_box_header",
    "_box_line",
    "_empty_line",
    "_section_header_plain",
    "_visible_len",
    # Command helpers
    "fail",
    "open_document_source",
]
