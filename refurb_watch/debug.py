"""
Debug utilities — save the fetched storefront HTML.

Listing markup changes silently break the heuristics, so a copy of what was
actually served makes a false negative easy to diagnose. Files go to the
configured DEBUG_DIR with automatic cleanup to avoid filling disk.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

log = logging.getLogger("refurb-watch")

MAX_DEBUG_FILES = 20


def ensure_debug_dir(debug_dir: Path):
    """Create debug directory and clean old files."""
    debug_dir.mkdir(parents=True, exist_ok=True)
    files = sorted(debug_dir.glob("*.html"), key=lambda f: f.stat().st_mtime)
    while len(files) >= MAX_DEBUG_FILES:
        files.pop(0).unlink()


def capture(html: str, label: str, debug_dir: Path) -> Path | None:
    """
    Save a page body for debugging.

    Files are named with timestamp + label for easy correlation:
        20261018_090000_123456_not-found.html
    """
    try:
        ensure_debug_dir(debug_dir)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        html_path = debug_dir / f"{timestamp}_{label}.html"
        n = 1
        while html_path.exists():
            html_path = debug_dir / f"{timestamp}_{label}_{n}.html"
            n += 1
        with open(html_path, "w", encoding="utf-8") as f:
            f.write(html)
        log.info("Debug HTML saved: %s", html_path)
        return html_path
    except OSError as e:
        log.warning("Failed to capture debug info: %s", e)
        return None
