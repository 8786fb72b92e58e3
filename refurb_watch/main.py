#!/usr/bin/env python3
"""
Refurb Watch — main entry point.

Performs one check and exits:
    1. Load config
    2. Fetch the storefront page
    3. Match the target variant → notify (found or error)
    4. Exit 0 (found / not found) or 1 (error)

Scheduling is left to whatever invokes the process (cron, CI workflow).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from typing import Optional

from .config import Config
from .debug import capture as capture_debug
from .errors import FetchError
from .fetcher import fetch_page
from .history import append_history
from .matcher import MatchResult, MatchRules, find_matches
from .notifiers import DeliveryResult, Notifier, build_notifiers, notify_all

log = logging.getLogger("refurb-watch")


# ---------------------------------------------------------------------------
# Run result
# ---------------------------------------------------------------------------
@dataclass
class RunResult:
    """Structured outcome of a single check."""

    status: str  # "success" | "error"
    available: bool = False
    products: list[MatchResult] = field(default_factory=list)
    message: str = ""
    error: Optional[str] = None
    deliveries: list[DeliveryResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "available": self.available,
            "products": [p.to_dict() for p in self.products],
            "message": self.message,
            "error": self.error,
            "deliveries": [d.to_dict() for d in self.deliveries],
        }


# ---------------------------------------------------------------------------
# Single check
# ---------------------------------------------------------------------------
def run_check(config: Config, notifiers: list[Notifier] | None = None) -> RunResult:
    """Fetch, match and notify once. Never raises for fetch or delivery failures."""
    if notifiers is None:
        notifiers = build_notifiers(config)
    label = config.product_label

    try:
        html = fetch_page(config)
        products = find_matches(html, MatchRules.from_config(config))
    except FetchError as e:
        result = _failed(str(e))
    except Exception as e:
        log.exception("Unexpected error while checking the storefront")
        result = _failed(f"{type(e).__name__}: {e}")
    else:
        if config.debug_dir:
            capture_debug(html, "found" if products else "not-found", config.debug_dir)

        if products:
            log.info("%s FOUND ✓ (%d listing(s))", label, len(products))
            for p in products:
                log.info("  %s — %s", p.title, p.price)
            result = RunResult(
                status="success",
                available=True,
                products=products,
                message=f"{label} found in refurbished store!",
            )
            result.deliveries = notify_all(notifiers, "send_found", products, config.store_url)
        else:
            log.info("%s not available", label)
            result = RunResult(
                status="success",
                message=f"No {label} found in refurbished store",
            )
    if result.error:
        result.deliveries = notify_all(notifiers, "send_error", result.error)

    _log_deliveries(result.deliveries)

    if config.history_path:
        append_history(config.history_path, result)

    return result


def _failed(error: str) -> RunResult:
    log.error("Check failed: %s", error)
    return RunResult(status="error", message=error, error=error)


def _log_deliveries(deliveries: list[DeliveryResult]):
    for d in deliveries:
        if d.ok:
            log.info("Notification sent via %s", d.channel)
        else:
            log.error("Notification via %s failed: %s", d.channel, d.error)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="refurb-watch",
        description="Check the refurbished store for a product variant and notify when it appears.",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="print the structured run result as JSON on stdout",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="check and log only; send no notifications",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # Keep stdout clean for the JSON result
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr if args.json else sys.stdout)],
    )

    config = Config.from_env()
    log.setLevel(logging.DEBUG if args.verbose else config.log_level)

    log.info("=" * 50)
    log.info("Refurb Watch — %s", config.product_label)
    log.info("=" * 50)

    notifiers = [] if args.dry_run else build_notifiers(config)
    if args.dry_run:
        log.info("Dry run — notifications disabled")

    result = run_check(config, notifiers)

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
