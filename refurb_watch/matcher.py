"""
Product matcher — decides whether the target variant is listed on the page.

Heuristic, not exact parsing. Three independent signals are read from the
fetched markup:

    1. co-occurrence of model name and variant within a short window
    2. "productTitle" JSON fields embedded in script data
    3. refurbished-product listing blocks (title + price extracted)

Listing blocks are preferred. When none are found the embedded titles are
reported, and failing that a bare co-occurrence still reports general
availability with a placeholder result. Results are never deduplicated
across signals.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from bs4 import BeautifulSoup, Tag

log = logging.getLogger("refurb-watch")

PRICE_NOT_FOUND = "Price not found"

# Regional currency prefixes: half- and full-width yen, dollar
PRICE_PATTERN = re.compile(r"[¥￥$]\s*\d[\d,]*")

# Class fragment used by the storefront for refurbished listing tiles
LISTING_CLASS = re.compile(r"refurb-product")

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
@dataclass
class MatchResult:
    """One apparent product listing."""

    title: str
    price: str = PRICE_NOT_FOUND
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "price": self.price,
            "observed_at": self.observed_at.isoformat(),
        }


@dataclass
class MatchRules:
    model_name: str = "MacBook Air"
    variant: str = "M4"
    window: int = 120
    fallback_title: str = ""

    def __post_init__(self):
        if not self.fallback_title:
            self.fallback_title = f"{self.variant} {self.model_name}"

    @classmethod
    def from_config(cls, config) -> MatchRules:
        return cls(
            model_name=config.model_name,
            variant=config.variant,
            window=config.match_window,
        )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
def find_matches(
    html: str,
    rules: MatchRules | None = None,
    observed_at: datetime | None = None,
) -> list[MatchResult]:
    """
    Return the listings for the target variant, in order of appearance.

    An empty list means the variant is not available this run.
    """
    rules = rules or MatchRules()
    observed_at = observed_at or datetime.now(timezone.utc)

    listings = extract_listings(html, rules, observed_at)
    if listings:
        log.debug("Found %d listing block(s)", len(listings))
        return listings

    titles = find_product_titles(html, rules)
    if titles:
        log.debug("No listing blocks, %d embedded product title(s)", len(titles))
        return [MatchResult(title=t, observed_at=observed_at) for t in titles]

    if has_cooccurrence(html, rules):
        log.debug("Only a plain-text mention matched, reporting placeholder")
        return [MatchResult(title=rules.fallback_title, observed_at=observed_at)]

    return []


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------
def has_cooccurrence(html: str, rules: MatchRules) -> bool:
    """True if model name and variant appear within ``rules.window`` chars of each other."""
    model = re.escape(rules.model_name)
    variant = re.escape(rules.variant)
    gap = f".{{0,{rules.window}}}?"
    pattern = re.compile(
        f"{model}{gap}{variant}|{variant}{gap}{model}",
        re.IGNORECASE | re.DOTALL,
    )
    return pattern.search(html) is not None


def find_product_titles(html: str, rules: MatchRules) -> list[str]:
    """Embedded ``"productTitle": "..."`` values naming the model and variant."""
    pattern = re.compile(
        r'"productTitle"\s*:\s*"([^"]*' + re.escape(rules.model_name) + r'[^"]*)"',
        re.IGNORECASE,
    )
    titles = []
    for m in pattern.finditer(html):
        title = _decode_json_string(m.group(1))
        if rules.variant.lower() in title.lower():
            titles.append(title)
    return titles


def extract_listings(
    html: str, rules: MatchRules, observed_at: datetime,
) -> list[MatchResult]:
    """Title and price for every refurbished listing block naming the variant."""
    soup = BeautifulSoup(html, "html.parser")
    model = rules.model_name.lower()
    variant = rules.variant.lower()

    qualifying = [
        block for block in soup.find_all("div", class_=LISTING_CLASS)
        if _names_target(block, model, variant)
    ]
    qualifying_ids = {id(block) for block in qualifying}

    results = []
    for block in qualifying:
        # Innermost wins: a grid or wrapper defers to the listings inside it
        inner = block.find_all("div", class_=LISTING_CLASS)
        if any(id(tile) in qualifying_ids for tile in inner):
            continue

        results.append(MatchResult(
            title=_extract_title(block, rules),
            price=_extract_price(block),
            observed_at=observed_at,
        ))
    return results


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------
def _names_target(block: Tag, model: str, variant: str) -> bool:
    markup = str(block).lower()
    return variant in markup and model in markup


def _extract_title(block: Tag, rules: MatchRules) -> str:
    heading = block.find(HEADING_TAGS)
    if heading is not None:
        text = heading.get_text(" ", strip=True)
        if text:
            return text

    model = rules.model_name.lower()
    for tag in [block, *block.find_all(True)]:
        for attr in ("title", "alt"):
            value = tag.get(attr)
            if isinstance(value, str) and model in value.lower():
                return value.strip()

    return rules.fallback_title


def _extract_price(block: Tag) -> str:
    m = PRICE_PATTERN.search(block.get_text(" ", strip=True))
    if not m:
        return PRICE_NOT_FOUND
    return re.sub(r"\s+", "", m.group(0))


def _decode_json_string(raw: str) -> str:
    """Resolve \\uXXXX escapes; fall back to the raw text if it isn't valid JSON."""
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw
