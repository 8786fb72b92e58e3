"""
Storefront fetcher — a single HTTP GET with browser-like headers.

The storefront may vary content for (or block) default automation clients,
so the request always carries the configured User-Agent and language
headers. No retries: one failed attempt ends the run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests

from .errors import FetchError

if TYPE_CHECKING:
    from .config import Config

log = logging.getLogger("refurb-watch")


def fetch_page(config: Config, url: str | None = None) -> str:
    """
    Fetch the storefront page and return its body as decoded text.

    Raises FetchError on a non-2xx status or any transport failure
    (DNS, TLS, timeout, connection reset).
    """
    url = url or config.store_url
    log.info("Fetching %s", url)

    try:
        resp = requests.get(
            url,
            headers=config.request_headers,
            timeout=config.request_timeout,
        )
    except requests.RequestException as e:
        log.error("Storefront request failed: %s", e)
        raise FetchError(url, cause=e) from e

    if not 200 <= resp.status_code < 300:
        log.error("Storefront returned HTTP %s", resp.status_code)
        raise FetchError(url, status_code=resp.status_code)

    body = resp.text
    log.info("Fetched %d characters (HTTP %s)", len(body), resp.status_code)
    return body
