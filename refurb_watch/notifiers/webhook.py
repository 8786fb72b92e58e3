"""
Chat webhook notifier (Discord-compatible).

POSTs ``{"content": message}`` to the configured webhook URL.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

import requests

from ..errors import NotificationError
from . import SEND_TIMEOUT, fit_lines

if TYPE_CHECKING:
    from ..matcher import MatchResult

log = logging.getLogger("refurb-watch")

# Discord rejects longer content with HTTP 400
MAX_CONTENT_LENGTH = 2000


class WebhookNotifier:
    """Sends notifications to a chat webhook."""

    name = "webhook"

    def __init__(self, webhook_url: str, tz: ZoneInfo, label: str = "M4 MacBook Air"):
        self.webhook_url = webhook_url
        self.tz = tz
        self.label = label

    def send(self, message: str) -> None:
        log.debug("Posting %d-char message to webhook", len(message))
        try:
            resp = requests.post(
                self.webhook_url, json={"content": message}, timeout=SEND_TIMEOUT,
            )
        except requests.RequestException as e:
            raise NotificationError(self.name, str(e)) from e
        if not resp.ok:
            raise NotificationError(self.name, f"HTTP {resp.status_code} {resp.text[:200]}")

    def send_found(self, products: list[MatchResult], url: str) -> None:
        now = datetime.now(self.tz).strftime("%Y-%m-%d %H:%M %Z")
        head = f"🍎 **{self.label} available in the refurbished store!** 🍎\n\n"
        tail = f"\n\n🔗 Check now: {url}\n⏰ {now}"
        lines = fit_lines(
            [f"**{p.title}** - {p.price}" for p in products],
            MAX_CONTENT_LENGTH - len(head) - len(tail),
        )
        self.send(head + lines + tail)

    def send_error(self, error: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self.send(
            f"⚠️ **Refurb monitor error** ⚠️\n\n"
            f"Error: {error}\n"
            f"Time: {now}"
        )
