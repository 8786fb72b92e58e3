"""
Email notifier via the Resend HTTP API.
"""

from __future__ import annotations

import html
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

import requests

from ..errors import NotificationError
from . import SEND_TIMEOUT

if TYPE_CHECKING:
    from ..matcher import MatchResult

log = logging.getLogger("refurb-watch")

RESEND_API_URL = "https://api.resend.com/emails"


class EmailNotifier:
    """Sends notifications as email through Resend."""

    name = "email"

    def __init__(
        self,
        api_key: str,
        to: str,
        sender: str,
        tz: ZoneInfo,
        label: str = "M4 MacBook Air",
    ):
        self.api_key = api_key
        self.to = to
        self.sender = sender
        self.tz = tz
        self.label = label

    def send(self, message: str, subject: str | None = None) -> None:
        """Send ``message`` as the HTML body of an email."""
        payload = {
            "from": self.sender,
            "to": [self.to],
            "subject": subject or f"{self.label} refurb monitor",
            "html": message,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        log.debug("Emailing %s: %s", self.to, payload["subject"])
        try:
            resp = requests.post(
                RESEND_API_URL, json=payload, headers=headers, timeout=SEND_TIMEOUT,
            )
        except requests.RequestException as e:
            raise NotificationError(self.name, str(e)) from e
        if not resp.ok:
            raise NotificationError(self.name, f"HTTP {resp.status_code} {resp.text[:200]}")

    def send_found(self, products: list[MatchResult], url: str) -> None:
        items = "".join(
            f"<li><strong>{html.escape(p.title)}</strong> - {html.escape(p.price)}</li>"
            for p in products
        )
        now = datetime.now(self.tz).strftime("%Y-%m-%d %H:%M %Z")
        self.send(
            f"<h2>{html.escape(self.label)} available in the refurbished store!</h2>"
            f"<ul>{items}</ul>"
            f'<p><a href="{html.escape(url)}">Check the store now</a></p>'
            f"<p>Seen at {now}</p>",
            subject=f"{self.label} available!",
        )

    def send_error(self, error: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self.send(
            f"<h2>Refurb monitor error</h2>"
            f"<p>Error: {html.escape(error)}</p>"
            f"<p>Time: {now}</p>",
            subject="Refurb monitor error",
        )
