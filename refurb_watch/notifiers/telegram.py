"""
Telegram push notification implementation.
"""

from __future__ import annotations

import html
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

# Bot API limit for sendMessage text
MAX_TEXT_LENGTH = 4096


class TelegramNotifier:
    """Sends notifications via Telegram Bot API."""

    name = "telegram"

    def __init__(self, bot_token: str, chat_id: str, tz: ZoneInfo, label: str = "M4 MacBook Air"):
        self.chat_id = chat_id
        self.tz = tz
        self.label = label
        self.api_url = f"https://api.telegram.org/bot{bot_token}/sendMessage"

    def send(self, message: str) -> None:
        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "parse_mode": "HTML",
            "disable_web_page_preview": False,
        }
        log.debug("Sending %d-char message to Telegram chat %s", len(message), self.chat_id)
        try:
            resp = requests.post(self.api_url, json=payload, timeout=SEND_TIMEOUT)
        except requests.RequestException as e:
            raise NotificationError(self.name, str(e)) from e
        if resp.status_code != 200:
            raise NotificationError(self.name, f"HTTP {resp.status_code} {resp.text[:200]}")

    def send_found(self, products: list[MatchResult], url: str) -> None:
        now = datetime.now(self.tz).strftime("%Y-%m-%d %H:%M %Z")
        head = f"🚨 <b>{html.escape(self.label)} IN STOCK</b> 🚨\n\n"
        tail = (
            f"\n\n🔗 <a href=\"{html.escape(url)}\">Open the refurbished store →</a>\n"
            f"⏰ {now}"
        )
        lines = fit_lines(
            [f"<b>{html.escape(p.title)}</b>\n💰 {html.escape(p.price)}" for p in products],
            MAX_TEXT_LENGTH - len(head) - len(tail),
        )
        self.send(head + lines + tail)

    def send_error(self, error: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self.send(
            f"⚠️ <b>Refurb monitor error</b>\n"
            f"{html.escape(error)}\n"
            f"⏰ {now}"
        )
