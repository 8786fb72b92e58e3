"""
Configuration management.

Builds a typed Config from the process environment (plus an optional .env
file) once at startup. Every component receives this object explicitly.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

log = logging.getLogger("refurb-watch")

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_STORE_URL = "https://www.apple.com/jp/shop/refurbished/mac/macbook-air"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)
DEFAULT_ACCEPT_LANGUAGE = "ja-JP,ja;q=0.9,en-US;q=0.8,en;q=0.7"
DEFAULT_EMAIL_FROM = "notifications@refurb-watch.dev"


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------
@dataclass
class Config:
    # Storefront
    store_url: str = DEFAULT_STORE_URL
    store_timezone: str = "Asia/Tokyo"

    # What to look for
    model_name: str = "MacBook Air"
    variant: str = "M4"
    match_window: int = 120

    # HTTP
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    accept_encoding: str = "gzip, deflate"
    request_timeout: float = 30.0

    # Notification channels (each optional)
    webhook_url: str = ""
    email_api_key: str = ""
    email_to: str = ""
    email_from: str = DEFAULT_EMAIL_FROM
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # Best-effort extras
    history_path: Optional[Path] = None
    debug_dir: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """
        Build a Config from environment variables.

        When ``environ`` is omitted, a .env file in the working directory is
        loaded first (existing variables take precedence) and os.environ is
        read. Invalid values are fatal.
        """
        if environ is None:
            load_dotenv(override=False)
            environ = os.environ

        def get(key: str, default: str = "") -> str:
            return environ.get(key, "").strip() or default

        history = get("HISTORY_PATH")
        debug_dir = get("DEBUG_DIR")

        config = cls(
            store_url=get("STORE_URL", DEFAULT_STORE_URL),
            store_timezone=get("STORE_TIMEZONE", "Asia/Tokyo"),
            model_name=get("MODEL_NAME", "MacBook Air"),
            variant=get("VARIANT", "M4"),
            match_window=_parse_number(get("MATCH_WINDOW", "120"), "MATCH_WINDOW", int),
            user_agent=get("USER_AGENT", DEFAULT_USER_AGENT),
            accept_language=get("ACCEPT_LANGUAGE", DEFAULT_ACCEPT_LANGUAGE),
            request_timeout=_parse_number(get("REQUEST_TIMEOUT", "30"), "REQUEST_TIMEOUT", float),
            webhook_url=get("DISCORD_WEBHOOK_URL") or get("WEBHOOK_URL"),
            email_api_key=get("EMAIL_API_KEY"),
            email_to=get("EMAIL_TO"),
            email_from=get("EMAIL_FROM", DEFAULT_EMAIL_FROM),
            telegram_bot_token=get("TELEGRAM_BOT_TOKEN"),
            telegram_chat_id=get("TELEGRAM_CHAT_ID"),
            history_path=Path(history) if history else None,
            debug_dir=Path(debug_dir) if debug_dir else None,
            log_level=get("LOG_LEVEL", "INFO").upper(),
        )

        if config.log_level not in logging.getLevelNamesMapping():
            log.error("Unknown LOG_LEVEL: %s", config.log_level)
            sys.exit(1)

        try:
            ZoneInfo(config.store_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            log.error("Unknown STORE_TIMEZONE: %s", config.store_timezone)
            sys.exit(1)

        return config

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.store_timezone)

    @property
    def request_headers(self) -> dict[str, str]:
        """Browser-like headers for the storefront request."""
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": self.accept_language,
            "Accept-Encoding": self.accept_encoding,
        }

    @property
    def product_label(self) -> str:
        return f"{self.variant} {self.model_name}"

    @property
    def has_email(self) -> bool:
        return bool(self.email_api_key and self.email_to)

    @property
    def has_telegram(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


def _parse_number(raw: str, key: str, kind: type):
    try:
        value = kind(raw)
    except ValueError:
        log.error("Invalid value for %s: %r", key, raw)
        sys.exit(1)
    if value <= 0:
        log.error("%s must be positive, got %r", key, raw)
        sys.exit(1)
    return value
