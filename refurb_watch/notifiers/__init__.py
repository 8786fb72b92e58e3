"""
Notification system — pluggable notifiers with a common protocol.

Adding a new notifier:
    1. Create a module in this package (e.g., slack.py)
    2. Implement the Notifier protocol; send() raises NotificationError
    3. Add a build step to build_notifiers() below
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol

from ..errors import NotificationError

if TYPE_CHECKING:
    from ..config import Config
    from ..matcher import MatchResult

log = logging.getLogger("refurb-watch")

SEND_TIMEOUT = 10  # seconds, per outbound notification request


# ---------------------------------------------------------------------------
# Delivery outcome (one per channel per notification)
# ---------------------------------------------------------------------------
@dataclass
class DeliveryResult:
    channel: str
    ok: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {"channel": self.channel, "ok": self.ok, "error": self.error}


# ---------------------------------------------------------------------------
# Notifier protocol
# ---------------------------------------------------------------------------
class Notifier(Protocol):
    """Interface that all notifiers implement."""

    name: str

    def send(self, message: str) -> None:
        """Send a raw message. Raises NotificationError on failure."""
        ...

    def send_found(self, products: list[MatchResult], url: str) -> None:
        """Send the availability alert."""
        ...

    def send_error(self, error: str) -> None:
        """Send an error alert for a failed run."""
        ...


# ---------------------------------------------------------------------------
# Registry — build notifiers from config
# ---------------------------------------------------------------------------
def build_notifiers(config: Config) -> list[Notifier]:
    """Instantiate every channel whose configuration is present."""
    notifiers: list[Notifier] = []

    if config.webhook_url:
        from .webhook import WebhookNotifier
        notifiers.append(WebhookNotifier(config.webhook_url, config.tz, config.product_label))

    if config.has_email:
        from .mail import EmailNotifier
        notifiers.append(EmailNotifier(
            api_key=config.email_api_key,
            to=config.email_to,
            sender=config.email_from,
            tz=config.tz,
            label=config.product_label,
        ))

    if config.has_telegram:
        from .telegram import TelegramNotifier
        notifiers.append(
            TelegramNotifier(
                config.telegram_bot_token, config.telegram_chat_id,
                config.tz, config.product_label,
            )
        )

    if not notifiers:
        log.info("No notification channels configured — results are only logged")

    return notifiers


def fit_lines(lines: list[str], budget: int, sep: str = "\n") -> str:
    """
    Join as many lines as fit within ``budget`` characters.

    Lines that don't fit are dropped from the end and replaced by a single
    "… and N more" line. Chat APIs reject oversized messages outright, so a
    shorter alert is better than none.
    """
    text = sep.join(lines)
    if len(text) <= budget:
        return text

    reserve = len(f"{sep}… and {len(lines)} more")
    kept: list[str] = []
    used = 0
    for line in lines:
        cost = len(line) + (len(sep) if kept else 0)
        if used + cost + reserve > budget:
            break
        kept.append(line)
        used += cost

    return sep.join([*kept, f"… and {len(lines) - len(kept)} more"])


def notify_all(
    notifiers: list[Notifier], method: str, *args, **kwargs,
) -> list[DeliveryResult]:
    """
    Call a method on all notifiers concurrently and wait for every one.

    A channel failing never affects the others. Each channel's outcome is
    returned in notifier order; logging is left to the caller.
    """
    if not notifiers:
        return []

    def deliver(notifier: Notifier) -> DeliveryResult:
        try:
            getattr(notifier, method)(*args, **kwargs)
        except NotificationError as e:
            return DeliveryResult(notifier.name, ok=False, error=e.reason)
        except Exception as e:
            return DeliveryResult(notifier.name, ok=False, error=f"{type(e).__name__}: {e}")
        return DeliveryResult(notifier.name, ok=True)

    with ThreadPoolExecutor(max_workers=len(notifiers)) as pool:
        return list(pool.map(deliver, notifiers))
