"""Exceptions raised by refurb-watch."""

from __future__ import annotations


class RefurbWatchError(Exception):
    """Base class for all refurb-watch errors."""


class FetchError(RefurbWatchError):
    """The storefront request failed (non-2xx status or transport error)."""

    def __init__(
        self,
        url: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ):
        self.url = url
        self.status_code = status_code
        self.cause = cause
        if status_code is not None:
            message = f"Storefront returned HTTP {status_code}"
        else:
            message = f"Storefront request failed: {cause}"
        super().__init__(message)


class NotificationError(RefurbWatchError):
    """A notification channel could not deliver a message."""

    def __init__(self, channel: str, reason: str):
        self.channel = channel
        self.reason = reason
        super().__init__(f"{channel}: {reason}")
