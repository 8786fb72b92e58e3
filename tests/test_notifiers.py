import threading
import unittest
from datetime import datetime, timezone
from unittest import mock
from zoneinfo import ZoneInfo

import requests

from refurb_watch.config import Config
from refurb_watch.errors import NotificationError
from refurb_watch.matcher import MatchResult
from refurb_watch.notifiers import build_notifiers, fit_lines, notify_all
from refurb_watch.notifiers.mail import RESEND_API_URL, EmailNotifier
from refurb_watch.notifiers.telegram import MAX_TEXT_LENGTH as TELEGRAM_MAX_TEXT_LENGTH
from refurb_watch.notifiers.telegram import TelegramNotifier
from refurb_watch.notifiers.webhook import MAX_CONTENT_LENGTH, WebhookNotifier

TOKYO = ZoneInfo("Asia/Tokyo")
STORE = "https://www.apple.com/jp/shop/refurbished/mac/macbook-air"
PRODUCTS = [
    MatchResult("MacBook Air M4", "¥98,000", datetime(2026, 10, 18, tzinfo=timezone.utc)),
    MatchResult("MacBook Air 15 M4", "¥128,000", datetime(2026, 10, 18, tzinfo=timezone.utc)),
]


class WebhookNotifierTest(unittest.TestCase):
    def setUp(self):
        self.notifier = WebhookNotifier("https://discord.test/hook", TOKYO)

    @mock.patch("refurb_watch.notifiers.webhook.requests.post")
    def test_found_message(self, post):
        post.return_value = mock.Mock(ok=True, status_code=204)
        self.notifier.send_found(PRODUCTS, STORE)

        self.assertEqual(post.call_args.args[0], "https://discord.test/hook")
        payload = post.call_args.kwargs["json"]
        self.assertEqual(list(payload), ["content"])
        content = payload["content"]
        self.assertIn("**MacBook Air M4** - ¥98,000", content)
        self.assertIn("**MacBook Air 15 M4** - ¥128,000", content)
        self.assertIn(STORE, content)
        self.assertIn("JST", content)

    @mock.patch("refurb_watch.notifiers.webhook.requests.post")
    def test_many_products_fit_discord_limit(self, post):
        post.return_value = mock.Mock(ok=True, status_code=204)
        products = [
            MatchResult(f"整備済み 15インチMacBook Air Apple M4チップ 10コアCPU スカイブルー #{i}", "¥178,800")
            for i in range(40)
        ]
        self.notifier.send_found(products, STORE)

        content = post.call_args.kwargs["json"]["content"]
        self.assertLessEqual(len(content), MAX_CONTENT_LENGTH)
        self.assertIn("#0**", content)
        self.assertRegex(content, r"… and \d+ more")
        self.assertIn(STORE, content)
        self.assertIn("JST", content)

    @mock.patch("refurb_watch.notifiers.webhook.requests.post")
    def test_send_logs_at_debug(self, post):
        post.return_value = mock.Mock(ok=True, status_code=204)
        with self.assertLogs("refurb-watch", level="DEBUG") as logs:
            self.notifier.send("hello")
        self.assertIn("5-char message", logs.output[0])

    @mock.patch("refurb_watch.notifiers.webhook.requests.post")
    def test_error_message(self, post):
        post.return_value = mock.Mock(ok=True, status_code=204)
        self.notifier.send_error("Storefront returned HTTP 503")
        content = post.call_args.kwargs["json"]["content"]
        self.assertIn("Storefront returned HTTP 503", content)
        self.assertIn("+00:00", content)

    @mock.patch("refurb_watch.notifiers.webhook.requests.post")
    def test_non_2xx_raises(self, post):
        post.return_value = mock.Mock(ok=False, status_code=429, text="rate limited")
        with self.assertRaises(NotificationError) as ctx:
            self.notifier.send("hello")
        self.assertEqual(ctx.exception.channel, "webhook")
        self.assertIn("429", ctx.exception.reason)

    @mock.patch("refurb_watch.notifiers.webhook.requests.post")
    def test_transport_failure_raises(self, post):
        post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(NotificationError):
            self.notifier.send("hello")


class EmailNotifierTest(unittest.TestCase):
    @mock.patch("refurb_watch.notifiers.mail.requests.post")
    def test_found_email(self, post):
        post.return_value = mock.Mock(ok=True, status_code=200)
        notifier = EmailNotifier("re_key", "me@example.com", "bot@example.com", TOKYO)
        notifier.send_found(PRODUCTS[:1], STORE)

        self.assertEqual(post.call_args.args[0], RESEND_API_URL)
        self.assertEqual(post.call_args.kwargs["headers"]["Authorization"], "Bearer re_key")
        payload = post.call_args.kwargs["json"]
        self.assertEqual(payload["to"], ["me@example.com"])
        self.assertEqual(payload["from"], "bot@example.com")
        self.assertEqual(payload["subject"], "M4 MacBook Air available!")
        self.assertIn("<li><strong>MacBook Air M4</strong> - ¥98,000</li>", payload["html"])
        self.assertIn(STORE, payload["html"])

    @mock.patch("refurb_watch.notifiers.mail.requests.post")
    def test_error_is_escaped(self, post):
        post.return_value = mock.Mock(ok=True, status_code=200)
        notifier = EmailNotifier("re_key", "me@example.com", "bot@example.com", TOKYO)
        notifier.send_error("bad <html>")
        self.assertIn("bad &lt;html&gt;", post.call_args.kwargs["json"]["html"])

    @mock.patch("refurb_watch.notifiers.mail.requests.post")
    def test_rejected(self, post):
        post.return_value = mock.Mock(ok=False, status_code=401, text="invalid key")
        notifier = EmailNotifier("bad", "me@example.com", "bot@example.com", TOKYO)
        with self.assertRaises(NotificationError) as ctx:
            notifier.send_error("boom")
        self.assertEqual(ctx.exception.channel, "email")


class TelegramNotifierTest(unittest.TestCase):
    @mock.patch("refurb_watch.notifiers.telegram.requests.post")
    def test_found_message(self, post):
        post.return_value = mock.Mock(status_code=200)
        TelegramNotifier("123:abc", "42", TOKYO).send_found(PRODUCTS[:1], STORE)

        self.assertEqual(post.call_args.args[0], "https://api.telegram.org/bot123:abc/sendMessage")
        payload = post.call_args.kwargs["json"]
        self.assertEqual(payload["chat_id"], "42")
        self.assertIn("<b>MacBook Air M4</b>", payload["text"])
        self.assertIn("¥98,000", payload["text"])

    @mock.patch("refurb_watch.notifiers.telegram.requests.post")
    def test_many_products_fit_message_limit(self, post):
        post.return_value = mock.Mock(status_code=200)
        products = [MatchResult("MacBook Air 13 M4 " + "x" * 120, "¥148,800") for _ in range(60)]
        TelegramNotifier("123:abc", "42", TOKYO).send_found(products, STORE)

        text = post.call_args.kwargs["json"]["text"]
        self.assertLessEqual(len(text), TELEGRAM_MAX_TEXT_LENGTH)
        self.assertRegex(text, r"… and \d+ more")
        self.assertIn(STORE, text)

    @mock.patch("refurb_watch.notifiers.telegram.requests.post")
    def test_api_error(self, post):
        post.return_value = mock.Mock(status_code=400, text="chat not found")
        with self.assertRaises(NotificationError):
            TelegramNotifier("123:abc", "42", TOKYO).send("hi")


class FitLinesTest(unittest.TestCase):
    def test_short_list_is_unchanged(self):
        self.assertEqual(fit_lines(["a", "b"], 100), "a\nb")

    def test_overflow_is_summarised(self):
        lines = [f"line {i:02d}" for i in range(10)]
        text = fit_lines(lines, 40)
        self.assertLessEqual(len(text), 40)
        self.assertTrue(text.startswith("line 00\n"))
        kept = text.count("line ")
        self.assertTrue(text.endswith(f"… and {10 - kept} more"))

    def test_nothing_fits(self):
        self.assertEqual(fit_lines(["x" * 50, "y" * 50], 20), "… and 2 more")


class FakeNotifier:
    def __init__(self, name, fail_with=None, barrier=None):
        self.name = name
        self.fail_with = fail_with
        self.barrier = barrier
        self.calls = []

    def send(self, message):
        self.calls.append(message)

    def send_found(self, products, url):
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        self.calls.append(("found", products, url))
        if self.fail_with:
            raise self.fail_with

    def send_error(self, error):
        self.calls.append(("error", error))
        if self.fail_with:
            raise self.fail_with


class NotifyAllTest(unittest.TestCase):
    def test_no_channels(self):
        self.assertEqual(notify_all([], "send_error", "boom"), [])

    def test_partial_failure_does_not_block_others(self):
        broken = FakeNotifier("webhook", fail_with=NotificationError("webhook", "HTTP 500"))
        working = FakeNotifier("email")
        results = notify_all([broken, working], "send_found", PRODUCTS, STORE)

        self.assertEqual([(r.channel, r.ok, r.error) for r in results], [
            ("webhook", False, "HTTP 500"),
            ("email", True, None),
        ])
        self.assertEqual(working.calls, [("found", PRODUCTS, STORE)])

    def test_unexpected_exception_becomes_failed_result(self):
        results = notify_all([FakeNotifier("odd", fail_with=RuntimeError("bug"))], "send_error", "x")
        self.assertFalse(results[0].ok)
        self.assertEqual(results[0].error, "RuntimeError: bug")

    def test_channels_run_concurrently(self):
        # Both channels must be in flight at once to pass the barrier
        barrier = threading.Barrier(2)
        a = FakeNotifier("a", barrier=barrier)
        b = FakeNotifier("b", barrier=barrier)
        results = notify_all([a, b], "send_found", PRODUCTS, STORE)
        self.assertTrue(all(r.ok for r in results))


class BuildNotifiersTest(unittest.TestCase):
    def test_nothing_configured(self):
        self.assertEqual(build_notifiers(Config()), [])

    def test_all_channels(self):
        config = Config(
            webhook_url="https://discord.test/hook",
            email_api_key="re_key",
            email_to="me@example.com",
            telegram_bot_token="123:abc",
            telegram_chat_id="42",
        )
        notifiers = build_notifiers(config)
        self.assertEqual([n.name for n in notifiers], ["webhook", "email", "telegram"])

    def test_email_without_recipient_is_skipped(self):
        notifiers = build_notifiers(Config(webhook_url="https://discord.test/hook", email_api_key="re_key"))
        self.assertEqual([n.name for n in notifiers], ["webhook"])


if __name__ == "__main__":
    unittest.main()
