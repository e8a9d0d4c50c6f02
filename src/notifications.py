"""Notification delivery and quiet-hours gating."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from rich.console import Console
from rich.text import Text

from bookmark_triage.errors import ConfigError, NotificationError

if TYPE_CHECKING:
    from bookmark_triage.config import Settings

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 10


def parse_clock(value: str) -> int:
    """Parse ``HH:MM`` into minutes after midnight."""
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ConfigError(f"Invalid clock time {value!r}: expected HH:MM")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ConfigError(f"Invalid clock time {value!r}")
    return hour * 60 + minute


class QuietHours:
    """A daily window, possibly wrapping midnight, in which nothing is sent."""

    def __init__(self, start: int, end: int) -> None:
        self.start = start
        self.end = end

    @classmethod
    def parse(cls, start: str, end: str) -> QuietHours:
        return cls(parse_clock(start), parse_clock(end))

    def is_quiet(self, now: datetime) -> bool:
        if self.start == self.end:
            return False
        minutes = now.hour * 60 + now.minute
        if self.start < self.end:
            return self.start <= minutes < self.end
        return minutes >= self.start or minutes < self.end


class Notifier(ABC):
    """Delivers a single text message."""

    @abstractmethod
    def send(self, message: str) -> None:
        """Send ``message``. Raises NotificationError on delivery failure."""


class ConsoleNotifier(Notifier):
    """Prints notifications to the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def send(self, message: str) -> None:
        self._console.print(Text.assemble(("NOTIFY: ", "bold cyan"), message))


def _post(url: str, body: bytes, headers: dict[str, str], label: str) -> None:
    req = urllib.request.Request(url, data=body, headers=headers, method="POST")
    try:
        with urllib.request.urlopen(req, timeout=HTTP_TIMEOUT) as resp:
            resp.read()
    except (urllib.error.URLError, OSError) as exc:
        raise NotificationError(f"{label} notification failed: {exc}") from exc


class NtfyNotifier(Notifier):
    """Publishes to an ntfy topic."""

    def __init__(self, url: str, topic: str) -> None:
        self._endpoint = f"{url.rstrip('/')}/{topic}"

    def send(self, message: str) -> None:
        _post(
            self._endpoint,
            message.encode("utf-8"),
            {"Title": "Bookmarks", "Content-Type": "text/plain; charset=utf-8"},
            "ntfy",
        )


class SlackNotifier(Notifier):
    """Posts to a Slack incoming webhook."""

    def __init__(self, webhook_url: str) -> None:
        self._webhook_url = webhook_url

    def send(self, message: str) -> None:
        _post(
            self._webhook_url,
            json.dumps({"text": message}).encode("utf-8"),
            {"Content-Type": "application/json"},
            "Slack",
        )


class QuietHoursNotifier(Notifier):
    """Drops messages sent during quiet hours. Dropped messages are not queued."""

    def __init__(
        self,
        inner: Notifier,
        quiet_hours: QuietHours,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._inner = inner
        self._quiet_hours = quiet_hours
        self._clock = clock

    def send(self, message: str) -> None:
        if self._quiet_hours.is_quiet(self._clock()):
            logger.info("Quiet hours active; skipping notification")
            return
        self._inner.send(message)


def build_notifier(settings: Settings, console: Console | None = None) -> Notifier:
    """Pick the configured delivery channel and wrap it in quiet hours."""
    inner: Notifier
    if settings.ntfy_url:
        inner = NtfyNotifier(settings.ntfy_url, settings.ntfy_topic)
    elif settings.slack_webhook:
        inner = SlackNotifier(settings.slack_webhook)
    else:
        inner = ConsoleNotifier(console)
    quiet = QuietHours.parse(settings.quiet_start, settings.quiet_end)
    return QuietHoursNotifier(inner, quiet)
