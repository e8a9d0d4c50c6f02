"""Shared fixtures and in-memory collaborators for bookmark-triage tests."""

from __future__ import annotations

import threading

import pytest

from bookmark_triage.config import BookmarksConfig, parse_bookmarks_config
from bookmark_triage.errors import SourceError
from bookmark_triage.models import Item
from bookmark_triage.notifications import Notifier
from bookmark_triage.sources.base import BookmarkSource
from bookmark_triage.summarizer import SummaryResult

POTTERY_CONFIG = """\
categories:
  tools:
    description: "AI agents"
    keywords: [agent]
  pottery:
    description: "Ceramics, pottery business, kiln, glazes"
    keywords: [ceramic, pottery, kiln, glaze, clay]
  other:
    description: "Unclear"
    keywords: []

routing:
  tools:
    action: notify
    notify: false
  pottery:
    action: save_to_vault
    path: "Pottery/Notes"
    notify: false
  other:
    action: notify
    notify: true
"""


class FakeSource(BookmarkSource):
    """In-memory bookmark source keyed by ID."""

    def __init__(self, items: dict[str, str], threads: dict[str, str] | None = None) -> None:
        self.items = dict(items)
        self.threads = threads or {}
        self.removed: list[str] = []
        self.fail_fetch: set[str] = set()
        self.fail_remove: set[str] = set()
        self.fetched: list[str] = []
        self._lock = threading.Lock()

    def list_ids(self, limit: int) -> list[str]:
        return list(self.items)[:limit]

    def fetch_item(self, item_id: str) -> Item:
        with self._lock:
            self.fetched.append(item_id)
        if item_id in self.fail_fetch or item_id not in self.items:
            raise SourceError(f"cannot read {item_id}")
        raw = self.items[item_id]
        return Item(
            id=item_id,
            raw_text=raw,
            text=raw.split("\n", 1)[0],
            thread_text=self.fetch_thread(item_id),
        )

    def fetch_thread(self, item_id: str) -> str:
        return self.threads.get(item_id, "")

    def remove(self, item_id: str) -> None:
        if item_id in self.fail_remove:
            raise SourceError(f"cannot unbookmark {item_id}")
        self.removed.append(item_id)


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.messages: list[str] = []
        self._lock = threading.Lock()

    def send(self, message: str) -> None:
        with self._lock:
            self.messages.append(message)


class FakeSummarizer:
    """Summarizer stand-in returning canned summaries; unknown URLs fail."""

    def __init__(self, summaries: dict[str, str] | None = None) -> None:
        self.summaries = summaries or {}
        self.calls: list[str] = []

    def summarize(self, url: str) -> SummaryResult:
        self.calls.append(url)
        if url in self.summaries:
            return SummaryResult(url=url, text=self.summaries[url])
        return SummaryResult(url=url, error="exit 1")


class FakeModel:
    """Classifier model stand-in returning a fixed raw answer."""

    def __init__(self, answer: str = "", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.prompts: list[str] = []

    def invoke(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def pottery_config() -> BookmarksConfig:
    return parse_bookmarks_config(POTTERY_CONFIG)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


def make_item(
    text: str = "Hello world",
    *,
    item_id: str = "100",
    thread: str = "",
) -> Item:
    return Item(id=item_id, raw_text=text, text=text.split("\n", 1)[0], thread_text=thread)
