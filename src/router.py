"""Category routing: maps a classified bookmark to its side effect.

Only vault/task-prompt write failures and unbookmark failures fail a
route. Notification and summarization problems are logged and skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from bookmark_triage.classifier import FALLBACK_CATEGORY, normalize_key
from bookmark_triage.config import BookmarksConfig
from bookmark_triage.errors import NotificationError, RouteError, SourceError
from bookmark_triage.models import ActionKind, Item, RouteDefinition
from bookmark_triage.notifications import Notifier
from bookmark_triage.prompts import build_task_prompt
from bookmark_triage.sources.base import BookmarkSource
from bookmark_triage.summarizer import Summarizer
from bookmark_triage.vault import Vault

logger = logging.getLogger(__name__)

NOTIFY_PREVIEW = 300
SHORT_PREVIEW = 200
TASK_PREVIEW = 400
MAX_MESSAGE_SUMMARIES = 3

TASK_NOTE_LABEL = "task"
RAZOR_NOTE_LABEL = "razor"
_RAZOR_TASK_KEYWORDS = ("skill", "cli", "tool", "workflow")


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class Router:
    """Executes the action configured for a category."""

    def __init__(
        self,
        config: BookmarksConfig,
        *,
        source: BookmarkSource,
        vault: Vault,
        notifier: Notifier,
        prompts_dir: str | Path,
        summarizer: Summarizer | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._config = config
        self._source = source
        self._vault = vault
        self._notifier = notifier
        self._prompts_dir = Path(prompts_dir).expanduser()
        self._summarizer = summarizer
        self._clock = clock

    def resolve_route(self, category: str) -> RouteDefinition:
        route = self._config.route_for(category)
        if route is None:
            logger.warning("No routing configured for category %r; defaulting to notify", category)
            return RouteDefinition.default(category)
        return route

    def route(
        self,
        item: Item,
        category: str,
        route: RouteDefinition,
        urls: list[str],
        allow_external_content_fetch: bool,
    ) -> None:
        """Run ``route`` for ``item``. Raises RouteError on hard failures."""
        kind = route.kind
        if kind is None:
            logger.warning(
                "Unknown routing action %r for category %r; defaulting to notify",
                route.action,
                category,
            )
            kind = ActionKind.NOTIFY

        summaries = _LazySummaries(self._summarizer, urls, allow_external_content_fetch)

        if kind is ActionKind.NOTIFY:
            if route.notify:
                self._notify(self._notify_message(category, item))
        elif kind is ActionKind.SUMMARIZE:
            if route.notify:
                self._notify(self._summary_message(category, item, summaries))
        elif kind is ActionKind.SAVE_TO_VAULT:
            self._save_note(item, category, route, summaries)
            if route.notify:
                self._notify(
                    f"Saved bookmark ({category}) to vault. "
                    f"Bookmark: {truncate(item.text, SHORT_PREVIEW)}"
                )
        elif kind is ActionKind.GENERATE_TASK:
            self._save_note(item, TASK_NOTE_LABEL, route, summaries)
            prompt_path, prompt = self._write_task_prompt(item, urls, summaries)
            if route.notify:
                self._notify(
                    f"Task ready. Prompt saved to {prompt_path}. "
                    f"Preview: {truncate(prompt, TASK_PREVIEW)}"
                )
        elif kind is ActionKind.RAZOR_TASK:
            self._save_note(item, RAZOR_NOTE_LABEL, route, summaries)
            if route.notify:
                self._notify(self._razor_message(item))
        elif kind is ActionKind.UNBOOKMARK:
            try:
                self._source.remove(item.id)
            except SourceError as exc:
                raise RouteError(str(exc)) from exc
            if route.notify:
                self._notify(
                    f"Removed bookmark ({category}): {truncate(item.text, SHORT_PREVIEW)}"
                )

    # -- actions -----------------------------------------------------------

    def _save_note(
        self,
        item: Item,
        category: str,
        route: RouteDefinition,
        summaries: _LazySummaries,
    ) -> Path:
        return self._vault.save_bookmark(
            item,
            category,
            route.path,
            summaries.get(),
            allow_summaries=summaries.allowed,
            now=self._clock(),
        )

    def _write_task_prompt(
        self, item: Item, urls: list[str], summaries: _LazySummaries
    ) -> tuple[Path, str]:
        prompt = build_task_prompt(
            item,
            summaries.get(),
            url_count=len(urls),
            allow_summaries=summaries.allowed,
        )
        path = self._prompts_dir / f"{item.id}.txt"
        self._vault.write(path, prompt)
        return path, prompt

    def _notify(self, message: str) -> None:
        try:
            self._notifier.send(message)
        except NotificationError as exc:
            logger.warning("Notification failed: %s", exc)

    # -- messages ----------------------------------------------------------

    def _notify_message(self, category: str, item: Item) -> str:
        if normalize_key(category) == FALLBACK_CATEGORY:
            return (
                "Unclear bookmark. Where should this go? "
                f"Bookmark: {truncate(item.text, NOTIFY_PREVIEW)}"
            )
        return f"Bookmark categorized as {category}. Bookmark: {truncate(item.text, NOTIFY_PREVIEW)}"

    def _razor_message(self, item: Item) -> str:
        preview = truncate(item.text, SHORT_PREVIEW)
        text = item.combined_text.lower()
        if any(keyword in text for keyword in _RAZOR_TASK_KEYWORDS):
            return f"Razor task queued for implementation. Bookmark: {preview}"
        return f"Razor tip saved. Bookmark: {preview}"

    def _summary_message(self, category: str, item: Item, summaries: _LazySummaries) -> str:
        if normalize_key(category) == "readlater":
            prefix = "Read later"
        else:
            prefix = f"Summary ({category})"
        message = f"{prefix}: {truncate(item.text, SHORT_PREVIEW)}"

        parts = [
            f"{url}\n{truncate(summary, SHORT_PREVIEW)}"
            for url, summary in summaries.get(limit=MAX_MESSAGE_SUMMARIES)
        ]
        if parts:
            message += "\n\nSummaries:\n" + "\n\n".join(parts)
        return message


class _LazySummaries:
    """URL summaries for one item, fetched at most once and only when allowed."""

    def __init__(self, summarizer: Summarizer | None, urls: list[str], allowed: bool) -> None:
        self._summarizer = summarizer
        self._urls = urls
        self.allowed = allowed
        self._results: list[tuple[str, str]] = []
        self._done: set[str] = set()

    def get(self, limit: int | None = None) -> list[tuple[str, str]]:
        if not self.allowed or self._summarizer is None:
            return []
        for url in self._urls:
            if limit is not None and len(self._results) >= limit:
                break
            if url in self._done:
                continue
            self._done.add(url)
            result = self._summarizer.summarize(url)
            if result.ok:
                self._results.append((url, result.text))
            elif result.error:
                logger.debug("No summary for %s: %s", url, result.error)
        if limit is not None:
            return self._results[:limit]
        return list(self._results)
