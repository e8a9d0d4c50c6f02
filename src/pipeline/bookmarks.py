"""Bookmark pipeline -- pending bookmarks -> classification -> routing -> state."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from bookmark_triage.classifier import Classifier, extract_urls
from bookmark_triage.errors import ConfigError, RunReport
from bookmark_triage.models import ProcessResult, State
from bookmark_triage.router import Router
from bookmark_triage.state import StateStore, load_state, save_state

if TYPE_CHECKING:
    from bookmark_triage.config import BookmarksConfig, Settings
    from bookmark_triage.sources.base import BookmarkSource

logger = logging.getLogger(__name__)


def pending_ids(ids: list[str], state: State, *, force: bool = False) -> list[str]:
    """IDs still to process, in source order. ``force`` keeps processed IDs."""
    if force:
        return list(ids)
    processed = set(state.processed_ids)
    return [item_id for item_id in ids if item_id not in processed]


def clamp_workers(workers: int, pending: int) -> int:
    return max(1, min(workers, pending))


def format_category_counts(order: list[str], counts: dict[str, int]) -> str:
    return " ".join(f"{name}={counts.get(name, 0)}" for name in order)


class BookmarkPipeline:
    """Processes pending bookmarks, sequentially or with a bounded worker pool."""

    def __init__(
        self,
        *,
        config: BookmarksConfig,
        source: BookmarkSource,
        classifier: Classifier,
        router: Router,
        state_path: str | Path,
        limit: int = 50,
        parallel: bool = True,
        workers: int = 5,
    ) -> None:
        self.config = config
        self.source = source
        self.classifier = classifier
        self.router = router
        self.state_path = Path(state_path).expanduser()
        self.limit = limit
        self.parallel = parallel
        self.workers = workers
        self.report = RunReport()

    def load_state(self) -> State:
        return load_state(self.state_path, self.config.category_order())

    def process_item(self, item_id: str) -> ProcessResult:
        """Fetch, classify and route one bookmark. Raises on any failure."""
        item = self.source.fetch_item(item_id)
        result = self.classifier.classify(item)
        logger.debug("Classified %s as %s (%s)", item_id, result.category, result.method)

        route = self.router.resolve_route(result.category)
        urls = extract_urls(item.combined_text)
        self.router.route(
            item, result.category, route, urls, result.allow_external_content_fetch
        )
        return ProcessResult(item_id=item_id, category=result.category, processed=True)

    def _attempt(self, item_id: str, store: StateStore) -> None:
        try:
            result = self.process_item(item_id)
        except Exception as exc:
            logger.error("Failed to process %s: %s", item_id, exc)
            self.report.add_error(item_id, str(exc), error_type=type(exc).__name__)
            return
        if result.processed:
            store.record(item_id, result.category)

    def process_sequential(self, ids: list[str], store: StateStore) -> int:
        for item_id in ids:
            self._attempt(item_id, store)
        return store.processed_count

    def process_parallel(self, ids: list[str], store: StateStore) -> int:
        if not ids:
            return 0
        workers = clamp_workers(self.workers, len(ids))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bookmark") as pool:
            futures = [pool.submit(self._attempt, item_id, store) for item_id in ids]
            for future in futures:
                future.result()
        return store.processed_count

    def run(self, *, force: bool = False, state: State | None = None) -> int:
        """Process new bookmarks and persist state once. Returns the processed count."""
        if not self.config.category_order():
            raise ConfigError("No categories configured")

        if state is None:
            state = self.load_state()
        ids = self.source.list_ids(self.limit)
        pending = pending_ids(ids, state, force=force)
        logger.info("%d bookmarks fetched, %d pending", len(ids), len(pending))

        store = StateStore(state)
        if self.parallel:
            processed = self.process_parallel(pending, store)
        else:
            processed = self.process_sequential(pending, store)

        if processed > 0:
            state.last_processed = datetime.now(tz=UTC).isoformat(timespec="seconds")
            save_state(self.state_path, state)
        return processed


def build_pipeline(settings: Settings, config: BookmarksConfig) -> BookmarkPipeline:
    """Wire collaborators from settings.

    A missing bird binary or invalid quiet hours is fatal; a missing
    classifier model or summarizer only degrades the run.
    """
    from bookmark_triage.llm import create_model_client
    from bookmark_triage.notifications import build_notifier
    from bookmark_triage.sources import create_bird_source
    from bookmark_triage.summarizer import create_summarizer
    from bookmark_triage.vault import Vault

    notifier = build_notifier(settings)
    source = create_bird_source(settings.bird_bin)
    classifier = Classifier(config, create_model_client(settings))
    router = Router(
        config,
        source=source,
        vault=Vault(settings.vault_dir),
        notifier=notifier,
        prompts_dir=settings.prompts_dir,
        summarizer=create_summarizer(settings.summarize_bin, settings.summarize_timeout),
    )
    return BookmarkPipeline(
        config=config,
        source=source,
        classifier=classifier,
        router=router,
        state_path=settings.state_path,
        limit=settings.limit,
        parallel=settings.parallel,
        workers=settings.workers,
    )
