"""Bookmark source backed by the ``bird`` command-line client."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess

from bookmark_triage.errors import ConfigError, SourceError
from bookmark_triage.models import Item
from bookmark_triage.sources.base import BookmarkSource

logger = logging.getLogger(__name__)

LIST_TIMEOUT = 20
READ_TIMEOUT = 20
REMOVE_TIMEOUT = 15

_STATUS_ID_RE = re.compile(r"status/(\d+)")


def parse_bookmark_ids(output: str) -> list[str]:
    """Extract unique status IDs from ``bird bookmarks`` output, in order."""
    ids: list[str] = []
    seen: set[str] = set()
    for line in output.splitlines():
        match = _STATUS_ID_RE.search(line)
        if not match:
            continue
        item_id = match.group(1)
        if item_id not in seen:
            seen.add(item_id)
            ids.append(item_id)
    return ids


class BirdSource(BookmarkSource):
    """Runs ``bird`` subcommands, one subprocess per call."""

    def __init__(self, binary: str = "bird") -> None:
        self.binary = binary

    def _run(self, args: list[str], *, timeout: int) -> subprocess.CompletedProcess[str]:
        cmd = [self.binary, *args]
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as exc:
            raise SourceError(f"{self.binary} not found on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise SourceError(f"bird {args[0]} timed out after {timeout}s") from exc
        except OSError as exc:
            raise SourceError(f"bird {args[0]} failed to start: {exc}") from exc

    def list_ids(self, limit: int) -> list[str]:
        result = self._run(["bookmarks", "-n", str(limit)], timeout=LIST_TIMEOUT)
        if result.returncode != 0:
            raise SourceError(
                f"bird bookmarks failed (exit {result.returncode}): "
                f"{(result.stderr or '').strip()[:300]}"
            )
        return parse_bookmark_ids(result.stdout or "")

    def fetch_item(self, item_id: str) -> Item:
        result = self._run(["read", item_id], timeout=READ_TIMEOUT)
        if result.returncode != 0:
            raise SourceError(
                f"bird read failed for {item_id} (exit {result.returncode}): "
                f"{(result.stderr or '').strip()[:300]}"
            )
        raw = (result.stdout or "").strip()
        if not raw:
            raise SourceError(f"bird read returned empty output for {item_id}")

        return Item(
            id=item_id,
            raw_text=raw,
            text=raw.split("\n", 1)[0].strip(),
            thread_text=self.fetch_thread(item_id),
        )

    def fetch_thread(self, item_id: str) -> str:
        try:
            result = self._run(["thread", item_id], timeout=READ_TIMEOUT)
        except SourceError as exc:
            logger.debug("Thread fetch failed for %s: %s", item_id, exc)
            return ""
        if result.returncode != 0:
            logger.debug("bird thread exited %d for %s", result.returncode, item_id)
            return ""
        return (result.stdout or "").strip()

    def remove(self, item_id: str) -> None:
        result = self._run(["unbookmark", item_id], timeout=REMOVE_TIMEOUT)
        if result.returncode != 0:
            output = ((result.stdout or "") + (result.stderr or "")).strip()
            raise SourceError(
                f"bird unbookmark failed for {item_id} (exit {result.returncode}): {output[:300]}"
            )


def create_bird_source(binary: str) -> BirdSource:
    """Resolve ``binary`` on PATH. A missing bird binary is a configuration error."""
    resolved = shutil.which(binary) if binary else None
    if resolved is None:
        raise ConfigError(f"bird binary not found: {binary!r}")
    return BirdSource(resolved)
