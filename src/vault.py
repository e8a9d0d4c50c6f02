"""Obsidian vault writer for bookmark notes."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from bookmark_triage.errors import VaultError
from bookmark_triage.models import Item

logger = logging.getLogger(__name__)


class Vault:
    """Writes notes under a vault root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def resolve(self, folder: str) -> Path:
        """Absolute folders are used as is; others are relative to the vault root."""
        trimmed = folder.strip()
        if not trimmed:
            raise VaultError("Vault path is required")
        path = Path(trimmed).expanduser()
        if path.is_absolute():
            return path
        return self.root / Path(*trimmed.split("/"))

    def write(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise VaultError(f"Failed to write {path}: {exc}") from exc

    def save_bookmark(
        self,
        item: Item,
        category: str,
        folder: str,
        summaries: list[tuple[str, str]],
        *,
        allow_summaries: bool,
        now: datetime | None = None,
    ) -> Path:
        """Write ``item`` as a dated note and return its path."""
        now = now or datetime.now()
        path = self.resolve(folder) / note_filename(item, now)
        content = format_note(item, category, summaries, allow_summaries=allow_summaries, now=now)
        self.write(path, content)
        logger.debug("Saved bookmark %s to %s", item.id, path)
        return path


def note_filename(item: Item, now: datetime) -> str:
    return f"{now.strftime('%Y-%m-%d')}-{item.id}.md"


def _build_frontmatter(item: Item, category: str, now: datetime) -> str:
    lines = [
        "---",
        f"id: \"{item.id}\"",
        f"saved: {now.isoformat(timespec='seconds')}",
        f"category: {category}",
        "type: bookmark",
        "---",
    ]
    return "\n".join(lines)


def format_note(
    item: Item,
    category: str,
    summaries: list[tuple[str, str]],
    *,
    allow_summaries: bool,
    now: datetime,
) -> str:
    if summaries:
        linked = "".join(f"### {url}\n\n{summary}\n\n" for url, summary in summaries).rstrip()
    elif allow_summaries:
        linked = "(no links or summaries available)"
    else:
        linked = "(summaries skipped)"

    thread = item.thread_text if item.thread_text.strip() else "(no thread)"
    frontmatter = _build_frontmatter(item, category, now)
    return f"""{frontmatter}
# Bookmark

**ID:** {item.id}
**Saved:** {now.isoformat(timespec="seconds")}
**Category:** {category}

## Content

{item.raw_text}

## Thread

{thread}

## Linked Content

{linked}

---
*Auto-saved via bookmark-triage*
"""
