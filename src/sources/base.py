"""Base class for bookmark sources."""

from __future__ import annotations

from abc import ABC, abstractmethod

from bookmark_triage.models import Item


class BookmarkSource(ABC):
    """Lists, reads and removes bookmarks on the source platform."""

    @abstractmethod
    def list_ids(self, limit: int) -> list[str]:
        """Return up to ``limit`` bookmarked item IDs, newest first, without duplicates."""

    @abstractmethod
    def fetch_item(self, item_id: str) -> Item:
        """Read one bookmark, including its thread text when available.

        Raises:
            SourceError: If the item cannot be read.
        """

    @abstractmethod
    def fetch_thread(self, item_id: str) -> str:
        """Return the thread text for ``item_id``, or ``""`` on any failure."""

    @abstractmethod
    def remove(self, item_id: str) -> None:
        """Remove the bookmark.

        Raises:
            SourceError: If the bookmark could not be removed.
        """
