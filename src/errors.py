"""Error types and per-run error reporting."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from pydantic import BaseModel, Field, PrivateAttr


class BookmarkTriageError(Exception):
    """Base error for the bookmark pipeline."""


class ConfigError(BookmarkTriageError):
    """Invalid or incomplete configuration. Fatal before processing starts."""


class SourceError(BookmarkTriageError):
    """The bookmark source failed to list, read, or remove a bookmark."""


class RouteError(BookmarkTriageError):
    """A route action failed in a way that must fail the item."""


class VaultError(RouteError):
    """Writing a note or task prompt to disk failed."""


class StateError(BookmarkTriageError):
    """Loading or saving the processed-ID ledger failed."""


class NotificationError(BookmarkTriageError):
    """A notification could not be delivered."""


class ItemError(BaseModel):
    """A single per-item failure recorded during a run."""

    item_id: str
    message: str
    error_type: str = "error"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class RunReport(BaseModel):
    """Collects per-item failures across workers."""

    errors: list[ItemError] = Field(default_factory=list)
    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def add_error(self, item_id: str, message: str, *, error_type: str = "error") -> None:
        with self._lock:
            self.errors.append(
                ItemError(item_id=item_id, message=message, error_type=error_type)
            )

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def failed_ids(self) -> list[str]:
        return [e.item_id for e in self.errors]
