"""Pure data models for the bookmark pipeline.

All Pydantic models and enums live here. No I/O, no business logic,
no subprocess calls. Services import from this module; this module
only imports from stdlib and third-party packages.
"""

from __future__ import annotations

from enum import StrEnum

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Bookmarks whose own text or thread reaches this many characters carry
# enough context that linked content is not fetched.
CONTEXT_THRESHOLD = 200


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class Item(BaseModel):
    """A single bookmarked post, as read from the bookmark source."""

    model_config = ConfigDict(frozen=True)

    id: str
    raw_text: str
    text: str = ""
    thread_text: str = ""

    @property
    def combined_text(self) -> str:
        return f"{self.raw_text}\n{self.thread_text}"

    @property
    def has_enough_context(self) -> bool:
        return (
            len(self.text.strip()) >= CONTEXT_THRESHOLD
            or len(self.thread_text.strip()) >= CONTEXT_THRESHOLD
        )


# ---------------------------------------------------------------------------
# Categories and routing
# ---------------------------------------------------------------------------


class CategoryDefinition(BaseModel):
    """A named category with its description and match keywords."""

    name: str
    description: str = ""
    keywords: list[str] = Field(default_factory=list)


class ActionKind(StrEnum):
    """Side effects a route can trigger."""

    NOTIFY = "notify"
    SAVE_TO_VAULT = "save_to_vault"
    GENERATE_TASK = "generate_task"
    UNBOOKMARK = "unbookmark"
    SUMMARIZE = "summarize"
    RAZOR_TASK = "razor_task"


_ACTION_ALIASES: dict[str, ActionKind] = {
    "save_obsidian": ActionKind.SAVE_TO_VAULT,
    "codex_prompt": ActionKind.GENERATE_TASK,
}


class RouteDefinition(BaseModel):
    """Routing entry for one category."""

    category: str = ""
    action: str = "notify"
    path: str = ""
    notify: bool = False

    @property
    def kind(self) -> ActionKind | None:
        """Parsed action, or ``None`` when the action string is unknown."""
        action = self.action.strip().lower()
        if not action:
            return ActionKind.NOTIFY
        if action in _ACTION_ALIASES:
            return _ACTION_ALIASES[action]
        try:
            return ActionKind(action)
        except ValueError:
            return None

    @classmethod
    def default(cls, category: str = "") -> RouteDefinition:
        return cls(category=category, action=ActionKind.NOTIFY.value, notify=True)


# ---------------------------------------------------------------------------
# Persisted state
# ---------------------------------------------------------------------------


class State(BaseModel):
    """Processed-ID ledger and per-category counters."""

    model_config = ConfigDict(populate_by_name=True)

    last_processed: str = Field(default="", alias="lastProcessed")
    processed_ids: list[str] = Field(default_factory=list, alias="processedIds")
    categories: dict[str, int] = Field(default_factory=dict)

    @field_validator("processed_ids", mode="before")
    @classmethod
    def _null_ids(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("categories", mode="before")
    @classmethod
    def _null_categories(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("last_processed", mode="before")
    @classmethod
    def _null_timestamp(cls, value: Any) -> Any:
        return "" if value is None else value

    def ensure_category(self, name: str) -> None:
        self.categories.setdefault(name, 0)

    def mark_processed(self, item_id: str, category: str) -> None:
        """Record a processed item. The ID is appended at most once."""
        if item_id not in self.processed_ids:
            self.processed_ids.append(item_id)
        self.categories[category] = self.categories.get(category, 0) + 1


# ---------------------------------------------------------------------------
# Per-item results
# ---------------------------------------------------------------------------


class ClassificationMethod(StrEnum):
    MODEL = "model"
    KEYWORD = "keyword"
    FALLBACK = "fallback"


class ClassificationResult(BaseModel):
    """Outcome of classifying one item."""

    category: str
    allow_external_content_fetch: bool = False
    method: ClassificationMethod = ClassificationMethod.FALLBACK


class ModelAnswer(BaseModel):
    """JSON answer expected from the external classifier model."""

    model_config = ConfigDict(populate_by_name=True)

    category: str = ""
    needs_url_content: bool = Field(default=False, alias="needsUrlContent")


class ProcessResult(BaseModel):
    """Outcome of processing one bookmark end to end."""

    item_id: str
    category: str = ""
    processed: bool = False
