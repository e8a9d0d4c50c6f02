"""Configuration for bookmark triage.

Two layers:

* ``BookmarksConfig`` -- categories and routing, loaded from a YAML file
  (written with the built-in default when missing).
* ``Settings`` -- paths, external binaries, quiet hours and worker
  settings. Loading order: defaults -> env vars -> CLI flags.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from bookmark_triage.errors import ConfigError
from bookmark_triage.models import CategoryDefinition, RouteDefinition

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_YAML = """\
categories:
  tools:
    description: "AI agents, automation, CLI tools, developer workflow"
    keywords: [agent, automation, "cli tool", terminal, workflow, skill, "claude code", cursor]
  coding:
    description: "Vibe coding, AI-assisted development, code generation"
    keywords: ["vibe coding", codex, "ai-assisted", "ai development", "code generation", "prompt engineering"]
  readLater:
    description: "Articles, videos, long-form content"
    keywords: [article, blog, "http://", "https://", "youtube.com", "youtu.be", "spotify.com", podcast]
  other:
    description: "Unclear or uncategorized"
    keywords: []

routing:
  tools:
    action: save_to_vault
    path: "Tools/Bookmarks"
    notify: true
  coding:
    action: generate_task
    path: "Coding/Bookmarks"
    notify: true
  readLater:
    action: summarize
    notify: true
  other:
    action: notify
    notify: true
"""


# ---------------------------------------------------------------------------
# Categories and routing
# ---------------------------------------------------------------------------


class BookmarksConfig(BaseModel):
    """Ordered categories plus the category -> route table.

    ``categories`` is for lookup by name; ``order`` carries the configured
    order, which is both display order and keyword-match priority.
    """

    categories: dict[str, CategoryDefinition] = Field(default_factory=dict)
    order: list[str] = Field(default_factory=list)
    routing: dict[str, RouteDefinition] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _parse_mappings(cls, data: Any) -> Any:
        """Turn the YAML ``name: {...}`` mappings into named definitions."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        raw_categories = data.get("categories") or {}
        if isinstance(raw_categories, dict) and "order" not in data:
            categories: dict[str, dict[str, Any]] = {}
            order: list[str] = []
            for key, body in raw_categories.items():
                name = str(key).strip()
                if not name:
                    continue
                if isinstance(body, CategoryDefinition):
                    body = body.model_dump()
                if body is not None and not isinstance(body, dict):
                    raise ValueError(f"category {name!r} must be a mapping")
                payload = dict(body or {})
                payload["name"] = name
                categories[name] = payload
                order.append(name)
            data["categories"] = categories
            data["order"] = order
        elif not isinstance(raw_categories, dict):
            raise ValueError("categories must be a mapping")

        raw_routing = data.get("routing") or {}
        if not isinstance(raw_routing, dict):
            raise ValueError("routing must be a mapping")
        routing: dict[str, Any] = {}
        for key, body in raw_routing.items():
            name = str(key).strip()
            if isinstance(body, RouteDefinition):
                routing[name] = body
                continue
            if body is not None and not isinstance(body, dict):
                raise ValueError(f"route {name!r} must be a mapping")
            payload = dict(body or {})
            payload.setdefault("category", name)
            routing[name] = payload
        data["routing"] = routing
        return data

    @field_validator("categories", mode="before")
    @classmethod
    def _strip_blank_keys(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: v for k, v in value.items() if str(k).strip()}
        return value

    def category_order(self) -> list[str]:
        """Configured category names, falling back to sorted names."""
        if self.order:
            return list(self.order)
        return sorted(self.categories)

    def ordered_categories(self) -> list[CategoryDefinition]:
        return [self.categories[n] for n in self.category_order() if n in self.categories]

    def route_for(self, category: str) -> RouteDefinition | None:
        return self.routing.get(category)


def parse_bookmarks_config(text: str) -> BookmarksConfig:
    """Parse YAML text into a validated ``BookmarksConfig``."""
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML config: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError("Config must be a YAML mapping")

    try:
        config = BookmarksConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config: {exc}") from exc

    if not config.categories:
        raise ConfigError("Config must define at least one category")
    if not config.order:
        config.order = sorted(config.categories)
    return config


def ensure_default_config(path: Path) -> None:
    """Write the built-in default config if ``path`` does not exist yet."""
    if path.exists():
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not write default config to {path}: {exc}") from exc
    logger.info("Wrote default config to %s", path)


def load_bookmarks_config(path: str | Path) -> BookmarksConfig:
    """Load categories and routing from ``path``, creating the default first."""
    if not str(path).strip():
        raise ConfigError("Config path is required")
    config_path = Path(path).expanduser()
    ensure_default_config(config_path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config {config_path}: {exc}") from exc
    return parse_bookmarks_config(text)


# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------

_HOME_DIR = Path.home() / ".bookmark-triage"


class Settings(BaseModel):
    """Paths, external binaries and run options."""

    config_path: str = str(_HOME_DIR / "config.yaml")
    state_path: str = str(_HOME_DIR / "state.json")
    vault_dir: str = str(Path.home() / "Obsidian")
    prompts_dir: str = str(_HOME_DIR / "prompts")

    bird_bin: str = "bird"
    summarize_bin: str = "summarize"

    classifier_backend: str = "gemini"
    classifier_bin: str = "gemini"
    classifier_model: str | None = None
    classifier_timeout: int = 15
    summarize_timeout: int = 30

    quiet_start: str = "23:00"
    quiet_end: str = "08:00"

    limit: int = 50
    parallel: bool = True
    workers: int = 5

    ntfy_url: str = ""
    ntfy_topic: str = "bookmarks"
    slack_webhook: str = ""

    @field_validator("config_path", "state_path", "vault_dir", "prompts_dir")
    @classmethod
    def _expand_user(cls, value: str) -> str:
        return str(Path(value).expanduser()) if value else value

    @field_validator("classifier_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("gemini", "claude", "anthropic", "none"):
            raise ValueError(f"Unknown classifier backend: {value!r}")
        return value


_ENV_MAPPING: dict[str, str] = {
    "BOOKMARK_TRIAGE_CONFIG": "config_path",
    "BOOKMARK_TRIAGE_STATE": "state_path",
    "BOOKMARK_TRIAGE_VAULT": "vault_dir",
    "BOOKMARK_TRIAGE_PROMPTS": "prompts_dir",
    "BIRD_BIN": "bird_bin",
    "SUMMARIZE_BIN": "summarize_bin",
    "GEMINI_BIN": "classifier_bin",
    "BOOKMARK_TRIAGE_CLASSIFIER": "classifier_backend",
    "BOOKMARK_TRIAGE_MODEL": "classifier_model",
    "BOOKMARK_TRIAGE_QUIET_START": "quiet_start",
    "BOOKMARK_TRIAGE_QUIET_END": "quiet_end",
    "BOOKMARK_TRIAGE_NTFY_URL": "ntfy_url",
    "BOOKMARK_TRIAGE_NTFY_TOPIC": "ntfy_topic",
    "BOOKMARK_TRIAGE_SLACK_WEBHOOK": "slack_webhook",
}

_ENV_INT_MAPPING: dict[str, str] = {
    "BOOKMARK_TRIAGE_LIMIT": "limit",
    "BOOKMARK_TRIAGE_WORKERS": "workers",
}


def load_settings(**cli_kwargs: object) -> Settings:
    """Build settings from defaults, environment variables and CLI flags."""
    settings = _apply_env_vars(Settings())
    return merge_cli_overrides(settings, **cli_kwargs)


def merge_cli_overrides(settings: Settings, **cli_kwargs: object) -> Settings:
    """Overlay explicitly-set CLI flags onto the settings.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None). Unknown keys are ignored.
    """
    data = settings.model_dump()
    for key, value in cli_kwargs.items():
        if value is None or key not in data:
            continue
        data[key] = value
    return _validate_settings(data)


def _apply_env_vars(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    data = settings.model_dump()

    for env_var, field in _ENV_MAPPING.items():
        value = os.environ.get(env_var)
        if value:
            data[field] = value

    for env_var, field in _ENV_INT_MAPPING.items():
        raw = os.environ.get(env_var)
        if not raw:
            continue
        try:
            data[field] = int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer %s=%r", env_var, raw)

    parallel_raw = os.environ.get("BOOKMARK_TRIAGE_PARALLEL")
    if parallel_raw:
        data["parallel"] = parallel_raw.lower() in ("true", "1", "yes")

    return _validate_settings(data)


def _validate_settings(data: dict[str, Any]) -> Settings:
    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
