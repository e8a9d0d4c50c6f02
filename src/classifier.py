"""Bookmark classification.

An optional external model is consulted first; its free-form answer is
normalized onto a configured category name. Without a usable answer the
configured keywords decide, and as a last resort the ``other`` category
(or the first configured category) is used.
"""

from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from bookmark_triage.config import BookmarksConfig
from bookmark_triage.errors import ConfigError
from bookmark_triage.llm import LLMError, ModelClient, extract_first_json
from bookmark_triage.models import (
    ClassificationMethod,
    ClassificationResult,
    Item,
    ModelAnswer,
)
from bookmark_triage.prompts import build_classification_prompt

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "other"

_URL_RE = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+")


def extract_urls(text: str) -> list[str]:
    """Unique URLs in order of first appearance."""
    return list(dict.fromkeys(_URL_RE.findall(text)))


def normalize_key(value: str) -> str:
    """Lower-case ``value`` and drop spaces, underscores and hyphens."""
    normalized = value.strip().lower()
    for ch in (" ", "_", "-"):
        normalized = normalized.replace(ch, "")
    return normalized


def normalize_category(value: str, config: BookmarksConfig) -> str:
    """Map a free-form category answer onto a configured name, or ``""``."""
    trimmed = value.strip()
    if not trimmed:
        return ""

    order = config.category_order()
    lower = trimmed.lower()
    for name in order:
        if name.lower() == lower:
            return name

    key = normalize_key(lower)
    for name in order:
        if normalize_key(name) == key:
            return name
    return ""


def find_category_by_key(config: BookmarksConfig, target: str) -> str:
    key = normalize_key(target)
    for name in config.category_order():
        if normalize_key(name) == key:
            return name
    return ""


def fallback_category(config: BookmarksConfig) -> str:
    """The ``other`` category if configured, else the first category."""
    other = find_category_by_key(config, FALLBACK_CATEGORY)
    if other:
        return other
    order = config.category_order()
    return order[0] if order else ""


def match_keywords(item: Item, config: BookmarksConfig) -> str:
    """First category (in configured order) with a keyword in the item text."""
    haystack = item.combined_text.lower()
    for category in config.ordered_categories():
        for keyword in category.keywords:
            if keyword and keyword.lower() in haystack:
                return category.name
    return ""


def parse_model_answer(raw: str) -> ModelAnswer | None:
    """Parse the model's raw output into a ``ModelAnswer``.

    The first balanced JSON object is used when the model wraps its
    answer in commentary. Returns None for anything unparseable.
    """
    text = raw.strip()
    if not text:
        return None
    candidate = extract_first_json(text) or text
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        logger.debug("Model answer is not JSON: %.200s", text)
        return None
    if not isinstance(data, dict):
        logger.debug("Model answer is not a JSON object: %.200s", text)
        return None
    try:
        return ModelAnswer.model_validate(data)
    except ValidationError:
        logger.debug("Model answer has unexpected shape: %.200s", text)
        return None


class Classifier:
    """Decides a category for one bookmark. Never fails for a valid config."""

    def __init__(self, config: BookmarksConfig, model: ModelClient | None = None) -> None:
        self._config = config
        self._model = model

    @property
    def has_model(self) -> bool:
        return self._model is not None

    def classify(self, item: Item) -> ClassificationResult:
        answer = self._ask_model(item)
        if answer is not None:
            category = normalize_category(answer.category, self._config)
            if category:
                return ClassificationResult(
                    category=category,
                    allow_external_content_fetch=(
                        answer.needs_url_content and not item.has_enough_context
                    ),
                    method=ClassificationMethod.MODEL,
                )
            logger.debug(
                "Model category %r for %s matches no configured category",
                answer.category,
                item.id,
            )

        category = match_keywords(item, self._config)
        if category:
            return ClassificationResult(category=category, method=ClassificationMethod.KEYWORD)

        category = fallback_category(self._config)
        if not category:
            raise ConfigError("No categories configured")
        return ClassificationResult(category=category, method=ClassificationMethod.FALLBACK)

    def _ask_model(self, item: Item) -> ModelAnswer | None:
        if self._model is None:
            return None
        url_count = len(extract_urls(item.combined_text))
        prompt = build_classification_prompt(item, self._config, url_count)
        try:
            raw = self._model.invoke(prompt)
        except LLMError as exc:
            logger.debug("Model classification failed for %s: %s", item.id, exc)
            return None
        return parse_model_answer(raw)
