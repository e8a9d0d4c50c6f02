"""Prompt builders for the classifier model and generated tasks."""

from __future__ import annotations

from bookmark_triage.config import BookmarksConfig
from bookmark_triage.models import Item


def _or_placeholder(value: str, placeholder: str) -> str:
    return value if value.strip() else placeholder


def build_classification_prompt(item: Item, config: BookmarksConfig, url_count: int) -> str:
    """Build the single-item categorization prompt.

    Lists every category with its description in configured order,
    followed by the bookmark, its thread and the number of linked URLs.
    """
    order = config.category_order()
    lines = ["Categorize this bookmark into ONE category:", ""]
    for category in config.ordered_categories():
        description = category.description.strip() or "No description provided"
        lines.append(f"- {category.name}: {description}")

    choices = "|".join(order)
    return "\n".join(lines) + f"""

Bookmark: {_or_placeholder(item.text, "(no bookmark text)")}
Thread: {_or_placeholder(item.thread_text, "(no thread)")}
URLs: {url_count}

Return JSON: {{"category": "{choices}", "needsUrlContent": true/false}}
"""


def build_task_prompt(
    item: Item,
    summaries: list[tuple[str, str]],
    *,
    url_count: int,
    allow_summaries: bool,
) -> str:
    """Build the implementation-task prompt written for ``generate_task`` routes."""
    if summaries:
        linked = "".join(f"Link: {url}\n{summary}\n\n" for url, summary in summaries)
    elif not allow_summaries and url_count:
        linked = "Summaries skipped"
    else:
        linked = "No links available"

    return f"""# Implementation Task from Bookmark

## Context
{item.raw_text}

## Thread
{_or_placeholder(item.thread_text, "(no thread)")}

## Linked Resources
{linked}

## Your Task
Implement this based on the context above:
1. Read and understand the full context
2. Implement the solution
3. Test it works
4. Provide usage examples

Start by asking any clarifying questions, then proceed with implementation.
"""
