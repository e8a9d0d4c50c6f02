"""Bookmark sources."""

from __future__ import annotations

from bookmark_triage.sources.base import BookmarkSource
from bookmark_triage.sources.bird import BirdSource, create_bird_source

__all__ = ["BirdSource", "BookmarkSource", "create_bird_source"]
