"""Pipeline modules -- orchestration layer for bookmark triage.

  bookmarks -- pending bookmark IDs -> classify -> route -> state
"""

from bookmark_triage.pipeline.bookmarks import (
    BookmarkPipeline,
    build_pipeline,
    clamp_workers,
    format_category_counts,
    pending_ids,
)

__all__ = [
    "BookmarkPipeline",
    "build_pipeline",
    "clamp_workers",
    "format_category_counts",
    "pending_ids",
]
