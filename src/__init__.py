"""bookmark-triage: classify bookmarked posts and route them to notes, tasks and notifications."""

__version__ = "0.1.0"
