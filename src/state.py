"""Processed-bookmark ledger: load, save and thread-safe updates."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from bookmark_triage.errors import StateError
from bookmark_triage.models import State

logger = logging.getLogger(__name__)


def load_state(path: str | Path, categories: Iterable[str]) -> State:
    """Load state from ``path``; a missing file yields a fresh state.

    Every category in ``categories`` gets a counter, even when the file
    was written before that category existed.
    """
    state_path = Path(path).expanduser()
    if state_path.exists():
        try:
            data = json.loads(state_path.read_text(encoding="utf-8"))
            state = State.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise StateError(f"Could not load state from {state_path}: {exc}") from exc
    else:
        logger.debug("No state at %s, starting fresh", state_path)
        state = State()

    # Older files may contain duplicates; keep the first occurrence.
    state.processed_ids = list(dict.fromkeys(state.processed_ids))
    for name in categories:
        state.ensure_category(name)
    return state


def save_state(path: str | Path, state: State) -> None:
    """Write ``state`` to ``path`` in one write, creating the directory if needed."""
    state_path = Path(path).expanduser()
    try:
        state_path.parent.mkdir(parents=True, exist_ok=True)
        state_path.write_text(state.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    except OSError as exc:
        raise StateError(f"Could not save state to {state_path}: {exc}") from exc


class StateStore:
    """Serializes updates to a shared ``State`` across worker threads."""

    def __init__(self, state: State) -> None:
        self._state = state
        self._lock = threading.Lock()
        self.processed_count = 0

    @property
    def state(self) -> State:
        return self._state

    def record(self, item_id: str, category: str) -> None:
        """Mark ``item_id`` processed under ``category`` and count it for this run."""
        with self._lock:
            self._state.mark_processed(item_id, category)
            self.processed_count += 1
