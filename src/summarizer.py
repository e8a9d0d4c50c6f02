"""Linked-content summarization via an external ``summarize`` CLI."""

from __future__ import annotations

import logging
import shutil
import subprocess

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class SummaryResult(BaseModel):
    """Result of summarizing one URL.

    ``text`` empty with ``error`` empty means the tool produced nothing;
    a non-empty ``error`` means the call itself failed. Callers treat both
    as "no summary".
    """

    url: str
    text: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.text)


class Summarizer:
    """Summarizes URLs, one subprocess per URL. Never raises."""

    def __init__(self, binary: str = "summarize", *, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.binary = binary
        self.timeout = timeout

    def summarize(self, url: str) -> SummaryResult:
        try:
            result = subprocess.run(
                [self.binary, url],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            return SummaryResult(url=url, error=f"{self.binary} not found on PATH")
        except subprocess.TimeoutExpired:
            return SummaryResult(url=url, error=f"timed out after {self.timeout}s")
        except OSError as exc:
            return SummaryResult(url=url, error=str(exc))

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()[:200]
            logger.debug("Summarize failed for %s (exit %d): %s", url, result.returncode, stderr)
            return SummaryResult(url=url, error=f"exit {result.returncode}")
        return SummaryResult(url=url, text=(result.stdout or "").strip())


def create_summarizer(binary: str, timeout: int = DEFAULT_TIMEOUT) -> Summarizer | None:
    """Return a summarizer if ``binary`` is on PATH, else None."""
    resolved = shutil.which(binary) if binary else None
    if resolved is None:
        logger.warning("%s not found on PATH; link summaries disabled", binary or "summarize")
        return None
    return Summarizer(resolved, timeout=timeout)
