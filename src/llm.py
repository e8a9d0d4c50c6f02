"""Classifier-model calling utilities.

Centralizes all external-model invocations with three backends:
1. ``gemini`` CLI (prompt passed as an argument)
2. ``claude -p`` CLI (prompt on stdin)
3. Anthropic API (uses ANTHROPIC_API_KEY)

Every call is a single attempt bounded by a timeout.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bookmark_triage.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15

_MODEL_MAP: dict[str, str] = {
    "sonnet": "claude-sonnet-4-6",
    "haiku": "claude-haiku-4-5-20251001",
}

_DEFAULT_API_MODEL = "claude-haiku-4-5-20251001"


class LLMError(Exception):
    """Base error for model calls."""


def _run_cli(
    cmd: list[str],
    *,
    stdin: str | None = None,
    timeout: int,
    label: str,
) -> str:
    # Filter CLAUDECODE env var to prevent recursive Claude invocations
    env = {k: v for k, v in os.environ.items() if k != "CLAUDECODE"}

    logger.debug("Calling %s (%s)", cmd[0], label)
    try:
        result = subprocess.run(
            cmd,
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
    except FileNotFoundError as exc:
        raise LLMError(f"{cmd[0]} not found on PATH (label={label})") from exc
    except subprocess.TimeoutExpired as exc:
        raise LLMError(f"{cmd[0]} timed out after {timeout}s (label={label})") from exc
    except OSError as exc:
        raise LLMError(f"{cmd[0]} failed to start (label={label}): {exc}") from exc

    if result.returncode != 0:
        raise LLMError(
            f"{cmd[0]} failed (exit {result.returncode}, label={label}): "
            f"{(result.stderr or '')[:500]}"
        )

    output = (result.stdout or "").strip()
    if not output:
        raise LLMError(f"{cmd[0]} returned empty output (label={label})")
    return output


def call_gemini(
    prompt: str,
    *,
    binary: str = "gemini",
    model: str | None = None,
    timeout: int = DEFAULT_TIMEOUT,
    label: str = "classify",
) -> str:
    """Call a prompt-as-argument CLI such as ``gemini``."""
    cmd = [binary]
    if model:
        cmd.extend(["--model", model])
    cmd.append(prompt)
    return _run_cli(cmd, timeout=timeout, label=label)


def call_claude(
    prompt: str,
    *,
    binary: str = "claude",
    model: str | None = None,
    timeout: int = DEFAULT_TIMEOUT,
    label: str = "classify",
) -> str:
    """Call the Claude CLI in print mode with the prompt on stdin."""
    cmd = [binary, "-p"]
    if model:
        cmd.extend(["--model", model])
    return _run_cli(cmd, stdin=prompt, timeout=timeout, label=label)


def call_anthropic_api(
    prompt: str,
    *,
    model: str | None = None,
    timeout: int = DEFAULT_TIMEOUT,
    label: str = "classify",
) -> str:
    """Call Claude via the Anthropic API."""
    import anthropic

    api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()
    if not api_key:
        raise LLMError("ANTHROPIC_API_KEY not set")

    resolved_model = _MODEL_MAP.get(model, model) if model else _DEFAULT_API_MODEL
    logger.debug("Calling Anthropic API model=%s (%s)", resolved_model, label)

    client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
    try:
        response = client.messages.create(
            model=resolved_model,
            max_tokens=256,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIError as exc:
        raise LLMError(f"Anthropic API call failed (label={label}): {exc}") from exc

    text = "".join(block.text for block in response.content if block.type == "text").strip()
    if not text:
        raise LLMError(f"Anthropic API returned empty response (label={label})")
    return text


class ModelClient:
    """External classifier model behind a single ``invoke`` call."""

    def __init__(
        self,
        backend: str,
        *,
        binary: str = "",
        model: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        self.backend = backend
        self.binary = binary
        self.model = model
        self.timeout = timeout

    def invoke(self, prompt: str) -> str:
        """Return the raw model answer. Raises LLMError on any failure."""
        if self.backend == "gemini":
            return call_gemini(
                prompt, binary=self.binary or "gemini", model=self.model, timeout=self.timeout
            )
        if self.backend == "claude":
            return call_claude(
                prompt, binary=self.binary or "claude", model=self.model, timeout=self.timeout
            )
        if self.backend == "anthropic":
            return call_anthropic_api(prompt, model=self.model, timeout=self.timeout)
        raise LLMError(f"Unsupported classifier backend: {self.backend!r}")


def create_model_client(settings: Settings) -> ModelClient | None:
    """Build the classifier model from settings, or None when unavailable."""
    backend = settings.classifier_backend
    if backend == "none":
        return None

    if backend == "anthropic":
        if not os.environ.get("ANTHROPIC_API_KEY", "").strip():
            logger.warning("ANTHROPIC_API_KEY not set; using keyword classification only")
            return None
        return ModelClient(
            backend, model=settings.classifier_model, timeout=settings.classifier_timeout
        )

    default_binary = "claude" if backend == "claude" else "gemini"
    binary = settings.classifier_bin if backend == "gemini" else default_binary
    resolved = shutil.which(binary or default_binary)
    if resolved is None:
        logger.warning("%s not found on PATH; using keyword classification only", binary)
        return None
    return ModelClient(
        backend,
        binary=resolved,
        model=settings.classifier_model,
        timeout=settings.classifier_timeout,
    )


def extract_first_json(text: str) -> str | None:
    """Return the first balanced top-level ``{...}`` block in ``text``.

    Braces inside double-quoted strings (including escaped quotes) are
    ignored, in the object and in the commentary around it alike.
    """
    start = -1
    depth = 0
    in_string = False
    escape = False

    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start >= 0:
                return text[start : i + 1]
    return None
