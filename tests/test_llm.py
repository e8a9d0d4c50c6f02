"""Tests for bookmark_triage.llm -- model calls and JSON extraction."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from bookmark_triage.config import Settings
from bookmark_triage.llm import (
    LLMError,
    ModelClient,
    call_claude,
    call_gemini,
    create_model_client,
    extract_first_json,
)


class TestExtractFirstJson:
    def test_plain_object(self):
        assert extract_first_json('{"a": 1}') == '{"a": 1}'

    def test_surrounding_prose(self):
        text = 'Here you go: {"category": "x"} -- let me know!'
        assert extract_first_json(text) == '{"category": "x"}'

    def test_nested_object(self):
        text = 'pre {"a": {"b": 2}, "c": 3} post'
        assert extract_first_json(text) == '{"a": {"b": 2}, "c": 3}'

    def test_braces_inside_strings(self):
        text = '{"category": "a}b{", "note": "say \\"hi\\" }"} trailing'
        assert extract_first_json(text) == '{"category": "a}b{", "note": "say \\"hi\\" }"}'

    def test_quoted_brace_in_prose(self):
        text = 'Use "{" carefully. {"category": "pottery"}'
        assert extract_first_json(text) == '{"category": "pottery"}'

    def test_first_of_multiple(self):
        assert extract_first_json('{"a": 1} {"b": 2}') == '{"a": 1}'

    def test_unbalanced(self):
        assert extract_first_json('{"a": 1') is None

    def test_no_object(self):
        assert extract_first_json("plain text") is None


class TestCallGemini:
    @patch("bookmark_triage.llm.subprocess.run")
    def test_prompt_passed_as_argument(self, mock_run: MagicMock) -> None:
        mock_run.return_value = MagicMock(returncode=0, stdout='  {"category": "x"}\n', stderr="")
        result = call_gemini("the prompt", binary="/usr/bin/gemini", timeout=15)
        assert result == '{"category": "x"}'
        args, kwargs = mock_run.call_args
        assert args[0] == ["/usr/bin/gemini", "the prompt"]
        assert kwargs["timeout"] == 15

    @patch("bookmark_triage.llm.subprocess.run")
    def test_model_flag(self, mock_run: MagicMock) -> None:
        mock_run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")
        call_gemini("p", model="flash")
        args, _kwargs = mock_run.call_args
        assert args[0] == ["gemini", "--model", "flash", "p"]

    @patch("bookmark_triage.llm.subprocess.run")
    def test_timeout(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="gemini", timeout=15)
        with pytest.raises(LLMError, match="timed out"):
            call_gemini("p")

    @patch("bookmark_triage.llm.subprocess.run")
    def test_not_found(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = FileNotFoundError()
        with pytest.raises(LLMError, match="not found"):
            call_gemini("p")

    @patch("bookmark_triage.llm.subprocess.run")
    def test_nonzero_exit(self, mock_run: MagicMock) -> None:
        mock_run.return_value = MagicMock(returncode=2, stdout="", stderr="quota exceeded")
        with pytest.raises(LLMError, match="exit 2"):
            call_gemini("p")

    @patch("bookmark_triage.llm.subprocess.run")
    def test_empty_output(self, mock_run: MagicMock) -> None:
        mock_run.return_value = MagicMock(returncode=0, stdout="   ", stderr="")
        with pytest.raises(LLMError, match="empty"):
            call_gemini("p")


class TestCallClaude:
    @patch("bookmark_triage.llm.subprocess.run")
    def test_prompt_on_stdin(self, mock_run: MagicMock) -> None:
        mock_run.return_value = MagicMock(returncode=0, stdout="answer", stderr="")
        assert call_claude("the prompt", model="haiku") == "answer"
        args, kwargs = mock_run.call_args
        assert args[0] == ["claude", "-p", "--model", "haiku"]
        assert kwargs["input"] == "the prompt"

    @patch.dict("os.environ", {"CLAUDECODE": "1"})
    @patch("bookmark_triage.llm.subprocess.run")
    def test_filters_claudecode_env(self, mock_run: MagicMock) -> None:
        mock_run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")
        call_claude("p")
        _args, kwargs = mock_run.call_args
        assert "CLAUDECODE" not in kwargs["env"]


class TestModelClient:
    @patch("bookmark_triage.llm.call_gemini")
    def test_gemini_backend(self, mock_call: MagicMock) -> None:
        mock_call.return_value = "raw"
        client = ModelClient("gemini", binary="/bin/gemini", timeout=7)
        assert client.invoke("p") == "raw"
        mock_call.assert_called_once_with("p", binary="/bin/gemini", model=None, timeout=7)

    @patch("bookmark_triage.llm.call_claude")
    def test_claude_backend(self, mock_call: MagicMock) -> None:
        mock_call.return_value = "raw"
        assert ModelClient("claude", model="haiku").invoke("p") == "raw"
        mock_call.assert_called_once_with("p", binary="claude", model="haiku", timeout=15)

    def test_unknown_backend(self) -> None:
        with pytest.raises(LLMError):
            ModelClient("oracle").invoke("p")


class TestCreateModelClient:
    def test_none_backend(self):
        assert create_model_client(Settings(classifier_backend="none")) is None

    @patch("bookmark_triage.llm.shutil.which", return_value=None)
    def test_missing_binary_degrades(self, _which: MagicMock):
        assert create_model_client(Settings(classifier_backend="gemini")) is None

    @patch("bookmark_triage.llm.shutil.which", return_value="/usr/local/bin/gemini")
    def test_resolves_binary(self, _which: MagicMock):
        client = create_model_client(Settings(classifier_backend="gemini", classifier_timeout=9))
        assert client is not None
        assert client.binary == "/usr/local/bin/gemini"
        assert client.timeout == 9

    def test_anthropic_without_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert create_model_client(Settings(classifier_backend="anthropic")) is None

    def test_anthropic_with_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        client = create_model_client(Settings(classifier_backend="anthropic"))
        assert client is not None
        assert client.backend == "anthropic"
