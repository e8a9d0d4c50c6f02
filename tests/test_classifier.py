"""Tests for bookmark classification."""

from __future__ import annotations

import logging

import pytest

from bookmark_triage.classifier import (
    Classifier,
    extract_urls,
    fallback_category,
    match_keywords,
    normalize_category,
    normalize_key,
    parse_model_answer,
)
from bookmark_triage.config import parse_bookmarks_config
from bookmark_triage.errors import ConfigError
from bookmark_triage.llm import LLMError
from bookmark_triage.models import ClassificationMethod
from conftest import FakeModel, make_item


def _config(yaml_text: str):
    return parse_bookmarks_config(yaml_text)


class TestExtractUrls:
    def test_unique_in_order(self):
        text = "see https://a.example/x and http://b.example then https://a.example/x"
        assert extract_urls(text) == ["https://a.example/x", "http://b.example"]

    def test_stops_at_brackets_and_quotes(self):
        assert extract_urls('link "https://a.example/p"') == ["https://a.example/p"]
        assert extract_urls("[https://a.example/q]") == ["https://a.example/q"]

    def test_none(self):
        assert extract_urls("no links here") == []


class TestNormalization:
    def test_normalize_key(self):
        assert normalize_key(" Read-Later_now ") == "readlaternow"

    @pytest.mark.parametrize("answer", ["Pottery", "pottery ", "POTTERY", "pot-tery", "pot_tery"])
    def test_variants_map_to_registered_name(self, pottery_config, answer):
        assert normalize_category(answer, pottery_config) == "pottery"

    def test_case_insensitive_keeps_configured_spelling(self):
        config = _config("categories:\n  readLater: {}\n")
        assert normalize_category("READLATER", config) == "readLater"
        assert normalize_category("read later", config) == "readLater"

    def test_unknown_is_empty(self, pottery_config):
        assert normalize_category("woodworking", pottery_config) == ""
        assert normalize_category("   ", pottery_config) == ""


class TestKeywordMatch:
    def test_first_category_wins(self):
        config = _config("categories:\n  A: {keywords: [x]}\n  B: {keywords: [x, y]}\n")
        assert match_keywords(make_item("text with x inside"), config) == "A"

    def test_later_category_when_earlier_misses(self):
        config = _config("categories:\n  A: {keywords: [x]}\n  B: {keywords: [x, y]}\n")
        assert match_keywords(make_item("only y here"), config) == "B"

    def test_case_insensitive_substring(self, pottery_config):
        assert match_keywords(make_item("My new KILN arrived"), pottery_config) == "pottery"

    def test_matches_thread_text(self, pottery_config):
        item = make_item("look at this", thread="working on a glaze recipe")
        assert match_keywords(item, pottery_config) == "pottery"

    def test_blank_keywords_ignored(self):
        config = _config("categories:\n  A: {keywords: ['']}\n  B: {keywords: [b]}\n")
        assert match_keywords(make_item("bbb"), config) == "B"
        assert match_keywords(make_item("zzz"), config) == ""


class TestFallback:
    def test_prefers_other(self):
        config = _config("categories:\n  first: {}\n  Other: {}\n")
        assert fallback_category(config) == "Other"

    def test_first_when_no_other(self):
        config = _config("categories:\n  first: {}\n  second: {}\n")
        assert fallback_category(config) == "first"


class TestParseModelAnswer:
    def test_plain_json(self):
        answer = parse_model_answer('{"category": "pottery", "needsUrlContent": true}')
        assert answer is not None
        assert answer.category == "pottery"
        assert answer.needs_url_content is True

    def test_surrounded_by_prose(self):
        raw = 'Sure! Here is my answer:\n{"category": "tools", "needsUrlContent": false}\nHope that helps {:'
        answer = parse_model_answer(raw)
        assert answer is not None
        assert answer.category == "tools"

    def test_code_fence(self):
        raw = '```json\n{"category": "other"}\n```'
        assert parse_model_answer(raw).category == "other"

    def test_quoted_brace_before_answer(self):
        answer = parse_model_answer('Use "{" carefully. {"category": "pottery"}')
        assert answer is not None
        assert answer.category == "pottery"

    def test_not_json(self):
        assert parse_model_answer("I think it's pottery") is None

    def test_empty(self):
        assert parse_model_answer("   ") is None

    def test_json_array_rejected(self):
        assert parse_model_answer('["pottery"]') is None

    def test_wrong_shape_rejected(self):
        assert parse_model_answer('{"category": ["a", "b"]}') is None


class TestClassifier:
    def test_keyword_path_without_model(self, pottery_config):
        result = Classifier(pottery_config).classify(make_item("New kiln setup"))
        assert result.category == "pottery"
        assert result.method is ClassificationMethod.KEYWORD
        assert result.allow_external_content_fetch is False

    def test_fallback_to_other(self, pottery_config):
        result = Classifier(pottery_config).classify(make_item("nothing relevant"))
        assert result.category == "other"
        assert result.method is ClassificationMethod.FALLBACK

    def test_model_answer_wins_over_keywords(self, pottery_config):
        model = FakeModel('{"category": "TOOLS", "needsUrlContent": false}')
        result = Classifier(pottery_config, model).classify(make_item("New kiln setup"))
        assert result.category == "tools"
        assert result.method is ClassificationMethod.MODEL

    def test_model_prompt_contents(self, pottery_config):
        model = FakeModel('{"category": "pottery"}')
        item = make_item("Kiln https://a.example https://b.example", thread="thread body")
        Classifier(pottery_config, model).classify(item)
        prompt = model.prompts[0]
        assert "- tools: AI agents" in prompt
        assert "- pottery: Ceramics, pottery business, kiln, glazes" in prompt
        assert "Thread: thread body" in prompt
        assert "URLs: 2" in prompt
        assert '"category": "tools|pottery|other"' in prompt

    def test_unknown_model_category_falls_back_to_keywords(self, pottery_config):
        model = FakeModel('{"category": "woodworking", "needsUrlContent": true}')
        result = Classifier(pottery_config, model).classify(make_item("clay studio"))
        assert result.category == "pottery"
        assert result.method is ClassificationMethod.KEYWORD
        assert result.allow_external_content_fetch is False

    def test_model_failure_is_not_fatal(self, pottery_config):
        model = FakeModel(error=LLMError("timed out"))
        result = Classifier(pottery_config, model).classify(make_item("agent swarm"))
        assert result.category == "tools"

    def test_malformed_model_output_is_not_fatal(self, pottery_config, caplog):
        model = FakeModel("the answer is pottery")
        with caplog.at_level(logging.DEBUG, logger="bookmark_triage.classifier"):
            result = Classifier(pottery_config, model).classify(make_item("nothing"))
        assert result.category == "other"

    def test_fetch_allowed_for_short_items(self, pottery_config):
        model = FakeModel('{"category": "pottery", "needsUrlContent": true}')
        result = Classifier(pottery_config, model).classify(make_item("short"))
        assert result.allow_external_content_fetch is True

    def test_fetch_denied_for_long_items(self, pottery_config):
        model = FakeModel('{"category": "pottery", "needsUrlContent": true}')
        result = Classifier(pottery_config, model).classify(make_item("k" * 250))
        assert result.allow_external_content_fetch is False

    def test_fetch_denied_when_not_requested(self, pottery_config):
        model = FakeModel('{"category": "pottery", "needsUrlContent": false}')
        result = Classifier(pottery_config, model).classify(make_item("short"))
        assert result.allow_external_content_fetch is False

    @pytest.mark.parametrize(
        "text",
        ["", "kiln", "agent", "random", "https://x.example", "Other stuff"],
    )
    def test_always_returns_configured_category(self, pottery_config, text):
        result = Classifier(pottery_config).classify(make_item(text))
        assert result.category in pottery_config.categories

    def test_no_categories_is_config_error(self):
        from bookmark_triage.config import BookmarksConfig

        with pytest.raises(ConfigError):
            Classifier(BookmarksConfig()).classify(make_item("x"))
