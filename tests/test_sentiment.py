"""Tests for AI response extraction, validation and the news analyzer."""

from unittest.mock import MagicMock

import pytest

from conftest import ScriptedBackend, make_article
from niftydesk.core.errors import ConfigError, ParseError
from niftydesk.models.datatypes import NewsAnalysis
from niftydesk.pipeline.validator import extract_json_object, validate_analysis
from niftydesk.providers.sentiment import (
    GeminiCompletionBackend,
    NewsAnalyzer,
    build_prompt,
)


class TestExtractJsonObject:

    def test_extracts_object_from_surrounding_prose(self):
        text = 'Sure, here: {"sentiment":0.5,"category":"Policy","rationale":"ok","relevanceScore":80}'
        assert extract_json_object(text) == {
            "sentiment": 0.5, "category": "Policy", "rationale": "ok", "relevanceScore": 80,
        }

    def test_extracts_from_markdown_fence(self):
        text = '```json\n{"sentiment": -0.2, "category": "Macro"}\n```'
        assert extract_json_object(text) == {"sentiment": -0.2, "category": "Macro"}

    def test_braces_inside_strings_do_not_break_matching(self):
        text = 'Result {"rationale": "uses {braces}", "sentiment": 0} and more {junk}'
        assert extract_json_object(text) == {"rationale": "uses {braces}", "sentiment": 0}

    def test_skips_non_json_brace_blocks(self):
        text = 'Note {not json} then {"sentiment": 1}'
        assert extract_json_object(text) == {"sentiment": 1}

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "{broken"])
    def test_raises_parse_error(self, text):
        with pytest.raises(ParseError):
            extract_json_object(text)


class TestValidateAnalysis:

    def test_embedded_object_maps_exactly(self):
        analysis = validate_analysis(
            {"sentiment": 0.5, "category": "Policy", "rationale": "ok", "relevanceScore": 80}
        )
        assert analysis == NewsAnalysis(sentiment=0.5, category="Policy", rationale="ok", relevance_score=80.0)

    def test_out_of_range_values_are_clamped(self):
        analysis = validate_analysis(
            {"sentiment": 3, "category": "Earnings", "rationale": "x", "relevanceScore": 250}
        )
        assert analysis.sentiment == 1.0
        assert analysis.relevance_score == 100.0

        analysis = validate_analysis(
            {"sentiment": -7, "category": "Earnings", "rationale": "x", "relevanceScore": -5}
        )
        assert analysis.sentiment == -1.0
        assert analysis.relevance_score == 0.0

    def test_numeric_strings_are_accepted(self):
        analysis = validate_analysis(
            {"sentiment": "-0.25", "category": "technical", "rationale": "x", "relevanceScore": "70"}
        )
        assert analysis.sentiment == -0.25
        assert analysis.category == "Technical"
        assert analysis.relevance_score == 70.0

    @pytest.mark.parametrize("data", [
        {"sentiment": 0.9, "relevanceScore": 95},
        {"sentiment": 0.9, "category": "Policy", "relevanceScore": 95},
        {"sentiment": 0.9, "rationale": "rate cut", "relevanceScore": 95},
        {"sentiment": 0.9, "category": "  ", "rationale": "rate cut", "relevanceScore": 95},
        {"sentiment": 0.9, "category": "Policy", "rationale": "", "relevanceScore": 95},
        {"sentiment": 0.9, "category": "Policy", "rationale": None, "relevanceScore": 95},
        {"sentiment": 0.1, "category": "Macro/Earnings", "rationale": "x", "relevanceScore": 10},
    ])
    def test_missing_or_unknown_text_fields_raise_parse_error(self, data):
        with pytest.raises(ParseError):
            validate_analysis(data)

    def test_rationale_is_trimmed_and_cut(self):
        analysis = validate_analysis(
            {"sentiment": 0, "category": "MACRO", "rationale": "  " + "r" * 250, "relevanceScore": 1}
        )
        assert analysis.category == "Macro"
        assert analysis.rationale == "r" * 200

    @pytest.mark.parametrize("data", [
        {"category": "Macro", "relevanceScore": 10},
        {"sentiment": "bullish", "relevanceScore": 10},
        {"sentiment": True, "relevanceScore": 10},
        {"sentiment": 0.1},
        {"sentiment": float("nan"), "relevanceScore": 10},
        {"sentiment": 10 ** 400, "category": "Macro", "rationale": "x", "relevanceScore": 10},
        {"sentiment": 0.1, "category": "Macro", "rationale": "x", "relevanceScore": "1e400"},
    ])
    def test_invalid_numbers_raise_parse_error(self, data):
        with pytest.raises(ParseError):
            validate_analysis(data)


class TestNewsAnalyzer:

    def test_parses_model_response(self):
        backend = ScriptedBackend(
            'Sure, here: {"sentiment":0.5,"category":"Policy","rationale":"ok","relevanceScore":80}'
        )
        analysis = NewsAnalyzer(backend).analyze("RBI cuts rates", "Rates down")

        assert analysis == NewsAnalysis(0.5, "Policy", "ok", 80.0)

    def test_prompt_contains_headline_and_truncated_summary(self):
        backend = ScriptedBackend()
        NewsAnalyzer(backend).analyze("RBI cuts rates", "s" * 500)

        prompt = backend.prompts[0]
        assert 'Headline: "RBI cuts rates"' in prompt
        assert f'Summary: "{"s" * 200}"' in prompt
        assert "Nifty 50" in prompt

    def test_empty_response_gives_neutral_default(self):
        analysis = NewsAnalyzer(ScriptedBackend("")).analyze("headline")
        assert analysis == NewsAnalysis(0.0, "Macro", "Unable to analyze", 50.0)

    def test_invalid_json_gives_neutral_default(self):
        analysis = NewsAnalyzer(ScriptedBackend("I cannot help with that")).analyze("headline")
        assert analysis.rationale == "Unable to analyze"
        assert analysis.sentiment == 0.0

    def test_reply_without_category_or_rationale_gives_neutral_default(self):
        analysis = NewsAnalyzer(ScriptedBackend('{"sentiment": 0.9, "relevanceScore": 95}')).analyze("h")
        assert analysis == NewsAnalysis(0.0, "Macro", "Unable to analyze", 50.0)

    @pytest.mark.parametrize("digits", [400, 5000])
    def test_huge_integer_in_reply_gives_neutral_default(self, digits):
        huge = "9" * digits
        reply = f'{{"sentiment": {huge}, "category": "Macro", "rationale": "x", "relevanceScore": 80}}'

        analysis = NewsAnalyzer(ScriptedBackend(reply)).analyze("headline")

        assert analysis == NewsAnalysis(0.0, "Macro", "Unable to analyze", 50.0)

    def test_backend_error_gives_pending_default(self):
        analysis = NewsAnalyzer(ScriptedBackend(RuntimeError("quota"))).analyze("headline")
        assert analysis == NewsAnalysis(0.0, "Macro", "Analysis pending", 50.0)

    def test_analyze_article_wraps_signal(self):
        article = make_article("Nifty slips", summary="profit booking")
        signal = NewsAnalyzer(ScriptedBackend()).analyze_article(article)

        assert signal.article is article
        assert signal.headline == "Nifty slips"
        assert signal.to_dict()["relevanceScore"] == 60.0

    def test_analyze_headline_marks_manual_entry(self):
        signal = NewsAnalyzer(ScriptedBackend()).analyze_headline("  HDFC Bank results beat  ")
        assert signal.article.source == "Manual Entry"
        assert signal.headline == "HDFC Bank results beat"


class TestGeminiCompletionBackend:

    def test_missing_api_key_raises_config_error(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        backend = GeminiCompletionBackend(api_key="")
        with pytest.raises(ConfigError):
            backend.complete("prompt")

    def test_returns_response_text(self):
        backend = GeminiCompletionBackend(api_key="test-key")
        client = MagicMock()
        client.models.generate_content.return_value.text = '{"sentiment": 0}'
        backend._client = client

        assert backend.complete("prompt") == '{"sentiment": 0}'
        client.models.generate_content.assert_called_once_with(model="gemini-2.5-flash", contents="prompt")

    def test_none_text_becomes_empty_string(self):
        backend = GeminiCompletionBackend(api_key="test-key")
        backend._client = MagicMock()
        backend._client.models.generate_content.return_value.text = None

        assert backend.complete("prompt") == ""


def test_build_prompt_requests_json_schema():
    prompt = build_prompt("Headline", None)
    for key in ("sentiment", "category", "rationale", "relevanceScore"):
        assert f'"{key}"' in prompt
    assert 'Summary: ""' in prompt
