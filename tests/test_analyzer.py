"""
Tests for the response analyzer.

The generator is always a scripted fake: these tests cover prompt
parameters, JSON recovery and clamping, not model quality.
"""

import json

import pytest

from elicit.core.errors import GenerationError, ValidationError
from elicit.core.pivot import check_pivot
from elicit.core.types import Stage
from elicit.llm.analyzer import (
    ANALYSIS_MAX_TOKENS,
    ANALYSIS_TEMPERATURE,
    QUICK_CHECK_FALLBACK,
    ResponseAnalyzer,
    map_analysis,
    monitor_engagement,
)

from fakes import FakeGenerator, analysis_payload, make_context, make_exchange


class TestAnalyzeResponse:
    def test_maps_payload(self):
        gen = FakeGenerator(analysis_payload())
        analyzer = ResponseAnalyzer(gen)
        analysis = analyzer.analyze_response("We reconcile ledgers nightly", make_context())

        assert analysis.sophistication_score == pytest.approx(0.6)
        assert analysis.engagement_level == pytest.approx(0.7)
        assert analysis.clarity_metrics.relevance == pytest.approx(0.8)
        assert analysis.extracted_entities == ["reporting"]
        assert analysis.sentiment == "positive"
        assert analysis.escape_signals.detected() == []
        assert analysis.metadata["model"] == "fake-model"
        assert analysis.metadata["response_length"] == len("We reconcile ledgers nightly")

    def test_generation_parameters(self):
        gen = FakeGenerator(analysis_payload())
        ResponseAnalyzer(gen).analyze_response("hello there", make_context(domain="healthcare"))
        call = gen.calls[0]
        assert call["temperature"] == ANALYSIS_TEMPERATURE
        assert call["max_tokens"] == ANALYSIS_MAX_TOKENS
        assert "healthcare" in call["prompt"]
        assert "hello there" in call["prompt"]

    def test_recent_exchanges_in_prompt(self):
        gen = FakeGenerator(analysis_payload())
        context = make_context([make_exchange("first answer"), make_exchange("second answer")])
        ResponseAnalyzer(gen).analyze_response("third", context)
        assert "second answer" in gen.calls[0]["prompt"]

    def test_out_of_range_scores_clamped(self):
        payload = analysis_payload(sophistication_score=1.7, engagement_level=-0.3)
        payload["sophistication_breakdown"]["technical_language"] = 4
        payload["escape_signals"]["fatigue"] = {"detected": True, "confidence": 2.5}
        analysis = ResponseAnalyzer(FakeGenerator(payload)).analyze_response("x", make_context())
        assert analysis.sophistication_score == 1.0
        assert analysis.engagement_level == 0.0
        assert analysis.sophistication_breakdown.technical_language == 1.0
        assert analysis.escape_signals.fatigue.confidence == 1.0

    def test_json_wrapped_in_prose(self):
        raw = "Here is my analysis:\n" + json.dumps(analysis_payload(clarity_score=0.33)) + "\nThanks!"
        analysis = ResponseAnalyzer(FakeGenerator(raw)).analyze_response("x", make_context())
        assert analysis.clarity_score == pytest.approx(0.33)

    def test_unparseable_raises(self):
        analyzer = ResponseAnalyzer(FakeGenerator("I'm sorry, I can't help with that."))
        with pytest.raises(GenerationError):
            analyzer.analyze_response("x", make_context())

    def test_generator_failure_propagates(self):
        analyzer = ResponseAnalyzer(FakeGenerator(GenerationError("upstream 503")))
        with pytest.raises(GenerationError, match="503"):
            analyzer.analyze_response("x", make_context())

    def test_empty_utterance(self):
        gen = FakeGenerator(analysis_payload())
        with pytest.raises(ValidationError):
            ResponseAnalyzer(gen).analyze_response("   ", make_context())
        assert gen.calls == []

    def test_context_without_domain(self):
        with pytest.raises(ValidationError):
            ResponseAnalyzer(FakeGenerator()).analyze_response("x", make_context(domain=""))


class TestMapAnalysis:
    def test_missing_fields_take_defaults(self):
        analysis = map_analysis({"sophistication_score": 0.9})
        assert analysis.sophistication_score == 0.9
        assert analysis.engagement_level == 0.5
        assert analysis.sophistication_breakdown.business_acumen == 0.5
        assert not analysis.escape_signals.expertise.detected

    def test_unknown_qualifier_ignored(self):
        data = {"escape_signals": {"impatience": {"detected": True, "confidence": 0.8, "urgency_level": "extreme"}}}
        signal = map_analysis(data).escape_signals.impatience
        assert signal.detected
        assert signal.urgency_level == "mild"

    @pytest.mark.parametrize("raw, expected", [
        (True, True),
        ("true", True),
        ("TRUE ", True),
        ("false", False),
        ("False", False),
        ("yes", False),
        (1, False),
        (None, False),
    ])
    def test_detected_flag_parsing(self, raw, expected):
        data = {"escape_signals": {"expertise": {"detected": raw, "confidence": 0.9}}}
        assert map_analysis(data).escape_signals.expertise.detected is expected

    def test_string_false_does_not_pivot(self):
        data = {"escape_signals": {"expertise": {"detected": "false", "confidence": 0.95}}}
        decision = check_pivot(make_context(), map_analysis(data))
        assert not decision.should_pivot

    def test_redirect_destination(self):
        data = {"escape_signals": {"redirect": {"detected": True, "confidence": 0.9, "requested_destination": "wireframes"}}}
        assert map_analysis(data).escape_signals.redirect.requested_destination == "wireframes"

    def test_non_numeric_score(self):
        assert map_analysis({"clarity_score": "very clear"}).clarity_score == 0.5


class TestQuickCheck:
    def test_parses_level(self):
        gen = FakeGenerator({"sophistication_level": "expert", "confidence": 0.9, "key_indicators": ["ISO 20022"]})
        result = ResponseAnalyzer(gen).quick_sophistication_check("We map pacs.008 to ISO 20022", "fintech")
        assert result == {"level": "expert", "confidence": 0.9, "key_indicators": ["ISO 20022"]}

    def test_fallback_on_failure(self):
        analyzer = ResponseAnalyzer(FakeGenerator(GenerationError("timeout")))
        assert analyzer.quick_sophistication_check("hi", "fintech") == QUICK_CHECK_FALLBACK

    def test_fallback_on_garbage(self):
        analyzer = ResponseAnalyzer(FakeGenerator("level: expert"))
        assert analyzer.quick_sophistication_check("hi", "fintech") == QUICK_CHECK_FALLBACK

    def test_unknown_level(self):
        gen = FakeGenerator({"sophistication_level": "guru", "confidence": 0.7})
        assert ResponseAnalyzer(gen).quick_sophistication_check("hi", "general")["level"] == "intermediate"


class TestMonitorEngagement:
    def test_not_enough_history(self):
        result = monitor_engagement([make_exchange(engagement=0.1)])
        assert result["trend"] == "stable"
        assert result["alert_level"] == "none"

    def test_dropping_engagement(self):
        history = [make_exchange(engagement=e) for e in (0.8, 0.7, 0.25)]
        result = monitor_engagement(history)
        assert result["current_level"] == 0.25
        assert result["trend"] == "decreasing"
        assert result["alert_level"] == "high"
        assert result["recommendations"]

    def test_healthy_engagement(self):
        history = [make_exchange(engagement=e) for e in (0.6, 0.8)]
        result = monitor_engagement(history)
        assert result["trend"] == "increasing"
        assert result["alert_level"] == "none"

    def test_stage_of_exchange_irrelevant(self):
        history = [make_exchange(engagement=0.55, stage=Stage.USER_WORKFLOW) for _ in range(2)]
        assert monitor_engagement(history)["alert_level"] == "mild"
