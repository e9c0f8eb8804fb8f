"""Test doubles and builders shared by the test modules."""

import json
from datetime import datetime, timedelta, timezone

from elicit.core.errors import GenerationError
from elicit.core.types import (
    ConversationContext,
    ConversationExchange,
    EscapeSignalSet,
    ResponseAnalysis,
    SophisticationBreakdown,
    Stage,
)


class FakeGenerator:
    """
    Scripted TextGenerator. Each call pops the next queued item: strings
    are returned, exceptions are raised. An empty queue raises
    GenerationError, or returns ``default`` if one was given.
    """

    model = "fake-model"

    def __init__(self, *responses, default=None):
        self.responses = list(responses)
        self.default = default
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def generate(self, prompt, temperature, max_tokens):
        self.calls.append({"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens})
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise GenerationError("no scripted response")
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, dict):
            return json.dumps(item)
        return item


class ExplodingGenerator:
    """Always fails, with a non-library exception."""

    model = "exploding"

    def generate(self, prompt, temperature, max_tokens):
        raise RuntimeError("connection reset by peer")


def analysis_payload(**overrides):
    """A plausible analyzer JSON payload with every field present."""
    payload = {
        "sophistication_score": 0.6,
        "engagement_level": 0.7,
        "clarity_score": 0.65,
        "sophistication_breakdown": {
            "technical_language": 0.6, "domain_specificity": 0.6, "complexity_handling": 0.6,
            "business_acumen": 0.6, "communication_clarity": 0.6,
        },
        "clarity_metrics": {
            "specificity": 0.7, "structured_thinking": 0.7, "completeness": 0.6,
            "relevance": 0.8, "actionability": 0.6,
        },
        "engagement_metrics": {
            "enthusiasm": 0.7, "interest_level": 0.7, "participation_quality": 0.7,
            "proactiveness": 0.6, "collaborative_spirit": 0.5,
        },
        "escape_signals": {
            "fatigue": {"detected": False, "confidence": 0.1, "indicators": []},
            "expertise": {"detected": False, "confidence": 0.1, "suggested_skip_level": "basics"},
            "impatience": {"detected": False, "confidence": 0.1, "urgency_level": "mild"},
            "confusion": {"detected": False, "confidence": 0.1, "support_level": "clarification"},
            "redirect": {"detected": False, "confidence": 0.1, "requested_destination": None},
        },
        "extracted_entities": ["reporting"],
        "sentiment": "positive",
    }
    payload.update(overrides)
    return payload


def question_payload(text="Who signs off on the quarterly compliance report today?", **overrides):
    payload = {
        "question": text,
        "question_type": "exploration",
        "sophistication_level": "intermediate",
        "domain_context": "Ownership drives workflow design",
        "follow_up_suggestions": ["What tools do they use?"],
        "confidence": 0.85,
        "reasoning": "Establish the reviewer role",
        "expected_response_types": ["role", "process"],
    }
    payload.update(overrides)
    return payload


def make_analysis(engagement=0.7, sophistication=0.5, breakdown=None, **signals):
    """
    Build a ResponseAnalysis directly. Signal kwargs look like
    ``expertise=(True, 0.75)`` or ``impatience=(True, 0.8, "high")``.
    """
    analysis = ResponseAnalysis(sophistication_score=sophistication, engagement_level=engagement)
    if breakdown is not None:
        analysis.sophistication_breakdown = SophisticationBreakdown(*([breakdown] * 5)) \
            if isinstance(breakdown, float) else breakdown
    escape = EscapeSignalSet()
    qualifiers = {
        "expertise": "suggested_skip_level",
        "impatience": "urgency_level",
        "confusion": "support_level",
        "redirect": "requested_destination",
    }
    for name, values in signals.items():
        signal = getattr(escape, name)
        signal.detected = values[0]
        signal.confidence = values[1]
        if len(values) > 2:
            setattr(signal, qualifiers[name], values[2])
    analysis.escape_signals = escape
    return analysis


def make_exchange(text="ok", engagement=0.7, stage=Stage.IDEA_CLARITY, analysis=True, when=None):
    return ConversationExchange(
        user_response=text,
        analysis=make_analysis(engagement=engagement) if analysis else None,
        question=None,
        timestamp=when or datetime.now(timezone.utc),
        stage=stage,
    )


def make_context(history=(), domain="fintech", stage=Stage.IDEA_CLARITY, session_id="s1"):
    return ConversationContext(session_id=session_id, domain=domain, stage=stage, history=list(history))


class FakeClock:
    """Manually advanced datetime clock for the state machine."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class TickClock:
    """Manually advanced monotonic clock for the session registry."""

    def __init__(self, start=1000.0):
        self.t = start

    def __call__(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds
