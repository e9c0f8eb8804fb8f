"""
ResponseAnalyzer: turns one user utterance into a ResponseAnalysis.

One generation call per utterance. The model is asked for a single JSON
object; whatever comes back is clamped into [0, 1] field by field so
downstream threshold logic never sees out-of-range values. If no JSON
object can be recovered the turn fails with GenerationError: there is
no safe synthetic analysis.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import fields
from typing import Any, Dict, List, Optional, Sequence, Type

from ..content.templates import ENGAGEMENT_ALERT_RECOMMENDATIONS, ENGAGEMENT_TREND_RECOMMENDATIONS
from ..core.errors import GenerationError, ValidationError
from ..core.types import (
    AdaptationRecommendations,
    AnalysisConfidence,
    ClarityMetrics,
    ConfusionSignal,
    ConversationContext,
    ConversationExchange,
    EngagementMetrics,
    EscapeSignalSet,
    ExpertiseSignal,
    FatigueSignal,
    ImpatienceSignal,
    RedirectSignal,
    ResponseAnalysis,
    SophisticationBreakdown,
    SophisticationLevel,
    utcnow,
)
from ..core.utils import DEFAULT_RECENT_ENGAGEMENT, clamp01, engagement_window
from .client import TextGenerator
from .json_utils import parse_json_object, require_json_object

logger = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.2
ANALYSIS_MAX_TOKENS = 1500
QUICK_CHECK_TEMPERATURE = 0.1
QUICK_CHECK_MAX_TOKENS = 300

ANALYSIS_PROMPT = """\
You are an expert conversation analyst specializing in the {domain} domain. \
Perform a multi-dimensional analysis of this user response.

CONTEXT:
- Domain: {domain}
- Conversation Stage: {stage}
- User Profile: {profile}
- Recent Conversation:
{recent}

USER RESPONSE TO ANALYZE: "{utterance}"

Score every numeric field between 0 and 1.

1. SOPHISTICATION BREAKDOWN: technical_language, domain_specificity,
   complexity_handling, business_acumen, communication_clarity
2. CLARITY METRICS: specificity, structured_thinking, completeness,
   relevance, actionability
3. ENGAGEMENT METRICS: enthusiasm, interest_level, participation_quality,
   proactiveness, collaborative_spirit
4. ESCAPE SIGNALS:
   - fatigue: tiredness with the conversation
   - expertise: "I know this stuff", with the level of material to skip
   - impatience: urgency and desire to move faster
   - confusion: need for clarification or guidance
   - redirect: direct requests to jump to a specific output
5. ADAPTATION RECOMMENDATIONS for the next question
6. ANALYSIS CONFIDENCE per dimension

Respond with valid JSON only, no other text, using this exact structure:
{{
  "sophistication_score": 0.75,
  "engagement_level": 0.8,
  "clarity_score": 0.7,
  "sophistication_breakdown": {{"technical_language": 0.6, "domain_specificity": 0.8, \
"complexity_handling": 0.7, "business_acumen": 0.9, "communication_clarity": 0.8}},
  "clarity_metrics": {{"specificity": 0.7, "structured_thinking": 0.8, "completeness": 0.6, \
"relevance": 0.9, "actionability": 0.7}},
  "engagement_metrics": {{"enthusiasm": 0.8, "interest_level": 0.9, "participation_quality": 0.8, \
"proactiveness": 0.7, "collaborative_spirit": 0.8}},
  "escape_signals": {{
    "fatigue": {{"detected": false, "confidence": 0.1, "indicators": []}},
    "expertise": {{"detected": false, "confidence": 0.2, "suggested_skip_level": "basics|intermediate|advanced"}},
    "impatience": {{"detected": false, "confidence": 0.1, "urgency_level": "mild|moderate|high"}},
    "confusion": {{"detected": false, "confidence": 0.1, "support_level": "clarification|guidance|restart"}},
    "redirect": {{"detected": false, "confidence": 0.1, "requested_destination": null}}
  }},
  "adaptation_recommendations": {{"next_question_complexity": "intermediate", \
"suggested_approach": "technical|business|exploratory|validating", "tone_adjustment": "maintain", \
"pacing_recommendation": "slow_down|maintain|speed_up|pivot", "topic_focus": ["compliance"]}},
  "analysis_confidence": {{"overall": 0.85, "sophistication": 0.9, "clarity": 0.8, \
"engagement": 0.85, "escape_signals": 0.7}},
  "domain_knowledge": {{"technical_depth": "intermediate", "industry_experience": "moderate", \
"specific_areas": ["compliance"]}},
  "extracted_entities": ["compliance", "reporting"],
  "sentiment": "positive|neutral|negative",
  "suggested_adaptations": ["focus on compliance depth"],
  "next_question_hints": ["Ask about specific frameworks"]
}}"""

QUICK_CHECK_PROMPT = """\
Quick sophistication assessment for a {domain} domain response.

USER RESPONSE: "{utterance}"

Assess sophistication from technical vocabulary, domain-specific knowledge,
complexity of the concepts mentioned, and business vs technical focus.

Respond with valid JSON only:
{{
  "sophistication_level": "novice|intermediate|advanced|expert",
  "confidence": 0.85,
  "key_indicators": ["terms or concepts that indicate the level"]
}}"""

QUICK_CHECK_FALLBACK = {
    "level": SophisticationLevel.INTERMEDIATE.value,
    "confidence": 0.5,
    "key_indicators": ["fallback_assessment"],
}


# =============================================================================
# Field mapping
# =============================================================================

def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _score_group(cls: Type, data: Any):
    """Build a five-field breakdown; absent fields stay at their default."""
    data = _as_dict(data)
    kwargs = {}
    for f in fields(cls):
        if f.name in data:
            kwargs[f.name] = clamp01(data[f.name])
    return cls(**kwargs)


def _as_flag(value: Any) -> bool:
    """A real True, or the string "true" in any case."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def _signal(cls: Type, data: Any, qualifier: str, allowed: Optional[Sequence[str]] = None):
    data = _as_dict(data)
    signal = cls(
        detected=_as_flag(data.get("detected", False)),
        confidence=clamp01(data.get("confidence", 0.0)),
    )
    raw = data.get(qualifier)
    if qualifier == "indicators":
        signal.indicators = _as_str_list(raw)
    elif qualifier == "requested_destination":
        signal.requested_destination = str(raw) if raw else None
    elif raw is not None and (allowed is None or str(raw) in allowed):
        setattr(signal, qualifier, str(raw))
    return signal


def _escape_signals(data: Any) -> EscapeSignalSet:
    data = _as_dict(data)
    return EscapeSignalSet(
        fatigue=_signal(FatigueSignal, data.get("fatigue"), "indicators"),
        expertise=_signal(
            ExpertiseSignal, data.get("expertise"), "suggested_skip_level",
            ("basics", "intermediate", "advanced"),
        ),
        impatience=_signal(
            ImpatienceSignal, data.get("impatience"), "urgency_level",
            ("mild", "moderate", "high"),
        ),
        confusion=_signal(
            ConfusionSignal, data.get("confusion"), "support_level",
            ("clarification", "guidance", "restart"),
        ),
        redirect=_signal(RedirectSignal, data.get("redirect"), "requested_destination"),
    )


def _recommendations(data: Any) -> AdaptationRecommendations:
    data = _as_dict(data)
    defaults = AdaptationRecommendations()
    return AdaptationRecommendations(
        next_question_complexity=str(data.get("next_question_complexity", defaults.next_question_complexity)),
        suggested_approach=str(data.get("suggested_approach", defaults.suggested_approach)),
        tone_adjustment=str(data.get("tone_adjustment", defaults.tone_adjustment)),
        pacing_recommendation=str(data.get("pacing_recommendation", defaults.pacing_recommendation)),
        topic_focus=_as_str_list(data.get("topic_focus")),
    )


def map_analysis(data: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None) -> ResponseAnalysis:
    """Map a raw JSON object onto ResponseAnalysis, clamping every score."""
    return ResponseAnalysis(
        sophistication_score=clamp01(data.get("sophistication_score", 0.5)),
        engagement_level=clamp01(data.get("engagement_level", 0.5)),
        clarity_score=clamp01(data.get("clarity_score", 0.5)),
        sophistication_breakdown=_score_group(SophisticationBreakdown, data.get("sophistication_breakdown")),
        clarity_metrics=_score_group(ClarityMetrics, data.get("clarity_metrics")),
        engagement_metrics=_score_group(EngagementMetrics, data.get("engagement_metrics")),
        escape_signals=_escape_signals(data.get("escape_signals")),
        extracted_entities=_as_str_list(data.get("extracted_entities")),
        sentiment=str(data.get("sentiment") or "neutral"),
        analysis_confidence=_score_group(AnalysisConfidence, data.get("analysis_confidence")),
        domain_knowledge=_as_dict(data.get("domain_knowledge")),
        adaptation_recommendations=_recommendations(data.get("adaptation_recommendations")),
        suggested_adaptations=_as_str_list(data.get("suggested_adaptations")),
        next_question_hints=_as_str_list(data.get("next_question_hints")),
        metadata=dict(metadata or {}),
    )


def format_recent_exchanges(history: Sequence[ConversationExchange], n: int = 2) -> str:
    lines = []
    for exchange in list(history)[-n:]:
        question = exchange.question.question if exchange.question else "(no question)"
        lines.append(f"Q: {question}\nA: {exchange.user_response}")
    return "\n\n".join(lines) if lines else "(no previous exchanges)"


# =============================================================================
# Analyzer
# =============================================================================

class ResponseAnalyzer:
    """
    Scores user responses through a TextGenerator.

    ``analyze_response`` propagates GenerationError; the quick check
    falls back to a neutral assessment instead.
    """

    def __init__(self, generator: TextGenerator):
        self.generator = generator

    @property
    def model_name(self) -> str:
        return getattr(self.generator, "model", "") or type(self.generator).__name__

    def analyze_response(self, utterance: str, context: ConversationContext) -> ResponseAnalysis:
        if not utterance or not utterance.strip():
            raise ValidationError("utterance must be a non-empty string")
        if context is None or not context.domain or context.stage is None:
            raise ValidationError("context must include a domain and a stage")

        prompt = ANALYSIS_PROMPT.format(
            domain=context.domain,
            stage=context.stage.value,
            profile=json.dumps(context.user_profile.to_dict()),
            recent=format_recent_exchanges(context.history),
            utterance=utterance,
        )

        start = time.monotonic()
        raw = self.generator.generate(prompt, ANALYSIS_TEMPERATURE, ANALYSIS_MAX_TOKENS)
        latency_ms = (time.monotonic() - start) * 1000.0
        data = require_json_object(raw, "response analysis")

        analysis = map_analysis(data, {
            "model": self.model_name,
            "timestamp": utcnow().isoformat(),
            "response_length": len(utterance),
            "latency_ms": round(latency_ms, 1),
        })
        logger.info(
            f"[Analyzer] {context.session_id}: soph={analysis.sophistication_score:.2f} "
            f"eng={analysis.engagement_level:.2f} signals={analysis.escape_signals.detected()}"
        )
        return analysis

    def quick_sophistication_check(self, utterance: str, domain: str) -> Dict[str, Any]:
        """Cheap level/confidence/indicators read. Never raises GenerationError."""
        if not utterance or not utterance.strip():
            raise ValidationError("utterance must be a non-empty string")
        prompt = QUICK_CHECK_PROMPT.format(domain=domain or "general", utterance=utterance)
        try:
            raw = self.generator.generate(prompt, QUICK_CHECK_TEMPERATURE, QUICK_CHECK_MAX_TOKENS)
        except GenerationError as e:
            logger.warning(f"[Analyzer] Quick sophistication check failed: {e}")
            return dict(QUICK_CHECK_FALLBACK)

        result = parse_json_object(raw)
        if not result.ok:
            logger.warning(f"[Analyzer] Quick sophistication check unparseable: {result.error}")
            return dict(QUICK_CHECK_FALLBACK)

        data = result.value
        try:
            level = SophisticationLevel(data.get("sophistication_level")).value
        except ValueError:
            level = SophisticationLevel.INTERMEDIATE.value
        return {
            "level": level,
            "confidence": clamp01(data.get("confidence", 0.5)),
            "key_indicators": _as_str_list(data.get("key_indicators")),
        }


def monitor_engagement(history: Sequence[ConversationExchange]) -> Dict[str, Any]:
    """
    Engagement level, trend and alert over the last three exchanges.
    Non-generative. Fewer than two scored exchanges reads as stable.
    """
    scores = engagement_window(history, missing=None)
    if len(scores) < 2:
        return {
            "current_level": DEFAULT_RECENT_ENGAGEMENT,
            "trend": "stable",
            "alert_level": "none",
            "recommendations": [],
        }

    current, previous = scores[-1], scores[-2]
    difference = current - previous
    trend = "stable"
    if difference > 0.1:
        trend = "increasing"
    elif difference < -0.1:
        trend = "decreasing"

    alert = "none"
    if current < 0.3:
        alert = "high"
    elif current < 0.5:
        alert = "moderate"
    elif current < 0.6:
        alert = "mild"

    return {
        "current_level": current,
        "trend": trend,
        "alert_level": alert,
        "recommendations": ENGAGEMENT_ALERT_RECOMMENDATIONS[alert] + ENGAGEMENT_TREND_RECOMMENDATIONS[trend],
    }
