"""
Questioning style selection.

Three passes:
  1. immediate triggers from qualified escape signals and sustained disengagement
  2. behavioural signals of any strength, and a decreasing engagement trend
     for a disengaged user
  3. otherwise, band the composite sophistication score (mean of the five
     sophistication-breakdown fields), letting the profile's stated level
     pull the choice upward

``monitor_effectiveness`` scores how well the current style is landing
and recommends a switch when it is not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .types import (
    ConversationContext,
    EngagementPattern,
    QuestioningStyle,
    ResponseAnalysis,
    SophisticationLevel,
)
from .utils import average_recent_engagement, composite_score, engagement_trend
from ..content.styles import get_style_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StyleBands:
    expert: float = 0.8
    advanced: float = 0.6
    intermediate: float = 0.4
    # Recent-engagement level that counts as disengaged
    low_engagement: float = 0.4
    collaborative_spirit: float = 0.7
    # Below this effectiveness the style is re-selected
    min_effectiveness: float = 0.6
    high_effectiveness: float = 0.7


DEFAULT_BANDS = StyleBands()


@dataclass
class StyleEffectiveness:
    effectiveness: float
    recommended: Optional[QuestioningStyle]
    reasoning: str
    confidence: float

    def to_dict(self):
        return {
            "effectiveness": self.effectiveness,
            "recommended": self.recommended.value if self.recommended else None,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
        }


def temperature_for_style(style: QuestioningStyle) -> float:
    return get_style_profile(style).temperature


def _trigger_style(
    context: ConversationContext,
    analysis: ResponseAnalysis,
    bands: StyleBands,
) -> Optional[QuestioningStyle]:
    signals = analysis.escape_signals

    if signals.impatience.detected:
        if signals.impatience.urgency_level == "high":
            return QuestioningStyle.IMPATIENT_ACCELERATED
        if signals.impatience.urgency_level == "moderate":
            return QuestioningStyle.EXPERT_EFFICIENT

    if signals.confusion.detected:
        return QuestioningStyle.CONFUSED_SUPPORTIVE

    if signals.expertise.detected:
        if signals.expertise.suggested_skip_level == "advanced":
            return QuestioningStyle.EXPERT_EFFICIENT
        if signals.expertise.suggested_skip_level == "intermediate":
            return QuestioningStyle.ADVANCED_TECHNICAL

    recent = average_recent_engagement(context.history)
    if recent < bands.low_engagement and context.user_profile.engagement_pattern == EngagementPattern.DISENGAGED:
        return QuestioningStyle.COLLABORATIVE_EXPLORATORY

    return None


def _behavioural_style(
    context: ConversationContext,
    analysis: ResponseAnalysis,
) -> Optional[QuestioningStyle]:
    """Any detected signal, whatever its qualifier, or a falling-off disengaged user."""
    signals = analysis.escape_signals
    if signals.impatience.detected:
        return QuestioningStyle.IMPATIENT_ACCELERATED
    if signals.confusion.detected:
        return QuestioningStyle.CONFUSED_SUPPORTIVE
    if signals.expertise.detected:
        return QuestioningStyle.EXPERT_EFFICIENT

    trend = engagement_trend(context.history)
    if trend == "decreasing" and context.user_profile.engagement_pattern == EngagementPattern.DISENGAGED:
        return QuestioningStyle.COLLABORATIVE_EXPLORATORY
    return None


def select_style(
    context: ConversationContext,
    analysis: ResponseAnalysis,
    bands: StyleBands = DEFAULT_BANDS,
) -> QuestioningStyle:
    """Pick the questioning style for the next question."""
    triggered = _trigger_style(context, analysis, bands)
    if triggered is not None:
        logger.debug(f"[Style] {context.session_id}: trigger -> {triggered.value}")
        return triggered

    behavioural = _behavioural_style(context, analysis)
    if behavioural is not None:
        logger.debug(f"[Style] {context.session_id}: behaviour -> {behavioural.value}")
        return behavioural

    score = composite_score(analysis.sophistication_breakdown.values())
    level = context.user_profile.sophistication_level

    if score >= bands.expert or level == SophisticationLevel.EXPERT:
        if analysis.engagement_metrics.collaborative_spirit > bands.collaborative_spirit:
            return QuestioningStyle.COLLABORATIVE_EXPLORATORY
        return QuestioningStyle.EXPERT_EFFICIENT
    if score >= bands.advanced or level == SophisticationLevel.ADVANCED:
        return QuestioningStyle.ADVANCED_TECHNICAL
    if score >= bands.intermediate or level == SophisticationLevel.INTERMEDIATE:
        return QuestioningStyle.INTERMEDIATE_GUIDED
    return QuestioningStyle.NOVICE_FRIENDLY


def sophistication_alignment(style: QuestioningStyle, analysis: ResponseAnalysis) -> float:
    """1 - |composite sophistication - complexity the style is pitched at|, floored at 0."""
    score = composite_score(analysis.sophistication_breakdown.values())
    expected = get_style_profile(style).expected_complexity
    return max(0.0, 1.0 - abs(score - expected))


def monitor_effectiveness(
    context: ConversationContext,
    current_style: QuestioningStyle,
    analysis: ResponseAnalysis,
    bands: StyleBands = DEFAULT_BANDS,
) -> StyleEffectiveness:
    """
    Score the current style as the mean of engagement, clarity and
    sophistication alignment. Explicit impatience or confusion always
    recommend their styles; otherwise a low score re-runs selection.
    """
    current_style = QuestioningStyle(current_style)
    engagement = composite_score(analysis.engagement_metrics.values())
    clarity = composite_score(analysis.clarity_metrics.values())
    alignment = sophistication_alignment(current_style, analysis)
    effectiveness = (engagement + clarity + alignment) / 3.0

    recommended: Optional[QuestioningStyle] = None
    reasoning = f'Current style "{current_style.value}" is performing well'
    signals = analysis.escape_signals

    if signals.impatience.detected:
        recommended = QuestioningStyle.IMPATIENT_ACCELERATED
        reasoning = "Impatience signals detected, accelerating pace"
    elif signals.confusion.detected:
        recommended = QuestioningStyle.CONFUSED_SUPPORTIVE
        reasoning = "Confusion signals detected, providing more support"
    elif effectiveness < bands.min_effectiveness:
        recommended = select_style(context, analysis, bands)
        reasoning = f"Low effectiveness ({effectiveness:.2f}) suggests adaptation needed"

    return StyleEffectiveness(
        effectiveness=effectiveness,
        recommended=recommended,
        reasoning=reasoning,
        confidence=0.9 if effectiveness > bands.high_effectiveness else 0.6,
    )
