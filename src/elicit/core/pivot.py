"""
Pivot decision: should we stop asking questions and generate assumptions?

Rules are checked in a fixed order and the first one that fires wins.
Behavioral escape signals come first, then structural checks over the
history, then a keyword scan of the latest utterance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from .types import ConversationContext, PivotDecision, ResponseAnalysis, Stage
from .utils import NEUTRAL_ENGAGEMENT, RECENT_WINDOW, engagement_window, mean

logger = logging.getLogger(__name__)

NO_PIVOT_REASON = "No escape signals detected, continuing conversation"

ASSUMPTION_KEYWORDS: Tuple[str, ...] = (
    "assumption",
    "assume",
    "just generate",
    "move forward",
    "skip ahead",
    "wireframe",
)


@dataclass(frozen=True)
class PivotThresholds:
    """Confidence a detected signal must exceed before it forces a pivot."""
    fatigue: float = 0.5
    expertise: float = 0.6
    impatience: float = 0.5
    redirect: float = 0.6
    # Exchanges allowed in the first stage before we call it stalled
    max_first_stage_history: int = 8
    low_engagement: float = 0.4


DEFAULT_THRESHOLDS = PivotThresholds()


def _signal_reason(analysis: ResponseAnalysis, t: PivotThresholds) -> str:
    signals = analysis.escape_signals
    if signals.fatigue.detected and signals.fatigue.confidence > t.fatigue:
        return "User showing conversation fatigue"
    if signals.expertise.detected and signals.expertise.confidence > t.expertise:
        return f"User demonstrating {signals.expertise.suggested_skip_level} expertise"
    if signals.impatience.detected and signals.impatience.confidence > t.impatience:
        return f"User showing {signals.impatience.urgency_level} impatience"
    if signals.redirect.detected and signals.redirect.confidence > t.redirect:
        destination = signals.redirect.requested_destination or "deliverables"
        return f"User requesting direct access to {destination}"
    return ""


def _structural_reason(context: ConversationContext, t: PivotThresholds) -> str:
    history = context.history
    if len(history) > t.max_first_stage_history and context.stage == Stage.IDEA_CLARITY:
        return "Extended conversation without stage progression"
    if history:
        recent = engagement_window(history, RECENT_WINDOW, missing=NEUTRAL_ENGAGEMENT)
        if mean(recent) < t.low_engagement:
            return "Consistently low engagement detected"
    return ""


def _keyword_reason(context: ConversationContext) -> str:
    latest = context.latest_response.lower()
    if any(keyword in latest for keyword in ASSUMPTION_KEYWORDS):
        return "User explicitly requesting assumption generation"
    return ""


def check_pivot(
    context: ConversationContext,
    analysis: ResponseAnalysis,
    thresholds: PivotThresholds = DEFAULT_THRESHOLDS,
) -> PivotDecision:
    """Decide whether to pivot. Pure, never calls the generator."""
    reason = (
        _signal_reason(analysis, thresholds)
        or _structural_reason(context, thresholds)
        or _keyword_reason(context)
    )
    if not reason:
        return PivotDecision(should_pivot=False, pivot_reason=NO_PIVOT_REASON)
    logger.info(f"[Pivot] {context.session_id}: {reason}")
    return PivotDecision(should_pivot=True, pivot_reason=reason)
