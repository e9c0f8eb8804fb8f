"""
Numerical helpers shared by the pivot engine, style selector and
question generator.

All score math goes through these functions so the same five-field
averages and history windows mean the same thing everywhere.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

import numpy as np

from .types import ConversationExchange, SophisticationLevel, EngagementPattern

# Engagement assumed for an exchange whose analysis is missing
NEUTRAL_ENGAGEMENT = 0.5

# Engagement assumed when there is no history at all
DEFAULT_RECENT_ENGAGEMENT = 0.7

# Sliding window used by every "recent engagement" computation
RECENT_WINDOW = 3


def clamp01(x: float) -> float:
    """Clamp a score into [0, 1]. Non-numeric / NaN input becomes 0.5."""
    try:
        value = float(x)
    except (TypeError, ValueError):
        return 0.5
    if np.isnan(value):
        return 0.5
    return float(np.clip(value, 0.0, 1.0))


def composite_score(values: Sequence[float] | np.ndarray) -> float:
    """Mean of a five-field breakdown."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def engagement_window(
    history: Sequence[ConversationExchange],
    window: int = RECENT_WINDOW,
    missing: Optional[float] = NEUTRAL_ENGAGEMENT,
) -> List[float]:
    """
    Engagement levels of the last ``window`` exchanges.

    ``missing`` is substituted for exchanges without an analysis; pass
    None to drop them instead.
    """
    scores: List[float] = []
    for exchange in list(history)[-window:]:
        if exchange.analysis is None:
            if missing is not None:
                scores.append(missing)
            continue
        scores.append(exchange.analysis.engagement_level)
    return scores


def average_recent_engagement(
    history: Sequence[ConversationExchange],
    window: int = RECENT_WINDOW,
    default: float = DEFAULT_RECENT_ENGAGEMENT,
) -> float:
    """Mean engagement over the recent window, ``default`` when empty."""
    scores = engagement_window(history, window, missing=None)
    if not scores:
        return default
    return float(np.mean(scores))


def engagement_trend(history: Sequence[ConversationExchange], delta: float = 0.1) -> str:
    """'increasing' | 'stable' | 'decreasing' over the last three exchanges."""
    if len(history) < RECENT_WINDOW:
        return "stable"
    scores = engagement_window(history)
    change = scores[-1] - scores[0]
    if change > delta:
        return "increasing"
    if change < -delta:
        return "decreasing"
    return "stable"


def sophistication_band(score: float) -> SophisticationLevel:
    if score >= 0.8:
        return SophisticationLevel.EXPERT
    if score >= 0.6:
        return SophisticationLevel.ADVANCED
    if score >= 0.4:
        return SophisticationLevel.INTERMEDIATE
    return SophisticationLevel.NOVICE


def engagement_band(score: float) -> EngagementPattern:
    if score >= 0.8:
        return EngagementPattern.HIGHLY_ENGAGED
    if score >= 0.6:
        return EngagementPattern.ENGAGED
    if score >= 0.4:
        return EngagementPattern.MODERATELY_ENGAGED
    return EngagementPattern.DISENGAGED


def mean(values: Iterable[float]) -> float:
    arr = np.fromiter(values, dtype=np.float64)
    return float(arr.mean()) if arr.size else 0.0
