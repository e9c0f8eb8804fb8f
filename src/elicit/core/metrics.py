"""
Read-side session statistics computed from stored ConversationStates.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

import numpy as np

from .state_machine import stage_completion_rate
from .types import CONTENT_STAGES, ConversationMetrics, ConversationState, Stage, utcnow


def total_duration(state: ConversationState, now: Optional[datetime] = None) -> float:
    """Seconds from creation to completion, or to ``now`` while unfinished."""
    end = None
    if state.current_stage == Stage.COMPLETED:
        end = state.stage_progresses[Stage.WIREFRAMES].completion_time or state.updated_at
    if end is None:
        end = now or utcnow()
    return max(0.0, (end - state.created_at).total_seconds())


def average_response_time(state: ConversationState) -> float:
    """Mean gap between consecutive responses within each stage."""
    gaps: List[float] = []
    for progress in state.stage_progresses.values():
        stamps = [r.timestamp for r in progress.responses]
        gaps.extend((b - a).total_seconds() for a, b in zip(stamps, stamps[1:]))
    return float(np.mean(gaps)) if gaps else 0.0


def session_metrics(state: ConversationState, now: Optional[datetime] = None) -> ConversationMetrics:
    return ConversationMetrics(
        total_duration=total_duration(state, now),
        average_response_time=average_response_time(state),
        completion_rate=state.overall_progress / 100.0,
        escape_rate=1.0 if state.escape_triggered else 0.0,
        stage_completion_rates={
            stage: stage_completion_rate(state.stage_progresses[stage]) for stage in CONTENT_STAGES
        },
    )


def aggregate_metrics(
    states: Iterable[ConversationState],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> ConversationMetrics:
    """
    Average per-session metrics over a cohort, optionally restricted to
    sessions created within [start, end]. An empty cohort yields zeros.
    """
    cohort = [
        s for s in states
        if (start is None or s.created_at >= start) and (end is None or s.created_at <= end)
    ]
    if not cohort:
        return ConversationMetrics(stage_completion_rates={stage: 0.0 for stage in CONTENT_STAGES})

    per_session = [session_metrics(s, now) for s in cohort]
    return ConversationMetrics(
        total_duration=float(np.mean([m.total_duration for m in per_session])),
        average_response_time=float(np.mean([m.average_response_time for m in per_session])),
        completion_rate=float(np.mean([m.completion_rate for m in per_session])),
        escape_rate=float(np.mean([m.escape_rate for m in per_session])),
        stage_completion_rates={
            stage: float(np.mean([m.stage_completion_rates[stage] for m in per_session]))
            for stage in CONTENT_STAGES
        },
    )
