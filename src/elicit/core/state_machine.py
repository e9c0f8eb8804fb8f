"""
Stage state machine: tracks a session's progress through the four
content stages and records escape events.

    idea_clarity → user_workflow → technical_specs → wireframes → completed

Every operation takes a ConversationState and returns a new one; the
input is never modified, so a rejected transition leaves the caller's
copy exactly as it was.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from .errors import StateError, ValidationError
from .types import (
    CONTENT_STAGES,
    STAGE_ORDER,
    ConversationState,
    QuestionResponse,
    Stage,
    StageProgress,
    StageStatus,
    utcnow,
)
from ..content.domains import get_stage_question_counts

logger = logging.getLogger(__name__)

# Each content stage is worth a quarter of overall progress
STAGE_WEIGHT = 100.0 / len(CONTENT_STAGES)


def stage_index(stage: Stage) -> int:
    return STAGE_ORDER.index(stage)


def stage_contribution(progress: StageProgress) -> float:
    """Weighted progress one stage contributes to the 0-100 total."""
    if progress.status in (StageStatus.COMPLETED, StageStatus.SKIPPED):
        return STAGE_WEIGHT
    if progress.status == StageStatus.IN_PROGRESS and progress.total_questions > 0:
        fraction = min(progress.answered_questions / progress.total_questions, 1.0)
        return STAGE_WEIGHT * fraction
    return 0.0


def stage_completion_rate(progress: StageProgress) -> float:
    """1.0 if completed, answered/total (capped at 1) while in progress, else 0."""
    if progress.status == StageStatus.COMPLETED:
        return 1.0
    if progress.status == StageStatus.IN_PROGRESS and progress.total_questions > 0:
        return min(progress.answered_questions / progress.total_questions, 1.0)
    return 0.0


def calculate_overall_progress(state: ConversationState) -> int:
    """Recompute progress from the stage records (ignores the stored value)."""
    total = sum(stage_contribution(state.stage_progresses[s]) for s in CONTENT_STAGES)
    return int(round(min(total, 100.0)))


class StageStateMachine:
    """
    Pure transition logic over ConversationState.

    Usage:
        sm = StageStateMachine()
        state = sm.create_state("s1", "u1", "fintech")
        state = sm.record_response(state, QuestionResponse(...))
        state = sm.advance_stage(state, Stage.USER_WORKFLOW)
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_state(self, session_id: str, user_id: str = "", domain: str = "general") -> ConversationState:
        if not session_id:
            raise ValidationError("session_id is required")
        now = self.clock()
        counts = get_stage_question_counts(domain)
        progresses: Dict[Stage, StageProgress] = {}
        for stage in CONTENT_STAGES:
            first = stage == Stage.IDEA_CLARITY
            progresses[stage] = StageProgress(
                stage=stage,
                status=StageStatus.IN_PROGRESS if first else StageStatus.NOT_STARTED,
                total_questions=counts[stage],
                start_time=now if first else None,
            )
        return ConversationState(
            session_id=session_id,
            user_id=user_id,
            domain=domain,
            current_stage=Stage.IDEA_CLARITY,
            overall_progress=0,
            stage_progresses=progresses,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def advance_stage(self, state: ConversationState, stage: Stage) -> ConversationState:
        """
        Move forward to ``stage``. The current stage is marked completed;
        content stages jumped over without being started become skipped.
        Same-stage or backward moves raise StateError.
        """
        target = Stage(stage)
        current = state.current_stage
        if stage_index(target) <= stage_index(current):
            raise StateError(
                f"Invalid stage transition for session {state.session_id}: "
                f"{current.value} -> {target.value}"
            )

        new = copy.deepcopy(state)
        now = self.clock()

        self._complete(new, current, now)
        for stage_between in STAGE_ORDER[stage_index(current) + 1:stage_index(target)]:
            progress = new.stage_progresses.get(stage_between)
            if progress is not None and progress.status == StageStatus.NOT_STARTED:
                progress.status = StageStatus.SKIPPED

        if target == Stage.COMPLETED:
            new.current_stage = Stage.COMPLETED
        else:
            new.current_stage = target
            progress = new.stage_progresses[target]
            if progress.status == StageStatus.NOT_STARTED:
                progress.status = StageStatus.IN_PROGRESS
                progress.start_time = now

        logger.info(f"[StateMachine] {state.session_id}: {current.value} -> {new.current_stage.value}")
        return self._touch(new, state, now)

    def mark_stage_complete(self, state: ConversationState, stage: Stage) -> ConversationState:
        """
        Complete the current content stage. Completing wireframes ends the
        session; naming any other stage raises StateError.
        """
        target = Stage(stage)
        if target not in state.stage_progresses:
            raise StateError(f"Stage {target.value} has no progress record")
        if target != state.current_stage:
            raise StateError(
                f"Cannot complete {target.value} for session {state.session_id}: "
                f"current stage is {state.current_stage.value}"
            )
        new = copy.deepcopy(state)
        now = self.clock()
        self._complete(new, target, now)
        return self._touch(new, state, now)

    def skip_stage(self, state: ConversationState, stage: Stage) -> ConversationState:
        """Mark a stage that has not started yet as skipped."""
        target = Stage(stage)
        progress = state.stage_progresses.get(target)
        if progress is None:
            raise StateError(f"Stage {target.value} has no progress record")
        if progress.status != StageStatus.NOT_STARTED:
            raise StateError(
                f"Only not-started stages can be skipped; {target.value} is {progress.status.value}"
            )
        new = copy.deepcopy(state)
        new.stage_progresses[target].status = StageStatus.SKIPPED
        return self._touch(new, state, self.clock())

    def record_response(self, state: ConversationState, response: QuestionResponse) -> ConversationState:
        """Append a response to the current stage and bump its counters."""
        if state.current_stage == Stage.COMPLETED:
            raise StateError(f"Session {state.session_id} is already completed")
        new = copy.deepcopy(state)
        progress = new.stage_progresses[new.current_stage]
        progress.responses.append(response)
        if response.is_skipped:
            progress.skipped_questions += 1
        else:
            progress.answered_questions += 1
        return self._touch(new, state, self.clock())

    def trigger_escape(self, state: ConversationState, stage: Optional[Stage] = None) -> ConversationState:
        """
        Record an escape. The flag is set once and never cleared; repeated
        triggers only move escape_stage / escape_timestamp.
        """
        new = copy.deepcopy(state)
        now = self.clock()
        new.escape_triggered = True
        new.escape_stage = Stage(stage) if stage is not None else state.current_stage
        new.escape_timestamp = now
        return self._touch(new, state, now)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _complete(self, state: ConversationState, stage: Stage, now: datetime) -> None:
        progress = state.stage_progresses.get(stage)
        if progress is None:
            return
        if progress.status != StageStatus.COMPLETED:
            progress.status = StageStatus.COMPLETED
            progress.completion_time = now
        if stage == Stage.WIREFRAMES:
            state.current_stage = Stage.COMPLETED

    def _touch(self, new: ConversationState, previous: ConversationState, now: datetime) -> ConversationState:
        # Progress never goes backwards within a session
        new.overall_progress = max(previous.overall_progress, calculate_overall_progress(new))
        new.updated_at = now
        # Escape flag is sticky
        new.escape_triggered = new.escape_triggered or previous.escape_triggered
        return new
