"""
ConversationEngine: the caller-facing operations of the interview.

Each operation is usable on its own so callers (and tests) can run the
pipeline one step at a time. ``take_turn`` composes them in the fixed
per-turn order:

    analyze → pivot check → (pivot)  generate assumptions, mark escape
                          → (else)   select style, generate question
            → record the response on the ConversationState

A turn that fails raises before any new context or state is returned.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

from .errors import StateError, ValidationError
from .pivot import DEFAULT_THRESHOLDS, PivotThresholds
from .state_machine import StageStateMachine
from .style import DEFAULT_BANDS, StyleBands, StyleEffectiveness, monitor_effectiveness, select_style
from .types import (
    AssumptionSet,
    ConversationContext,
    ConversationExchange,
    ConversationState,
    EngagementPattern,
    PivotDecision,
    Question,
    QuestionResponse,
    QuestioningStyle,
    ResponseAnalysis,
    Stage,
    utcnow,
)
from .utils import RECENT_WINDOW, engagement_band, engagement_window, mean, sophistication_band
from ..llm.analyzer import ResponseAnalyzer, monitor_engagement
from ..llm.assumptions import AssumptionGenerator, transition_message
from ..llm.client import TextGenerator
from ..llm.questions import QuestionGenerator

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """Everything one turn produced. ``style``/``question`` are None after a pivot."""
    context: ConversationContext
    state: ConversationState
    analysis: ResponseAnalysis
    pivot: PivotDecision
    style: Optional[QuestioningStyle] = None
    question: Optional[Question] = None
    engagement: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        assumption_set = self.pivot.assumption_set
        return {
            "session_id": self.context.session_id,
            "stage": self.state.current_stage.value,
            "overall_progress": self.state.overall_progress,
            "analysis": self.analysis.to_dict(),
            "pivot": {
                "should_pivot": self.pivot.should_pivot,
                "pivot_reason": self.pivot.pivot_reason,
                "transition_message": self.pivot.transition_message,
                "assumption_set": assumption_set.to_dict() if assumption_set else None,
            },
            "style": self.style.value if self.style else None,
            "question": self.question.to_dict() if self.question else None,
            "engagement": dict(self.engagement),
        }


def update_context(
    context: ConversationContext,
    utterance: str,
    analysis: Optional[ResponseAnalysis],
) -> ConversationContext:
    """
    Append one exchange and refresh the user profile. The input context
    is left untouched; a new one is returned.

    Sophistication level bands the mean sophistication score over all
    analyzed exchanges. Engagement pattern bands the last three exchanges
    and stays "unknown" until there are three.
    """
    if not utterance or not utterance.strip():
        raise ValidationError("utterance must be a non-empty string")
    now = utcnow()
    exchange = ConversationExchange(
        user_response=utterance,
        analysis=analysis,
        question=context.current_question,
        timestamp=now,
        stage=context.stage,
    )
    history = [*context.history, exchange]

    profile = context.user_profile
    scores = [e.analysis.sophistication_score for e in history if e.analysis is not None]
    level = sophistication_band(mean(scores)) if scores else profile.sophistication_level

    pattern = EngagementPattern.UNKNOWN
    if len(history) >= RECENT_WINDOW:
        pattern = engagement_band(mean(engagement_window(history)))

    knowledge = dict(profile.domain_knowledge)
    if analysis is not None:
        knowledge.update(analysis.domain_knowledge)

    new_profile = dataclasses.replace(
        profile,
        sophistication_level=level,
        engagement_pattern=pattern,
        domain_knowledge=knowledge,
    )
    return dataclasses.replace(context, history=history, user_profile=new_profile, last_updated=now)


class ConversationEngine:
    """
    Wires the analyzer, pivot engine, style selector, question generator
    and assumption generator around one TextGenerator.

    Usage:
        engine = ConversationEngine(LLMClient())
        context = engine.new_context("s1", "fintech")
        state = engine.state_machine.create_state("s1", "u1", "fintech")
        result = engine.take_turn(context, "We need SOC2 reporting for banks", state)
    """

    def __init__(
        self,
        generator: TextGenerator,
        thresholds: PivotThresholds = DEFAULT_THRESHOLDS,
        bands: StyleBands = DEFAULT_BANDS,
        state_machine: Optional[StageStateMachine] = None,
    ):
        self.generator = generator
        self.bands = bands
        self.analyzer = ResponseAnalyzer(generator)
        self.assumptions = AssumptionGenerator(generator, thresholds)
        self.questions = QuestionGenerator(generator)
        self.state_machine = state_machine or StageStateMachine()

    # -------------------------------------------------------------------------
    # Single steps
    # -------------------------------------------------------------------------

    def new_context(self, session_id: str, domain: str = "general", stage: Stage = Stage.IDEA_CLARITY) -> ConversationContext:
        if not session_id:
            raise ValidationError("session_id is required")
        return ConversationContext(session_id=session_id, domain=domain or "general", stage=stage)

    def analyze_response(self, utterance: str, context: ConversationContext) -> ResponseAnalysis:
        return self.analyzer.analyze_response(utterance, context)

    def quick_sophistication_check(self, utterance: str, domain: str) -> Dict[str, Any]:
        return self.analyzer.quick_sophistication_check(utterance, domain)

    def monitor_engagement(self, history: Sequence[ConversationExchange]) -> Dict[str, Any]:
        return monitor_engagement(history)

    def check_pivot(self, context: ConversationContext, analysis: ResponseAnalysis) -> PivotDecision:
        return self.assumptions.check_pivot_conditions(context, analysis)

    def generate_assumptions(
        self,
        context: ConversationContext,
        analysis: Optional[ResponseAnalysis],
        reason: str,
    ) -> AssumptionSet:
        return self.assumptions.generate_assumptions(context, analysis, reason)

    def refine_assumptions(
        self,
        original: AssumptionSet,
        feedback: str,
        context: ConversationContext,
    ) -> AssumptionSet:
        return self.assumptions.refine_assumptions(original, feedback, context)

    def select_style(self, context: ConversationContext, analysis: ResponseAnalysis) -> QuestioningStyle:
        return select_style(context, analysis, self.bands)

    def monitor_style(
        self,
        context: ConversationContext,
        current_style: QuestioningStyle,
        analysis: ResponseAnalysis,
    ) -> StyleEffectiveness:
        return monitor_effectiveness(context, current_style, analysis, self.bands)

    def generate_question(
        self,
        context: ConversationContext,
        style: QuestioningStyle,
        analysis: Optional[ResponseAnalysis] = None,
    ) -> Question:
        return self.questions.generate_question(context, style, analysis)

    def update_context(
        self,
        context: ConversationContext,
        utterance: str,
        analysis: Optional[ResponseAnalysis],
    ) -> ConversationContext:
        return update_context(context, utterance, analysis)

    # -------------------------------------------------------------------------
    # Full turn
    # -------------------------------------------------------------------------

    def take_turn(self, context: ConversationContext, utterance: str, state: ConversationState) -> TurnResult:
        if state.current_stage == Stage.COMPLETED:
            raise StateError(f"Session {state.session_id} is already completed")
        if context.stage != state.current_stage:
            context = dataclasses.replace(context, stage=state.current_stage, current_question=None)

        analysis = self.analyze_response(utterance, context)
        answered = context.current_question
        updated = self.update_context(context, utterance, analysis)

        decision = self.check_pivot(updated, analysis)
        style: Optional[QuestioningStyle] = None
        question: Optional[Question] = None

        if decision.should_pivot:
            assumption_set = self.generate_assumptions(updated, analysis, decision.pivot_reason)
            decision = PivotDecision(
                should_pivot=True,
                pivot_reason=decision.pivot_reason,
                assumption_set=assumption_set,
                transition_message=transition_message(analysis.escape_signals),
            )
            new_state = self.state_machine.trigger_escape(state, state.current_stage)
        else:
            style = self.select_style(updated, analysis)
            question = self.generate_question(updated, style, analysis)
            updated = dataclasses.replace(updated, current_question=question)
            new_state = state

        progress = new_state.stage_progresses[new_state.current_stage]
        response = QuestionResponse(
            question_id=f"{new_state.current_stage.value}_{len(progress.responses) + 1}",
            question=answered.question if answered else "",
            answer=utterance,
            confidence=analysis.analysis_confidence.overall,
        )
        new_state = self.state_machine.record_response(new_state, response)

        return TurnResult(
            context=updated,
            state=new_state,
            analysis=analysis,
            pivot=decision,
            style=style,
            question=question,
            engagement=monitor_engagement(updated.history),
        )
