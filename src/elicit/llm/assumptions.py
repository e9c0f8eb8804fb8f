"""
AssumptionGenerator: fills the gaps with working assumptions when the
conversation pivots.

Generation never fails from the caller's point of view: any error on the
generative path falls back to a small, deterministic, domain-keyed set.
Refinement returns the original set unchanged when it cannot produce a
better one.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from ..content.domains import (
    FALLBACK_ASSUMPTIONS,
    FALLBACK_MISSING_INFO,
    FALLBACK_NEXT_STEPS,
    resolve_domain,
)
from ..content.templates import (
    TRANSITION_DEFAULT,
    TRANSITION_EXPERTISE,
    TRANSITION_FATIGUE,
    TRANSITION_IMPATIENCE,
    TRANSITION_REDIRECT,
)
from ..core.errors import ValidationError
from ..core.pivot import DEFAULT_THRESHOLDS, PivotThresholds, check_pivot
from ..core.types import (
    Assumption,
    AssumptionSet,
    ConversationContext,
    EscapeSignalSet,
    GenerationMetadata,
    PivotDecision,
    ResponseAnalysis,
    utcnow,
)
from ..core.utils import clamp01
from .client import TextGenerator
from .json_utils import require_json_object

logger = logging.getLogger(__name__)

ASSUMPTION_TEMPERATURE = 0.3
ASSUMPTION_MAX_TOKENS = 2000
FALLBACK_CONFIDENCE = 0.6

IMPACT_LEVELS = ("low", "medium", "high")

GENERATION_PROMPT = """\
You are an expert {domain} consultant generating working assumptions for a \
product discovery session.

CONTEXT:
- Domain: {domain}
- Current Stage: {stage}
- User Role: {role}
- User Sophistication: {sophistication}
- Pivot Reason: {reason}
- Conversation Length: {n_exchanges} exchanges
- Latest sophistication score: {soph:.2f}
- Latest engagement level: {eng:.2f}

CONVERSATION SUMMARY:
{summary}

TASK:
Generate assumptions that fill the gaps in the conversation, match the
user's demonstrated expertise, are reasonable for the {domain} domain, let
the conversation move to the next stage, and carry validation questions
for the critical ones.

Categories: user_target, problem_definition, technical_requirements,
business_model, constraints.

Respond with valid JSON only, no other text:
{{
  "assumptions": [
    {{
      "category": "user_target|problem_definition|technical_requirements|business_model|constraints",
      "title": "Brief assumption title",
      "description": "Detailed assumption description",
      "confidence": 0.8,
      "reasoning": "Why this assumption is reasonable",
      "impact": "low|medium|high",
      "dependencies": ["titles of assumptions this depends on"],
      "validation_questions": ["questions to validate this assumption"],
      "alternatives": ["alternatives if this is wrong"]
    }}
  ],
  "confidence": 0.75,
  "reasoning": "Overall reasoning for this assumption set",
  "missing_critical_info": ["critical information still needed"],
  "recommended_next_steps": ["what to do once assumptions are validated"]
}}"""

REFINEMENT_PROMPT = """\
You are refining product assumptions based on user feedback.

ORIGINAL ASSUMPTIONS:
{assumptions}

USER FEEDBACK:
"{feedback}"

CONTEXT:
- Domain: {domain}
- User Sophistication: {sophistication}
- Original Confidence: {confidence:.2f}

TASK:
Modify the assumptions the user corrected, add new ones from their input,
remove the ones they rejected, keep the set consistent, and update
confidence levels to reflect what the user validated.

Respond with valid JSON only, in the same format as the original set:
{{
  "assumptions": [...],
  "confidence": 0.85,
  "reasoning": "How the assumptions were refined",
  "missing_critical_info": [...],
  "recommended_next_steps": [...]
}}"""


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _build_assumptions(raw_items: Any, prefix: str) -> List[Assumption]:
    """Stamp fresh ids on well-formed entries; drop entries without a title."""
    if not isinstance(raw_items, list):
        return []
    built = []
    for item in raw_items:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        impact = str(item.get("impact", "medium")).lower()
        built.append(Assumption(
            id=_new_id(prefix),
            category=str(item.get("category", "constraints")),
            title=str(item["title"]),
            description=str(item.get("description", "")),
            confidence=clamp01(item.get("confidence", 0.5)),
            reasoning=str(item.get("reasoning", "")),
            impact=impact if impact in IMPACT_LEVELS else "medium",
            dependencies=_str_list(item.get("dependencies")),
            validation_questions=_str_list(item.get("validation_questions")),
            alternatives=_str_list(item.get("alternatives")),
        ))
    return built


def transition_message(signals: EscapeSignalSet) -> str:
    """User-facing message that introduces the pivot."""
    if signals.expertise.detected:
        return TRANSITION_EXPERTISE.format(skip_level=signals.expertise.suggested_skip_level)
    if signals.impatience.detected:
        return TRANSITION_IMPATIENCE
    if signals.redirect.detected and signals.redirect.requested_destination:
        return TRANSITION_REDIRECT.format(destination=signals.redirect.requested_destination)
    if signals.fatigue.detected:
        return TRANSITION_FATIGUE
    return TRANSITION_DEFAULT


class AssumptionGenerator:
    """
    Generates and refines AssumptionSets through a TextGenerator.

    Usage:
        gen = AssumptionGenerator(client)
        decision = gen.should_pivot_to_assumptions(context, analysis)
        if decision.should_pivot:
            show(decision.transition_message, decision.assumption_set)
    """

    def __init__(self, generator: TextGenerator, thresholds: PivotThresholds = DEFAULT_THRESHOLDS):
        self.generator = generator
        self.thresholds = thresholds

    @property
    def model_name(self) -> str:
        return getattr(self.generator, "model", "") or type(self.generator).__name__

    def check_pivot_conditions(self, context: ConversationContext, analysis: ResponseAnalysis) -> PivotDecision:
        """Pivot check alone, without paying for generation."""
        return check_pivot(context, analysis, self.thresholds)

    def should_pivot_to_assumptions(
        self,
        context: ConversationContext,
        analysis: ResponseAnalysis,
    ) -> PivotDecision:
        decision = self.check_pivot_conditions(context, analysis)
        if not decision.should_pivot:
            return decision
        assumption_set = self.generate_assumptions(context, analysis, decision.pivot_reason)
        return PivotDecision(
            should_pivot=True,
            pivot_reason=decision.pivot_reason,
            assumption_set=assumption_set,
            transition_message=transition_message(analysis.escape_signals),
        )

    def generate_assumptions(
        self,
        context: ConversationContext,
        analysis: Optional[ResponseAnalysis],
        reason: str,
    ) -> AssumptionSet:
        if context is None or not context.session_id:
            raise ValidationError("context with a session_id is required")
        analysis = analysis or ResponseAnalysis()

        prompt = GENERATION_PROMPT.format(
            domain=context.domain,
            stage=context.stage.value,
            role=context.user_profile.role,
            sophistication=context.user_profile.sophistication_level.value,
            reason=reason,
            n_exchanges=len(context.history),
            soph=analysis.sophistication_score,
            eng=analysis.engagement_level,
            summary=self._summarize(context),
        )

        start = time.monotonic()
        try:
            raw = self.generator.generate(prompt, ASSUMPTION_TEMPERATURE, ASSUMPTION_MAX_TOKENS)
            data = require_json_object(raw, "assumption generation")
            assumptions = _build_assumptions(data.get("assumptions"), "assumption")
            if not assumptions:
                raise ValueError("response has no usable assumptions")
        except Exception as e:
            logger.warning(f"[Assumptions] Generation failed, using fallback: {e}")
            return self.fallback_assumptions(context, reason)

        latency_ms = (time.monotonic() - start) * 1000.0
        logger.info(f"[Assumptions] Generated {len(assumptions)} assumptions for {context.session_id}")
        return AssumptionSet(
            assumptions=assumptions,
            confidence=clamp01(data.get("confidence", 0.7)),
            reasoning=str(data.get("reasoning") or "Generated based on conversation context"),
            missing_critical_info=_str_list(data.get("missing_critical_info")),
            recommended_next_steps=_str_list(data.get("recommended_next_steps")),
            metadata=GenerationMetadata(
                generated_at=utcnow(),
                model=self.model_name,
                tokens=len(raw.split()),
                latency_ms=round(latency_ms, 1),
                escape_signal_trigger=reason,
            ),
        )

    def fallback_assumptions(self, context: ConversationContext, reason: str) -> AssumptionSet:
        """Deterministic domain-keyed set; never empty."""
        templates = FALLBACK_ASSUMPTIONS[resolve_domain(context.domain)]
        return AssumptionSet(
            assumptions=_build_assumptions(templates, "fallback_assumption"),
            confidence=FALLBACK_CONFIDENCE,
            reasoning=f"Fallback assumptions generated for {context.domain} domain due to: {reason}",
            missing_critical_info=list(FALLBACK_MISSING_INFO),
            recommended_next_steps=list(FALLBACK_NEXT_STEPS),
            metadata=GenerationMetadata(
                generated_at=utcnow(),
                model="fallback",
                escape_signal_trigger=reason,
            ),
        )

    def refine_assumptions(
        self,
        original: AssumptionSet,
        feedback: str,
        context: ConversationContext,
    ) -> AssumptionSet:
        """New set from user feedback; the original on any failure."""
        if not feedback or not feedback.strip():
            raise ValidationError("feedback must be a non-empty string")

        prompt = REFINEMENT_PROMPT.format(
            assumptions=json.dumps([a.to_dict() for a in original.assumptions], indent=2),
            feedback=feedback,
            domain=context.domain,
            sophistication=context.user_profile.sophistication_level.value,
            confidence=original.confidence,
        )
        try:
            raw = self.generator.generate(prompt, ASSUMPTION_TEMPERATURE, ASSUMPTION_MAX_TOKENS)
            data = require_json_object(raw, "assumption refinement")
            assumptions = _build_assumptions(data.get("assumptions"), "refined_assumption")
            if not assumptions:
                raise ValueError("refinement returned no usable assumptions")
        except Exception as e:
            logger.warning(f"[Assumptions] Refinement failed, keeping original set: {e}")
            return original

        return AssumptionSet(
            assumptions=assumptions,
            confidence=clamp01(data.get("confidence", original.confidence)),
            reasoning=str(data.get("reasoning") or original.reasoning),
            missing_critical_info=_str_list(data.get("missing_critical_info")) or list(original.missing_critical_info),
            recommended_next_steps=_str_list(data.get("recommended_next_steps")) or list(original.recommended_next_steps),
            metadata=original.metadata,
        )

    @staticmethod
    def _summarize(context: ConversationContext) -> str:
        lines = []
        for exchange in context.history:
            question = exchange.question.question if exchange.question else "(opening)"
            lines.append(f"Q: {question}\nA: {exchange.user_response}")
        return "\n\n".join(lines) if lines else "(no exchanges yet)"
