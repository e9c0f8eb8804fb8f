"""
QuestionGenerator: builds the next interview question.

The prompt combines three things: the selected style profile (dials,
modifiers, patterns), the domain expertise profile, and a question
strategy picked from the latest analysis. Failures propagate as
GenerationError; there is no synthetic substitute for a real question.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from ..content.domains import DomainProfile, get_domain_profile
from ..content.styles import StyleProfile, get_style_profile
from ..core.errors import GenerationError, ValidationError
from ..core.types import (
    ConversationContext,
    Question,
    QuestioningStyle,
    ResponseAnalysis,
    SophisticationLevel,
    utcnow,
)
from ..core.utils import clamp01, composite_score
from .client import TextGenerator
from .json_utils import require_json_object

logger = logging.getLogger(__name__)

QUESTION_MAX_TOKENS = 1200


@dataclass(frozen=True)
class QuestionStrategy:
    type: str   # exploration | validation | clarification | technical | business
    reasoning: str
    expected_outcomes: List[str]


def determine_strategy(context: ConversationContext, analysis: ResponseAnalysis) -> QuestionStrategy:
    sophistication = composite_score(analysis.sophistication_breakdown.values())
    engagement = composite_score(analysis.engagement_metrics.values())
    clarity = composite_score(analysis.clarity_metrics.values())
    breakdown = analysis.sophistication_breakdown

    if sophistication >= 0.8 and engagement >= 0.7:
        return QuestionStrategy(
            "technical",
            "User demonstrates high expertise and engagement, explore technical depth",
            ["detailed technical requirements", "architectural preferences", "integration challenges"],
        )
    if clarity < 0.5 or analysis.escape_signals.confusion.detected:
        return QuestionStrategy(
            "clarification",
            "Response lacks clarity or shows confusion",
            ["clearer understanding", "simplified explanation", "concrete examples"],
        )
    if len(context.history) < 3 and sophistication >= 0.4:
        return QuestionStrategy(
            "exploration",
            "Early conversation with a competent user, explore the problem space",
            ["problem identification", "use case definition", "user workflow understanding"],
        )
    if breakdown.business_acumen >= 0.7:
        return QuestionStrategy(
            "business",
            "User shows strong business focus",
            ["business objectives", "success metrics", "stakeholder needs"],
        )
    if breakdown.technical_language >= 0.7 and engagement < 0.6:
        return QuestionStrategy(
            "validation",
            "Technical user with declining engagement, validate understanding",
            ["requirement confirmation", "priority validation", "assumption checking"],
        )
    return QuestionStrategy(
        "exploration",
        "Standard progression, continue exploring requirements",
        ["deeper problem understanding", "requirement refinement", "context building"],
    )


QUESTION_PROMPT = """\
You are an expert {domain} consultant running a product discovery interview.
Ask exactly one question.

QUESTIONING STYLE: {style}
- Complexity: {c.complexity}
- Pace: {c.pace}
- Terminology: {c.terminology}
- Depth: {c.depth}
- Examples: {c.examples}
- Assumptions: {c.assumptions}

STYLE MODIFIERS:
- Tone: {m.tone}
- Structure: {m.structure}
- Focus: {m.focus}
- Constraints: {constraints}

QUESTION PATTERNS:
- Opening: {p.opening_style}
- Follow-up: {p.follow_up_approach}
- Clarification: {p.clarification_method}
- Progression: {p.progression_logic}

CURRENT SITUATION:
- Stage: {stage}
- Strategy: {strategy.type} ({strategy.reasoning})
- Expected outcomes: {outcomes}
- User Sophistication: {soph:.2f} ({level})
- Engagement: {eng:.2f} ({pattern})
- Clarity: {clarity:.2f}

DOMAIN EXPERTISE:
- Key Areas: {d_areas}
- Technical Concepts: {d_concepts}
- Business Drivers: {d_drivers}
- Industry Standards: {d_standards}
- Regulatory Requirements: {d_regulatory}
- Common Challenges: {d_challenges}

RECENT CONVERSATION:
{recent}

Respond with valid JSON only, no other text:
{{
  "question": "The next question",
  "question_type": "exploration|validation|deep-dive|clarification|technical|business",
  "sophistication_level": "novice|intermediate|advanced|expert",
  "domain_context": "Why this question matters in {domain}",
  "follow_up_suggestions": ["follow-ups for different kinds of answer"],
  "confidence": 0.85,
  "reasoning": "Why this question fits the style and strategy",
  "expected_response_types": ["kinds of answer expected"]
}}"""


class QuestionGenerator:
    """Style- and domain-aware question generation over a TextGenerator."""

    def __init__(self, generator: TextGenerator):
        self.generator = generator

    @property
    def model_name(self) -> str:
        return getattr(self.generator, "model", "") or type(self.generator).__name__

    def generate_question(
        self,
        context: ConversationContext,
        style: QuestioningStyle,
        analysis: Optional[ResponseAnalysis] = None,
    ) -> Question:
        if context is None or not context.domain:
            raise ValidationError("context with a domain is required")
        profile = get_style_profile(style)
        if analysis is None:
            latest = context.history[-1].analysis if context.history else None
            analysis = latest or ResponseAnalysis()

        strategy = determine_strategy(context, analysis)
        prompt = self._build_prompt(context, analysis, profile, get_domain_profile(context.domain), strategy)

        start = time.monotonic()
        raw = self.generator.generate(prompt, profile.temperature, QUESTION_MAX_TOKENS)
        latency_ms = (time.monotonic() - start) * 1000.0
        data = require_json_object(raw, "question generation")

        text = str(data.get("question") or "").strip()
        if not text:
            raise GenerationError("question generation: response has no question text")

        level = str(data.get("sophistication_level") or context.user_profile.sophistication_level.value)
        if level not in {lvl.value for lvl in SophisticationLevel}:
            level = context.user_profile.sophistication_level.value

        logger.info(f"[Questions] {context.session_id}: {profile.style.value}/{strategy.type}")
        return Question(
            question=text,
            question_type=str(data.get("question_type") or strategy.type),
            sophistication_level=level,
            domain_context=str(data.get("domain_context") or ""),
            follow_up_suggestions=[str(s) for s in data.get("follow_up_suggestions") or []],
            confidence=clamp01(data.get("confidence", 0.8)),
            reasoning=str(data.get("reasoning") or strategy.reasoning),
            expected_response_types=[str(s) for s in data.get("expected_response_types") or []],
            metadata={
                "model": self.model_name,
                "style": profile.style.value,
                "strategy": strategy.type,
                "temperature": profile.temperature,
                "latency_ms": round(latency_ms, 1),
                "timestamp": utcnow().isoformat(),
            },
        )

    @staticmethod
    def _build_prompt(
        context: ConversationContext,
        analysis: ResponseAnalysis,
        profile: StyleProfile,
        domain: DomainProfile,
        strategy: QuestionStrategy,
    ) -> str:
        recent = []
        for exchange in context.history[-2:]:
            question = exchange.question.question if exchange.question else "Initial question"
            recent.append(f"Q: {question}\nA: {exchange.user_response}")

        return QUESTION_PROMPT.format(
            domain=context.domain,
            style=profile.style.value,
            c=profile.characteristics,
            m=profile.modifiers,
            p=profile.patterns,
            constraints=", ".join(profile.modifiers.constraints),
            stage=context.stage.value,
            strategy=strategy,
            outcomes=", ".join(strategy.expected_outcomes),
            soph=composite_score(analysis.sophistication_breakdown.values()),
            level=context.user_profile.sophistication_level.value,
            eng=composite_score(analysis.engagement_metrics.values()),
            pattern=context.user_profile.engagement_pattern.value,
            clarity=composite_score(analysis.clarity_metrics.values()),
            d_areas=", ".join(domain.expertise_areas),
            d_concepts=", ".join(domain.technical_concepts),
            d_drivers=", ".join(domain.business_drivers),
            d_standards=", ".join(domain.industry_standards),
            d_regulatory=", ".join(domain.regulatory_requirements),
            d_challenges=", ".join(domain.common_challenges),
            recent="\n\n".join(recent) if recent else "(start of conversation)",
        )
