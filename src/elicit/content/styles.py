"""
Questioning style profiles.

Seven fixed styles. Each one bundles six characteristic dials, prompt
modifiers, question patterns and a generation temperature. The
question generator reads these verbatim into its prompt.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from ..core.errors import ConfigurationError
from ..core.types import QuestioningStyle


@dataclass(frozen=True)
class StyleCharacteristics:
    complexity: str     # low | medium | high | expert
    pace: str           # slow | moderate | fast | rapid
    terminology: str    # simple | business | technical | expert
    depth: str          # surface | moderate | deep | comprehensive
    examples: str       # many | some | few | none
    assumptions: str    # minimal | moderate | significant | extensive


@dataclass(frozen=True)
class PromptModifiers:
    tone: str
    structure: str
    focus: str
    constraints: List[str]


@dataclass(frozen=True)
class QuestionPatterns:
    opening_style: str
    follow_up_approach: str
    clarification_method: str
    progression_logic: str


@dataclass(frozen=True)
class StyleProfile:
    style: QuestioningStyle
    characteristics: StyleCharacteristics
    modifiers: PromptModifiers
    patterns: QuestionPatterns
    temperature: float
    # Sophistication this style is pitched at, used by the effectiveness monitor
    expected_complexity: float


S = QuestioningStyle

STYLE_PROFILES: Dict[QuestioningStyle, StyleProfile] = {
    S.NOVICE_FRIENDLY: StyleProfile(
        style=S.NOVICE_FRIENDLY,
        characteristics=StyleCharacteristics("low", "slow", "simple", "surface", "many", "minimal"),
        modifiers=PromptModifiers(
            tone="Patient, educational, encouraging",
            structure="Step-by-step, logical progression",
            focus="Understanding basics, building confidence",
            constraints=["Avoid jargon", "Provide examples", "Check understanding frequently"],
        ),
        patterns=QuestionPatterns(
            opening_style="Start with simple, concrete questions about familiar concepts",
            follow_up_approach="Build gradually on previous answers with gentle guidance",
            clarification_method="Use analogies and examples to explain concepts",
            progression_logic="Move slowly, ensure understanding before advancing",
        ),
        temperature=0.3,
        expected_complexity=0.2,
    ),
    S.INTERMEDIATE_GUIDED: StyleProfile(
        style=S.INTERMEDIATE_GUIDED,
        characteristics=StyleCharacteristics("medium", "moderate", "business", "moderate", "some", "moderate"),
        modifiers=PromptModifiers(
            tone="Professional, supportive, balanced",
            structure="Structured but flexible, some technical depth",
            focus="Practical application, business value",
            constraints=["Mix simple and business terms", "Provide context", "Balance depth with clarity"],
        ),
        patterns=QuestionPatterns(
            opening_style="Ask about business goals and practical challenges",
            follow_up_approach="Dive deeper into specific areas of interest",
            clarification_method="Use business scenarios and practical examples",
            progression_logic="Balance exploration with focused inquiry",
        ),
        temperature=0.4,
        expected_complexity=0.5,
    ),
    S.ADVANCED_TECHNICAL: StyleProfile(
        style=S.ADVANCED_TECHNICAL,
        characteristics=StyleCharacteristics("high", "fast", "technical", "deep", "few", "significant"),
        modifiers=PromptModifiers(
            tone="Technical, precise, efficient",
            structure="Direct, assumes technical knowledge",
            focus="Technical implementation, architecture, integration",
            constraints=["Use industry terminology", "Assume technical competence", "Focus on implementation details"],
        ),
        patterns=QuestionPatterns(
            opening_style="Jump into technical specifics and architecture",
            follow_up_approach="Explore technical depth and implementation challenges",
            clarification_method="Reference technical standards and best practices",
            progression_logic="Move quickly through technical concepts",
        ),
        temperature=0.5,
        expected_complexity=0.7,
    ),
    S.EXPERT_EFFICIENT: StyleProfile(
        style=S.EXPERT_EFFICIENT,
        characteristics=StyleCharacteristics("expert", "rapid", "expert", "comprehensive", "none", "extensive"),
        modifiers=PromptModifiers(
            tone="Peer-level, efficient, assumes deep expertise",
            structure="Rapid-fire, high-level strategic",
            focus="Strategic decisions, trade-offs, optimization",
            constraints=["Assume expert knowledge", "Skip basics entirely", "Focus on strategic decisions"],
        ),
        patterns=QuestionPatterns(
            opening_style="Ask about strategic trade-offs and optimization",
            follow_up_approach="Rapid exploration of complex scenarios",
            clarification_method="Reference industry best practices and standards",
            progression_logic="Move at expert pace, assume deep knowledge",
        ),
        temperature=0.6,
        expected_complexity=0.9,
    ),
    S.IMPATIENT_ACCELERATED: StyleProfile(
        style=S.IMPATIENT_ACCELERATED,
        characteristics=StyleCharacteristics("medium", "rapid", "business", "moderate", "few", "extensive"),
        modifiers=PromptModifiers(
            tone="Quick, decisive, results-focused",
            structure="Streamlined, assumption-heavy",
            focus="Key decisions, critical path items",
            constraints=["Make reasonable assumptions", "Focus on essentials", "Minimize back-and-forth"],
        ),
        patterns=QuestionPatterns(
            opening_style="Ask about the most critical decisions first",
            follow_up_approach="Focus on high-impact areas only",
            clarification_method="Make smart assumptions and validate quickly",
            progression_logic="Prioritize speed over completeness",
        ),
        temperature=0.7,
        expected_complexity=0.8,
    ),
    S.CONFUSED_SUPPORTIVE: StyleProfile(
        style=S.CONFUSED_SUPPORTIVE,
        characteristics=StyleCharacteristics("low", "slow", "simple", "surface", "many", "minimal"),
        modifiers=PromptModifiers(
            tone="Patient, empathetic, reassuring",
            structure="Very clear, step-by-step guidance",
            focus="Clarity, understanding, confidence building",
            constraints=["Use simple language", "Provide multiple examples", "Check understanding constantly"],
        ),
        patterns=QuestionPatterns(
            opening_style="Start with the simplest possible questions",
            follow_up_approach="Break complex topics into small pieces",
            clarification_method="Use multiple examples and analogies",
            progression_logic="Move very slowly, ensure complete understanding",
        ),
        temperature=0.2,
        expected_complexity=0.1,
    ),
    S.COLLABORATIVE_EXPLORATORY: StyleProfile(
        style=S.COLLABORATIVE_EXPLORATORY,
        characteristics=StyleCharacteristics("medium", "moderate", "business", "moderate", "some", "moderate"),
        modifiers=PromptModifiers(
            tone="Collaborative, curious, open-ended",
            structure="Flexible, discovery-oriented",
            focus="Exploration, creativity, possibilities",
            constraints=["Encourage exploration", "Ask open-ended questions", "Build on user ideas"],
        ),
        patterns=QuestionPatterns(
            opening_style="Ask open-ended questions about possibilities",
            follow_up_approach="Explore interesting directions together",
            clarification_method="Build on user ideas and expand possibilities",
            progression_logic="Follow user interest and energy",
        ),
        temperature=0.8,
        expected_complexity=0.6,
    ),
}


def get_style_profile(style: QuestioningStyle | str) -> StyleProfile:
    """Look up a style profile. Raises ConfigurationError for unknown styles."""
    try:
        key = QuestioningStyle(style)
    except ValueError:
        raise ConfigurationError(f"Unknown questioning style: {style!r}") from None
    profile = STYLE_PROFILES.get(key)
    if profile is None:
        raise ConfigurationError(f"No profile configured for style: {key.value}")
    return profile
