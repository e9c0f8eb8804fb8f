"""
Data types for the Elicit discovery interview.

Everything that flows between the analyzer, pivot engine, style selector,
assumption generator and state machine is defined here as plain dataclasses.
Pipeline steps never mutate these in place: they build new values with
``dataclasses.replace`` and return them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


# =============================================================================
# ENUMS
# =============================================================================

class Stage(str, Enum):
    """Ordered stages of the discovery conversation."""
    IDEA_CLARITY = "idea_clarity"
    USER_WORKFLOW = "user_workflow"
    TECHNICAL_SPECS = "technical_specs"
    WIREFRAMES = "wireframes"
    COMPLETED = "completed"


# Fixed order used for every transition check
STAGE_ORDER: List[Stage] = [
    Stage.IDEA_CLARITY,
    Stage.USER_WORKFLOW,
    Stage.TECHNICAL_SPECS,
    Stage.WIREFRAMES,
    Stage.COMPLETED,
]

# The four stages that carry questions and progress weight
CONTENT_STAGES: List[Stage] = STAGE_ORDER[:-1]


class StageStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class QuestioningStyle(str, Enum):
    """Discrete questioning styles the selector can choose from."""
    NOVICE_FRIENDLY = "novice-friendly"
    INTERMEDIATE_GUIDED = "intermediate-guided"
    ADVANCED_TECHNICAL = "advanced-technical"
    EXPERT_EFFICIENT = "expert-efficient"
    IMPATIENT_ACCELERATED = "impatient-accelerated"
    CONFUSED_SUPPORTIVE = "confused-supportive"
    COLLABORATIVE_EXPLORATORY = "collaborative-exploratory"


class SophisticationLevel(str, Enum):
    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class EngagementPattern(str, Enum):
    HIGHLY_ENGAGED = "highly-engaged"
    ENGAGED = "engaged"
    MODERATELY_ENGAGED = "moderately-engaged"
    DISENGAGED = "disengaged"
    UNKNOWN = "unknown"


# =============================================================================
# USER PROFILE + CONTEXT
# =============================================================================

@dataclass
class UserProfile:
    """What we currently believe about the person being interviewed."""
    role: str = "unknown"
    sophistication_level: SophisticationLevel = SophisticationLevel.INTERMEDIATE
    engagement_pattern: EngagementPattern = EngagementPattern.UNKNOWN
    domain_knowledge: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "sophistication_level": self.sophistication_level.value,
            "engagement_pattern": self.engagement_pattern.value,
            "domain_knowledge": dict(self.domain_knowledge),
        }


# =============================================================================
# RESPONSE ANALYSIS
# =============================================================================

@dataclass
class _ScoreGroup:
    """Five-field score breakdown. Subclasses only declare the fields."""

    def values(self) -> np.ndarray:
        return np.array([getattr(self, f.name) for f in fields(self)], dtype=np.float64)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: float(getattr(self, f.name)) for f in fields(self)}


@dataclass
class SophisticationBreakdown(_ScoreGroup):
    technical_language: float = 0.5
    domain_specificity: float = 0.5
    complexity_handling: float = 0.5
    business_acumen: float = 0.5
    communication_clarity: float = 0.5


@dataclass
class ClarityMetrics(_ScoreGroup):
    specificity: float = 0.5
    structured_thinking: float = 0.5
    completeness: float = 0.5
    relevance: float = 0.5
    actionability: float = 0.5


@dataclass
class EngagementMetrics(_ScoreGroup):
    enthusiasm: float = 0.5
    interest_level: float = 0.5
    participation_quality: float = 0.5
    proactiveness: float = 0.5
    collaborative_spirit: float = 0.5


@dataclass
class FatigueSignal:
    detected: bool = False
    confidence: float = 0.0
    indicators: List[str] = field(default_factory=list)


@dataclass
class ExpertiseSignal:
    detected: bool = False
    confidence: float = 0.0
    suggested_skip_level: str = "basics"      # basics | intermediate | advanced


@dataclass
class ImpatienceSignal:
    detected: bool = False
    confidence: float = 0.0
    urgency_level: str = "mild"               # mild | moderate | high


@dataclass
class ConfusionSignal:
    detected: bool = False
    confidence: float = 0.0
    support_level: str = "clarification"      # clarification | guidance | restart


@dataclass
class RedirectSignal:
    detected: bool = False
    confidence: float = 0.0
    requested_destination: Optional[str] = None


@dataclass
class EscapeSignalSet:
    """Five independent escape signals; several may fire at once."""
    fatigue: FatigueSignal = field(default_factory=FatigueSignal)
    expertise: ExpertiseSignal = field(default_factory=ExpertiseSignal)
    impatience: ImpatienceSignal = field(default_factory=ImpatienceSignal)
    confusion: ConfusionSignal = field(default_factory=ConfusionSignal)
    redirect: RedirectSignal = field(default_factory=RedirectSignal)

    def detected(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name).detected]

    def to_dict(self) -> Dict[str, Any]:
        return {
            f.name: dict(vars(getattr(self, f.name)))
            for f in fields(self)
        }


@dataclass
class AnalysisConfidence(_ScoreGroup):
    overall: float = 0.7
    sophistication: float = 0.7
    clarity: float = 0.7
    engagement: float = 0.7
    escape_signals: float = 0.7


@dataclass
class AdaptationRecommendations:
    next_question_complexity: str = "intermediate"
    suggested_approach: str = "business"      # technical | business | exploratory | validating
    tone_adjustment: str = "maintain"
    pacing_recommendation: str = "maintain"   # slow_down | maintain | speed_up | pivot
    topic_focus: List[str] = field(default_factory=list)


@dataclass
class ResponseAnalysis:
    """Multi-dimensional reading of one user utterance."""
    sophistication_score: float = 0.5
    engagement_level: float = 0.5
    clarity_score: float = 0.5
    sophistication_breakdown: SophisticationBreakdown = field(default_factory=SophisticationBreakdown)
    clarity_metrics: ClarityMetrics = field(default_factory=ClarityMetrics)
    engagement_metrics: EngagementMetrics = field(default_factory=EngagementMetrics)
    escape_signals: EscapeSignalSet = field(default_factory=EscapeSignalSet)
    extracted_entities: List[str] = field(default_factory=list)
    sentiment: str = "neutral"
    analysis_confidence: AnalysisConfidence = field(default_factory=AnalysisConfidence)
    domain_knowledge: Dict[str, Any] = field(default_factory=dict)
    adaptation_recommendations: AdaptationRecommendations = field(default_factory=AdaptationRecommendations)
    suggested_adaptations: List[str] = field(default_factory=list)
    next_question_hints: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sophistication_score": self.sophistication_score,
            "engagement_level": self.engagement_level,
            "clarity_score": self.clarity_score,
            "sophistication_breakdown": self.sophistication_breakdown.to_dict(),
            "clarity_metrics": self.clarity_metrics.to_dict(),
            "engagement_metrics": self.engagement_metrics.to_dict(),
            "escape_signals": self.escape_signals.to_dict(),
            "extracted_entities": list(self.extracted_entities),
            "sentiment": self.sentiment,
            "analysis_confidence": self.analysis_confidence.to_dict(),
            "domain_knowledge": dict(self.domain_knowledge),
            "adaptation_recommendations": dict(vars(self.adaptation_recommendations)),
            "suggested_adaptations": list(self.suggested_adaptations),
            "next_question_hints": list(self.next_question_hints),
            "metadata": dict(self.metadata),
        }


# =============================================================================
# QUESTIONS + HISTORY
# =============================================================================

@dataclass
class Question:
    """A generated interview question."""
    question: str
    question_type: str = "exploration"
    sophistication_level: str = "intermediate"
    domain_context: str = ""
    follow_up_suggestions: List[str] = field(default_factory=list)
    confidence: float = 0.8
    reasoning: str = ""
    expected_response_types: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "question_type": self.question_type,
            "sophistication_level": self.sophistication_level,
            "domain_context": self.domain_context,
            "follow_up_suggestions": list(self.follow_up_suggestions),
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "expected_response_types": list(self.expected_response_types),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ConversationExchange:
    """One answered turn. Never modified once appended to history."""
    user_response: str
    analysis: Optional[ResponseAnalysis]
    question: Optional[Question]
    timestamp: datetime
    stage: Stage


@dataclass
class ConversationContext:
    """Everything the pipeline needs to process one turn."""
    session_id: str
    domain: str
    stage: Stage = Stage.IDEA_CLARITY
    user_profile: UserProfile = field(default_factory=UserProfile)
    history: List[ConversationExchange] = field(default_factory=list)
    current_question: Optional[Question] = None
    last_updated: datetime = field(default_factory=utcnow)

    @property
    def latest_response(self) -> str:
        return self.history[-1].user_response if self.history else ""


# =============================================================================
# ASSUMPTIONS + PIVOT
# =============================================================================

@dataclass
class Assumption:
    id: str
    category: str          # user_target | problem_definition | technical_requirements | business_model | constraints
    title: str
    description: str
    confidence: float
    reasoning: str = ""
    impact: str = "medium"  # low | medium | high
    dependencies: List[str] = field(default_factory=list)
    validation_questions: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "impact": self.impact,
            "dependencies": list(self.dependencies),
            "validation_questions": list(self.validation_questions),
            "alternatives": list(self.alternatives),
        }


@dataclass
class GenerationMetadata:
    generated_at: datetime
    model: str
    tokens: int = 0
    latency_ms: float = 0.0
    escape_signal_trigger: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "model": self.model,
            "tokens": self.tokens,
            "latency_ms": self.latency_ms,
            "escape_signal_trigger": self.escape_signal_trigger,
        }


@dataclass
class AssumptionSet:
    assumptions: List[Assumption]
    confidence: float
    reasoning: str
    missing_critical_info: List[str]
    recommended_next_steps: List[str]
    metadata: GenerationMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assumptions": [a.to_dict() for a in self.assumptions],
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "missing_critical_info": list(self.missing_critical_info),
            "recommended_next_steps": list(self.recommended_next_steps),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssumptionSet":
        meta = data.get("metadata") or {}
        return cls(
            assumptions=[Assumption(**a) for a in data.get("assumptions", [])],
            confidence=float(data.get("confidence", 0.0)),
            reasoning=data.get("reasoning", ""),
            missing_critical_info=list(data.get("missing_critical_info", [])),
            recommended_next_steps=list(data.get("recommended_next_steps", [])),
            metadata=GenerationMetadata(
                generated_at=_parse_dt(meta.get("generated_at")) or utcnow(),
                model=meta.get("model", "unknown"),
                tokens=int(meta.get("tokens", 0)),
                latency_ms=float(meta.get("latency_ms", 0.0)),
                escape_signal_trigger=meta.get("escape_signal_trigger", ""),
            ),
        )


@dataclass
class PivotDecision:
    should_pivot: bool
    pivot_reason: str
    assumption_set: Optional[AssumptionSet] = None
    transition_message: str = ""


# =============================================================================
# CONVERSATION STATE (progress tracking)
# =============================================================================

@dataclass
class QuestionResponse:
    question_id: str
    question: str
    answer: str
    timestamp: datetime = field(default_factory=utcnow)
    confidence: float = 1.0
    is_skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question": self.question,
            "answer": self.answer,
            "timestamp": self.timestamp.isoformat(),
            "confidence": self.confidence,
            "is_skipped": self.is_skipped,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionResponse":
        return cls(
            question_id=data["question_id"],
            question=data["question"],
            answer=data["answer"],
            timestamp=_parse_dt(data["timestamp"]),
            confidence=float(data.get("confidence", 1.0)),
            is_skipped=bool(data.get("is_skipped", False)),
        )


@dataclass
class StageProgress:
    stage: Stage
    status: StageStatus
    total_questions: int
    answered_questions: int = 0
    skipped_questions: int = 0
    responses: List[QuestionResponse] = field(default_factory=list)
    start_time: Optional[datetime] = None
    completion_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "status": self.status.value,
            "total_questions": self.total_questions,
            "answered_questions": self.answered_questions,
            "skipped_questions": self.skipped_questions,
            "responses": [r.to_dict() for r in self.responses],
            "start_time": _iso(self.start_time),
            "completion_time": _iso(self.completion_time),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StageProgress":
        return cls(
            stage=Stage(data["stage"]),
            status=StageStatus(data["status"]),
            total_questions=int(data["total_questions"]),
            answered_questions=int(data.get("answered_questions", 0)),
            skipped_questions=int(data.get("skipped_questions", 0)),
            responses=[QuestionResponse.from_dict(r) for r in data.get("responses", [])],
            start_time=_parse_dt(data.get("start_time")),
            completion_time=_parse_dt(data.get("completion_time")),
        )


@dataclass
class ConversationState:
    """Per-session progress record. One StageProgress per content stage."""
    session_id: str
    user_id: str
    domain: str
    current_stage: Stage
    overall_progress: int
    stage_progresses: Dict[Stage, StageProgress]
    created_at: datetime
    updated_at: datetime
    escape_triggered: bool = False
    escape_stage: Optional[Stage] = None
    escape_timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "domain": self.domain,
            "current_stage": self.current_stage.value,
            "overall_progress": self.overall_progress,
            "stage_progresses": {
                stage.value: progress.to_dict()
                for stage, progress in self.stage_progresses.items()
            },
            "escape_triggered": self.escape_triggered,
            "escape_stage": self.escape_stage.value if self.escape_stage else None,
            "escape_timestamp": _iso(self.escape_timestamp),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationState":
        progresses = {
            Stage(key): StageProgress.from_dict(value)
            for key, value in data["stage_progresses"].items()
        }
        # Keep the fixed stage order regardless of how the dict was stored
        ordered = {stage: progresses[stage] for stage in CONTENT_STAGES if stage in progresses}
        return cls(
            session_id=data["session_id"],
            user_id=data.get("user_id", ""),
            domain=data.get("domain", "general"),
            current_stage=Stage(data["current_stage"]),
            overall_progress=int(data["overall_progress"]),
            stage_progresses=ordered,
            escape_triggered=bool(data.get("escape_triggered", False)),
            escape_stage=Stage(data["escape_stage"]) if data.get("escape_stage") else None,
            escape_timestamp=_parse_dt(data.get("escape_timestamp")),
            created_at=_parse_dt(data["created_at"]),
            updated_at=_parse_dt(data["updated_at"]),
        )


@dataclass
class ConversationMetrics:
    total_duration: float = 0.0          # seconds
    average_response_time: float = 0.0  # seconds
    completion_rate: float = 0.0
    escape_rate: float = 0.0
    stage_completion_rates: Dict[Stage, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_duration": self.total_duration,
            "average_response_time": self.average_response_time,
            "completion_rate": self.completion_rate,
            "escape_rate": self.escape_rate,
            "stage_completion_rates": {
                stage.value: rate for stage, rate in self.stage_completion_rates.items()
            },
        }
