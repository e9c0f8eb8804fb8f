"""
Pydantic request/response models for the Elicit API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.types import Stage


# =============================================================================
# REQUEST MODELS
# =============================================================================

class StartSessionRequest(BaseModel):
    """Request to start a new discovery session."""
    domain: str = Field("general", description="Domain tag: fintech, healthcare, general")
    user_id: str = Field("", description="Opaque id of the person being interviewed")
    role: str = Field("unknown", description="Self-described role of the user")
    session_id: Optional[str] = Field(None, description="Client-chosen id; generated if omitted")


class TurnRequest(BaseModel):
    """One user answer."""
    user_message: str = Field(..., description="User's free-text response")


class StageRequest(BaseModel):
    """Move the session forward to a later stage."""
    stage: Stage


class RefineRequest(BaseModel):
    """Feedback on the current assumption set."""
    feedback: str = Field(..., description="What to add, change or drop")


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class QuestionData(BaseModel):
    question: str
    question_type: str
    sophistication_level: str
    domain_context: str = ""
    follow_up_suggestions: List[str] = []
    confidence: float = 0.8
    reasoning: str = ""
    expected_response_types: List[str] = []


class AssumptionData(BaseModel):
    id: str
    category: str
    title: str
    description: str
    confidence: float
    reasoning: str = ""
    impact: str = "medium"
    dependencies: List[str] = []
    validation_questions: List[str] = []
    alternatives: List[str] = []


class AssumptionSetData(BaseModel):
    assumptions: List[AssumptionData]
    confidence: float
    reasoning: str
    missing_critical_info: List[str] = []
    recommended_next_steps: List[str] = []
    metadata: Dict[str, Any] = {}


class PivotData(BaseModel):
    should_pivot: bool
    pivot_reason: str
    transition_message: str = ""
    assumption_set: Optional[AssumptionSetData] = None
    user_options: Optional[Dict[str, str]] = None


class StartSessionResponse(BaseModel):
    session_id: str
    stage: str
    message: str
    question: QuestionData
    overall_progress: int = 0


class TurnResponse(BaseModel):
    session_id: str
    stage: str
    overall_progress: int
    analysis: Dict[str, Any]
    pivot: PivotData
    style: Optional[str] = None
    question: Optional[QuestionData] = None
    engagement: Dict[str, Any] = {}
    is_complete: bool = False


class MetricsResponse(BaseModel):
    total_duration: float
    average_response_time: float
    completion_rate: float
    escape_rate: float
    stage_completion_rates: Dict[str, float]


class ErrorBody(BaseModel):
    kind: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody
