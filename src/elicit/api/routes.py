"""
REST API routes for Elicit.

Handlers are plain ``def`` so FastAPI runs them in its threadpool: the
engine makes blocking HTTP calls, and turns for different sessions
should not wait on each other.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request

from ..content.templates import FIRST_QUESTION, USER_OPTIONS, WELCOME_MESSAGE
from ..core.engine import ConversationEngine
from ..core.errors import SessionNotFoundError, StateError
from ..core.metrics import aggregate_metrics, session_metrics
from ..core.types import Question, Stage, UserProfile
from .schemas import (
    MetricsResponse,
    PivotData,
    QuestionData,
    RefineRequest,
    StageRequest,
    StartSessionRequest,
    StartSessionResponse,
    TurnRequest,
    TurnResponse,
)
from .session import SessionRegistry
from .storage import InMemoryStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_engine(request: Request) -> ConversationEngine:
    return request.app.state.engine


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def _question_data(question: Optional[Question]) -> Optional[QuestionData]:
    if question is None:
        return None
    data = question.to_dict()
    data.pop("metadata", None)
    return QuestionData(**data)


def _metrics_response(metrics) -> MetricsResponse:
    return MetricsResponse(**metrics.to_dict())


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@router.get("/status")
def status(engine: ConversationEngine = Depends(get_engine), registry: SessionRegistry = Depends(get_registry)):
    """System status including LLM availability."""
    return {
        "llm_available": bool(getattr(engine.generator, "is_available", True)),
        "active_sessions": len(registry),
        "sweeper_running": registry.running,
    }


@router.post("/session/start", response_model=StartSessionResponse)
def start_session(
    request: StartSessionRequest = StartSessionRequest(),
    engine: ConversationEngine = Depends(get_engine),
    registry: SessionRegistry = Depends(get_registry),
    store: InMemoryStore = Depends(get_store),
):
    """Start a new discovery session with the fixed opening question."""
    session_id = request.session_id or str(uuid.uuid4())[:8]
    opening = Question(question=FIRST_QUESTION, question_type="exploration")

    context = engine.new_context(session_id, request.domain)
    context = dataclasses.replace(
        context,
        user_profile=UserProfile(role=request.role),
        current_question=opening,
    )
    state = engine.state_machine.create_state(session_id, request.user_id, request.domain)
    registry.create(context, state)
    store.save_state(state)

    return StartSessionResponse(
        session_id=session_id,
        stage=state.current_stage.value,
        message=WELCOME_MESSAGE,
        question=_question_data(opening),
        overall_progress=state.overall_progress,
    )


@router.post("/session/{session_id}/turn", response_model=TurnResponse)
def turn(
    session_id: str,
    request: TurnRequest,
    engine: ConversationEngine = Depends(get_engine),
    registry: SessionRegistry = Depends(get_registry),
    store: InMemoryStore = Depends(get_store),
):
    """Process one user answer: analyze, pivot or ask the next question."""
    with registry.turn(session_id) as entry:
        result = engine.take_turn(entry.context, request.user_message, entry.state)
        registry.update(
            session_id,
            context=result.context,
            state=result.state,
            assumption_set=result.pivot.assumption_set,
            style=result.style,
        )
        store.save_state(result.state)
        store.append_artifact(session_id, "analysis", result.analysis.to_dict())
        if result.pivot.assumption_set is not None:
            store.append_artifact(session_id, "assumption_set", result.pivot.assumption_set.to_dict())

    pivot = result.pivot
    return TurnResponse(
        session_id=session_id,
        stage=result.state.current_stage.value,
        overall_progress=result.state.overall_progress,
        analysis=result.analysis.to_dict(),
        pivot=PivotData(
            should_pivot=pivot.should_pivot,
            pivot_reason=pivot.pivot_reason,
            transition_message=pivot.transition_message,
            assumption_set=pivot.assumption_set.to_dict() if pivot.assumption_set else None,
            user_options=dict(USER_OPTIONS) if pivot.should_pivot else None,
        ),
        style=result.style.value if result.style else None,
        question=_question_data(result.question),
        engagement=result.engagement,
        is_complete=result.state.current_stage == Stage.COMPLETED,
    )


@router.get("/session/{session_id}/state")
def get_state(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Current progress record plus the profile we have built so far."""
    entry = registry.get(session_id)
    context = entry.context
    return {
        "state": entry.state.to_dict(),
        "user_profile": context.user_profile.to_dict(),
        "exchanges": len(context.history),
        "current_question": _question_data(context.current_question),
        "style": entry.style.value if entry.style else None,
        "assumption_set": entry.assumption_set.to_dict() if entry.assumption_set else None,
    }


@router.post("/session/{session_id}/stage")
def advance_stage(
    session_id: str,
    request: StageRequest,
    engine: ConversationEngine = Depends(get_engine),
    registry: SessionRegistry = Depends(get_registry),
    store: InMemoryStore = Depends(get_store),
):
    """Move forward to a later stage. Backward moves are rejected."""
    with registry.turn(session_id) as entry:
        state = engine.state_machine.advance_stage(entry.state, request.stage)
        # the pending question belonged to the previous stage
        context = dataclasses.replace(entry.context, stage=state.current_stage, current_question=None)
        registry.update(session_id, context=context, state=state)
        store.save_state(state)
    return state.to_dict()


@router.post("/session/{session_id}/assumptions/refine")
def refine_assumptions(
    session_id: str,
    request: RefineRequest,
    engine: ConversationEngine = Depends(get_engine),
    registry: SessionRegistry = Depends(get_registry),
    store: InMemoryStore = Depends(get_store),
):
    """Refine the latest assumption set from user feedback."""
    with registry.turn(session_id) as entry:
        if entry.assumption_set is None:
            raise StateError(f"Session {session_id} has no assumption set to refine")
        refined = engine.refine_assumptions(entry.assumption_set, request.feedback, entry.context)
        registry.update(session_id, assumption_set=refined)
        store.append_artifact(session_id, "assumption_set", refined.to_dict())
    return refined.to_dict()


@router.get("/session/{session_id}/metrics", response_model=MetricsResponse)
def get_session_metrics(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _metrics_response(session_metrics(registry.get(session_id).state))


@router.get("/metrics", response_model=MetricsResponse)
def get_aggregate_metrics(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    store: InMemoryStore = Depends(get_store),
):
    """Cohort metrics over every stored session, optionally by creation window."""
    return _metrics_response(aggregate_metrics(store.list_states(), _utc(start), _utc(end)))


@router.delete("/session/{session_id}")
def delete_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
    store: InMemoryStore = Depends(get_store),
):
    evicted = registry.evict(session_id)
    deleted = store.delete_state(session_id)
    if not (evicted or deleted):
        raise SessionNotFoundError(session_id)
    return {"deleted": session_id}
