"""
Error taxonomy for the discovery engine.

ValidationError: caller passed missing or empty input. Always surfaced.
GenerationError: text generation failed or returned unparseable output.
    Recovered locally only where a deterministic fallback exists.
StateError: unknown session (SessionNotFoundError) or invalid stage
    transition. Always surfaced.
ConfigurationError: bad style/domain profile lookup.
"""

from __future__ import annotations

from typing import Any, Dict


class ElicitError(Exception):
    """Base class. ``kind`` is the stable identifier sent back to callers."""

    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ValidationError(ElicitError):
    kind = "validation_error"


class GenerationError(ElicitError):
    kind = "generation_error"


class StateError(ElicitError):
    kind = "state_error"


class ConfigurationError(ElicitError):
    kind = "configuration_error"


class SessionNotFoundError(StateError):
    """Unknown or expired session id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")
