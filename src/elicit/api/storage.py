"""
Persistence port and its in-memory implementation.

States are stored as JSON text so what comes back out is exactly what
``ConversationState.from_dict`` can rebuild. Per-turn artifacts
(analyses, assumption sets) are append-only and keyed by session id plus
a sequence number.
"""

from __future__ import annotations

import json
import threading
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..core.types import ConversationState


class StateStore(Protocol):
    def save_state(self, state: ConversationState) -> None: ...
    def load_state(self, session_id: str) -> Optional[ConversationState]: ...
    def delete_state(self, session_id: str) -> bool: ...
    def list_states(self) -> List[ConversationState]: ...
    def append_artifact(self, session_id: str, kind: str, payload: Dict[str, Any]) -> int: ...
    def list_artifacts(self, session_id: str, kind: Optional[str] = None) -> List[Dict[str, Any]]: ...


class InMemoryStore:
    """Process-local StateStore. Thread-safe."""

    def __init__(self):
        self._lock = threading.Lock()
        self._states: Dict[str, str] = {}
        self._artifacts: Dict[str, List[Tuple[int, str, str]]] = {}

    def save_state(self, state: ConversationState) -> None:
        blob = json.dumps(state.to_dict())
        with self._lock:
            self._states[state.session_id] = blob

    def load_state(self, session_id: str) -> Optional[ConversationState]:
        with self._lock:
            blob = self._states.get(session_id)
        return ConversationState.from_dict(json.loads(blob)) if blob else None

    def delete_state(self, session_id: str) -> bool:
        with self._lock:
            self._artifacts.pop(session_id, None)
            return self._states.pop(session_id, None) is not None

    def list_states(self) -> List[ConversationState]:
        with self._lock:
            blobs = list(self._states.values())
        return [ConversationState.from_dict(json.loads(b)) for b in blobs]

    def append_artifact(self, session_id: str, kind: str, payload: Dict[str, Any]) -> int:
        """Store an immutable artifact; returns its sequence number (1-based)."""
        blob = json.dumps(payload, default=str)
        with self._lock:
            items = self._artifacts.setdefault(session_id, [])
            seq = len(items) + 1
            items.append((seq, kind, blob))
        return seq

    def list_artifacts(self, session_id: str, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            items = list(self._artifacts.get(session_id, []))
        return [
            {"seq": seq, "kind": k, "payload": json.loads(blob)}
            for seq, k, blob in items
            if kind is None or k == kind
        ]
