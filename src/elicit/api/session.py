"""
Session registry for the Elicit API.

Holds the live ConversationContext + ConversationState of every active
session. Each session has its own lock so two turns for the same session
run one after the other, while different sessions proceed in parallel.
A background sweeper evicts sessions that have been idle too long or
have outlived their maximum lifetime; sessions with a turn in flight are
never evicted.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from ..core.errors import SessionNotFoundError, ValidationError
from ..core.types import AssumptionSet, ConversationContext, ConversationState, QuestioningStyle

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT = 30 * 60
DEFAULT_MAX_LIFETIME = 24 * 3600
DEFAULT_SWEEP_INTERVAL = 60


@dataclass
class SessionEntry:
    context: ConversationContext
    state: ConversationState
    created_at: float
    last_access: float
    assumption_set: Optional[AssumptionSet] = None
    style: Optional[QuestioningStyle] = None
    # Turns holding or waiting for the lock
    busy: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class SessionRegistry:
    """
    Thread-safe session store with idle/lifetime eviction.

    Usage:
        registry = SessionRegistry()
        registry.start()
        registry.create(context, state)
        with registry.turn(session_id) as entry:
            ...                      # entry is exclusively ours here
            registry.update(session_id, context=new_ctx, state=new_state)
        registry.stop()
    """

    def __init__(
        self,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        max_lifetime: float = DEFAULT_MAX_LIFETIME,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.idle_timeout = idle_timeout
        self.max_lifetime = max_lifetime
        self.sweep_interval = sweep_interval
        self.clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionEntry] = {}
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_env(cls) -> "SessionRegistry":
        return cls(
            idle_timeout=float(os.environ.get("ELICIT_SESSION_IDLE_TIMEOUT", DEFAULT_IDLE_TIMEOUT)),
            max_lifetime=float(os.environ.get("ELICIT_SESSION_MAX_LIFETIME", DEFAULT_MAX_LIFETIME)),
            sweep_interval=float(os.environ.get("ELICIT_SWEEP_INTERVAL", DEFAULT_SWEEP_INTERVAL)),
        )

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self, context: ConversationContext, state: ConversationState) -> SessionEntry:
        if not context.session_id:
            raise ValidationError("session_id is required")
        now = self.clock()
        entry = SessionEntry(context=context, state=state, created_at=now, last_access=now)
        with self._lock:
            if context.session_id in self._sessions:
                raise ValidationError(f"Session {context.session_id} already exists")
            self._sessions[context.session_id] = entry
        logger.info(f"[Registry] Created session {context.session_id}")
        return entry

    def get(self, session_id: str) -> SessionEntry:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            entry.last_access = self.clock()
            return entry

    def exists(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def update(
        self,
        session_id: str,
        context: Optional[ConversationContext] = None,
        state: Optional[ConversationState] = None,
        assumption_set: Optional[AssumptionSet] = None,
        style: Optional[QuestioningStyle] = None,
    ) -> SessionEntry:
        """Swap in new versions; fields left as None are kept."""
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            if context is not None:
                entry.context = context
            if state is not None:
                entry.state = state
            if assumption_set is not None:
                entry.assumption_set = assumption_set
            if style is not None:
                entry.style = style
            entry.last_access = self.clock()
            return entry

    def evict(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.info(f"[Registry] Evicted session {session_id}")
        return removed

    def list_sessions(self) -> List[str]:
        with self._lock:
            return list(self._sessions.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # -------------------------------------------------------------------------
    # Per-session exclusion
    # -------------------------------------------------------------------------

    @contextmanager
    def turn(self, session_id: str) -> Iterator[SessionEntry]:
        """Hold the session's lock for the duration of one turn."""
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            entry.busy += 1
        entry.lock.acquire()
        try:
            yield entry
        finally:
            entry.lock.release()
            with self._lock:
                entry.busy -= 1
                entry.last_access = self.clock()

    # -------------------------------------------------------------------------
    # Eviction
    # -------------------------------------------------------------------------

    def sweep(self) -> int:
        """Evict idle or expired sessions. Returns how many were removed."""
        now = self.clock()
        with self._lock:
            expired = [
                sid for sid, entry in self._sessions.items()
                if entry.busy == 0 and (
                    now - entry.last_access > self.idle_timeout
                    or now - entry.created_at > self.max_lifetime
                )
            ]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info(f"[Registry] Swept {len(expired)} session(s)")
        return len(expired)

    def start(self) -> None:
        """Start the background sweeper. No-op if already running."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="elicit-session-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception as e:
                logger.warning(f"[Registry] Sweep failed: {e}")
