from __future__ import annotations

import threading
from typing import Dict

from .state import SessionState


class SessionStore:
    """Keyed storage of per-conversation session state."""

    def get(self, conversation_id: str) -> SessionState | None:
        raise NotImplementedError

    def create_if_absent(self, conversation_id: str) -> SessionState:
        raise NotImplementedError

    def update(self, conversation_id: str, session: SessionState) -> None:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    """Process-lifetime store: no eviction, nothing survives a restart."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionState] = {}

    def get(self, conversation_id: str) -> SessionState | None:
        with self._lock:
            return self._sessions.get(conversation_id)

    def create_if_absent(self, conversation_id: str) -> SessionState:
        with self._lock:
            session = self._sessions.get(conversation_id)
            if session is None:
                session = SessionState()
                self._sessions[conversation_id] = session
            return session

    def update(self, conversation_id: str, session: SessionState) -> None:
        with self._lock:
            self._sessions[conversation_id] = session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
