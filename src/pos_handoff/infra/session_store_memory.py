"""Implementação de SessionStore em memória (apenas dev/testes)."""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from pos_handoff.domain.models import HandoffSession
from pos_handoff.domain.protocols.session_store import SessionQuery
from pos_handoff.infra.session_contract import (
    SessionStore,
    SessionStoreError,
    is_expirable,
    matches_query,
    paginate,
)
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class InMemorySessionStore(SessionStore):
    """Armazenamento em memória (não usar em produção).

    Guarda o JSON serializado: cada load devolve uma instância nova, então
    mutações do chamador só chegam ao store via compare_and_set.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, str] = {}
        self._lock = threading.Lock()

    def create(self, session: HandoffSession) -> None:
        with self._lock:
            if session.session_id in self._sessions:
                raise SessionStoreError(f"Session already exists: {session.session_id}")
            self._sessions[session.session_id] = session.model_dump_json()
        logger.debug("Session created (in-memory)", extra={"session_id": session.session_id})

    def load(self, session_id: str) -> HandoffSession | None:
        with self._lock:
            payload = self._sessions.get(session_id)
        if payload is None:
            return None
        return HandoffSession.model_validate_json(payload)

    def compare_and_set(self, session: HandoffSession, expected_version: int) -> bool:
        with self._lock:
            payload = self._sessions.get(session.session_id)
            if payload is None:
                raise SessionStoreError(f"Session not found: {session.session_id}")

            current = HandoffSession.model_validate_json(payload)
            if current.version != expected_version:
                logger.debug(
                    "Version conflict (in-memory)",
                    extra={
                        "session_id": session.session_id,
                        "expected_version": expected_version,
                        "current_version": current.version,
                    },
                )
                return False

            self._sessions[session.session_id] = session.model_dump_json()
            return True

    def find_expirable(self, now: datetime, limit: int = 500) -> list[HandoffSession]:
        with self._lock:
            snapshot = list(self._sessions.values())
        candidates = [HandoffSession.model_validate_json(p) for p in snapshot]
        return [s for s in candidates if is_expirable(s, now)][:limit]

    def list_sessions(self, query: SessionQuery) -> list[HandoffSession]:
        return paginate(self._filtered(query), query)

    def count_sessions(self, query: SessionQuery) -> int:
        return len(self._filtered(query))

    def _filtered(self, query: SessionQuery) -> list[HandoffSession]:
        with self._lock:
            snapshot = list(self._sessions.values())
        sessions = (HandoffSession.model_validate_json(p) for p in snapshot)
        return [s for s in sessions if matches_query(s, query)]
