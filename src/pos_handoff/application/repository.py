"""Gateway único de escrita das sessões de handoff.

Toda mudança de status passa por `transition`: lê, valida na tabela de
transições, muta uma cópia e grava com compare_and_set na versão lida.
Ao perder o CAS, relê e revalida; quem perde uma corrida para um estado
terminal recebe InvalidStateTransition, nunca sobrescreve em silêncio.

Escritas sem mudança de status (contadores, errors[], prorrogação) repetem
até gravar, com backoff exponencial curto: perder o CAS ali nunca é
conflito semântico. Transições respeitam max_retries.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pos_handoff.domain.errors import HandoffError, InvalidStateTransition, SessionNotFound
from pos_handoff.domain.models import ClientInfo, HandoffSession, utcnow
from pos_handoff.domain.protocols.session_store import SessionQuery, SessionStoreProtocol
from pos_handoff.domain.session import TRANSITION_ACTIONS, SessionStatus, validate_transition
from pos_handoff.infra.session_contract import SessionStoreError
from pos_handoff.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

Clock = Callable[[], datetime]
Mutator = Callable[[HandoffSession, datetime], None]

BACKOFF_BASE_SECONDS = 0.002
BACKOFF_MAX_SECONDS = 0.05


class SessionRepository:
    """Leitura e escrita versionada de HandoffSession."""

    def __init__(
        self,
        store: SessionStoreProtocol,
        clock: Clock = utcnow,
        max_retries: int = 10,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_retries = max(1, max_retries)
        self._sleep = sleep

    @property
    def clock(self) -> Clock:
        return self._clock

    def now(self) -> datetime:
        return self._clock()

    def create(self, session: HandoffSession) -> None:
        self._store.create(session)

    def find(self, session_id: str) -> HandoffSession | None:
        return self._store.load(session_id)

    def get(self, session_id: str) -> HandoffSession:
        session = self._store.load(session_id)
        if session is None:
            raise SessionNotFound(details={"session_id": session_id})
        return session

    def list_sessions(self, query: SessionQuery) -> tuple[list[HandoffSession], int]:
        return self._store.list_sessions(query), self._store.count_sessions(query)

    def find_expirable(self, now: datetime, limit: int) -> list[HandoffSession]:
        return self._store.find_expirable(now, limit)

    def transition(
        self,
        session_id: str,
        target: SessionStatus,
        *,
        mutate: Mutator | None = None,
        details: str | None = None,
        client: ClientInfo | None = None,
    ) -> HandoffSession:
        """Aplica uma transição de estado com exatamente 1 entrada de auditoria.

        Raises:
            SessionNotFound: sessão inexistente
            InvalidStateTransition: transição fora da tabela
            SessionStoreError: conflito persistente após max_retries
        """

        def _apply(session: HandoffSession, now: datetime) -> None:
            allowed, reason = validate_transition(session.status, target)
            if not allowed:
                raise InvalidStateTransition(
                    details={"from": session.status.value, "to": target.value, "reason": reason}
                )
            session.status = target
            if mutate is not None:
                mutate(session, now)
            session.append_audit(TRANSITION_ACTIONS[target], details, client, now)

        updated = self._write(session_id, _apply, max_attempts=self._max_retries)
        logger.info(
            "Session transitioned",
            extra={"session_id": session_id, "status": target.value, "version": updated.version},
        )
        return updated

    def update(self, session_id: str, mutate: Mutator) -> HandoffSession:
        """Escrita versionada sem mudança de status (tracker, extend, errors[])."""
        return self._write(session_id, mutate)

    def record_error(
        self,
        session_id: str,
        error: HandoffError,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Anexa entrada em errors[] antes do erro voltar ao chamador."""
        self.append_error(
            session_id,
            error.code,
            error.public_message,
            {**error.details, **(details or {})},
        )

    def append_error(
        self,
        session_id: str,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Falha ao registrar não substitui o erro original: apenas loga."""

        def _append(session: HandoffSession, now: datetime) -> None:
            session.append_error(code, message, details=details, timestamp=now)

        try:
            self._write(session_id, _append)
        except (SessionNotFound, SessionStoreError) as e:
            logger.warning(
                "Failed to record session error",
                extra={"session_id": session_id, "code": code, "error": type(e).__name__},
            )

    def _write(
        self,
        session_id: str,
        mutate: Mutator,
        max_attempts: int | None = None,
    ) -> HandoffSession:
        """Lê, muta e grava com CAS; max_attempts=None repete até gravar."""
        attempt = 0
        while max_attempts is None or attempt < max_attempts:
            current = self.get(session_id)
            updated = current.model_copy(deep=True)
            now = self._clock()

            mutate(updated, now)
            updated.updated_at = now
            updated.version = current.version + 1

            if self._store.compare_and_set(updated, expected_version=current.version):
                return updated

            logger.debug(
                "Version conflict, retrying",
                extra={"session_id": session_id, "attempt": attempt + 1},
            )
            self._sleep(_calculate_backoff(attempt))
            attempt += 1

        logger.warning(
            "Session write conflict persisted after retries",
            extra={"session_id": session_id, "max_retries": max_attempts},
        )
        raise SessionStoreError(f"Concurrent update conflict on session {session_id}")


def _calculate_backoff(attempt: int) -> float:
    """Backoff exponencial com jitter, limitado a BACKOFF_MAX_SECONDS."""
    backoff = min((2 ** min(attempt, 16)) * BACKOFF_BASE_SECONDS, BACKOFF_MAX_SECONDS)
    return backoff * random.uniform(0.5, 1.0)
